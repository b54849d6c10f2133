"""APScheduler integration for the periodic feed jobs.

Every poller is registered as its own job on one ``AsyncIOScheduler`` with an
``IntervalTrigger`` whose first run is immediate.  An interval of 0 registers a
one-shot ``DateTrigger`` instead.  Each job run is tracked as an asyncio task so
``stop()`` can cancel work that is still in flight, not just future runs.
"""

import asyncio
import contextlib
import logging
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime
from typing import Any

from apscheduler.schedulers.asyncio import AsyncIOScheduler  # type: ignore[import-untyped]
from apscheduler.triggers.date import DateTrigger  # type: ignore[import-untyped]
from apscheduler.triggers.interval import IntervalTrigger  # type: ignore[import-untyped]

logger = logging.getLogger(__name__)

PollFunc = Callable[[], Awaitable[Any]]


class PollingScheduler:
    def __init__(self) -> None:
        self._scheduler: AsyncIOScheduler | None = None
        self._polls: dict[str, tuple[PollFunc, float]] = {}
        self._in_flight: set[asyncio.Task[Any]] = set()

    @property
    def running(self) -> bool:
        return self._scheduler is not None

    @property
    def job_ids(self) -> list[str]:
        if self._scheduler is None:
            return []
        return [job.id for job in self._scheduler.get_jobs()]

    @property
    def in_flight(self) -> int:
        return len(self._in_flight)

    def register(self, name: str, func: PollFunc, interval_seconds: float) -> None:
        """Register a poller. ``interval_seconds == 0`` means run once at start."""
        if interval_seconds < 0:
            raise ValueError(f"interval for {name!r} must be >= 0, got {interval_seconds}")
        if self._scheduler is not None:
            raise RuntimeError("cannot register pollers while the scheduler is running")
        self._polls[name] = (func, interval_seconds)

    async def _run(self, name: str, func: PollFunc) -> None:
        """Job body executed by the scheduler: run one poll, never raise."""
        task = asyncio.current_task()
        if task is not None:
            self._in_flight.add(task)
        try:
            await func()
        except asyncio.CancelledError:
            # Cancellation is the teardown path, not a job failure
            logger.debug("Poll %r cancelled mid-cycle", name)
        except Exception:
            logger.exception("Poll %r failed", name)
        finally:
            if task is not None:
                self._in_flight.discard(task)

    def start(self) -> None:
        """Start all registered pollers. Must be called from inside the running event loop."""
        if self._scheduler is not None:
            return

        scheduler = AsyncIOScheduler(event_loop=asyncio.get_running_loop(), timezone=UTC)
        now = datetime.now(UTC)
        for name, (func, interval) in self._polls.items():
            job_kwargs: dict[str, Any] = {}
            if interval == 0:
                trigger: DateTrigger | IntervalTrigger = DateTrigger(run_date=now, timezone=UTC)
            else:
                trigger = IntervalTrigger(seconds=interval, timezone=UTC)
                # First run now rather than one interval after start
                job_kwargs["next_run_time"] = now
            scheduler.add_job(
                self._run,
                trigger=trigger,
                args=[name, func],
                id=name,
                name=f"{name} poller",
                max_instances=1,
                coalesce=True,
                misfire_grace_time=None,
                replace_existing=True,
                **job_kwargs,
            )
        scheduler.start()
        self._scheduler = scheduler
        logger.info(
            "Polling scheduler started: %s",
            ", ".join(f"{name}={interval:g}s" if interval else f"{name}=once" for name, (_, interval) in self._polls.items()),
        )

    async def stop(self) -> None:
        """Stop future runs and cancel any poll still in flight."""
        scheduler, self._scheduler = self._scheduler, None
        if scheduler is not None:
            with contextlib.suppress(Exception):
                scheduler.shutdown(wait=False)

        pending = [task for task in self._in_flight if not task.done()]
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        self._in_flight.clear()
        if scheduler is not None:
            logger.info("Polling scheduler stopped (%d in-flight polls cancelled)", len(pending))
