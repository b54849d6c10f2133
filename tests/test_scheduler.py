"""Tests for the APScheduler-backed polling scheduler."""

import asyncio
import logging

import pytest

from ratip.engine.scheduler import PollingScheduler


async def _wait_for(predicate, timeout: float = 2.0) -> None:  # type: ignore[no-untyped-def]
    deadline = asyncio.get_running_loop().time() + timeout
    while not predicate():
        if asyncio.get_running_loop().time() > deadline:
            raise AssertionError("condition not met before timeout")
        await asyncio.sleep(0.01)


class TestRegistration:
    def test_negative_interval_rejected(self) -> None:
        with pytest.raises(ValueError):
            PollingScheduler().register("bad", _noop, -1)

    async def test_register_after_start_rejected(self) -> None:
        scheduler = PollingScheduler()
        scheduler.start()
        try:
            with pytest.raises(RuntimeError):
                scheduler.register("late", _noop, 1)
        finally:
            await scheduler.stop()


async def _noop() -> None:
    return None


class TestLifecycle:
    async def test_start_stop(self) -> None:
        scheduler = PollingScheduler()
        scheduler.register("health", _noop, 30)
        scheduler.register("telemetry", _noop, 5)
        assert not scheduler.running

        scheduler.start()
        assert scheduler.running
        assert sorted(scheduler.job_ids) == ["health", "telemetry"]

        await scheduler.stop()
        assert not scheduler.running
        assert scheduler.job_ids == []

    async def test_stop_without_start_is_noop(self) -> None:
        await PollingScheduler().stop()

    async def test_first_run_is_immediate(self) -> None:
        calls: list[str] = []

        async def _poll() -> None:
            calls.append("tick")

        scheduler = PollingScheduler()
        scheduler.register("telemetry", _poll, 3600)
        scheduler.start()
        try:
            await _wait_for(lambda: calls)
        finally:
            await scheduler.stop()
        assert calls == ["tick"]

    async def test_zero_interval_runs_once(self) -> None:
        calls: list[str] = []

        async def _poll() -> None:
            calls.append("once")

        scheduler = PollingScheduler()
        scheduler.register("correlations", _poll, 0)
        scheduler.start()
        try:
            await _wait_for(lambda: calls)
            await asyncio.sleep(0.1)
        finally:
            await scheduler.stop()
        assert calls == ["once"]

    async def test_repeats_on_interval(self) -> None:
        calls: list[str] = []

        async def _poll() -> None:
            calls.append("tick")

        scheduler = PollingScheduler()
        scheduler.register("fast", _poll, 0.05)
        scheduler.start()
        try:
            await _wait_for(lambda: len(calls) >= 3)
        finally:
            await scheduler.stop()

    async def test_failing_poll_does_not_stop_others(self) -> None:
        calls: list[str] = []

        async def _broken() -> None:
            raise RuntimeError("poll exploded")

        async def _healthy() -> None:
            calls.append("ok")

        scheduler = PollingScheduler()
        scheduler.register("broken", _broken, 0.05)
        scheduler.register("healthy", _healthy, 0.05)
        scheduler.start()
        try:
            await _wait_for(lambda: len(calls) >= 2)
        finally:
            await scheduler.stop()


class TestTeardown:
    async def test_stop_cancels_in_flight_poll(self, caplog: pytest.LogCaptureFixture) -> None:
        started = asyncio.Event()
        cancelled = asyncio.Event()

        async def _slow() -> None:
            started.set()
            try:
                await asyncio.sleep(3600)
            except asyncio.CancelledError:
                cancelled.set()
                raise

        scheduler = PollingScheduler()
        scheduler.register("slow", _slow, 30)
        scheduler.start()
        await asyncio.wait_for(started.wait(), timeout=2.0)
        assert scheduler.in_flight == 1

        with caplog.at_level(logging.DEBUG):
            await scheduler.stop()
            # let executor done-callbacks run
            await asyncio.sleep(0.05)

        assert cancelled.is_set()
        assert scheduler.in_flight == 0
        # Teardown is not reported as a job failure
        assert [r for r in caplog.records if r.levelno >= logging.ERROR] == []
        assert any("cancelled mid-cycle" in r.getMessage() for r in caplog.records)

    async def test_no_runs_after_stop(self) -> None:
        calls: list[str] = []

        async def _poll() -> None:
            calls.append("tick")

        scheduler = PollingScheduler()
        scheduler.register("fast", _poll, 0.05)
        scheduler.start()
        await _wait_for(lambda: calls)
        await scheduler.stop()

        count = len(calls)
        await asyncio.sleep(0.2)
        assert len(calls) == count
