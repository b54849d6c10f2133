"""Terminal console for the RATIP live dashboard.

Usage:
    python -m ratip.cli
    # or, once installed:
    ratip

Plain text is sent as a query.  Commands start with a colon:
    :show            render the active tab
    :tab <name>      switch tab (dashboard, ai-query, alarms, correlations)
    :check           probe backend health now
    :example <n>     load example query n (1-3) and submit it
    quit             exit (Ctrl+C or end of input also exit)

Backend status changes are announced as they happen.
"""

import asyncio
import logging
import os
import sys
import threading
from collections.abc import Callable

from ratip.config import get_settings
from ratip.engine.query import EXAMPLE_QUERIES
from ratip.engine.session import DashboardSession
from ratip.engine.state import Listener, Slot, StateChange
from ratip.engine.view import STATUS_BADGES, DashboardView
from ratip.models import HealthStatus, Tab

logger = logging.getLogger(__name__)

HELP = " Commands: :show, :tab <name>, :check, :example <n>, quit"


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------


def render(view: DashboardView) -> str:
    """Plain-text rendering of the active tab plus the status header."""
    tabs = " | ".join(f"[{t.label}]" if t is view.active_tab else t.label for t in view.tabs)
    lines = [
        f"RATIP  Backend: {view.badge.label} (checked {view.badge.checked_at})  API: {view.base_url}",
        tabs,
        "",
    ]

    if view.active_tab is Tab.DASHBOARD:
        s = view.summary
        latency = f"{s.avg_api_latency_ms:.1f} ms" if s.avg_api_latency_ms is not None else "n/a"
        lines.append(
            f"Services: {s.monitored_services}  Active alarms: {s.active_alarms} "
            f"({s.critical_alarms} critical)  Correlations: {s.correlations}  Avg latency: {latency}"
        )
        lines.append(f"{'time':>8}  {'api ms':>7}  {'lambda ms':>9}  {'dynamo':>7}  {'errors':>6}")
        for sample in view.telemetry:
            lines.append(
                f"{sample.timestamp:>8}  {sample.api_latency_ms:7.1f}  {sample.lambda_duration_ms:9.1f}  "
                f"{sample.dynamo_read_units:7.0f}  {sample.error_count:6d}"
            )

    elif view.active_tab is Tab.AI_QUERY:
        if view.advisory:
            lines.append(f"! {view.advisory}")
        lines.append("Try these example queries:")
        lines.extend(f"  {i}. {example}" for i, example in enumerate(view.examples, start=1))
        if view.query.is_processing:
            lines.append(f"\nProcessing: {view.query.query_text}")
        elif view.query.response_text:
            lines.append(f"\nAI Response ({view.query.query_text}):\n{view.query.response_text}")

    elif view.active_tab is Tab.ALARMS:
        lines.append("Recent Alarms")
        for row in view.alarms:
            a = row.alarm
            lines.append(f"  {a.severity:<8} {a.service} - {a.metric}  value={a.value:.1f}  {row.display_time}")

    elif view.active_tab is Tab.CORRELATIONS:
        lines.append("Event Correlations")
        for corr in view.correlations:
            lines.append(f"  {corr.pattern}")
            lines.append(
                f"    {corr.confidence_percent:.1f}% confidence  "
                f"Occurrences: {corr.occurrences}  Last Seen: {corr.last_seen_display}"
            )

    return "\n".join(lines)


# ---------------------------------------------------------------------------
# Console loop
# ---------------------------------------------------------------------------


async def handle_line(session: DashboardSession, line: str) -> str | None:
    """Execute one console line. Returns text to print, or None to quit."""
    if line.lower() in ("quit", "exit", "q"):
        return None

    vs = session.view_state
    if line.startswith(":"):
        command, _, arg = line[1:].partition(" ")
        arg = arg.strip()
        if command == "show":
            return render(session.view())
        if command == "tab":
            try:
                vs.select_tab(arg)
            except ValueError:
                return f"Unknown tab {arg!r}. Choose from: {', '.join(t.value for t in Tab)}"
            return render(session.view())
        if command == "check":
            status = await session.health.check_now()
            return f"Backend: {status}"
        if command == "example":
            count = len(EXAMPLE_QUERIES)
            if not arg.isdigit() or not 1 <= int(arg) <= count:
                return f"Example must be 1-{count}"
            return await _submit(session, vs.use_example(int(arg) - 1))
        return f"Unknown command {command!r}.{HELP}"

    vs.set_query_text(line)
    return await _submit(session, line)


async def _submit(session: DashboardSession, text: str) -> str:
    session.view_state.select_tab(Tab.AI_QUERY)
    exchange = await session.query.submit(text)
    if exchange.query_text != text or exchange.is_processing:
        return "A query is already processing; wait for it to finish."
    return render(session.view())


def health_announcer(write: Callable[[str], None] = print) -> Listener:
    """Store listener that reports backend status transitions as they happen."""
    last: HealthStatus | None = None

    def _announce(change: StateChange) -> None:
        nonlocal last
        if change.slot is not Slot.HEALTH or change.snapshot.health is last:
            return
        last = change.snapshot.health
        label, _ = STATUS_BADGES[last]
        write(f"\n[Backend: {label}]")

    return _announce


class StdinLines:
    """Delivers stdin lines to the event loop from a daemon reader thread.

    The thread reads the raw file descriptor, so it never holds the
    ``sys.stdin`` buffer lock and cannot keep the process alive after Ctrl+C.
    """

    def __init__(self, fd: int | None = None) -> None:
        self._fd = sys.stdin.fileno() if fd is None else fd
        self._loop = asyncio.get_running_loop()
        self._queue: asyncio.Queue[str | None] = asyncio.Queue()
        self._thread = threading.Thread(target=self._pump, name="ratip-stdin", daemon=True)
        self._thread.start()

    def _put(self, line: str | None) -> bool:
        try:
            self._loop.call_soon_threadsafe(self._queue.put_nowait, line)
        except RuntimeError:
            # event loop already closed
            return False
        return True

    def _pump(self) -> None:
        pending = b""
        while True:
            try:
                chunk = os.read(self._fd, 4096)
            except OSError as e:
                logger.debug("stdin read failed: %s", e)
                break
            if not chunk:
                break
            *lines, pending = (pending + chunk).split(b"\n")
            for raw in lines:
                if not self._put(raw.decode(errors="replace").rstrip("\r")):
                    return
        if pending:
            self._put(pending.decode(errors="replace"))
        self._put(None)

    async def readline(self) -> str:
        """Next line without its newline. Raises EOFError once stdin is closed."""
        line = await self._queue.get()
        if line is None:
            raise EOFError
        return line


async def run() -> None:
    settings = get_settings()
    print("RATIP live dashboard (type 'quit' or Ctrl+C to exit, ':show' to render)")
    print("=" * 60)

    async with DashboardSession(settings) as session:
        unsubscribe = session.store.subscribe(health_announcer())
        lines = StdinLines()
        try:
            while True:
                print("> ", end="", flush=True)
                try:
                    line = (await lines.readline()).strip()
                except EOFError:
                    print("\nGoodbye!")
                    break
                if not line:
                    continue
                output = await handle_line(session, line)
                if output is None:
                    print("Goodbye!")
                    break
                print(f"\n{output}\n")
        finally:
            unsubscribe()


def main() -> None:
    """Run the interactive console."""
    try:
        settings = get_settings()
    except Exception as e:
        print(f"Invalid configuration: {e}")
        sys.exit(1)

    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(levelname)s: %(message)s",
    )
    try:
        asyncio.run(run())
    except KeyboardInterrupt:
        print("\nGoodbye!")


if __name__ == "__main__":
    main()
