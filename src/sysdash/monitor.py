"""Snapshot aggregation and refresh scheduling for sysdash."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from datetime import datetime

from sysdash.collectors import (
    DEFAULT_WIFI_INTERFACE,
    collect_battery,
    collect_bluetooth,
    collect_cpu,
    collect_host,
    collect_memory,
    collect_ports,
    collect_processes,
    collect_wifi,
)
from sysdash.models import Snapshot
from sysdash.runner import CommandRunner, run_command

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL = 3.0
MIN_INTERVAL = 0.1


def timestamp_label(now: datetime | None = None) -> str:
    """Format a collection time for display."""
    return (now or datetime.now()).strftime("%H:%M:%S")


async def collect_snapshot(
    run: CommandRunner = run_command,
    wifi_interface: str = DEFAULT_WIFI_INTERFACE,
) -> Snapshot:
    """
    Run every collector concurrently and assemble one Snapshot.

    Collectors never raise, so the gather only fails on a programming error.
    """
    memory, cpu, wifi, bluetooth, battery, ports, processes, host = await asyncio.gather(
        collect_memory(run),
        collect_cpu(run),
        collect_wifi(run, wifi_interface),
        collect_bluetooth(run),
        collect_battery(run),
        collect_ports(run),
        collect_processes(run),
        collect_host(run),
    )
    return Snapshot(
        memory=memory,
        cpu=cpu,
        wifi=wifi,
        bluetooth=bluetooth,
        battery=battery,
        ports=ports,
        processes=processes,
        host=host,
        timestamp=timestamp_label(),
    )


class RefreshScheduler:
    """
    Periodically collects snapshots on the running event loop.

    A repeating timer starts a cycle every `interval` seconds unless one is
    already in flight; refresh() starts one immediately. Results are published
    in start order: a cycle finishing after a newer one has published is
    dropped. After stop() nothing is published.
    """

    def __init__(
        self,
        collect: Callable[[], Awaitable[Snapshot]] = collect_snapshot,
        interval: float = DEFAULT_INTERVAL,
        on_snapshot: Callable[[Snapshot], None] | None = None,
    ) -> None:
        """
        Initialize the RefreshScheduler.

        Args:
            collect: Coroutine function producing one Snapshot.
            interval: Seconds between timer ticks. Default 3.0s.
            on_snapshot: Called with every published Snapshot.
        """
        self._collect = collect
        self._interval = max(MIN_INTERVAL, interval)
        self._on_snapshot = on_snapshot
        self._snapshot: Snapshot | None = None
        self._loading = False
        self._stopped = False
        self._timer: asyncio.Task[None] | None = None
        self._cycles: set[asyncio.Task[None]] = set()
        self._generation = 0
        self._published_generation = 0

    @property
    def interval(self) -> float:
        """Get the timer interval."""
        return self._interval

    @interval.setter
    def interval(self, value: float) -> None:
        """Set the timer interval. Takes effect from the next tick."""
        self._interval = max(MIN_INTERVAL, value)

    @property
    def snapshot(self) -> Snapshot | None:
        """The most recently published snapshot, if any."""
        return self._snapshot

    @property
    def loading(self) -> bool:
        """Whether a startup or manual refresh is still outstanding."""
        return self._loading

    @property
    def collecting(self) -> bool:
        """Whether any collection cycle is in flight."""
        return bool(self._cycles)

    @property
    def is_running(self) -> bool:
        """Check if the timer is armed."""
        return self._timer is not None and not self._timer.done()

    def start(self) -> None:
        """Collect immediately and arm the repeating timer."""
        if self.is_running:
            return

        self._stopped = False
        self._timer = asyncio.create_task(self._tick_loop(), name="RefreshScheduler")
        self.refresh()

    def stop(self) -> None:
        """Cancel the timer. In-flight cycles finish but are not published."""
        self._stopped = True
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def refresh(self) -> None:
        """Start a collection cycle now, regardless of the timer."""
        if self._stopped:
            return
        self._loading = True
        self._start_cycle()

    async def join(self) -> None:
        """Wait until no collection cycle is in flight."""
        while self._cycles:
            await asyncio.gather(*self._cycles, return_exceptions=True)

    async def _tick_loop(self) -> None:
        """Timer loop running on the event loop."""
        while True:
            await asyncio.sleep(self._interval)
            if self._cycles:
                logger.debug("Skipping tick; a collection cycle is still running")
                continue
            self._start_cycle()

    def _start_cycle(self) -> None:
        self._generation += 1
        task = asyncio.create_task(self._run_cycle(self._generation))
        self._cycles.add(task)
        task.add_done_callback(self._cycles.discard)

    async def _run_cycle(self, generation: int) -> None:
        """Collect one snapshot and publish it if it is still current."""
        snapshot: Snapshot | None = None
        try:
            snapshot = await self._collect()
        except Exception:
            logger.exception("Snapshot collection failed; keeping previous snapshot")

        if self._stopped:
            self._loading = False
            return

        if snapshot is not None and generation > self._published_generation:
            self._published_generation = generation
            self._snapshot = snapshot
            if self._on_snapshot is not None:
                try:
                    self._on_snapshot(snapshot)
                except Exception:
                    logger.exception("Snapshot listener failed")

        # This task is still in _cycles until its done callback runs.
        if len(self._cycles) <= 1:
            self._loading = False
