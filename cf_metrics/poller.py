"""
Poll loop.

Each pass walks the zone registry under a shared read, fetches the stats
window of every zone and writes it into the metrics sink. A zone that fails
is logged and skipped; the next pass retries it. Between passes the loop
waits a fixed interval, measured from the end of the previous pass.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Awaitable, Callable, List, Optional

from .exceptions import FetchError
from .models import Zone

if TYPE_CHECKING:
    from .app import AppContext

logger = logging.getLogger(__name__)

SleepFunc = Callable[[float], Awaitable[None]]


@dataclass
class PassResult:
    """Outcome of one pass over the registry."""

    zones: int = 0
    succeeded: int = 0
    failed: int = 0
    series_written: int = 0
    duration: float = 0.0


class Poller:
    """
    Repeating poll task with a cancellation signal and a done notification.

    Example:
        ```python
        poller = Poller(context, interval=300)
        poller.start()
        ...
        await poller.stop()
        ```
    """

    def __init__(
        self,
        context: "AppContext",
        interval: float = 300.0,
        max_concurrency: int = 1,
        sleep: Optional[SleepFunc] = None,
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize the poller.

        Args:
            context: Application context (client, registry, sink)
            interval: Seconds to wait after a pass before starting the next
            max_concurrency: Zones fetched at once; 1 keeps registry order
            sleep: Replacement for the inter-pass wait, mainly for tests
            clock: Wall-clock source for the last-pass timestamp
        """
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be at least 1")

        self.context = context
        self.interval = interval
        self.max_concurrency = max_concurrency
        self._sleep = sleep
        self._clock = clock
        self._stop_event: Optional[asyncio.Event] = None
        self._task: Optional[asyncio.Task] = None
        self.done = asyncio.Event()
        self.passes = 0

    async def run_pass(self) -> PassResult:
        """Fetch and publish the stats of every registered zone once."""
        result = PassResult()
        sink = self.context.sink

        with sink.time_pass() as timing:
            async with self.context.registry.reading() as zones:
                result.zones = len(zones)
                if self.max_concurrency == 1:
                    outcomes = [await self._poll_zone(zone) for zone in zones]
                else:
                    outcomes = await self._poll_concurrently(zones)

        for written in outcomes:
            if written is None:
                result.failed += 1
            else:
                result.succeeded += 1
                result.series_written += written

        result.duration = timing.duration or 0.0
        sink.mark_pass_completed(self._clock())
        self.passes += 1

        log = logger.warning if result.failed else logger.info
        log(
            "Pass %d finished in %.2fs: %d/%d zones updated, %d failed, %d series written",
            self.passes,
            result.duration,
            result.succeeded,
            result.zones,
            result.failed,
            result.series_written,
        )
        return result

    async def _poll_concurrently(self, zones: List[Zone]) -> List[Optional[int]]:
        """Fetch zones through a bounded pool; failures stay per zone."""
        semaphore = asyncio.Semaphore(self.max_concurrency)

        async def bounded(zone: Zone) -> Optional[int]:
            async with semaphore:
                return await self._poll_zone(zone)

        return list(await asyncio.gather(*(bounded(zone) for zone in zones)))

    async def _poll_zone(self, zone: Zone) -> Optional[int]:
        """
        Fetch and publish one zone.

        Returns:
            Series written, or None if the zone failed this pass
        """
        logger.debug("Loading zone %s (%s)", zone.tag, zone.id)
        try:
            groups = await self.context.client.fetch_zone_stats(zone)
        except FetchError as e:
            self.context.sink.record_fetch_failure(zone)
            logger.error("Skipping zone %s this pass: %s", zone.tag, e.message)
            return None
        except Exception:
            # Cancellation is a BaseException and still propagates
            self.context.sink.record_fetch_failure(zone)
            logger.exception("Unexpected error polling zone %s, skipping this pass", zone.tag)
            return None

        written = self.context.sink.record_stats(zone, groups)
        logger.debug(
            "Zone %s: %d daily groups, %d series written", zone.tag, len(groups), written
        )
        return written

    async def run(self, stop_event: Optional[asyncio.Event] = None) -> None:
        """
        Run passes until ``stop_event`` is set.

        The stop event is checked between passes and interrupts the
        inter-pass wait; a pass in progress runs to completion unless the
        task itself is cancelled.
        """
        self._stop_event = stop_event or asyncio.Event()
        self.done.clear()
        logger.info(
            "Poll loop started (interval %.0fs, concurrency %d)",
            self.interval,
            self.max_concurrency,
        )
        try:
            while not self._stop_event.is_set():
                await self.run_pass()
                if await self._wait(self.interval):
                    break
        finally:
            self.done.set()
            logger.info("Poll loop stopped after %d passes", self.passes)

    async def _wait(self, interval: float) -> bool:
        """Wait between passes; True if a stop was requested meanwhile."""
        assert self._stop_event is not None
        if self._sleep is not None:
            await self._sleep(interval)
            return self._stop_event.is_set()

        try:
            await asyncio.wait_for(self._stop_event.wait(), timeout=interval)
        except asyncio.TimeoutError:
            return False
        return True

    def start(self, stop_event: Optional[asyncio.Event] = None) -> asyncio.Task:
        """Schedule :meth:`run` as a background task."""
        if self._task is not None and not self._task.done():
            raise RuntimeError("poller is already running")
        stop_event = stop_event or asyncio.Event()
        self._stop_event = stop_event
        self._task = asyncio.create_task(self.run(stop_event), name="cf-metrics-poller")
        return self._task

    async def stop(self, timeout: Optional[float] = None) -> None:
        """
        Request a stop and wait for the loop to finish.

        Args:
            timeout: Seconds to let an in-flight pass finish before the
                task is cancelled (None waits indefinitely)
        """
        if self._stop_event is not None:
            self._stop_event.set()
        if self._task is None:
            return

        try:
            await asyncio.wait_for(asyncio.shield(self._task), timeout=timeout)
        except asyncio.TimeoutError:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        finally:
            self._task = None
