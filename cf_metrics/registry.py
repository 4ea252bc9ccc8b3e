"""
Zone registry guarded by a reader/writer lock.

The poll loop holds a shared read for the length of a pass; discovery takes
the exclusive write to swap the zone list wholesale.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Iterable, List, Tuple

from .models import Zone

logger = logging.getLogger(__name__)


class ReadWriteLock:
    """
    Asyncio reader/writer lock.

    Any number of readers may hold the lock together; a writer waits for
    active readers to leave and blocks new readers while it is queued.
    """

    def __init__(self) -> None:
        self._cond = asyncio.Condition()
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    @property
    def readers(self) -> int:
        return self._readers

    @property
    def writer_active(self) -> bool:
        return self._writer

    @asynccontextmanager
    async def read(self) -> AsyncIterator[None]:
        """Hold a shared read."""
        async with self._cond:
            await self._cond.wait_for(
                lambda: not self._writer and self._writers_waiting == 0
            )
            self._readers += 1
        try:
            yield
        finally:
            async with self._cond:
                self._readers -= 1
                if self._readers == 0:
                    self._cond.notify_all()

    @asynccontextmanager
    async def write(self) -> AsyncIterator[None]:
        """Hold the exclusive write."""
        async with self._cond:
            self._writers_waiting += 1
            try:
                await self._cond.wait_for(
                    lambda: not self._writer and self._readers == 0
                )
            finally:
                self._writers_waiting -= 1
                # Readers parked behind this writer re-check on cancellation
                self._cond.notify_all()
            self._writer = True
        try:
            yield
        finally:
            async with self._cond:
                self._writer = False
                self._cond.notify_all()


class ZoneRegistry:
    """Ordered, replace-only collection of monitored zones."""

    def __init__(self) -> None:
        self._zones: Tuple[Zone, ...] = ()
        self._populated = False
        self.lock = ReadWriteLock()

    @property
    def populated(self) -> bool:
        return self._populated

    def __len__(self) -> int:
        return len(self._zones)

    def snapshot(self) -> List[Zone]:
        """Current zones without taking the lock."""
        return list(self._zones)

    async def replace(self, zones: Iterable[Zone]) -> None:
        """
        Replace the registry contents under the exclusive lock.

        Raises:
            ValueError: If ``zones`` is empty; an empty registry is only
                valid before the first discovery
        """
        new_zones = tuple(zones)
        if not new_zones:
            raise ValueError("zone registry cannot be replaced with an empty set")

        async with self.lock.write():
            self._zones = new_zones
            self._populated = True

        logger.debug("Zone registry now holds %d zones", len(new_zones))

    @asynccontextmanager
    async def reading(self) -> AsyncIterator[List[Zone]]:
        """Hold a shared read and yield the zones in registry order."""
        async with self.lock.read():
            yield list(self._zones)
