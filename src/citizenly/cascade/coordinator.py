"""Per-level request ids deciding which fetch result is authoritative."""

from __future__ import annotations

import asyncio
import logging

from pydantic import BaseModel

logger = logging.getLogger(__name__)


class FetchStats(BaseModel):
    """Counters for fetch outcomes."""

    issued: int = 0
    applied: int = 0
    failed: int = 0
    stale: int = 0


class FetchCoordinator:
    """Tracks the latest request id per level.

    Every fetch takes a fresh, monotonically increasing id for its level.
    Starting a new fetch or invalidating a level makes every earlier id for
    that level stale; a completion is applied only if its id is still the
    latest. Sources are never told to stop: their results are just ignored.
    """

    def __init__(self) -> None:
        self._latest: dict[int, int] = {}
        self._tasks: set[asyncio.Future] = set()
        self._disposed = False
        self.stats = FetchStats()

    def begin(self, level: int) -> int:
        """Issue the next request id for a level, superseding earlier ones."""
        request_id = self._latest.get(level, 0) + 1
        self._latest[level] = request_id
        self.stats.issued += 1
        return request_id

    def invalidate(self, level: int) -> None:
        """Make any in-flight request for a level stale."""
        if level in self._latest:
            self._latest[level] += 1

    def is_current(self, level: int, request_id: int) -> bool:
        return not self._disposed and self._latest.get(level) == request_id

    def accept(self, level: int, request_id: int) -> bool:
        """Decide whether a completed fetch may be applied, recording the outcome."""
        if self.is_current(level, request_id):
            return True
        self.stats.stale += 1
        logger.debug(
            "Discarding stale result for level %d (request %d, latest %s)",
            level, request_id, self._latest.get(level),
        )
        return False

    def track(self, task: asyncio.Future) -> None:
        """Keep a reference to an in-flight fetch until it finishes."""
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    @property
    def pending(self) -> int:
        return len(self._tasks)

    async def drain(self) -> None:
        """Wait for every in-flight fetch, including ones that are already stale."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def dispose(self) -> None:
        """Reject every completion from now on."""
        self._disposed = True

    @property
    def disposed(self) -> bool:
        return self._disposed
