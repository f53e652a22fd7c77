"""Staleness gate for AnkiWeb syncs."""

from __future__ import annotations

import logging
import math
import time
from collections.abc import Callable

from .anki_client import AnkiClient

logger = logging.getLogger(__name__)


class SyncGate:
    """Trigger a sync only when the last successful one is older than the interval.

    The sync runs inline, so the first call after the interval elapses waits
    for the AnkiWeb round trip. Overlapping callers may both observe a stale
    gate and both sync; the last one to finish records the timestamp.
    """

    def __init__(
        self,
        client: AnkiClient,
        *,
        interval_seconds: float,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._client = client
        self._interval = interval_seconds
        self._clock = clock
        self._last_sync: float | None = None

    def seconds_since_last_sync(self) -> float:
        if self._last_sync is None:
            return math.inf
        return self._clock() - self._last_sync

    def is_stale(self) -> bool:
        return self.seconds_since_last_sync() >= self._interval

    def mark_stale(self) -> None:
        self._last_sync = None

    async def sync(self) -> None:
        await self._client.sync()
        self._last_sync = self._clock()
        logger.info("AnkiWeb sync completed")

    async def sync_if_stale(self) -> bool:
        if not self.is_stale():
            return False
        await self.sync()
        return True
