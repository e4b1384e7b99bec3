"""
Clocks the lease queue trusts for every "now".

Producers, workers and the database may run on different hosts; taking
time from the database server keeps lease arithmetic free of host skew.
"""

import logging
import time
from typing import Protocol

from leasequeue.db.repository import JobStore

logger = logging.getLogger(__name__)


class Clock(Protocol):
    """Anything that returns the current time in whole epoch seconds."""

    def now(self) -> int: ...


class LocalClock:
    """Wall clock of the current host."""

    def now(self) -> int:
        return int(time.time())


class ServerClock:
    """
    Time as seen by the database server.

    The server time is fetched once and kept as an offset from the local
    wall clock, then refreshed every ``resync_seconds``. Between syncs a
    reading costs no round-trip.
    """

    def __init__(self, store: JobStore, resync_seconds: float = 300.0):
        """
        Initialize the clock.

        Args:
            store: Store whose server supplies the time.
            resync_seconds: Seconds between offset refreshes.
        """
        self._store = store
        self._resync_seconds = resync_seconds
        self._offset: float | None = None
        self._synced_at = 0.0

    @property
    def offset(self) -> float | None:
        """Seconds the server clock is ahead of the local one."""
        return self._offset

    def sync(self) -> float:
        """
        Measure the server offset now.

        The local reference is the midpoint of the round-trip.

        Raises:
            QueueStoreError: If the server cannot be reached.
        """
        before = time.time()
        server = self._store.server_time()
        after = time.time()
        self._offset = server - (before + after) / 2
        self._synced_at = time.monotonic()
        logger.debug("Server clock synced", extra={"offset": round(self._offset, 3)})
        return self._offset

    def now(self) -> int:
        if self._offset is None or time.monotonic() - self._synced_at >= self._resync_seconds:
            self.sync()
        return int(time.time() + self._offset)
