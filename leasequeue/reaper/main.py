"""
Lease reaper for clearing expired job leases.

Claims already take over expired jobs, so the reaper is not needed for
delivery. It keeps the collection honest: a job whose worker died reads
as available again instead of reserved-but-stale.
"""

import logging
import signal
import threading
from collections.abc import Sequence

from leasequeue.config import get_settings
from leasequeue.connector import connect
from leasequeue.db import close_client, ensure_indexes
from leasequeue.observability.logging import bind_context, setup_logging
from leasequeue.observability.metrics import setup_metrics, start_metrics_server
from leasequeue.observability.tracing import instrument_pymongo, setup_tracing
from leasequeue.queue import LeaseQueue

logger = logging.getLogger(__name__)


class Reaper:
    """
    Periodically reclaims expired leases on a set of queues.

    Runs periodically to:
    1. Find jobs whose lease is older than the lease duration
    2. Reset their reservation and count the lost attempt
    3. Record metrics for monitoring
    """

    def __init__(
        self,
        queue: LeaseQueue,
        queues: Sequence[str] | None = None,
        interval_seconds: float | None = None,
    ):
        """
        Initialize the reaper.

        Args:
            queue: The lease queue to sweep.
            queues: Queue names to sweep. Defaults to the configured list.
            interval_seconds: Seconds between sweeps.
        """
        settings = get_settings()
        self.queue = queue
        self.queues = list(queues or settings.reaper_queues)
        self.interval = interval_seconds or settings.reaper_interval_seconds
        self._stopped = threading.Event()

    @property
    def running(self) -> bool:
        return not self._stopped.is_set()

    def start(self) -> None:
        """Sweep until stop() is called."""
        logger.info(f"Reaper starting with interval {self.interval}s", extra={"queues": self.queues})
        self._stopped.clear()

        while not self._stopped.is_set():
            try:
                self.run_once()
            except Exception as e:
                logger.exception(f"Error in reaper loop: {e}")

            self._stopped.wait(self.interval)

        logger.info("Reaper stopped")

    def stop(self) -> None:
        """Stop the reaper after the current sweep."""
        logger.info("Reaper stopping")
        self._stopped.set()

    def run_once(self) -> int:
        """
        Sweep every queue once (for testing or cron-style execution).

        A failing queue does not stop the others; the first error is
        raised after all queues were tried.

        Returns:
            Number of jobs released.
        """
        released = 0
        first_error: Exception | None = None

        for name in self.queues:
            try:
                released += self.queue.reclaim_expired(name)
            except Exception as e:
                logger.warning(f"Reclaim failed for queue {name}", extra={"queue": name, "error": str(e)})
                first_error = first_error or e

        if first_error is not None:
            raise first_error
        return released


def run() -> None:
    """Run the reaper."""
    settings = get_settings()
    setup_logging(settings)
    bind_context(component="reaper")
    setup_metrics()
    if settings.prometheus_port is not None:
        start_metrics_server(settings.prometheus_port)
    if settings.otel_enabled:
        setup_tracing(settings)
        instrument_pymongo()

    queue = connect(settings)
    ensure_indexes(queue.store.collection)

    reaper = Reaper(queue)

    # Handle shutdown signals
    for sig in (signal.SIGTERM, signal.SIGINT):
        signal.signal(sig, lambda signum, frame: reaper.stop())

    try:
        reaper.start()
    finally:
        close_client()


if __name__ == "__main__":
    run()
