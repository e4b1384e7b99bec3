"""
Build a LeaseQueue from configuration.
"""

import logging

from pymongo import MongoClient

from leasequeue.clock import Clock, LocalClock, ServerClock
from leasequeue.config import Settings, get_settings
from leasequeue.db.connection import get_collection
from leasequeue.db.repository import JobStore
from leasequeue.observability.metrics import MetricsCollector
from leasequeue.queue import LeaseQueue

logger = logging.getLogger(__name__)


def build_clock(store: JobStore, settings: Settings) -> Clock:
    """Pick the clock named by ``queue_clock``."""
    if settings.queue_clock == "local":
        return LocalClock()
    return ServerClock(store, resync_seconds=settings.clock_resync_seconds)


def connect(
    settings: Settings | None = None,
    client: MongoClient | None = None,
    metrics: MetricsCollector | None = None,
) -> LeaseQueue:
    """
    Establish a queue connection.

    Args:
        settings: Settings to use. Defaults to the cached settings.
        client: MongoDB client. Defaults to the shared client.
        metrics: Metrics collector. Defaults to the process-wide one.

    Returns:
        LeaseQueue: A queue over the configured collection.
    """
    settings = settings or get_settings()
    store = JobStore(get_collection(settings, client))

    logger.info(
        "Lease queue connected",
        extra={
            "collection": settings.queue_collection,
            "default_queue": settings.queue_default,
            "lease_seconds": settings.queue_lease_seconds,
            "write_concern": settings.queue_write_concern,
        },
    )

    return LeaseQueue(
        store,
        build_clock(store, settings),
        default_queue=settings.queue_default,
        lease_seconds=settings.queue_lease_seconds,
        reclaim_batch_size=settings.reaper_batch_size,
        metrics=metrics,
    )
