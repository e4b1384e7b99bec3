"""
Pytest configuration and shared fixtures.
"""

import mongomock
import pytest
from prometheus_client import CollectorRegistry
from pymongo.collection import Collection

from leasequeue.db.repository import JobStore
from leasequeue.observability.metrics import MetricsCollector
from leasequeue.queue import LeaseQueue

LEASE_SECONDS = 60


class FrozenClock:
    """Clock that only moves when told to."""

    def __init__(self, start: int = 1_700_000_000):
        self.current = start

    def now(self) -> int:
        return self.current

    def advance(self, seconds: int) -> None:
        self.current += seconds


@pytest.fixture
def clock() -> FrozenClock:
    """Create a frozen clock."""
    return FrozenClock()


@pytest.fixture
def registry() -> CollectorRegistry:
    """Create an isolated metrics registry."""
    return CollectorRegistry()


@pytest.fixture
def metrics(registry: CollectorRegistry) -> MetricsCollector:
    """Create a metrics collector bound to the test registry."""
    return MetricsCollector(registry)


@pytest.fixture
def collection() -> Collection:
    """Create an in-memory job collection."""
    return mongomock.MongoClient().leasequeue_test.jobs


@pytest.fixture
def store(collection: Collection) -> JobStore:
    """Create a job store over the in-memory collection."""
    return JobStore(collection)


@pytest.fixture
def queue(store: JobStore, clock: FrozenClock, metrics: MetricsCollector) -> LeaseQueue:
    """Create a lease queue with a 60 second lease."""
    return LeaseQueue(
        store,
        clock,
        default_queue="default",
        lease_seconds=LEASE_SECONDS,
        metrics=metrics,
    )
