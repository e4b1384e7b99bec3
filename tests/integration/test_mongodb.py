"""
Integration tests against a running MongoDB.

Set MONGODB_TEST_URL (for example mongodb://localhost:27017/?replicaSet=rs0)
to run them; they are skipped otherwise.
"""

import os
import threading
from collections.abc import Generator
from uuid import uuid4

import pytest
from prometheus_client import CollectorRegistry
from pymongo import MongoClient

from leasequeue.config import Settings
from leasequeue.connector import connect
from leasequeue.db import ensure_indexes
from leasequeue.observability.metrics import MetricsCollector
from leasequeue.queue import LeaseQueue

MONGODB_TEST_URL = os.getenv("MONGODB_TEST_URL")

pytestmark = [
    pytest.mark.integration,
    pytest.mark.skipif(MONGODB_TEST_URL is None, reason="MONGODB_TEST_URL not set"),
]


@pytest.fixture
def client() -> Generator[MongoClient]:
    """Create a client for the test server."""
    client = MongoClient(MONGODB_TEST_URL, serverSelectionTimeoutMS=2000)
    yield client
    client.close()


@pytest.fixture
def settings() -> Settings:
    """Create settings pointing at a throwaway collection."""
    return Settings(
        mongodb_url=MONGODB_TEST_URL,
        mongodb_database="leasequeue_test",
        queue_collection=f"jobs_{uuid4().hex[:8]}",
        queue_lease_seconds=2,
        queue_write_concern="1",
        queue_journal=False,
    )


@pytest.fixture
def queue(client: MongoClient, settings: Settings) -> Generator[LeaseQueue]:
    """Create a queue over a fresh collection using the server clock."""
    queue = connect(settings, client=client, metrics=MetricsCollector(CollectorRegistry()))
    ensure_indexes(queue.store.collection)
    yield queue
    queue.store.collection.drop()


class TestLeaseQueueMongoDB:
    """End-to-end lease behaviour on a real server."""

    def test_concurrent_claims_are_exclusive(self, queue: LeaseQueue):
        """Test that racing threads never claim the same job twice."""
        job_ids = queue.bulk([f"job-{i}" for i in range(20)], queue="q")
        claimed: list = []
        lock = threading.Lock()
        start = threading.Barrier(8)

        def worker():
            start.wait()
            while (job := queue.claim_next("q")) is not None:
                with lock:
                    claimed.append(job.id)

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=30)

        assert sorted(claimed) == sorted(job_ids)
        assert len(set(claimed)) == len(claimed)

    def test_fifo_and_lease_expiry(self, queue: LeaseQueue):
        """Test oldest-first claims and reclaim after the lease lapses."""
        a_id = queue.push("A", queue="q")
        b_id = queue.push("B", queue="q")

        assert queue.claim_next("q").id == a_id
        assert queue.claim_next("q").id == b_id
        assert queue.claim_next("q") is None

        threading.Event().wait(3.1)

        again = queue.claim_next("q")
        assert again.id == a_id
        assert again.attempts == 2

    def test_reclaim_and_complete(self, queue: LeaseQueue):
        """Test the sweep and idempotent completion."""
        job_id = queue.push("payload", queue="q")
        queue.claim_next("q")

        assert queue.reclaim_expired("q") == 0
        threading.Event().wait(3.1)
        assert queue.reclaim_expired("q") == 1
        assert queue.get(job_id).reserved_at is None

        assert queue.complete("q", job_id) is True
        assert queue.complete("q", job_id) is False
