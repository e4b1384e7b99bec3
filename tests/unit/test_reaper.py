"""
Unit tests for the lease reaper.
"""

import threading
from unittest.mock import MagicMock

import pytest

from leasequeue.errors import TransientStoreError
from leasequeue.queue import LeaseQueue
from leasequeue.reaper import Reaper


class TestReaper:
    """Tests for Reaper."""

    def test_run_once_sweeps_all_queues(self, queue: LeaseQueue, clock):
        """Test that one pass reclaims expired leases on every queue."""
        for name in ("a", "b"):
            queue.push("payload", queue=name)
            queue.claim_next(name)
        queue.push("payload", queue="c")
        queue.claim_next("c")
        clock.advance(61)

        reaper = Reaper(queue, queues=["a", "b"], interval_seconds=1)

        assert reaper.run_once() == 2
        assert queue.claim_next("c").attempts == 2

    def test_run_once_nothing_expired(self, queue: LeaseQueue):
        """Test a pass with nothing to do."""
        queue.push("payload", queue="a")
        queue.claim_next("a")

        assert Reaper(queue, queues=["a"], interval_seconds=1).run_once() == 0

    def test_run_once_continues_after_failure(self):
        """Test that a failing queue does not stop the others being swept."""
        queue = MagicMock()
        queue.reclaim_expired.side_effect = [TransientStoreError("find_many", "down"), 3]

        reaper = Reaper(queue, queues=["a", "b"], interval_seconds=1)

        with pytest.raises(TransientStoreError):
            reaper.run_once()
        assert queue.reclaim_expired.call_count == 2

    def test_start_and_stop(self):
        """Test that the loop keeps sweeping through errors until stopped."""
        queue = MagicMock()
        swept = threading.Event()

        def reclaim(name):
            if queue.reclaim_expired.call_count >= 3:
                swept.set()
            raise TransientStoreError("find_many", "down")

        queue.reclaim_expired.side_effect = reclaim
        reaper = Reaper(queue, queues=["a"], interval_seconds=0.01)

        thread = threading.Thread(target=reaper.start)
        thread.start()
        assert swept.wait(timeout=5)
        reaper.stop()
        thread.join(timeout=5)

        assert not thread.is_alive()
        assert reaper.running is False
