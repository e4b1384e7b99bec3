"""
Unit tests for derived job state.
"""

import pytest
from bson import ObjectId

from leasequeue.constants import JobState
from leasequeue.db.models import new_job_document
from leasequeue.types.job import JobHandle, derive_state

NOW = 1_700_000_000
LEASE = 60


class TestDeriveState:
    """Tests for derive_state."""

    @pytest.mark.parametrize(
        ("reserved_at", "available_at", "expected"),
        [
            (None, NOW, JobState.AVAILABLE),
            (None, NOW - 10, JobState.AVAILABLE),
            (None, NOW + 1, JobState.DELAYED),
            (NOW, NOW, JobState.RESERVED),
            (NOW - LEASE + 1, NOW, JobState.RESERVED),
            (NOW - LEASE, NOW, JobState.RESERVED),
            (NOW - LEASE - 1, NOW, JobState.EXPIRED),
            (NOW - 3600, NOW, JobState.EXPIRED),
        ],
    )
    def test_states(self, reserved_at, available_at, expected):
        """Test each state against its timestamps."""
        assert derive_state(reserved_at, available_at, NOW, LEASE) == expected

    def test_reservation_wins_over_delay(self):
        """Test that a set reservation decides the state whatever available_at says."""
        assert derive_state(NOW, NOW + 100, NOW, LEASE) == JobState.RESERVED


class TestJobHandle:
    """Tests for JobHandle."""

    def test_from_document(self):
        """Test building a handle from a stored document."""
        document = dict(new_job_document("q", b"\x00blob", NOW, delay=5))
        document["_id"] = ObjectId()

        job = JobHandle.from_document(document)

        assert job.id == document["_id"]
        assert job.queue == "q"
        assert job.payload == b"\x00blob"
        assert job.attempts == 0
        assert job.reserved_at is None
        assert job.available_at == NOW + 5
        assert job.created_at == NOW
        assert job.is_reserved is False
        assert job.lease_expires_at(LEASE) is None
        assert job.state(NOW, LEASE) == JobState.DELAYED

    def test_lease_expires_at(self):
        """Test lease expiry arithmetic."""
        job = JobHandle(
            id=ObjectId(),
            queue="q",
            payload=None,
            attempts=1,
            reserved_at=NOW,
            available_at=NOW,
            created_at=NOW,
        )

        assert job.is_reserved is True
        assert job.lease_expires_at(LEASE) == NOW + LEASE
        assert job.state(NOW + LEASE, LEASE) == JobState.RESERVED
        assert job.state(NOW + LEASE + 1, LEASE) == JobState.EXPIRED

    def test_negative_delay_is_immediate(self):
        """Test that a negative delay does not backdate availability."""
        document = new_job_document("q", None, NOW, delay=-30)

        assert document["available_at"] == NOW
