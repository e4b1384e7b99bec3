"""
Job-related type definitions.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from bson import ObjectId

from leasequeue.constants import (
    FIELD_ATTEMPTS,
    FIELD_AVAILABLE_AT,
    FIELD_CREATED_AT,
    FIELD_ID,
    FIELD_PAYLOAD,
    FIELD_QUEUE,
    FIELD_RESERVED_AT,
    JobState,
)


def derive_state(
    reserved_at: int | None,
    available_at: int,
    now: int,
    lease_seconds: int,
) -> JobState:
    """
    Compute a job's state from its timestamps.

    A lease counts as expired once more than ``lease_seconds`` whole
    seconds separate ``reserved_at`` from ``now``, the same boundary the
    claim filter uses. Timestamps are truncated to the second, so the strict
    comparison is what guarantees a full lease.

    Args:
        reserved_at: Lease grant time, or None when not leased.
        available_at: Time before which the job may not be claimed.
        now: Current time, from the queue's clock.
        lease_seconds: Lease duration.

    Returns:
        The derived JobState.
    """
    if reserved_at is not None:
        if reserved_at < now - lease_seconds:
            return JobState.EXPIRED
        return JobState.RESERVED
    if available_at > now:
        return JobState.DELAYED
    return JobState.AVAILABLE


@dataclass(frozen=True)
class JobHandle:
    """
    A job as read from the store.

    Returned by a successful claim with the attempt count and lease start
    the claim itself just wrote.
    """

    id: ObjectId
    queue: str
    payload: Any
    attempts: int
    reserved_at: int | None
    available_at: int
    created_at: int

    @classmethod
    def from_document(cls, document: Mapping[str, Any]) -> "JobHandle":
        """Build a handle from a raw job document."""
        return cls(
            id=document[FIELD_ID],
            queue=document[FIELD_QUEUE],
            payload=document.get(FIELD_PAYLOAD),
            attempts=document.get(FIELD_ATTEMPTS, 0),
            reserved_at=document.get(FIELD_RESERVED_AT),
            available_at=document[FIELD_AVAILABLE_AT],
            created_at=document[FIELD_CREATED_AT],
        )

    @property
    def is_reserved(self) -> bool:
        """Whether a lease timestamp is set (current or expired)."""
        return self.reserved_at is not None

    def state(self, now: int, lease_seconds: int) -> JobState:
        """Derived state of this job at ``now``."""
        return derive_state(self.reserved_at, self.available_at, now, lease_seconds)

    def lease_expires_at(self, lease_seconds: int) -> int | None:
        """Time at which the current lease lapses, or None when not leased."""
        if self.reserved_at is None:
            return None
        return self.reserved_at + lease_seconds
