"""
Job document shape and collection indexes.
"""

from typing import Any, TypedDict

from bson import ObjectId
from pymongo import ASCENDING, IndexModel

from leasequeue.constants import (
    FIELD_ATTEMPTS,
    FIELD_AVAILABLE_AT,
    FIELD_CREATED_AT,
    FIELD_ID,
    FIELD_QUEUE,
    FIELD_RESERVED_AT,
)


class JobDocument(TypedDict, total=False):
    """
    A job as persisted in the collection.

    Timestamps are integer epoch seconds. There is no status field: whether
    a job is available, delayed, reserved or expired is derived from
    reserved_at and available_at at read time.
    """

    _id: ObjectId
    queue: str
    payload: Any
    attempts: int
    reserved_at: int | None
    available_at: int
    created_at: int


# Claim sorts oldest-first within a queue; the reclaim sweep scans by lease time.
JOB_INDEXES: list[IndexModel] = [
    IndexModel(
        [(FIELD_QUEUE, ASCENDING), (FIELD_CREATED_AT, ASCENDING), (FIELD_ID, ASCENDING)],
        name="queue_created_id",
    ),
    IndexModel(
        [(FIELD_QUEUE, ASCENDING), (FIELD_RESERVED_AT, ASCENDING)],
        name="queue_reserved_at",
    ),
]

CLAIM_SORT: list[tuple[str, int]] = [
    (FIELD_CREATED_AT, ASCENDING),
    (FIELD_ID, ASCENDING),
]


def new_job_document(
    queue: str,
    payload: Any,
    now: int,
    delay: int = 0,
    attempts: int = 0,
) -> JobDocument:
    """
    Build the document for a freshly pushed job.

    Args:
        queue: Queue namespace.
        payload: Opaque job body.
        now: Creation time.
        delay: Seconds before the job becomes claimable.
        attempts: Initial attempt count.

    Returns:
        The job document, without an ``_id`` (the store assigns it).
    """
    return JobDocument(
        queue=queue,
        payload=payload,
        attempts=attempts,
        reserved_at=None,
        available_at=now + max(0, delay),
        created_at=now,
    )


def expired_lease_filter(queue: str, expiration: int) -> dict[str, Any]:
    """Match jobs in ``queue`` whose lease was granted before ``expiration``."""
    return {FIELD_QUEUE: queue, FIELD_RESERVED_AT: {"$lt": expiration}}


def claimable_filter(queue: str, now: int, expiration: int) -> dict[str, Any]:
    """
    Match jobs in ``queue`` that may be claimed at ``now``.

    Either unreserved and due, or reserved with a lease granted before
    ``expiration``.
    """
    return {
        FIELD_QUEUE: queue,
        "$or": [
            {FIELD_RESERVED_AT: None, FIELD_AVAILABLE_AT: {"$lte": now}},
            {FIELD_RESERVED_AT: {"$lt": expiration}},
        ],
    }


def reserve_update(now: int) -> dict[str, Any]:
    """Mark a job leased at ``now`` and count the attempt."""
    return {"$set": {FIELD_RESERVED_AT: now}, "$inc": {FIELD_ATTEMPTS: 1}}


def reclaim_update() -> dict[str, Any]:
    """Drop an expired lease and count the lost attempt."""
    return {"$set": {FIELD_RESERVED_AT: None}, "$inc": {FIELD_ATTEMPTS: 1}}


def release_update(available_at: int) -> dict[str, Any]:
    """Drop a lease voluntarily, making the job claimable at ``available_at``."""
    return {"$set": {FIELD_RESERVED_AT: None, FIELD_AVAILABLE_AT: available_at}}
