"""
Lease Queue

A persistent, at-least-once work queue on MongoDB. Independent workers
atomically claim jobs with a single find-and-update; a lapsed lease makes
the job claimable again.
"""

__version__ = "1.0.0"

from leasequeue.connector import connect
from leasequeue.constants import JobState
from leasequeue.errors import (
    InvalidJobIdError,
    LeaseQueueError,
    QueueStoreError,
    ReclaimIncompleteError,
    TransientStoreError,
)
from leasequeue.queue import LeaseQueue
from leasequeue.types.job import JobHandle, derive_state

__all__ = [
    "connect",
    "LeaseQueue",
    "JobHandle",
    "JobState",
    "derive_state",
    "LeaseQueueError",
    "QueueStoreError",
    "TransientStoreError",
    "ReclaimIncompleteError",
    "InvalidJobIdError",
]
