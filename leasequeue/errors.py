"""
Exceptions raised by the lease queue.

Store failures are always raised to the caller; nothing here retries.
"""

from collections.abc import Sequence
from typing import Any


class LeaseQueueError(Exception):
    """Base class for all lease queue errors."""


class QueueStoreError(LeaseQueueError):
    """A document store call failed."""

    retryable = False

    def __init__(self, operation: str, message: str):
        super().__init__(f"{operation}: {message}")
        self.operation = operation


class TransientStoreError(QueueStoreError):
    """
    A store call failed in a way that may succeed if repeated.

    Covers network errors, timeouts, unsatisfied write concerns and
    anything the driver labels as retryable.
    """

    retryable = True


class ReclaimIncompleteError(TransientStoreError):
    """Some releases in a reclaim sweep failed; the rest were applied."""

    def __init__(self, queue: str, released: int, failed_ids: Sequence[Any]):
        super().__init__(
            "reclaim_expired",
            f"{len(failed_ids)} release(s) failed in queue {queue!r}, {released} applied",
        )
        self.queue = queue
        self.released = released
        self.failed_ids = list(failed_ids)


class InvalidJobIdError(LeaseQueueError, ValueError):
    """The supplied job id is not an ObjectId or its hex form."""
