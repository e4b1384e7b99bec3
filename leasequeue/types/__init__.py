"""
Type definitions for the lease queue.
"""

from leasequeue.types.job import JobHandle, derive_state

__all__ = [
    "JobHandle",
    "derive_state",
]
