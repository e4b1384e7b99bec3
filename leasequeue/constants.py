"""
Application constants.
Centralized location for all constant values used across the application.
"""

from enum import StrEnum


class JobState(StrEnum):
    """
    Derived job states. None of these is ever stored on a document.

    State transitions:
    - DELAYED -> AVAILABLE (available_at reached)
    - AVAILABLE -> RESERVED (claimed)
    - RESERVED -> EXPIRED (lease elapsed without completion)
    - EXPIRED -> RESERVED (claimed again)
    - EXPIRED -> AVAILABLE (reclaimed by the sweep)
    - RESERVED -> AVAILABLE / DELAYED (released by the worker)
    - any -> deleted (completed; the document is gone)
    """

    AVAILABLE = "available"
    DELAYED = "delayed"
    RESERVED = "reserved"
    EXPIRED = "expired"


# Document fields
FIELD_ID = "_id"
FIELD_QUEUE = "queue"
FIELD_PAYLOAD = "payload"
FIELD_ATTEMPTS = "attempts"
FIELD_RESERVED_AT = "reserved_at"
FIELD_AVAILABLE_AT = "available_at"
FIELD_CREATED_AT = "created_at"

# Default values
DEFAULT_QUEUE = "default"
DEFAULT_LEASE_SECONDS = 60

# Metrics names
METRIC_QUEUE_DEPTH = "leasequeue_depth"
METRIC_JOBS_PUSHED = "leasequeue_jobs_pushed_total"
METRIC_JOBS_CLAIMED = "leasequeue_jobs_claimed_total"
METRIC_CLAIM_EMPTY = "leasequeue_claim_empty_total"
METRIC_JOBS_COMPLETED = "leasequeue_jobs_completed_total"
METRIC_JOBS_RELEASED = "leasequeue_jobs_released_total"
METRIC_LEASES_RECLAIMED = "leasequeue_leases_reclaimed_total"
METRIC_STORE_ERRORS = "leasequeue_store_errors_total"

# Trace span names
SPAN_PUSH_JOB = "push_job"
SPAN_CLAIM_NEXT = "claim_next"
SPAN_COMPLETE_JOB = "complete_job"
SPAN_RELEASE_JOB = "release_job"
SPAN_RECLAIM_EXPIRED = "reclaim_expired"
