"""
Database module.
Contains the MongoDB connection, the job document shape and the job store.
"""

from leasequeue.db.connection import (
    build_write_concern,
    close_client,
    ensure_indexes,
    get_client,
    get_collection,
)
from leasequeue.db.models import JOB_INDEXES, JobDocument, new_job_document
from leasequeue.db.repository import JobStore

__all__ = [
    "get_client",
    "get_collection",
    "build_write_concern",
    "ensure_indexes",
    "close_client",
    "JobDocument",
    "JOB_INDEXES",
    "new_job_document",
    "JobStore",
]
