"""
Job store for document operations.
Implements the store contract the lease queue is built on.
"""

import logging
from collections.abc import Iterator, Mapping, Sequence
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any

from bson import ObjectId
from pymongo import ReturnDocument
from pymongo.collection import Collection
from pymongo.errors import (
    ConnectionFailure,
    ExecutionTimeout,
    PyMongoError,
    WriteConcernError,
)

from leasequeue.constants import FIELD_ID
from leasequeue.errors import QueueStoreError, TransientStoreError

logger = logging.getLogger(__name__)

_TRANSIENT_ERRORS = (ConnectionFailure, ExecutionTimeout, WriteConcernError)
_RETRYABLE_LABELS = ("RetryableWriteError", "TransientTransactionError")


def is_transient(error: PyMongoError) -> bool:
    """Whether a driver error may succeed if the call is repeated."""
    if isinstance(error, _TRANSIENT_ERRORS):
        return True
    return any(error.has_error_label(label) for label in _RETRYABLE_LABELS)


@contextmanager
def translate_errors(operation: str) -> Iterator[None]:
    """
    Re-raise driver errors as queue store errors.

    Args:
        operation: Name of the store call, carried on the raised error.

    Raises:
        TransientStoreError: For network, timeout and write-concern failures.
        QueueStoreError: For any other driver failure.
    """
    try:
        yield
    except PyMongoError as e:
        if is_transient(e):
            logger.warning(
                "Transient store error",
                extra={"operation": operation, "error": str(e)},
            )
            raise TransientStoreError(operation, str(e)) from e
        logger.error(
            "Store error",
            extra={"operation": operation, "error": str(e)},
        )
        raise QueueStoreError(operation, str(e)) from e


class JobStore:
    """
    Thin wrapper over the job collection.

    Every method is a single round-trip except where noted, and every
    driver failure leaves as a QueueStoreError. Nothing is retried here.
    """

    def __init__(self, collection: Collection):
        """
        Initialize the store with a collection.

        Args:
            collection: The job collection, already carrying its write concern.
        """
        self._collection = collection

    @property
    def collection(self) -> Collection:
        return self._collection

    def find_and_update(
        self,
        filter: Mapping[str, Any],
        update: Mapping[str, Any],
        sort: Sequence[tuple[str, int]] | None = None,
    ) -> dict[str, Any] | None:
        """
        Atomically select one document, mutate it and return it.

        The match, the update and the read-back happen as one operation on
        the server, which is what makes claims mutually exclusive.

        Args:
            filter: Selection filter.
            update: Update document.
            sort: Order deciding which match is taken.

        Returns:
            The document after the update, or None if nothing matched.
        """
        with translate_errors("find_and_update"):
            return self._collection.find_one_and_update(
                filter,
                update,
                sort=list(sort) if sort else None,
                return_document=ReturnDocument.AFTER,
            )

    def delete_by_id(self, job_id: ObjectId) -> bool:
        """
        Delete one document by id.

        Returns:
            True if a document was removed, False if it was already gone.
        """
        with translate_errors("delete_by_id"):
            result = self._collection.delete_one({FIELD_ID: job_id})
        return result.deleted_count == 1

    def find_many(
        self,
        filter: Mapping[str, Any],
        sort: Sequence[tuple[str, int]] | None = None,
        limit: int = 0,
    ) -> list[dict[str, Any]]:
        """
        Return all documents matching ``filter``.
        No snapshot consistency across the result set.
        """
        with translate_errors("find_many"):
            cursor = self._collection.find(filter, sort=list(sort) if sort else None, limit=limit)
            return list(cursor)

    def find_one(self, filter: Mapping[str, Any]) -> dict[str, Any] | None:
        with translate_errors("find_one"):
            return self._collection.find_one(filter)

    def insert(self, document: Mapping[str, Any]) -> ObjectId:
        """
        Insert one document.

        Returns:
            The store-assigned id.
        """
        with translate_errors("insert"):
            result = self._collection.insert_one(dict(document))
        return result.inserted_id

    def insert_many(self, documents: Sequence[Mapping[str, Any]]) -> list[ObjectId]:
        """Insert documents in order, returning their ids."""
        if not documents:
            return []
        with translate_errors("insert_many"):
            result = self._collection.insert_many([dict(d) for d in documents], ordered=True)
        return list(result.inserted_ids)

    def count(self, filter: Mapping[str, Any]) -> int:
        with translate_errors("count"):
            return self._collection.count_documents(filter)

    def server_time(self) -> float:
        """
        Current time on the database server, as epoch seconds.

        Read from the ``localTime`` field of the ``hello`` command.
        """
        with translate_errors("server_time"):
            reply = self._collection.database.client.admin.command("hello")
        local_time: datetime = reply["localTime"]
        if local_time.tzinfo is None:
            local_time = local_time.replace(tzinfo=timezone.utc)
        return local_time.timestamp()
