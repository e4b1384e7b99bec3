"""
Lease queue: claim, complete, release and reclaim jobs.

Mutual exclusion between workers rests entirely on the store's atomic
find-and-update. No worker holds shared in-process state and no operation
locks more than one document.
"""

import logging
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from typing import Any

from bson import ObjectId
from bson.errors import InvalidId
from opentelemetry.trace import Span

from leasequeue.clock import Clock
from leasequeue.constants import (
    DEFAULT_LEASE_SECONDS,
    DEFAULT_QUEUE,
    FIELD_ID,
    FIELD_QUEUE,
    FIELD_RESERVED_AT,
    SPAN_CLAIM_NEXT,
    SPAN_COMPLETE_JOB,
    SPAN_PUSH_JOB,
    SPAN_RECLAIM_EXPIRED,
    SPAN_RELEASE_JOB,
)
from leasequeue.db.models import (
    CLAIM_SORT,
    claimable_filter,
    expired_lease_filter,
    new_job_document,
    reclaim_update,
    release_update,
    reserve_update,
)
from leasequeue.db.repository import JobStore
from leasequeue.errors import InvalidJobIdError, QueueStoreError, ReclaimIncompleteError
from leasequeue.observability.metrics import MetricsCollector, get_metrics
from leasequeue.observability.tracing import get_tracer
from leasequeue.types.job import JobHandle

logger = logging.getLogger(__name__)


def coerce_job_id(job_id: ObjectId | str) -> ObjectId:
    """
    Accept an ObjectId or its 24-character hex form.

    Raises:
        InvalidJobIdError: If ``job_id`` is neither.
    """
    if isinstance(job_id, ObjectId):
        return job_id
    # ObjectId(None) would mint a fresh id, so only strings are parsed
    if not isinstance(job_id, str):
        raise InvalidJobIdError(f"invalid job id: {job_id!r}")
    try:
        return ObjectId(job_id)
    except InvalidId as e:
        raise InvalidJobIdError(f"invalid job id: {job_id!r}") from e


class LeaseQueue:
    """
    At-least-once job queue over a single collection.

    A job is leased by stamping ``reserved_at``; the lease lapses
    ``lease_seconds`` later and the job becomes claimable again with its
    attempt count carried forward. Completion deletes the document.

    Each call is one store round-trip, except reclaim_expired which scans
    and then releases job by job.

    Timestamps are whole epoch seconds. A lease expires only once
    ``now - reserved_at > lease_seconds``; with truncated seconds this
    keeps a job exclusive for at least the full lease and at most one
    second longer.
    """

    def __init__(
        self,
        store: JobStore,
        clock: Clock,
        default_queue: str = DEFAULT_QUEUE,
        lease_seconds: int = DEFAULT_LEASE_SECONDS,
        reclaim_batch_size: int = 500,
        metrics: MetricsCollector | None = None,
    ):
        """
        Initialize the queue.

        Args:
            store: Store over the job collection.
            clock: Source of "now" for every timestamp and comparison.
            default_queue: Queue used when a call names none.
            lease_seconds: How long a claim stays exclusive.
            reclaim_batch_size: Most expired jobs one sweep will release.
            metrics: Metrics collector. Defaults to the process-wide one.
        """
        if lease_seconds <= 0:
            raise ValueError("lease_seconds must be positive")
        self._store = store
        self._clock = clock
        self.default_queue = default_queue
        self.lease_seconds = lease_seconds
        self.reclaim_batch_size = reclaim_batch_size
        self._metrics = metrics or get_metrics()

    @property
    def store(self) -> JobStore:
        return self._store

    @property
    def clock(self) -> Clock:
        return self._clock

    def get_queue(self, queue: str | None) -> str:
        """Resolve ``queue`` to a queue name, falling back to the default."""
        return queue or self.default_queue

    def now(self) -> int:
        return self._clock.now()

    @contextmanager
    def _operation(self, span_name: str, queue: str) -> Iterator[Span]:
        with get_tracer().start_as_current_span(span_name) as span:
            span.set_attribute("queue", queue)
            try:
                yield span
            except ReclaimIncompleteError:
                # the failed releases were already counted one by one
                raise
            except QueueStoreError as e:
                self._metrics.record_store_error(e.operation, e.retryable)
                raise

    # ---------- Producers ----------

    def push(self, payload: Any, queue: str | None = None, delay: int = 0) -> ObjectId:
        """
        Add a job to the queue.

        Args:
            payload: Opaque job body, stored as-is.
            queue: Target queue. Defaults to the default queue.
            delay: Seconds before the job may be claimed.

        Returns:
            The new job's id.
        """
        queue = self.get_queue(queue)
        with self._operation(SPAN_PUSH_JOB, queue):
            job_id = self._store.insert(new_job_document(queue, payload, self.now(), delay))

        self._metrics.record_pushed(queue)
        logger.debug("Pushed job", extra={"job_id": str(job_id), "queue": queue, "delay": delay})
        return job_id

    def later(self, delay: int, payload: Any, queue: str | None = None) -> ObjectId:
        """Add a job that becomes claimable after ``delay`` seconds."""
        return self.push(payload, queue=queue, delay=delay)

    def bulk(self, payloads: Sequence[Any], queue: str | None = None) -> list[ObjectId]:
        """
        Add several jobs in one insert.

        Insertion order is preserved, so claims return them in the same order.
        """
        queue = self.get_queue(queue)
        now = self.now()
        documents = [new_job_document(queue, payload, now) for payload in payloads]
        with self._operation(SPAN_PUSH_JOB, queue):
            job_ids = self._store.insert_many(documents)

        if job_ids:
            self._metrics.record_pushed(queue, len(job_ids))
            logger.debug("Pushed jobs", extra={"queue": queue, "job_count": len(job_ids)})
        return job_ids

    # ---------- Workers ----------

    def claim_next(self, queue: str | None = None) -> JobHandle | None:
        """
        Atomically lease the oldest eligible job in ``queue``.

        A job is eligible if it is unreserved and due, or if its lease
        was granted more than ``lease_seconds`` ago. Selection and the
        lease stamp happen in one find-and-update, so two workers can
        never come away with the same job from the same eligibility.

        Args:
            queue: Queue to claim from. Defaults to the default queue.

        Returns:
            The job as it stands after the claim, or None if no job is
            eligible.

        Raises:
            QueueStoreError: If the store call fails.
        """
        queue = self.get_queue(queue)
        with self._operation(SPAN_CLAIM_NEXT, queue) as span:
            now = self.now()
            document = self._store.find_and_update(
                claimable_filter(queue, now, now - self.lease_seconds),
                reserve_update(now),
                sort=CLAIM_SORT,
            )
            span.set_attribute("claimed", document is not None)

        self._metrics.record_claim(queue, document is not None)
        if document is None:
            return None

        job = JobHandle.from_document(document)
        if job.attempts > 1:
            logger.info(
                "Claimed job again after its lease lapsed",
                extra={"job_id": str(job.id), "queue": queue, "attempts": job.attempts},
            )
        else:
            logger.debug(
                "Claimed job",
                extra={"job_id": str(job.id), "queue": queue, "attempts": job.attempts},
            )
        return job

    def complete(self, queue: str | None, job_id: ObjectId | str) -> bool:
        """
        Delete a finished job.

        Completing a job that is already gone succeeds; a worker may repeat
        the call after a transient error, and a worker whose lease lapsed
        may complete after another worker already did.

        Args:
            queue: Queue the job was claimed from, used for reporting only.
            job_id: Id of the job.

        Returns:
            True if this call removed the document, False if it was already gone.

        Raises:
            InvalidJobIdError: If ``job_id`` is not an ObjectId.
            QueueStoreError: If the store call fails.
        """
        queue = self.get_queue(queue)
        job_id = coerce_job_id(job_id)
        with self._operation(SPAN_COMPLETE_JOB, queue):
            deleted = self._store.delete_by_id(job_id)

        self._metrics.record_completed(queue, deleted)
        if deleted:
            logger.debug("Completed job", extra={"job_id": str(job_id), "queue": queue})
        else:
            logger.info("Completed job was already deleted", extra={"job_id": str(job_id), "queue": queue})
        return deleted

    def release(self, queue: str | None, job: JobHandle, delay: int = 0) -> bool:
        """
        Give a leased job back so it can be claimed again.

        Only the lease ``job`` was claimed with is dropped. If that lease
        lapsed and another worker has since claimed the job, the newer
        lease stands and nothing changes. The attempt the caller just made
        was already counted by its claim.

        Args:
            queue: Queue the job was claimed from.
            job: The handle returned by claim_next.
            delay: Seconds before the job may be claimed again.

        Returns:
            True if the job was released, False if it no longer exists or
            its lease has passed to another worker.

        Raises:
            ValueError: If ``job`` carries no lease.
            QueueStoreError: If the store call fails.
        """
        queue = self.get_queue(queue)
        if job.reserved_at is None:
            raise ValueError(f"job {job.id} is not leased")
        with self._operation(SPAN_RELEASE_JOB, queue):
            document = self._store.find_and_update(
                {FIELD_ID: job.id, FIELD_RESERVED_AT: job.reserved_at},
                release_update(self.now() + max(0, delay)),
            )

        if document is None:
            logger.info(
                "Released job is gone or leased by another worker",
                extra={"job_id": str(job.id), "queue": queue},
            )
            return False

        self._metrics.record_released(queue)
        logger.debug("Released job", extra={"job_id": str(job.id), "queue": queue, "delay": delay})
        return True

    # ---------- Maintenance ----------

    def reclaim_expired(self, queue: str | None = None) -> int:
        """
        Clear lapsed leases in ``queue`` so those jobs read as available.

        Claims already pick up expired jobs on their own; this sweep only
        resets ``reserved_at`` and counts the lost attempt. Each release
        re-checks the expiry, so a job that a worker re-claimed after the
        scan is left alone.

        Args:
            queue: Queue to sweep. Defaults to the default queue.

        Returns:
            Number of jobs released.

        Raises:
            QueueStoreError: If the scan fails.
            ReclaimIncompleteError: If some releases failed. The others
                are applied and the sweep can simply be run again.
        """
        queue = self.get_queue(queue)
        with self._operation(SPAN_RECLAIM_EXPIRED, queue) as span:
            expiration = self.now() - self.lease_seconds
            expired = self._store.find_many(
                expired_lease_filter(queue, expiration),
                sort=[(FIELD_RESERVED_AT, 1)],
                limit=self.reclaim_batch_size,
            )

            released = 0
            failed_ids = []
            for document in expired:
                job_id = document[FIELD_ID]
                try:
                    if self._store.find_and_update(
                        {FIELD_ID: job_id, FIELD_RESERVED_AT: {"$lt": expiration}},
                        reclaim_update(),
                    ) is not None:
                        released += 1
                except QueueStoreError as e:
                    self._metrics.record_store_error(e.operation, e.retryable)
                    failed_ids.append(job_id)

            span.set_attribute("released", released)
            self._metrics.record_reclaimed(queue, released)

            if released:
                logger.info(
                    f"Reclaimed {released} expired leases",
                    extra={"queue": queue, "job_count": released},
                )
            if failed_ids:
                raise ReclaimIncompleteError(queue, released, failed_ids)

        return released

    # ---------- Inspection ----------

    def size(self, queue: str | None = None) -> int:
        """Number of jobs in ``queue``, leased or not."""
        queue = self.get_queue(queue)
        depth = self._store.count({FIELD_QUEUE: queue})
        self._metrics.update_queue_depth(queue, depth)
        return depth

    def get(self, job_id: ObjectId | str) -> JobHandle | None:
        """Fetch one job, or None if it does not exist."""
        document = self._store.find_one({FIELD_ID: coerce_job_id(job_id)})
        return JobHandle.from_document(document) if document is not None else None
