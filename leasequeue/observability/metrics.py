"""
Prometheus metrics collection.
"""

from prometheus_client import (
    REGISTRY,
    CollectorRegistry,
    Counter,
    Gauge,
    start_http_server,
)

from leasequeue.constants import (
    METRIC_CLAIM_EMPTY,
    METRIC_JOBS_CLAIMED,
    METRIC_JOBS_COMPLETED,
    METRIC_JOBS_PUSHED,
    METRIC_JOBS_RELEASED,
    METRIC_LEASES_RECLAIMED,
    METRIC_QUEUE_DEPTH,
    METRIC_STORE_ERRORS,
)

# Global metrics instance
_metrics: "MetricsCollector | None" = None


class MetricsCollector:
    """
    Prometheus metrics collector for the lease queue.

    Collects metrics for:
    - Queue depth
    - Pushes, claims, empty polls, completions and releases
    - Expired leases reclaimed by the sweep
    - Store errors by operation
    """

    def __init__(self, registry: CollectorRegistry | None = None):
        """
        Initialize the metrics collector.

        Args:
            registry: Optional custom registry. Uses default if not provided.
        """
        self._registry = registry or REGISTRY

        self.queue_depth = Gauge(
            METRIC_QUEUE_DEPTH,
            "Number of jobs in the queue",
            ["queue"],
            registry=self._registry,
        )

        self.jobs_pushed = Counter(
            METRIC_JOBS_PUSHED,
            "Total number of jobs pushed",
            ["queue"],
            registry=self._registry,
        )

        self.jobs_claimed = Counter(
            METRIC_JOBS_CLAIMED,
            "Total number of jobs claimed",
            ["queue"],
            registry=self._registry,
        )

        self.claim_empty = Counter(
            METRIC_CLAIM_EMPTY,
            "Total number of claims that found no eligible job",
            ["queue"],
            registry=self._registry,
        )

        # deleted=false counts completions of jobs that were already gone
        self.jobs_completed = Counter(
            METRIC_JOBS_COMPLETED,
            "Total number of completion calls",
            ["queue", "deleted"],
            registry=self._registry,
        )

        self.jobs_released = Counter(
            METRIC_JOBS_RELEASED,
            "Total number of jobs released by workers",
            ["queue"],
            registry=self._registry,
        )

        self.leases_reclaimed = Counter(
            METRIC_LEASES_RECLAIMED,
            "Total number of expired leases reclaimed",
            ["queue"],
            registry=self._registry,
        )

        self.store_errors = Counter(
            METRIC_STORE_ERRORS,
            "Total number of failed store calls",
            ["operation", "retryable"],
            registry=self._registry,
        )

    def record_pushed(self, queue: str, count: int = 1) -> None:
        """Record job submissions."""
        self.jobs_pushed.labels(queue=queue).inc(count)

    def record_claim(self, queue: str, claimed: bool) -> None:
        """Record a claim attempt."""
        if claimed:
            self.jobs_claimed.labels(queue=queue).inc()
        else:
            self.claim_empty.labels(queue=queue).inc()

    def record_completed(self, queue: str, deleted: bool) -> None:
        """Record a completion call."""
        self.jobs_completed.labels(queue=queue, deleted=str(deleted).lower()).inc()

    def record_released(self, queue: str) -> None:
        self.jobs_released.labels(queue=queue).inc()

    def record_reclaimed(self, queue: str, count: int) -> None:
        """Record leases reclaimed by a sweep."""
        if count > 0:
            self.leases_reclaimed.labels(queue=queue).inc(count)

    def record_store_error(self, operation: str, retryable: bool) -> None:
        self.store_errors.labels(operation=operation, retryable=str(retryable).lower()).inc()

    def update_queue_depth(self, queue: str, depth: int) -> None:
        """Update queue depth for a queue."""
        self.queue_depth.labels(queue=queue).set(depth)


def setup_metrics() -> MetricsCollector:
    """
    Set up and return the metrics collector.

    Returns:
        MetricsCollector: The metrics collector instance.
    """
    global _metrics
    if _metrics is None:
        _metrics = MetricsCollector()
    return _metrics


def get_metrics() -> MetricsCollector:
    """
    Get the metrics collector instance, creating it on first use.

    Returns:
        MetricsCollector: The metrics collector instance.
    """
    if _metrics is None:
        return setup_metrics()
    return _metrics


def start_metrics_server(port: int) -> None:
    """Serve the default registry over HTTP for Prometheus to scrape."""
    start_http_server(port)
