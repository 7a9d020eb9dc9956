"""Prometheus metrics for queue drains."""

from prometheus_client import Counter, Gauge, Histogram

sync_items_total = Counter(
    "sync_items_total",
    "Total queued mutations handled by the sync processor",
    ["action", "outcome"],
)

sync_drain_latency_ms = Histogram(
    "sync_drain_latency_ms",
    "Queue drain latency in milliseconds",
    buckets=[10, 50, 100, 250, 500, 1000, 2500, 5000, 10000],
)

sync_queue_depth = Gauge(
    "sync_queue_depth",
    "Mutations left in the queue after the last drain",
)


class SyncMetrics:
    """Interface for sync metrics."""

    def inc_item(self, action: str, outcome: str) -> None:
        """Count one handled queue item."""
        pass

    def record_drain(self, latency_ms: float, queue_depth: int) -> None:
        """Record one drain."""
        pass


class PrometheusSyncMetrics(SyncMetrics):
    """Prometheus-based sync metrics implementation."""

    def inc_item(self, action: str, outcome: str) -> None:
        """Increment item counter."""
        sync_items_total.labels(action=action, outcome=outcome).inc()

    def record_drain(self, latency_ms: float, queue_depth: int) -> None:
        """Observe drain latency and remaining depth."""
        sync_drain_latency_ms.observe(latency_ms)
        sync_queue_depth.set(queue_depth)
