"""Prometheus metrics for the accelerator monitor."""

from __future__ import annotations

from prometheus_client import REGISTRY, CollectorRegistry, Counter, Gauge, Info, start_http_server


class MetricsRegistry:
    """Accelerator monitor metrics."""

    def __init__(self, registry: CollectorRegistry | None = None) -> None:
        self._registry = registry or REGISTRY

        self.devices_discovered = Gauge("accel_devices_discovered", "Accelerators found by the last enumeration", registry=self._registry)
        self.unhealthy_notifications = Counter("accel_unhealthy_notifications_total", "Devices reported unhealthy", ["reason"], registry=self._registry)
        self.wait_for_event = Counter("accel_wait_for_event_total", "Health event polls by outcome", ["outcome"], registry=self._registry)
        self.watcher_running = Gauge("accel_watcher_running", "1 while the health watcher is running", registry=self._registry)

        self.info = Info("accel_monitor", "Accelerator monitor info", registry=self._registry)

    @property
    def registry(self) -> CollectorRegistry:
        return self._registry

    def record_unhealthy(self, reason: str, count: int = 1) -> None:
        self.unhealthy_notifications.labels(reason=reason).inc(count)

    def record_poll(self, outcome: str) -> None:
        self.wait_for_event.labels(outcome=outcome).inc()


_metrics: MetricsRegistry | None = None


def setup_metrics(port: int = 8005, registry: CollectorRegistry | None = None) -> MetricsRegistry:
    """Start the Prometheus HTTP exporter and return the metrics it serves."""
    global _metrics
    if registry is None:
        metrics = get_metrics()
    else:
        metrics = _metrics = MetricsRegistry(registry)
    start_http_server(port, registry=metrics.registry)
    return metrics


def get_metrics() -> MetricsRegistry:
    global _metrics
    if _metrics is None:
        _metrics = MetricsRegistry()
    return _metrics
