"""
Shared metrics configuration for the Quake Proxy.
"""

from typing import Any, Dict, Optional

from prometheus_client import CollectorRegistry, Counter, Histogram, Info


class MetricsCollector:
    """Centralized metrics collector for services."""

    def __init__(self, service_name: str, registry: Optional[CollectorRegistry] = None):
        self.service_name = service_name
        # Each collector owns its registry so several apps can coexist in one process
        self.registry = registry if registry is not None else CollectorRegistry()
        self._metrics: Dict[str, Any] = {}
        self._setup_metrics()

    def _setup_metrics(self):
        """Set up common metrics for the service."""

        # Service info
        self._metrics["service_info"] = Info(
            "service_info",
            "Service information",
            registry=self.registry
        )
        self._metrics["service_info"].info({
            "service": self.service_name,
            "version": "1.0.0"
        })

        # HTTP metrics
        self._metrics["http_requests_total"] = Counter(
            "http_requests_total",
            "Total HTTP requests",
            ["method", "endpoint", "status_code"],
            registry=self.registry
        )

        self._metrics["http_request_duration_seconds"] = Histogram(
            "http_request_duration_seconds",
            "HTTP request duration in seconds",
            ["method", "endpoint"],
            registry=self.registry
        )

        # Health check metrics
        self._metrics["health_check_total"] = Counter(
            "health_check_total",
            "Total health check requests",
            ["status"],
            registry=self.registry
        )

        # Error metrics
        self._metrics["errors_total"] = Counter(
            "errors_total",
            "Total errors",
            ["error_type", "service"],
            registry=self.registry
        )

        self._setup_proxy_metrics()

    def _setup_proxy_metrics(self):
        """Set up rate limiter, cache and upstream metrics."""
        self._metrics["rate_limit_decisions_total"] = Counter(
            "rate_limit_decisions_total",
            "Rate limiter decisions",
            ["decision"],
            registry=self.registry
        )

        self._metrics["cache_lookups_total"] = Counter(
            "cache_lookups_total",
            "Read-through cache lookups",
            ["kind", "result"],
            registry=self.registry
        )

        self._metrics["upstream_requests_total"] = Counter(
            "upstream_requests_total",
            "Requests sent to the upstream event source",
            ["kind", "outcome"],
            registry=self.registry
        )

        self._metrics["upstream_request_duration_seconds"] = Histogram(
            "upstream_request_duration_seconds",
            "Upstream request duration in seconds",
            ["kind"],
            registry=self.registry
        )

        self._metrics["store_errors_total"] = Counter(
            "store_errors_total",
            "Key-value store failures absorbed by the proxy",
            ["operation"],
            registry=self.registry
        )

    def get_metric(self, name: str):
        """Get a metric by name."""
        return self._metrics.get(name)

    def record_http_request(self, method: str, endpoint: str, status_code: int, duration: float):
        """Record HTTP request metrics."""
        self._metrics["http_requests_total"].labels(
            method=method,
            endpoint=endpoint,
            status_code=str(status_code)
        ).inc()

        self._metrics["http_request_duration_seconds"].labels(
            method=method,
            endpoint=endpoint
        ).observe(duration)

    def record_health_check(self, status: str):
        """Record health check metrics."""
        self._metrics["health_check_total"].labels(status=status).inc()

    def record_error(self, error_type: str, service: Optional[str] = None):
        """Record error metrics."""
        service_name = service or self.service_name
        self._metrics["errors_total"].labels(error_type=error_type, service=service_name).inc()

    def increment_counter(self, metric_name: str, **labels):
        """Increment a counter metric."""
        if metric_name in self._metrics:
            self._metrics[metric_name].labels(**labels).inc()

    def observe_histogram(self, metric_name: str, value: float, **labels):
        """Observe a histogram metric."""
        if metric_name in self._metrics:
            self._metrics[metric_name].labels(**labels).observe(value)

    def sample_value(self, metric_name: str, **labels) -> Optional[float]:
        """Read back the current value of a sample from this collector's registry."""
        return self.registry.get_sample_value(metric_name, labels)


def get_metrics_collector(service_name: str, registry: Optional[CollectorRegistry] = None) -> MetricsCollector:
    """Get a metrics collector for a service."""
    return MetricsCollector(service_name, registry)
