"""
Prometheus metrics for the discovery engine.

Service timings come from the @measure_operation decorator; the domain
counters below track fallback serving, geocode cache efficiency, the
listing store circuit and search events that could not be recorded.
"""

from threading import Lock
from time import monotonic
from typing import Optional, cast

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)

# Custom registry so tests can import the app repeatedly without duplicate series
REGISTRY = CollectorRegistry()

service_operation_duration_seconds = Histogram(
    "discovery_service_operation_duration_seconds",
    "Service operation duration in seconds",
    ["service", "operation"],
    registry=REGISTRY,
    buckets=(0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5),
)

service_operations_total = Counter(
    "discovery_service_operations_total",
    "Total number of service operations",
    ["service", "operation", "status"],
    registry=REGISTRY,
)

errors_total = Counter(
    "discovery_errors_total",
    "Total number of errors",
    ["service", "operation", "error_type"],
    registry=REGISTRY,
)

fallback_served_total = Counter(
    "discovery_fallback_served_total",
    "Reads answered from the bundled sample dataset",
    ["operation", "reason"],  # reason: failure | empty
    registry=REGISTRY,
)

geocode_cache_requests_total = Counter(
    "discovery_geocode_cache_requests_total",
    "Geocode cache lookups by cache and outcome",
    ["cache", "outcome"],  # cache: forward | reverse; outcome: hit | miss
    registry=REGISTRY,
)

store_circuit_state = Gauge(
    "discovery_store_circuit_state",
    "Listing store circuit state (0=closed, 1=half_open, 2=open)",
    registry=REGISTRY,
)

discovery_sections_failed_total = Counter(
    "discovery_sections_failed_total",
    "Discovery sections omitted because their query failed",
    ["section"],
    registry=REGISTRY,
)

search_events_dropped_total = Counter(
    "discovery_search_events_dropped_total",
    "Search events not recorded because the analytics store failed",
    registry=REGISTRY,
)

_CIRCUIT_STATE_VALUES = {"closed": 0, "half_open": 1, "open": 2}


class PrometheusMetrics:
    """Manages Prometheus metrics collection and exposure."""

    _cache_lock: Lock = Lock()
    _cache_payload: Optional[bytes] = None
    _cache_ts: Optional[float] = None
    _cache_ttl_seconds: float = 1.0

    @staticmethod
    def record_service_operation(
        service: str,
        operation: str,
        duration: float,
        status: str = "success",
        error_type: Optional[str] = None,
    ) -> None:
        """
        Record service operation metrics from @measure_operation decorator.

        Args:
            service: Service name (e.g., 'SearchQueryEngine')
            operation: Operation/method name (e.g., 'search')
            duration: Operation duration in seconds
            status: Operation status ('success' or 'error')
            error_type: Type of error if status is 'error'
        """
        service_operation_duration_seconds.labels(service=service, operation=operation).observe(
            duration
        )
        service_operations_total.labels(service=service, operation=operation, status=status).inc()

        if status == "error" and error_type:
            errors_total.labels(service=service, operation=operation, error_type=error_type).inc()
        PrometheusMetrics._invalidate_cache()

    @staticmethod
    def inc_fallback_served(operation: str, reason: str) -> None:
        fallback_served_total.labels(operation=operation, reason=reason).inc()
        PrometheusMetrics._invalidate_cache()

    @staticmethod
    def record_geocode_cache(cache: str, hit: bool) -> None:
        geocode_cache_requests_total.labels(cache=cache, outcome="hit" if hit else "miss").inc()
        PrometheusMetrics._invalidate_cache()

    @staticmethod
    def set_store_circuit_state(state: str) -> None:
        store_circuit_state.set(_CIRCUIT_STATE_VALUES.get(state, 0))
        PrometheusMetrics._invalidate_cache()

    @staticmethod
    def inc_section_failed(section: str) -> None:
        discovery_sections_failed_total.labels(section=section).inc()
        PrometheusMetrics._invalidate_cache()

    @staticmethod
    def inc_search_event_dropped() -> None:
        search_events_dropped_total.inc()
        PrometheusMetrics._invalidate_cache()

    @staticmethod
    def get_metrics() -> bytes:
        """
        Generate Prometheus metrics in exposition format.

        Returns:
            Metrics data in Prometheus text format
        """
        now = monotonic()
        payload = PrometheusMetrics._cache_payload
        ts = PrometheusMetrics._cache_ts

        if payload is not None and ts is not None and (now - ts) <= PrometheusMetrics._cache_ttl_seconds:
            return payload

        with PrometheusMetrics._cache_lock:
            PrometheusMetrics._cache_payload = cast(bytes, generate_latest(REGISTRY))
            PrometheusMetrics._cache_ts = monotonic()
            return PrometheusMetrics._cache_payload

    @staticmethod
    def get_content_type() -> str:
        """Get the content type for Prometheus metrics."""
        return cast(str, CONTENT_TYPE_LATEST)

    @staticmethod
    def _invalidate_cache() -> None:
        with PrometheusMetrics._cache_lock:
            PrometheusMetrics._cache_ts = None
            PrometheusMetrics._cache_payload = None


# Singleton instance
prometheus_metrics = PrometheusMetrics()
