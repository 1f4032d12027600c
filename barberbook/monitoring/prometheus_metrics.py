"""
Prometheus metrics for Barberbook.

Service timings are fed by ``@BaseService.measure_operation``; the booking
and subscription counters are incremented by their services. Everything is
registered on a private registry exposed at ``/metrics/prometheus``.
"""

from typing import Optional, cast

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
)

# Custom registry so repeated app/test imports don't collide with the default one
REGISTRY = CollectorRegistry()

service_operation_duration_seconds = Histogram(
    "barberbook_service_operation_duration_seconds",
    "Service operation duration in seconds",
    ["service", "operation"],
    registry=REGISTRY,
    buckets=(0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5),
)

service_operations_total = Counter(
    "barberbook_service_operations_total",
    "Total number of service operations",
    ["service", "operation", "status"],
    registry=REGISTRY,
)

errors_total = Counter(
    "barberbook_errors_total",
    "Total number of errors",
    ["service", "operation", "error_type"],
    registry=REGISTRY,
)

booking_attempts_total = Counter(
    "barberbook_booking_attempts_total",
    "Booking creation attempts by outcome",
    ["outcome"],  # created | conflict
    registry=REGISTRY,
)

booking_transitions_total = Counter(
    "barberbook_booking_transitions_total",
    "Booking status transitions applied",
    ["from_status", "to_status"],
    registry=REGISTRY,
)

subscription_events_total = Counter(
    "barberbook_subscription_events_total",
    "Subscription gateway events by type and outcome",
    ["event_type", "outcome"],
    registry=REGISTRY,
)


class PrometheusMetrics:
    """Records service and domain metrics and renders the exposition payload."""

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
            service: Service name (e.g., 'BookingService')
            operation: Operation name (e.g., 'create_booking')
            duration: Operation duration in seconds
            status: 'success' or 'error'
            error_type: Exception class name when status is 'error'
        """
        service_operation_duration_seconds.labels(service=service, operation=operation).observe(
            duration
        )
        service_operations_total.labels(service=service, operation=operation, status=status).inc()
        if status == "error" and error_type:
            errors_total.labels(service=service, operation=operation, error_type=error_type).inc()

    @staticmethod
    def inc_booking_attempt(outcome: str) -> None:
        booking_attempts_total.labels(outcome=outcome).inc()

    @staticmethod
    def inc_booking_transition(from_status: str, to_status: str) -> None:
        booking_transitions_total.labels(from_status=from_status, to_status=to_status).inc()

    @staticmethod
    def inc_subscription_event(event_type: str, outcome: str) -> None:
        subscription_events_total.labels(event_type=event_type, outcome=outcome).inc()

    @staticmethod
    def get_metrics() -> bytes:
        """Generate Prometheus metrics in exposition format."""
        return cast(bytes, generate_latest(REGISTRY))

    @staticmethod
    def get_content_type() -> str:
        return cast(str, CONTENT_TYPE_LATEST)


# Singleton instance
prometheus_metrics = PrometheusMetrics()
