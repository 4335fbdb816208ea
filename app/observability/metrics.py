"""
Metrics Collection with Prometheus.

Exposes verification and system metrics for monitoring.
"""

from enum import Enum

from prometheus_client import Counter, Gauge, Histogram, Info

from app.config import settings


class MetricLabels(str, Enum):
    """Standard metric label names."""

    ENDPOINT = "endpoint"
    METHOD = "method"
    STATUS_CODE = "status_code"
    OPERATION = "operation"
    OUTCOME = "outcome"
    ERROR_TYPE = "error_type"
    SETTING = "setting"


class EntitlementMetrics:
    """
    Centralized metrics for the entitlement API.

    Covers:
    - HTTP requests (rate, duration, errors)
    - Verifications (outcome: entitled, not_entitled, or error type)
    - Upstream fetches and profile writes (duration, success)
    - Configuration faults, kept apart from verification failures
    """

    def __init__(self) -> None:
        """Initialize all Prometheus metrics."""

        # ====================================================================
        # Service Info
        # ====================================================================
        self.service_info = Info(
            "entitlement_service",
            "Service information",
        )
        self.service_info.info(
            {
                "version": settings.api_version,
                "service_name": settings.service_name,
                "play_api_version": settings.play_api_version,
            }
        )

        # ====================================================================
        # HTTP Metrics
        # ====================================================================
        self.http_requests_total = Counter(
            "entitlement_http_requests_total",
            "Total HTTP requests",
            [MetricLabels.ENDPOINT, MetricLabels.METHOD, MetricLabels.STATUS_CODE],
        )

        self.http_request_duration_seconds = Histogram(
            "entitlement_http_request_duration_seconds",
            "HTTP request duration in seconds",
            [MetricLabels.ENDPOINT, MetricLabels.METHOD],
            buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
        )

        self.http_requests_in_progress = Gauge(
            "entitlement_http_requests_in_progress",
            "Number of HTTP requests currently being processed",
            [MetricLabels.ENDPOINT, MetricLabels.METHOD],
        )

        # ====================================================================
        # Verification Metrics
        # ====================================================================
        self.verifications_total = Counter(
            "entitlement_verifications_total",
            "Total verifications by outcome",
            [MetricLabels.OUTCOME],
        )

        self.upstream_fetch_duration_seconds = Histogram(
            "entitlement_upstream_fetch_duration_seconds",
            "Subscription authority fetch duration in seconds",
            ["success"],
            buckets=(0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0),
        )

        self.profile_writes_total = Counter(
            "entitlement_profile_writes_total",
            "Total profile store entitlement writes",
            ["entitled", "success"],
        )

        # ====================================================================
        # Error Metrics
        # ====================================================================
        self.errors_total = Counter(
            "entitlement_errors_total",
            "Total errors by type",
            [MetricLabels.ERROR_TYPE, MetricLabels.OPERATION],
        )

        self.configuration_faults_total = Counter(
            "entitlement_configuration_faults_total",
            "Missing or unparsable credentials detected",
            [MetricLabels.SETTING],
        )

    # ========================================================================
    # Helper Methods
    # ========================================================================

    def record_http_request(
        self, endpoint: str, method: str, status_code: int, duration: float
    ) -> None:
        """Record HTTP request metrics."""
        self.http_requests_total.labels(
            endpoint=endpoint, method=method, status_code=status_code
        ).inc()
        self.http_request_duration_seconds.labels(endpoint=endpoint, method=method).observe(
            duration
        )

    def record_verification(self, outcome: str) -> None:
        """Record a verification outcome."""
        self.verifications_total.labels(outcome=outcome).inc()

    def record_upstream_fetch(self, success: bool, duration: float) -> None:
        """Record subscription authority fetch metrics."""
        self.upstream_fetch_duration_seconds.labels(success=str(success)).observe(duration)

    def record_profile_write(self, entitled: bool, success: bool) -> None:
        """Record profile store write metrics."""
        self.profile_writes_total.labels(entitled=str(entitled), success=str(success)).inc()

    def record_error(self, error_type: str, operation: str) -> None:
        """Record error occurrence."""
        self.errors_total.labels(error_type=error_type, operation=operation).inc()

    def record_configuration_fault(self, setting: str) -> None:
        """Record a configuration fault."""
        self.configuration_faults_total.labels(setting=setting).inc()


# Global metrics instance
metrics = EntitlementMetrics()
