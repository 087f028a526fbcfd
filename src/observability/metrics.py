"""
Prometheus metrics for monitoring the heart monitor.

Defines and exposes metrics for:
- Observations per source and outcome
- Tiers fired and notification delivery
- Alert-state store size and removals
- Poll and gateway health

Metrics are exposed via HTTP endpoint for Prometheus scraping.
"""

import logging

from prometheus_client import (
    REGISTRY,
    Counter,
    Gauge,
    Histogram,
    start_http_server,
)

from src.config.settings import get_settings
from src.ingestion.schemas import ObservationSource

logger = logging.getLogger(__name__)

# Buckets for latency histograms (in seconds)
LATENCY_BUCKETS = (0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0)


class MetricsCollector:
    """
    Prometheus metrics collector for the heart monitor.

    Usage:
        metrics = get_metrics()
        metrics.start_server()
        metrics.record_observation(ObservationSource.POLL, "fired")
    """

    def __init__(self):
        """Initialize Prometheus metrics."""

        # Observations
        self.observations = Counter(
            "heart_monitor_observations_total",
            "Total heart observations evaluated",
            ["source", "outcome"],  # outcome: fired, no_alert, error
        )

        self.messages_skipped = Counter(
            "heart_monitor_messages_skipped_total",
            "Messages from the watched author without a heart value",
            ["source"],
        )

        # Alerts
        self.tiers_fired = Counter(
            "heart_monitor_tiers_fired_total",
            "Total tier firings",
            ["tier"],
        )

        self.notifications = Counter(
            "heart_monitor_notifications_total",
            "Notification delivery attempts",
            ["audience", "status"],  # status: success, failure
        )

        self.notification_latency = Histogram(
            "heart_monitor_notification_latency_seconds",
            "Time to deliver a notification, including the send gap",
            buckets=LATENCY_BUCKETS,
        )

        # Alert-state store
        self.store_size = Gauge(
            "heart_monitor_alert_state_entries",
            "Number of messages with tracked alert state",
        )

        self.store_removals = Counter(
            "heart_monitor_alert_state_removals_total",
            "Alert state entries removed",
            ["reason"],  # evicted, expired
        )

        # Sources
        self.poll_errors = Counter(
            "heart_monitor_poll_errors_total",
            "REST poll failures",
            ["error_type"],
        )

        self.poll_latency = Histogram(
            "heart_monitor_poll_latency_seconds",
            "Time to fetch one page of channel messages",
            buckets=LATENCY_BUCKETS,
        )

        self.gateway_connected = Gauge(
            "heart_monitor_gateway_connected",
            "Gateway connection status (1=connected, 0=disconnected)",
        )

        logger.info("Prometheus metrics initialized")

    def start_server(self, port: int | None = None) -> None:
        """
        Start Prometheus metrics HTTP server.

        Args:
            port: Port to expose metrics on (default from settings)
        """
        settings = get_settings()
        port = port or settings.metrics_port

        start_http_server(port, registry=REGISTRY)
        logger.info(f"Prometheus metrics server started on port {port}")

    # Convenience methods

    def record_observation(self, source: ObservationSource | str, outcome: str) -> None:
        """
        Record an evaluated observation.

        Args:
            source: Observation source
            outcome: fired, no_alert or error
        """
        source_str = source.value if isinstance(source, ObservationSource) else source
        self.observations.labels(source=source_str, outcome=outcome).inc()

    def record_skipped(self, source: ObservationSource | str) -> None:
        source_str = source.value if isinstance(source, ObservationSource) else source
        self.messages_skipped.labels(source=source_str).inc()

    def record_fired(self, tier: str) -> None:
        self.tiers_fired.labels(tier=tier).inc()

    def record_notification(
        self,
        audience: str,
        success: bool,
        latency: float | None = None,
    ) -> None:
        """
        Record a notification delivery attempt.

        Args:
            audience: Notification target
            success: Whether delivery succeeded
            latency: Optional delivery latency in seconds
        """
        status = "success" if success else "failure"
        self.notifications.labels(audience=audience, status=status).inc()
        if latency is not None:
            self.notification_latency.observe(latency)

    def record_removal(self, reason: str) -> None:
        self.store_removals.labels(reason=reason).inc()

    def set_store_size(self, size: int) -> None:
        self.store_size.set(size)

    def record_poll(self, latency: float) -> None:
        self.poll_latency.observe(latency)

    def record_poll_error(self, error_type: str) -> None:
        self.poll_errors.labels(error_type=error_type).inc()

    def set_gateway_connected(self, connected: bool) -> None:
        self.gateway_connected.set(1 if connected else 0)


# Global metrics instance
_metrics: MetricsCollector | None = None


def get_metrics() -> MetricsCollector:
    """Get global metrics collector instance."""
    global _metrics
    if _metrics is None:
        _metrics = MetricsCollector()
    return _metrics
