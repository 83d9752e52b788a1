import logging
from typing import Optional

from prometheus_client import Counter, Gauge, Histogram, Info, generate_latest
from prometheus_client.core import CollectorRegistry

logger = logging.getLogger(__name__)

# Prometheus Registry
REGISTRY = CollectorRegistry()

# Service method metrics
service_requests_total = Counter(
    'fleet_service_requests_total',
    'Total service method calls',
    ['status', 'service', 'method'],
    registry=REGISTRY
)

service_duration_seconds = Histogram(
    'fleet_service_duration_seconds',
    'Service method duration in seconds',
    ['service', 'method'],
    buckets=[0.01, 0.05, 0.1, 0.5, 1.0, 2.0, 5.0, 10.0],
    registry=REGISTRY
)

# Business Metrics
maintenance_registrations_total = Counter(
    'fleet_maintenance_registrations_total',
    'Maintenance submissions by kind and outcome',
    ['kind', 'outcome'],
    registry=REGISTRY
)

chat_requests_total = Counter(
    'fleet_chat_requests_total',
    'Chat relay requests by outcome',
    ['outcome'],
    registry=REGISTRY
)

active_alerts_gauge = Gauge(
    'fleet_active_alerts',
    'Maintenance alerts produced by the latest notification scan',
    ['kind'],
    registry=REGISTRY
)

system_info = Info(
    'fleet_manager_info',
    'System information',
    registry=REGISTRY
)


class PrometheusMetricsCollector:
    """Thin facade over the fleet Prometheus registry."""

    def __init__(self, environment: str = "development"):
        system_info.info({
            'version': '1.0.0',
            'environment': environment,
            'service': 'fleet-manager'
        })

    def record_service_call(
        self,
        service_name: str,
        method_name: str,
        duration_seconds: float,
        success: bool,
    ):
        status = 'success' if success else 'error'
        service_requests_total.labels(
            status=status,
            service=service_name,
            method=method_name
        ).inc()
        service_duration_seconds.labels(
            service=service_name,
            method=method_name
        ).observe(duration_seconds)

    def record_maintenance_registration(self, kind: str, outcome: str):
        """kind: completed | scheduled; outcome: created | confirmation_required | rejected | error"""
        maintenance_registrations_total.labels(kind=kind, outcome=outcome).inc()

    def record_chat_request(self, outcome: str, error: Optional[str] = None):
        chat_requests_total.labels(outcome=outcome).inc()
        if error:
            logger.warning("Chat relay request failed", extra={"outcome": outcome, "error": error})

    def update_active_alerts(self, date_alerts: int, km_alerts: int):
        active_alerts_gauge.labels(kind="date").set(date_alerts)
        active_alerts_gauge.labels(kind="km").set(km_alerts)

    def get_prometheus_metrics(self) -> bytes:
        """Get Prometheus metrics in text format"""
        return generate_latest(REGISTRY)


# Global instance
prometheus_collector = PrometheusMetricsCollector()
