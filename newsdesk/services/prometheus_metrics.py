"""
Prometheus Metrics Service

Provides instrumentation for the pipeline console:
- Counters for gateway calls, view fetches and remediation actions
- Gauges for the last reconciled queue state
- Histograms for gateway latency
"""

from prometheus_client import Counter, Gauge, Histogram, Info
from typing import Optional
from newsdesk.core.logging_config import get_logger

logger = get_logger(__name__)


class PrometheusMetricsService:
    """
    Centralized Prometheus metrics for Newsdesk.

    Tracks gateway traffic, reconciliation fetches, actions and queue state.
    """

    def __init__(self):
        # ===== COUNTERS (cumulative) =====

        self.gateway_calls_total = Counter(
            'newsdesk_gateway_calls_total',
            'Total number of Remote Data Gateway calls',
            ['kind', 'status']  # kind: query, function; status: success, failure, timeout
        )

        self.view_fetches_total = Counter(
            'newsdesk_view_fetches_total',
            'Total number of reconciliation view fetches',
            ['view', 'status']
        )

        self.actions_total = Counter(
            'newsdesk_actions_total',
            'Total number of remediation actions dispatched',
            ['action', 'status']  # status: success, failure, skipped
        )

        self.stale_responses_total = Counter(
            'newsdesk_stale_responses_total',
            'Refresh responses discarded because a newer one was already applied'
        )

        # ===== GAUGES (current value) =====

        self.queue_depth = Gauge(
            'newsdesk_queue_depth',
            'Active queue rows in the last applied snapshot'
        )

        self.stuck_items = Gauge(
            'newsdesk_stuck_items',
            'Stuck queue rows in the last applied snapshot'
        )

        self.pending_articles = Gauge(
            'newsdesk_pending_articles',
            'Articles awaiting approval in the last applied snapshot'
        )

        # ===== HISTOGRAMS (distributions) =====

        self.gateway_request_duration = Histogram(
            'newsdesk_gateway_request_duration_seconds',
            'Time taken for Remote Data Gateway requests',
            ['kind'],
            buckets=[0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0, 15.0]
        )

        # ===== INFO (static metadata) =====

        self.build_info = Info(
            'newsdesk_build',
            'Build information for Newsdesk'
        )

        logger.info("PrometheusMetricsService initialized with all metrics")

    # ===== HELPER METHODS =====

    def record_gateway_call(self, kind: str, status: str, duration_seconds: Optional[float] = None):
        """
        Record a gateway call.

        Args:
            kind: query or function
            status: success, failure, or timeout
            duration_seconds: Request latency, if measured
        """
        self.gateway_calls_total.labels(kind=kind, status=status).inc()
        if duration_seconds is not None:
            self.gateway_request_duration.labels(kind=kind).observe(duration_seconds)

    def record_view_fetch(self, view: str, status: str):
        self.view_fetches_total.labels(view=view, status=status).inc()

    def record_action(self, action: str, status: str):
        self.actions_total.labels(action=action, status=status).inc()

    def record_stale_response(self):
        self.stale_responses_total.inc()

    def update_queue_metrics(self, depth: int, stuck: int, pending_articles: int):
        """
        Update queue-related gauges from an applied snapshot.

        Args:
            depth: Number of active queue rows shown
            stuck: How many of those are stuck
            pending_articles: Articles awaiting approval
        """
        self.queue_depth.set(depth)
        self.stuck_items.set(stuck)
        self.pending_articles.set(pending_articles)

    def set_build_info(self, version: str, commit: str = ""):
        self.build_info.info({
            'version': version,
            'commit': commit
        })


_metrics_service: Optional[PrometheusMetricsService] = None


def get_metrics() -> PrometheusMetricsService:
    """Get or create singleton metrics service"""
    global _metrics_service
    if _metrics_service is None:
        _metrics_service = PrometheusMetricsService()
    return _metrics_service
