"""
Prometheus metrics definitions for quest-analytics.

Metrics are organized by category:
- Storage queue metrics: task counts, latency, backlog
- Analytics metrics: aggregate computations served

Exposed through prometheus_client's HTTP server when enabled in main.
"""

import logging
from prometheus_client import Counter, Gauge, Histogram, Info

logger = logging.getLogger(__name__)

# =============================================================================
# Storage Queue Metrics
# =============================================================================

db_queue_tasks_total = Counter(
    "db_queue_tasks_total",
    "Total storage tasks executed through the access queue",
    ["operation", "status"],  # status: success/error
)

db_queue_task_duration_seconds = Histogram(
    "db_queue_task_duration_seconds",
    "Storage task execution time in seconds",
    ["operation"],
    buckets=[0.001, 0.005, 0.01, 0.05, 0.1, 0.5, 1.0, 5.0],
)

db_queue_depth = Gauge(
    "db_queue_depth",
    "Storage tasks waiting for the access queue worker",
)

# =============================================================================
# Analytics Metrics
# =============================================================================

analytics_computations_total = Counter(
    "analytics_computations_total",
    "Derived statistics computed on demand",
    ["kind"],  # kind: achievement_statistics, user_statistics, leaderboard, extended_stats, ...
)

# =============================================================================
# Application Info
# =============================================================================

app_info = Info("quest_analytics_app", "Quest analytics build information")


def init_metrics():
    """
    Initialize metrics with application information.

    Called once at startup.
    """
    import sys
    from quest_analytics import __version__

    app_info.info(
        {
            "version": __version__,
            "python_version": f"{sys.version_info.major}.{sys.version_info.minor}",
        }
    )

    logger.info("Prometheus metrics initialized")
