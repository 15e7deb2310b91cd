"""
Prometheus metrics configuration
"""
import os

from prometheus_client import (CONTENT_TYPE_LATEST, CollectorRegistry,
                               Counter, Gauge, Histogram, Info,
                               generate_latest)
from prometheus_client.multiprocess import MultiProcessCollector
from prometheus_client.registry import REGISTRY

from quimica.core.config import get_settings

# ============================================================================
# HTTP Request Metrics
# ============================================================================

http_requests_total = Counter(
    'http_requests_total',
    'Total number of HTTP requests',
    ['method', 'endpoint', 'status_code']
)

http_request_duration_seconds = Histogram(
    'http_request_duration_seconds',
    'HTTP request duration in seconds',
    ['method', 'endpoint', 'status_code'],
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0)
)

http_errors_total = Counter(
    'http_errors_total',
    'Total number of HTTP errors',
    ['method', 'endpoint', 'status_code', 'error_type']
)

# ============================================================================
# Database Metrics
# ============================================================================

db_queries_total = Counter(
    'db_queries_total',
    'Total number of database queries',
    ['operation', 'table']  # operation: 'select', 'insert', 'update', 'delete'
)

db_query_duration_seconds = Histogram(
    'db_query_duration_seconds',
    'Database query duration in seconds',
    ['operation', 'table'],
    buckets=(0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5)
)

db_connection_pool_size = Gauge(
    'db_connection_pool_size',
    'Database connection pool size',
    ['state']  # state: 'active', 'idle'
)

db_connection_pool_overflow = Gauge(
    'db_connection_pool_overflow',
    'Database connection pool overflow count',
    []
)

# ============================================================================
# Learning Metrics
# ============================================================================

quiz_attempts_started_total = Counter(
    'quiz_attempts_started_total',
    'Total number of quiz attempts started',
    []
)

quiz_submissions_total = Counter(
    'quiz_submissions_total',
    'Total number of quiz submissions',
    ['outcome', 'trigger']  # outcome: 'passed', 'failed'; trigger: 'manual', 'timeout'
)

quiz_score_percent = Histogram(
    'quiz_score_percent',
    'Distribution of quiz scores (percentage)',
    [],
    buckets=(10, 20, 30, 40, 50, 60, 70, 80, 90, 100)
)

active_sessions = Gauge(
    'active_sessions',
    'Login sessions that have not expired',
    []
)

quiz_attempts_in_progress = Gauge(
    'quiz_attempts_in_progress',
    'Quiz attempts started but not submitted',
    []
)

# ============================================================================
# 3D Generation Proxy Metrics
# ============================================================================

generation_requests_total = Counter(
    'generation_requests_total',
    'Total number of calls to 3D generation providers',
    ['provider', 'operation', 'status']  # status: 'success', 'upstream_error', 'error'
)

generation_request_duration_seconds = Histogram(
    'generation_request_duration_seconds',
    'Duration of calls to 3D generation providers in seconds',
    ['provider', 'operation'],
    buckets=(0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0)
)

# ============================================================================
# System Info
# ============================================================================

app_info = Info(
    'app_info',
    'Application information'
)

_settings = get_settings()
app_info.info({
    'app_name': _settings.app_name,
    'app_env': _settings.app_env,
    'version': '0.1.0'
})

# ============================================================================
# Helper Functions
# ============================================================================

def _collector_registry():
    """Registry to expose; aggregates worker files in multiprocess mode"""
    if os.environ.get('PROMETHEUS_MULTIPROC_DIR'):
        registry = CollectorRegistry()
        MultiProcessCollector(registry)
        return registry
    return REGISTRY


def get_metrics():
    """
    Get Prometheus metrics in text format

    Returns:
        bytes: Metrics in Prometheus text format
    """
    return generate_latest(_collector_registry())


def get_metrics_content_type():
    """
    Get content type for Prometheus metrics

    Returns:
        str: Content type for metrics endpoint
    """
    return CONTENT_TYPE_LATEST
