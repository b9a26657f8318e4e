"""
Metrics instrumentation for observability.
Exposes Prometheus-compatible metrics at /metrics endpoint.
"""

from prometheus_client import Counter, generate_latest, CONTENT_TYPE_LATEST
from fastapi import Response

# Participation request ledger
request_operations = Counter(
    'participation_request_operations_total',
    'Participation request ledger operations',
    ['operation', 'result']  # create/cancel/moderate, success/conflict/not_found
)

# Capacity accounting
capacity_version_conflicts = Counter(
    'capacity_version_conflicts_total',
    'Optimistic lock conflicts on the event confirmed-request counter'
)

capacity_reconciliations = Counter(
    'capacity_reconciliations_total',
    'Counter reconciliation runs',
    ['corrected']  # true, false
)

# Statistics
stats_client_errors = Counter(
    'stats_client_errors_total',
    'Failed calls from the main service to the stats server',
    ['operation']  # hit, stats
)

hits_recorded = Counter(
    'stats_hits_recorded_total',
    'Endpoint hits appended by the stats server',
    ['app']
)


def metrics_endpoint() -> Response:
    """
    Prometheus metrics endpoint.

    Usage:
        @app.get("/metrics")
        def metrics():
            return metrics_endpoint()
    """
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )


def record_request_operation(operation: str, result: str):
    """Record ledger operation. Result: success, conflict, not_found"""
    request_operations.labels(operation=operation, result=result).inc()


def record_reconciliation(corrected: bool):
    capacity_reconciliations.labels(corrected=str(corrected).lower()).inc()


def record_stats_client_error(operation: str):
    stats_client_errors.labels(operation=operation).inc()
