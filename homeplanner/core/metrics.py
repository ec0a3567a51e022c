from prometheus_client import Counter, Histogram, Gauge, Info, REGISTRY, generate_latest
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
import time
from homeplanner.core.config import settings

# System Info
system_info = Info("homeplanner_app", "Application information")
system_info.info({
    "version": settings.VERSION,
    "environment": settings.ENVIRONMENT
})

HTTP_REQUESTS_TOTAL = Counter(
    'http_requests_total',
    'Total HTTP requests',
    ['method', 'path', 'status']
)

HTTP_REQUEST_DURATION = Histogram(
    'http_request_duration_seconds',
    'HTTP request duration in seconds',
    ['method', 'path']
)

HTTP_REQUESTS_IN_PROGRESS = Gauge(
    'http_requests_in_progress',
    'Number of HTTP requests in progress',
    ['method', 'path']
)

# Scheduling engine
SCHEDULING_OPERATIONS_TOTAL = Counter(
    'scheduling_operations_total',
    'Scheduling engine operations by outcome',
    ['operation', 'outcome']  # outcome: ok or the error type
)

SCHEDULING_CONFLICTS_TOTAL = Counter(
    'scheduling_conflicts_total',
    'Conflicting blocker events detected',
    ['event_type']
)

AUDIT_LOG_FAILURES_TOTAL = Counter(
    'audit_log_failures_total',
    'Audit log entries that could not be written',
    ['action']
)

class MetricsMiddleware(BaseHTTPMiddleware):
    """Middleware for collecting request metrics."""

    async def dispatch(self, request: Request, call_next) -> Response:
        start_time = time.time()

        HTTP_REQUESTS_IN_PROGRESS.labels(
            method=request.method,
            path=request.url.path
        ).inc()

        try:
            response = await call_next(request)

            HTTP_REQUEST_DURATION.labels(
                method=request.method,
                path=request.url.path
            ).observe(time.time() - start_time)

            HTTP_REQUESTS_TOTAL.labels(
                method=request.method,
                path=request.url.path,
                status=str(response.status_code)
            ).inc()

            return response
        except Exception:
            HTTP_REQUESTS_TOTAL.labels(
                method=request.method,
                path=request.url.path,
                status="500"
            ).inc()
            raise
        finally:
            HTTP_REQUESTS_IN_PROGRESS.labels(
                method=request.method,
                path=request.url.path
            ).dec()

def record_operation(operation: str, outcome: str) -> None:
    """Record the outcome of a scheduling operation."""
    SCHEDULING_OPERATIONS_TOTAL.labels(operation=operation, outcome=outcome).inc()

def record_conflicts(event_type: str, count: int) -> None:
    if count:
        SCHEDULING_CONFLICTS_TOTAL.labels(event_type=event_type).inc(count)

def record_audit_failure(action: str) -> None:
    AUDIT_LOG_FAILURES_TOTAL.labels(action=action).inc()

def setup_metrics(app) -> None:
    """Configure metrics collection for the application."""
    app.add_middleware(MetricsMiddleware)

    @app.get("/metrics", include_in_schema=False)
    async def metrics():
        return Response(
            generate_latest(REGISTRY),
            media_type="text/plain"
        )
