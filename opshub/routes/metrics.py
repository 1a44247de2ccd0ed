"""
Prometheus metrics endpoint.

Exposes request and delivery metrics for monitoring.
"""
from fastapi import APIRouter, Response
from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST

router = APIRouter()

# ============================================
# HTTP Request Metrics
# ============================================

http_requests_total = Counter(
    'http_requests_total',
    'Total HTTP requests',
    ['method', 'endpoint', 'status']
)

http_request_duration = Histogram(
    'http_request_duration_seconds',
    'HTTP request duration in seconds',
    ['method', 'endpoint'],
    buckets=[0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0]
)

# ============================================
# Delivery Metrics
# ============================================

deliveries_total = Counter(
    'deliveries_total',
    'Outbound deliveries by channel and outcome',
    ['channel', 'status']
)

delivery_retries_total = Counter(
    'delivery_retries_total',
    'Retry attempts scheduled by the backoff executor',
    ['operation']
)

# ============================================
# Video Generation Metrics
# ============================================

video_generations_total = Counter(
    'video_generations_total',
    'Video generations by terminal status',
    ['status']
)


# ============================================
# Metrics Helper Functions
# ============================================

def track_request(method: str, endpoint: str, status: int, duration_seconds: float):
    """
    Record HTTP request metrics.
    
    Call this after each request.
    """
    http_requests_total.labels(
        method=method,
        endpoint=endpoint,
        status=status
    ).inc()
    
    http_request_duration.labels(
        method=method,
        endpoint=endpoint
    ).observe(duration_seconds)


def track_delivery(channel: str, status: str):
    """Record one delivery outcome (success or failed)."""
    deliveries_total.labels(channel=channel, status=status).inc()


def track_retry(operation: str):
    """Record a retry scheduled by the backoff executor."""
    delivery_retries_total.labels(operation=operation).inc()


def track_video_generation(status: str):
    """Record a video generation reaching a terminal status."""
    video_generations_total.labels(status=status).inc()


# ============================================
# Prometheus Endpoint
# ============================================

@router.get("/metrics")
async def metrics():
    """
    Prometheus metrics endpoint.
    
    Returns all registered metrics in Prometheus format.
    """
    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)
