"""
Logging middleware for request/response logging.

Logs all HTTP requests with timing and context and records request metrics.
"""
import time
import structlog
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from opshub.routes.metrics import track_request

logger = structlog.get_logger()


class LoggingMiddleware(BaseHTTPMiddleware):
    """
    Middleware to log all HTTP requests with timing and context.
    
    Adds: user_id, route, duration_ms, status to every log.
    """
    
    async def dispatch(self, request: Request, call_next):
        start_time = time.time()
        request_logger = logger.bind(route=request.url.path, method=request.method)
        
        try:
            response = await call_next(request)
        except Exception as e:
            duration = time.time() - start_time
            request_logger.error(
                "request_failed",
                user_id=getattr(request.state, "user_id", None),
                status_code=500,
                duration_ms=round(duration * 1000, 2),
                error=str(e)
            )
            track_request(request.method, request.url.path, 500, duration)
            raise
        
        duration = time.time() - start_time
        # user_id is set by the auth dependency during call_next
        request_logger.info(
            "request_completed",
            user_id=getattr(request.state, "user_id", None),
            status_code=response.status_code,
            duration_ms=round(duration * 1000, 2)
        )
        track_request(request.method, request.url.path, response.status_code, duration)
        
        return response
