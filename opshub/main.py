"""
Construyo Ops Hub - integration backend for trade contractors

FastAPI application entry point.
"""
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

# Import observability modules
from opshub.config import settings
from opshub.errors import OpsHubError, RateLimitError
from opshub.logging_config import logger
from opshub.sentry_config import capture_exception, configure_sentry
from opshub.middleware.logging import LoggingMiddleware
from opshub.routes.metrics import router as metrics_router

# Import route modules
from opshub.routes.payment_links import router as payment_links_router
from opshub.routes.crm_sync import router as crm_sync_router
from opshub.routes.videos import router as videos_router
from opshub.routes.settings import router as settings_router

# Initialize Sentry (if SENTRY_DSN is set)
configure_sentry()

# Create FastAPI app
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Payment links, CRM sync and project video generation for trade contractors",
)

# Add logging middleware FIRST (runs before other middleware)
app.add_middleware(LoggingMiddleware)

# Bearer tokens, not cookies, so credentials stay off for wildcard origins
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)


def error_response(status_code: int, message: str, headers: dict | None = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "error": message},
        headers=headers,
    )


@app.exception_handler(OpsHubError)
async def opshub_error_handler(request: Request, exc: OpsHubError):
    headers = None
    if isinstance(exc, RateLimitError):
        headers = {"Retry-After": str(exc.retry_after)}
    if exc.status_code >= 500:
        logger.error("request_error", route=request.url.path, error=exc.message)
    return error_response(exc.status_code, exc.message, headers)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    first = exc.errors()[0] if exc.errors() else {}
    field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = f"{field}: {first.get('msg', 'invalid')}" if field else first.get("msg", "Invalid request")
    return error_response(400, message)


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return error_response(exc.status_code, str(exc.detail), getattr(exc, "headers", None))


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.error("unhandled_error", route=request.url.path, error=str(exc), exc_info=exc)
    capture_exception(exc)
    return error_response(500, str(exc) or "Internal server error")


# Include metrics endpoint FIRST (so it's always available)
app.include_router(metrics_router)

app.include_router(payment_links_router)
app.include_router(crm_sync_router)
app.include_router(videos_router)
app.include_router(settings_router)


@app.get("/")
async def root():
    """Service banner."""
    return {
        "name": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "status": "running"
    }


@app.get("/health")
async def health():
    """Liveness check."""
    return {"status": "healthy"}
