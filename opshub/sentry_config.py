"""
Sentry configuration for error tracking.

Captures unhandled exceptions and swallowed audit-log failures.
"""
import sentry_sdk
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration

from opshub.config import settings
from opshub.logging_config import logger


def configure_sentry():
    """
    Initialize Sentry with FastAPI and SQLAlchemy integrations.
    
    Requires SENTRY_DSN environment variable to be set.
    """
    dsn = settings.SENTRY_DSN
    
    if not dsn:
        logger.warning("sentry_disabled", reason="SENTRY_DSN not set")
        return
    
    sentry_sdk.init(
        dsn=dsn,
        integrations=[
            FastApiIntegration(),
            SqlalchemyIntegration(),
        ],
        # Sample rate: capture 10% of transactions for performance monitoring
        traces_sample_rate=0.1,
        environment=settings.ENVIRONMENT,
        release=settings.APP_VERSION,
        send_default_pii=False,
    )
    
    logger.info("sentry_initialized", environment=settings.ENVIRONMENT)


def capture_exception(exc_info=None):
    """
    Capture an exception to Sentry.
    
    Usage:
        try:
            # some code
        except Exception:
            capture_exception()
    """
    if sentry_sdk.get_client().is_active():
        sentry_sdk.capture_exception(exc_info)
