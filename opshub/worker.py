"""
ARQ background worker for the operations hub.

Runs video generations outside the request cycle. Start with:
    arq opshub.worker.WorkerSettings
"""
import httpx
from arq import create_pool
from arq.connections import RedisSettings

from opshub.config import settings
from opshub.database import AsyncSessionLocal
from opshub.logging_config import get_logger
from opshub.sentry_config import configure_sentry
from opshub.services.audit_log import AuditLogWriter
from opshub.services.video_generation import RunwayVideoAdapter
from opshub.services.video_service import VideoService


log = get_logger(component="worker")


async def startup(ctx: dict) -> None:
    configure_sentry()
    ctx["http_client"] = httpx.AsyncClient(timeout=settings.HTTP_TIMEOUT_SECONDS)
    ctx["video_service"] = VideoService(
        AsyncSessionLocal,
        AuditLogWriter(AsyncSessionLocal),
        adapter=RunwayVideoAdapter(ctx["http_client"]),
    )
    log.info("worker_started")


async def shutdown(ctx: dict) -> None:
    await ctx["http_client"].aclose()
    log.info("worker_stopped")


async def process_video_generation(ctx: dict, video_generation_id: str) -> str | None:
    """Submit, poll and finish one video generation."""
    log.info("video_job_started", video_generation_id=video_generation_id, job_try=ctx.get("job_try", 1))
    status = await ctx["video_service"].run(video_generation_id)
    return status.value if status else None


async def enqueue_video_generation(video_generation_id: str) -> None:
    """Queue a video generation for the worker. Raises when Redis is unreachable."""
    redis = await create_pool(RedisSettings.from_dsn(settings.REDIS_URL))
    try:
        await redis.enqueue_job("process_video_generation", video_generation_id)
        log.info("video_job_enqueued", video_generation_id=video_generation_id)
    finally:
        await redis.aclose()


class WorkerSettings:
    """Settings for the ARQ worker."""
    redis_settings = RedisSettings.from_dsn(settings.REDIS_URL)
    # Polling alone can take VIDEO_POLL_MAX_ATTEMPTS * VIDEO_POLL_INTERVAL_SECONDS
    job_timeout = int(settings.VIDEO_POLL_MAX_ATTEMPTS * settings.VIDEO_POLL_INTERVAL_SECONDS) + 120
    # A retried job would submit a second paid generation
    max_tries = 1
    functions = [process_video_generation]
    on_startup = startup
    on_shutdown = shutdown
