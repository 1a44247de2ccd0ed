"""
Video generation service.

`start()` runs inside the request: it records a pending row and hands the
work to the background worker. `run()` runs inside the worker: it drives the
RunwayML adapter and writes the outcome back onto the same row.
"""
from collections.abc import Awaitable, Callable
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from opshub.errors import NotFoundError, ValidationError
from opshub.logging_config import get_logger
from opshub.models.base import utcnow
from opshub.models.video import VideoGeneration, VideoStatus, VideoType
from opshub.routes.metrics import track_video_generation
from opshub.services.audit_log import AuditLogWriter
from opshub.services.video_generation import RunwayVideoAdapter, VideoPayload


ALLOWED_TRANSITIONS: dict[VideoStatus, set[VideoStatus]] = {
    VideoStatus.PENDING: {VideoStatus.PROCESSING, VideoStatus.FAILED},
    VideoStatus.PROCESSING: {VideoStatus.COMPLETED, VideoStatus.FAILED},
    VideoStatus.COMPLETED: set(),
    VideoStatus.FAILED: set(),
}

Dispatcher = Callable[[str], Awaitable[Any]]


def validate_transition(current: VideoStatus, new: VideoStatus) -> None:
    """Raise when a status change is not allowed."""
    if new not in ALLOWED_TRANSITIONS.get(current, set()):
        raise ValueError(f"Invalid transition: {current.value} -> {new.value}")


def parse_video_type(video_type: str | None) -> VideoType:
    if not video_type:
        return VideoType.BEFORE_AFTER
    try:
        return VideoType(video_type)
    except ValueError:
        raise ValidationError(f"Invalid video type: {video_type}")


class VideoService:
    """Creates, runs and reads video generation rows."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        audit: AuditLogWriter,
        adapter: RunwayVideoAdapter | None = None,
        dispatch: Dispatcher | None = None,
    ):
        self.session_factory = session_factory
        self.audit = audit
        self.adapter = adapter
        self.dispatch = dispatch

    async def start(
        self,
        user_id: str,
        project_id: str,
        before_image_url: str,
        after_image_url: str,
        testimonial_text: str | None = None,
        video_type: str | None = None,
    ) -> dict[str, Any]:
        """
        Record a pending generation and dispatch it to the worker.

        The response does not wait for the video; the final state is only
        available from the persisted row.
        """
        parsed_type = parse_video_type(video_type)
        if not project_id or not before_image_url or not after_image_url:
            raise ValidationError("projectId, beforeImageUrl and afterImageUrl are required")

        async with self.session_factory() as session:
            video = VideoGeneration(
                user_id=user_id,
                project_id=project_id,
                video_type=parsed_type,
                before_image_url=before_image_url,
                after_image_url=after_image_url,
                testimonial_text=testimonial_text,
                status=VideoStatus.PENDING,
                task_metadata={},
            )
            session.add(video)
            await session.commit()
            video_id = video.id

        log = get_logger(user_id=user_id, video_generation_id=video_id)
        await self.audit.track_event(
            user_id, "video_generation", video_id, "generation_started",
            {"video_type": parsed_type.value, "project_id": project_id},
        )

        try:
            await self.dispatch(video_id)
        except Exception as exc:
            log.error("video_dispatch_failed", error=str(exc))
            await self._finish_failed(video_id, VideoStatus.PENDING, user_id, f"Failed to queue video generation: {exc}")
            raise

        log.info("video_generation_queued", video_type=parsed_type.value)
        return {
            "success": True,
            "videoGenerationId": video_id,
            "status": VideoStatus.PROCESSING.value,
            "message": "Video generation started. This may take a few minutes.",
        }

    async def get(self, video_generation_id: str, user_id: str) -> VideoGeneration:
        """
        Raises:
            NotFoundError: no such generation for this user
        """
        async with self.session_factory() as session:
            stmt = select(VideoGeneration).where(
                VideoGeneration.id == video_generation_id,
                VideoGeneration.user_id == user_id
            )
            result = await session.execute(stmt)
            video = result.scalar_one_or_none()
        if video is None:
            raise NotFoundError(f"Video generation not found: {video_generation_id}")
        return video

    async def run(self, video_generation_id: str) -> VideoStatus | None:
        """Submit and poll one generation. Returns the terminal status written."""
        log = get_logger(video_generation_id=video_generation_id)
        async with self.session_factory() as session:
            video = await session.get(VideoGeneration, video_generation_id)
        if video is None:
            log.error("video_generation_missing")
            return None

        try:
            validate_transition(video.status, VideoStatus.PROCESSING)
        except ValueError as exc:
            log.warning("video_generation_skipped", error=str(exc))
            return None
        await self.audit.update(VideoGeneration, video.id, status=VideoStatus.PROCESSING)

        metadata = dict(video.task_metadata or {})

        async def record_progress(progress: dict[str, Any]) -> None:
            metadata.update(progress)
            await self.audit.update(VideoGeneration, video.id, task_metadata=dict(metadata))

        payload = VideoPayload(
            before_image_url=video.before_image_url,
            after_image_url=video.after_image_url,
            video_type=video.video_type,
            testimonial_text=video.testimonial_text,
        )
        try:
            result = await self.adapter.deliver(payload, on_progress=record_progress)
        except Exception as exc:
            log.error("video_generation_failed", error=str(exc))
            await self._finish_failed(video.id, VideoStatus.PROCESSING, video.user_id, str(exc))
            return VideoStatus.FAILED

        details = result.details or {}
        metadata.update({
            "processing_time": details.get("processing_time"),
            "status_checks": result.attempts,
        })
        validate_transition(VideoStatus.PROCESSING, VideoStatus.COMPLETED)
        await self.audit.update(
            VideoGeneration,
            video.id,
            status=VideoStatus.COMPLETED,
            video_url=result.url,
            thumbnail_url=details.get("thumbnail_url"),
            duration=result.duration,
            runwayml_task_id=result.external_id,
            task_metadata=metadata,
            completed_at=utcnow(),
        )
        track_video_generation(VideoStatus.COMPLETED.value)
        await self.audit.track_event(
            video.user_id, "video_generation", video.id, "generation_completed",
            {"video_url": result.url, "duration": result.duration,
             "processing_time": details.get("processing_time")},
        )
        log.info("video_generation_completed", runwayml_task_id=result.external_id)
        return VideoStatus.COMPLETED

    async def _finish_failed(self, video_id: str, current: VideoStatus, user_id: str, error: str) -> None:
        validate_transition(current, VideoStatus.FAILED)
        await self.audit.update(
            VideoGeneration, video_id,
            status=VideoStatus.FAILED, error_message=error, completed_at=utcnow()
        )
        track_video_generation(VideoStatus.FAILED.value)
        await self.audit.track_event(
            user_id, "video_generation", video_id, "generation_failed", {"error": error}
        )
