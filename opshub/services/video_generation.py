"""
RunwayML video-generation adapter.

Two phases: submit an image-to-video task, then poll its status at a fixed
interval until it succeeds, fails, or the poll budget runs out.
"""
import asyncio
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

import httpx

from opshub.config import settings
from opshub.errors import GenerationTimeoutError, MisconfiguredError, ProviderError
from opshub.logging_config import get_logger
from opshub.models.video import VideoType
from opshub.routes.metrics import track_delivery
from opshub.services.delivery import DeliveryResult, raise_for_provider_status
from opshub.services.retry import BackoffExecutor, BackoffStrategy, RetryPolicy


SUBMIT_POLICY = RetryPolicy(max_attempts=2, base_delay=2.0, strategy=BackoffStrategy.EXPONENTIAL)
VIDEO_MODEL = "gen3a_turbo"
VIDEO_DURATION_SECONDS = 5

BASE_PROMPTS = {
    VideoType.BEFORE_AFTER: (
        "Transform this construction project from before to after state with smooth transitions, "
        "professional lighting, and dynamic camera movements showcasing the renovation progress"
    ),
    VideoType.TESTIMONIAL: (
        "Create an inspiring before and after transformation video with elegant transitions "
        "and overlay space for customer testimonials"
    ),
    VideoType.PROGRESS: (
        "Show construction progress with time-lapse style transitions, highlighting key "
        "milestones and professional craftsmanship"
    ),
}

ProgressCallback = Callable[[dict[str, Any]], Awaitable[None]]


def generate_video_prompt(video_type: VideoType, testimonial_text: str | None = None) -> str:
    prompt = BASE_PROMPTS[video_type]
    if testimonial_text:
        prompt += f'. Include overlay areas for testimonial text: "{testimonial_text}"'
    return prompt


@dataclass
class VideoPayload:
    before_image_url: str
    after_image_url: str
    video_type: VideoType = VideoType.BEFORE_AFTER
    testimonial_text: str | None = None


class RunwayVideoAdapter:
    """Submits and polls RunwayML image-to-video tasks."""
    name = "video"

    def __init__(
        self,
        client: httpx.AsyncClient,
        api_key: str | None = None,
        submit_policy: RetryPolicy = SUBMIT_POLICY,
        poll_interval: float | None = None,
        max_polls: int | None = None,
        sleep=asyncio.sleep,
        clock=time.monotonic,
    ):
        self.client = client
        self._api_key = api_key
        self.submit_policy = submit_policy
        self.poll_interval = settings.VIDEO_POLL_INTERVAL_SECONDS if poll_interval is None else poll_interval
        self.max_polls = settings.VIDEO_POLL_MAX_ATTEMPTS if max_polls is None else max_polls
        self._sleep = sleep
        self._clock = clock

    @property
    def api_key(self) -> str:
        key = self._api_key or settings.RUNWAYML_API_KEY
        if not key:
            raise MisconfiguredError("RunwayML API key not configured")
        return key

    def _headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.api_key}"}

    async def submit(self, payload: VideoPayload) -> str:
        """Create the generation task and return its id."""
        prompt = generate_video_prompt(payload.video_type, payload.testimonial_text)
        headers = self._headers()

        async def create_task() -> str:
            response = await self.client.post(
                f"{settings.RUNWAYML_API_BASE}/v1/image_to_video",
                json={
                    "promptImage": payload.before_image_url,
                    "promptText": prompt,
                    "model": VIDEO_MODEL,
                    "aspectRatio": "16:9",
                    "duration": VIDEO_DURATION_SECONDS,
                    "watermark": False,
                    "enhance_prompt": True,
                },
                headers=headers,
            )
            raise_for_provider_status(response, "RunwayML")
            return response.json()["id"]

        executor = BackoffExecutor(self.submit_policy, name="runway_submit", sleep=self._sleep)
        return await executor.run(create_task)

    async def poll(self, task_id: str, on_progress: ProgressCallback | None = None) -> DeliveryResult:
        """
        Wait for the task to reach a terminal status.

        Raises:
            ProviderError: the task reported FAILED.
            GenerationTimeoutError: no terminal status within `max_polls` checks.
        """
        log = get_logger(channel=self.name, task_id=task_id)
        headers = self._headers()
        started = self._clock()

        for attempt in range(1, self.max_polls + 1):
            await self._sleep(self.poll_interval)
            try:
                response = await self.client.get(
                    f"{settings.RUNWAYML_API_BASE}/v1/tasks/{task_id}", headers=headers
                )
            except httpx.TransportError as exc:
                log.warning("status_check_failed", attempt=attempt, error=str(exc))
                continue
            if not response.is_success:
                log.warning("status_check_failed", attempt=attempt, status_code=response.status_code)
                continue

            try:
                task = response.json()
            except ValueError:
                log.warning("status_check_failed", attempt=attempt, error="response body is not JSON")
                continue
            status = task.get("status")
            log.info("status_checked", attempt=attempt, status=status)

            if status == "SUCCEEDED" and task.get("output"):
                video_url = task["output"][0]
                return DeliveryResult(
                    success=True,
                    external_id=task_id,
                    url=video_url,
                    duration=VIDEO_DURATION_SECONDS,
                    attempts=attempt,
                    details={
                        "thumbnail_url": f"{video_url}?frame=1",
                        "processing_time": round(self._clock() - started),
                    },
                )
            if status == "FAILED":
                reason = task.get("failure_reason") or "Unknown error"
                raise ProviderError("RunwayML", f"Video generation failed: {reason}")
            if task.get("progress") is not None and on_progress is not None:
                await on_progress({"progress": task["progress"], "status": status, "attempt": attempt})

        raise GenerationTimeoutError(
            f"Video generation timed out after {self.max_polls} status checks"
        )

    async def deliver(self, payload: VideoPayload, on_progress: ProgressCallback | None = None) -> DeliveryResult:
        try:
            task_id = await self.submit(payload)
            result = await self.poll(task_id, on_progress)
        except Exception:
            track_delivery(self.name, "failed")
            raise
        track_delivery(self.name, "success")
        return result
