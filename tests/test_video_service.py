"""Tests for video generation: dispatch, polling and status transitions."""
import json

import httpx
import pytest
from sqlalchemy import select

from opshub.errors import NotFoundError, ValidationError
from opshub.models.delivery import AnalyticsEvent
from opshub.models.video import VideoGeneration, VideoStatus, VideoType
from opshub.services.video_generation import RunwayVideoAdapter
from opshub.services.video_service import VideoService, validate_transition
from tests.helpers import OTHER_USER_ID, USER_ID, mock_client


BEFORE = "https://cdn.example.com/before.jpg"
AFTER = "https://cdn.example.com/after.jpg"


class RecordingDispatch:
    def __init__(self, error: Exception | None = None):
        self.dispatched: list[str] = []
        self.error = error

    async def __call__(self, video_generation_id: str) -> None:
        if self.error:
            raise self.error
        self.dispatched.append(video_generation_id)


def runway_handler(statuses: list[dict]):
    """Answer the submit call, then each status check with the next entry (last one repeats)."""
    calls = {"submit": [], "poll": 0}

    def handler(request: httpx.Request) -> httpx.Response:
        if request.method == "POST" and request.url.path == "/v1/image_to_video":
            calls["submit"].append(json.loads(request.content))
            return httpx.Response(200, json={"id": "task_1"})
        if request.method == "GET" and request.url.path == "/v1/tasks/task_1":
            calls["poll"] += 1
            return httpx.Response(200, json=statuses[min(calls["poll"], len(statuses)) - 1])
        return httpx.Response(404)

    return handler, calls


async def events(session_factory) -> list[str]:
    async with session_factory() as session:
        result = await session.execute(select(AnalyticsEvent).order_by(AnalyticsEvent.created_at))
        return [event.event_type for event in result.scalars().all()]


async def load(session_factory, video_id: str) -> VideoGeneration:
    async with session_factory() as session:
        return await session.get(VideoGeneration, video_id)


async def started(session_factory, audit, **overrides) -> str:
    dispatch = RecordingDispatch()
    service = VideoService(session_factory, audit, dispatch=dispatch)
    response = await service.start(USER_ID, "project-1", BEFORE, AFTER, **overrides)
    assert dispatch.dispatched == [response["videoGenerationId"]]
    return response["videoGenerationId"]


def test_transitions():
    validate_transition(VideoStatus.PENDING, VideoStatus.PROCESSING)
    validate_transition(VideoStatus.PENDING, VideoStatus.FAILED)
    validate_transition(VideoStatus.PROCESSING, VideoStatus.COMPLETED)
    with pytest.raises(ValueError):
        validate_transition(VideoStatus.COMPLETED, VideoStatus.PROCESSING)
    with pytest.raises(ValueError):
        validate_transition(VideoStatus.PENDING, VideoStatus.COMPLETED)


@pytest.mark.asyncio
async def test_start_defaults_to_before_after(session_factory, audit):
    dispatch = RecordingDispatch()
    service = VideoService(session_factory, audit, dispatch=dispatch)

    response = await service.start(USER_ID, "project-1", BEFORE, AFTER)

    assert response["success"] is True
    assert response["status"] == "processing"
    video = await load(session_factory, response["videoGenerationId"])
    assert video.video_type == VideoType.BEFORE_AFTER
    assert video.status == VideoStatus.PENDING
    assert dispatch.dispatched == [video.id]
    assert await events(session_factory) == ["generation_started"]


@pytest.mark.asyncio
async def test_start_rejects_unknown_video_type(session_factory, audit):
    dispatch = RecordingDispatch()
    service = VideoService(session_factory, audit, dispatch=dispatch)

    with pytest.raises(ValidationError):
        await service.start(USER_ID, "project-1", BEFORE, AFTER, video_type="slideshow")

    assert dispatch.dispatched == []


@pytest.mark.asyncio
async def test_dispatch_failure_marks_row_failed(session_factory, audit):
    service = VideoService(session_factory, audit, dispatch=RecordingDispatch(ConnectionError("redis down")))

    with pytest.raises(ConnectionError):
        await service.start(USER_ID, "project-1", BEFORE, AFTER)

    async with session_factory() as session:
        video = (await session.execute(select(VideoGeneration))).scalar_one()
    assert video.status == VideoStatus.FAILED
    assert "redis down" in video.error_message


@pytest.mark.asyncio
async def test_run_completes_and_records_progress(session_factory, audit, sleep):
    video_id = await started(session_factory, audit, video_type="testimonial", testimonial_text="Great job")
    handler, calls = runway_handler([
        {"status": "RUNNING", "progress": 0.4},
        {"status": "SUCCEEDED", "output": ["https://cdn.runway.com/v.mp4"]},
    ])

    async with mock_client(handler) as client:
        adapter = RunwayVideoAdapter(client, poll_interval=10.0, max_polls=60, sleep=sleep)
        status = await VideoService(session_factory, audit, adapter=adapter).run(video_id)

    assert status == VideoStatus.COMPLETED
    assert calls["poll"] == 2
    assert sleep.delays == [10.0, 10.0]
    assert 'testimonial text: "Great job"' in calls["submit"][0]["promptText"]
    assert calls["submit"][0]["model"] == "gen3a_turbo"

    video = await load(session_factory, video_id)
    assert video.status == VideoStatus.COMPLETED
    assert video.video_url == "https://cdn.runway.com/v.mp4"
    assert video.thumbnail_url == "https://cdn.runway.com/v.mp4?frame=1"
    assert video.duration == 5
    assert video.runwayml_task_id == "task_1"
    assert video.task_metadata["progress"] == 0.4
    assert video.completed_at is not None
    assert await events(session_factory) == ["generation_started", "generation_completed"]


@pytest.mark.asyncio
async def test_failed_status_stops_polling_immediately(session_factory, audit, sleep):
    video_id = await started(session_factory, audit)
    handler, calls = runway_handler([{"status": "FAILED", "failure_reason": "Image too small"}])

    async with mock_client(handler) as client:
        adapter = RunwayVideoAdapter(client, poll_interval=10.0, max_polls=60, sleep=sleep)
        status = await VideoService(session_factory, audit, adapter=adapter).run(video_id)

    assert status == VideoStatus.FAILED
    assert calls["poll"] == 1
    video = await load(session_factory, video_id)
    assert video.status == VideoStatus.FAILED
    assert "Image too small" in video.error_message
    assert await events(session_factory) == ["generation_started", "generation_failed"]


@pytest.mark.asyncio
async def test_never_terminal_times_out_after_60_polls(session_factory, audit, sleep):
    video_id = await started(session_factory, audit)
    handler, calls = runway_handler([{"status": "RUNNING"}])

    async with mock_client(handler) as client:
        adapter = RunwayVideoAdapter(client, poll_interval=10.0, max_polls=60, sleep=sleep)
        status = await VideoService(session_factory, audit, adapter=adapter).run(video_id)

    assert status == VideoStatus.FAILED
    assert calls["poll"] == 60
    assert sleep.delays == [10.0] * 60
    video = await load(session_factory, video_id)
    assert video.error_message == "Video generation timed out after 60 status checks"


@pytest.mark.asyncio
async def test_status_check_errors_keep_polling(session_factory, audit, sleep):
    video_id = await started(session_factory, audit)
    polls = []

    def handler(request: httpx.Request) -> httpx.Response:
        if request.method == "POST":
            return httpx.Response(200, json={"id": "task_1"})
        polls.append(request)
        if len(polls) == 1:
            return httpx.Response(503)
        return httpx.Response(200, json={"status": "SUCCEEDED", "output": ["https://cdn.runway.com/v.mp4"]})

    async with mock_client(handler) as client:
        adapter = RunwayVideoAdapter(client, poll_interval=10.0, max_polls=60, sleep=sleep)
        status = await VideoService(session_factory, audit, adapter=adapter).run(video_id)

    assert status == VideoStatus.COMPLETED
    assert len(polls) == 2


@pytest.mark.asyncio
async def test_run_skips_rows_already_finished(session_factory, audit, sleep):
    video_id = await started(session_factory, audit)
    await audit.update(VideoGeneration, video_id, status=VideoStatus.COMPLETED)
    handler, calls = runway_handler([{"status": "RUNNING"}])

    async with mock_client(handler) as client:
        adapter = RunwayVideoAdapter(client, sleep=sleep)
        assert await VideoService(session_factory, audit, adapter=adapter).run(video_id) is None

    assert calls["submit"] == []


@pytest.mark.asyncio
async def test_get_is_scoped_to_owner(session_factory, audit):
    video_id = await started(session_factory, audit)
    service = VideoService(session_factory, audit)

    assert (await service.get(video_id, USER_ID)).id == video_id
    with pytest.raises(NotFoundError):
        await service.get(video_id, OTHER_USER_ID)


@pytest.mark.asyncio
async def test_non_json_status_body_keeps_polling(session_factory, audit, sleep):
    video_id = await started(session_factory, audit)
    polls = []

    def handler(request: httpx.Request) -> httpx.Response:
        if request.method == "POST":
            return httpx.Response(200, json={"id": "task_1"})
        polls.append(request)
        if len(polls) == 1:
            return httpx.Response(200, text="<html>gateway hiccup</html>")
        return httpx.Response(200, json={"status": "SUCCEEDED", "output": ["https://cdn.runway.com/v.mp4"]})

    async with mock_client(handler) as client:
        adapter = RunwayVideoAdapter(client, poll_interval=10.0, max_polls=60, sleep=sleep)
        status = await VideoService(session_factory, audit, adapter=adapter).run(video_id)

    assert status == VideoStatus.COMPLETED
    assert len(polls) == 2
    video = await load(session_factory, video_id)
    assert video.video_url == "https://cdn.runway.com/v.mp4"
