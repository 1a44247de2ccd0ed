"""
Video generation routes.

POST returns as soon as the job is queued; clients poll GET for the result.
"""
from datetime import datetime

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field

from opshub.dependencies.auth import TokenPayload
from opshub.dependencies.rate_limit import check_rate_limit
from opshub.dependencies.services import get_video_service
from opshub.models.video import VideoGeneration
from opshub.services.video_service import VideoService


router = APIRouter(prefix="/api/videos", tags=["videos"])


class CreateVideoRequest(BaseModel):
    """Request model for starting a video generation."""
    model_config = ConfigDict(populate_by_name=True)

    project_id: str = Field(alias="projectId")
    before_image_url: str = Field(alias="beforeImageUrl")
    after_image_url: str = Field(alias="afterImageUrl")
    testimonial_text: str | None = Field(default=None, alias="testimonialText")
    video_type: str | None = Field(default=None, alias="videoType")


class VideoResponse(BaseModel):
    """Response model for a video generation."""
    id: str
    projectId: str
    videoType: str
    status: str
    videoUrl: str | None = None
    thumbnailUrl: str | None = None
    duration: int | None = None
    errorMessage: str | None = None
    metadata: dict = {}
    createdAt: datetime | None = None
    completedAt: datetime | None = None


def video_to_response(video: VideoGeneration) -> VideoResponse:
    return VideoResponse(
        id=video.id,
        projectId=video.project_id,
        videoType=video.video_type.value,
        status=video.status.value,
        videoUrl=video.video_url,
        thumbnailUrl=video.thumbnail_url,
        duration=video.duration,
        errorMessage=video.error_message,
        metadata=video.task_metadata or {},
        createdAt=video.created_at,
        completedAt=video.completed_at,
    )


@router.post("", response_model=dict)
async def create_video(
    request: CreateVideoRequest,
    current_user: TokenPayload = Depends(check_rate_limit),
    service: VideoService = Depends(get_video_service),
):
    """Start a before/after, testimonial or progress video."""
    return await service.start(
        user_id=current_user.sub,
        project_id=request.project_id,
        before_image_url=request.before_image_url,
        after_image_url=request.after_image_url,
        testimonial_text=request.testimonial_text,
        video_type=request.video_type,
    )


@router.get("/{video_generation_id}", response_model=VideoResponse)
async def get_video(
    video_generation_id: str,
    current_user: TokenPayload = Depends(check_rate_limit),
    service: VideoService = Depends(get_video_service),
):
    video = await service.get(video_generation_id, current_user.sub)
    return video_to_response(video)
