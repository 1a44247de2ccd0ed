"""
Video generation model.

One row per generation request; its status moves through the transitions in
`opshub.services.video_service.ALLOWED_TRANSITIONS`.
"""
import enum
from datetime import datetime
from sqlalchemy import DateTime, Integer, JSON, String, Text, Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column
from opshub.models.base import Base, IdMixin, TimestampMixin, enum_values


class VideoStatus(str, enum.Enum):
    """Video generation status enum."""
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class VideoType(str, enum.Enum):
    """Kind of marketing video to render."""
    BEFORE_AFTER = "before_after"
    TESTIMONIAL = "testimonial"
    PROGRESS = "progress"


class VideoGeneration(Base, IdMixin, TimestampMixin):
    """Before/after project video rendered by the video provider."""
    __tablename__ = "video_generations"

    user_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    project_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    video_type: Mapped[VideoType] = mapped_column(
        SQLEnum(VideoType, native_enum=False, values_callable=enum_values),
        nullable=False,
        default=VideoType.BEFORE_AFTER
    )
    before_image_url: Mapped[str] = mapped_column(Text, nullable=False)
    after_image_url: Mapped[str] = mapped_column(Text, nullable=False)
    testimonial_text: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[VideoStatus] = mapped_column(
        SQLEnum(VideoStatus, native_enum=False, values_callable=enum_values),
        nullable=False,
        default=VideoStatus.PENDING
    )
    video_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    thumbnail_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    duration: Mapped[int | None] = mapped_column(Integer, nullable=True)
    runwayml_task_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    # "metadata" is reserved on declarative classes
    task_metadata: Mapped[dict] = mapped_column("metadata", JSON, nullable=False, default=dict)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    def __repr__(self):
        return f"<VideoGeneration(id={self.id}, type={self.video_type}, status={self.status})>"
