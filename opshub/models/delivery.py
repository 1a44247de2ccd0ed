"""
Message delivery logs and analytics events.

Both tables are append-only.
"""
from datetime import datetime
from sqlalchemy import DateTime, Integer, JSON, String, Text
from sqlalchemy.orm import Mapped, mapped_column
from opshub.models.base import Base, IdMixin, utcnow


class MessageDeliveryLog(Base, IdMixin):
    """Outcome of sending a payment link to a customer."""
    __tablename__ = "message_delivery_logs"

    user_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    invoice_id: Mapped[str | None] = mapped_column(String(36), nullable=True, index=True)
    message_type: Mapped[str] = mapped_column(String(20), nullable=False)  # email, whatsapp
    recipient_email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    recipient_phone: Mapped[str | None] = mapped_column(String(64), nullable=True)
    message_content: Mapped[str] = mapped_column(Text, nullable=False, default="")
    external_message_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    delivery_status: Mapped[str] = mapped_column(String(20), nullable=False)  # success, failed
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    retry_count: Mapped[int] = mapped_column(Integer, default=0)
    sent_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)


class AnalyticsEvent(Base, IdMixin):
    """Fire-and-forget product analytics row."""
    __tablename__ = "analytics_events"

    user_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    entity_type: Mapped[str] = mapped_column(String(32), nullable=False)  # invoice, lead, customer, video_generation
    entity_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    event_type: Mapped[str] = mapped_column(String(64), nullable=False)
    event_data: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
