"""
CRM records, external CRM settings and sync logs.
"""
import enum
from datetime import datetime
from sqlalchemy import DateTime, Integer, JSON, String, Text, Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column
from opshub.models.base import Base, IdMixin, TimestampMixin, enum_values, utcnow


class SyncStatus(str, enum.Enum):
    """Sync log status enum."""
    PENDING = "pending"
    RETRYING = "retrying"
    SUCCESS = "success"
    FAILED = "failed"


class Lead(Base, IdMixin, TimestampMixin):
    """Inbound sales lead."""
    __tablename__ = "leads"

    user_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    first_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    last_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    phone: Mapped[str | None] = mapped_column(String(64), nullable=True)
    company_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    project_type: Mapped[str | None] = mapped_column(String(255), nullable=True)
    status: Mapped[str] = mapped_column(String(32), nullable=False, default="new")
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)


class Customer(Base, IdMixin, TimestampMixin):
    """Converted customer."""
    __tablename__ = "customers"

    user_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    first_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    last_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    phone: Mapped[str | None] = mapped_column(String(64), nullable=True)
    company_name: Mapped[str | None] = mapped_column(String(255), nullable=True)


class ExternalCrmSettings(Base, IdMixin, TimestampMixin):
    """
    A user's Zapier webhook and per-record-type field mappings.

    field_mappings is keyed by record type, e.g. {"lead": {"email": "Email"}}.
    """
    __tablename__ = "external_crm_settings"

    user_id: Mapped[str] = mapped_column(String(36), nullable=False, unique=True, index=True)
    zapier_webhook: Mapped[str | None] = mapped_column(Text, nullable=True)
    field_mappings: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)


class ExternalCrmSyncLog(Base, IdMixin):
    """One row per CRM sync task, written once with its terminal status."""
    __tablename__ = "external_crm_sync_logs"

    user_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    record_type: Mapped[str] = mapped_column(String(32), nullable=False)
    record_id: Mapped[str] = mapped_column(String(64), nullable=False)
    external_crm: Mapped[str] = mapped_column(String(32), nullable=False)
    sync_status: Mapped[SyncStatus] = mapped_column(
        SQLEnum(SyncStatus, native_enum=False, values_callable=enum_values),
        nullable=False,
        default=SyncStatus.PENDING
    )
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    retry_count: Mapped[int] = mapped_column(Integer, default=0)
    zapier_webhook: Mapped[str] = mapped_column(Text, nullable=False, default="")
    field_mappings: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    synced_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
