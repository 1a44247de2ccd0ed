"""
Audit log writer.

Appends delivery/sync outcomes and analytics events. Every write runs in its
own session and commit, and a failed write is logged and reported but never
raised: the caller's response must not depend on it.
"""
from typing import Any

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from opshub.logging_config import get_logger
from opshub.models.base import Base
from opshub.models.delivery import AnalyticsEvent
from opshub.sentry_config import capture_exception


log = get_logger(component="audit_log")


class AuditLogWriter:
    """Fire-and-forget persistence for log rows."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def append(self, entry: Base) -> str | None:
        """Insert one row. Returns its id, or None when the write failed."""
        try:
            async with self.session_factory() as session:
                session.add(entry)
                await session.commit()
                return entry.id
        except Exception as exc:
            log.error("audit_append_failed", table=entry.__tablename__, error=str(exc))
            capture_exception(exc)
            return None

    async def update(self, model: type[Base], entity_id: str, **values: Any) -> bool:
        """Update columns of one existing row in place."""
        try:
            async with self.session_factory() as session:
                await session.execute(update(model).where(model.id == entity_id).values(**values))
                await session.commit()
                return True
        except Exception as exc:
            log.error("audit_update_failed", table=model.__tablename__, entity_id=entity_id, error=str(exc))
            capture_exception(exc)
            return False

    async def track_event(
        self,
        user_id: str,
        entity_type: str,
        entity_id: str,
        event_type: str,
        event_data: dict[str, Any] | None = None,
    ) -> None:
        await self.append(
            AnalyticsEvent(
                user_id=user_id,
                entity_type=entity_type,
                entity_id=entity_id,
                event_type=event_type,
                event_data=event_data or {},
            )
        )
