"""Tests for the audit log writer."""
import pytest
from sqlalchemy import select
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from opshub.models.delivery import AnalyticsEvent, MessageDeliveryLog
from opshub.services.audit_log import AuditLogWriter
from tests.helpers import USER_ID


@pytest.mark.asyncio
async def test_append_and_track_event(session_factory, audit):
    entry_id = await audit.append(
        MessageDeliveryLog(user_id=USER_ID, message_type="email", delivery_status="success")
    )
    await audit.track_event(USER_ID, "invoice", "inv-1", "payment_link_shared", {"k": "v"})

    assert entry_id is not None
    async with session_factory() as session:
        event = (await session.execute(select(AnalyticsEvent))).scalar_one()
    assert event.event_data == {"k": "v"}


@pytest.mark.asyncio
async def test_write_failures_are_swallowed(tmp_path):
    # No tables were created on this database
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'empty.db'}")
    writer = AuditLogWriter(async_sessionmaker(engine, expire_on_commit=False))

    assert await writer.append(
        MessageDeliveryLog(user_id=USER_ID, message_type="email", delivery_status="failed")
    ) is None
    assert await writer.update(MessageDeliveryLog, "missing", delivery_status="success") is False
    await writer.track_event(USER_ID, "invoice", "inv-1", "payment_link_shared")
    await engine.dispose()
