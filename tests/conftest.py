"""
Shared fixtures.

Environment is set before any opshub import so `Settings()` picks it up.
"""
import os

from cryptography.fernet import Fernet

os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["JWT_SECRET_KEY"] = "test-secret-key"
os.environ["CREDENTIALS_ENCRYPTION_KEY"] = Fernet.generate_key().decode()
os.environ["RESEND_API_KEY"] = "re_test"
os.environ["RESPOND_IO_API_KEY"] = "rio_test"
os.environ["RUNWAYML_API_KEY"] = "rw_test"
os.environ["SENTRY_DSN"] = ""

from datetime import date
from decimal import Decimal

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from opshub.models.base import Base
from opshub.models import crm, delivery, invoice, video  # noqa: F401
from opshub.models.crm import Lead
from opshub.models.invoice import Invoice, PaymentProviderSettings
from opshub.services.audit_log import AuditLogWriter
from opshub.services.credentials import CredentialCipher
from tests.helpers import USER_ID, RecordingSleep


@pytest.fixture
def sleep():
    return RecordingSleep()


@pytest_asyncio.fixture
async def session_factory(tmp_path):
    # File database so the audit writer's sessions get their own connections
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'opshub.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(engine, expire_on_commit=False)
    await engine.dispose()


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def audit(session_factory):
    return AuditLogWriter(session_factory)


@pytest.fixture
def cipher():
    return CredentialCipher()


@pytest_asyncio.fixture
async def invoice_row(db, cipher):
    row = Invoice(
        user_id=USER_ID,
        invoice_number="INV-001",
        customer_name="Ada Builder",
        customer_email="ada@example.com",
        project_title="Kitchen extension",
        amount=Decimal("1250.50"),
        currency="GBP",
        due_date=date(2026, 11, 30),
    )
    db.add(row)
    db.add(PaymentProviderSettings(
        user_id=USER_ID,
        provider_type="stripe",
        encrypted_credentials=cipher.encrypt("sk_test_123"),
        is_active=True,
    ))
    await db.commit()
    return row


@pytest_asyncio.fixture
async def lead_row(db):
    row = Lead(
        user_id=USER_ID,
        first_name="Grace",
        last_name="Hopper",
        email="grace@example.com",
        phone=None,
        company_name="Hopper Homes",
        project_type="Loft conversion",
    )
    db.add(row)
    await db.commit()
    return row
