"""
Service factories for FastAPI routes.

Provider clients are built per request and passed into the orchestrators;
tests override `get_http_client`, `get_session_factory` and
`get_video_dispatcher`.
"""
from collections.abc import AsyncIterator

import httpx
from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from opshub.config import settings
from opshub.database import AsyncSessionLocal, get_db
from opshub.services.audit_log import AuditLogWriter
from opshub.services.credentials import CredentialCipher
from opshub.services.crm_sync_service import CrmSyncService
from opshub.services.crm_webhook import ZapierWebhookAdapter
from opshub.services.messaging import EmailAdapter, WhatsAppAdapter
from opshub.services.payment_link_service import PaymentLinkService
from opshub.services.payment_links import StripePaymentLinkAdapter
from opshub.services.record_service import RecordService
from opshub.services.video_service import Dispatcher, VideoService
from opshub.worker import enqueue_video_generation


async def get_http_client() -> AsyncIterator[httpx.AsyncClient]:
    async with httpx.AsyncClient(timeout=settings.HTTP_TIMEOUT_SECONDS) as client:
        yield client


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    return AsyncSessionLocal


def get_audit_log(
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory)
) -> AuditLogWriter:
    return AuditLogWriter(session_factory)


def get_credential_cipher() -> CredentialCipher:
    return CredentialCipher()


def get_video_dispatcher() -> Dispatcher:
    return enqueue_video_generation


def get_record_service(db: AsyncSession = Depends(get_db)) -> RecordService:
    return RecordService(db)


def get_payment_link_service(
    records: RecordService = Depends(get_record_service),
    audit: AuditLogWriter = Depends(get_audit_log),
    client: httpx.AsyncClient = Depends(get_http_client),
    cipher: CredentialCipher = Depends(get_credential_cipher),
) -> PaymentLinkService:
    return PaymentLinkService(
        records=records,
        audit=audit,
        payment_links=StripePaymentLinkAdapter(client),
        email=EmailAdapter(client),
        whatsapp=WhatsAppAdapter(client),
        cipher=cipher,
    )


def get_crm_sync_service(
    records: RecordService = Depends(get_record_service),
    audit: AuditLogWriter = Depends(get_audit_log),
    client: httpx.AsyncClient = Depends(get_http_client),
) -> CrmSyncService:
    return CrmSyncService(records, audit, ZapierWebhookAdapter(client))


def get_video_service(
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
    audit: AuditLogWriter = Depends(get_audit_log),
    dispatch: Dispatcher = Depends(get_video_dispatcher),
) -> VideoService:
    return VideoService(session_factory, audit, dispatch=dispatch)
