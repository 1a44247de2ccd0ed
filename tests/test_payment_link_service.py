"""Tests for payment link sharing end to end against SQLite and mocked providers."""
import httpx
import pytest
from sqlalchemy import select

from opshub.errors import MisconfiguredError, NotFoundError, ProviderError, ValidationError
from opshub.models.delivery import AnalyticsEvent, MessageDeliveryLog
from opshub.models.invoice import Invoice, PaymentProviderSettings
from opshub.services.messaging import EmailAdapter, WhatsAppAdapter
from opshub.services.payment_link_service import PaymentLinkService
from opshub.services.payment_links import StripePaymentLinkAdapter
from opshub.services.record_service import RecordService
from tests.helpers import OTHER_USER_ID, USER_ID, mock_client


PAYMENT_LINK = "https://buy.stripe.com/test_abc"


def provider_handler(stripe_status=200, email_status=200, whatsapp_status=200):
    calls = {"stripe": 0, "email": 0, "whatsapp": 0}

    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/v1/payment_links":
            calls["stripe"] += 1
            if stripe_status != 200:
                return httpx.Response(stripe_status, text="card_error")
            return httpx.Response(200, json={"id": "plink_1", "url": PAYMENT_LINK})
        if request.url.path == "/emails":
            calls["email"] += 1
            if email_status != 200:
                return httpx.Response(email_status, text="resend down")
            return httpx.Response(200, json={"id": "email_1"})
        if request.url.path == "/v2/contact/message":
            calls["whatsapp"] += 1
            if whatsapp_status != 200:
                return httpx.Response(whatsapp_status, text="respond.io down")
            return httpx.Response(200, json={"messageId": "wa_1"})
        return httpx.Response(404)

    return handler, calls


def build_service(db, audit, cipher, client, sleep) -> PaymentLinkService:
    return PaymentLinkService(
        records=RecordService(db),
        audit=audit,
        payment_links=StripePaymentLinkAdapter(client, sleep=sleep),
        email=EmailAdapter(client, sleep=sleep),
        whatsapp=WhatsAppAdapter(client, sleep=sleep),
        cipher=cipher,
    )


async def delivery_logs(session_factory) -> list[MessageDeliveryLog]:
    async with session_factory() as session:
        result = await session.execute(select(MessageDeliveryLog))
        return list(result.scalars().all())


@pytest.mark.asyncio
async def test_share_by_email(db, session_factory, audit, cipher, invoice_row, sleep):
    handler, calls = provider_handler()
    async with mock_client(handler) as client:
        service = build_service(db, audit, cipher, client, sleep)
        response = await service.share(USER_ID, invoice_row.id, "email", "ada@example.com", "Thanks!")

    assert response == {
        "success": True,
        "paymentLink": PAYMENT_LINK,
        "deliveryResult": "email_1",
        "message": "Payment link generated and sent via email",
    }
    logs = await delivery_logs(session_factory)
    assert len(logs) == 1
    assert logs[0].delivery_status == "success"
    assert logs[0].external_message_id == "email_1"
    assert logs[0].recipient_email == "ada@example.com"
    assert logs[0].sent_at is not None

    async with session_factory() as session:
        event = (await session.execute(select(AnalyticsEvent))).scalar_one()
        refreshed = await session.get(Invoice, invoice_row.id)
    assert event.event_type == "payment_link_shared"
    assert event.entity_type == "invoice"
    assert event.event_data["delivery_successful"] is True
    assert refreshed.notes == f"Payment link shared via email: {PAYMENT_LINK}"


@pytest.mark.asyncio
async def test_unreachable_channel_still_returns_link(db, session_factory, audit, cipher, invoice_row, sleep):
    handler, calls = provider_handler(whatsapp_status=503)
    async with mock_client(handler) as client:
        service = build_service(db, audit, cipher, client, sleep)
        response = await service.share(USER_ID, invoice_row.id, "whatsapp", "+447700900000")

    assert response["success"] is True
    assert response["paymentLink"] == PAYMENT_LINK
    assert "deliveryResult" not in response
    assert response["message"] == "Payment link generated and ready to send via whatsapp"
    assert calls["whatsapp"] == 3

    logs = await delivery_logs(session_factory)
    assert len(logs) == 1
    assert logs[0].delivery_status == "failed"
    assert logs[0].retry_count == 2
    assert "respond.io down" in logs[0].error_message
    assert logs[0].recipient_phone == "+447700900000"


@pytest.mark.asyncio
async def test_invoice_of_other_user_is_not_found(db, session_factory, audit, cipher, invoice_row, sleep):
    handler, calls = provider_handler()
    async with mock_client(handler) as client:
        service = build_service(db, audit, cipher, client, sleep)
        with pytest.raises(NotFoundError):
            await service.share(OTHER_USER_ID, invoice_row.id, "email", "ada@example.com")

    assert calls["stripe"] == 0
    logs = await delivery_logs(session_factory)
    assert len(logs) == 1
    assert logs[0].delivery_status == "failed"


@pytest.mark.asyncio
async def test_stripe_failure_logs_and_raises(db, session_factory, audit, cipher, invoice_row, sleep):
    handler, calls = provider_handler(stripe_status=500)
    async with mock_client(handler) as client:
        service = build_service(db, audit, cipher, client, sleep)
        with pytest.raises(ProviderError):
            await service.share(USER_ID, invoice_row.id, "email", "ada@example.com")

    assert calls["stripe"] == 3
    assert calls["email"] == 0
    logs = await delivery_logs(session_factory)
    assert len(logs) == 1
    assert logs[0].error_message.startswith("Payment link generation failed")


@pytest.mark.asyncio
async def test_unknown_delivery_method_rejected(db, audit, cipher, invoice_row, sleep):
    handler, calls = provider_handler()
    async with mock_client(handler) as client:
        service = build_service(db, audit, cipher, client, sleep)
        with pytest.raises(ValidationError):
            await service.share(USER_ID, invoice_row.id, "carrier_pigeon", "coop")

    assert calls == {"stripe": 0, "email": 0, "whatsapp": 0}


@pytest.mark.asyncio
async def test_inactive_provider_credentials_are_misconfigured(db, session_factory, audit, cipher, invoice_row, sleep):
    provider = (await db.execute(select(PaymentProviderSettings))).scalar_one()
    provider.is_active = False
    await db.commit()

    handler, calls = provider_handler()
    async with mock_client(handler) as client:
        service = build_service(db, audit, cipher, client, sleep)
        with pytest.raises(MisconfiguredError):
            await service.share(USER_ID, invoice_row.id, "email", "ada@example.com")

    assert calls == {"stripe": 0, "email": 0, "whatsapp": 0}
    logs = await delivery_logs(session_factory)
    assert len(logs) == 1
    assert logs[0].delivery_status == "failed"
    assert "not configured" in logs[0].error_message
