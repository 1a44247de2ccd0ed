"""
Email (Resend) and WhatsApp (respond.io) adapters for payment requests.

Both render the same invoice details; the email body is HTML, the WhatsApp
body plain text.
"""
import asyncio
import enum
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from html import escape

import httpx

from opshub.config import settings
from opshub.errors import MisconfiguredError
from opshub.logging_config import get_logger
from opshub.routes.metrics import track_delivery
from opshub.services.delivery import DeliveryResult, raise_for_provider_status
from opshub.services.retry import BackoffExecutor, BackoffStrategy, RetryPolicy


MESSAGE_POLICY = RetryPolicy(max_attempts=3, base_delay=1.0, strategy=BackoffStrategy.EXPONENTIAL)


class DeliveryMethod(str, enum.Enum):
    """How a payment link reaches the customer."""
    EMAIL = "email"
    WHATSAPP = "whatsapp"


@dataclass
class PaymentRequestMessage:
    """Normalized payload for both messaging channels."""
    recipient: str
    invoice_number: str
    customer_name: str
    project_title: str
    amount: Decimal
    currency: str
    due_date: date | None
    payment_link: str
    custom_message: str | None = None

    @property
    def amount_display(self) -> str:
        return f"{self.currency} {self.amount}"

    @property
    def due_date_display(self) -> str:
        return self.due_date.isoformat() if self.due_date else "on receipt"


def render_email_html(message: PaymentRequestMessage) -> str:
    custom = f"<p>{escape(message.custom_message)}</p>" if message.custom_message else ""
    return f"""
    <h2>Payment Request - {escape(message.invoice_number)}</h2>
    <p>Dear {escape(message.customer_name)},</p>
    {custom}
    <p>Please find your invoice details below:</p>
    <ul>
      <li><strong>Invoice Number:</strong> {escape(message.invoice_number)}</li>
      <li><strong>Project:</strong> {escape(message.project_title)}</li>
      <li><strong>Amount:</strong> {escape(message.amount_display)}</li>
      <li><strong>Due Date:</strong> {escape(message.due_date_display)}</li>
    </ul>
    <p>
      <a href="{escape(message.payment_link, quote=True)}"
         style="background-color: #007cba; color: white; padding: 12px 24px; text-decoration: none; border-radius: 6px; display: inline-block;">
        Pay Now
      </a>
    </p>
    <p>If you have any questions, please don't hesitate to contact us.</p>
    <p>Best regards,<br>Your Construction Team</p>
    """


def render_whatsapp_text(message: PaymentRequestMessage) -> str:
    intro = message.custom_message or "Please find your invoice payment link below:"
    return "\n".join([
        f"*Payment Request - {message.invoice_number}*",
        "",
        f"Hello {message.customer_name},",
        "",
        intro,
        "",
        "*Invoice Details:*",
        f"- Project: {message.project_title}",
        f"- Amount: {message.amount_display}",
        f"- Due Date: {message.due_date_display}",
        "",
        f"*Pay Now:* {message.payment_link}",
        "",
        "If you have any questions, please reply to this message.",
    ])


class _MessagingAdapter:
    name = "message"
    provider = "Messaging"

    def __init__(self, client: httpx.AsyncClient, policy: RetryPolicy = MESSAGE_POLICY, sleep=asyncio.sleep):
        self.client = client
        self.policy = policy
        self._sleep = sleep
        self.last_attempts = 0

    def _api_key(self) -> str:
        raise NotImplementedError

    async def _send(self, api_key: str, message: PaymentRequestMessage) -> str:
        raise NotImplementedError

    async def deliver(self, message: PaymentRequestMessage) -> DeliveryResult:
        """
        Send the payment request.

        Raises:
            MisconfiguredError: provider API key not set (not retried).
            ProviderError: provider kept failing after all attempts.
        """
        api_key = self._api_key()
        executor = BackoffExecutor(self.policy, name=f"{self.name}_send", sleep=self._sleep)
        try:
            message_id = await executor.run(lambda: self._send(api_key, message))
        except Exception:
            self.last_attempts = executor.attempts
            track_delivery(self.name, "failed")
            raise
        self.last_attempts = executor.attempts
        track_delivery(self.name, "success")
        get_logger(channel=self.name).info(
            "payment_request_sent", invoice_number=message.invoice_number, message_id=message_id
        )
        return DeliveryResult(success=True, external_id=message_id, attempts=executor.attempts)


class EmailAdapter(_MessagingAdapter):
    """Sends HTML payment requests through Resend."""
    name = "email"
    provider = "Email"

    def _api_key(self) -> str:
        if not settings.RESEND_API_KEY:
            raise MisconfiguredError("RESEND_API_KEY not configured")
        return settings.RESEND_API_KEY

    async def _send(self, api_key: str, message: PaymentRequestMessage) -> str:
        response = await self.client.post(
            f"{settings.RESEND_API_BASE}/emails",
            json={
                "from": settings.EMAIL_FROM,
                "to": [message.recipient],
                "subject": f"Payment Request - {message.invoice_number}",
                "html": render_email_html(message),
            },
            headers={"Authorization": f"Bearer {api_key}"},
        )
        raise_for_provider_status(response, self.provider)
        return response.json()["id"]


class WhatsAppAdapter(_MessagingAdapter):
    """Sends plain-text payment requests through respond.io."""
    name = "whatsapp"
    provider = "WhatsApp"

    def _api_key(self) -> str:
        if not settings.RESPOND_IO_API_KEY:
            raise MisconfiguredError("RESPOND_IO_API_KEY not configured")
        return settings.RESPOND_IO_API_KEY

    async def _send(self, api_key: str, message: PaymentRequestMessage) -> str:
        response = await self.client.post(
            f"{settings.RESPOND_IO_API_BASE}/v2/contact/message",
            json={
                "channelId": "whatsapp",
                "contact": {"phone": message.recipient},
                "message": {"type": "text", "text": render_whatsapp_text(message)},
            },
            headers={"Authorization": f"Bearer {api_key}"},
        )
        raise_for_provider_status(response, self.provider)
        return response.json()["messageId"]
