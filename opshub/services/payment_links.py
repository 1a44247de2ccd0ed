"""
Stripe payment-link adapter.

Creates a hosted payment link for one invoice amount.
"""
import asyncio
from dataclasses import dataclass
from decimal import Decimal

import httpx

from opshub.config import settings
from opshub.logging_config import get_logger
from opshub.routes.metrics import track_delivery
from opshub.services.delivery import DeliveryResult, raise_for_provider_status
from opshub.services.retry import BackoffExecutor, BackoffStrategy, RetryPolicy


PAYMENT_LINK_POLICY = RetryPolicy(max_attempts=3, base_delay=1.0, strategy=BackoffStrategy.EXPONENTIAL)


@dataclass
class PaymentLinkPayload:
    """What Stripe needs to build a single line-item link."""
    api_key: str
    invoice_id: str
    amount: Decimal
    currency: str
    description: str
    customer_email: str | None = None


def to_minor_units(amount: Decimal) -> int:
    """Convert a major-unit amount (e.g. pounds) to minor units (pence)."""
    return int((Decimal(amount) * 100).quantize(Decimal("1")))


class StripePaymentLinkAdapter:
    """Builds payment links through the Stripe REST API."""
    name = "stripe"

    def __init__(self, client: httpx.AsyncClient, policy: RetryPolicy = PAYMENT_LINK_POLICY, sleep=asyncio.sleep):
        self.client = client
        self.policy = policy
        self._sleep = sleep

    def build_form(self, payload: PaymentLinkPayload) -> dict[str, str]:
        redirect_url = f"{settings.PUBLIC_SITE_URL}/payment-success?invoice={payload.invoice_id}"
        return {
            "line_items[0][price_data][currency]": payload.currency.lower(),
            "line_items[0][price_data][product_data][name]": payload.description,
            "line_items[0][price_data][unit_amount]": str(to_minor_units(payload.amount)),
            "line_items[0][quantity]": "1",
            "metadata[invoice_id]": payload.invoice_id,
            "metadata[customer_email]": payload.customer_email or "",
            "after_completion[type]": "redirect",
            "after_completion[redirect][url]": redirect_url,
        }

    async def _create(self, payload: PaymentLinkPayload) -> dict:
        response = await self.client.post(
            f"{settings.STRIPE_API_BASE}/v1/payment_links",
            data=self.build_form(payload),
            headers={"Authorization": f"Bearer {payload.api_key}"},
        )
        raise_for_provider_status(response, "Stripe")
        return response.json()

    async def deliver(self, payload: PaymentLinkPayload) -> DeliveryResult:
        """
        Create the payment link.

        Raises:
            ProviderError: Stripe kept answering non-2xx after all attempts.
        """
        log = get_logger(channel=self.name, invoice_id=payload.invoice_id)
        executor = BackoffExecutor(self.policy, name="stripe_payment_link", sleep=self._sleep)
        try:
            link = await executor.run(lambda: self._create(payload))
        except Exception:
            track_delivery(self.name, "failed")
            raise
        track_delivery(self.name, "success")
        log.info("payment_link_created", attempts=executor.attempts)
        return DeliveryResult(
            success=True,
            external_id=link.get("id"),
            url=link["url"],
            attempts=executor.attempts,
        )
