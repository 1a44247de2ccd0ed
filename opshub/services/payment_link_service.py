"""
Payment link service.

Generates a Stripe payment link for an invoice and sends it to the customer
by email or WhatsApp. A failed send is a soft failure: the link is still
returned and the failure is only recorded in the delivery log.
"""
from typing import Any

from opshub.errors import MisconfiguredError, ValidationError
from opshub.logging_config import get_logger
from opshub.models.base import utcnow
from opshub.models.delivery import MessageDeliveryLog
from opshub.services.audit_log import AuditLogWriter
from opshub.services.credentials import CredentialCipher
from opshub.services.delivery import DeliveryChannel, DeliveryResult
from opshub.services.messaging import DeliveryMethod, PaymentRequestMessage
from opshub.services.payment_links import PaymentLinkPayload, StripePaymentLinkAdapter
from opshub.services.record_service import RecordService


class PaymentLinkService:
    """Orchestrates payment link generation, delivery and logging."""
    
    def __init__(
        self,
        records: RecordService,
        audit: AuditLogWriter,
        payment_links: StripePaymentLinkAdapter,
        email: DeliveryChannel,
        whatsapp: DeliveryChannel,
        cipher: CredentialCipher,
    ):
        self.records = records
        self.audit = audit
        self.payment_links = payment_links
        self.email = email
        self.whatsapp = whatsapp
        self.cipher = cipher
    
    def channel_for(self, method: DeliveryMethod) -> DeliveryChannel:
        match method:
            case DeliveryMethod.EMAIL:
                return self.email
            case DeliveryMethod.WHATSAPP:
                return self.whatsapp
    
    async def _stripe_api_key(self, user_id: str) -> str:
        provider_settings = await self.records.get_active_provider_settings(user_id, "stripe")
        if provider_settings is None or not provider_settings.encrypted_credentials:
            raise MisconfiguredError("Stripe payment provider not configured")
        return self.cipher.decrypt(provider_settings.encrypted_credentials)
    
    async def share(
        self,
        user_id: str,
        invoice_id: str,
        delivery_method: str,
        recipient_contact: str,
        custom_message: str | None = None,
    ) -> dict[str, Any]:
        """
        Generate a payment link for the user's invoice and send it.
        
        Exactly one message delivery log row is written per call, whether
        link generation, delivery, both or neither succeed.
        
        Returns:
            {"success", "paymentLink", "deliveryResult"?, "message"}
        
        Raises:
            ValidationError: unknown delivery method
            NotFoundError: invoice missing or owned by another user
            MisconfiguredError: no active Stripe credentials
            ProviderError: Stripe failed after all attempts
        """
        try:
            method = DeliveryMethod(delivery_method)
        except ValueError:
            raise ValidationError(f"Invalid delivery method: {delivery_method}")
        if not recipient_contact:
            raise ValidationError("recipientContact is required")
        
        log = get_logger(user_id=user_id, invoice_id=invoice_id, delivery_method=method.value)
        delivery_log = MessageDeliveryLog(
            user_id=user_id,
            invoice_id=invoice_id,
            message_type=method.value,
            recipient_email=recipient_contact if method == DeliveryMethod.EMAIL else None,
            recipient_phone=recipient_contact if method == DeliveryMethod.WHATSAPP else None,
        )
        
        try:
            invoice = await self.records.get_invoice_for_user(invoice_id, user_id)
            api_key = await self._stripe_api_key(user_id)
            link = await self.payment_links.deliver(
                PaymentLinkPayload(
                    api_key=api_key,
                    invoice_id=invoice.id,
                    amount=invoice.amount,
                    currency=invoice.currency,
                    description=invoice.project_title,
                    customer_email=invoice.customer_email,
                )
            )
        except Exception as exc:
            log.error("payment_link_generation_failed", error=str(exc))
            delivery_log.delivery_status = "failed"
            delivery_log.error_message = f"Payment link generation failed: {exc}"
            await self.audit.append(delivery_log)
            raise
        
        payment_link = link.url
        log.info("payment_link_generated")
        
        channel = self.channel_for(method)
        try:
            result = await channel.deliver(
                PaymentRequestMessage(
                    recipient=recipient_contact,
                    invoice_number=invoice.invoice_number,
                    customer_name=invoice.customer_name,
                    project_title=invoice.project_title,
                    amount=invoice.amount,
                    currency=invoice.currency,
                    due_date=invoice.due_date,
                    payment_link=payment_link,
                    custom_message=custom_message,
                )
            )
        except Exception as exc:
            log.warning("payment_link_delivery_failed", error=str(exc))
            result = DeliveryResult(
                success=False,
                error=str(exc),
                attempts=getattr(channel, "last_attempts", 1) or 1,
            )
        
        delivery_log.message_content = f"Payment link for invoice {invoice.invoice_number}: {payment_link}"
        delivery_log.delivery_status = "success" if result.success else "failed"
        delivery_log.external_message_id = result.external_id
        delivery_log.error_message = result.error
        delivery_log.retry_count = result.retry_count
        delivery_log.sent_at = utcnow() if result.success else None
        await self.audit.append(delivery_log)
        
        await self.audit.track_event(
            user_id,
            "invoice",
            invoice.id,
            "payment_link_shared",
            {
                "delivery_method": method.value,
                "recipient": recipient_contact,
                "payment_link": payment_link,
                "delivery_successful": result.success,
            },
        )
        
        try:
            await self.records.append_invoice_note(
                invoice, f"Payment link shared via {method.value}: {payment_link}"
            )
        except Exception as exc:
            log.error("invoice_note_update_failed", error=str(exc))
        
        response: dict[str, Any] = {
            "success": True,
            "paymentLink": payment_link,
            "message": (
                f"Payment link generated and {'sent' if result.success else 'ready to send'} "
                f"via {method.value}"
            ),
        }
        if result.success:
            response["deliveryResult"] = result.external_id
        return response
