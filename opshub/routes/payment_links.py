"""
Payment link routes.

Generates a Stripe link for an invoice and sends it to the customer.
"""
from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field

from opshub.dependencies.auth import TokenPayload
from opshub.dependencies.rate_limit import check_rate_limit
from opshub.dependencies.services import get_payment_link_service
from opshub.services.payment_link_service import PaymentLinkService


router = APIRouter(prefix="/api/payment-links", tags=["payment-links"])


class SharePaymentLinkRequest(BaseModel):
    """Request model for sharing a payment link."""
    model_config = ConfigDict(populate_by_name=True)

    invoice_id: str = Field(alias="invoiceId")
    delivery_method: str = Field(alias="deliveryMethod")  # email or whatsapp
    recipient_contact: str = Field(alias="recipientContact")
    custom_message: str | None = Field(default=None, alias="customMessage")


@router.post("/share", response_model=dict)
async def share_payment_link(
    request: SharePaymentLinkRequest,
    current_user: TokenPayload = Depends(check_rate_limit),
    service: PaymentLinkService = Depends(get_payment_link_service),
):
    """
    Generate a payment link and deliver it by email or WhatsApp.
    
    A failed delivery still returns the link; only the delivery log records it.
    """
    return await service.share(
        user_id=current_user.sub,
        invoice_id=request.invoice_id,
        delivery_method=request.delivery_method,
        recipient_contact=request.recipient_contact,
        custom_message=request.custom_message,
    )
