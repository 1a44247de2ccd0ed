"""
Integration settings routes.

Stores the user's Zapier webhook, CRM field mappings and payment provider key.
"""
from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field

from opshub.dependencies.auth import TokenPayload
from opshub.dependencies.rate_limit import check_rate_limit
from opshub.dependencies.services import get_credential_cipher, get_record_service
from opshub.errors import ValidationError
from opshub.logging_config import get_logger
from opshub.services.credentials import CredentialCipher
from opshub.services.crm_webhook import RecordType
from opshub.services.record_service import RecordService


router = APIRouter(prefix="/api/settings", tags=["settings"])

SUPPORTED_PAYMENT_PROVIDERS = {"stripe"}


class CrmSettingsRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    zapier_webhook: str | None = Field(default=None, alias="zapierWebhook")
    field_mappings: dict[str, dict[str, str]] = Field(default_factory=dict, alias="fieldMappings")


class PaymentProviderRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    provider_type: str = Field(default="stripe", alias="providerType")
    api_key: str = Field(alias="apiKey", min_length=1)


@router.put("/crm", response_model=dict)
async def save_crm_settings(
    request: CrmSettingsRequest,
    current_user: TokenPayload = Depends(check_rate_limit),
    records: RecordService = Depends(get_record_service),
):
    """Save the webhook and per-record-type field mappings."""
    valid_types = {t.value for t in RecordType}
    unknown = set(request.field_mappings) - valid_types
    if unknown:
        raise ValidationError(f"Invalid record type in field mappings: {', '.join(sorted(unknown))}")
    
    crm_settings = await records.save_crm_settings(
        current_user.sub, request.zapier_webhook, request.field_mappings
    )
    return {
        "success": True,
        "zapierWebhook": crm_settings.zapier_webhook,
        "fieldMappings": crm_settings.field_mappings,
    }


@router.put("/payment-provider", response_model=dict)
async def save_payment_provider(
    request: PaymentProviderRequest,
    current_user: TokenPayload = Depends(check_rate_limit),
    records: RecordService = Depends(get_record_service),
    cipher: CredentialCipher = Depends(get_credential_cipher),
):
    """Encrypt and store a provider API key. The key is never echoed back."""
    if request.provider_type not in SUPPORTED_PAYMENT_PROVIDERS:
        raise ValidationError(f"Unsupported payment provider: {request.provider_type}")
    
    provider_settings = await records.save_provider_credentials(
        current_user.sub, request.provider_type, cipher.encrypt(request.api_key)
    )
    get_logger(user_id=current_user.sub).info(
        "payment_provider_saved", provider_type=request.provider_type
    )
    return {
        "success": True,
        "providerType": provider_settings.provider_type,
        "isActive": provider_settings.is_active,
    }
