"""
Record service for source records and per-user integration settings.

SECURITY: Invoice and settings queries MUST include the user_id filter.
"""
from typing import Any

from sqlalchemy import inspect, select
from sqlalchemy.ext.asyncio import AsyncSession

from opshub.errors import NotFoundError
from opshub.models.crm import Customer, ExternalCrmSettings, ExternalCrmSyncLog, Lead
from opshub.models.invoice import Invoice, PaymentProviderSettings
from opshub.services.crm_webhook import RecordType


RECORD_MODELS = {
    RecordType.LEAD: Lead,
    RecordType.CUSTOMER: Customer,
    RecordType.INVOICE: Invoice,
}


def record_to_dict(record) -> dict[str, Any]:
    """Column values of an ORM row keyed by attribute name."""
    return {attr.key: getattr(record, attr.key) for attr in inspect(record).mapper.column_attrs}


class RecordService:
    """Reads and writes the records the orchestrators work on."""
    
    def __init__(self, db: AsyncSession):
        self.db = db
    
    async def get_invoice_for_user(self, invoice_id: str, user_id: str) -> Invoice:
        """
        Get an invoice owned by the user.
        
        Raises:
            NotFoundError: invoice missing or owned by another user
        """
        stmt = select(Invoice).where(
            Invoice.id == invoice_id,
            Invoice.user_id == user_id
        )
        result = await self.db.execute(stmt)
        invoice = result.scalar_one_or_none()
        if invoice is None:
            raise NotFoundError(f"Invoice not found: {invoice_id}")
        return invoice
    
    async def get_active_provider_settings(
        self, user_id: str, provider_type: str = "stripe"
    ) -> PaymentProviderSettings | None:
        stmt = select(PaymentProviderSettings).where(
            PaymentProviderSettings.user_id == user_id,
            PaymentProviderSettings.provider_type == provider_type,
            PaymentProviderSettings.is_active.is_(True)
        )
        result = await self.db.execute(stmt)
        return result.scalars().first()
    
    async def get_crm_settings(self, user_id: str) -> ExternalCrmSettings | None:
        stmt = select(ExternalCrmSettings).where(ExternalCrmSettings.user_id == user_id)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()
    
    async def get_record(self, record_type: RecordType, record_id: str, user_id: str) -> dict[str, Any]:
        """
        Fetch a lead, customer or invoice owned by the user as a plain dict.
        
        Raises:
            NotFoundError: no such record for this user
        """
        model = RECORD_MODELS[record_type]
        stmt = select(model).where(model.id == record_id, model.user_id == user_id)
        result = await self.db.execute(stmt)
        record = result.scalar_one_or_none()
        if record is None:
            raise NotFoundError(f"{record_type.value} not found with ID: {record_id}")
        return record_to_dict(record)
    
    async def append_invoice_note(self, invoice: Invoice, note: str) -> None:
        invoice.notes = f"{invoice.notes}\n\n{note}" if invoice.notes else note
        await self.db.commit()
    
    async def save_crm_settings(
        self, user_id: str, zapier_webhook: str | None, field_mappings: dict[str, dict[str, str]]
    ) -> ExternalCrmSettings:
        crm_settings = await self.get_crm_settings(user_id)
        if crm_settings is None:
            crm_settings = ExternalCrmSettings(user_id=user_id)
            self.db.add(crm_settings)
        crm_settings.zapier_webhook = zapier_webhook
        crm_settings.field_mappings = field_mappings
        await self.db.commit()
        await self.db.refresh(crm_settings)
        return crm_settings
    
    async def save_provider_credentials(
        self, user_id: str, provider_type: str, encrypted_credentials: str
    ) -> PaymentProviderSettings:
        """Store new credentials and make them the only active set for the provider."""
        stmt = select(PaymentProviderSettings).where(
            PaymentProviderSettings.user_id == user_id,
            PaymentProviderSettings.provider_type == provider_type
        )
        result = await self.db.execute(stmt)
        for existing in result.scalars().all():
            existing.is_active = False
        provider_settings = PaymentProviderSettings(
            user_id=user_id,
            provider_type=provider_type,
            encrypted_credentials=encrypted_credentials,
            is_active=True
        )
        self.db.add(provider_settings)
        await self.db.commit()
        await self.db.refresh(provider_settings)
        return provider_settings
    
    async def list_sync_logs(self, user_id: str, limit: int = 50) -> list[ExternalCrmSyncLog]:
        """Most recent CRM sync log rows for the user."""
        stmt = (
            select(ExternalCrmSyncLog)
            .where(ExternalCrmSyncLog.user_id == user_id)
            .order_by(ExternalCrmSyncLog.created_at.desc())
            .limit(limit)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())
