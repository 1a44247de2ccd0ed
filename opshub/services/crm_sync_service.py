"""
CRM sync service.

Pushes one lead, customer or invoice to an external CRM through the user's
Zapier webhook and records the outcome in external_crm_sync_logs.
"""
from dataclasses import dataclass
from typing import Any

from opshub.errors import MisconfiguredError, OpsHubError, ValidationError
from opshub.logging_config import get_logger
from opshub.models.base import utcnow
from opshub.models.crm import ExternalCrmSyncLog, SyncStatus
from opshub.sentry_config import capture_exception
from opshub.services.audit_log import AuditLogWriter
from opshub.services.crm_webhook import (
    ExternalCrm,
    RecordType,
    WebhookPayload,
    ZapierWebhookAdapter,
    map_fields,
    resolve_field_mappings,
)
from opshub.services.record_service import RecordService


# external_crm_sync_logs.record_id column width
MAX_RECORD_ID_LENGTH = 64


@dataclass
class SyncOutcome:
    success: bool
    error: str | None = None
    status_code: int = 200

    def as_response(self) -> dict[str, Any]:
        body: dict[str, Any] = {"success": self.success}
        if self.error is not None:
            body["error"] = self.error
        return body


def parse_sync_target(record_type: str, external_crm: str) -> tuple[RecordType, ExternalCrm]:
    """
    Raises:
        ValidationError: unknown record type or CRM
    """
    try:
        parsed_type = RecordType(record_type)
    except ValueError:
        raise ValidationError(f"Invalid record type: {record_type}")
    try:
        parsed_crm = ExternalCrm(external_crm)
    except ValueError:
        raise ValidationError(f"Invalid external CRM: {external_crm}")
    return parsed_type, parsed_crm


class CrmSyncService:
    """Orchestrates record fetch, field mapping, webhook delivery and logging."""

    def __init__(self, records: RecordService, audit: AuditLogWriter, webhook: ZapierWebhookAdapter):
        self.records = records
        self.audit = audit
        self.webhook = webhook

    async def sync(
        self,
        user_id: str,
        record_type: str,
        record_id: str,
        external_crm: str,
        zapier_webhook: str | None = None,
        field_mappings: dict[str, str] | None = None,
        retry_count: int = 0,
    ) -> SyncOutcome:
        """
        Sync one record.

        Validation errors are raised before any I/O. Every later failure,
        including a missing record or webhook, is returned as an unsuccessful
        outcome after a failed sync log row has been written.
        """
        parsed_type, parsed_crm = parse_sync_target(record_type, external_crm)
        if not record_id or len(record_id) > MAX_RECORD_ID_LENGTH:
            raise ValidationError(f"recordId must be 1-{MAX_RECORD_ID_LENGTH} characters")
        log = get_logger(
            user_id=user_id, record_type=parsed_type.value,
            record_id=record_id, external_crm=parsed_crm.value
        )

        sync_log = ExternalCrmSyncLog(
            user_id=user_id,
            record_type=parsed_type.value,
            record_id=record_id,
            external_crm=parsed_crm.value,
            retry_count=retry_count,
            zapier_webhook=zapier_webhook or "",
            field_mappings=field_mappings or {},
        )

        try:
            crm_settings = await self.records.get_crm_settings(user_id)
            webhook_url = zapier_webhook or (crm_settings.zapier_webhook if crm_settings else None)
            if not webhook_url:
                raise MisconfiguredError("No Zapier webhook configured")
            mappings = resolve_field_mappings(
                field_mappings,
                crm_settings.field_mappings if crm_settings else None,
                parsed_crm,
                parsed_type,
            )
            sync_log.zapier_webhook = webhook_url
            sync_log.field_mappings = mappings

            record = await self.records.get_record(parsed_type, record_id, user_id)
            result = await self.webhook.deliver(
                WebhookPayload(url=webhook_url, data={
                    **map_fields(record, mappings),
                    "record_type": parsed_type.value,
                    "external_crm": parsed_crm.value,
                })
            )
        except Exception as exc:
            if not isinstance(exc, OpsHubError):
                capture_exception(exc)
            log.error("crm_sync_failed", error=str(exc))
            sync_log.sync_status = SyncStatus.FAILED
            sync_log.error_message = str(exc) or "Unknown error occurred"
            await self.audit.append(sync_log)
            await self._track(user_id, sync_log, success=False)
            status_code = exc.status_code if isinstance(exc, OpsHubError) else 500
            return SyncOutcome(success=False, error=sync_log.error_message, status_code=status_code)

        sync_log.retry_count = retry_count + result.retry_count
        if result.success:
            sync_log.sync_status = SyncStatus.SUCCESS
            sync_log.synced_at = utcnow()
            log.info("crm_sync_succeeded", attempts=result.attempts)
        else:
            sync_log.sync_status = SyncStatus.FAILED
            sync_log.error_message = result.error
            log.warning("crm_sync_webhook_failed", attempts=result.attempts, error=result.error)
        await self.audit.append(sync_log)
        await self._track(user_id, sync_log, success=result.success)

        if result.success:
            return SyncOutcome(success=True)
        return SyncOutcome(success=False, error=result.error, status_code=400)

    async def _track(self, user_id: str, sync_log: ExternalCrmSyncLog, success: bool) -> None:
        await self.audit.track_event(
            user_id,
            sync_log.record_type,
            sync_log.record_id,
            "crm_sync_succeeded" if success else "crm_sync_failed",
            {
                "external_crm": sync_log.external_crm,
                "retry_count": sync_log.retry_count,
                "error": sync_log.error_message,
            },
        )
