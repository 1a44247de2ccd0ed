"""
CRM sync routes.

Pushes leads, customers and invoices to an external CRM through Zapier.
"""
from datetime import datetime

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from opshub.dependencies.auth import TokenPayload
from opshub.dependencies.rate_limit import check_rate_limit
from opshub.dependencies.services import get_crm_sync_service, get_record_service
from opshub.services.crm_sync_service import CrmSyncService
from opshub.services.record_service import RecordService


router = APIRouter(prefix="/api/crm-sync", tags=["crm-sync"])


class CrmSyncRequest(BaseModel):
    """Request model for syncing one record."""
    model_config = ConfigDict(populate_by_name=True)

    record_type: str = Field(alias="recordType")
    record_id: str = Field(alias="recordId", min_length=1, max_length=64)
    external_crm: str = Field(alias="externalCrm")
    zapier_webhook: str | None = Field(default=None, alias="zapierWebhook")
    field_mappings: dict[str, str] | None = Field(default=None, alias="fieldMappings")
    retry_count: int = Field(default=0, ge=0, alias="retryCount")


class SyncLogResponse(BaseModel):
    """Response model for a sync log row."""
    id: str
    recordType: str
    recordId: str
    externalCrm: str
    syncStatus: str
    errorMessage: str | None = None
    retryCount: int
    syncedAt: datetime | None = None
    createdAt: datetime | None = None


@router.post("")
async def sync_record(
    request: CrmSyncRequest,
    current_user: TokenPayload = Depends(check_rate_limit),
    service: CrmSyncService = Depends(get_crm_sync_service),
):
    """Sync a record; 200 on success, 400 when the webhook refused it, 500 on unexpected errors."""
    outcome = await service.sync(
        user_id=current_user.sub,
        record_type=request.record_type,
        record_id=request.record_id,
        external_crm=request.external_crm,
        zapier_webhook=request.zapier_webhook,
        field_mappings=request.field_mappings,
        retry_count=request.retry_count,
    )
    return JSONResponse(status_code=outcome.status_code, content=outcome.as_response())


@router.get("/logs", response_model=list[SyncLogResponse])
async def list_sync_logs(
    limit: int = Query(50, ge=1, le=200),
    current_user: TokenPayload = Depends(check_rate_limit),
    records: RecordService = Depends(get_record_service),
):
    """Most recent sync attempts for the current user."""
    logs = await records.list_sync_logs(current_user.sub, limit)
    return [
        SyncLogResponse(
            id=log.id,
            recordType=log.record_type,
            recordId=log.record_id,
            externalCrm=log.external_crm,
            syncStatus=log.sync_status.value,
            errorMessage=log.error_message,
            retryCount=log.retry_count,
            syncedAt=log.synced_at,
            createdAt=log.created_at,
        )
        for log in logs
    ]
