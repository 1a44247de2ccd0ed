"""
Zapier CRM-webhook adapter and field mapping.

Records are flattened through a field mapping and POSTed as JSON to the
user's Zapier webhook, which forwards them to the external CRM.
"""
import asyncio
import enum
from dataclasses import dataclass
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any

import httpx

from opshub.logging_config import get_logger
from opshub.routes.metrics import track_delivery
from opshub.services.delivery import DeliveryResult
from opshub.services.retry import BackoffExecutor, RetryPolicy


SYNC_SOURCE = "Construyo CRM"


class RecordType(str, enum.Enum):
    LEAD = "lead"
    CUSTOMER = "customer"
    INVOICE = "invoice"


class ExternalCrm(str, enum.Enum):
    GOOGLE_SHEETS = "google_sheets"
    HUBSPOT = "hubspot"
    PIPEDRIVE = "pipedrive"
    ZOHO = "zoho"


DEFAULT_FIELD_MAPPINGS: dict[ExternalCrm, dict[RecordType, dict[str, str]]] = {
    ExternalCrm.HUBSPOT: {
        RecordType.LEAD: {
            "first_name": "firstname",
            "last_name": "lastname",
            "email": "email",
            "phone": "phone",
            "company_name": "company",
            "project_type": "lead_source",
            "status": "lifecyclestage",
            "notes": "notes",
        },
        RecordType.CUSTOMER: {
            "first_name": "firstname",
            "last_name": "lastname",
            "email": "email",
            "phone": "phone",
            "company_name": "company",
        },
        RecordType.INVOICE: {
            "amount": "amount",
            "currency": "currency",
            "status": "deal_stage",
        },
    },
    ExternalCrm.GOOGLE_SHEETS: {
        RecordType.LEAD: {
            "first_name": "First Name",
            "last_name": "Last Name",
            "email": "Email",
            "phone": "Phone",
            "company_name": "Company",
            "project_type": "Project Type",
            "status": "Status",
            "created_at": "Date Created",
        },
        RecordType.CUSTOMER: {
            "first_name": "First Name",
            "last_name": "Last Name",
            "email": "Email",
            "phone": "Phone",
            "company_name": "Company",
        },
        RecordType.INVOICE: {
            "amount": "Amount",
            "currency": "Currency",
            "status": "Status",
            "created_at": "Date",
        },
    },
    ExternalCrm.PIPEDRIVE: {
        RecordType.LEAD: {
            "first_name": "person_name",
            "last_name": "person_name",
            "email": "email",
            "phone": "phone",
            "company_name": "org_name",
            "project_type": "source",
            "status": "status",
        },
        RecordType.CUSTOMER: {
            "first_name": "name",
            "last_name": "name",
            "email": "email",
            "phone": "phone",
            "company_name": "org_name",
        },
        RecordType.INVOICE: {
            "amount": "value",
            "currency": "currency",
            "status": "status",
        },
    },
    ExternalCrm.ZOHO: {
        RecordType.LEAD: {
            "first_name": "First_Name",
            "last_name": "Last_Name",
            "email": "Email",
            "phone": "Phone",
            "company_name": "Company",
            "project_type": "Lead_Source",
            "status": "Lead_Status",
        },
        RecordType.CUSTOMER: {
            "first_name": "First_Name",
            "last_name": "Last_Name",
            "email": "Email",
            "phone": "Phone",
            "company_name": "Account_Name",
        },
        RecordType.INVOICE: {
            "amount": "Amount",
            "currency": "Currency",
            "status": "Status",
        },
    },
}


def resolve_field_mappings(
    override: dict[str, str] | None,
    stored: dict[str, Any] | None,
    crm: ExternalCrm,
    record_type: RecordType,
) -> dict[str, str]:
    """Pick the first non-empty mapping: request override, user's stored mapping, provider default."""
    if override:
        return override
    if stored and stored.get(record_type.value):
        return stored[record_type.value]
    return dict(DEFAULT_FIELD_MAPPINGS[crm][record_type])


def to_json_value(value: Any) -> Any:
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, enum.Enum):
        return value.value
    return value


def map_fields(record: dict[str, Any], mappings: dict[str, str], now: datetime | None = None) -> dict[str, Any]:
    """
    Rename record fields for the external CRM and attach sync metadata.

    Null or missing source fields are skipped.
    """
    mapped = {
        target: to_json_value(record[source])
        for source, target in mappings.items()
        if record.get(source) is not None
    }
    mapped["construyo_id"] = record.get("id")
    mapped["sync_timestamp"] = (now or datetime.now(timezone.utc)).isoformat()
    mapped["source"] = SYNC_SOURCE
    return mapped


class WebhookStatusError(Exception):
    """The webhook answered with a non-2xx status."""

    def __init__(self, status_code: int, reason: str):
        super().__init__(f"HTTP {status_code}: {reason}")
        self.status_code = status_code


class WebhookRetryPolicy(RetryPolicy):
    """
    Retries 429 exponentially, 5xx and network errors linearly.

    Other 4xx responses are final.
    """

    def __init__(self, max_retries: int = 3, rate_limit_delay: float = 1.0,
                 server_error_delay: float = 2.0, network_delay: float = 1.0):
        super().__init__(max_attempts=max_retries + 1, base_delay=rate_limit_delay)
        self.server_error_delay = server_error_delay
        self.network_delay = network_delay

    def should_retry(self, exc: BaseException) -> bool:
        if isinstance(exc, WebhookStatusError):
            return exc.status_code == 429 or exc.status_code >= 500
        return isinstance(exc, httpx.TransportError)

    def delay(self, attempt: int, exc: BaseException | None = None) -> float:
        if isinstance(exc, WebhookStatusError):
            if exc.status_code == 429:
                return self.base_delay * 2 ** (attempt - 1)
            return self.server_error_delay * attempt
        return self.network_delay * attempt


@dataclass
class WebhookPayload:
    url: str
    data: dict[str, Any]


class ZapierWebhookAdapter:
    """POSTs mapped CRM records to a Zapier catch hook."""
    name = "crm_webhook"

    def __init__(self, client: httpx.AsyncClient, policy: RetryPolicy | None = None, sleep=asyncio.sleep):
        self.client = client
        self.policy = policy or WebhookRetryPolicy()
        self._sleep = sleep

    async def _post(self, payload: WebhookPayload) -> str:
        response = await self.client.post(payload.url, json=payload.data)
        if not response.is_success:
            raise WebhookStatusError(response.status_code, response.reason_phrase)
        return response.text

    async def deliver(self, payload: WebhookPayload) -> DeliveryResult:
        """Send the record. Never raises; failures come back as `success=False`."""
        log = get_logger(channel=self.name)
        executor = BackoffExecutor(self.policy, name="zapier_webhook", sleep=self._sleep)
        try:
            body = await executor.run(lambda: self._post(payload))
        except Exception as exc:
            track_delivery(self.name, "failed")
            log.error("webhook_delivery_failed", attempts=executor.attempts, error=str(exc))
            return DeliveryResult(success=False, error=str(exc) or "Unknown error occurred",
                                  attempts=executor.attempts)
        track_delivery(self.name, "success")
        log.info("webhook_delivered", attempts=executor.attempts, response=body[:200])
        return DeliveryResult(success=True, attempts=executor.attempts)
