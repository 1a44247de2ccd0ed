"""
Shared contract for delivery channel adapters.

Every adapter exposes `deliver(payload) -> DeliveryResult`, so orchestrators
only choose which adapter to call.
"""
from dataclasses import dataclass
from typing import Any, Protocol

import httpx

from opshub.errors import ProviderError


@dataclass
class DeliveryResult:
    """Normalized outcome of one delivery task."""
    success: bool
    external_id: str | None = None
    url: str | None = None
    duration: int | None = None
    error: str | None = None
    attempts: int = 1
    details: dict[str, Any] | None = None

    @property
    def retry_count(self) -> int:
        return max(self.attempts - 1, 0)


class DeliveryChannel(Protocol):
    name: str

    async def deliver(self, payload: Any) -> DeliveryResult:
        ...


def raise_for_provider_status(response: httpx.Response, provider: str) -> None:
    """Raise `ProviderError` with the upstream body when the call was not 2xx."""
    if response.is_success:
        return
    raise ProviderError(provider, response.text or response.reason_phrase, response.status_code)
