"""
Error taxonomy shared by adapters, orchestrators and routes.

Every error carries the HTTP status it maps to; the exception handlers in
`opshub.main` render them as `{"success": false, "error": message}`.
"""


class OpsHubError(Exception):
    """Base class for errors surfaced to API callers."""
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class AuthError(OpsHubError):
    """Missing or invalid bearer token."""
    status_code = 401


class ValidationError(OpsHubError):
    """Request failed validation before any external call."""
    status_code = 400


class NotFoundError(OpsHubError):
    """Source record absent or owned by another user."""
    status_code = 404


class MisconfiguredError(OpsHubError):
    """Provider credentials or webhook not configured. Never retried."""
    status_code = 400


class ProviderError(OpsHubError):
    """An external API answered with a non-2xx status or a failure state."""
    status_code = 502

    def __init__(self, provider: str, message: str, upstream_status: int | None = None):
        super().__init__(f"{provider} API error: {message}")
        self.provider = provider
        self.upstream_status = upstream_status


class GenerationTimeoutError(OpsHubError, TimeoutError):
    """Video task did not reach a terminal status within the poll budget."""
    status_code = 504


class RateLimitError(OpsHubError):
    """Caller exceeded the per-user request window."""
    status_code = 429

    def __init__(self, retry_after: int):
        super().__init__("Rate limit exceeded. Please try again later.")
        self.retry_after = retry_after
