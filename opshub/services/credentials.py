"""
Provider credential encryption.

Payment provider API keys are stored Fernet-encrypted; the key comes from
CREDENTIALS_ENCRYPTION_KEY and is never persisted alongside the data.
"""
from cryptography.fernet import Fernet, InvalidToken

from opshub.config import settings
from opshub.errors import MisconfiguredError


class CredentialCipher:
    """Encrypts and decrypts provider credentials."""

    def __init__(self, key: str | None = None):
        self._key = key

    def _fernet(self) -> Fernet:
        key = self._key or settings.CREDENTIALS_ENCRYPTION_KEY
        if not key:
            raise MisconfiguredError("CREDENTIALS_ENCRYPTION_KEY not configured")
        try:
            return Fernet(key)
        except (ValueError, TypeError) as exc:
            raise MisconfiguredError("CREDENTIALS_ENCRYPTION_KEY is not a valid Fernet key") from exc

    def encrypt(self, secret: str) -> str:
        return self._fernet().encrypt(secret.encode()).decode()

    def decrypt(self, token: str) -> str:
        try:
            return self._fernet().decrypt(token.encode()).decode()
        except InvalidToken as exc:
            raise MisconfiguredError("Stored payment provider credentials could not be decrypted") from exc
