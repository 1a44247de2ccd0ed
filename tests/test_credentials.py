"""Tests for credential encryption and log redaction."""
import pytest
from cryptography.fernet import Fernet

from opshub.errors import MisconfiguredError
from opshub.logging_config import redact_secrets
from opshub.services.credentials import CredentialCipher


def test_encrypt_round_trip_hides_secret():
    cipher = CredentialCipher(Fernet.generate_key().decode())
    token = cipher.encrypt("sk_live_abc")

    assert "sk_live_abc" not in token
    assert cipher.decrypt(token) == "sk_live_abc"


def test_token_from_another_key_is_rejected():
    token = CredentialCipher(Fernet.generate_key().decode()).encrypt("sk_live_abc")

    with pytest.raises(MisconfiguredError):
        CredentialCipher(Fernet.generate_key().decode()).decrypt(token)


def test_invalid_key_is_misconfigured():
    with pytest.raises(MisconfiguredError):
        CredentialCipher("not-a-fernet-key").encrypt("x")


def test_log_processor_redacts_secret_fields():
    event = redact_secrets(None, "info", {
        "event": "provider_call",
        "api_key": "sk_live_abc",
        "Authorization": "Bearer abc",
        "invoice_id": "inv-1",
    })

    assert event["api_key"] == "<redacted>"
    assert event["Authorization"] == "<redacted>"
    assert event["invoice_id"] == "inv-1"
