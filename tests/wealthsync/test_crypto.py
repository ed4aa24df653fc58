# ruff: noqa: S101,S106
"""Tests for AES-256-GCM helpers."""

import pytest

from wealthsync.crypto import (
    BankCredentials,
    decrypt,
    decrypt_bank_credentials,
    encrypt,
    encrypt_bank_credentials,
)
from wealthsync.errors import ConfigurationError, EncryptionError

KEY = "0123456789abcdef" * 4
OTHER_KEY = "f" * 64


class TestEncryption:
    """encrypt/decrypt behaviour."""

    @pytest.mark.unit
    def test_payload_format(self) -> None:
        iv, tag, ciphertext = encrypt("access-sandbox-123", KEY).split(":")
        assert len(iv) == 32
        assert len(tag) == 32
        assert len(ciphertext) == len("access-sandbox-123") * 2

    @pytest.mark.unit
    def test_decrypt_recovers_plaintext(self) -> None:
        assert decrypt(encrypt("שלום token", KEY), KEY) == "שלום token"

    @pytest.mark.unit
    def test_fresh_iv_per_call(self) -> None:
        assert encrypt("same", KEY) != encrypt("same", KEY)

    @pytest.mark.unit
    def test_missing_key(self) -> None:
        with pytest.raises(ConfigurationError, match="ENCRYPTION_KEY"):
            encrypt("value", None)

    @pytest.mark.unit
    def test_wrong_key_fails_authentication(self) -> None:
        payload = encrypt("value", KEY)
        with pytest.raises(EncryptionError, match="authentication"):
            decrypt(payload, OTHER_KEY)

    @pytest.mark.unit
    @pytest.mark.parametrize("payload", ["abc", "a:b", "::00", "zz:zz:zz"])
    def test_malformed_payload(self, payload: str) -> None:
        with pytest.raises(EncryptionError, match="Invalid encrypted string format"):
            decrypt(payload, KEY)


class TestBankCredentials:
    """Credential serialization."""

    @pytest.mark.unit
    def test_credentials_roundtrip_through_json(self) -> None:
        creds = BankCredentials(user_id="bankuser", password="s3cret")
        assert decrypt_bank_credentials(encrypt_bank_credentials(creds, KEY), KEY) == creds

    @pytest.mark.unit
    def test_repr_hides_secrets(self) -> None:
        text = repr(BankCredentials(user_id="bankuser", password="s3cret"))
        assert "s3cret" not in text
        assert "bankuser" not in text

    @pytest.mark.unit
    def test_non_credential_payload(self) -> None:
        with pytest.raises(EncryptionError, match="malformed"):
            decrypt_bank_credentials(encrypt('{"user": 1}', KEY), KEY)
