"""AES-256-GCM encryption for aggregator tokens and bank credentials.

Ciphertexts are stored as ``<iv hex>:<auth tag hex>:<ciphertext hex>`` so
they stay readable by every service that shares the key.
"""

import json
import os
from dataclasses import dataclass

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from .errors import ConfigurationError, EncryptionError

IV_BYTES = 16
TAG_BYTES = 16


def _load_key(key: str | None) -> bytes:
    if not key:
        raise ConfigurationError("ENCRYPTION_KEY environment variable is not set")
    try:
        raw = bytes.fromhex(key)
    except ValueError as e:
        raise ConfigurationError("ENCRYPTION_KEY must be hexadecimal") from e
    if len(raw) != 32:
        raise ConfigurationError("ENCRYPTION_KEY must decode to 32 bytes")
    return raw


def encrypt(text: str, key: str | None) -> str:
    """Encrypt a string with AES-256-GCM.

    Args:
        text: Plaintext to protect
        key: 64-character hexadecimal key

    Returns:
        str: ``iv:tag:ciphertext`` in hexadecimal

    Raises:
        ConfigurationError: If the key is missing or malformed
    """
    aesgcm = AESGCM(_load_key(key))
    iv = os.urandom(IV_BYTES)
    sealed = aesgcm.encrypt(iv, text.encode("utf-8"), None)
    ciphertext, tag = sealed[:-TAG_BYTES], sealed[-TAG_BYTES:]
    return f"{iv.hex()}:{tag.hex()}:{ciphertext.hex()}"


def decrypt(payload: str, key: str | None) -> str:
    """Decrypt a value produced by :func:`encrypt`.

    Raises:
        ConfigurationError: If the key is missing or malformed
        EncryptionError: If the payload is malformed or fails authentication
    """
    aes_key = _load_key(key)

    parts = payload.split(":")
    if len(parts) != 3 or not all(parts[:2]):
        raise EncryptionError("Invalid encrypted string format")

    iv_hex, tag_hex, ciphertext_hex = parts
    try:
        iv = bytes.fromhex(iv_hex)
        tag = bytes.fromhex(tag_hex)
        ciphertext = bytes.fromhex(ciphertext_hex)
    except ValueError as e:
        raise EncryptionError("Invalid encrypted string format") from e

    try:
        plaintext = AESGCM(aes_key).decrypt(iv, ciphertext + tag, None)
    except InvalidTag as e:
        raise EncryptionError("Encrypted value failed authentication") from e
    return plaintext.decode("utf-8")


@dataclass(frozen=True)
class BankCredentials:
    """Login for a bank scraper; never logged or persisted in clear text."""

    user_id: str
    password: str

    def __repr__(self) -> str:
        return f"BankCredentials(user_id={self.user_id[:3]}***, password=***)"


def encrypt_bank_credentials(credentials: BankCredentials, key: str | None) -> str:
    """Serialize and encrypt scraper credentials."""
    payload = json.dumps({"userId": credentials.user_id, "password": credentials.password})
    return encrypt(payload, key)


def decrypt_bank_credentials(payload: str, key: str | None) -> BankCredentials:
    """Decrypt scraper credentials stored on a bank connection.

    Raises:
        EncryptionError: If the decrypted value is not a credentials object
    """
    try:
        data = json.loads(decrypt(payload, key))
        return BankCredentials(user_id=str(data["userId"]), password=str(data["password"]))
    except (json.JSONDecodeError, KeyError, TypeError) as e:
        raise EncryptionError("Stored bank credentials are malformed") from e
