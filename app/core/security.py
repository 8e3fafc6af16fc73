"""
Decryption of PSP secrets kept in the provider settings store.

Secrets are stored as base64(nonce + tag + ciphertext), AES-GCM encrypted
with SECRETS_ENCRYPTION_KEY. When no encryption key is configured (local
development) the stored value is used as-is.
"""

import base64
import logging

from Crypto.Cipher import AES
from Crypto.Random import get_random_bytes

from app.core.config import settings

logger = logging.getLogger(__name__)

NONCE_SIZE = 12
TAG_SIZE = 16


class SecretBox:
    def __init__(self, key: str | None = None):
        key = settings.SECRETS_ENCRYPTION_KEY if key is None else key
        self._key = key.encode("utf-8") if key else None

    def encrypt(self, value: str) -> str:
        if self._key is None:
            return value
        nonce = get_random_bytes(NONCE_SIZE)
        cipher = AES.new(self._key, AES.MODE_GCM, nonce=nonce)
        encrypted, tag = cipher.encrypt_and_digest(value.encode("utf-8"))
        return base64.b64encode(nonce + tag + encrypted).decode("utf-8")

    def decrypt(self, value: str | None) -> str:
        """Raises ValueError when the value was not encrypted with this key."""
        if not value:
            return ""
        if self._key is None:
            return value
        try:
            raw = base64.b64decode(value)
            nonce = raw[:NONCE_SIZE]
            tag = raw[NONCE_SIZE:NONCE_SIZE + TAG_SIZE]
            cipher = AES.new(self._key, AES.MODE_GCM, nonce=nonce)
            return cipher.decrypt_and_verify(raw[NONCE_SIZE + TAG_SIZE:], tag).decode("utf-8")
        except ValueError:
            logger.error("[smartpay] stored secret could not be decrypted with the configured key")
            raise
