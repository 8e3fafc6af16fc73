"""
Smart Pay signatures.

A signature is HMAC-SHA512 over the comma-joined signature fields, keyed
with the base64-decoded signing key, rendered as lower-case hex. The same
function signs the relay callback and verifies the PSP's return redirect,
so both sides of the relay agree by construction.
"""

from __future__ import annotations

import base64
import binascii
import hashlib
import hmac
import logging
from typing import Protocol, Sequence

from app.core.exceptions import SignatureError

logger = logging.getLogger(__name__)


class Signable(Protocol):
    signature: str

    def signature_data(self) -> Sequence[str]: ...


def _decode_key(signing_key: str) -> bytes:
    try:
        return base64.b64decode(signing_key, validate=True)
    except (binascii.Error, ValueError) as e:
        raise SignatureError("Signing key is not valid base64") from e


def calculate_signature(data: Sequence[str], signing_key: str) -> str:
    payload = ",".join("" if v is None else str(v) for v in data)
    return hmac.new(
        _decode_key(signing_key), payload.encode("utf-8"), hashlib.sha512
    ).hexdigest()


def is_valid_signature(signable: Signable, signing_key: str) -> bool:
    if not signing_key or not signable.signature:
        return False
    try:
        expected = calculate_signature(signable.signature_data(), signing_key)
    except SignatureError:
        return False
    return hmac.compare_digest(expected.encode(), signable.signature.encode("utf-8"))


def validate_signature(signable: Signable, signing_key: str) -> None:
    """Raise SignatureError unless ``signable`` is signed with ``signing_key``."""
    if not is_valid_signature(signable, signing_key):
        logger.warning(
            f"[smartpay] illegal signature on {type(signable).__name__}"
        )
        raise SignatureError(
            f"Illegal signature on {type(signable).__name__}"
        )
