"""
Signed, time-limited file access tokens.

Format::

    base64url(payload) "." base64url(hmac_sha256(secret, payload))
    payload = file_id ":" user_id ":" expires_at

Both segments are unpadded URL-safe base64, ``expires_at`` is unix seconds.
Tokens cannot be revoked; they simply expire. Every verification failure
returns None without saying why.
"""

import base64
import binascii
import hashlib
import hmac
import logging
import time
from dataclasses import dataclass
from typing import Optional, Tuple

from ..config import get_settings

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 300


@dataclass(frozen=True)
class FileTokenPayload:
    file_id: str
    user_id: str
    expires_at: int


def _b64encode(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


def _b64decode(segment: str) -> bytes:
    raw = base64.urlsafe_b64decode(segment + "=" * (-len(segment) % 4))
    # Reject non-canonical encodings so every character of the token matters
    if _b64encode(raw) != segment:
        raise ValueError("non-canonical base64url segment")
    return raw


def _secret(secret: Optional[str]) -> bytes:
    return (secret if secret is not None else get_settings().file_token_secret).encode("utf-8")


def _sign(payload: bytes, secret: Optional[str]) -> bytes:
    return hmac.new(_secret(secret), payload, hashlib.sha256).digest()


def issue_file_token(
    file_id: str,
    user_id: str,
    ttl_seconds: int = DEFAULT_TTL_SECONDS,
    secret: Optional[str] = None,
) -> Tuple[str, FileTokenPayload]:
    """
    Issue a token for ``file_id`` valid for ``ttl_seconds`` from now.

    Returns:
        (token, payload it carries)

    Raises:
        ValueError: an id is empty or contains ':'
    """
    for name, value in (("file_id", file_id), ("user_id", user_id)):
        if not value or ":" in value:
            raise ValueError(f"{name} must be non-empty and must not contain ':'")

    expires_at = int(time.time()) + ttl_seconds
    payload = f"{file_id}:{user_id}:{expires_at}".encode("utf-8")
    token = f"{_b64encode(payload)}.{_b64encode(_sign(payload, secret))}"
    return token, FileTokenPayload(file_id=file_id, user_id=user_id, expires_at=expires_at)


def generate_file_token(
    file_id: str,
    user_id: str,
    ttl_seconds: int = DEFAULT_TTL_SECONDS,
    secret: Optional[str] = None,
) -> str:
    token, _ = issue_file_token(file_id, user_id, ttl_seconds, secret)
    return token


def verify_file_token(
    token: str,
    expected_file_id: str,
    secret: Optional[str] = None,
) -> Optional[FileTokenPayload]:
    """Return the payload of a valid, unexpired token for ``expected_file_id``, else None."""
    parts = token.split(".")
    if len(parts) != 2 or not parts[0] or not parts[1]:
        logger.debug("File token rejected: malformed")
        return None

    try:
        payload = _b64decode(parts[0])
        signature = _b64decode(parts[1])
    except (ValueError, binascii.Error):
        logger.debug("File token rejected: undecodable")
        return None

    if not hmac.compare_digest(_sign(payload, secret), signature):
        logger.debug("File token rejected: bad signature")
        return None

    try:
        fields = payload.decode("utf-8").split(":")
    except UnicodeDecodeError:
        return None
    if len(fields) != 3 or not all(fields):
        logger.debug("File token rejected: bad payload")
        return None

    file_id, user_id, expires_raw = fields
    try:
        expires_at = int(expires_raw)
    except ValueError:
        logger.debug("File token rejected: bad expiry")
        return None

    if file_id != expected_file_id:
        logger.debug("File token rejected: file mismatch")
        return None

    if int(time.time()) > expires_at:
        logger.debug("File token rejected: expired")
        return None

    return FileTokenPayload(file_id=file_id, user_id=user_id, expires_at=expires_at)
