"""Validation helpers for blob keys and payloads."""
from __future__ import annotations

import re
import secrets
import time
from typing import Any, Final

from ..exceptions import ValidationError

BLOB_KEY_MIN_LENGTH: Final[int] = 3
BLOB_KEY_MAX_LENGTH: Final[int] = 256
_BLOB_KEY_PATTERN = re.compile(r"[A-Za-z0-9._-]+")
_SIZE_UNITS = ("Bytes", "KB", "MB", "GB")


def is_valid_blob_key(blob_key: Any) -> bool:
    if not blob_key or not isinstance(blob_key, str):
        return False
    if not BLOB_KEY_MIN_LENGTH <= len(blob_key) <= BLOB_KEY_MAX_LENGTH:
        return False
    return _BLOB_KEY_PATTERN.fullmatch(blob_key) is not None


def ensure_blob_key(blob_key: Any) -> str:
    """Return ``blob_key`` unchanged or raise.

    Parameters
    ----------
    blob_key:
        Identifier the remote store files the blob under.

    Raises
    ------
    ValidationError
        If the key is empty, not a string, outside 3..256 characters, or
        contains anything other than letters, digits, ``.``, ``_`` and ``-``.
    """

    if not blob_key:
        raise ValidationError("Blob key is required")
    if not is_valid_blob_key(blob_key):
        raise ValidationError(f"Invalid blob key: {blob_key!r}")
    return blob_key


def ensure_prefix(prefix: str | None) -> str | None:
    if prefix is None or prefix == "":
        return None
    if not isinstance(prefix, str) or _BLOB_KEY_PATTERN.fullmatch(prefix) is None:
        raise ValidationError(f"Invalid blob key prefix: {prefix!r}")
    if len(prefix) > BLOB_KEY_MAX_LENGTH:
        raise ValidationError("Blob key prefix is too long")
    return prefix


def ensure_limit(limit: int | None) -> int | None:
    if limit is None:
        return None
    if isinstance(limit, bool) or not isinstance(limit, int) or limit <= 0:
        raise ValidationError("limit must be a positive integer")
    return limit


def ensure_payload(data: Any) -> bytes:
    if not isinstance(data, (bytes, bytearray, memoryview)):
        raise ValidationError("Payload must be bytes")
    payload = bytes(data)
    if not payload:
        raise ValidationError("Payload is required and cannot be empty")
    return payload


def generate_blob_key(prefix: str = "blob") -> str:
    """Return a fresh ``<prefix>-<millis>-<random>`` key."""
    ensure_prefix(prefix)
    key = f"{prefix}-{int(time.time() * 1000)}-{secrets.token_hex(6)}"
    return ensure_blob_key(key)


def format_size(size: int) -> str:
    if size <= 0:
        return "0 Bytes"
    value = float(size)
    unit = 0
    while value >= 1024 and unit < len(_SIZE_UNITS) - 1:
        value /= 1024
        unit += 1
    number = f"{round(value, 2):.2f}".rstrip("0").rstrip(".")
    return f"{number} {_SIZE_UNITS[unit]}"


__all__ = [
    "BLOB_KEY_MAX_LENGTH",
    "BLOB_KEY_MIN_LENGTH",
    "ensure_blob_key",
    "ensure_limit",
    "ensure_payload",
    "ensure_prefix",
    "format_size",
    "generate_blob_key",
    "is_valid_blob_key",
]
