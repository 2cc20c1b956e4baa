from __future__ import annotations

from .encoding import TransportEncoder, b64d, b64e
from .validation import (
    ensure_blob_key,
    ensure_payload,
    format_size,
    generate_blob_key,
    is_valid_blob_key,
)

__all__ = [
    "b64e",
    "b64d",
    "TransportEncoder",
    "ensure_blob_key",
    "ensure_payload",
    "format_size",
    "generate_blob_key",
    "is_valid_blob_key",
]
