"""Shared domain models used across Blob Guardian."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional, Tuple

import httpx


@dataclass(slots=True, frozen=True)
class EncryptedPayload:
    """AES-GCM output: ciphertext with the 16-byte tag appended, plus its nonce."""

    ciphertext: bytes
    nonce: bytes


@dataclass(slots=True, frozen=True)
class TextEncryptionResult:
    ciphertext: str
    nonce: str


@dataclass(slots=True)
class BlobRecord:
    """Metadata for a blob held by the remote store"""

    blob_key: str
    metadata: Dict[str, Any] = field(default_factory=dict)
    size: int = 0
    uploaded_at: Optional[datetime] = None
    encrypted: bool = False
    nonce: Optional[bytes] = None


@dataclass(slots=True)
class DownloadResult:
    plaintext: bytes
    metadata: Dict[str, Any] = field(default_factory=dict)


class AttemptOutcome(str, Enum):
    SUCCESS = "success"
    TIMEOUT = "timeout"
    HTTP_ERROR = "http_error"
    CONNECTION_ERROR = "connection_error"
    CANCELLED = "cancelled"


@dataclass(slots=True, frozen=True)
class RequestAttempt:
    """One attempt inside a single executor call. Never persisted."""

    index: int
    elapsed_ms: float
    outcome: AttemptOutcome
    error: Optional[Exception] = None


@dataclass(slots=True, frozen=True)
class ExecutionResult:
    response: httpx.Response
    attempts: Tuple[RequestAttempt, ...]

    @property
    def attempt_count(self) -> int:
        return len(self.attempts)


@dataclass(slots=True)
class ExecutorStats:
    """Aggregate counters owned by one executor instance."""

    calls: int = 0
    attempts: int = 0
    retries: int = 0
    failures: int = 0


__all__ = [
    "AttemptOutcome",
    "BlobRecord",
    "DownloadResult",
    "EncryptedPayload",
    "ExecutionResult",
    "ExecutorStats",
    "RequestAttempt",
    "TextEncryptionResult",
]
