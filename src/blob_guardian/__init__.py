"""Blob Guardian: AES-256-GCM protected blob storage client."""
from __future__ import annotations

from typing import TYPE_CHECKING, Any

from .crypto import CipherEngine, Key, KeyManager
from .exceptions import (
    AuthenticationFailure,
    AuthorizationError,
    BlobGuardianError,
    Cancelled,
    ConfigurationError,
    ConnectionFailure,
    CryptoError,
    HttpStatusError,
    InvalidKeyLength,
    InvalidNonceLength,
    KeyDisposed,
    NetworkError,
    NotFoundError,
    ProtocolError,
    RequestExhausted,
    Timeout,
    ValidationError,
)
from .models import BlobRecord, DownloadResult, EncryptedPayload, TextEncryptionResult
from .store import BlobStoreClient
from .transport import CancellationToken, ResilientRequestExecutor
from .utils import TransportEncoder
from .version import __version__

__all__ = [
    "AuthenticationFailure",
    "AuthorizationError",
    "BlobGuardianError",
    "BlobRecord",
    "BlobStoreClient",
    "Cancelled",
    "CancellationToken",
    "CipherEngine",
    "ConfigurationError",
    "ConnectionFailure",
    "CryptoError",
    "DownloadResult",
    "EncryptedPayload",
    "HttpStatusError",
    "InvalidKeyLength",
    "InvalidNonceLength",
    "Key",
    "KeyDisposed",
    "KeyManager",
    "NetworkError",
    "NotFoundError",
    "ProtocolError",
    "RequestExhausted",
    "ResilientRequestExecutor",
    "TextEncryptionResult",
    "Timeout",
    "TransportEncoder",
    "ValidationError",
    "__version__",
    "create_app",
]


def __getattr__(name: str) -> Any:  # pragma: no cover - thin wrapper
    if name == "create_app":
        from .service import create_app

        globals()["create_app"] = create_app
        return create_app
    raise AttributeError(name)


if TYPE_CHECKING:  # pragma: no cover - typing aid
    from .service import create_app  # noqa: F401
