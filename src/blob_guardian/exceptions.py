"""Central exception hierarchy"""
from __future__ import annotations

from typing import TYPE_CHECKING, Sequence

if TYPE_CHECKING:  # pragma: no cover - typing aid
    from .models import RequestAttempt


class BlobGuardianError(Exception):
    """Base exception for all failures"""


class ValidationError(BlobGuardianError, ValueError):
    """Raised for bad caller input before any crypto or network work"""


class ConfigurationError(BlobGuardianError):
    """Raised when configuration is missing or invalid"""


class ProtocolError(BlobGuardianError):
    """Raised when the remote store answers with a malformed body"""


class NotFoundError(BlobGuardianError):
    """Raised when the remote side reports the object does not exist"""


class AuthorizationError(BlobGuardianError):
    """Raised when the remote side refuses access or decryption"""


class CryptoError(BlobGuardianError):
    """Raised for cryptographic misuse or integrity failures"""


class InvalidKeyLength(CryptoError):
    """Raised when key material is not exactly 32 bytes"""


class InvalidNonceLength(CryptoError):
    """Raised when a nonce is not exactly 12 bytes"""


class AuthenticationFailure(CryptoError):
    """Raised when AEAD tag verification fails"""


class KeyDisposed(CryptoError):
    """Raised when a disposed key handle is used"""


class NetworkError(BlobGuardianError):
    """Base for failures while talking to the remote store.

    ``operation`` names the client call (upload, download, ...) and is filled
    in by :class:`~blob_guardian.store.client.BlobStoreClient` on the way out.
    """

    def __init__(self, message: str, *, operation: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.operation = operation

    def __str__(self) -> str:
        if self.operation:
            return f"{self.operation} failed: {self.message}"
        return self.message


class Timeout(NetworkError):
    """A single attempt exceeded its time budget"""


class ConnectionFailure(NetworkError):
    """A single attempt failed below HTTP (refused, reset, DNS)"""


class HttpStatusError(NetworkError):
    """A single attempt received a non-success status"""

    def __init__(self, status_code: int, body: str = "", *, operation: str | None = None) -> None:
        message = f"HTTP {status_code}: {body}" if body else f"HTTP {status_code}"
        super().__init__(message, operation=operation)
        self.status_code = status_code
        self.body = body


class RequestExhausted(NetworkError):
    """All attempts failed; carries the last underlying error"""

    def __init__(
        self,
        last_error: NetworkError,
        attempts: Sequence["RequestAttempt"],
        *,
        operation: str | None = None,
    ) -> None:
        super().__init__(
            f"request failed after {len(attempts)} attempts: {last_error.message}",
            operation=operation,
        )
        self.last_error = last_error
        self.attempts = tuple(attempts)


class Cancelled(NetworkError):
    """The caller's cancellation token fired"""

    def __init__(
        self,
        message: str = "request cancelled",
        *,
        attempts: Sequence["RequestAttempt"] = (),
        operation: str | None = None,
    ) -> None:
        super().__init__(message, operation=operation)
        self.attempts = tuple(attempts)


__all__ = [
    "AuthenticationFailure",
    "AuthorizationError",
    "BlobGuardianError",
    "Cancelled",
    "ConfigurationError",
    "ConnectionFailure",
    "CryptoError",
    "HttpStatusError",
    "InvalidKeyLength",
    "InvalidNonceLength",
    "KeyDisposed",
    "NetworkError",
    "NotFoundError",
    "ProtocolError",
    "RequestExhausted",
    "Timeout",
    "ValidationError",
]
