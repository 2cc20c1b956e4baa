"""Server-mediated decryption service."""
from __future__ import annotations

from .app import CORS_HEADERS, create_app
from .providers import (
    DecryptionDenied,
    DirectoryObjectStorage,
    KeyManagementService,
    LocalKeyManagementService,
    ObjectNotFound,
    ObjectStorage,
)

__all__ = [
    "CORS_HEADERS",
    "DecryptionDenied",
    "DirectoryObjectStorage",
    "KeyManagementService",
    "LocalKeyManagementService",
    "ObjectNotFound",
    "ObjectStorage",
    "create_app",
]
