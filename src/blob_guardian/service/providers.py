from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Mapping

from ..crypto.aead import NONCE_SIZE, CipherEngine
from ..crypto.keys import Key
from ..exceptions import AuthorizationError, CryptoError, NotFoundError
from ..utils.validation import ensure_blob_key


class ObjectNotFound(NotFoundError):
    """Raised when the storage service has no object under the key"""


class DecryptionDenied(AuthorizationError):
    """Raised when the key-management capability refuses to decrypt"""


class ObjectStorage(ABC):
    """Where the decryption service reads ciphertext from"""

    @abstractmethod
    async def fetch(self, key: str) -> bytes:  # pragma: no cover - interface
        ...


class KeyManagementService(ABC):
    """A minimal interface for external key managers.

    Implementations hold the key; callers only ever see plaintext for a
    ciphertext they were authorised to open.
    """

    @abstractmethod
    async def decrypt(self, ciphertext: bytes, key_id: str) -> bytes:  # pragma: no cover - interface
        ...


class DirectoryObjectStorage(ObjectStorage):
    """Objects stored as files named by their blob key under ``root``"""

    def __init__(self, root: Path) -> None:
        self.root = Path(root).expanduser()

    async def fetch(self, key: str) -> bytes:
        path = self.root / ensure_blob_key(key)
        try:
            return await asyncio.to_thread(path.read_bytes)
        except (FileNotFoundError, IsADirectoryError) as exc:
            raise ObjectNotFound(key) from exc


class LocalKeyManagementService(KeyManagementService):
    """In-process AES-256-GCM keys addressed by alias.

    Sealed blobs are ``nonce || ciphertext``; :meth:`seal` produces them.
    """

    def __init__(self, keys: Mapping[str, Key] | None = None) -> None:
        self._keys: Dict[str, Key] = dict(keys or {})
        self._cipher = CipherEngine()

    def register(self, alias: str, key: Key) -> None:
        self._keys[alias] = key

    def seal(self, plaintext: bytes, key_id: str) -> bytes:
        payload = self._cipher.encrypt(self._resolve(key_id), plaintext)
        return payload.nonce + payload.ciphertext

    async def decrypt(self, ciphertext: bytes, key_id: str) -> bytes:
        key = self._resolve(key_id)
        if len(ciphertext) < NONCE_SIZE:
            raise CryptoError("sealed blob is shorter than its nonce")
        nonce, body = ciphertext[:NONCE_SIZE], ciphertext[NONCE_SIZE:]
        return await asyncio.to_thread(self._cipher.decrypt, key, body, nonce)

    def _resolve(self, key_id: str) -> Key:
        try:
            return self._keys[key_id]
        except KeyError:
            raise DecryptionDenied(f"no access to key {key_id!r}") from None


__all__ = [
    "DecryptionDenied",
    "DirectoryObjectStorage",
    "KeyManagementService",
    "LocalKeyManagementService",
    "ObjectNotFound",
    "ObjectStorage",
]
