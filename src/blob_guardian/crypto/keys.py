# Manage the lifecycle of symmetric keys (generate, export, import, dispose).
from __future__ import annotations

import os
from typing import Final

from ..exceptions import InvalidKeyLength, KeyDisposed

AES256_KEY_SIZE: Final[int] = 32


class Key:
    """Opaque handle over 32 bytes of AES-256 key material.

    The material lives in a private ``bytearray`` so :meth:`dispose` can zero
    it in place. After disposal every accessor raises :class:`KeyDisposed`.
    """

    __slots__ = ("_material", "_disposed")

    def __init__(self, material: bytes | bytearray) -> None:
        if len(material) != AES256_KEY_SIZE:
            raise InvalidKeyLength(
                f"AES-256 requires a {AES256_KEY_SIZE}-byte key, got {len(material)}"
            )
        self._material = bytearray(material)
        self._disposed = False

    @property
    def disposed(self) -> bool:
        return self._disposed

    @property
    def material(self) -> bytes:
        if self._disposed:
            raise KeyDisposed("key has been disposed")
        return bytes(self._material)

    def dispose(self) -> None:
        if self._disposed:
            return
        for index in range(len(self._material)):
            self._material[index] = 0
        self._disposed = True

    def __enter__(self) -> "Key":
        return self

    def __exit__(self, *_exc: object) -> None:
        self.dispose()

    def __repr__(self) -> str:
        state = "disposed" if self._disposed else "active"
        return f"<Key aes-256 {state}>"


class KeyManager:
    """Create, export and import symmetric keys"""

    @staticmethod
    def generate_key() -> Key:
        return Key(os.urandom(AES256_KEY_SIZE))

    @staticmethod
    def export_key(key: Key) -> bytes:
        return key.material

    @staticmethod
    def import_key(data: bytes | bytearray | memoryview) -> Key:
        raw = bytes(data)
        if len(raw) != AES256_KEY_SIZE:
            raise InvalidKeyLength(
                f"AES-256 requires a {AES256_KEY_SIZE}-byte key, got {len(raw)}"
            )
        return Key(raw)


# Functional helpers
def generate_key() -> Key:
    return KeyManager.generate_key()


def export_key(key: Key) -> bytes:
    return KeyManager.export_key(key)


def import_key(data: bytes | bytearray | memoryview) -> Key:
    return KeyManager.import_key(data)


__all__ = ["AES256_KEY_SIZE", "Key", "KeyManager", "export_key", "generate_key", "import_key"]
