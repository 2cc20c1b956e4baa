from __future__ import annotations

import os
from typing import Final

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from ..exceptions import AuthenticationFailure, InvalidNonceLength, ValidationError
from ..models import EncryptedPayload, TextEncryptionResult
from ..utils.encoding import b64d, b64e
from .keys import Key

NONCE_SIZE: Final[int] = 12
TAG_SIZE: Final[int] = 16


def generate_nonce() -> bytes:
    return os.urandom(NONCE_SIZE)


class CipherEngine:
    """AES-256-GCM over byte buffers with random 96-bit nonces"""

    def encrypt(
        self,
        key: Key,
        plaintext: bytes,
        nonce: bytes | None = None,
        *,
        associated_data: bytes | None = None,
    ) -> EncryptedPayload:
        if nonce is None:
            nonce = generate_nonce()
        self._check_nonce(nonce)
        aead = AESGCM(key.material)
        ciphertext = aead.encrypt(nonce, bytes(plaintext), associated_data)
        return EncryptedPayload(ciphertext=ciphertext, nonce=bytes(nonce))

    def decrypt(
        self,
        key: Key,
        ciphertext: bytes,
        nonce: bytes,
        *,
        associated_data: bytes | None = None,
    ) -> bytes:
        self._check_nonce(nonce)
        if len(ciphertext) < TAG_SIZE:
            raise AuthenticationFailure("ciphertext is shorter than the authentication tag")
        aead = AESGCM(key.material)
        try:
            return aead.decrypt(nonce, bytes(ciphertext), associated_data)
        except InvalidTag as exc:
            raise AuthenticationFailure("AEAD tag verification failed") from exc

    def encrypt_text(self, key: Key, text: str) -> TextEncryptionResult:
        payload = self.encrypt(key, text.encode("utf-8"))
        return TextEncryptionResult(ciphertext=b64e(payload.ciphertext), nonce=b64e(payload.nonce))

    def decrypt_text(self, key: Key, ciphertext_b64: str, nonce_b64: str) -> str:
        plaintext = self.decrypt(key, b64d(ciphertext_b64), b64d(nonce_b64))
        try:
            return plaintext.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise ValidationError("decrypted payload is not UTF-8 text") from exc

    @staticmethod
    def _check_nonce(nonce: bytes) -> None:
        if len(nonce) != NONCE_SIZE:
            raise InvalidNonceLength(f"AES-GCM requires a {NONCE_SIZE}-byte nonce, got {len(nonce)}")


__all__ = ["CipherEngine", "NONCE_SIZE", "TAG_SIZE", "generate_nonce"]
