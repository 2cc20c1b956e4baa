import pytest

from blob_guardian.crypto import NONCE_SIZE, TAG_SIZE, CipherEngine, KeyManager
from blob_guardian.utils import b64e
from blob_guardian.exceptions import (
    AuthenticationFailure,
    InvalidNonceLength,
    KeyDisposed,
    ValidationError,
)

engine = CipherEngine()


def test_encrypt_shapes() -> None:
    key = KeyManager.generate_key()
    payload = engine.encrypt(key, b"hello world")
    assert len(payload.nonce) == NONCE_SIZE
    assert len(payload.ciphertext) == len(b"hello world") + TAG_SIZE


def test_round_trip_including_empty() -> None:
    key = KeyManager.generate_key()
    for message in (b"", b"x", b"hello world", bytes(range(256)) * 40):
        payload = engine.encrypt(key, message)
        assert engine.decrypt(key, payload.ciphertext, payload.nonce) == message


def test_empty_plaintext_is_tag_only() -> None:
    key = KeyManager.generate_key()
    payload = engine.encrypt(key, b"")
    assert len(payload.ciphertext) == TAG_SIZE


def test_nonces_are_unique() -> None:
    key = KeyManager.generate_key()
    nonces = {engine.encrypt(key, b"same").nonce for _ in range(1000)}
    assert len(nonces) == 1000


def test_explicit_nonce_is_used() -> None:
    key = KeyManager.generate_key()
    nonce = b"\x00" * NONCE_SIZE
    payload = engine.encrypt(key, b"data", nonce)
    assert payload.nonce == nonce


@pytest.mark.parametrize("size", [0, 8, 11, 13, 16])
def test_wrong_nonce_length_rejected(size: int) -> None:
    key = KeyManager.generate_key()
    with pytest.raises(InvalidNonceLength):
        engine.encrypt(key, b"data", b"\x00" * size)
    with pytest.raises(InvalidNonceLength):
        engine.decrypt(key, b"\x00" * 32, b"\x00" * size)


def test_wrong_key_fails_authentication() -> None:
    payload = engine.encrypt(KeyManager.generate_key(), b"secret")
    with pytest.raises(AuthenticationFailure):
        engine.decrypt(KeyManager.generate_key(), payload.ciphertext, payload.nonce)


def test_wrong_nonce_fails_authentication() -> None:
    key = KeyManager.generate_key()
    payload = engine.encrypt(key, b"secret")
    other = bytes(b ^ 0xFF for b in payload.nonce)
    with pytest.raises(AuthenticationFailure):
        engine.decrypt(key, payload.ciphertext, other)


def test_short_ciphertext_fails_authentication() -> None:
    key = KeyManager.generate_key()
    with pytest.raises(AuthenticationFailure):
        engine.decrypt(key, b"\x00" * (TAG_SIZE - 1), b"\x00" * NONCE_SIZE)


def test_associated_data_must_match() -> None:
    key = KeyManager.generate_key()
    payload = engine.encrypt(key, b"bound", associated_data=b"report-1")
    assert engine.decrypt(key, payload.ciphertext, payload.nonce, associated_data=b"report-1") == b"bound"
    with pytest.raises(AuthenticationFailure):
        engine.decrypt(key, payload.ciphertext, payload.nonce, associated_data=b"report-2")
    with pytest.raises(AuthenticationFailure):
        engine.decrypt(key, payload.ciphertext, payload.nonce)


def test_disposed_key_cannot_encrypt() -> None:
    key = KeyManager.generate_key()
    key.dispose()
    with pytest.raises(KeyDisposed):
        engine.encrypt(key, b"data")


def test_text_helpers_round_trip() -> None:
    key = KeyManager.generate_key()
    result = engine.encrypt_text(key, "héllo wörld")
    assert isinstance(result.ciphertext, str)
    assert engine.decrypt_text(key, result.ciphertext, result.nonce) == "héllo wörld"


def test_decrypt_text_rejects_bad_base64() -> None:
    key = KeyManager.generate_key()
    with pytest.raises(ValidationError):
        engine.decrypt_text(key, "not base64!", "AAAAAAAAAAAAAAAA")


def test_decrypt_text_rejects_non_utf8() -> None:
    key = KeyManager.generate_key()
    payload = engine.encrypt(key, b"\xff\xfe\xfd")
    with pytest.raises(ValidationError):
        engine.decrypt_text(key, b64e(payload.ciphertext), b64e(payload.nonce))
