from .aead import NONCE_SIZE, TAG_SIZE, CipherEngine, generate_nonce
from .keys import AES256_KEY_SIZE, Key, KeyManager, export_key, generate_key, import_key

__all__ = [
    "AES256_KEY_SIZE",
    "CipherEngine",
    "Key",
    "KeyManager",
    "NONCE_SIZE",
    "TAG_SIZE",
    "export_key",
    "generate_key",
    "generate_nonce",
    "import_key",
]
