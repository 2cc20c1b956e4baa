import base64
import binascii

from ..exceptions import ValidationError


def b64e(data: bytes) -> str:
    """Standard base64 encode with padding, no line wrapping"""
    return base64.b64encode(data).decode("ascii")


def b64d(value: str) -> bytes:
    """Strict standard base64 decode"""
    try:
        return base64.b64decode(value.encode("ascii"), validate=True)
    except (binascii.Error, UnicodeEncodeError) as exc:
        raise ValidationError("value is not valid base64") from exc


class TransportEncoder:
    """Lossless binary <-> text encoding for JSON bodies"""

    @staticmethod
    def encode(data: bytes) -> str:
        return b64e(data)

    @staticmethod
    def decode(value: str) -> bytes:
        return b64d(value)


__all__ = ["TransportEncoder", "b64d", "b64e"]
