"""
opja_core.utils
---------------
Lightweight helpers for base64 codecs, log-safe key hints and byte wiping.
Label strings use the standard padded alphabet; directory records and
campaign configuration use unpadded base64url.
"""

from __future__ import annotations
import base64, binascii
from typing import Union

BytesLike = Union[bytes, bytearray, memoryview]


def b64e(b: BytesLike) -> str:
    return base64.b64encode(bytes(b)).decode("ascii")

def b64d(s: str) -> bytes:
    return base64.b64decode(s.encode("ascii"), validate=True)

def b64url_e(b: BytesLike) -> str:
    return base64.urlsafe_b64encode(bytes(b)).rstrip(b"=").decode("ascii")

def b64url_d(s: str) -> bytes:
    # re-pad; records publish keys without "=" padding
    padded = s + "=" * (-len(s) % 4)
    try:
        return base64.urlsafe_b64decode(padded.encode("ascii"))
    except (binascii.Error, UnicodeEncodeError) as e:
        raise ValueError(f"invalid base64url value: {e}") from e

def key_hint(public_key: BytesLike) -> str:
    """Short printable prefix of a public key for log lines."""
    return b64url_e(public_key)[:8]

def wipe(buf: bytearray) -> None:
    """Overwrite a mutable buffer with zeros in place."""
    for i in range(len(buf)):
        buf[i] = 0
