from __future__ import annotations

import base64
import re
from typing import Union

from ..errors import ValidationError

BytesLike = Union[bytes, bytearray, memoryview]

# Maximum value of an unsigned 64-bit integer. Setting an entry revision to this
# value prevents it from being updated further.
MAX_REVISION = 2**64 - 1

_HEX_RE = re.compile(r"[0-9a-fA-F]*")


def to_hex(b: BytesLike) -> str:
    """Bytes -> lowercase hex string, no prefix (the portal never uses 0x)."""
    return bytes(b).hex()


def from_hex(s: str, *, name: str = "str", kind: str = "parameter") -> bytes:
    """
    Hex string -> bytes.

    Enforces even length and hex digits only; case-insensitive. Errors name the
    field being decoded.
    """
    if not is_hex_string(s):
        raise ValidationError(name, s, kind, "a hex-encoded string")
    return bytes.fromhex(s)


def is_hex_string(s: object) -> bool:
    # bytes.fromhex skips whitespace, so match the digits explicitly.
    return isinstance(s, str) and len(s) % 2 == 0 and _HEX_RE.fullmatch(s) is not None


# --- Sia binary encoding ------------------------------------------------------


def assert_uint64(n: int, *, name: str = "revision", kind: str = "parameter") -> int:
    """Check that `n` is an int fitting an unsigned 64-bit integer and return it."""
    if isinstance(n, bool) or not isinstance(n, int):
        raise ValidationError(name, n, kind, "type 'int'")
    if n < 0:
        raise ValidationError(name, n, kind, "an unsigned 64-bit integer; was negative")
    if n > MAX_REVISION:
        raise ValidationError(name, n, kind, "an unsigned 64-bit integer; exceeds 2^64-1")
    return n


def encode_uint64(n: int) -> bytes:
    """Little-endian 8-byte encoding of an unsigned 64-bit integer."""
    return assert_uint64(n).to_bytes(8, "little")


def encode_prefixed_bytes(b: BytesLike) -> bytes:
    """Bytes prefixed by their length as a little-endian uint64."""
    b = bytes(b)
    return len(b).to_bytes(8, "little") + b


def encode_utf8_string(s: str) -> bytes:
    """UTF-8 bytes of `s`, length-prefixed."""
    return encode_prefixed_bytes(s.encode("utf-8"))


# --- base64url (no padding) ---------------------------------------------------


def b64url_encode(b: BytesLike) -> str:
    return base64.urlsafe_b64encode(bytes(b)).decode("ascii").rstrip("=")


def b64url_decode(s: str) -> bytes:
    pad = (-len(s)) % 4
    return base64.urlsafe_b64decode(s + "=" * pad)


__all__ = [
    "BytesLike",
    "MAX_REVISION",
    "to_hex",
    "from_hex",
    "is_hex_string",
    "assert_uint64",
    "encode_uint64",
    "encode_prefixed_bytes",
    "encode_utf8_string",
    "b64url_encode",
    "b64url_decode",
]
