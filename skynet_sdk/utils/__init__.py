"""
skynet_sdk.utils
----------------

Small, dependency-free helpers shared by the SDK:

- bytes      : hex, little-endian uint64 and length-prefixed encodings, base64url
- hash       : blake2b-256 `hash_all` and data key hashing
- validation : field-naming input validation
- retry      : bounded async retry with jittered backoff
"""

from __future__ import annotations

from .bytes import (  # noqa: F401
    MAX_REVISION,
    encode_prefixed_bytes,
    encode_uint64,
    encode_utf8_string,
    from_hex,
    to_hex,
)
from .hash import hash_all, hash_data_key  # noqa: F401

__all__ = [
    "MAX_REVISION",
    "encode_prefixed_bytes",
    "encode_uint64",
    "encode_utf8_string",
    "from_hex",
    "to_hex",
    "hash_all",
    "hash_data_key",
]
