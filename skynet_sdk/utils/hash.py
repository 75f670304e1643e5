from __future__ import annotations

import hashlib

from .bytes import BytesLike, encode_utf8_string, to_hex

# Skynet hashes everything with blake2b truncated to a 256-bit digest.
DIGEST_SIZE = 32


def hash_all(*parts: BytesLike) -> bytes:
    """Return the blake2b-256 digest of the concatenation of *parts*."""
    h = hashlib.blake2b(digest_size=DIGEST_SIZE)
    for part in parts:
        h.update(bytes(part))
    return h.digest()


def hash_data_key(data_key: str) -> bytes:
    """Hash a plain-text data key the way the registry identifies entries."""
    return hash_all(encode_utf8_string(data_key))


def hash_data_key_hex(data_key: str) -> str:
    return to_hex(hash_data_key(data_key))


__all__ = ["DIGEST_SIZE", "hash_all", "hash_data_key", "hash_data_key_hex"]
