"""
skynet_sdk.crypto
=================

Ed25519 key handling for registry entries, on top of the `cryptography`
package.

Key format
----------
Private keys travel as hex strings of 64 bytes, ``seed || public key``, which is
the format produced by NaCl-style libraries and by `gen_key_pair_and_seed`. A
bare 32-byte seed is accepted wherever a private key is expected. Public keys
are 32-byte hex strings.

Deterministic keys
------------------
`gen_key_pair_from_seed` stretches an arbitrary (ideally high-entropy) string
with PBKDF2-HMAC-SHA256 (empty salt, 1000 iterations, 32 bytes) and uses the
result as the Ed25519 seed, so the same seed always yields the same key pair.
"""

from __future__ import annotations

import hashlib
import secrets
from typing import NamedTuple

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey, Ed25519PublicKey

from .utils.bytes import BytesLike, to_hex
from .utils.validation import SEED_SIZE, validate_integer, validate_private_key, validate_public_key, validate_string

SIGNATURE_SIZE = 64

_PBKDF2_ITERATIONS = 1000

__all__ = [
    "SIGNATURE_SIZE",
    "KeyPair",
    "KeyPairAndSeed",
    "gen_key_pair_and_seed",
    "gen_key_pair_from_seed",
    "public_key_from_private_key",
    "sign_message",
    "verify_message",
]


class KeyPair(NamedTuple):
    public_key: str
    private_key: str


class KeyPairAndSeed(NamedTuple):
    public_key: str
    private_key: str
    seed: str


def _raw_public(sk: Ed25519PrivateKey) -> bytes:
    return sk.public_key().public_bytes(
        encoding=serialization.Encoding.Raw,
        format=serialization.PublicFormat.Raw,
    )


def _key_pair_from_ed25519_seed(seed: bytes) -> KeyPair:
    sk = Ed25519PrivateKey.from_private_bytes(seed)
    pk = _raw_public(sk)
    return KeyPair(public_key=to_hex(pk), private_key=to_hex(seed + pk))


def _load_private_key(private_key: str) -> Ed25519PrivateKey:
    raw = validate_private_key("privateKey", private_key)
    return Ed25519PrivateKey.from_private_bytes(raw[:SEED_SIZE])


def gen_key_pair_from_seed(seed: str) -> KeyPair:
    """Deterministically derive a key pair from a string seed."""
    validate_string("seed", seed)
    derived = hashlib.pbkdf2_hmac("sha256", seed.encode("utf-8"), b"", _PBKDF2_ITERATIONS, SEED_SIZE)
    return _key_pair_from_ed25519_seed(derived)


def gen_key_pair_and_seed(length: int = 64) -> KeyPairAndSeed:
    """
    Generate a fresh random seed and the key pair derived from it.

    `length` is the number of random bytes; the returned seed is their hex
    form, so it is twice as long.
    """
    validate_integer("length", length)
    seed = secrets.token_hex(length)
    pair = gen_key_pair_from_seed(seed)
    return KeyPairAndSeed(public_key=pair.public_key, private_key=pair.private_key, seed=seed)


def public_key_from_private_key(private_key: str) -> str:
    """Hex public key matching a hex private key (64-byte or seed form)."""
    return to_hex(_raw_public(_load_private_key(private_key)))


def sign_message(private_key: str, message: BytesLike) -> bytes:
    """Detached Ed25519 signature (64 bytes) over `message`."""
    return _load_private_key(private_key).sign(bytes(message))


def verify_message(public_key: str, message: BytesLike, signature: BytesLike) -> bool:
    """Return True iff `signature` is a valid Ed25519 signature of `message`."""
    pk_hex = validate_public_key("publicKey", public_key)
    signature = bytes(signature)
    if len(signature) != SIGNATURE_SIZE:
        return False
    try:
        pk = Ed25519PublicKey.from_public_bytes(bytes.fromhex(pk_hex))
        pk.verify(signature, bytes(message))
    except (InvalidSignature, ValueError):
        return False
    return True
