"""
Sia binary structures needed to identify registry-backed content.

A skylink is 34 raw bytes: a little-endian uint16 bitfield followed by a
32-byte merkle root. The low two bits of the bitfield hold ``version - 1``.
Version 1 links point directly at content; version 2 links point at a
registry entry and their "merkle root" is the registry entry ID derived from
``(owner public key, tweak)``, where the tweak is the hashed data key.
"""

from __future__ import annotations

from dataclasses import dataclass

from ..utils.bytes import b64url_encode, encode_prefixed_bytes, from_hex
from ..utils.hash import hash_all
from ..utils.validation import (
    PUBLIC_KEY_SIZE,
    validate_bytes_len,
    validate_integer,
    validate_public_key,
)

# The raw size of the data that gets put into a link.
RAW_SKYLINK_SIZE = 34
MERKLE_ROOT_SIZE = 32

# An all-zero skylink. Registry entries holding it are treated as deleted.
EMPTY_SKYLINK = bytes(RAW_SKYLINK_SIZE)

SPECIFIER_LEN = 16


@dataclass(frozen=True)
class SiaSkylink:
    bitfield: int
    merkle_root: bytes

    def __post_init__(self) -> None:
        validate_integer("bitfield", self.bitfield, "constructor parameter")
        validate_bytes_len("merkleRoot", self.merkle_root, "constructor parameter", MERKLE_ROOT_SIZE)

    @property
    def version(self) -> int:
        return (self.bitfield & 0b11) + 1

    def to_bytes(self) -> bytes:
        return self.bitfield.to_bytes(2, "little") + bytes(self.merkle_root)

    def to_string(self) -> str:
        """Unpadded base64url form (46 characters)."""
        return b64url_encode(self.to_bytes())

    def __str__(self) -> str:
        return self.to_string()

    @classmethod
    def from_bytes(cls, raw: bytes) -> "SiaSkylink":
        validate_bytes_len("skylink", raw, "parameter", RAW_SKYLINK_SIZE)
        return cls(int.from_bytes(raw[:2], "little"), bytes(raw[2:]))


def new_specifier(name: str) -> bytes:
    """A 16-byte, zero-padded ASCII specifier (e.g. the algorithm name)."""
    if not name.isascii():
        raise ValueError("specifier has to be ASCII")
    if len(name) > SPECIFIER_LEN:
        raise ValueError("specifier max length exceeded")
    return name.encode("ascii").ljust(SPECIFIER_LEN, b"\x00")


@dataclass(frozen=True)
class SiaPublicKey:
    algorithm: bytes
    key: bytes

    def marshal_sia(self) -> bytes:
        return self.algorithm + encode_prefixed_bytes(self.key)


def new_ed25519_public_key(public_key: str) -> SiaPublicKey:
    """Wrap a hex Ed25519 public key (optionally ``ed25519:``-prefixed)."""
    pk_hex = validate_public_key("publicKey", public_key)
    key = from_hex(pk_hex, name="publicKey")
    validate_bytes_len("publicKeyBytes", key, "converted publicKey", PUBLIC_KEY_SIZE)
    return SiaPublicKey(new_specifier("ed25519"), key)


def derive_registry_entry_id(pub_key: SiaPublicKey, tweak: bytes) -> bytes:
    """The network-wide ID of a registry entry: H(marshalled public key || tweak)."""
    return hash_all(pub_key.marshal_sia(), tweak)


def new_skylink_v2(pub_key: SiaPublicKey, tweak: bytes) -> SiaSkylink:
    """The resolver (v2) skylink for the registry entry at (pub_key, tweak)."""
    version = 2
    return SiaSkylink(version - 1, derive_registry_entry_id(pub_key, tweak))


__all__ = [
    "RAW_SKYLINK_SIZE",
    "EMPTY_SKYLINK",
    "SiaSkylink",
    "SiaPublicKey",
    "new_specifier",
    "new_ed25519_public_key",
    "derive_registry_entry_id",
    "new_skylink_v2",
]
