"""
Registry entries: identity, canonical signing bytes, sign and verify.

An entry is addressed by ``(owner public key, hashed data key)``. Callers may
hand in a plain-text data key (hashed here) or one that is already the hex of
the hash (``hashed_data_key_hex=True``). `derive_entry_identity` is where that
choice is resolved; everything downstream works on the resolved identity.

The signed message is::

    blake2b256( data_key_hash || u64le(len(data)) || data || u64le(revision) )
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import NamedTuple, Optional

from ..crypto import sign_message, verify_message
from ..utils.bytes import assert_uint64, encode_prefixed_bytes, encode_uint64, from_hex, to_hex
from ..utils.hash import hash_all, hash_data_key
from ..utils.validation import (
    throw_validation_error,
    validate_bool,
    validate_bytes,
    validate_hex_string,
    validate_public_key,
    validate_string,
)

# Maximum size of the data field of a registry entry.
MAX_REGISTRY_DATA_SIZE = 113

HASHED_DATA_KEY_SIZE = 32


@dataclass(frozen=True)
class RegistryEntry:
    data_key: str
    data: bytes
    revision: int

    def __post_init__(self) -> None:
        validate_string("entry.dataKey", self.data_key)
        object.__setattr__(self, "data", validate_bytes("entry.data", self.data))
        assert_uint64(self.revision, name="entry.revision")
        if len(self.data) > MAX_REGISTRY_DATA_SIZE:
            throw_validation_error(
                "entry.data", self.data, "parameter", f"at most {MAX_REGISTRY_DATA_SIZE} bytes"
            )


@dataclass(frozen=True)
class SignedRegistryEntry:
    """Both fields None means the entry was not found."""

    entry: Optional[RegistryEntry] = None
    signature: Optional[bytes] = None

    @property
    def found(self) -> bool:
        return self.entry is not None


class EntryIdentity(NamedTuple):
    public_key_hex: str
    data_key_hex: str


def data_key_bytes(data_key: str, hashed_data_key_hex: bool = False) -> bytes:
    """The 32 bytes identifying `data_key` on the network."""
    if hashed_data_key_hex:
        validate_hex_string("dataKey", data_key)
        raw = from_hex(data_key, name="dataKey")
        if len(raw) != HASHED_DATA_KEY_SIZE:
            throw_validation_error(
                "dataKey", data_key, "parameter", f"a hex-encoded {HASHED_DATA_KEY_SIZE}-byte hashed data key"
            )
        return raw
    validate_string("dataKey", data_key)
    return hash_data_key(data_key)


def derive_entry_identity(public_key: str, data_key: str, hashed_data_key_hex: bool = False) -> EntryIdentity:
    validate_bool("hashedDataKeyHex", hashed_data_key_hex, "optional parameter")
    pk = validate_public_key("publicKey", public_key)
    return EntryIdentity(pk, to_hex(data_key_bytes(data_key, hashed_data_key_hex)))


def hash_registry_entry(entry: RegistryEntry, hashed_data_key_hex: bool = False) -> bytes:
    return hash_all(
        data_key_bytes(entry.data_key, hashed_data_key_hex),
        encode_prefixed_bytes(entry.data),
        encode_uint64(entry.revision),
    )


def sign_entry(private_key: str, entry: RegistryEntry, hashed_data_key_hex: bool = False) -> bytes:
    return sign_message(private_key, hash_registry_entry(entry, hashed_data_key_hex))


def verify_entry(
    public_key: str, entry: RegistryEntry, signature: bytes, hashed_data_key_hex: bool = False
) -> bool:
    return verify_message(public_key, hash_registry_entry(entry, hashed_data_key_hex), signature)


__all__ = [
    "MAX_REGISTRY_DATA_SIZE",
    "HASHED_DATA_KEY_SIZE",
    "RegistryEntry",
    "SignedRegistryEntry",
    "EntryIdentity",
    "data_key_bytes",
    "derive_entry_identity",
    "hash_registry_entry",
    "sign_entry",
    "verify_entry",
]
