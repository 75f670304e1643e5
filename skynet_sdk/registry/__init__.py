"""
skynet_sdk.registry
-------------------

Signed, versioned registry entries: canonical encoding and signatures
(`entry`), portal get/set (`client`) and resolver proof chains (`proof`).
"""

from __future__ import annotations

from .client import RegistryClient  # noqa: F401
from .entry import (  # noqa: F401
    MAX_REGISTRY_DATA_SIZE,
    EntryIdentity,
    RegistryEntry,
    SignedRegistryEntry,
    derive_entry_identity,
    hash_registry_entry,
    sign_entry,
    verify_entry,
)
from .proof import (  # noqa: F401
    REGISTRY_TYPE_WITHOUT_PUBKEY,
    ProofResult,
    RegistryProofEntry,
    validate_registry_proof,
)

__all__ = [
    "RegistryClient",
    "MAX_REGISTRY_DATA_SIZE",
    "EntryIdentity",
    "RegistryEntry",
    "SignedRegistryEntry",
    "derive_entry_identity",
    "hash_registry_entry",
    "sign_entry",
    "verify_entry",
    "REGISTRY_TYPE_WITHOUT_PUBKEY",
    "ProofResult",
    "RegistryProofEntry",
    "validate_registry_proof",
]
