"""
Registry proof chains.

When a portal resolves a v2 (resolver) skylink it sends the registry entries it
followed in the ``skynet-proof`` response header. Each entry's data is the raw
skylink it points to, which may itself be another resolver link. The chain is
only trusted if every step is signed by its owner and links to the one before.
"""

from __future__ import annotations

import base64
import json
import logging
from dataclasses import dataclass
from typing import Any, List, Mapping, NamedTuple, Optional, Sequence, Union

from ..errors import RegistryProofError, SkynetSdkError
from ..skylink.format import encode_skylink_base64, format_skylink, trim_uri_prefix
from ..skylink.sia import RAW_SKYLINK_SIZE, new_ed25519_public_key, new_skylink_v2
from ..utils.bytes import from_hex, to_hex
from .entry import RegistryEntry, data_key_bytes, verify_entry

logger = logging.getLogger(__name__)

# Registry entries whose data is a skylink and which do not embed the public key.
REGISTRY_TYPE_WITHOUT_PUBKEY = 1


@dataclass(frozen=True)
class RegistryProofEntry:
    data: str
    revision: int
    datakey: str
    publickey: str
    signature: str
    type: int = REGISTRY_TYPE_WITHOUT_PUBKEY

    @classmethod
    def from_json(cls, obj: Mapping[str, Any]) -> "RegistryProofEntry":
        """
        Parse one proof element. ``publickey`` may be ``ed25519:<hex>`` or the
        portal's ``{"algorithm": "ed25519", "key": <base64>}`` form.
        """
        try:
            pk = obj["publickey"]
            if isinstance(pk, Mapping):
                if pk.get("algorithm") != "ed25519":
                    raise RegistryProofError(f"unsupported public key algorithm {pk.get('algorithm')!r}")
                pk = "ed25519:" + to_hex(base64.b64decode(pk["key"]))
            return cls(
                data=str(obj["data"]),
                revision=int(obj["revision"]),
                datakey=str(obj["datakey"]),
                publickey=str(pk),
                signature=str(obj["signature"]),
                type=int(obj["type"]),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise RegistryProofError(f"malformed registry proof entry: {e}") from e


class ProofResult(NamedTuple):
    content_id: str
    anchor_link: str


def parse_registry_proof(raw: Union[str, bytes, Sequence[Any]]) -> List[RegistryProofEntry]:
    """Decode a ``skynet-proof`` header value (JSON array) into entries."""
    if isinstance(raw, (str, bytes)):
        try:
            raw = json.loads(raw)
        except ValueError as e:
            raise RegistryProofError("registry proof is not valid JSON") from e
    if not isinstance(raw, list):
        raise RegistryProofError("registry proof must be a JSON array")
    return [e if isinstance(e, RegistryProofEntry) else RegistryProofEntry.from_json(e) for e in raw]


def entry_link_for(public_key: str, hashed_data_key_hex: str) -> str:
    """Bare base64 v2 link of the entry at (public_key, hashed data key)."""
    pk = new_ed25519_public_key(public_key)
    return new_skylink_v2(pk, data_key_bytes(hashed_data_key_hex, hashed_data_key_hex=True)).to_string()


def validate_registry_proof(
    proof: Sequence[Union[RegistryProofEntry, Mapping[str, Any]]],
    *,
    anchor_link: Optional[str] = None,
    expected_content_id: Optional[str] = None,
) -> ProofResult:
    """
    Walk `proof` and return the content id it resolves to plus the link of its
    first entry. Raises RegistryProofError unless every step checks out and,
    when given, the chain starts at `anchor_link` and ends at
    `expected_content_id`.
    """
    entries = parse_registry_proof(list(proof))
    if not entries:
        raise RegistryProofError("registry proof is empty")

    previous = trim_uri_prefix(anchor_link) if anchor_link else None
    first_link = ""
    content_id = ""

    for i, step in enumerate(entries):
        if step.type != REGISTRY_TYPE_WITHOUT_PUBKEY:
            raise RegistryProofError(f"unsupported registry type {step.type} in proof entry {i}")

        try:
            link = entry_link_for(step.publickey, step.datakey)
            data = from_hex(step.data, name="data")
            signature = from_hex(step.signature, name="signature")
            entry = RegistryEntry(data_key=step.datakey, data=data, revision=step.revision)
        except RegistryProofError:
            raise
        except SkynetSdkError as e:
            raise RegistryProofError(f"malformed registry proof entry {i}: {e}") from e

        if previous is not None and link != previous:
            raise RegistryProofError(
                f"registry proof entry {i} resolves {link}, expected {previous}"
            )
        if not verify_entry(step.publickey, entry, signature, hashed_data_key_hex=True):
            raise RegistryProofError(f"could not verify signature of registry proof entry {i}")
        if len(data) != RAW_SKYLINK_SIZE:
            raise RegistryProofError(f"registry proof entry {i} does not contain a skylink")

        if i == 0:
            first_link = link
        content_id = encode_skylink_base64(data)
        previous = content_id

    if expected_content_id is not None and content_id != trim_uri_prefix(expected_content_id):
        raise RegistryProofError(
            f"registry proof resolves to {content_id}, expected {trim_uri_prefix(expected_content_id)}"
        )
    logger.debug("validated registry proof of %d entries -> %s", len(entries), content_id)
    return ProofResult(content_id=content_id, anchor_link=format_skylink(first_link))


__all__ = [
    "REGISTRY_TYPE_WITHOUT_PUBKEY",
    "RegistryProofEntry",
    "ProofResult",
    "parse_registry_proof",
    "entry_link_for",
    "validate_registry_proof",
]
