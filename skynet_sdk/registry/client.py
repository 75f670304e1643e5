"""
skynet_sdk.registry.client
==========================

Signed registry entries over a portal's ``/skynet/registry`` endpoint.

- **GET  /skynet/registry?publickey=ed25519:<hex>&datakey=<hex>&timeout=<s>**:
  look up the latest entry; 404 means "no entry" and is returned as an empty
  `SignedRegistryEntry`, not raised.
- **POST /skynet/registry**: store a signed entry; the portal rejects revisions
  that are not higher than the one it has.

Every entry read from the portal is signature-checked before it is returned.

Typical usage
-------------
    from skynet_sdk.registry import RegistryClient
    from skynet_sdk.transport import HttpTransport

    registry = RegistryClient(HttpTransport())
    signed = await registry.get_entry(public_key, "app")
    if signed.found:
        print(signed.entry.revision)
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Dict

from ..capabilities import Transport
from ..crypto import public_key_from_private_key
from ..errors import CorruptedEntryError, TransportError
from ..options import GetEntryOptions, OptionsArg, SetEntryOptions, make_options
from ..skylink.format import format_skylink
from ..transport.http import Request
from ..utils.bytes import from_hex
from ..utils.validation import ED25519_PREFIX, validate_bytes, validate_private_key
from .entry import (
    EntryIdentity,
    RegistryEntry,
    SignedRegistryEntry,
    derive_entry_identity,
    sign_entry,
    verify_entry,
)
from .proof import entry_link_for

logger = logging.getLogger(__name__)

JsonDict = Dict[str, Any]

# Revisions are uint64 and must survive JSON decoding in any consumer; keep the
# digits as a string and convert explicitly.
_REVISION_RE = re.compile(r'"revision"\s*:\s*(\d+)')


def parse_entry_response(content: bytes) -> Any:
    """Decode a registry lookup body with its revision kept as a digit string."""
    text = content.decode("utf-8")
    return json.loads(_REVISION_RE.sub(r'"revision":"\1"', text))


def _entry_query(identity: EntryIdentity, timeout: int) -> JsonDict:
    return {
        "publickey": f"{ED25519_PREFIX}{identity.public_key_hex}",
        "datakey": identity.data_key_hex,
        "timeout": timeout,
    }


class RegistryClient:
    """
    Registry get/set on top of a `Transport`.

    Parameters
    ----------
    transport : Transport
        Usually an `HttpTransport`; it owns the portal URL, headers and retries.
    """

    def __init__(self, transport: Transport) -> None:
        self.transport = transport

    # ---- Lookup --------------------------------------------------------------

    async def get_entry(self, public_key: str, data_key: str, options: OptionsArg = None) -> SignedRegistryEntry:
        opts = make_options(GetEntryOptions, options)
        identity = derive_entry_identity(public_key, data_key, opts.hashed_data_key_hex)

        resp = await self.transport.execute(
            Request(
                "GET",
                opts.endpoint_get_entry,
                query=_entry_query(identity, opts.timeout),
                api_key=opts.api_key,
                custom_user_agent=opts.custom_user_agent,
                response_transform=parse_entry_response,
                expected_statuses=(404,),
            )
        )
        if resp.status == 404:
            logger.debug("registry entry %s/%s not found", identity.public_key_hex, identity.data_key_hex)
            return SignedRegistryEntry()

        body = resp.data
        if not isinstance(body, dict) or any(
            not isinstance(body.get(k), str) for k in ("data", "revision", "signature")
        ):
            raise TransportError("Did not get a complete entry response", status=resp.status, method="GET")

        try:
            entry = RegistryEntry(
                data_key=data_key,
                data=from_hex(body["data"], name="data", kind="entry response field"),
                revision=int(body["revision"]),
            )
            signature = from_hex(body["signature"], name="signature", kind="entry response field")
        except ValueError as e:
            raise CorruptedEntryError(f"malformed registry entry response: {e}") from e

        if not verify_entry(identity.public_key_hex, entry, signature, opts.hashed_data_key_hex):
            raise CorruptedEntryError("could not verify signature from retrieved, signed registry entry -- possible corrupted entry")

        logger.debug(
            "registry entry %s/%s at revision %d", identity.public_key_hex, identity.data_key_hex, entry.revision
        )
        return SignedRegistryEntry(entry=entry, signature=signature)

    def get_entry_url(self, public_key: str, data_key: str, options: OptionsArg = None) -> str:
        opts = make_options(GetEntryOptions, options)
        identity = derive_entry_identity(public_key, data_key, opts.hashed_data_key_hex)
        return self.transport.build_url(opts.endpoint_get_entry, query=_entry_query(identity, opts.timeout))

    def get_entry_link(self, public_key: str, data_key: str, options: OptionsArg = None) -> str:
        """``sia://`` resolver link pointing at the entry."""
        opts = make_options(GetEntryOptions, options)
        identity = derive_entry_identity(public_key, data_key, opts.hashed_data_key_hex)
        return format_skylink(entry_link_for(identity.public_key_hex, identity.data_key_hex))

    # ---- Update --------------------------------------------------------------

    async def set_entry(self, private_key: str, entry: RegistryEntry, options: OptionsArg = None) -> None:
        """Sign `entry` with `private_key` and post it."""
        opts = make_options(SetEntryOptions, options)
        validate_private_key("privateKey", private_key)
        if not isinstance(entry, RegistryEntry):
            raise TypeError(f"entry must be a RegistryEntry, got {type(entry).__name__}")

        public_key = public_key_from_private_key(private_key)
        signature = sign_entry(private_key, entry, opts.hashed_data_key_hex)
        await self.post_signed_entry(public_key, entry, signature, opts)

    async def post_signed_entry(
        self, public_key: str, entry: RegistryEntry, signature: bytes, options: OptionsArg = None
    ) -> None:
        opts = make_options(SetEntryOptions, options)
        identity = derive_entry_identity(public_key, entry.data_key, opts.hashed_data_key_hex)
        signature = validate_bytes("signature", signature)

        body: JsonDict = {
            "publickey": {
                "algorithm": "ed25519",
                "key": list(from_hex(identity.public_key_hex, name="publicKey")),
            },
            "datakey": identity.data_key_hex,
            "revision": entry.revision,
            "data": list(entry.data),
            "signature": list(signature),
        }
        await self.transport.execute(
            Request(
                "POST",
                opts.endpoint_set_entry,
                json=body,
                api_key=opts.api_key,
                custom_user_agent=opts.custom_user_agent,
            )
        )
        logger.debug(
            "posted registry entry %s/%s revision %d", identity.public_key_hex, identity.data_key_hex, entry.revision
        )


__all__ = ["RegistryClient", "parse_entry_response"]
