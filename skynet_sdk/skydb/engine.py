"""
skynet_sdk.skydb.engine
=======================

SkyDB: mutable, signed values on top of the registry.

A SkyDB value lives at ``(public key, data key)``. Its registry entry holds a
34-byte data link (the skylink of an uploaded file) or, for raw entry data, up
to 70 bytes stored directly in the entry. Writing means:

1. upload the new content (JSON only),
2. take the entry lock,
3. read the current revision from the cache, or from the portal if the entry
   was never seen by this process,
4. sign and post the entry at revision + 1,
5. record the new revision, release the lock.

Reads take the same lock because they update the cached revision. Deleting
writes the all-zero skylink, which reads report as "no data".

Data keys are resolved to their hashed hex form once, at the start of every
operation, so hashed and plain-text callers of the same entry share one cache
slot and one lock.

Typical usage
-------------
    db = client.db
    await db.set_json(private_key, "profile", {"name": "x"})
    data, link = await db.get_json(public_key, "profile")
"""

from __future__ import annotations

import dataclasses
import json
import logging
from typing import Any, NamedTuple, Optional, Tuple, Type, TypeVar, Union

from ..capabilities import ContentDownloader, ContentUploader
from ..crypto import public_key_from_private_key
from ..errors import ContentFormatError, RevisionExhaustedError, RevisionTooLowError, ValidationError
from ..options import (
    BaseOptions,
    DownloadOptions,
    GetEntryOptions,
    GetJSONOptions,
    OptionsArg,
    SetEntryDataOptions,
    SetEntryOptions,
    SetJSONOptions,
    UploadOptions,
    extract_options,
    make_options,
)
from ..registry.client import RegistryClient
from ..registry.entry import EntryIdentity, RegistryEntry, derive_entry_identity
from ..skylink.format import (
    BASE64_ENCODED_SKYLINK_SIZE,
    decode_skylink,
    encode_skylink_base64,
    format_skylink,
    trim_uri_prefix,
    validate_skylink_string,
)
from ..skylink.sia import EMPTY_SKYLINK, RAW_SKYLINK_SIZE
from ..utils.bytes import MAX_REVISION, to_hex
from ..utils.validation import (
    throw_validation_error,
    validate_bytes,
    validate_bytes_len,
    validate_json_object,
    validate_private_key,
    validate_string,
)
from .revision_cache import UNCACHED_REVISION_NUMBER, CachedRevisionNumber, RevisionNumberCache

logger = logging.getLogger(__name__)

O = TypeVar("O", bound=BaseOptions)

# Maximum length of raw entry data set through SkyDB.
MAX_ENTRY_LENGTH = 70

# Entry data marking a deleted value.
DELETION_ENTRY_DATA = EMPTY_SKYLINK

JSON_RESPONSE_VERSION = 2

JsonData = Union[dict, list]


class JSONResponse(NamedTuple):
    data: Optional[JsonData]
    data_link: Optional[str]


class RawBytesResponse(NamedTuple):
    data: Optional[bytes]
    data_link: Optional[str]


class EntryData(NamedTuple):
    data: Optional[bytes]


# --- helpers -----------------------------------------------------------------


def increment_revision(revision: int) -> int:
    revision = revision + 1
    if revision > MAX_REVISION:
        raise RevisionExhaustedError(
            "Current entry already has maximum allowed revision, could not update the entry"
        )
    return revision


def check_cached_data_link(raw_data_link: str, cached_data_link: Optional[str]) -> bool:
    """True when `cached_data_link` is given and names the same skylink."""
    if cached_data_link:
        cached = validate_skylink_string("cachedDataLink", cached_data_link, "optional parameter")
        return raw_data_link == cached
    return False


def validate_entry_data(data: bytes, allow_deletion_entry_data: bool) -> None:
    if len(data) > MAX_ENTRY_LENGTH:
        throw_validation_error(
            "data", data, "parameter", f"'bytes' of length <= {MAX_ENTRY_LENGTH}, was length {len(data)}"
        )
    if not allow_deletion_entry_data and data == DELETION_ENTRY_DATA:
        raise ValidationError(
            "data",
            data,
            "parameter",
            "not the deletion sentinel",
            message=(
                "Tried to set 'bytes' entry data that is the deletion sentinel "
                f"(bytes({RAW_SKYLINK_SIZE})), please use the 'delete_entry_data' method instead"
            ),
        )


def parse_data_link(data: bytes, legacy: bool) -> Tuple[str, str]:
    """
    Return ``(raw_data_link, data_link)``: the bare base64 skylink stored in
    the entry and its ``sia://`` form. With `legacy`, 46-byte entries holding
    the base64 text of the skylink are accepted too.
    """
    if legacy and len(data) == BASE64_ENCODED_SKYLINK_SIZE:
        try:
            raw = data.decode("utf-8")
        except UnicodeDecodeError:
            throw_validation_error("entry.data", data, "returned entry data", "a UTF-8 base64 skylink")
        raw = validate_skylink_string("entry.data", raw, "returned entry data")
    elif len(data) == RAW_SKYLINK_SIZE:
        raw = encode_skylink_base64(data)
    else:
        throw_validation_error("entry.data", data, "returned entry data", f"length {RAW_SKYLINK_SIZE} bytes")
    return raw, format_skylink(raw)


def was_registry_entry_deleted(entry: RegistryEntry) -> bool:
    return entry.data == EMPTY_SKYLINK


def build_skynet_json(data: JsonData) -> dict:
    return {"_data": data, "_v": JSON_RESPONSE_VERSION}


def _hashed(opts: BaseOptions, cls: Type[O]) -> O:
    """`cls` view of `opts` addressing the entry by its hashed data key."""
    return dataclasses.replace(extract_options(opts, cls), hashed_data_key_hex=True)


# --- engine ------------------------------------------------------------------


class SkyDB:
    """
    Read-modify-write operations on SkyDB values.

    Parameters
    ----------
    registry : RegistryClient
    uploader : ContentUploader
    downloader : ContentDownloader
    cache : RevisionNumberCache | None
        Shared revision cache; a fresh one is created when omitted.
    fail_fast : bool
        Raise ConcurrentAccessError instead of waiting when another operation
        on the same entry is in progress.
    """

    def __init__(
        self,
        registry: RegistryClient,
        uploader: ContentUploader,
        downloader: ContentDownloader,
        *,
        cache: Optional[RevisionNumberCache] = None,
        fail_fast: bool = False,
    ) -> None:
        self.registry = registry
        self.uploader = uploader
        self.downloader = downloader
        self.revision_number_cache = cache if cache is not None else RevisionNumberCache()
        self.fail_fast = fail_fast

    # ---- JSON ----------------------------------------------------------------

    async def get_json(self, public_key: str, data_key: str, options: OptionsArg = None) -> JSONResponse:
        """
        Latest JSON at the entry and its data link.

        Returns ``(None, None)`` when the entry does not exist or was deleted,
        and ``(None, data_link)`` when `cached_data_link` is still current.
        """
        opts = make_options(GetJSONOptions, options)
        identity = derive_entry_identity(public_key, data_key, opts.hashed_data_key_hex)

        async def _get(cached: CachedRevisionNumber) -> JSONResponse:
            entry = await self._get_entry_and_update_cache(identity, cached, opts)
            if entry is None:
                return JSONResponse(None, None)

            raw_link, data_link = parse_data_link(entry.data, legacy=True)
            if check_cached_data_link(raw_link, opts.cached_data_link):
                return JSONResponse(None, data_link)

            content = await self.downloader.fetch_content(data_link, extract_options(opts, DownloadOptions))
            data = content.json()
            if not isinstance(data, (dict, list)):
                raise ContentFormatError(f"File data for the entry at data key '{data_key}' is not JSON.")
            if not (isinstance(data, dict) and "_data" in data and "_v" in data):
                # Written without the version wrapper; returned as stored.
                return JSONResponse(data, data_link)

            actual = data["_data"]
            if not isinstance(actual, (dict, list)):
                raise ContentFormatError(f"File data '_data' for the entry at data key '{data_key}' is not JSON.")
            return JSONResponse(actual, data_link)

        return await self._with_lock(identity, _get)

    async def set_json(self, private_key: str, data_key: str, json_data: JsonData, options: OptionsArg = None) -> JSONResponse:
        """Upload `json_data` and point the entry at it with the next revision."""
        validate_private_key("privateKey", private_key)
        validate_string("dataKey", data_key)
        validate_json_object("json", json_data)
        opts = make_options(SetJSONOptions, options)
        identity = derive_entry_identity(
            public_key_from_private_key(private_key), data_key, opts.hashed_data_key_hex
        )

        filename_key = data_key if opts.hashed_data_key_hex else to_hex(data_key.encode("utf-8"))
        content = json.dumps(build_skynet_json(json_data)).encode("utf-8")
        uploaded = await self.uploader.upload_content(
            content,
            f"dk:{filename_key}",
            extract_options(opts, UploadOptions),
            content_type="application/json",
        )
        data_link = trim_uri_prefix(uploaded.skylink)
        raw_link = validate_bytes_len(
            "rawDataLink", decode_skylink(data_link), "skylink byte array", RAW_SKYLINK_SIZE
        )

        await self._set_entry(identity, private_key, raw_link, opts)
        return JSONResponse(json_data, format_skylink(data_link))

    async def delete_json(self, private_key: str, data_key: str, options: OptionsArg = None) -> None:
        await self.delete_entry_data(private_key, data_key, options)

    # ---- Entry data ----------------------------------------------------------

    async def set_data_link(self, private_key: str, data_key: str, data_link: str, options: OptionsArg = None) -> None:
        """Point the entry at an existing skylink."""
        parsed = validate_skylink_string("dataLink", data_link)
        await self.set_entry_data(private_key, data_key, decode_skylink(parsed), options)

    async def get_entry_data(self, public_key: str, data_key: str, options: OptionsArg = None) -> EntryData:
        opts = make_options(GetEntryOptions, options)
        identity = derive_entry_identity(public_key, data_key, opts.hashed_data_key_hex)

        async def _get(cached: CachedRevisionNumber) -> EntryData:
            entry = await self._get_entry_and_update_cache(identity, cached, opts)
            return EntryData(entry.data if entry is not None else None)

        return await self._with_lock(identity, _get)

    async def set_entry_data(self, private_key: str, data_key: str, data: bytes, options: OptionsArg = None) -> EntryData:
        """Store up to 70 bytes directly in the entry."""
        validate_private_key("privateKey", private_key)
        validate_string("dataKey", data_key)
        data = validate_bytes("data", data)
        opts = make_options(SetEntryDataOptions, options)
        validate_entry_data(data, opts.allow_deletion_entry_data)
        identity = derive_entry_identity(
            public_key_from_private_key(private_key), data_key, opts.hashed_data_key_hex
        )

        await self._set_entry(identity, private_key, data, opts)
        return EntryData(data)

    async def delete_entry_data(self, private_key: str, data_key: str, options: OptionsArg = None) -> None:
        """Mark the entry deleted; later reads return no data."""
        opts = make_options(SetEntryDataOptions, options)
        opts = dataclasses.replace(opts, allow_deletion_entry_data=True)
        await self.set_entry_data(private_key, data_key, DELETION_ENTRY_DATA, opts)

    # ---- Raw bytes -----------------------------------------------------------

    async def get_raw_bytes(self, public_key: str, data_key: str, options: OptionsArg = None) -> RawBytesResponse:
        """Like `get_json` but returns the linked file's bytes undecoded."""
        opts = make_options(GetJSONOptions, options)
        identity = derive_entry_identity(public_key, data_key, opts.hashed_data_key_hex)

        async def _get(cached: CachedRevisionNumber) -> RawBytesResponse:
            entry = await self._get_entry_and_update_cache(identity, cached, opts)
            if entry is None:
                return RawBytesResponse(None, None)

            raw_link, data_link = parse_data_link(entry.data, legacy=False)
            if check_cached_data_link(raw_link, opts.cached_data_link):
                return RawBytesResponse(None, data_link)

            content = await self.downloader.fetch_content(data_link, extract_options(opts, DownloadOptions))
            return RawBytesResponse(content.data, data_link)

        return await self._with_lock(identity, _get)

    # ---- internals -----------------------------------------------------------

    async def _with_lock(self, identity: EntryIdentity, fn: Any) -> Any:
        return await self.revision_number_cache.with_cached_entry_lock(
            identity.public_key_hex,
            identity.data_key_hex,
            fn,
            hashed_data_key_hex=True,
            fail_fast=self.fail_fast,
        )

    async def _get_entry_and_update_cache(
        self, identity: EntryIdentity, cached: CachedRevisionNumber, opts: BaseOptions
    ) -> Optional[RegistryEntry]:
        """
        Look the entry up and record its revision. Returns None for missing
        and deleted entries; a missing entry leaves the cache untouched.
        """
        signed = await self.registry.get_entry(
            identity.public_key_hex, identity.data_key_hex, _hashed(opts, GetEntryOptions)
        )
        if signed.entry is None:
            return None

        entry = signed.entry
        if cached.revision > entry.revision:
            raise RevisionTooLowError(
                "Returned revision number too low. A higher revision number for this userID and path is already cached"
            )
        cached.revision = entry.revision

        if was_registry_entry_deleted(entry):
            return None
        return entry

    async def _set_entry(
        self, identity: EntryIdentity, private_key: str, data: bytes, opts: BaseOptions
    ) -> int:
        async def _set(cached: CachedRevisionNumber) -> int:
            current = cached.revision
            if current == UNCACHED_REVISION_NUMBER:
                signed = await self.registry.get_entry(
                    identity.public_key_hex, identity.data_key_hex, _hashed(opts, GetEntryOptions)
                )
                if signed.entry is not None:
                    current = signed.entry.revision

            revision = increment_revision(current)
            entry = RegistryEntry(data_key=identity.data_key_hex, data=data, revision=revision)
            await self.registry.set_entry(private_key, entry, _hashed(opts, SetEntryOptions))

            cached.revision = revision
            logger.debug(
                "set entry %s/%s to revision %d", identity.public_key_hex, identity.data_key_hex, revision
            )
            return revision

        return await self._with_lock(identity, _set)


__all__ = [
    "MAX_ENTRY_LENGTH",
    "DELETION_ENTRY_DATA",
    "JSON_RESPONSE_VERSION",
    "JSONResponse",
    "RawBytesResponse",
    "EntryData",
    "SkyDB",
    "increment_revision",
    "check_cached_data_link",
    "validate_entry_data",
    "parse_data_link",
    "was_registry_entry_deleted",
    "build_skynet_json",
]
