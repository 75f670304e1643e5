"""
Per-operation options.

Every public operation takes an optional `options` argument, given either as
the operation's options dataclass or as a plain mapping of field names. Mapping
keys are checked against the dataclass fields and unknown keys are rejected, so
a typo never silently falls back to a default.

Composite operations (e.g. `SkyDB.set_json`, which uploads, looks up and sets)
use an options class inheriting every field of the steps they run; each step
receives its own view via `extract_options`.
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from typing import Any, Mapping, Optional, Type, TypeVar, Union

from .utils.validation import (
    throw_validation_error,
    validate_allowed_keys,
    validate_bool,
    validate_optional_string,
    validate_string,
    validate_timeout,
)

DEFAULT_REGISTRY_ENDPOINT = "/skynet/registry"
DEFAULT_UPLOAD_ENDPOINT = "/skynet/skyfile"
DEFAULT_DOWNLOAD_ENDPOINT = "/"
DEFAULT_GET_ENTRY_TIMEOUT = 5

_BOOL_FIELDS = ("hashed_data_key_hex", "allow_deletion_entry_data")
_STR_FIELDS = ("endpoint_get_entry", "endpoint_set_entry", "endpoint_upload", "endpoint_download")
_OPTIONAL_STR_FIELDS = ("api_key", "custom_user_agent", "custom_filename", "cached_data_link")


@dataclass(frozen=True)
class BaseOptions:
    """
    Options shared by every request.

    api_key / custom_user_agent override the client-wide values for one call.
    """

    api_key: Optional[str] = None
    custom_user_agent: Optional[str] = None

    def __post_init__(self) -> None:
        names = {f.name for f in fields(self)}
        for name in names.intersection(_BOOL_FIELDS):
            validate_bool(name, getattr(self, name), "optional parameter")
        for name in names.intersection(_STR_FIELDS):
            validate_string(name, getattr(self, name), "optional parameter")
        for name in names.intersection(_OPTIONAL_STR_FIELDS):
            validate_optional_string(name, getattr(self, name))
        if "timeout" in names:
            validate_timeout("timeout", getattr(self, "timeout"))


@dataclass(frozen=True)
class GetEntryOptions(BaseOptions):
    """timeout is in whole seconds and is forwarded to the portal."""

    endpoint_get_entry: str = DEFAULT_REGISTRY_ENDPOINT
    timeout: int = DEFAULT_GET_ENTRY_TIMEOUT
    hashed_data_key_hex: bool = False


@dataclass(frozen=True)
class SetEntryOptions(BaseOptions):
    endpoint_set_entry: str = DEFAULT_REGISTRY_ENDPOINT
    hashed_data_key_hex: bool = False


@dataclass(frozen=True)
class UploadOptions(BaseOptions):
    endpoint_upload: str = DEFAULT_UPLOAD_ENDPOINT
    custom_filename: Optional[str] = None


@dataclass(frozen=True)
class DownloadOptions(BaseOptions):
    endpoint_download: str = DEFAULT_DOWNLOAD_ENDPOINT


@dataclass(frozen=True)
class GetJSONOptions(GetEntryOptions, DownloadOptions):
    """cached_data_link: last known data link; when unchanged, skip the download."""

    cached_data_link: Optional[str] = None


@dataclass(frozen=True)
class SetJSONOptions(UploadOptions, GetJSONOptions, SetEntryOptions):
    pass


@dataclass(frozen=True)
class SetEntryDataOptions(GetEntryOptions, SetEntryOptions):
    """allow_deletion_entry_data must be set to write the deletion sentinel."""

    allow_deletion_entry_data: bool = False


O = TypeVar("O", bound=BaseOptions)

OptionsArg = Union[BaseOptions, Mapping[str, Any], None]


def make_options(cls: Type[O], custom: OptionsArg = None, *, name: str = "options") -> O:
    """
    Build `cls` from `custom`.

    - None          -> all defaults
    - BaseOptions   -> fields shared with `cls` are copied
    - Mapping       -> keys must be fields of `cls`
    """
    allowed = [f.name for f in fields(cls)]
    if custom is None:
        return cls()
    if isinstance(custom, cls):
        return custom
    if isinstance(custom, BaseOptions):
        return extract_options(custom, cls)
    if isinstance(custom, Mapping):
        validate_allowed_keys(name, custom.keys(), allowed)
        return cls(**dict(custom))
    throw_validation_error(name, custom, "optional parameter", "a mapping or an options object")
    raise AssertionError("unreachable")


def extract_options(opts: BaseOptions, cls: Type[O]) -> O:
    """View of `opts` restricted to the fields `cls` knows about."""
    return cls(**{f.name: getattr(opts, f.name) for f in fields(cls) if hasattr(opts, f.name)})


__all__ = [
    "DEFAULT_REGISTRY_ENDPOINT",
    "DEFAULT_UPLOAD_ENDPOINT",
    "DEFAULT_DOWNLOAD_ENDPOINT",
    "DEFAULT_GET_ENTRY_TIMEOUT",
    "BaseOptions",
    "GetEntryOptions",
    "SetEntryOptions",
    "UploadOptions",
    "DownloadOptions",
    "GetJSONOptions",
    "SetJSONOptions",
    "SetEntryDataOptions",
    "OptionsArg",
    "make_options",
    "extract_options",
]
