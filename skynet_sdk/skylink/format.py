from __future__ import annotations

import base64
import re
from typing import Any, Optional
from urllib.parse import urlsplit

from ..utils.bytes import b64url_decode, b64url_encode
from ..utils.validation import throw_validation_error, validate_bytes_len
from .sia import RAW_SKYLINK_SIZE

URI_SKYNET_PREFIX = "sia://"
_URI_SKYNET_SHORT_PREFIX = "sia:"

BASE64_ENCODED_SKYLINK_SIZE = 46
BASE32_ENCODED_SKYLINK_SIZE = 55

_SKYLINK_DIRECT_RE = re.compile(r"^([a-zA-Z0-9_-]{46})$")
_SKYLINK_PATHNAME_RE = re.compile(r"^/?([a-zA-Z0-9_-]{46})((/.*)?)$")
_SKYLINK_SUBDOMAIN_RE = re.compile(r"^([a-z0-9_-]{55})(\..*)?$")


def encode_skylink_base64(raw: bytes) -> str:
    validate_bytes_len("skylink", raw, "parameter", RAW_SKYLINK_SIZE)
    return b64url_encode(raw)


def decode_skylink_base64(skylink: str) -> bytes:
    if not isinstance(skylink, str) or not _SKYLINK_DIRECT_RE.match(skylink):
        throw_validation_error("skylink", skylink, "parameter", f"a base64 skylink of length {BASE64_ENCODED_SKYLINK_SIZE}")
    return b64url_decode(skylink)


def convert_skylink_to_base32(skylink: str) -> str:
    """base64url (46 chars) -> lowercase unpadded base32hex (55 chars)."""
    raw = decode_skylink_base64(skylink)
    return base64.b32hexencode(raw).decode("ascii").rstrip("=").lower()


def convert_skylink_to_base64(skylink: str) -> str:
    if not isinstance(skylink, str) or len(skylink) != BASE32_ENCODED_SKYLINK_SIZE:
        throw_validation_error("skylink", skylink, "parameter", f"a base32 skylink of length {BASE32_ENCODED_SKYLINK_SIZE}")
    padded = skylink.upper() + "=" * ((-len(skylink)) % 8)
    return b64url_encode(base64.b32hexdecode(padded))


def decode_skylink(skylink: str) -> bytes:
    """Raw 34 bytes of a base64 (46) or base32 (55) skylink."""
    if isinstance(skylink, str) and len(skylink) == BASE32_ENCODED_SKYLINK_SIZE:
        skylink = convert_skylink_to_base64(skylink)
    return decode_skylink_base64(skylink)


def trim_uri_prefix(s: str, prefix: str = URI_SKYNET_PREFIX) -> str:
    short = prefix.rstrip("/")
    if s.startswith(prefix):
        return s[len(prefix):]
    if s.startswith(short):
        return s[len(short):]
    return s


def format_skylink(skylink: str) -> str:
    """Add the ``sia://`` prefix; the empty string stays empty."""
    if skylink == "":
        return skylink
    if not skylink.startswith(URI_SKYNET_PREFIX):
        skylink = f"{URI_SKYNET_PREFIX}{trim_uri_prefix(skylink)}"
    return skylink


def parse_skylink(skylink_url: str, *, from_subdomain: bool = False, include_path: bool = False) -> Optional[str]:
    """
    Extract the skylink from a plain skylink, a ``sia:``/``sia://`` URI or a
    portal URL whose first path element is the skylink. With `from_subdomain`
    the base32 skylink is read from the first host label instead.

    Returns None when no skylink is found.
    """
    if not isinstance(skylink_url, str):
        raise TypeError(f"Skylink has to be a string, {type(skylink_url).__name__} provided")
    if include_path and from_subdomain:
        raise ValueError("The include_path and from_subdomain options cannot both be set")

    if from_subdomain:
        host = urlsplit(skylink_url if "://" in skylink_url else f"https://{skylink_url}").hostname or ""
        m = _SKYLINK_SUBDOMAIN_RE.match(host)
        return m.group(1) if m else None

    skylink_url = trim_uri_prefix(skylink_url, URI_SKYNET_PREFIX)
    if _SKYLINK_DIRECT_RE.match(skylink_url):
        return skylink_url

    path = urlsplit(skylink_url).path if "://" in skylink_url else skylink_url
    m = _SKYLINK_PATHNAME_RE.match(path)
    if not m:
        return None
    return m.group(1) + m.group(2) if include_path else m.group(1)


def validate_skylink_string(name: str, value: Any, kind: str = "parameter") -> str:
    """Validate and return the bare base64 skylink contained in `value`."""
    parsed = parse_skylink(value) if isinstance(value, str) else None
    if parsed is None:
        throw_validation_error(name, value, kind, "valid skylink of type 'str'")
    return parsed


__all__ = [
    "URI_SKYNET_PREFIX",
    "BASE64_ENCODED_SKYLINK_SIZE",
    "BASE32_ENCODED_SKYLINK_SIZE",
    "encode_skylink_base64",
    "decode_skylink_base64",
    "convert_skylink_to_base32",
    "convert_skylink_to_base64",
    "decode_skylink",
    "trim_uri_prefix",
    "format_skylink",
    "parse_skylink",
    "validate_skylink_string",
]
