"""
skynet_sdk.skylink
------------------

Content identifiers ("skylinks"): the 34-byte Sia structure, resolver (v2)
link derivation, and the base64url / base32hex string forms.
"""

from __future__ import annotations

from .format import (  # noqa: F401
    BASE32_ENCODED_SKYLINK_SIZE,
    BASE64_ENCODED_SKYLINK_SIZE,
    URI_SKYNET_PREFIX,
    convert_skylink_to_base32,
    convert_skylink_to_base64,
    decode_skylink,
    decode_skylink_base64,
    encode_skylink_base64,
    format_skylink,
    parse_skylink,
    trim_uri_prefix,
    validate_skylink_string,
)
from .sia import (  # noqa: F401
    EMPTY_SKYLINK,
    RAW_SKYLINK_SIZE,
    SiaSkylink,
    new_ed25519_public_key,
    new_skylink_v2,
)

__all__ = [
    "BASE32_ENCODED_SKYLINK_SIZE",
    "BASE64_ENCODED_SKYLINK_SIZE",
    "URI_SKYNET_PREFIX",
    "EMPTY_SKYLINK",
    "RAW_SKYLINK_SIZE",
    "SiaSkylink",
    "convert_skylink_to_base32",
    "convert_skylink_to_base64",
    "decode_skylink",
    "decode_skylink_base64",
    "encode_skylink_base64",
    "format_skylink",
    "parse_skylink",
    "trim_uri_prefix",
    "validate_skylink_string",
    "new_ed25519_public_key",
    "new_skylink_v2",
]
