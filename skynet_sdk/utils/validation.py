"""
Input validation helpers.

All helpers raise `ValidationError` with a message naming the field, its kind
("parameter", "optional parameter", "returned entry data", ...) and the
expected constraint, so validation failures are never bare generic errors.
"""

from __future__ import annotations

from typing import Any, Iterable, Optional

from ..errors import ValidationError
from .bytes import from_hex, is_hex_string

ED25519_PREFIX = "ed25519:"
PUBLIC_KEY_SIZE = 32
PRIVATE_KEY_SIZE = 64
SEED_SIZE = 32


def throw_validation_error(name: str, value: Any, kind: str, expected: str) -> None:
    raise ValidationError(name, value, kind, expected)


def validate_string(name: str, value: Any, kind: str = "parameter") -> str:
    if not isinstance(value, str):
        throw_validation_error(name, value, kind, "type 'str'")
    return value


def validate_optional_string(name: str, value: Any, kind: str = "optional parameter") -> Optional[str]:
    if value is None:
        return None
    return validate_string(name, value, kind)


def validate_bool(name: str, value: Any, kind: str = "parameter") -> bool:
    if not isinstance(value, bool):
        throw_validation_error(name, value, kind, "type 'bool'")
    return value


def validate_integer(name: str, value: Any, kind: str = "parameter") -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        throw_validation_error(name, value, kind, "an integer value")
    return value


def validate_hex_string(name: str, value: Any, kind: str = "parameter") -> str:
    if not is_hex_string(value):
        throw_validation_error(name, value, kind, "a hex-encoded string")
    return value


def validate_bytes(name: str, value: Any, kind: str = "parameter") -> bytes:
    if not isinstance(value, (bytes, bytearray, memoryview)):
        throw_validation_error(name, value, kind, "type 'bytes'")
    return bytes(value)


def validate_bytes_len(name: str, value: Any, kind: str, length: int) -> bytes:
    b = validate_bytes(name, value, kind)
    if len(b) != length:
        throw_validation_error(name, value, kind, f"length {length} bytes")
    return b


def validate_public_key(name: str, public_key: Any, kind: str = "parameter") -> str:
    """
    Validate an Ed25519 public key given as hex, optionally with the
    ``ed25519:`` prefix. Returns the bare lowercase hex key.
    """
    if isinstance(public_key, str) and public_key.startswith(ED25519_PREFIX):
        public_key = public_key[len(ED25519_PREFIX):]
    if not is_hex_string(public_key):
        throw_validation_error(
            name, public_key, kind, "a hex-encoded string with a valid prefix"
        )
    if len(public_key) != PUBLIC_KEY_SIZE * 2:
        throw_validation_error(
            name, public_key, kind, f"a hex-encoded {PUBLIC_KEY_SIZE}-byte public key"
        )
    return public_key.lower()


def validate_private_key(name: str, private_key: Any, kind: str = "parameter") -> bytes:
    """Accept a 64-byte (seed || public key) or 32-byte seed private key in hex."""
    validate_hex_string(name, private_key, kind)
    raw = from_hex(private_key, name=name, kind=kind)
    if len(raw) not in (SEED_SIZE, PRIVATE_KEY_SIZE):
        throw_validation_error(
            name, private_key, kind, f"a hex-encoded {PRIVATE_KEY_SIZE}-byte private key"
        )
    return raw


def validate_json_object(name: str, value: Any, kind: str = "parameter") -> Any:
    if not isinstance(value, (dict, list)):
        throw_validation_error(name, value, kind, "a JSON object or array")
    return value


def validate_timeout(name: str, value: Any, kind: str = "optional parameter") -> int:
    """Registry lookup timeouts are whole seconds between 1 and 300."""
    validate_integer(name, value, kind)
    if not 1 <= value <= 300:
        throw_validation_error(name, value, kind, "an integer between 1 and 300 seconds")
    return value


def validate_allowed_keys(name: str, keys: Iterable[str], allowed: Iterable[str]) -> None:
    allowed = set(allowed)
    for key in keys:
        if key not in allowed:
            raise ValidationError(
                name,
                key,
                "object parameter",
                "a recognized option",
                message=f"Object parameter '{name}' contains unexpected property '{key}'",
            )


__all__ = [
    "ED25519_PREFIX",
    "PUBLIC_KEY_SIZE",
    "PRIVATE_KEY_SIZE",
    "throw_validation_error",
    "validate_string",
    "validate_optional_string",
    "validate_bool",
    "validate_integer",
    "validate_hex_string",
    "validate_bytes",
    "validate_bytes_len",
    "validate_public_key",
    "validate_private_key",
    "validate_json_object",
    "validate_timeout",
    "validate_allowed_keys",
]
