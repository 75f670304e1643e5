"""
Typed error classes for the Python SDK.

These are raised by the transport, registry, skydb and validation helpers so
callers can catch specific failure modes while still being able to catch the
base `SkynetSdkError`.

Every error carries a `retryable` hint. Only transient transport failures are
retryable; corruption and revision exhaustion are terminal, validation errors
are caller bugs.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

__all__ = [
    "SkynetSdkError",
    "ValidationError",
    "ConfigError",
    "TransportError",
    "CorruptedEntryError",
    "RegistryProofError",
    "RevisionExhaustedError",
    "RevisionTooLowError",
    "ConcurrentAccessError",
    "ContentFormatError",
]


class SkynetSdkError(Exception):
    """Base class for all SDK errors."""

    retryable: bool = False


def _preview(value: Any, limit: int = 80) -> str:
    if isinstance(value, (bytes, bytearray, memoryview)):
        s = bytes(value).hex()
    else:
        s = str(value)
    return s if len(s) <= limit else s[: limit - 3] + "..."


@dataclass(eq=False)
class ValidationError(SkynetSdkError, ValueError):
    """
    Raised before any I/O when an input does not satisfy its constraint.

    The message always names the offending field and what was expected, e.g.
    ``Expected parameter 'publicKey' to be a hex-encoded string, was type 'str', value 'foo'``.
    """

    name: str
    value: Any
    kind: str
    expected: str
    message: str = field(default="", repr=False)

    def __post_init__(self) -> None:
        if not self.message:
            self.message = (
                f"Expected {self.kind} '{self.name}' to be {self.expected}, "
                f"was type '{type(self.value).__name__}', value '{_preview(self.value)}'"
            )
        super().__init__(self.message)

    def __str__(self) -> str:
        return self.message


@dataclass(eq=False)
class ConfigError(SkynetSdkError, ValueError):
    """Invalid SDK configuration (bad env var, unknown override, bad URL)."""

    message: str
    key: Optional[str] = None

    def __post_init__(self) -> None:
        super().__init__(self.message)

    def __str__(self) -> str:
        return self.message if not self.key else f"{self.message} (key={self.key})"


@dataclass(eq=False)
class TransportError(SkynetSdkError):
    """
    Raised when a portal request fails at the HTTP layer.

    `message` is the portal's structured error message when the response body
    carried one, otherwise a generic "Request failed with status code N".
    """

    message: str
    status: Optional[int] = None
    method: Optional[str] = None
    url: Optional[str] = None
    body: Optional[Any] = field(default=None, repr=False)
    retryable: bool = False

    def __post_init__(self) -> None:
        super().__init__(self.message)

    def __str__(self) -> str:
        return self.message


class CorruptedEntryError(SkynetSdkError):
    """A registry entry read from the network failed signature verification."""


class RegistryProofError(CorruptedEntryError):
    """A registry proof chain is empty, broken, badly signed or resolves elsewhere."""


class RevisionExhaustedError(SkynetSdkError):
    """The entry already has revision 2**64-1 and can never be updated again."""


class RevisionTooLowError(SkynetSdkError):
    """The portal returned a revision lower than the one already cached."""


@dataclass(eq=False)
class ConcurrentAccessError(SkynetSdkError):
    """Raised by fail-fast locking when another operation holds the entry lock."""

    public_key: str
    data_key: str

    def __post_init__(self) -> None:
        super().__init__(str(self))

    def __str__(self) -> str:
        return (
            "Concurrent access prevented in SkyDB for entry "
            f"{{ publicKey: {self.public_key}, dataKey: {self.data_key} }}"
        )


class ContentFormatError(SkynetSdkError):
    """Downloaded content behind a SkyDB entry is not in the expected format."""
