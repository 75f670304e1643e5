"""
Skynet SDK for Python
Convenience exports for the registry, SkyDB and key helpers.
"""

from .version import __version__  # noqa: F401

# Core config & errors
from .config import SDKConfig  # noqa: F401
from .errors import (  # noqa: F401
    ConcurrentAccessError,
    ConfigError,
    ContentFormatError,
    CorruptedEntryError,
    RegistryProofError,
    RevisionExhaustedError,
    RevisionTooLowError,
    SkynetSdkError,
    TransportError,
    ValidationError,
)

# Client
from .client import SkynetClient  # noqa: F401

# Keys
from .crypto import (  # noqa: F401
    KeyPair,
    KeyPairAndSeed,
    gen_key_pair_and_seed,
    gen_key_pair_from_seed,
    public_key_from_private_key,
)

# Registry
from .registry import (  # noqa: F401
    RegistryClient,
    RegistryEntry,
    SignedRegistryEntry,
    validate_registry_proof,
)

# SkyDB
from .skydb import (  # noqa: F401
    DELETION_ENTRY_DATA,
    EntryData,
    JSONResponse,
    RawBytesResponse,
    RevisionNumberCache,
    SkyDB,
)

# Options
from .options import (  # noqa: F401
    DownloadOptions,
    GetEntryOptions,
    GetJSONOptions,
    SetEntryDataOptions,
    SetEntryOptions,
    SetJSONOptions,
    UploadOptions,
)

# Utilities
from .utils.bytes import MAX_REVISION  # noqa: F401
from .skylink import format_skylink, parse_skylink  # noqa: F401

__all__ = [
    "__version__",
    # Core
    "SDKConfig",
    "SkynetSdkError", "ValidationError", "ConfigError", "TransportError",
    "CorruptedEntryError", "RegistryProofError", "RevisionExhaustedError",
    "RevisionTooLowError", "ConcurrentAccessError", "ContentFormatError",
    # Client
    "SkynetClient",
    # Keys
    "KeyPair", "KeyPairAndSeed",
    "gen_key_pair_and_seed", "gen_key_pair_from_seed", "public_key_from_private_key",
    # Registry
    "RegistryClient", "RegistryEntry", "SignedRegistryEntry", "validate_registry_proof",
    # SkyDB
    "SkyDB", "RevisionNumberCache", "JSONResponse", "RawBytesResponse", "EntryData",
    "DELETION_ENTRY_DATA",
    # Options
    "GetEntryOptions", "SetEntryOptions", "UploadOptions", "DownloadOptions",
    "GetJSONOptions", "SetJSONOptions", "SetEntryDataOptions",
    # Utilities
    "MAX_REVISION", "format_skylink", "parse_skylink",
]
