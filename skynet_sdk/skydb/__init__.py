"""
skynet_sdk.skydb
----------------

Mutable, signed values on top of the registry (`engine`) and the per-entry
revision cache and locks that keep concurrent writers ordered
(`revision_cache`).
"""

from __future__ import annotations

from .engine import (  # noqa: F401
    DELETION_ENTRY_DATA,
    JSON_RESPONSE_VERSION,
    MAX_ENTRY_LENGTH,
    EntryData,
    JSONResponse,
    RawBytesResponse,
    SkyDB,
    increment_revision,
)
from .revision_cache import (  # noqa: F401
    UNCACHED_REVISION_NUMBER,
    CachedRevisionNumber,
    RevisionNumberCache,
)

__all__ = [
    "DELETION_ENTRY_DATA",
    "JSON_RESPONSE_VERSION",
    "MAX_ENTRY_LENGTH",
    "EntryData",
    "JSONResponse",
    "RawBytesResponse",
    "SkyDB",
    "increment_revision",
    "UNCACHED_REVISION_NUMBER",
    "CachedRevisionNumber",
    "RevisionNumberCache",
]
