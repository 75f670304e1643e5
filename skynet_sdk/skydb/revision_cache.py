"""
Per-entry revision numbers and locks.

Each registry entry identity gets one `CachedRevisionNumber`: the last revision
this process knows about and an `asyncio.Lock` serializing every SkyDB
operation on that entry. Holding the lock from "read current revision" to
"commit new revision" is what makes concurrent writers from the same process
produce consecutive revisions instead of colliding on the portal.

Entries are created lazily and never evicted, so a long-lived process touching
an unbounded number of data keys grows this cache without bound.

Locks belong to the event loop that first awaits them; one cache per loop.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import AsyncIterator, Awaitable, Callable, Dict, TypeVar

from ..errors import ConcurrentAccessError
from ..registry.entry import EntryIdentity, derive_entry_identity

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Revision value of an entry not seen yet. The first write of such an entry
# must look up its revision on the network.
UNCACHED_REVISION_NUMBER = -1


@dataclass
class CachedRevisionNumber:
    revision: int = UNCACHED_REVISION_NUMBER
    mutex: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False)

    @property
    def is_cached(self) -> bool:
        return self.revision != UNCACHED_REVISION_NUMBER


class RevisionNumberCache:
    def __init__(self) -> None:
        self._entries: Dict[EntryIdentity, CachedRevisionNumber] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def get_revision_and_mutex_for_entry(
        self, public_key: str, data_key: str, hashed_data_key_hex: bool = False
    ) -> CachedRevisionNumber:
        """Return the slot for the entry, creating it on first use."""
        identity = derive_entry_identity(public_key, data_key, hashed_data_key_hex)
        cached = self._entries.get(identity)
        if cached is None:
            cached = self._entries[identity] = CachedRevisionNumber()
        return cached

    @asynccontextmanager
    async def locked(
        self,
        public_key: str,
        data_key: str,
        *,
        hashed_data_key_hex: bool = False,
        fail_fast: bool = False,
    ) -> AsyncIterator[CachedRevisionNumber]:
        """
        Hold the entry lock for the duration of the block.

        With `fail_fast` a held lock raises ConcurrentAccessError instead of
        waiting. The lock is not reentrant.
        """
        cached = self.get_revision_and_mutex_for_entry(public_key, data_key, hashed_data_key_hex)
        if fail_fast and cached.mutex.locked():
            raise ConcurrentAccessError(public_key, data_key)

        async with cached.mutex:
            logger.debug("acquired entry lock %s/%s (revision %d)", public_key, data_key, cached.revision)
            try:
                yield cached
            finally:
                logger.debug("releasing entry lock %s/%s (revision %d)", public_key, data_key, cached.revision)

    async def with_cached_entry_lock(
        self,
        public_key: str,
        data_key: str,
        fn: Callable[[CachedRevisionNumber], Awaitable[T]],
        *,
        hashed_data_key_hex: bool = False,
        fail_fast: bool = False,
    ) -> T:
        async with self.locked(
            public_key, data_key, hashed_data_key_hex=hashed_data_key_hex, fail_fast=fail_fast
        ) as cached:
            return await fn(cached)


__all__ = ["UNCACHED_REVISION_NUMBER", "CachedRevisionNumber", "RevisionNumberCache"]
