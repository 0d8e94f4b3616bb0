"""
Chunk Cache — fetched GA report chunks, stored with an absolute expiry.

The cache is advisory: a miss (expired, evicted, never stored) just means
the caller goes to the API. Expired rows are ignored on read and can be
purged at any time with ``purge_expired``.

Expiry is stored in whole seconds. ``put`` rounds it up, so an entry is
never dropped before now + ttl but may outlive it by under a second.
"""

from __future__ import annotations

import logging
import math
import time
from typing import Any, Callable

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from gacounter.models.chunk_cache import ChunkCacheEntry

logger = logging.getLogger(__name__)

DEFAULT_TTL = 86400  # one day


class ChunkCache:
    """Time-expiring fingerprint → payload store on the ``chunk_cache`` table."""

    def __init__(self, session: AsyncSession, clock: Callable[[], float] = time.time):
        self.session = session
        self.clock = clock

    def _now(self) -> float:
        return self.clock()

    async def get(self, fingerprint: str) -> dict[str, Any] | None:
        """Return the payload, or None when absent or past its expiry."""
        entry = await self.session.get(ChunkCacheEntry, fingerprint)
        if entry is None:
            return None
        if self._now() >= entry.expires_at:
            logger.debug("Cache entry %s expired at %d", fingerprint, entry.expires_at)
            return None
        return entry.payload

    async def put(self, fingerprint: str, payload: dict[str, Any], ttl: int = DEFAULT_TTL) -> None:
        """Upsert *payload* so it lives until now + *ttl* seconds."""
        await self.session.merge(
            ChunkCacheEntry(
                fingerprint=fingerprint,
                payload=payload,
                expires_at=math.ceil(self._now() + ttl),
            )
        )
        await self.session.commit()

    async def invalidate(self, fingerprint: str) -> bool:
        """Drop one entry. Returns True if something was deleted."""
        result = await self.session.execute(
            delete(ChunkCacheEntry).where(ChunkCacheEntry.fingerprint == fingerprint)
        )
        await self.session.commit()
        return result.rowcount > 0

    async def purge_expired(self) -> int:
        """Delete every expired entry. Returns the number removed."""
        result = await self.session.execute(
            delete(ChunkCacheEntry).where(ChunkCacheEntry.expires_at <= self._now())
        )
        await self.session.commit()
        if result.rowcount:
            logger.info("🧹 Purged %d expired chunk cache entries", result.rowcount)
        return result.rowcount

    async def fingerprints(self) -> list[str]:
        """All live fingerprints, oldest expiry first."""
        rows = await self.session.execute(
            select(ChunkCacheEntry.fingerprint)
            .where(ChunkCacheEntry.expires_at > self._now())
            .order_by(ChunkCacheEntry.expires_at)
        )
        return list(rows.scalars().all())
