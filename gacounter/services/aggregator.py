"""
Aggregation Engine — total pageviews for one resource across every path
GA may have recorded it under.

Totals are always recomputed from ``pageview_by_path`` and written whole;
they are never patched incrementally. If the lookup fails nothing is
written, so a previously correct total is never replaced by a zero.
"""

from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from typing import Callable, Iterable

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from gacounter.config import Settings
from gacounter.models.pageview import PageviewByPath
from gacounter.models.totals import LegacyTotal, ResourceTotal
from gacounter.services.paths import (
    AliasResolver,
    StaticAliasResolver,
    canonical_path,
    normalize_path,
    path_key,
    path_variants,
)

logger = logging.getLogger(__name__)


class AggregationEngine:
    def __init__(
        self,
        session: AsyncSession,
        settings: Settings,
        resolver: AliasResolver | None = None,
        clock: Callable[[], float] = time.time,
    ):
        self.session = session
        self.settings = settings
        self.resolver = resolver or StaticAliasResolver(settings.path_aliases)
        self.clock = clock

    def variants_for(self, resource_id: int) -> list[str]:
        return path_variants(
            canonical_path(self.settings.resource_type, resource_id),
            self.settings.languages,
            self.resolver,
            self.settings.language_prefixes,
        )

    async def sum_pageviews(self, paths: Iterable[str]) -> int:
        """Sum stored pageviews for *paths*; unknown paths count as 0."""
        hashes = list({path_key(p) for p in paths})
        if not hashes:
            return 0
        rows = await self.session.execute(
            select(PageviewByPath.pageviews).where(PageviewByPath.path_hash.in_(hashes))
        )
        return sum(rows.scalars().all())

    async def update_storage(self, resource_id: int) -> int:
        """Recompute and persist the total for *resource_id*. Returns the total."""
        variants = self.variants_for(resource_id)
        total = await self.sum_pageviews(variants)

        await self.session.merge(
            ResourceTotal(
                resource_id=resource_id,
                pageview_total=total,
                updated_at=datetime.now(timezone.utc),
            )
        )
        await self.session.commit()

        if self.settings.overwrite_statistics:
            await self.session.merge(
                LegacyTotal(
                    resource_id=resource_id,
                    totalcount=total,
                    timestamp=int(self.clock()),
                )
            )
            await self.session.commit()

        logger.debug(
            "Resource %s/%s: %d pageviews over %d path variants",
            self.settings.resource_type, resource_id, total, len(variants),
        )
        return total

    async def update_many(self, resource_ids: Iterable[int]) -> dict[int, int]:
        totals = {}
        for resource_id in resource_ids:
            totals[resource_id] = await self.update_storage(resource_id)
        logger.info("🔢 Updated pageview totals for %d resources", len(totals))
        return totals

    async def path_pageviews(self, path: str) -> int:
        """Pageviews for a single raw path, with and without a trailing slash."""
        path = normalize_path(path)
        return await self.sum_pageviews([path, path + "/"])
