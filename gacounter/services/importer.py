"""
Import Orchestrator — pulls one chunk of (page path, pageviews) rows from GA
and merges it into ``pageview_by_path``.

One call handles exactly one chunk so a scheduled run has a bounded cost;
the scheduler walks the index forward (0, 1, 2, ...) until a chunk reports
the result set exhausted. Re-running an index is safe: rows are keyed by
path hash and the count is replaced, never added to.
"""

from __future__ import annotations

import html
import logging
from dataclasses import dataclass
from datetime import date, timedelta

from sqlalchemy.ext.asyncio import AsyncSession

from gacounter.config import Settings
from gacounter.exceptions import ConfigurationError
from gacounter.models.pageview import PageviewByPath
from gacounter.schemas.report import CacheOptions, FetchParameters
from gacounter.services.paths import path_key
from gacounter.services.report_fetcher import ReportFetcher

logger = logging.getLogger(__name__)

# Rows merged per commit. A failure mid-chunk keeps what was committed.
COMMIT_EVERY = 200


@dataclass
class ImportSummary:
    index: int
    start_index: int
    max_results: int
    saved: int
    total_results: int = 0

    @property
    def exhausted(self) -> bool:
        """True when this chunk reached the end of the result set.

        GA may cap a page below ``max_results``, so a short page only ends the
        import once the rows seen so far cover ``total_results``.
        """
        if self.saved == 0:
            return True
        return self.start_index - 1 + self.saved >= self.total_results


def chunk_parameters(index: int, settings: Settings, today: date | None = None) -> FetchParameters:
    """Request parameters for chunk *index* (0-based)."""
    if index < 0:
        raise ValueError(f"Chunk index must be >= 0, got {index}")
    if not settings.ga_profile_id:
        raise ConfigurationError("GA profile id is not configured (GA_PROFILE_ID)")
    if settings.chunk_to_fetch <= 0:
        raise ConfigurationError(f"chunk_to_fetch must be positive, got {settings.chunk_to_fetch}")
    if settings.cache_length < 0:
        raise ConfigurationError(f"cache_length must be >= 0, got {settings.cache_length}")

    today = today or date.today()
    if settings.start_date > today + timedelta(days=1):
        raise ConfigurationError(f"start_date {settings.start_date} is after the end of the report range")
    return FetchParameters(
        profile_id=f"ga:{settings.ga_profile_id}",
        dimensions=("ga:pagePath",),
        metrics=("ga:pageviews",),
        start_date=settings.start_date,
        # 'tomorrow' absorbs any timezone skew between us and Google
        end_date=today + timedelta(days=1),
        start_index=settings.chunk_to_fetch * index + 1,
        max_results=settings.chunk_to_fetch,
    )


def sanitize_path(path: str) -> str:
    """HTML-escape *path* for storage, single quotes as ``&#039;``."""
    return html.escape(path, quote=True).replace("&#x27;", "&#039;")


class ImportOrchestrator:
    def __init__(self, session: AsyncSession, fetcher: ReportFetcher, settings: Settings):
        self.session = session
        self.fetcher = fetcher
        self.settings = settings

    async def update_path_counts(self, index: int = 0, refresh: bool = False) -> ImportSummary:
        """Fetch chunk *index* and upsert every row. Errors propagate unchanged."""
        params = chunk_parameters(index, self.settings)
        chunk = await self.fetcher.fetch(
            params, CacheOptions(ttl=self.settings.cache_length, refresh=refresh)
        )

        for n, row in enumerate(chunk.rows, start=1):
            await self.session.merge(
                PageviewByPath(
                    path_hash=path_key(row.page_path),
                    path=sanitize_path(row.page_path),
                    pageviews=row.pageviews,
                )
            )
            if n % COMMIT_EVERY == 0:
                await self.session.commit()
        await self.session.commit()

        summary = ImportSummary(
            index=index,
            start_index=params.start_index,
            max_results=params.max_results,
            saved=len(chunk.rows),
            total_results=chunk.total_results,
        )
        logger.info("📥 Saved %d paths from Google Analytics into the database.", summary.saved)
        return summary
