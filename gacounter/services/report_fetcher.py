"""
Report Fetcher — one GA report chunk, served from the chunk cache when possible.

No retries here: upstream and auth errors are raised as-is so the caller
(ultimately the scheduler) decides when to try again.
"""

import logging

from gacounter.schemas.report import CacheOptions, FetchParameters, ReportChunk
from gacounter.services.chunk_cache import DEFAULT_TTL, ChunkCache
from gacounter.services.ga_feed import AnalyticsProvider

logger = logging.getLogger(__name__)


class ReportFetcher:
    def __init__(self, provider: AnalyticsProvider, cache: ChunkCache, default_ttl: int = DEFAULT_TTL):
        self.provider = provider
        self.cache = cache
        self.default_ttl = default_ttl

    async def fetch(self, params: FetchParameters, options: CacheOptions | None = None) -> ReportChunk:
        options = options or CacheOptions()
        fingerprint = options.fingerprint or params.fingerprint()
        ttl = self.default_ttl if options.ttl is None else options.ttl

        if not options.refresh:
            cached = await self.cache.get(fingerprint)
            if cached is not None:
                logger.debug("Cache hit %s (start_index=%d)", fingerprint, params.start_index)
                return ReportChunk.model_validate(cached)
            logger.debug("Cache miss %s (start_index=%d)", fingerprint, params.start_index)

        chunk = await self.provider.fetch_report(params)
        await self.cache.put(fingerprint, chunk.model_dump(mode="json", by_alias=True), ttl)
        return chunk
