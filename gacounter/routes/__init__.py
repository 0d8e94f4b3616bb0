"""
API Routes — chunk imports, resource totals, path counts, chunk cache, health.
"""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from gacounter.config import Settings, settings
from gacounter.database import get_db
from gacounter.exceptions import (
    AuthenticationError,
    ConfigurationError,
    GACounterError,
    UpstreamRequestError,
)
from gacounter.schemas import (
    BulkTotalsRequest,
    BulkTotalsResponse,
    CacheListResponse,
    CachePurgeResponse,
    HealthResponse,
    ImportResponse,
    PathCountResponse,
    ResourceTotalResponse,
)
from gacounter.services.aggregator import AggregationEngine
from gacounter.services.chunk_cache import ChunkCache
from gacounter.services.credentials import CredentialStore, ensure_access_token
from gacounter.services.ga_feed import AnalyticsProvider, GoogleAnalyticsFeed, GoogleOAuthClient
from gacounter.services.importer import ImportOrchestrator
from gacounter.services.report_fetcher import ReportFetcher

logger = logging.getLogger(__name__)

router = APIRouter()


# ── Dependencies ────────────────────────────────────────

def get_settings() -> Settings:
    return settings


def get_oauth_client(cfg: Settings = Depends(get_settings)) -> GoogleOAuthClient:
    return GoogleOAuthClient(cfg.ga_client_id, cfg.ga_client_secret, cfg.ga_redirect_uri)


def get_provider(
    session: AsyncSession = Depends(get_db),
    oauth: GoogleOAuthClient = Depends(get_oauth_client),
) -> AnalyticsProvider:
    store = CredentialStore(session)
    return GoogleAnalyticsFeed(lambda: ensure_access_token(store, oauth))


def http_error(exc: GACounterError, action: str) -> HTTPException:
    """Log *exc* once for this request and map it to an HTTP error."""
    if isinstance(exc, AuthenticationError):
        logger.warning("🔒 %s: %s", action, exc)
        return HTTPException(status_code=401, detail=str(exc))
    if isinstance(exc, ConfigurationError):
        logger.error("⚙️ %s: %s", action, exc)
        return HTTPException(status_code=400, detail=str(exc))
    if isinstance(exc, UpstreamRequestError):
        logger.error("❌ %s: %s", action, exc.message)
        return HTTPException(status_code=502, detail=exc.message)
    logger.error("❌ %s: %s", action, exc)
    return HTTPException(status_code=500, detail=str(exc))


# ── Health ──────────────────────────────────────────────

@router.get("/health", response_model=HealthResponse, tags=["system"])
async def health():
    return HealthResponse(
        status="ok",
        timestamp=datetime.now(timezone.utc).isoformat(),
    )


# ── Chunk Import ────────────────────────────────────────

@router.post("/imports/chunks/{index}", response_model=ImportResponse, tags=["imports"])
async def import_chunk(
    index: int,
    refresh: bool = Query(False, description="Bypass the chunk cache"),
    session: AsyncSession = Depends(get_db),
    provider: AnalyticsProvider = Depends(get_provider),
    cfg: Settings = Depends(get_settings),
):
    """Fetch chunk ``index`` (0-based) from GA and merge it into the path counts."""
    if index < 0:
        raise HTTPException(status_code=422, detail="Chunk index must be >= 0")

    fetcher = ReportFetcher(provider, ChunkCache(session), default_ttl=cfg.cache_length)
    orchestrator = ImportOrchestrator(session, fetcher, cfg)
    try:
        summary = await orchestrator.update_path_counts(index, refresh=refresh)
    except GACounterError as exc:
        raise http_error(exc, f"Import of chunk {index} failed")

    return ImportResponse(
        index=summary.index,
        start_index=summary.start_index,
        max_results=summary.max_results,
        saved=summary.saved,
        total_results=summary.total_results,
        exhausted=summary.exhausted,
    )


# ── Resource Totals ─────────────────────────────────────

async def _resource_total(resource_id: int, session: AsyncSession, cfg: Settings) -> ResourceTotalResponse:
    engine = AggregationEngine(session, cfg)
    total = await engine.update_storage(resource_id)
    return ResourceTotalResponse(
        resource_id=resource_id,
        pageview_total=total,
        variants=engine.variants_for(resource_id),
    )


@router.get("/resources/{resource_id}/pageviews", response_model=ResourceTotalResponse, tags=["resources"])
async def get_resource_pageviews(
    resource_id: int,
    session: AsyncSession = Depends(get_db),
    cfg: Settings = Depends(get_settings),
):
    """Recompute and return the total for one resource."""
    return await _resource_total(resource_id, session, cfg)


@router.post("/resources/{resource_id}/pageviews", response_model=ResourceTotalResponse, tags=["resources"])
async def update_resource_pageviews(
    resource_id: int,
    session: AsyncSession = Depends(get_db),
    cfg: Settings = Depends(get_settings),
):
    """Hook for the host CMS to call when the resource is saved."""
    return await _resource_total(resource_id, session, cfg)


@router.post("/resources/pageviews", response_model=BulkTotalsResponse, tags=["resources"])
async def update_many_resource_pageviews(
    req: BulkTotalsRequest,
    session: AsyncSession = Depends(get_db),
    cfg: Settings = Depends(get_settings),
):
    totals = await AggregationEngine(session, cfg).update_many(req.resource_ids)
    return BulkTotalsResponse(totals=totals, total=len(totals))


# ── Path Counts ─────────────────────────────────────────

@router.get("/paths/pageviews", response_model=PathCountResponse, tags=["paths"])
async def get_path_pageviews(
    path: str = Query(..., min_length=1, max_length=2048),
    session: AsyncSession = Depends(get_db),
    cfg: Settings = Depends(get_settings),
):
    engine = AggregationEngine(session, cfg)
    pageviews = await engine.path_pageviews(path)
    return PathCountResponse(path=path, pageviews=pageviews)


# ── Chunk Cache ─────────────────────────────────────────

@router.get("/cache", response_model=CacheListResponse, tags=["cache"])
async def list_cache(session: AsyncSession = Depends(get_db)):
    fingerprints = await ChunkCache(session).fingerprints()
    return CacheListResponse(fingerprints=fingerprints, total=len(fingerprints))


@router.delete("/cache", response_model=CachePurgeResponse, tags=["cache"])
async def purge_cache(session: AsyncSession = Depends(get_db)):
    """Evict every expired chunk."""
    return CachePurgeResponse(purged=await ChunkCache(session).purge_expired())


@router.delete("/cache/{fingerprint}", status_code=204, tags=["cache"])
async def invalidate_cache_entry(fingerprint: str, session: AsyncSession = Depends(get_db)):
    if not await ChunkCache(session).invalidate(fingerprint):
        raise HTTPException(status_code=404, detail=f"No cache entry {fingerprint}")
