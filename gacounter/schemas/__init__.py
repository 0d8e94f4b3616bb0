"""
Google Analytics Counter — Pydantic request/response schemas.
"""

from pydantic import BaseModel, Field

VERSION = "1.0.0"


class HealthResponse(BaseModel):
    status: str = "ok"
    version: str = VERSION
    timestamp: str | None = None
    database: str = "connected"


class ImportResponse(BaseModel):
    index: int
    start_index: int
    max_results: int
    saved: int
    total_results: int = 0
    exhausted: bool = False

    model_config = {"from_attributes": True}


class ResourceTotalResponse(BaseModel):
    resource_id: int
    pageview_total: int
    variants: list[str] = []


class BulkTotalsRequest(BaseModel):
    resource_ids: list[int] = Field(..., alias="resourceIds", min_length=1, max_length=1000)

    model_config = {"populate_by_name": True}


class BulkTotalsResponse(BaseModel):
    totals: dict[int, int]
    total: int


class PathCountResponse(BaseModel):
    path: str
    pageviews: int


class CacheListResponse(BaseModel):
    fingerprints: list[str]
    total: int


class CachePurgeResponse(BaseModel):
    purged: int


class AuthStatusResponse(BaseModel):
    authenticated: bool
    state: str
    expires_at: int | None = None


class AuthUrlResponse(BaseModel):
    url: str
