"""
Google Analytics Counter — report request/response shapes.

These travel between the import orchestrator, the report fetcher, the
chunk cache (as JSON) and the analytics provider.
"""

import hashlib
from datetime import date

from pydantic import BaseModel, Field


class FetchParameters(BaseModel):
    """One chunk request against the reporting API. Immutable once built."""

    profile_id: str = Field(..., min_length=4)          # "ga:12345"
    dimensions: tuple[str, ...] = ("ga:pagePath",)
    metrics: tuple[str, ...] = ("ga:pageviews",)
    start_date: date
    end_date: date
    start_index: int = Field(1, ge=1)
    max_results: int = Field(..., gt=0)

    model_config = {"frozen": True}

    def fingerprint(self) -> str:
        """Cache key: digest of the serialized parameter set."""
        digest = hashlib.md5(self.model_dump_json().encode("utf-8")).hexdigest()
        return f"gacounter_{digest}"

    def to_query(self) -> dict[str, str]:
        """Query-string parameters for the Core Reporting API v3."""
        return {
            "ids": self.profile_id,
            "dimensions": ",".join(self.dimensions),
            "metrics": ",".join(self.metrics),
            "start-date": self.start_date.isoformat(),
            "end-date": self.end_date.isoformat(),
            "start-index": str(self.start_index),
            "max-results": str(self.max_results),
        }


class CacheOptions(BaseModel):
    """How the report fetcher may use the chunk cache for one request."""

    fingerprint: str | None = None     # None → FetchParameters.fingerprint()
    ttl: int | None = Field(None, ge=0)  # None → settings.cache_length
    refresh: bool = False              # skip the lookup, still store the result


class ReportRow(BaseModel):
    page_path: str = Field(..., alias="pagePath")
    pageviews: int = Field(0, ge=0)

    model_config = {"populate_by_name": True}


class ReportChunk(BaseModel):
    """Rows of one fetched chunk, in the order GA returned them."""

    rows: list[ReportRow] = Field(default_factory=list)
    total_results: int = 0
