"""
Google Analytics Counter — per-resource totals.

``resource_totals`` is the canonical aggregate, recomputed in full by the
aggregation engine. ``legacy_totals`` mirrors it for consumers of the old
statistics table and is only written when ``overwrite_statistics`` is on.
"""

from sqlalchemy import Column, Integer, DateTime, func

from gacounter.database import Base


class ResourceTotal(Base):
    """Summed pageviews across every path variant of one resource."""
    __tablename__ = "resource_totals"

    resource_id = Column(Integer, primary_key=True, autoincrement=False)
    pageview_total = Column(Integer, nullable=False, default=0)
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    def __repr__(self):
        return f"<ResourceTotal {self.resource_id}: {self.pageview_total}>"


class LegacyTotal(Base):
    """Mirror of ResourceTotal in the shape of the legacy node counter table."""
    __tablename__ = "legacy_totals"

    resource_id = Column(Integer, primary_key=True, autoincrement=False)
    totalcount = Column(Integer, nullable=False, default=0)
    # Unix seconds of the last write
    timestamp = Column(Integer, nullable=False, default=0)

    def __repr__(self):
        return f"<LegacyTotal {self.resource_id}: {self.totalcount} @ {self.timestamp}>"
