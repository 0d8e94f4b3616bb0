"""
Google Analytics Counter — fetched-chunk cache model.
"""

from sqlalchemy import Column, String, Integer, JSON, Index

from gacounter.database import Base


class ChunkCacheEntry(Base):
    """One cached report chunk, keyed by the fingerprint of its request parameters."""
    __tablename__ = "chunk_cache"

    fingerprint = Column(String(128), primary_key=True)

    # ReportChunk.to_dict() output
    payload = Column(JSON, nullable=False)

    # Unix seconds; the entry is dead once now >= expires_at
    expires_at = Column(Integer, nullable=False)

    __table_args__ = (
        Index("ix_chunk_cache_expires_at", "expires_at"),
    )

    def __repr__(self):
        return f"<ChunkCacheEntry {self.fingerprint} (expires {self.expires_at})>"
