"""
Google Analytics Counter — per-path pageview model.

One row per distinct page path ever reported by Google Analytics. Rows are
keyed by the md5 of the raw path so the primary key has a fixed width no
matter how long or oddly encoded the path is. Each import replaces the
count for its key; counts are never summed across imports.
"""

from sqlalchemy import Column, String, Text, Integer

from gacounter.database import Base


class PageviewByPath(Base):
    """Pageview count for one raw path, as last reported by GA."""
    __tablename__ = "pageview_by_path"

    # md5 hex digest of the raw path (see services.paths.path_key)
    path_hash = Column(String(32), primary_key=True)

    # The path as reported, HTML-escaped before storage
    path = Column(Text, nullable=False, default="")

    pageviews = Column(Integer, nullable=False, default=0)

    def __repr__(self):
        return f"<PageviewByPath {self.path} ({self.pageviews})>"
