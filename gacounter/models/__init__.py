from gacounter.models.pageview import PageviewByPath  # noqa: F401
from gacounter.models.totals import ResourceTotal, LegacyTotal  # noqa: F401
from gacounter.models.chunk_cache import ChunkCacheEntry  # noqa: F401
from gacounter.models.state import CounterState  # noqa: F401
