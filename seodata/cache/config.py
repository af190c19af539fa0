"""
Cache Configuration

TTLs per SEO data dimension. Traffic and keyword data moves daily;
competitive landscape and rank history move slowly.
"""

from dataclasses import dataclass
from datetime import timedelta


@dataclass(frozen=True)
class CacheTTL:
    """
    Cache TTL configuration by dimension.

    cache_expires_at = data_updated_at + TTL for every row written.
    """

    OVERVIEW: timedelta = timedelta(hours=24)
    KEYWORDS: timedelta = timedelta(hours=24)
    RELEVANT_PAGES: timedelta = timedelta(hours=24)

    COMPETITORS: timedelta = timedelta(days=7)
    INTERSECTION: timedelta = timedelta(days=7)
    HISTORICAL_RANK: timedelta = timedelta(days=7)

    @classmethod
    def for_dimension(cls, dimension: str) -> timedelta:
        """Get TTL for a dimension name."""
        mapping = {
            "overview": cls.OVERVIEW,
            "keywords": cls.KEYWORDS,
            "relevant-pages": cls.RELEVANT_PAGES,
            "competitors": cls.COMPETITORS,
            "intersection": cls.INTERSECTION,
            "historical-rank": cls.HISTORICAL_RANK,
        }
        if dimension not in mapping:
            raise KeyError(f"No TTL configured for dimension '{dimension}'")
        return mapping[dimension]
