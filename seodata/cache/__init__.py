"""
SEO data cache: per-website rows for six dimensions, refreshed on miss,
degraded to stale data when the provider fails.

Usage:
    from seodata.cache import CacheOrchestrator, CacheStore, FetchRequest, DESCRIPTORS, Dimension

    orchestrator = CacheOrchestrator(CacheStore(db), registry)
    result = await orchestrator.fetch_or_refresh(
        DESCRIPTORS[Dimension.OVERVIEW],
        FetchRequest(website_id=website.id, domain=website.domain),
    )
"""

from .config import CacheTTL
from .store import CacheStore
from .dimensions import (
    Dimension,
    DimensionDescriptor,
    FetchRequest,
    DESCRIPTORS,
    KEYWORD_DIMENSIONS,
)
from .orchestrator import (
    CacheOrchestrator,
    FetchResult,
    get_orchestrator_stats,
    reset_orchestrator_stats,
)
from .maintenance import CleanupStats, clean_keyword_cache

__all__ = [
    "CacheTTL",
    "CacheStore",
    "Dimension",
    "DimensionDescriptor",
    "FetchRequest",
    "DESCRIPTORS",
    "KEYWORD_DIMENSIONS",
    "CacheOrchestrator",
    "FetchResult",
    "get_orchestrator_stats",
    "reset_orchestrator_stats",
    "CleanupStats",
    "clean_keyword_cache",
]
