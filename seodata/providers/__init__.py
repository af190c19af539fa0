"""
SEO data providers.

DataForSEO Labs is the only upstream; every dimension has one adapter.
"""

from .client import (
    DataForSEOClient,
    RetryConfig,
    ProviderError,
    ProviderTimeout,
    MalformedProviderData,
    extract_result,
    extract_items,
)
from .locations import Location, REGION_LOCATIONS, resolve_location
from .base import ProviderAdapter, ProviderQuery
from .dataforseo import (
    DomainOverviewAdapter,
    RankedKeywordsAdapter,
    CompetitorsAdapter,
    DomainIntersectionAdapter,
    HistoricalRankAdapter,
    RelevantPagesAdapter,
    ProviderRegistry,
    build_provider_registry,
    get_provider_registry,
    close_provider_registry,
)

__all__ = [
    "DataForSEOClient",
    "RetryConfig",
    "ProviderError",
    "ProviderTimeout",
    "MalformedProviderData",
    "extract_result",
    "extract_items",
    "Location",
    "REGION_LOCATIONS",
    "resolve_location",
    "ProviderAdapter",
    "ProviderQuery",
    "DomainOverviewAdapter",
    "RankedKeywordsAdapter",
    "CompetitorsAdapter",
    "DomainIntersectionAdapter",
    "HistoricalRankAdapter",
    "RelevantPagesAdapter",
    "ProviderRegistry",
    "build_provider_registry",
    "get_provider_registry",
    "close_provider_registry",
]
