"""
Cache Dimensions

Everything that differs between the six SEO data dimensions lives in a
DimensionDescriptor: how to build the secondary key, the TTL, which adapter
to call, how to post-process provider records, and what "no data" looks like.
The orchestrator is generic over descriptors.
"""

import enum
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Any, Callable, Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel

from seodata.models.records import INTERSECTION_KEYWORD_LISTS
from seodata.providers.base import ProviderQuery
from seodata.providers.locations import Location, resolve_location
from seodata.utils.domains import clean_domain
from seodata.utils.keywords import clean_keyword_records
from .config import CacheTTL


class Dimension(str, enum.Enum):
    """SEO data dimensions cached per website."""
    OVERVIEW = "overview"
    KEYWORDS = "keywords"
    COMPETITORS = "competitors"
    INTERSECTION = "intersection"
    HISTORICAL_RANK = "historical-rank"
    RELEVANT_PAGES = "relevant-pages"


@dataclass(frozen=True)
class FetchRequest:
    """A website-scoped request for one dimension."""
    website_id: UUID
    domain: str
    location: Location = field(default_factory=lambda: resolve_location(None))
    competitor_domain: Optional[str] = None
    date_from: Optional[date] = None


# =============================================================================
# POST-PROCESSING
# =============================================================================

def _dump(records: Any) -> Any:
    if isinstance(records, BaseModel):
        return records.model_dump()
    if isinstance(records, dict):
        return dict(records)
    return [r.model_dump() if isinstance(r, BaseModel) else dict(r) for r in records]


def _sort_desc(items: List[Dict[str, Any]], field_name: str) -> List[Dict[str, Any]]:
    # stable sort keeps provider order among ties
    return sorted(items, key=lambda item: item.get(field_name) or 0, reverse=True)


def process_overview(record: Any) -> Optional[Dict[str, Any]]:
    return _dump(record) if record is not None else None


def process_keywords(records: Any) -> List[Dict[str, Any]]:
    return _sort_desc(clean_keyword_records(_dump(records)), "search_volume")


def process_competitors(records: Any) -> List[Dict[str, Any]]:
    return _sort_desc(_dump(records), "organic_traffic")


def process_intersection(record: Any) -> Optional[Dict[str, Any]]:
    if record is None:
        return None
    payload = _dump(record)
    for list_name in INTERSECTION_KEYWORD_LISTS:
        payload[list_name] = _sort_desc(
            clean_keyword_records(payload.get(list_name) or []), "search_volume"
        )
    payload["gap_traffic"] = round(sum(kw.get("etv") or 0 for kw in payload["gap_keywords"]), 2)
    if not any(payload[name] for name in INTERSECTION_KEYWORD_LISTS):
        return None
    return payload


def process_historical_rank(records: Any) -> List[Dict[str, Any]]:
    return sorted(_dump(records), key=lambda snapshot: snapshot["date"])


def process_relevant_pages(records: Any) -> List[Dict[str, Any]]:
    pages = _dump(records)
    for page in pages:
        page["top_keywords"] = clean_keyword_records(page.get("top_keywords") or [])[:5]
    return _sort_desc(pages, "organic_traffic")


# =============================================================================
# SECONDARY KEYS
# =============================================================================

def location_key(request: FetchRequest) -> str:
    return str(request.location.code)


def competitor_key(request: FetchRequest) -> str:
    competitor = clean_domain(request.competitor_domain)
    if not competitor:
        raise ValueError("competitor_domain is required for domain intersection")
    return competitor


def series_start_key(request: FetchRequest) -> str:
    """Lowest snapshot date to include. Snapshots are dated on the 1st of the month."""
    if request.date_from is None:
        return ""
    return request.date_from.replace(day=1).isoformat()


# =============================================================================
# DESCRIPTORS
# =============================================================================

@dataclass(frozen=True)
class DimensionDescriptor:
    """
    Per-dimension behavior for the fetch-or-refresh orchestrator.

    For series dimensions secondary_key gives the lowest key of the range to
    read, and series_point_key gives each stored point's key.
    """
    dimension: Dimension
    ttl: timedelta
    adapter: str
    secondary_key: Callable[[FetchRequest], str]
    post_process: Callable[[Any], Any]
    empty: Callable[[], Any]
    fetch_limit: int = 100
    series: bool = False
    series_point_key: Optional[Callable[[Dict[str, Any]], str]] = None

    @property
    def name(self) -> str:
        return self.dimension.value

    def build_query(self, request: FetchRequest) -> ProviderQuery:
        return ProviderQuery(
            domain=request.domain,
            location_code=request.location.code,
            location_name=request.location.name,
            language_name=request.location.language_name,
            limit=self.fetch_limit,
            competitor_domain=request.competitor_domain,
            date_from=request.date_from,
        )

    def is_empty(self, payload: Any) -> bool:
        return payload is None or payload == [] or payload == {}


OVERVIEW = DimensionDescriptor(
    dimension=Dimension.OVERVIEW,
    ttl=CacheTTL.OVERVIEW,
    adapter="overview",
    secondary_key=location_key,
    post_process=process_overview,
    empty=lambda: None,
)

KEYWORDS = DimensionDescriptor(
    dimension=Dimension.KEYWORDS,
    ttl=CacheTTL.KEYWORDS,
    adapter="keywords",
    secondary_key=location_key,
    post_process=process_keywords,
    empty=list,
    fetch_limit=100,
)

COMPETITORS = DimensionDescriptor(
    dimension=Dimension.COMPETITORS,
    ttl=CacheTTL.COMPETITORS,
    adapter="competitors",
    secondary_key=location_key,
    post_process=process_competitors,
    empty=list,
    fetch_limit=20,
)

INTERSECTION = DimensionDescriptor(
    dimension=Dimension.INTERSECTION,
    ttl=CacheTTL.INTERSECTION,
    adapter="intersection",
    secondary_key=competitor_key,
    post_process=process_intersection,
    empty=lambda: None,
    fetch_limit=200,
)

HISTORICAL_RANK = DimensionDescriptor(
    dimension=Dimension.HISTORICAL_RANK,
    ttl=CacheTTL.HISTORICAL_RANK,
    adapter="historical-rank",
    secondary_key=series_start_key,
    post_process=process_historical_rank,
    empty=list,
    series=True,
    series_point_key=lambda snapshot: snapshot["date"],
)

RELEVANT_PAGES = DimensionDescriptor(
    dimension=Dimension.RELEVANT_PAGES,
    ttl=CacheTTL.RELEVANT_PAGES,
    adapter="relevant-pages",
    secondary_key=location_key,
    post_process=process_relevant_pages,
    empty=list,
    fetch_limit=100,
)

DESCRIPTORS: Dict[Dimension, DimensionDescriptor] = {
    descriptor.dimension: descriptor
    for descriptor in (OVERVIEW, KEYWORDS, COMPETITORS, INTERSECTION, HISTORICAL_RANK, RELEVANT_PAGES)
}

# Dimensions whose payloads carry keyword strings
KEYWORD_DIMENSIONS = (Dimension.KEYWORDS.value, Dimension.INTERSECTION.value)
