"""
API Endpoints for Website SEO Data

Each endpoint:
1. Authenticates the caller (bearer token)
2. Verifies the caller owns the website
3. Serves the dimension through the fetch-or-refresh cache

Endpoints (all POST, JSON body):
- /overview             domain traffic and ranking distribution
- /keywords             ranked keywords, sortable
- /competitors          organic competitors
- /domain-intersection  keyword overlap with one competitor
- /historical-rank      monthly ranking distribution
- /relevant-pages       top pages by organic traffic
- /clean-cache          re-apply keyword repair to cached keywords
"""

import logging
from contextlib import contextmanager
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Literal, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field, field_validator
from sqlalchemy.orm import Session

from seodata.auth.dependencies import get_current_user, require_owned_website
from seodata.auth.models import User
from seodata.auth.ownership import AuthorizationError
from seodata.cache import (
    CacheOrchestrator,
    CacheStore,
    DESCRIPTORS,
    Dimension,
    FetchRequest,
    clean_keyword_cache,
)
from seodata.database.models import Website
from seodata.database.session import get_db
from seodata.providers.dataforseo import ProviderRegistry, get_provider_registry
from seodata.providers.locations import resolve_location
from seodata.utils.domains import clean_domain
from seodata.utils.config import Settings, get_settings
from seodata.utils.time import utcnow

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/website-data",
    tags=["Website Data"],
)


def get_clock() -> Callable[[], datetime]:
    """Current-time source for the cache (overridden in tests)."""
    return utcnow


# =============================================================================
# REQUEST MODELS
# =============================================================================

class WebsiteRequest(BaseModel):
    """Base request: every call is scoped to one website."""
    website_id: str = Field(..., alias="websiteId", min_length=1)
    region: Optional[str] = Field(default=None, description="Region code, e.g. 'us', 'uk', 'de'")

    class Config:
        populate_by_name = True


class KeywordsRequest(WebsiteRequest):
    limit: int = Field(default=20, ge=1, le=100)
    sort_by: Optional[Literal["searchVolume", "cpc", "difficulty"]] = Field(default=None, alias="sortBy")
    sort_order: Literal["asc", "desc"] = Field(default="desc", alias="sortOrder")


class CompetitorsRequest(WebsiteRequest):
    limit: int = Field(default=5, ge=1, le=20)


class DomainIntersectionRequest(WebsiteRequest):
    competitor_domain: str = Field(..., alias="competitorDomain", min_length=1)

    @field_validator("competitor_domain")
    @classmethod
    def competitor_must_be_a_domain(cls, value: str) -> str:
        if not clean_domain(value):
            raise ValueError("competitorDomain must contain a domain")
        return value


class HistoricalRankRequest(WebsiteRequest):
    days: int = Field(default=30, ge=1, le=730)


class RelevantPagesRequest(WebsiteRequest):
    limit: int = Field(default=20, ge=1, le=100)


class CleanCacheRequest(BaseModel):
    website_id: str = Field(..., alias="websiteId", min_length=1)

    class Config:
        populate_by_name = True


# =============================================================================
# HELPERS
# =============================================================================

_SORT_FIELDS = {
    "searchVolume": "search_volume",
    "cpc": "cpc",
    "difficulty": "difficulty",
}


def sort_records(records: List[Dict[str, Any]], sort_by: Optional[str], sort_order: str) -> List[Dict[str, Any]]:
    """Re-order records by a camelCase sort key; nulls always sort last."""
    if not sort_by:
        return records

    field_name = _SORT_FIELDS[sort_by]
    present = [r for r in records if r.get(field_name) is not None]
    missing = [r for r in records if r.get(field_name) is None]
    present.sort(key=lambda r: r[field_name], reverse=(sort_order == "desc"))
    return present + missing


def _limit(data: Any, limit: int) -> Any:
    return data[:limit] if isinstance(data, list) else data


@contextmanager
def _endpoint_errors(label: str):
    """Turn unexpected failures into 500 responses with details."""
    try:
        yield
    except (AuthorizationError, HTTPException):
        raise
    except Exception as e:
        logger.exception(f"[website-data/{label}] failed: {e}")
        raise HTTPException(
            status_code=500,
            detail={"error": f"Failed to fetch {label}", "details": str(e)},
        )


class WebsiteDataService:
    """Per-request wiring of store, orchestrator and settings."""

    def __init__(
        self,
        db: Session = Depends(get_db),
        providers: ProviderRegistry = Depends(get_provider_registry),
        settings: Settings = Depends(get_settings),
        clock: Callable[[], datetime] = Depends(get_clock),
        current_user: User = Depends(get_current_user),
    ):
        self.db = db
        self.user = current_user
        self.clock = clock
        self.settings = settings
        max_stale_age = None
        if settings.MAX_STALE_AGE_HOURS is not None:
            max_stale_age = timedelta(hours=settings.MAX_STALE_AGE_HOURS)
        self.orchestrator = CacheOrchestrator(
            CacheStore(db), providers, clock=clock, max_stale_age=max_stale_age
        )

    def website(self, website_id: str) -> Website:
        return require_owned_website(self.db, website_id, self.user)

    def fetch_request(self, website: Website, request: WebsiteRequest, **extra) -> FetchRequest:
        return FetchRequest(
            website_id=website.id,
            domain=website.domain,
            location=resolve_location(request.region or self.settings.DEFAULT_REGION),
            **extra,
        )

    async def fetch(self, dimension: Dimension, fetch_request: FetchRequest) -> Dict[str, Any]:
        result = await self.orchestrator.fetch_or_refresh(DESCRIPTORS[dimension], fetch_request)
        return result.to_response()


# =============================================================================
# ENDPOINTS
# =============================================================================

@router.post("/overview")
async def get_overview(request: WebsiteRequest, service: WebsiteDataService = Depends()):
    """Domain overview: traffic, keyword count, ranking distribution."""
    with _endpoint_errors("overview"):
        website = service.website(request.website_id)
        return await service.fetch(Dimension.OVERVIEW, service.fetch_request(website, request))


@router.post("/keywords")
async def get_keywords(request: KeywordsRequest, service: WebsiteDataService = Depends()):
    """
    Ranked keywords.

    Stored ordered by search volume; limit slices that order, then
    sortBy/sortOrder re-order only the returned slice.
    """
    with _endpoint_errors("keywords"):
        website = service.website(request.website_id)
        response = await service.fetch(Dimension.KEYWORDS, service.fetch_request(website, request))
        response["data"] = sort_records(
            _limit(response["data"], request.limit), request.sort_by, request.sort_order
        )
        return response


@router.post("/competitors")
async def get_competitors(request: CompetitorsRequest, service: WebsiteDataService = Depends()):
    """Organic competitors ordered by traffic."""
    with _endpoint_errors("competitors"):
        website = service.website(request.website_id)
        response = await service.fetch(Dimension.COMPETITORS, service.fetch_request(website, request))
        response["data"] = _limit(response["data"], request.limit)
        return response


@router.post("/domain-intersection")
async def get_domain_intersection(request: DomainIntersectionRequest, service: WebsiteDataService = Depends()):
    """Common, gap and exclusive keywords against one competitor."""
    with _endpoint_errors("domain intersection"):
        website = service.website(request.website_id)
        fetch_request = service.fetch_request(
            website, request, competitor_domain=request.competitor_domain
        )
        return await service.fetch(Dimension.INTERSECTION, fetch_request)


@router.post("/historical-rank")
async def get_historical_rank(request: HistoricalRankRequest, service: WebsiteDataService = Depends()):
    """Monthly ranking distribution for the last `days` days, oldest first."""
    with _endpoint_errors("historical rank"):
        website = service.website(request.website_id)
        date_from = (service.clock() - timedelta(days=request.days)).date()
        fetch_request = service.fetch_request(website, request, date_from=date_from)
        return await service.fetch(Dimension.HISTORICAL_RANK, fetch_request)


@router.post("/relevant-pages")
async def get_relevant_pages(request: RelevantPagesRequest, service: WebsiteDataService = Depends()):
    """Top pages by organic traffic."""
    with _endpoint_errors("relevant pages"):
        website = service.website(request.website_id)
        response = await service.fetch(Dimension.RELEVANT_PAGES, service.fetch_request(website, request))
        response["data"] = _limit(response["data"], request.limit)
        return response


@router.post("/clean-cache")
def clean_cache(request: CleanCacheRequest, service: WebsiteDataService = Depends()):
    """Re-apply keyword repair to every cached keyword of the website."""
    with _endpoint_errors("cache cleanup"):
        website = service.website(request.website_id)
        stats = clean_keyword_cache(service.orchestrator.store, website.id)
        return {
            "success": True,
            "message": "Cache cleaned successfully",
            "data": stats.to_dict(),
        }
