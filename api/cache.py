"""
Cache Management API

Provides endpoints for cache monitoring.

Endpoints:
- Health check for monitoring/alerting
- Statistics: entry counts per dimension plus process-local counters
"""

import logging
from datetime import datetime
from typing import Dict

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from seodata.auth.dependencies import get_current_user
from seodata.cache import CacheStore, get_orchestrator_stats
from seodata.database.session import get_db
from seodata.utils.time import utcnow


logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/cache", tags=["Cache Management"])


# =============================================================================
# RESPONSE MODELS
# =============================================================================

class CacheHealthResponse(BaseModel):
    """Cache health check response."""
    status: str = Field(..., description="healthy or unhealthy")
    backend: str = Field(default="database", description="Cache backend type")
    cached_entries: int = Field(..., description="Number of cached entries")
    timestamp: datetime = Field(default_factory=utcnow)


class DimensionStats(BaseModel):
    total: int
    fresh: int
    expired: int


class CacheStatsResponse(BaseModel):
    """Cache statistics response."""
    dimensions: Dict[str, DimensionStats]
    hits: int
    misses: int
    refreshes: int
    empty_results: int
    provider_errors: int
    stale_fallbacks: int
    empty_fallbacks: int
    write_errors: int
    hit_rate_percent: float


# =============================================================================
# ENDPOINTS
# =============================================================================

@router.get("/health", response_model=CacheHealthResponse)
def cache_health_check(db: Session = Depends(get_db)):
    """
    Check cache infrastructure health.

    The cache lives in the application database, so this verifies
    database connectivity and counts cached rows.
    """
    health = CacheStore(db).health_check()

    return CacheHealthResponse(
        status="healthy" if health["healthy"] else "unhealthy",
        cached_entries=health.get("cached_entries", 0),
    )


@router.get(
    "/stats",
    response_model=CacheStatsResponse,
    dependencies=[Depends(get_current_user)],
)
def get_cache_stats(db: Session = Depends(get_db)):
    """
    Get current cache statistics.

    Note: Counters are per process and reset on application restart.
    """
    return CacheStatsResponse(
        dimensions=CacheStore(db).get_stats(),
        **get_orchestrator_stats(),
    )
