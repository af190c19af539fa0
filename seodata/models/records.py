"""
SEO Data Records

Provider-neutral shapes for everything the cache stores. Adapters build
these from DataForSEO responses; the cache stores their model_dump() JSON.
"""

from typing import List, Optional

from pydantic import BaseModel, Field


# =============================================================================
# KEYWORDS
# =============================================================================

class SerpFeatures(BaseModel):
    """SERP features present for a ranked keyword."""
    ai_overview: bool = False
    featured_snippet: bool = False
    people_also_ask: bool = False
    video: bool = False
    image: bool = False


class KeywordRecord(BaseModel):
    """A keyword the website ranks for."""
    keyword: str
    search_volume: int = 0
    current_position: int = 0
    previous_position: int = 0
    position_change: int = 0  # positive = improved
    cpc: Optional[float] = None
    competition: Optional[float] = None
    difficulty: Optional[float] = None
    etv: float = 0.0
    url: str = ""
    serp_features: SerpFeatures = Field(default_factory=SerpFeatures)


# =============================================================================
# PAGES
# =============================================================================

class PageKeyword(BaseModel):
    keyword: str
    position: int = 0
    search_volume: int = 0


class PageRecord(BaseModel):
    """A page of the website that attracts organic traffic."""
    url: str
    organic_traffic: float = 0.0
    keywords_count: int = 0
    avg_position: float = 0.0
    top_keywords: List[PageKeyword] = Field(default_factory=list, max_length=5)


# =============================================================================
# COMPETITORS
# =============================================================================

class CompetitorRecord(BaseModel):
    """A domain competing for the website's keywords."""
    domain: str
    title: str = ""
    common_keywords: int = 0
    organic_traffic: float = 0.0
    total_keywords: int = 0
    gap_keywords: int = 0  # keywords they rank for that we don't
    gap_traffic: float = 0.0
    visibility_score: Optional[float] = None


# =============================================================================
# OVERVIEW
# =============================================================================

class RankingDistribution(BaseModel):
    """Cumulative keyword counts by position bucket."""
    top3: int = 0
    top10: int = 0
    top50: int = 0
    top100: int = 0


class BacklinksInfo(BaseModel):
    referring_domains: int = 0
    referring_main_domains: int = 0
    referring_pages: int = 0
    dofollow: int = 0
    backlinks: int = 0
    time_update: Optional[str] = None


class DomainOverview(BaseModel):
    """Domain-level organic and paid search metrics."""
    domain: str
    organic_traffic: float = 0.0
    paid_traffic: float = 0.0
    total_traffic: float = 0.0
    total_keywords: int = 0
    avg_position: float = 0.0
    traffic_cost: float = 0.0
    ranking_distribution: RankingDistribution = Field(default_factory=RankingDistribution)
    backlinks_info: Optional[BacklinksInfo] = None


# =============================================================================
# DOMAIN INTERSECTION
# =============================================================================

class CommonKeyword(BaseModel):
    keyword: str
    our_position: int = 0
    competitor_position: int = 0
    search_volume: int = 0


class GapKeyword(BaseModel):
    keyword: str
    competitor_position: int = 0
    search_volume: int = 0
    etv: float = 0.0


class OwnKeyword(BaseModel):
    keyword: str
    our_position: int = 0
    search_volume: int = 0


class DomainIntersection(BaseModel):
    """Keyword overlap between the website and one competitor."""
    target_domain: str
    competitor_domain: str
    common_keywords: List[CommonKeyword] = Field(default_factory=list)
    gap_keywords: List[GapKeyword] = Field(default_factory=list)
    our_keywords: List[OwnKeyword] = Field(default_factory=list)
    gap_traffic: float = 0.0


# Keyword-bearing lists inside an intersection payload
INTERSECTION_KEYWORD_LISTS = ("common_keywords", "gap_keywords", "our_keywords")


# =============================================================================
# HISTORICAL RANK
# =============================================================================

class RankSnapshot(BaseModel):
    """Keyword counts by position bucket on one date (YYYY-MM-DD)."""
    date: str
    top1_count: int = 0
    top3_count: int = 0
    top10_count: int = 0
    top50_count: int = 0
    top100_count: int = 0
