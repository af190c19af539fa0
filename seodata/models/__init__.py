"""
Provider-neutral SEO data records.
"""

from .records import (
    SerpFeatures,
    KeywordRecord,
    PageKeyword,
    PageRecord,
    CompetitorRecord,
    RankingDistribution,
    BacklinksInfo,
    DomainOverview,
    CommonKeyword,
    GapKeyword,
    OwnKeyword,
    DomainIntersection,
    INTERSECTION_KEYWORD_LISTS,
    RankSnapshot,
)

__all__ = [
    "SerpFeatures",
    "KeywordRecord",
    "PageKeyword",
    "PageRecord",
    "CompetitorRecord",
    "RankingDistribution",
    "BacklinksInfo",
    "DomainOverview",
    "CommonKeyword",
    "GapKeyword",
    "OwnKeyword",
    "DomainIntersection",
    "INTERSECTION_KEYWORD_LISTS",
    "RankSnapshot",
]
