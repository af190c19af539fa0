"""
Base Provider Adapter

Each SEO data dimension is backed by one adapter that turns a ProviderQuery
into provider-neutral records. Adapters never return raw provider envelopes.

Architecture:
    ProviderAdapter (abstract)
    ├── DomainOverviewAdapter
    ├── RankedKeywordsAdapter
    ├── CompetitorsAdapter
    ├── DomainIntersectionAdapter
    ├── HistoricalRankAdapter
    └── RelevantPagesAdapter
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, List, Optional, TYPE_CHECKING

from pydantic import ValidationError

from .client import MalformedProviderData

if TYPE_CHECKING:
    from .client import DataForSEOClient

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProviderQuery:
    """Parameters for a single provider fetch."""
    domain: str
    location_code: int = 2840
    location_name: str = "United States"
    language_name: str = "English"
    limit: int = 100
    competitor_domain: Optional[str] = None
    date_from: Optional[date] = None


class ProviderAdapter(ABC):
    """
    Abstract base class for DataForSEO endpoint adapters.

    Subclasses define the endpoint, how to build its task payload, and how
    to parse the validated response into records.
    """

    def __init__(self, client: "DataForSEOClient"):
        self.client = client

    @property
    @abstractmethod
    def name(self) -> str:
        """Dimension this adapter serves (e.g., "keywords")."""
        pass

    @property
    @abstractmethod
    def endpoint(self) -> str:
        """DataForSEO endpoint path."""
        pass

    @abstractmethod
    def build_payload(self, query: ProviderQuery) -> Dict[str, Any]:
        """Build the task object sent to the endpoint."""
        pass

    @abstractmethod
    def parse(self, response: Dict[str, Any], query: ProviderQuery) -> Any:
        """Turn a validated response envelope into records."""
        pass

    async def fetch(self, query: ProviderQuery) -> Any:
        """
        Fetch records for the query.

        Returns:
            A record, a list of records, or an empty value when the provider
            had nothing for this query.

        Raises:
            ProviderError: On timeout, transport, API or envelope failure
            MalformedProviderData: Items the adapter cannot parse
        """
        logger.debug(f"[{self.name}] fetching {query.domain} @ {query.location_code}")
        response = await self.client.post(self.endpoint, [self.build_payload(query)])
        return self.parse_response(response, query)

    def parse_response(self, response: Any, query: ProviderQuery) -> Any:
        """parse(), with item-level junk reported as MalformedProviderData."""
        try:
            return self.parse(response, query)
        except (AttributeError, TypeError, ValueError, KeyError, ValidationError) as e:
            raise MalformedProviderData(
                f"Unparseable {self.name} items: {e}", endpoint=self.endpoint
            ) from e


# =============================================================================
# PARSE HELPERS
# =============================================================================

def as_int(value: Any) -> int:
    """Coerce a provider number to int; None and junk become 0."""
    try:
        return int(value or 0)
    except (TypeError, ValueError):
        return 0


def as_float(value: Any) -> float:
    try:
        return float(value or 0)
    except (TypeError, ValueError):
        return 0.0


def optional_float(value: Any) -> Optional[float]:
    if value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def dig(data: Optional[Dict[str, Any]], *path: str) -> Any:
    """Walk nested dicts, returning None at the first missing or null step."""
    current: Any = data
    for key in path:
        if not isinstance(current, dict):
            return None
        current = current.get(key)
    return current


# Position buckets reported in metrics.organic, with their midpoints
POSITION_BUCKETS: List[tuple] = [
    ("pos_1", 1.0),
    ("pos_2_3", 2.5),
    ("pos_4_10", 7.0),
    ("pos_11_20", 15.5),
    ("pos_21_30", 25.5),
    ("pos_31_40", 35.5),
    ("pos_41_50", 45.5),
    ("pos_51_60", 55.5),
    ("pos_61_70", 65.5),
    ("pos_71_80", 75.5),
    ("pos_81_90", 85.5),
    ("pos_91_100", 95.5),
]


def bucket_counts(organic: Optional[Dict[str, Any]]) -> Dict[str, int]:
    """Cumulative top1/top3/top10/top50/top100 counts from position buckets."""
    counts = {key: as_int((organic or {}).get(key)) for key, _ in POSITION_BUCKETS}
    top1 = counts["pos_1"]
    top3 = top1 + counts["pos_2_3"]
    top10 = top3 + counts["pos_4_10"]
    top50 = top10 + sum(counts[k] for k in ("pos_11_20", "pos_21_30", "pos_31_40", "pos_41_50"))
    top100 = top50 + sum(counts[k] for k in ("pos_51_60", "pos_61_70", "pos_71_80", "pos_81_90", "pos_91_100"))
    return {"top1": top1, "top3": top3, "top10": top10, "top50": top50, "top100": top100}


def weighted_avg_position(organic: Optional[Dict[str, Any]]) -> float:
    """Approximate average position from bucket counts, weighted by midpoint."""
    organic = organic or {}
    total = sum(as_int(organic.get(key)) for key, _ in POSITION_BUCKETS)
    if total <= 0:
        return 0.0
    weighted = sum(as_int(organic.get(key)) * midpoint for key, midpoint in POSITION_BUCKETS)
    return round(weighted / total, 2)
