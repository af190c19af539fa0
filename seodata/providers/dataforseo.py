"""
DataForSEO Labs Adapters

One adapter per upstream endpoint. Each parses the Labs response into the
records in seodata.models. Keyword strings are passed through untouched;
repair happens in the cache's post-processing step.
"""

import logging
from typing import Any, Dict, List, Optional

from seodata.models.records import (
    BacklinksInfo,
    CommonKeyword,
    CompetitorRecord,
    DomainIntersection,
    DomainOverview,
    GapKeyword,
    KeywordRecord,
    OwnKeyword,
    PageKeyword,
    PageRecord,
    RankingDistribution,
    RankSnapshot,
    SerpFeatures,
)
from seodata.utils.domains import clean_domain
from .base import (
    ProviderAdapter,
    ProviderQuery,
    as_float,
    as_int,
    bucket_counts,
    dig,
    optional_float,
    weighted_avg_position,
)
from .client import DataForSEOClient, ProviderError, extract_items, extract_result

logger = logging.getLogger(__name__)


def _base_payload(query: ProviderQuery) -> Dict[str, Any]:
    return {
        "target": clean_domain(query.domain),
        "location_code": query.location_code,
        "language_name": query.language_name,
    }


# =============================================================================
# OVERVIEW
# =============================================================================

class DomainOverviewAdapter(ProviderAdapter):
    """Domain-level traffic, keyword count and ranking distribution."""

    @property
    def name(self) -> str:
        return "overview"

    @property
    def endpoint(self) -> str:
        return "dataforseo_labs/google/domain_rank_overview/live"

    def build_payload(self, query: ProviderQuery) -> Dict[str, Any]:
        return _base_payload(query)

    def parse(self, response: Dict[str, Any], query: ProviderQuery) -> Optional[DomainOverview]:
        result = extract_result(response, self.endpoint)
        items = extract_items(result, self.endpoint)
        if not items:
            return None

        item = items[0]
        organic = dig(item, "metrics", "organic") or {}
        paid = dig(item, "metrics", "paid") or {}
        buckets = bucket_counts(organic)

        organic_traffic = as_float(organic.get("etv"))
        paid_traffic = as_float(paid.get("etv"))

        backlinks = item.get("backlinks_info")
        backlinks_info = None
        if isinstance(backlinks, dict):
            backlinks_info = BacklinksInfo(
                referring_domains=as_int(backlinks.get("referring_domains")),
                referring_main_domains=as_int(backlinks.get("referring_main_domains")),
                referring_pages=as_int(backlinks.get("referring_pages")),
                dofollow=as_int(backlinks.get("dofollow")),
                backlinks=as_int(backlinks.get("backlinks")),
                time_update=backlinks.get("time_update"),
            )

        return DomainOverview(
            domain=(result or {}).get("target") or clean_domain(query.domain),
            organic_traffic=organic_traffic,
            paid_traffic=paid_traffic,
            total_traffic=organic_traffic + paid_traffic,
            total_keywords=as_int(organic.get("count")),
            avg_position=weighted_avg_position(organic),
            traffic_cost=as_float(organic.get("estimated_paid_traffic_cost")),
            ranking_distribution=RankingDistribution(
                top3=buckets["top3"],
                top10=buckets["top10"],
                top50=buckets["top50"],
                top100=buckets["top100"],
            ),
            backlinks_info=backlinks_info,
        )


# =============================================================================
# RANKED KEYWORDS
# =============================================================================

class RankedKeywordsAdapter(ProviderAdapter):
    """Keywords the domain ranks for, with position changes and SERP features."""

    @property
    def name(self) -> str:
        return "keywords"

    @property
    def endpoint(self) -> str:
        return "dataforseo_labs/google/ranked_keywords/live"

    def build_payload(self, query: ProviderQuery) -> Dict[str, Any]:
        return {
            "target": clean_domain(query.domain),
            "location_name": query.location_name,
            "language_name": query.language_name,
            "load_rank_absolute": True,
            "limit": query.limit,
        }

    def parse(self, response: Dict[str, Any], query: ProviderQuery) -> List[KeywordRecord]:
        items = extract_items(extract_result(response, self.endpoint), self.endpoint)
        return [self._parse_item(item) for item in items]

    @staticmethod
    def _parse_item(item: Dict[str, Any]) -> KeywordRecord:
        keyword_data = item.get("keyword_data") or {}
        keyword_info = keyword_data.get("keyword_info") or {}
        keyword_properties = keyword_data.get("keyword_properties") or {}
        ranked = item.get("ranked_serp_element") or {}
        serp_item = ranked.get("serp_item") or {}
        rank_changes = serp_item.get("rank_changes") or {}
        item_types = ranked.get("serp_item_types") or []

        current = as_int(serp_item.get("rank_absolute") or ranked.get("rank_absolute"))
        previous = rank_changes.get("previous_rank_absolute")
        if previous is None:
            previous = ranked.get("previous_rank_absolute")
        previous = as_int(previous)

        # positive change means the page moved up
        change = previous - current if current and previous else 0

        return KeywordRecord(
            keyword=keyword_data.get("keyword") or "",
            search_volume=as_int(keyword_info.get("search_volume")),
            current_position=current,
            previous_position=previous,
            position_change=change,
            cpc=optional_float(keyword_info.get("cpc")),
            competition=optional_float(keyword_info.get("competition")),
            difficulty=optional_float(keyword_properties.get("keyword_difficulty")),
            etv=as_float(serp_item.get("etv")),
            url=serp_item.get("url") or "",
            serp_features=SerpFeatures(
                ai_overview=serp_item.get("type") == "ai_overview_reference" or "ai_overview" in item_types,
                featured_snippet=bool(serp_item.get("is_featured_snippet")) or serp_item.get("type") == "featured_snippet",
                people_also_ask="people_also_ask" in item_types,
                video=bool(serp_item.get("is_video")) or "video" in item_types,
                image=bool(serp_item.get("is_image")) or "images" in item_types,
            ),
        )


# =============================================================================
# COMPETITORS
# =============================================================================

class CompetitorsAdapter(ProviderAdapter):
    """Domains that share organic keywords with the target."""

    @property
    def name(self) -> str:
        return "competitors"

    @property
    def endpoint(self) -> str:
        return "dataforseo_labs/google/competitors_domain/live"

    def build_payload(self, query: ProviderQuery) -> Dict[str, Any]:
        payload = _base_payload(query)
        payload["limit"] = query.limit
        payload["exclude_top_domains"] = True
        return payload

    def parse(self, response: Dict[str, Any], query: ProviderQuery) -> List[CompetitorRecord]:
        target = clean_domain(query.domain)
        competitors = []

        for item in extract_items(extract_result(response, self.endpoint), self.endpoint):
            domain = clean_domain(item.get("domain"))
            # the target shows up as its own top competitor
            if not domain or domain == target:
                continue

            shared = dig(item, "metrics", "organic") or {}
            full = dig(item, "full_domain_metrics", "organic") or {}

            common = as_int(item.get("intersections"))
            total_keywords = as_int(full.get("count"))
            organic_traffic = as_float(full.get("etv"))
            shared_traffic = as_float(shared.get("etv"))

            competitors.append(CompetitorRecord(
                domain=domain,
                title=item.get("title") or "",
                common_keywords=common,
                organic_traffic=organic_traffic,
                total_keywords=total_keywords,
                gap_keywords=max(total_keywords - common, 0),
                gap_traffic=max(organic_traffic - shared_traffic, 0.0),
                # share of the competitor's traffic that comes from our keywords
                visibility_score=round(shared_traffic / organic_traffic * 100, 2) if organic_traffic else None,
            ))

        return competitors


# =============================================================================
# DOMAIN INTERSECTION
# =============================================================================

class DomainIntersectionAdapter(ProviderAdapter):
    """
    Keyword overlap between the target and one competitor.

    Three Labs calls, made one after another:
    - intersections=true: keywords both domains rank for
    - intersections=false, competitor first: the competitor's gap keywords
    - intersections=false, target first: keywords only we rank for
    """

    @property
    def name(self) -> str:
        return "intersection"

    @property
    def endpoint(self) -> str:
        return "dataforseo_labs/google/domain_intersection/live"

    def build_payload(self, query: ProviderQuery) -> Dict[str, Any]:
        return self._payload(query, clean_domain(query.domain), self._competitor(query), True)

    def _payload(self, query: ProviderQuery, first: str, second: str, intersections: bool) -> Dict[str, Any]:
        return {
            "target1": first,
            "target2": second,
            "location_code": query.location_code,
            "language_name": query.language_name,
            "intersections": intersections,
            "limit": query.limit,
        }

    @staticmethod
    def _competitor(query: ProviderQuery) -> str:
        competitor = clean_domain(query.competitor_domain)
        if not competitor:
            raise ValueError("Domain intersection requires a competitor domain")
        return competitor

    async def fetch(self, query: ProviderQuery) -> Optional[DomainIntersection]:
        target = clean_domain(query.domain)
        competitor = self._competitor(query)

        responses = {}
        for key, first, second, intersections in (
            ("common", target, competitor, True),
            ("gap", competitor, target, False),
            ("ours", target, competitor, False),
        ):
            payload = self._payload(query, first, second, intersections)
            responses[key] = await self.client.post(self.endpoint, [payload])

        return self.parse_response(responses, query)

    def parse(self, response: Dict[str, Any], query: ProviderQuery) -> Optional[DomainIntersection]:
        """response maps "common"/"gap"/"ours" to the three envelopes."""
        common_items = self._items(response.get("common"))
        gap_items = self._items(response.get("gap"))
        our_items = self._items(response.get("ours"))

        if not (common_items or gap_items or our_items):
            return None

        common = [
            CommonKeyword(
                keyword=self._keyword(item),
                our_position=self._position(item, "first_domain_serp_element"),
                competitor_position=self._position(item, "second_domain_serp_element"),
                search_volume=self._volume(item),
            )
            for item in common_items
        ]
        # competitor was target1 in the gap query
        gap = [
            GapKeyword(
                keyword=self._keyword(item),
                competitor_position=self._position(item, "first_domain_serp_element"),
                search_volume=self._volume(item),
                etv=as_float(dig(item, "first_domain_serp_element", "etv")),
            )
            for item in gap_items
        ]
        ours = [
            OwnKeyword(
                keyword=self._keyword(item),
                our_position=self._position(item, "first_domain_serp_element"),
                search_volume=self._volume(item),
            )
            for item in our_items
        ]

        return DomainIntersection(
            target_domain=clean_domain(query.domain),
            competitor_domain=self._competitor(query),
            common_keywords=common,
            gap_keywords=gap,
            our_keywords=ours,
            gap_traffic=round(sum(kw.etv for kw in gap), 2),
        )

    def _items(self, envelope: Optional[Dict[str, Any]]) -> List[Dict[str, Any]]:
        if envelope is None:
            return []
        return extract_items(extract_result(envelope, self.endpoint), self.endpoint)

    @staticmethod
    def _keyword(item: Dict[str, Any]) -> str:
        return dig(item, "keyword_data", "keyword") or ""

    @staticmethod
    def _volume(item: Dict[str, Any]) -> int:
        return as_int(dig(item, "keyword_data", "keyword_info", "search_volume"))

    @staticmethod
    def _position(item: Dict[str, Any], element: str) -> int:
        return as_int(dig(item, element, "rank_absolute"))


# =============================================================================
# HISTORICAL RANK
# =============================================================================

class HistoricalRankAdapter(ProviderAdapter):
    """Monthly ranking distribution snapshots."""

    @property
    def name(self) -> str:
        return "historical-rank"

    @property
    def endpoint(self) -> str:
        return "dataforseo_labs/google/historical_rank_overview/live"

    def build_payload(self, query: ProviderQuery) -> Dict[str, Any]:
        payload = _base_payload(query)
        if query.date_from:
            payload["date_from"] = query.date_from.isoformat()
        return payload

    def parse(self, response: Dict[str, Any], query: ProviderQuery) -> List[RankSnapshot]:
        snapshots = []
        for item in extract_items(extract_result(response, self.endpoint), self.endpoint):
            year, month = as_int(item.get("year")), as_int(item.get("month"))
            if not year or not 1 <= month <= 12:
                logger.debug(f"Skipping snapshot without a valid date: {item.get('year')}-{item.get('month')}")
                continue

            buckets = bucket_counts(dig(item, "metrics", "organic"))
            snapshots.append(RankSnapshot(
                date=f"{year:04d}-{month:02d}-01",
                top1_count=buckets["top1"],
                top3_count=buckets["top3"],
                top10_count=buckets["top10"],
                top50_count=buckets["top50"],
                top100_count=buckets["top100"],
            ))
        return snapshots


# =============================================================================
# RELEVANT PAGES
# =============================================================================

class RelevantPagesAdapter(ProviderAdapter):
    """The domain's pages ranked by organic traffic."""

    @property
    def name(self) -> str:
        return "relevant-pages"

    @property
    def endpoint(self) -> str:
        return "dataforseo_labs/google/relevant_pages/live"

    def build_payload(self, query: ProviderQuery) -> Dict[str, Any]:
        payload = _base_payload(query)
        payload["limit"] = query.limit
        return payload

    def parse(self, response: Dict[str, Any], query: ProviderQuery) -> List[PageRecord]:
        pages = []
        for item in extract_items(extract_result(response, self.endpoint), self.endpoint):
            url = item.get("page_address") or item.get("url") or ""
            if not url:
                continue

            organic = dig(item, "metrics", "organic") or {}
            top_keywords = [
                PageKeyword(
                    keyword=kw.get("keyword") or "",
                    position=as_int(kw.get("position")),
                    search_volume=as_int(kw.get("search_volume")),
                )
                for kw in (item.get("top_keywords") or [])[:5]
                if isinstance(kw, dict)
            ]

            pages.append(PageRecord(
                url=url,
                organic_traffic=as_float(organic.get("etv")),
                keywords_count=as_int(organic.get("count")),
                avg_position=weighted_avg_position(organic),
                top_keywords=top_keywords,
            ))
        return pages


# =============================================================================
# REGISTRY
# =============================================================================

ADAPTER_CLASSES = (
    DomainOverviewAdapter,
    RankedKeywordsAdapter,
    CompetitorsAdapter,
    DomainIntersectionAdapter,
    HistoricalRankAdapter,
    RelevantPagesAdapter,
)


class ProviderRegistry:
    """Adapters keyed by dimension name."""

    def __init__(self, adapters: Dict[str, Any], client: Optional[DataForSEOClient] = None):
        self._adapters = dict(adapters)
        self.client = client

    def get(self, name: str):
        adapter = self._adapters.get(name)
        if adapter is None:
            raise ProviderError(f"No provider adapter registered for '{name}'")
        return adapter

    def __contains__(self, name: str) -> bool:
        return name in self._adapters

    async def close(self):
        if self.client is not None:
            await self.client.close()


def build_provider_registry(client: DataForSEOClient) -> ProviderRegistry:
    """Create one adapter per dimension sharing a single pooled client."""
    adapters = {}
    for adapter_class in ADAPTER_CLASSES:
        adapter = adapter_class(client)
        adapters[adapter.name] = adapter
    return ProviderRegistry(adapters, client=client)


# Process-wide registry (lazy initialization)
_registry: Optional[ProviderRegistry] = None


def get_provider_registry() -> ProviderRegistry:
    """
    FastAPI dependency returning the process-wide adapter registry.

    Tests override this dependency with fake adapters.
    """
    global _registry
    if _registry is None:
        from seodata.utils.config import get_settings
        from .client import RetryConfig

        settings = get_settings()
        if not settings.has_provider_credentials:
            logger.warning("DataForSEO credentials not configured; provider calls will fail")

        client = DataForSEOClient(
            login=settings.DATAFORSEO_LOGIN,
            password=settings.DATAFORSEO_PASSWORD,
            retry_config=RetryConfig(max_retries=settings.PROVIDER_MAX_RETRIES),
            max_connections=settings.PROVIDER_MAX_CONNECTIONS,
            timeout=settings.PROVIDER_TIMEOUT,
        )
        _registry = build_provider_registry(client)
    return _registry


async def close_provider_registry() -> None:
    """Close the shared HTTP client (application shutdown)."""
    global _registry
    if _registry is not None:
        await _registry.close()
        _registry = None
