"""
Tests for the DataForSEO client and adapters.

HTTP is served by httpx.MockTransport; no network access.
"""

import json
from datetime import date
from typing import Any, Dict, List, Optional

import httpx
import pytest

from seodata.providers import (
    CompetitorsAdapter,
    DataForSEOClient,
    DomainIntersectionAdapter,
    DomainOverviewAdapter,
    HistoricalRankAdapter,
    MalformedProviderData,
    ProviderError,
    ProviderQuery,
    ProviderTimeout,
    RankedKeywordsAdapter,
    RelevantPagesAdapter,
    RetryConfig,
    build_provider_registry,
    extract_items,
    extract_result,
)


def envelope(items: Optional[List[Dict[str, Any]]], task_status: int = 20000, **result_fields) -> Dict[str, Any]:
    """A DataForSEO response with one task and one result."""
    result = {"items": items, **result_fields}
    return {
        "status_code": 20000,
        "status_message": "Ok.",
        "tasks": [{
            "status_code": task_status,
            "status_message": "Ok.",
            "result": [result] if task_status == 20000 else None,
        }],
    }


class RecordingHandler:
    """MockTransport handler replaying queued responses and recording requests."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.requests: List[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        response = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(response, Exception):
            raise response
        if isinstance(response, httpx.Response):
            return response
        return httpx.Response(200, json=response)

    def payloads(self) -> List[List[Dict[str, Any]]]:
        return [json.loads(r.content) for r in self.requests]


def make_client(handler, max_retries: int = 2) -> DataForSEOClient:
    return DataForSEOClient(
        login="login",
        password="password",
        retry_config=RetryConfig(max_retries=max_retries, initial_delay=0, max_delay=0),
        transport=httpx.MockTransport(handler),
    )


QUERY = ProviderQuery(domain="https://www.example.com/")


# ============================================================================
# CLIENT
# ============================================================================

class TestDataForSEOClient:
    """Tests for envelope validation and retries."""

    @pytest.mark.asyncio
    async def test_success(self):
        handler = RecordingHandler(envelope([{"a": 1}]))
        async with make_client(handler) as client:
            response = await client.post("some/endpoint", [{"target": "example.com"}])

        assert extract_items(extract_result(response)) == [{"a": 1}]
        assert handler.requests[0].headers["Authorization"].startswith("Basic ")
        assert handler.payloads() == [[{"target": "example.com"}]]
        assert client.closed

    @pytest.mark.asyncio
    async def test_timeout_not_retried(self):
        handler = RecordingHandler(httpx.ReadTimeout("timed out"))
        client = make_client(handler)

        with pytest.raises(ProviderTimeout):
            await client.post("some/endpoint", [{}])
        assert len(handler.requests) == 1
        await client.close()

    @pytest.mark.asyncio
    async def test_server_error_retried(self):
        handler = RecordingHandler(
            httpx.Response(503),
            httpx.Response(502),
            envelope([{"a": 1}]),
        )
        client = make_client(handler)

        response = await client.post("some/endpoint", [{}])

        assert len(handler.requests) == 3
        assert response["tasks"][0]["result"][0]["items"] == [{"a": 1}]
        await client.close()

    @pytest.mark.asyncio
    async def test_retries_exhausted(self):
        handler = RecordingHandler(httpx.Response(500), httpx.Response(500))
        client = make_client(handler, max_retries=1)

        with pytest.raises(ProviderError) as exc_info:
            await client.post("some/endpoint", [{}])
        assert exc_info.value.status_code == 500
        assert len(handler.requests) == 2
        await client.close()

    @pytest.mark.asyncio
    async def test_client_error_not_retried(self):
        handler = RecordingHandler(httpx.Response(401))
        client = make_client(handler)

        with pytest.raises(ProviderError) as exc_info:
            await client.post("some/endpoint", [{}])
        assert exc_info.value.retryable is False
        assert len(handler.requests) == 1
        await client.close()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("response", [
        httpx.Response(200, content=b"<html>bad gateway</html>"),
        httpx.Response(200, json=["not", "an", "object"]),
        httpx.Response(200, json={"status_code": 20000, "tasks": None}),
        httpx.Response(200, json={"status_code": 20000, "tasks": ["oops"]}),
    ])
    async def test_malformed(self, response):
        client = make_client(RecordingHandler(response))

        with pytest.raises(MalformedProviderData):
            await client.post("some/endpoint", [{}])
        await client.close()

    @pytest.mark.asyncio
    async def test_api_level_error(self):
        handler = RecordingHandler({"status_code": 40100, "status_message": "Not authorized", "tasks": []})
        client = make_client(handler)

        with pytest.raises(ProviderError, match="Not authorized"):
            await client.post("some/endpoint", [{}])
        await client.close()

    @pytest.mark.asyncio
    async def test_task_level_error(self):
        handler = RecordingHandler(envelope(None, task_status=40501))
        client = make_client(handler)

        with pytest.raises(ProviderError) as exc_info:
            await client.post("some/endpoint", [{}])
        assert exc_info.value.status_code == 40501
        await client.close()

    @pytest.mark.asyncio
    async def test_no_results_is_empty(self):
        client = make_client(RecordingHandler(envelope(None, task_status=40102)))

        response = await client.post("some/endpoint", [{}])

        assert extract_result(response) is None
        assert extract_items(None) == []
        await client.close()

    @pytest.mark.asyncio
    async def test_closed_client_rejects_requests(self):
        client = make_client(RecordingHandler(envelope([])))
        await client.close()

        with pytest.raises(ProviderError):
            await client.post("some/endpoint", [{}])


class TestEnvelopeHelpers:

    def test_result_wrong_type(self):
        with pytest.raises(MalformedProviderData):
            extract_result({"tasks": [{"status_code": 20000, "result": {"items": []}}]})

    def test_items_wrong_type(self):
        with pytest.raises(MalformedProviderData):
            extract_items({"items": "nope"})

    def test_items_missing(self):
        assert extract_items({"items": None}) == []


# ============================================================================
# ADAPTERS
# ============================================================================

class TestDomainOverviewAdapter:

    @pytest.mark.asyncio
    async def test_parse(self):
        organic = {
            "etv": 1200, "count": 340, "estimated_paid_traffic_cost": 950.5,
            "pos_1": 2, "pos_2_3": 10, "pos_4_10": 28, "pos_11_20": 50,
            "pos_21_30": 60, "pos_31_40": 40, "pos_41_50": 30, "pos_51_60": 40,
            "pos_61_70": 30, "pos_71_80": 20, "pos_81_90": 20, "pos_91_100": 10,
        }
        handler = RecordingHandler(envelope(
            [{"metrics": {"organic": organic, "paid": {"etv": 50}}}], target="example.com"
        ))
        adapter = DomainOverviewAdapter(make_client(handler))

        overview = await adapter.fetch(QUERY)

        assert overview.organic_traffic == 1200
        assert overview.total_traffic == 1250
        assert overview.total_keywords == 340
        assert overview.ranking_distribution.top3 == 12
        assert overview.ranking_distribution.top10 == 40
        assert overview.ranking_distribution.top50 == 220
        assert overview.ranking_distribution.top100 == 340
        assert handler.payloads()[0][0]["target"] == "example.com"
        assert handler.payloads()[0][0]["location_code"] == 2840
        await adapter.client.close()

    @pytest.mark.asyncio
    async def test_no_items_is_none(self):
        adapter = DomainOverviewAdapter(make_client(RecordingHandler(envelope([]))))
        assert await adapter.fetch(QUERY) is None
        await adapter.client.close()


class TestRankedKeywordsAdapter:

    ITEM = {
        "keyword_data": {
            "keyword": "051 winter boots",
            "keyword_info": {"search_volume": 8100, "cpc": 1.25, "competition": 0.4},
            "keyword_properties": {"keyword_difficulty": 38},
        },
        "ranked_serp_element": {
            "serp_item": {
                "rank_absolute": 4,
                "etv": 310.5,
                "url": "https://example.com/boots",
                "rank_changes": {"previous_rank_absolute": 7},
                "is_featured_snippet": True,
            },
            "serp_item_types": ["organic", "people_also_ask"],
        },
    }

    @pytest.mark.asyncio
    async def test_parse(self):
        handler = RecordingHandler(envelope([self.ITEM]))
        adapter = RankedKeywordsAdapter(make_client(handler))

        records = await adapter.fetch(ProviderQuery(domain="example.com", limit=50))

        record = records[0]
        # raw keyword; repair happens in the cache layer
        assert record.keyword == "051 winter boots"
        assert record.search_volume == 8100
        assert record.current_position == 4
        assert record.previous_position == 7
        assert record.position_change == 3
        assert record.difficulty == 38
        assert record.serp_features.featured_snippet is True
        assert record.serp_features.people_also_ask is True
        assert record.serp_features.video is False

        payload = handler.payloads()[0][0]
        assert payload["limit"] == 50
        assert payload["location_name"] == "United States"
        await adapter.client.close()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("item", [
        {"keyword_data": "garbage"},
        {"keyword_data": {"keyword": 50}},
    ])
    async def test_unparseable_items_are_malformed(self, item):
        adapter = RankedKeywordsAdapter(make_client(RecordingHandler(envelope([item]))))

        with pytest.raises(MalformedProviderData):
            await adapter.fetch(QUERY)
        await adapter.client.close()

    @pytest.mark.asyncio
    async def test_intersection_unparseable_items_are_malformed(self):
        adapter = DomainIntersectionAdapter(
            make_client(RecordingHandler(envelope([{"keyword_data": {"keyword": 50}}])))
        )

        with pytest.raises(MalformedProviderData):
            await adapter.fetch(ProviderQuery(domain="example.com", competitor_domain="rival.com"))
        await adapter.client.close()


class TestCompetitorsAdapter:

    @pytest.mark.asyncio
    async def test_skips_target_and_scores_visibility(self):
        items = [
            {"domain": "www.example.com", "intersections": 999},
            {
                "domain": "rival.com",
                "title": "Rival",
                "intersections": 120,
                "metrics": {"organic": {"etv": 250}},
                "full_domain_metrics": {"organic": {"etv": 1000, "count": 500}},
            },
        ]
        adapter = CompetitorsAdapter(make_client(RecordingHandler(envelope(items))))

        competitors = await adapter.fetch(QUERY)

        assert [c.domain for c in competitors] == ["rival.com"]
        rival = competitors[0]
        assert rival.common_keywords == 120
        assert rival.gap_keywords == 380
        assert rival.gap_traffic == 750
        assert rival.visibility_score == 25.0
        await adapter.client.close()


class TestDomainIntersectionAdapter:

    @pytest.mark.asyncio
    async def test_three_calls(self):
        common = envelope([{
            "keyword_data": {"keyword": "boots", "keyword_info": {"search_volume": 100}},
            "first_domain_serp_element": {"rank_absolute": 3},
            "second_domain_serp_element": {"rank_absolute": 8},
        }])
        gap = envelope([{
            "keyword_data": {"keyword": "sandals", "keyword_info": {"search_volume": 50}},
            "first_domain_serp_element": {"rank_absolute": 2, "etv": 12.5},
        }])
        ours = envelope([])
        handler = RecordingHandler(common, gap, ours)
        adapter = DomainIntersectionAdapter(make_client(handler))

        result = await adapter.fetch(ProviderQuery(domain="example.com", competitor_domain="https://rival.com"))

        payloads = [p[0] for p in handler.payloads()]
        assert [(p["target1"], p["target2"], p["intersections"]) for p in payloads] == [
            ("example.com", "rival.com", True),
            ("rival.com", "example.com", False),
            ("example.com", "rival.com", False),
        ]
        assert result.common_keywords[0].our_position == 3
        assert result.common_keywords[0].competitor_position == 8
        assert result.gap_keywords[0].competitor_position == 2
        assert result.gap_traffic == 12.5
        assert result.our_keywords == []
        await adapter.client.close()

    @pytest.mark.asyncio
    async def test_nothing_in_common_is_none(self):
        adapter = DomainIntersectionAdapter(make_client(RecordingHandler(envelope([]))))
        assert await adapter.fetch(ProviderQuery(domain="example.com", competitor_domain="rival.com")) is None
        await adapter.client.close()

    @pytest.mark.asyncio
    async def test_requires_competitor(self):
        adapter = DomainIntersectionAdapter(make_client(RecordingHandler(envelope([]))))
        with pytest.raises(ValueError):
            await adapter.fetch(QUERY)
        await adapter.client.close()


class TestHistoricalRankAdapter:

    @pytest.mark.asyncio
    async def test_parse(self):
        items = [
            {"year": 2024, "month": 5, "metrics": {"organic": {"pos_1": 1, "pos_2_3": 2, "pos_4_10": 3}}},
            {"year": None, "month": 4},
        ]
        handler = RecordingHandler(envelope(items))
        adapter = HistoricalRankAdapter(make_client(handler))

        snapshots = await adapter.fetch(ProviderQuery(domain="example.com", date_from=date(2024, 4, 15)))

        assert len(snapshots) == 1
        assert snapshots[0].date == "2024-05-01"
        assert snapshots[0].top1_count == 1
        assert snapshots[0].top3_count == 3
        assert snapshots[0].top10_count == 6
        assert handler.payloads()[0][0]["date_from"] == "2024-04-15"
        await adapter.client.close()


class TestRelevantPagesAdapter:

    @pytest.mark.asyncio
    async def test_parse(self):
        items = [
            {"page_address": "https://example.com/boots", "metrics": {"organic": {"etv": 80, "count": 12}}},
            {"metrics": {"organic": {"etv": 10}}},
        ]
        adapter = RelevantPagesAdapter(make_client(RecordingHandler(envelope(items))))

        pages = await adapter.fetch(QUERY)

        assert [p.url for p in pages] == ["https://example.com/boots"]
        assert pages[0].organic_traffic == 80
        assert pages[0].keywords_count == 12
        await adapter.client.close()


class TestProviderRegistry:

    @pytest.mark.asyncio
    async def test_one_adapter_per_dimension(self):
        client = make_client(RecordingHandler(envelope([])))
        registry = build_provider_registry(client)

        for name in ("overview", "keywords", "competitors", "intersection", "historical-rank", "relevant-pages"):
            assert name in registry
            assert registry.get(name).client is client

        with pytest.raises(ProviderError):
            registry.get("backlinks")

        await registry.close()
        assert client.closed
