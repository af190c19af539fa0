"""
Tests for the website data and cache HTTP endpoints.

Dependencies (database session, current user, provider registry, clock)
are overridden; the app's startup hooks are not run.
"""

from datetime import date, timedelta
from unittest.mock import patch
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient

from api.app import app
from api.website_data import get_clock, sort_records
from seodata.auth.config import AuthConfig
from seodata.auth.dependencies import get_current_user
from seodata.database.models import SeoCacheEntry
from seodata.database.session import get_db
from seodata.providers.client import ProviderError
from seodata.providers.dataforseo import get_provider_registry


ENDPOINTS = [
    ("/api/website-data/overview", {}),
    ("/api/website-data/keywords", {}),
    ("/api/website-data/competitors", {}),
    ("/api/website-data/domain-intersection", {"competitorDomain": "rival.com"}),
    ("/api/website-data/historical-rank", {}),
    ("/api/website-data/relevant-pages", {}),
    ("/api/website-data/clean-cache", {}),
]


@pytest.fixture
def current_user(owner):
    return owner


@pytest.fixture
def client(session, registry, clock, current_user):
    app.dependency_overrides[get_db] = lambda: session
    app.dependency_overrides[get_current_user] = lambda: current_user
    app.dependency_overrides[get_provider_registry] = lambda: registry
    app.dependency_overrides[get_clock] = lambda: clock
    yield TestClient(app)
    app.dependency_overrides.clear()


def _entries(session):
    return session.query(SeoCacheEntry).count()


# ============================================================================
# ACCESS CONTROL
# ============================================================================

class TestAccessControl:
    """Ownership is checked before any cache or provider work."""

    @pytest.mark.parametrize("path,extra", ENDPOINTS)
    def test_foreign_website_forbidden(self, client, session, registry, make_user, make_website, path, extra):
        foreign = make_website(make_user("someone@test.com"), "foreign.com")
        for name in ("overview", "keywords", "competitors", "intersection", "historical-rank", "relevant-pages"):
            registry.add(name, result=[])

        response = client.post(path, json={"websiteId": str(foreign.id), **extra})

        assert response.status_code == 403
        assert response.json() == {"success": False, "error": "Access denied to this website"}
        assert registry.requested == []
        assert registry.fetch_calls == 0
        assert _entries(session) == 0

    @pytest.mark.parametrize("path,extra", ENDPOINTS)
    def test_unknown_website_not_found(self, client, registry, path, extra):
        response = client.post(path, json={"websiteId": str(uuid4()), **extra})

        assert response.status_code == 404
        assert response.json()["success"] is False
        assert response.json()["error"] == "Website not found"
        assert registry.requested == []

    def test_malformed_website_id_not_found(self, client):
        response = client.post("/api/website-data/overview", json={"websiteId": "not-a-uuid"})
        assert response.status_code == 404

    def test_missing_token_unauthorized(self, session, registry):
        app.dependency_overrides[get_db] = lambda: session
        app.dependency_overrides[get_provider_registry] = lambda: registry
        try:
            with patch(
                "seodata.auth.dependencies.get_auth_config",
                return_value=AuthConfig(jwt_secret="test-secret", auth_enabled=True),
            ):
                response = TestClient(app).post(
                    "/api/website-data/overview", json={"websiteId": str(uuid4())}
                )
        finally:
            app.dependency_overrides.clear()

        assert response.status_code == 401
        assert response.json() == {"success": False, "error": "Not authenticated"}


# ============================================================================
# VALIDATION
# ============================================================================

class TestValidation:

    def test_missing_website_id(self, client):
        response = client.post("/api/website-data/overview", json={})

        assert response.status_code == 400
        body = response.json()
        assert body["success"] is False
        assert "websiteId" in body["error"]
        assert body["details"]

    def test_intersection_requires_competitor(self, client, website):
        response = client.post("/api/website-data/domain-intersection", json={"websiteId": str(website.id)})
        assert response.status_code == 400

    @pytest.mark.parametrize("competitor", ["https://", "www.", "/"])
    def test_intersection_competitor_without_domain(self, client, registry, website, competitor):
        registry.add("intersection", result=None)

        response = client.post(
            "/api/website-data/domain-intersection",
            json={"websiteId": str(website.id), "competitorDomain": competitor},
        )

        assert response.status_code == 400
        assert response.json()["success"] is False
        assert "competitorDomain" in response.json()["error"]
        assert registry.fetch_calls == 0

    @pytest.mark.parametrize("path,limit", [
        ("/api/website-data/keywords", 101),
        ("/api/website-data/relevant-pages", 101),
        ("/api/website-data/competitors", 21),
    ])
    def test_limit_above_fetch_size(self, client, website, path, limit):
        response = client.post(path, json={"websiteId": str(website.id), "limit": limit})
        assert response.status_code == 400

    def test_bad_sort_field(self, client, website):
        response = client.post(
            "/api/website-data/keywords",
            json={"websiteId": str(website.id), "sortBy": "keyword"},
        )
        assert response.status_code == 400


# ============================================================================
# DIMENSIONS
# ============================================================================

class TestWebsiteData:

    def test_overview_refresh_then_cached(self, client, registry, website, overview_record):
        adapter = registry.add("overview", result=overview_record)

        first = client.post("/api/website-data/overview", json={"websiteId": str(website.id)})
        second = client.post("/api/website-data/overview", json={"websiteId": str(website.id)})

        assert first.status_code == 200
        assert first.json() == {"success": True, "data": overview_record, "cached": False}
        assert second.json() == {"success": True, "data": overview_record, "cached": True}
        assert adapter.fetch.await_count == 1

    def test_provider_down_without_cache(self, client, registry, website):
        registry.add("keywords", error=ProviderError("API error: 500"))

        response = client.post("/api/website-data/keywords", json={"websiteId": str(website.id)})

        assert response.status_code == 200
        assert response.json() == {"success": True, "data": [], "cached": True}

    def test_unexpected_failure_is_500(self, client, registry, website):
        registry.add("overview", error=RuntimeError("bug"))

        response = client.post("/api/website-data/overview", json={"websiteId": str(website.id)})

        assert response.status_code == 500
        assert response.json() == {"success": False, "error": "Failed to fetch overview", "details": "bug"}

    def test_keywords_limit_then_sort(self, client, store, clock, website):
        store.upsert(website.id, "keywords", "2840", [
            {"keyword": "a", "search_volume": 300, "cpc": 0.5},
            {"keyword": "b", "search_volume": 200, "cpc": None},
            {"keyword": "c", "search_volume": 100, "cpc": 2.0},
        ], clock(), timedelta(hours=24))

        response = client.post("/api/website-data/keywords", json={
            "websiteId": str(website.id), "limit": 2, "sortBy": "cpc", "sortOrder": "asc",
        })
        assert [kw["keyword"] for kw in response.json()["data"]] == ["a", "b"]

        response = client.post("/api/website-data/keywords", json={
            "websiteId": str(website.id), "limit": 3, "sortBy": "cpc",
        })
        assert [kw["keyword"] for kw in response.json()["data"]] == ["c", "a", "b"]
        assert response.json()["cached"] is True

    def test_region_selects_location(self, client, registry, website):
        adapter = registry.add("competitors", result=[{"domain": "rival.de", "organic_traffic": 1.0}])

        response = client.post(
            "/api/website-data/competitors",
            json={"websiteId": str(website.id), "region": "DE"},
        )

        assert response.status_code == 200
        assert adapter.fetch.await_args.args[0].location_code == 2276

    def test_competitors_limit(self, client, registry, website):
        registry.add("competitors", result=[
            {"domain": f"rival{i}.com", "organic_traffic": float(i)} for i in range(8)
        ])

        response = client.post("/api/website-data/competitors", json={"websiteId": str(website.id)})

        domains = [c["domain"] for c in response.json()["data"]]
        assert domains == ["rival7.com", "rival6.com", "rival5.com", "rival4.com", "rival3.com"]

    def test_historical_rank_window(self, client, registry, clock, website):
        adapter = registry.add("historical-rank", result=[{"date": "2024-05-01", "top10_count": 4}])

        response = client.post(
            "/api/website-data/historical-rank",
            json={"websiteId": str(website.id), "days": 45},
        )

        assert response.json()["data"] == [{"date": "2024-05-01", "top10_count": 4}]
        assert adapter.fetch.await_args.args[0].date_from == date(2024, 5, 1)


# ============================================================================
# MAINTENANCE
# ============================================================================

class TestCleanCache:

    def test_clean_cache(self, client, store, clock, website):
        store.upsert(website.id, "keywords", "2840", [
            {"keyword": "051 winter boots"},
            {"keyword": "050"},
            {"keyword": "winter boots"},
        ], clock(), timedelta(hours=24))

        response = client.post("/api/website-data/clean-cache", json={"websiteId": str(website.id)})

        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "message": "Cache cleaned successfully",
            "data": {"cleaned": 1, "deleted": 2, "total": 3, "entries_removed": 0},
        }
        assert store.get_latest(website.id, "keywords", "2840").payload == [{"keyword": "winter boots"}]


# ============================================================================
# CACHE MONITORING
# ============================================================================

class TestCacheEndpoints:

    def test_health(self, client, store, clock, website):
        store.upsert(website.id, "overview", "2840", {"v": 1}, clock(), timedelta(hours=24))

        response = client.get("/api/cache/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"
        assert response.json()["cached_entries"] == 1

    def test_stats(self, client, registry, store, clock, website, overview_record):
        registry.add("overview", result=overview_record)
        client.post("/api/website-data/overview", json={"websiteId": str(website.id)})
        client.post("/api/website-data/overview", json={"websiteId": str(website.id)})

        body = client.get("/api/cache/stats").json()

        assert body["hits"] == 1
        assert body["misses"] == 1
        assert body["refreshes"] == 1
        assert body["hit_rate_percent"] == 50.0
        assert body["dimensions"]["overview"]["total"] == 1


class TestSortRecords:

    def test_no_sort_keeps_order(self):
        records = [{"cpc": 1}, {"cpc": 3}]
        assert sort_records(records, None, "desc") == records

    def test_nulls_last_both_directions(self):
        records = [{"difficulty": None}, {"difficulty": 10}, {"difficulty": 50}]
        assert sort_records(records, "difficulty", "desc") == [{"difficulty": 50}, {"difficulty": 10}, {"difficulty": None}]
        assert sort_records(records, "difficulty", "asc") == [{"difficulty": 10}, {"difficulty": 50}, {"difficulty": None}]
