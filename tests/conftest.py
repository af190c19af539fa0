"""
Pytest Configuration and Shared Fixtures

Provides an in-memory database, user/website factories, a controllable
clock and fake provider adapters for all test modules.
"""

from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional
from unittest.mock import AsyncMock
from uuid import uuid4

import pytest
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from seodata.auth.models import User
from seodata.cache import CacheStore, reset_orchestrator_stats
from seodata.database.models import Website
from seodata.database.session import create_db_engine, init_db
from seodata.providers.client import ProviderError


# ============================================================================
# Database
# ============================================================================

@pytest.fixture
def engine():
    """Fresh in-memory SQLite database per test."""
    engine = create_db_engine("sqlite://", poolclass=StaticPool)
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session(engine):
    SessionLocal = sessionmaker(
        bind=engine, autocommit=False, autoflush=False, expire_on_commit=False
    )
    db = SessionLocal()
    yield db
    db.close()


@pytest.fixture
def store(session) -> CacheStore:
    return CacheStore(session)


@pytest.fixture
def make_user(session):
    """Factory creating persisted users."""
    def _make_user(email: Optional[str] = None) -> User:
        user = User(id=uuid4(), email=email or f"{uuid4().hex[:8]}@test.com", is_active=True)
        session.add(user)
        session.commit()
        return user
    return _make_user


@pytest.fixture
def make_website(session):
    """Factory creating persisted websites owned by a user."""
    def _make_website(owner: User, domain: str = "example.com") -> Website:
        website = Website(id=uuid4(), user_id=owner.id, domain=domain, name=domain)
        session.add(website)
        session.commit()
        return website
    return _make_website


@pytest.fixture
def owner(make_user) -> User:
    return make_user("owner@test.com")


@pytest.fixture
def website(make_website, owner) -> Website:
    return make_website(owner, "example.com")


# ============================================================================
# Clock
# ============================================================================

class FrozenClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock(datetime(2024, 6, 15, 12, 0, 0))


# ============================================================================
# Providers
# ============================================================================

class FakeAdapter:
    """Adapter double; fetch is an AsyncMock so tests can count calls."""

    def __init__(self, name: str, result: Any = None, error: Optional[Exception] = None):
        self.name = name
        self.fetch = AsyncMock(return_value=result, side_effect=error)


class FakeRegistry:
    """Registry double that records which adapters were requested."""

    def __init__(self, adapters: Optional[Dict[str, FakeAdapter]] = None):
        self.adapters = dict(adapters or {})
        self.requested: List[str] = []

    def add(self, name: str, result: Any = None, error: Optional[Exception] = None) -> FakeAdapter:
        adapter = FakeAdapter(name, result=result, error=error)
        self.adapters[name] = adapter
        return adapter

    def get(self, name: str) -> FakeAdapter:
        self.requested.append(name)
        if name not in self.adapters:
            raise ProviderError(f"No provider adapter registered for '{name}'")
        return self.adapters[name]

    def __contains__(self, name: str) -> bool:
        return name in self.adapters

    @property
    def fetch_calls(self) -> int:
        return sum(adapter.fetch.await_count for adapter in self.adapters.values())


@pytest.fixture
def registry() -> FakeRegistry:
    return FakeRegistry()


@pytest.fixture(autouse=True)
def clean_stats():
    """Orchestrator counters are process-wide; start every test at zero."""
    reset_orchestrator_stats()
    yield
    reset_orchestrator_stats()


# ============================================================================
# Sample Records
# ============================================================================

@pytest.fixture
def overview_record() -> Dict[str, Any]:
    return {
        "domain": "example.com",
        "organic_traffic": 1200.0,
        "paid_traffic": 0.0,
        "total_traffic": 1200.0,
        "total_keywords": 340,
        "avg_position": 18.4,
        "traffic_cost": 950.5,
        "ranking_distribution": {"top3": 12, "top10": 40, "top50": 210, "top100": 340},
        "backlinks_info": None,
    }


@pytest.fixture
def keyword_records() -> List[Dict[str, Any]]:
    return [
        {"keyword": "running shoes", "search_volume": 5400, "cpc": 1.2, "difficulty": 55.0},
        {"keyword": "051 winter boots", "search_volume": 8100, "cpc": 0.9, "difficulty": None},
        {"keyword": "050", "search_volume": 100, "cpc": None, "difficulty": 10.0},
        {"keyword": "Running Shoes", "search_volume": 300, "cpc": 0.4, "difficulty": 20.0},
        {"keyword": "trail shoes", "search_volume": 2900, "cpc": None, "difficulty": 35.0},
    ]


# ============================================================================
# Test Markers
# ============================================================================

def pytest_configure(config):
    """Configure custom markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests"
    )
    config.addinivalue_line(
        "markers", "unit: marks tests as unit tests"
    )
