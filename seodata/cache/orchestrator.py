"""
Fetch-or-Refresh Orchestrator

Decides, per request, whether to serve fresh cache, refresh from the
provider, or degrade to stale cache:

    fresh hit ──────────────────────────────► cached=True
    miss ─► provider ─► data ─► upsert ─────► cached=False
                     ├► empty ─┐
                     └► error ─┴► stale read ► cached=True, stale=True
                                   └► none ──► empty payload, cached=True

Callers must have passed the ownership guard first.
"""

import logging
from collections import Counter
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError

from seodata.database.models import SeoCacheEntry
from seodata.providers.client import ProviderError, ProviderTimeout
from seodata.utils.time import utcnow
from .dimensions import DimensionDescriptor, FetchRequest
from .store import CacheStore

logger = logging.getLogger(__name__)

# Process-local counters, reported by /api/cache/stats
_STATS: Counter = Counter()
_STAT_KEYS = ("hits", "misses", "refreshes", "empty_results", "provider_errors",
              "stale_fallbacks", "empty_fallbacks", "write_errors")


def get_orchestrator_stats() -> Dict[str, Any]:
    """Snapshot of the process-local counters."""
    stats = {key: _STATS[key] for key in _STAT_KEYS}
    lookups = stats["hits"] + stats["misses"]
    stats["hit_rate_percent"] = round(stats["hits"] / lookups * 100, 2) if lookups else 0.0
    return stats


def reset_orchestrator_stats() -> None:
    _STATS.clear()


@dataclass
class FetchResult:
    """Outcome of fetch_or_refresh. Failures never reach here; they surface as exceptions."""
    data: Any
    cached: bool
    stale: bool = False
    data_updated_at: Optional[datetime] = None

    def to_response(self) -> Dict[str, Any]:
        return {"success": True, "data": self.data, "cached": self.cached}


class CacheOrchestrator:
    """
    Generic cache-aside engine over DimensionDescriptors.

    Usage:
        orchestrator = CacheOrchestrator(CacheStore(db), registry)
        result = await orchestrator.fetch_or_refresh(KEYWORDS, request)
    """

    def __init__(
        self,
        store: CacheStore,
        providers,
        clock: Callable[[], datetime] = utcnow,
        max_stale_age: Optional[timedelta] = None,
    ):
        """
        Args:
            store: Cache store bound to the request's session
            providers: Registry with get(adapter_name) -> ProviderAdapter
            clock: Returns the current naive UTC time
            max_stale_age: Oldest data the stale fallback may serve (None = any age)
        """
        self.store = store
        self.providers = providers
        self.clock = clock
        self.max_stale_age = max_stale_age

    async def fetch_or_refresh(
        self,
        descriptor: DimensionDescriptor,
        request: FetchRequest,
    ) -> FetchResult:
        name = descriptor.name
        key = descriptor.secondary_key(request)
        now = self.clock()

        # 1. Fresh read
        fresh = self._read_fresh(descriptor, request, key, now)
        if fresh is not None:
            _STATS["hits"] += 1
            logger.debug(f"[{name}] cache hit for website {request.website_id} ({key or '-'})")
            return fresh

        _STATS["misses"] += 1

        # 2. Provider refresh
        try:
            adapter = self.providers.get(descriptor.adapter)
            records = await adapter.fetch(descriptor.build_query(request))
            payload = descriptor.post_process(records)
        except ProviderTimeout as e:
            _STATS["provider_errors"] += 1
            logger.warning(f"[{name}] provider timeout for {request.domain}: {e}")
            return self._fallback(descriptor, request, key, now)
        except ProviderError as e:
            _STATS["provider_errors"] += 1
            logger.error(f"[{name}] provider error for {request.domain}: {e}")
            return self._fallback(descriptor, request, key, now)

        if descriptor.is_empty(payload):
            _STATS["empty_results"] += 1
            logger.info(f"[{name}] provider returned no data for {request.domain}")
            return self._fallback(descriptor, request, key, now)

        # 3. Write-through
        self._write(descriptor, request, key, payload, now)
        _STATS["refreshes"] += 1
        logger.info(f"[{name}] refreshed from provider for website {request.website_id} ({key or '-'})")

        return FetchResult(data=payload, cached=False, data_updated_at=now)

    # =========================================================================
    # INTERNALS
    # =========================================================================

    def _read_fresh(
        self,
        descriptor: DimensionDescriptor,
        request: FetchRequest,
        key: str,
        now: datetime,
    ) -> Optional[FetchResult]:
        if descriptor.series:
            rows = self.store.get_series(request.website_id, descriptor.name, since=key, fresh_at=now)
            return self._series_result(rows, stale=False)

        entry = self.store.get_fresh(request.website_id, descriptor.name, key, now=now)
        if entry is None:
            return None
        return FetchResult(data=entry.payload, cached=True, data_updated_at=entry.data_updated_at)

    def _read_stale(
        self,
        descriptor: DimensionDescriptor,
        request: FetchRequest,
        key: str,
        now: datetime,
    ) -> Optional[FetchResult]:
        if descriptor.series:
            rows = self.store.get_series(
                request.website_id, descriptor.name, since=key,
                max_age=self.max_stale_age, now=now,
            )
            return self._series_result(rows, stale=True)

        entry = self.store.get_latest(
            request.website_id, descriptor.name, key,
            max_age=self.max_stale_age, now=now,
        )
        if entry is None:
            return None
        return FetchResult(
            data=entry.payload, cached=True, stale=True, data_updated_at=entry.data_updated_at
        )

    @staticmethod
    def _series_result(rows: List[SeoCacheEntry], stale: bool) -> Optional[FetchResult]:
        if not rows:
            return None
        return FetchResult(
            data=[row.payload for row in rows],
            cached=True,
            stale=stale,
            data_updated_at=max(row.data_updated_at for row in rows),
        )

    def _fallback(
        self,
        descriptor: DimensionDescriptor,
        request: FetchRequest,
        key: str,
        now: datetime,
    ) -> FetchResult:
        stale = self._read_stale(descriptor, request, key, now)
        if stale is not None:
            _STATS["stale_fallbacks"] += 1
            logger.warning(
                f"[{descriptor.name}] serving stale data for website {request.website_id} "
                f"from {stale.data_updated_at}"
            )
            return stale

        _STATS["empty_fallbacks"] += 1
        logger.warning(f"[{descriptor.name}] no cached data for website {request.website_id}, returning empty")
        return FetchResult(data=descriptor.empty(), cached=True)

    def _write(
        self,
        descriptor: DimensionDescriptor,
        request: FetchRequest,
        key: str,
        payload: Any,
        now: datetime,
    ) -> None:
        try:
            if descriptor.series:
                points = [(descriptor.series_point_key(point), point) for point in payload]
                self.store.upsert_series(request.website_id, descriptor.name, points, now, descriptor.ttl)
            else:
                self.store.upsert(request.website_id, descriptor.name, key, payload, now, descriptor.ttl)
        except SQLAlchemyError as e:
            # fresh data is still returned to the caller
            _STATS["write_errors"] += 1
            self.store.rollback()
            logger.error(f"[{descriptor.name}] cache write failed for website {request.website_id}: {e}")
