"""
SEO Cache Store

Reads and writes seo_cache_entries rows. One row per
(website_id, dimension, secondary_key); refreshes update in place.

Writes are a single INSERT ... ON CONFLICT DO UPDATE statement guarded by
data_updated_at, so when two refreshes race the one carrying the later
timestamp wins no matter which commits last.
"""

import logging
from datetime import datetime, timedelta
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple
from uuid import UUID, uuid4

from sqlalchemy import case, func
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.orm import Session

from seodata.database.models import SeoCacheEntry, NO_SECONDARY_KEY
from seodata.utils.time import utcnow

logger = logging.getLogger(__name__)

_INSERTS = {
    "postgresql": pg_insert,
    "sqlite": sqlite_insert,
}


class CacheStore:
    """
    Database access for cached SEO data.

    Uses the request's session; no state beyond it.
    """

    def __init__(self, db: Session):
        self.db = db

    # =========================================================================
    # READS
    # =========================================================================

    def _entry_query(self, website_id: UUID, dimension: str, secondary_key: str):
        return self.db.query(SeoCacheEntry).filter(
            SeoCacheEntry.website_id == website_id,
            SeoCacheEntry.dimension == dimension,
            SeoCacheEntry.secondary_key == (secondary_key or NO_SECONDARY_KEY),
        )

    def get_fresh(
        self,
        website_id: UUID,
        dimension: str,
        secondary_key: str = NO_SECONDARY_KEY,
        now: Optional[datetime] = None,
    ) -> Optional[SeoCacheEntry]:
        """Return the entry only if it has not expired."""
        now = now or utcnow()
        return self._entry_query(website_id, dimension, secondary_key).filter(
            SeoCacheEntry.cache_expires_at > now,
        ).first()

    def get_latest(
        self,
        website_id: UUID,
        dimension: str,
        secondary_key: str = NO_SECONDARY_KEY,
        max_age: Optional[timedelta] = None,
        now: Optional[datetime] = None,
    ) -> Optional[SeoCacheEntry]:
        """
        Return the entry regardless of expiry (stale fallback).

        Args:
            max_age: Ignore entries whose data is older than this (None = any age)
        """
        query = self._entry_query(website_id, dimension, secondary_key)
        if max_age is not None:
            query = query.filter(SeoCacheEntry.data_updated_at >= (now or utcnow()) - max_age)
        return query.first()

    def get_series(
        self,
        website_id: UUID,
        dimension: str,
        since: Optional[str] = None,
        fresh_at: Optional[datetime] = None,
        max_age: Optional[timedelta] = None,
        now: Optional[datetime] = None,
    ) -> List[SeoCacheEntry]:
        """
        Return the rows of a series dimension ordered by secondary key.

        Args:
            since: Lowest secondary key to include (ISO dates sort correctly)
            fresh_at: Only rows still fresh at this time
            max_age: Only rows whose data is younger than this
        """
        query = self.db.query(SeoCacheEntry).filter(
            SeoCacheEntry.website_id == website_id,
            SeoCacheEntry.dimension == dimension,
        )
        if since:
            query = query.filter(SeoCacheEntry.secondary_key >= since)
        if fresh_at is not None:
            query = query.filter(SeoCacheEntry.cache_expires_at > fresh_at)
        if max_age is not None:
            query = query.filter(SeoCacheEntry.data_updated_at >= (now or utcnow()) - max_age)
        return query.order_by(SeoCacheEntry.secondary_key.asc()).all()

    def iter_entries(
        self,
        website_id: UUID,
        dimensions: Optional[Iterable[str]] = None,
    ) -> List[SeoCacheEntry]:
        """All entries of a website, optionally restricted to some dimensions."""
        query = self.db.query(SeoCacheEntry).filter(SeoCacheEntry.website_id == website_id)
        if dimensions is not None:
            query = query.filter(SeoCacheEntry.dimension.in_(list(dimensions)))
        return query.order_by(SeoCacheEntry.dimension, SeoCacheEntry.secondary_key).all()

    # =========================================================================
    # WRITES
    # =========================================================================

    def _insert(self):
        dialect = self.db.get_bind().dialect.name
        if dialect not in _INSERTS:
            raise NotImplementedError(f"Cache upsert not supported on {dialect}")
        return _INSERTS[dialect]

    def _upsert_rows(self, rows: List[Dict[str, Any]]) -> None:
        table = SeoCacheEntry.__table__
        stmt = self._insert()(table).values(rows)
        stmt = stmt.on_conflict_do_update(
            index_elements=[table.c.website_id, table.c.dimension, table.c.secondary_key],
            set_={
                "payload": stmt.excluded.payload,
                "data_updated_at": stmt.excluded.data_updated_at,
                "cache_expires_at": stmt.excluded.cache_expires_at,
            },
            where=table.c.data_updated_at <= stmt.excluded.data_updated_at,
        )
        self.db.execute(stmt)
        self.db.commit()
        # ORM objects loaded earlier in this session predate the upsert
        self.db.expire_all()

    @staticmethod
    def _row(
        website_id: UUID,
        dimension: str,
        secondary_key: str,
        payload: Any,
        data_updated_at: datetime,
        ttl: timedelta,
    ) -> Dict[str, Any]:
        return {
            "id": uuid4(),
            "website_id": website_id,
            "dimension": dimension,
            "secondary_key": secondary_key or NO_SECONDARY_KEY,
            "payload": payload,
            "data_updated_at": data_updated_at,
            "cache_expires_at": data_updated_at + ttl,
            "created_at": data_updated_at,
        }

    def upsert(
        self,
        website_id: UUID,
        dimension: str,
        secondary_key: str,
        payload: Any,
        data_updated_at: datetime,
        ttl: timedelta,
    ) -> None:
        """
        Insert or refresh one entry.

        Raises:
            SQLAlchemyError: On database failure (caller decides whether to roll back)
        """
        self._upsert_rows([
            self._row(website_id, dimension, secondary_key, payload, data_updated_at, ttl)
        ])
        logger.debug(f"Cached {dimension}:{secondary_key or '-'} for website {website_id}")

    def upsert_series(
        self,
        website_id: UUID,
        dimension: str,
        points: Sequence[Tuple[str, Any]],
        data_updated_at: datetime,
        ttl: timedelta,
    ) -> None:
        """Insert or refresh one row per (secondary_key, payload) point."""
        if not points:
            return
        self._upsert_rows([
            self._row(website_id, dimension, key, payload, data_updated_at, ttl)
            for key, payload in points
        ])
        logger.debug(f"Cached {len(points)} {dimension} points for website {website_id}")

    def replace_payload(self, entry: SeoCacheEntry, payload: Any) -> None:
        """Rewrite an entry's payload without touching its freshness timestamps."""
        entry.payload = payload
        self.db.flush()

    def delete(self, entry: SeoCacheEntry) -> None:
        self.db.delete(entry)
        self.db.flush()

    def commit(self) -> None:
        self.db.commit()

    def rollback(self) -> None:
        self.db.rollback()

    # =========================================================================
    # MONITORING
    # =========================================================================

    def get_stats(self, now: Optional[datetime] = None) -> Dict[str, Dict[str, int]]:
        """Entry counts per dimension, split into fresh and expired."""
        now = now or utcnow()
        fresh = func.sum(case((SeoCacheEntry.cache_expires_at > now, 1), else_=0))

        rows = self.db.query(
            SeoCacheEntry.dimension,
            func.count(SeoCacheEntry.id),
            fresh,
        ).group_by(SeoCacheEntry.dimension).all()

        stats = {}
        for dimension, total, fresh_count in rows:
            fresh_count = int(fresh_count or 0)
            stats[dimension] = {
                "total": int(total),
                "fresh": fresh_count,
                "expired": int(total) - fresh_count,
            }
        return stats

    def health_check(self) -> Dict[str, Any]:
        """
        Simple health check.

        Just verifies we can query the table.
        """
        try:
            count = self.db.query(func.count(SeoCacheEntry.id)).scalar()
            return {
                "healthy": True,
                "status": "connected",
                "cached_entries": int(count or 0),
            }
        except Exception as e:
            logger.error(f"Cache health check failed: {e}")
            return {
                "healthy": False,
                "status": "error",
                "error": str(e),
            }
