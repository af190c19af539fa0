"""
Cache Maintenance

Re-applies keyword repair to payloads cached before a repair rule existed.
This is the only write path besides refresh-on-miss, and it never touches
freshness timestamps.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict
from uuid import UUID

from seodata.models.records import INTERSECTION_KEYWORD_LISTS
from seodata.utils.keywords import repair_keyword_records
from .dimensions import Dimension, KEYWORD_DIMENSIONS
from .store import CacheStore

logger = logging.getLogger(__name__)


@dataclass
class CleanupStats:
    cleaned: int = 0          # records repaired in place
    deleted: int = 0          # records dropped (invalid or duplicate)
    entries_removed: int = 0  # cache rows left empty and deleted

    @property
    def total(self) -> int:
        return self.cleaned + self.deleted

    def to_dict(self) -> Dict[str, int]:
        return {
            "cleaned": self.cleaned,
            "deleted": self.deleted,
            "total": self.total,
            "entries_removed": self.entries_removed,
        }


def clean_keyword_cache(store: CacheStore, website_id: UUID) -> CleanupStats:
    """
    Re-normalize every cached keyword of a website.

    Scans keyword entries and the keyword lists of intersection entries.
    Entries left without any records are deleted. Commits once at the end.
    """
    stats = CleanupStats()

    try:
        for entry in store.iter_entries(website_id, KEYWORD_DIMENSIONS):
            if entry.dimension == Dimension.KEYWORDS.value:
                records, repaired, dropped = repair_keyword_records(list(entry.payload or []))
                new_payload: Any = records
                is_empty = not records
            else:
                new_payload = dict(entry.payload or {})
                repaired = dropped = 0
                for list_name in INTERSECTION_KEYWORD_LISTS:
                    records, list_repaired, list_dropped = repair_keyword_records(
                        list(new_payload.get(list_name) or [])
                    )
                    new_payload[list_name] = records
                    repaired += list_repaired
                    dropped += list_dropped
                new_payload["gap_traffic"] = round(
                    sum(kw.get("etv") or 0 for kw in new_payload["gap_keywords"]), 2
                )
                is_empty = not any(new_payload[name] for name in INTERSECTION_KEYWORD_LISTS)

            stats.cleaned += repaired
            stats.deleted += dropped

            if is_empty:
                store.delete(entry)
                stats.entries_removed += 1
            elif repaired or dropped:
                store.replace_payload(entry, new_payload)

        store.commit()
    except Exception:
        store.rollback()
        raise

    logger.info(
        f"Cleaned keyword cache for website {website_id}: "
        f"{stats.cleaned} repaired, {stats.deleted} dropped, {stats.entries_removed} entries removed"
    )
    return stats
