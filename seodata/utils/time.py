"""
Time helpers.

All persisted timestamps are naive UTC, matching the DateTime columns.
"""

from datetime import datetime, timezone


def utcnow() -> datetime:
    """Current time as a naive UTC datetime."""
    return datetime.now(timezone.utc).replace(tzinfo=None)
