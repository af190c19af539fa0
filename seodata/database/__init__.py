"""
Database layer: models and session management.
"""

from .models import Base, Website, SeoCacheEntry, NO_SECONDARY_KEY
from .session import (
    get_database_url,
    create_db_engine,
    get_engine,
    get_session_factory,
    get_db,
    init_db,
    check_db_connection,
)

__all__ = [
    "Base",
    "Website",
    "SeoCacheEntry",
    "NO_SECONDARY_KEY",
    "get_database_url",
    "create_db_engine",
    "get_engine",
    "get_session_factory",
    "get_db",
    "init_db",
    "check_db_connection",
]
