"""
Utility modules for the SEO data cache.
"""

from .config import Settings, get_settings
from .domains import clean_domain
from .keywords import (
    KEYWORD_REPAIR_RULES,
    RepairRule,
    clean_keyword_records,
    is_valid_keyword,
    normalize_keyword,
    repair_keyword_records,
)

__all__ = [
    "Settings",
    "get_settings",
    "clean_domain",
    "KEYWORD_REPAIR_RULES",
    "RepairRule",
    "clean_keyword_records",
    "is_valid_keyword",
    "normalize_keyword",
    "repair_keyword_records",
]
