"""
Keyword Normalization

DataForSEO occasionally returns keyword strings contaminated with internal
identifiers, e.g.:
- "001-qk7yulqsx9esalil5mxjkg-3342555957 running shoes" (full ID prefix)
- "051 winter boots" (numbered prefix)
- "050" (nothing but a number)

Every keyword coming from the provider passes through normalize_keyword()
before it is stored, displayed, or used as a dedupe key. Repairs are an
ordered list of named rules so new corruption patterns can be appended
without touching the others.
"""

import logging
import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

logger = logging.getLogger(__name__)


# =============================================================================
# REPAIR RULES
# =============================================================================

@dataclass(frozen=True)
class RepairRule:
    """
    A single keyword repair step.

    apply returns the repaired string, or None when the keyword must be
    rejected outright.
    """
    name: str
    apply: Callable[[str], Optional[str]]


def _sub(pattern: str, flags: int = 0) -> Callable[[str], Optional[str]]:
    compiled = re.compile(pattern, flags)
    return lambda value: compiled.sub("", value, count=1)


_NUMERIC = re.compile(r"^\d+$")


def _reject_numeric(value: str) -> Optional[str]:
    if _NUMERIC.match(value):
        return None
    return value


KEYWORD_REPAIR_RULES: List[RepairRule] = [
    RepairRule("trim", str.strip),
    # "001-qk7yulqsx9esalil5mxjkg-3342555957 running shoes"
    RepairRule("strip_internal_id_prefix", _sub(r"^\d{1,3}-[a-z0-9-]+-\d+(\s+|$)", re.IGNORECASE)),
    # "051 winter boots", "09 跑步鞋"
    RepairRule("strip_numbered_prefix", _sub(r"^\d{1,3}\s+(?=[a-zA-Z一-龥])")),
    RepairRule("strip_leading_digits", _sub(r"^\d+\s+")),
    RepairRule("reject_numeric", _reject_numeric),
    # "best laptop 24" but not "budget laptops 2024"
    RepairRule("strip_numeric_suffix", _sub(r"\s+\d{1,3}$")),
    RepairRule("trim", str.strip),
]


# =============================================================================
# NORMALIZATION
# =============================================================================

def _apply_rules(value: str, rules: Iterable[RepairRule]) -> str:
    for rule in rules:
        repaired = rule.apply(value)
        if repaired is None:
            return ""
        value = repaired
    return value


def normalize_keyword(raw: Optional[str], rules: Optional[List[RepairRule]] = None) -> str:
    """
    Repair a provider keyword string.

    The rule chain is re-run until the keyword stops changing, so that
    normalize_keyword(normalize_keyword(s)) == normalize_keyword(s) for any s
    (a single pass can expose a new prefix, e.g. "12 34 shoes"). Every rule
    only removes characters, which bounds the loop.

    Returns:
        The repaired keyword, or "" when nothing valid remains.
    """
    if not raw:
        return ""

    rules = rules if rules is not None else KEYWORD_REPAIR_RULES

    current = raw
    while True:
        repaired = _apply_rules(current, rules)
        if repaired == current:
            return repaired
        current = repaired


def is_valid_keyword(keyword: Optional[str]) -> bool:
    """A stored keyword must be non-empty and not purely numeric."""
    if not keyword:
        return False
    stripped = keyword.strip()
    return bool(stripped) and not _NUMERIC.match(stripped)


def repair_keyword_records(
    records: Iterable[Dict[str, Any]],
    field: str = "keyword",
) -> Tuple[List[Dict[str, Any]], int, int]:
    """
    Normalize the keyword field of each record, dropping rejected ones.

    Records are de-duplicated on the normalized keyword; the first occurrence
    wins, so callers should pass records in ranking order. Repaired records
    are copies; untouched ones are passed through as-is.

    Returns:
        (kept records, repaired count, dropped count)
    """
    kept: List[Dict[str, Any]] = []
    seen = set()
    repaired = dropped = 0

    for record in records:
        original = record.get(field) or ""
        keyword = normalize_keyword(original)

        if not is_valid_keyword(keyword) or keyword.lower() in seen:
            dropped += 1
            continue

        seen.add(keyword.lower())
        if keyword != original:
            logger.debug(f"Repaired keyword '{original}' -> '{keyword}'")
            repaired += 1
            record = {**record, field: keyword}
        kept.append(record)

    return kept, repaired, dropped


def clean_keyword_records(
    records: Iterable[Dict[str, Any]],
    field: str = "keyword",
) -> List[Dict[str, Any]]:
    """repair_keyword_records() without the counts."""
    cleaned, _, dropped = repair_keyword_records(records, field)

    if dropped:
        logger.info(f"Dropped {dropped} invalid or duplicate keyword records")

    return cleaned
