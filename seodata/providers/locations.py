"""
Region to DataForSEO location mapping.

One table for every adapter. Unknown or missing regions resolve to the
United States.
"""

import logging
from dataclasses import dataclass
from typing import Dict, Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Location:
    code: int
    name: str
    language_name: str


REGION_LOCATIONS: Dict[str, Location] = {
    "us": Location(2840, "United States", "English"),
    "uk": Location(2826, "United Kingdom", "English"),
    "ca": Location(2124, "Canada", "English"),
    "au": Location(2036, "Australia", "English"),
    "de": Location(2276, "Germany", "German"),
    "fr": Location(2250, "France", "French"),
    "jp": Location(2384, "Japan", "Japanese"),
    "cn": Location(2166, "China", "Chinese"),
}

DEFAULT_REGION = "us"


def resolve_location(region: Optional[str]) -> Location:
    """Map a region code (case-insensitive) to its location, defaulting to US."""
    key = (region or "").strip().lower()
    location = REGION_LOCATIONS.get(key)
    if location is None:
        if key:
            logger.debug(f"Unknown region '{region}', using {DEFAULT_REGION}")
        location = REGION_LOCATIONS[DEFAULT_REGION]
    return location
