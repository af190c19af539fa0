"""
Domain string helpers.
"""

import re
from typing import Optional

_SCHEME = re.compile(r"^https?://", re.IGNORECASE)


def clean_domain(value: Optional[str]) -> str:
    """
    Reduce a URL or domain to its bare host.

    "https://www.Example.com/blog/" -> "example.com"
    """
    if not value:
        return ""
    domain = _SCHEME.sub("", value.strip()).split("/")[0].lower()
    if domain.startswith("www."):
        domain = domain[4:]
    return domain
