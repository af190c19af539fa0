#!/usr/bin/env python3
"""
Provider Smoke Test

Fetch one dimension for a domain straight from DataForSEO, bypassing the
cache, and print the post-processed payload that would be stored.

Usage:
    python scripts/fetch_dimension.py example.com overview
    python scripts/fetch_dimension.py example.com intersection --competitor rival.com --region de
"""

import asyncio
import argparse
import json
import logging
import sys
from datetime import timedelta
from pathlib import Path
from uuid import uuid4

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from dotenv import load_dotenv

from seodata.cache import DESCRIPTORS, Dimension, FetchRequest
from seodata.providers import DataForSEOClient, RetryConfig, build_provider_registry, resolve_location
from seodata.utils.config import get_settings
from seodata.utils.time import utcnow


def setup_logging(verbose: bool = False):
    """Configure logging."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[
            logging.StreamHandler(),
        ]
    )


async def run(domain: str, dimension: Dimension, region: str, competitor: str, days: int):
    load_dotenv()
    settings = get_settings()

    if not settings.has_provider_credentials:
        print("ERROR: Missing DATAFORSEO_LOGIN or DATAFORSEO_PASSWORD in .env")
        return 1

    descriptor = DESCRIPTORS[dimension]
    request = FetchRequest(
        website_id=uuid4(),
        domain=domain,
        location=resolve_location(region),
        competitor_domain=competitor,
        date_from=(utcnow() - timedelta(days=days)).date(),
    )

    async with DataForSEOClient(
        login=settings.DATAFORSEO_LOGIN,
        password=settings.DATAFORSEO_PASSWORD,
        retry_config=RetryConfig(max_retries=settings.PROVIDER_MAX_RETRIES),
        timeout=settings.PROVIDER_TIMEOUT,
    ) as client:
        registry = build_provider_registry(client)
        records = await registry.get(descriptor.adapter).fetch(descriptor.build_query(request))

    payload = descriptor.post_process(records)
    print(json.dumps(payload, indent=2, ensure_ascii=False))
    print(f"\nCache key: {descriptor.name}:{descriptor.secondary_key(request) or '-'}")
    return 0


def main():
    parser = argparse.ArgumentParser(description="Fetch one SEO dimension from DataForSEO")
    parser.add_argument("domain", help="Domain to fetch, e.g. example.com")
    parser.add_argument("dimension", choices=[d.value for d in Dimension])
    parser.add_argument("--region", default=None, help="Region code (default: us)")
    parser.add_argument("--competitor", default=None, help="Competitor domain (intersection only)")
    parser.add_argument("--days", type=int, default=30, help="History window (historical-rank only)")
    parser.add_argument("-v", "--verbose", action="store_true")
    args = parser.parse_args()

    setup_logging(args.verbose)
    sys.exit(asyncio.run(run(
        args.domain, Dimension(args.dimension), args.region, args.competitor, args.days
    )))


if __name__ == "__main__":
    main()
