"""
Tests for region resolution, domain cleaning and TTL configuration.
"""

from datetime import timedelta

import pytest

from seodata.cache.config import CacheTTL
from seodata.providers.locations import resolve_location
from seodata.utils.domains import clean_domain


class TestResolveLocation:

    @pytest.mark.parametrize("region,code", [
        ("us", 2840),
        ("uk", 2826),
        ("ca", 2124),
        ("au", 2036),
        ("de", 2276),
        ("fr", 2250),
        ("jp", 2384),
        ("cn", 2166),
    ])
    def test_known_regions(self, region, code):
        assert resolve_location(region).code == code

    def test_case_insensitive(self):
        assert resolve_location("DE").code == 2276
        assert resolve_location(" Uk ").code == 2826

    @pytest.mark.parametrize("region", [None, "", "xx", "narnia"])
    def test_unknown_defaults_to_us(self, region):
        location = resolve_location(region)
        assert location.code == 2840
        assert location.name == "United States"

    def test_language_follows_region(self):
        assert resolve_location("de").language_name == "German"
        assert resolve_location("jp").language_name == "Japanese"


class TestCleanDomain:

    @pytest.mark.parametrize("raw,expected", [
        ("example.com", "example.com"),
        ("https://www.Example.com/blog/", "example.com"),
        ("http://shop.example.com", "shop.example.com"),
        ("  WWW.example.com  ", "example.com"),
        ("", ""),
        (None, ""),
    ])
    def test_clean(self, raw, expected):
        assert clean_domain(raw) == expected


class TestCacheTTL:

    def test_daily_dimensions(self):
        for dimension in ("overview", "keywords", "relevant-pages"):
            assert CacheTTL.for_dimension(dimension) == timedelta(hours=24)

    def test_weekly_dimensions(self):
        for dimension in ("competitors", "intersection", "historical-rank"):
            assert CacheTTL.for_dimension(dimension) == timedelta(days=7)

    def test_unknown_dimension(self):
        with pytest.raises(KeyError):
            CacheTTL.for_dimension("backlinks")
