"""
SEO Data Cache

Cache-aside layer between the content platform and DataForSEO:
- Per-website cache rows for six SEO data dimensions
- Fetch-or-refresh orchestration with stale fallback
- Keyword repair for provider-corrupted keyword strings
"""

__version__ = "0.1.0"
