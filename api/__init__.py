"""HTTP layer: website data endpoints and cache monitoring."""
