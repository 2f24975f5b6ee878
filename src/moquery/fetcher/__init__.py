"""Property retrieval."""
from __future__ import annotations

from moquery.fetcher.fetcher import DEFAULT_PROPERTY_COLLECTOR, PropertyFetcher

__all__ = ["PropertyFetcher", "DEFAULT_PROPERTY_COLLECTOR"]
