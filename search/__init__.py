"""Search module - client di ricerca, cache e rate limiting."""
from search.base import BaseSearchClient
from search.cache import SearchCache, get_search_cache
from search.rate_limiter import RateLimiter, get_rate_limiter
from search.serper_client import SerperSearchClient

__all__ = [
    "BaseSearchClient",
    "SearchCache",
    "get_search_cache",
    "RateLimiter",
    "get_rate_limiter",
    "SerperSearchClient",
]
