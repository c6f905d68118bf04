"""In-process caches."""

from cruxfeed.infrastructure.cache.keyed_cache import KeyedCache

__all__ = ["KeyedCache"]
