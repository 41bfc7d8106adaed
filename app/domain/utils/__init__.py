"""
Domain utilities module.

Provides shared utilities for the domain layer that remain
independent of infrastructure concerns.
"""

from .ttl_cache import TTLCache, ReadWriteLock

__all__ = ["TTLCache", "ReadWriteLock"]
