"""
Cache Module
============

Deterministic request fingerprints and a best-effort Redis cache store.
"""

from .fingerprint import fingerprint, normalize_options
from .store import CacheLookup, CacheStatus, CacheStore

__all__ = ["fingerprint", "normalize_options", "CacheLookup", "CacheStatus", "CacheStore"]
