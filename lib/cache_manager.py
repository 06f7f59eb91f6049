"""Centralized cache utilities (TTLCache settings & key builders).

The core never holds these itself; app.py passes them in explicitly.
Metadata responses are not cached because they carry short-lived signed URLs.
"""
from __future__ import annotations

import os
from cachetools import TTLCache

CACHE_VERSION = int(os.getenv("BANDCAMP_CACHE_VERSION", "1"))

# Artist image lookup cache settings
ARTIST_IMAGE_CACHE_MAXSIZE = int(os.getenv("ARTIST_IMAGE_CACHE_MAXSIZE", "512"))
ARTIST_IMAGE_CACHE_TTL_S = int(os.getenv("ARTIST_IMAGE_CACHE_TTL_S", "21600"))

# Search results cache settings
SEARCH_CACHE_MAXSIZE = int(os.getenv("SEARCH_CACHE_MAXSIZE", "256"))
SEARCH_CACHE_TTL_S = int(os.getenv("SEARCH_CACHE_TTL_S", "600"))

# Lazy-initialized caches
_artist_image_cache: TTLCache | None = None
_search_cache: TTLCache | None = None


def get_artist_image_cache() -> TTLCache:
    global _artist_image_cache
    if _artist_image_cache is None:
        _artist_image_cache = TTLCache(maxsize=ARTIST_IMAGE_CACHE_MAXSIZE, ttl=ARTIST_IMAGE_CACHE_TTL_S)
    return _artist_image_cache


def get_search_cache() -> TTLCache:
    global _search_cache
    if _search_cache is None:
        _search_cache = TTLCache(maxsize=SEARCH_CACHE_MAXSIZE, ttl=SEARCH_CACHE_TTL_S)
    return _search_cache


def build_search_cache_key(query: str) -> str:
    return f"search:{CACHE_VERSION}:{' '.join((query or '').lower().split())}"
