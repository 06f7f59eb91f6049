"""
Artist profile photo lookup via the Bandcamp catalog search.

Matching is exact on the normalised heading; no fuzzy matching, so a near
miss returns None rather than somebody else's photo.
"""
from __future__ import annotations

import logging
from typing import MutableMapping, Optional
from urllib.parse import urljoin

from bs4 import BeautifulSoup

from lib.bandcamp.errors import UpstreamFetchFailed
from lib.bandcamp.extractor import ARTIST_PHOTO_SELECTORS, IMAGE_SOURCE_ATTRS
from lib.bandcamp.fetcher import Fetcher, page_headers
from lib.bandcamp.models import ArtistImage
from lib.bandcamp.normalizer import normalize_name, upgrade_image_url
from lib.bandcamp.search import build_search_url, parse_search_results

logger = logging.getLogger(__name__)


def _find_profile_url(search_html: str, artist_name: str) -> Optional[str]:
    wanted = normalize_name(artist_name)
    for result in parse_search_results(search_html):
        if result.type != "artist":
            continue
        if normalize_name(result.heading) == wanted and result.url:
            return result.url
    return None


def photo_from_profile(profile_html: str, profile_url: str) -> Optional[str]:
    soup = BeautifulSoup(profile_html or "", "html.parser")
    for selector in ARTIST_PHOTO_SELECTORS:
        el = soup.select_one(selector)
        if el is None:
            continue
        for attr in IMAGE_SOURCE_ATTRS:
            src = el.get(attr)
            if src:
                return upgrade_image_url(urljoin(profile_url, str(src).strip()))
    return None


async def find_artist_image(
    artist_name: str,
    fetcher: Fetcher,
    cache: MutableMapping[str, Optional[ArtistImage]] | None = None,
) -> Optional[ArtistImage]:
    """
    Search -> exact artist/band match -> profile page -> first photo.

    Returns None when nothing matches or any step fails ("not found" is not
    an error). `cache`, when given, is keyed by the normalised name and only
    remembers definite answers; a failed fetch is retried on the next call.
    """
    key = normalize_name(artist_name)
    if not key:
        return None
    if cache is not None and key in cache:
        return cache[key]

    try:
        image = await _lookup(artist_name, fetcher)
    except Exception as e:
        logger.warning(f"[ArtistImage] lookup failed for artist={artist_name!r}: {e!r}")
        return None

    if cache is not None:
        cache[key] = image
    return image


async def _lookup(artist_name: str, fetcher: Fetcher) -> Optional[ArtistImage]:
    """None means no match or no photo. Fetch failures raise."""
    resp = await fetcher.get(build_search_url(artist_name.strip()), page_headers())
    if not resp.ok:
        raise UpstreamFetchFailed(f"Bandcamp search failed: {resp.status}", status=resp.status)

    profile_url = _find_profile_url(resp.text, artist_name)
    if not profile_url:
        logger.info(f"[ArtistImage] no exact match for artist={artist_name!r}")
        return None

    profile = await fetcher.get(profile_url, page_headers())
    if not profile.ok:
        raise UpstreamFetchFailed(f"Artist profile fetch failed: {profile.status}", status=profile.status)

    image_url = photo_from_profile(profile.text, profile_url)
    if not image_url:
        return None
    return ArtistImage(image_url=image_url, source_url=profile_url)
