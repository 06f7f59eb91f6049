"""
Bandcamp catalog search (HTML scraping of https://bandcamp.com/search).
"""
from __future__ import annotations

import logging
import re
from typing import List
from urllib.parse import quote

from bs4 import BeautifulSoup

from lib.bandcamp.errors import InvalidInput, UpstreamFetchFailed
from lib.bandcamp.fetcher import BANDCAMP_ORIGIN, Fetcher, page_headers
from lib.bandcamp.models import SearchResult
from lib.bandcamp.normalizer import collapse_whitespace

logger = logging.getLogger(__name__)

MAX_QUERY_LENGTH = 200

RESULT_ITEM_SELECTOR = ".result-items .searchresult, .result-items .result, .searchresult"
ITEM_TYPE_SELECTOR = ".itemtype, .type, .result-info .item-type"
HEADING_SELECTOR = ".heading, .result-info .heading, .track-title"
SUBHEAD_SELECTOR = ".subhead, .result-info .subhead, .artist, .subtext, .band-name"
LINK_SELECTOR = "a.item-link, a.searchresult, a"

COVER_SELECTORS = [
    ".art img",
    ".popupImage",
    "img.popupImage",
    ".item-art img",
    ".result-art img",
    "img[itemprop='image']",
    "img",
]

# 検索結果の表示順にある区切り記号
_BULLETS = re.compile(r"[·•‧●]")


def build_search_url(query: str) -> str:
    return f"{BANDCAMP_ORIGIN}/search?q={quote(query, safe='')}"


def classify_item_type(type_text: str, url: str = "") -> str:
    if re.search(r"album", type_text, re.I):
        return "album"
    if re.search(r"track|song", type_text, re.I):
        return "track"
    if re.search(r"artist|band", type_text, re.I):
        return "artist"
    if "/track/" in url:
        return "track"
    if "/album/" in url:
        return "album"
    return "unknown"


def _absolute(url: str) -> str:
    if url.startswith("//"):
        return f"https:{url}"
    if url.startswith("/"):
        return f"{BANDCAMP_ORIGIN}{url}"
    return url


def _int_attr(el, name: str) -> int:
    try:
        return int(el.get(name) or 0)
    except (TypeError, ValueError):
        return 0


def _cover_art(item) -> str:
    for selector in COVER_SELECTORS:
        img = item.select_one(selector)
        if img is None:
            continue
        src = img.get("src") or img.get("data-src") or img.get("data-original") or ""
        if not src:
            continue
        width, height = _int_attr(img, "width"), _int_attr(img, "height")
        # ignore tiny icons; images without dimensions are accepted
        if (width > 50 and height > 50) or (width == 0 and height == 0):
            return _absolute(str(src))
    return ""


def _clean_title_artist(title: str, artist: str, item_type: str) -> tuple[str, str]:
    if title:
        title = _BULLETS.split(collapse_whitespace(title))[0].strip()
    if artist:
        artist = _BULLETS.split(collapse_whitespace(artist))[0].strip()
        artist = re.sub(r"^by\s+", "", artist, flags=re.I).strip()
        artist = re.sub(r"^from\s+.+\s+by\s+", "", artist, flags=re.I).strip()
        if item_type == "album" and title and artist.lower().endswith(title.lower()):
            artist = artist[: -len(title)].strip()
    if title and artist:
        by_suffix = f" by {artist}".lower()
        if title.lower().endswith(by_suffix):
            title = title[: -len(by_suffix)].strip()
    return title, artist


def parse_search_results(html: str) -> List[SearchResult]:
    """Every result item on a search page, in document order (artists included)."""
    soup = BeautifulSoup(html or "", "html.parser")
    results: List[SearchResult] = []
    for item in soup.select(RESULT_ITEM_SELECTOR):
        type_text = " ".join(el.get_text(" ", strip=True) for el in item.select(ITEM_TYPE_SELECTOR))
        link = item.select_one(LINK_SELECTOR)
        url = _absolute(str(link.get("href") or "")) if link is not None else ""
        item_type = classify_item_type(type_text, url)

        heading = " ".join(el.get_text(" ", strip=True) for el in item.select(HEADING_SELECTOR)).strip()
        subhead = " ".join(el.get_text(" ", strip=True) for el in item.select(SUBHEAD_SELECTOR)).strip()
        title, artist = _clean_title_artist(heading, subhead, item_type)

        results.append(SearchResult(
            title=title,
            artist=artist,
            type=item_type,
            url=url,
            cover_art=_cover_art(item),
            heading=heading,
        ))
    return results


async def search_catalog(query: str, fetcher: Fetcher) -> List[SearchResult]:
    """
    Album / track results for a free-text query.

    Raises:
        InvalidInput: empty or over-long query
        UpstreamFetchFailed: Bandcamp answered non-2xx
    """
    q = (query or "").strip()
    if not q:
        raise InvalidInput("Query parameter 'q' is required")
    if len(q) > MAX_QUERY_LENGTH:
        raise InvalidInput("Query too long")

    resp = await fetcher.get(build_search_url(q), page_headers())
    if not resp.ok:
        raise UpstreamFetchFailed(f"Failed to search Bandcamp: {resp.status}", status=resp.status)

    results = [
        r for r in parse_search_results(resp.text)
        if r.title and r.url and r.type in ("album", "track")
    ]
    logger.info(f"[Search] q={q!r} results={len(results)}")
    return results
