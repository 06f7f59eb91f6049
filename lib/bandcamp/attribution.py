"""
Track vs. album attribution.

A compilation track page shows the label (or "Various Artists") as the band,
while the real performer only shows up in the structured data or in an
"Artist - Title" page title. When the performer differs from the album artist
it wins, and its photo is looked up separately instead of reusing the band photo.

The phrase and selector tables below are tuned against Bandcamp's current
markup and are expected to need retuning when that markup changes.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Callable, List, MutableMapping, Optional

from lib.bandcamp.artist_image import find_artist_image
from lib.bandcamp.fetcher import Fetcher
from lib.bandcamp.models import ArtistImage, ExtractionContext, PartialRecord
from lib.bandcamp.normalizer import (
    normalize_name,
    split_artist_title,
    strip_bullet_prefix,
    strip_from_by_prefix,
)

logger = logging.getLogger(__name__)

VARIOUS_ARTISTS = "Various Artists"

VARIOUS_ARTISTS_PATTERNS = [
    re.compile(r"\bby\s+various\s+artists?\b", re.I),
    re.compile(r"various\s+artists?", re.I),
    re.compile(r"from\s+.+?\s+by\s+various\s+artists?", re.I),
]

TITLE_AREA_SELECTORS = (
    ".trackTitle, .trackInfo, h2, h1, h3, .track-view, .track-header, "
    ".trackTitleSection, .trackTitleView, .fromAlbum, .trackTitleView h2, .trackTitleView h3"
)
MAIN_CONTENT_SELECTORS = "main, .main, .content, .track, body"


@dataclass
class Attribution:
    title: str
    artist: str
    album_artist: str
    # set when the track artist differs from the album artist
    track_artist_differs: bool = False
    artist_image: Optional[ArtistImage] = None


def _select_text(ctx: ExtractionContext, selectors: str) -> str:
    return " ".join(el.get_text(" ", strip=True) for el in ctx.soup.select(selectors))


def _meta(ctx: ExtractionContext, prop: str) -> str:
    tag = ctx.soup.find("meta", attrs={"property": prop})
    return str(tag.get("content") or "").strip() if tag else ""


# priority order: raw document, heading/title area, main content, description
SCAN_REGIONS: List[Callable[[ExtractionContext], str]] = [
    lambda ctx: ctx.raw_html,
    lambda ctx: _select_text(ctx, TITLE_AREA_SELECTORS),
    lambda ctx: _select_text(ctx, MAIN_CONTENT_SELECTORS),
    lambda ctx: _meta(ctx, "og:description"),
]


def is_various_artists(ctx: ExtractionContext) -> bool:
    for region in SCAN_REGIONS:
        text = region(ctx)
        if text and any(p.search(text) for p in VARIOUS_ARTISTS_PATTERNS):
            return True
    return False


def album_artist_from_page(ctx: ExtractionContext) -> str:
    band = ctx.soup.select_one(".band-name")
    if band is not None and band.get_text(strip=True):
        return band.get_text(strip=True)
    return _meta(ctx, "og:site_name")


def _differs(candidate: str, album_artist: str) -> bool:
    a, b = normalize_name(candidate), normalize_name(album_artist)
    return bool(a) and bool(b) and a != b


async def resolve_attribution(
    ctx: ExtractionContext,
    partial: PartialRecord,
    fetcher: Fetcher,
    cache: MutableMapping[str, Optional[ArtistImage]] | None = None,
) -> Attribution:
    artist = strip_from_by_prefix(partial.artist)
    title = partial.title
    album_artist = album_artist_from_page(ctx)

    if not ctx.is_track:
        return Attribution(title=title, artist=artist, album_artist=album_artist or artist)

    title_artist, split_title = split_artist_title(title)
    if title_artist:
        title = split_title
    else:
        title = strip_bullet_prefix(title)

    if is_various_artists(ctx):
        album_artist = VARIOUS_ARTISTS

    result = Attribution(title=title, artist=artist, album_artist=album_artist or artist)

    # structured-data artist first, then the one split out of the title
    for candidate in (artist, title_artist):
        if not candidate or not _differs(candidate, album_artist):
            continue
        result.artist = candidate
        result.track_artist_differs = True
        logger.info(f"[Attribution] track artist={candidate!r} differs from album artist={album_artist!r}")
        image = await find_artist_image(candidate, fetcher, cache=cache)
        if image is not None:
            result.artist_image = image
            break
    return result
