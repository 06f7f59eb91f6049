"""
Structured-data extraction for Bandcamp track / album pages.

extract() folds STRATEGIES left to right. Every strategy is a pure
`(ExtractionContext) -> PartialRecord`; a later strategy only fills fields that
are still empty, and a strategy that raises counts as an empty result. The
cascade itself never raises.

Order (most to least reliable):
  1. stream URL scan over raw text
  2. duration scan over raw text
  3. data-tralbum attribute JSON
  4. TralbumData object in inline <script> text
  5. JSON-LD blocks
  6. <meta> tags
  7. visible page elements
"""
from __future__ import annotations

import html as _html
import json
import logging
import re
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple
from urllib.parse import unquote, urljoin

from lib.bandcamp.jsonscan import extract_json_object
from lib.bandcamp.models import AlbumTrack, ExtractionContext, PartialRecord
from lib.bandcamp.normalizer import format_duration, split_artist_title

logger = logging.getLogger(__name__)

Strategy = Callable[[ExtractionContext], PartialRecord]

# =========================
# Pattern / selector tables
# =========================

STREAM_URL_PATTERNS = [
    re.compile(r'"mp3-128"\s*:\s*"(https?://[^"]+bcbits\.com[^"]+)"', re.I),
    re.compile(r'"mp3-v0"\s*:\s*"(https?://[^"]+bcbits\.com[^"]+)"', re.I),
    re.compile(r"""mp3-128['"]\s*:\s*['"]?(https?://[^'">\s]+bcbits\.com[^'">\s]+)""", re.I),
    re.compile(r"""(https?://t\d+\.bcbits\.com/stream/(?:(?!&quot;|&#34;)[^"'\s<>])+)""", re.I),
    # backslash-escaped form: "https:\/\/t4.bcbits.com\/stream\/..."
    re.compile(r'"mp3-128"\s*:\s*"(https?:\\/\\/[^"]+bcbits\.com[^"]+)"', re.I),
    re.compile(r"""(https?:(?://|\\/\\/)t\d+\.bcbits\.com(?:/|\\/)stream(?:(?!&quot;|&#34;)[^"'\s<>\\]|\\/)+)""", re.I),
]

DURATION_PATTERN = re.compile(r'"duration"\s*:\s*(\d+\.?\d*)')

SCRIPT_AUDIO_PATTERNS = [
    re.compile(r"""["'](https?://t4\.bcbits\.com/stream/[^"']+)["']""", re.I),
    re.compile(r"""["'](https?://[^"']*bcbits\.com[^"']*\.mp3[^"']*)["']""", re.I),
    re.compile(r"""["'](https?://[^"']+\.mp3[^"']*)["']""", re.I),
]

AUDIO_QUALITY_KEYS = ("mp3-128", "mp3-v0")

TRALBUM_ATTRIBUTE = "data-tralbum"
TRALBUM_SCRIPT_MARKER = "TralbumData"

LINKED_DATA_TYPES = ("MusicRecording", "MusicAlbum", "MusicGroup")

COVER_ART_SELECTORS: List[Tuple[str, str]] = [
    ("#tralbum-art", "src"),
    (".popupImage", "src"),
    (".popupImage", "href"),
    ('img[itemprop="image"]', "src"),
]

ARTIST_PHOTO_SELECTORS = [
    ".band-photo img",
    ".band-photo",
    ".band-photo-container img",
    ".band-photo-container",
    ".band-photo-wrapper img",
    "a.band-photo img",
    ".band-photo a img",
    ".band-photo-link img",
]

IMAGE_SOURCE_ATTRS = ("src", "data-src", "data-original")

_HTML_ENTITY_FIXES = [
    ("&quot;", '"'),
    ("&#34;", '"'),
    ("&apos;", "'"),
    ("&#39;", "'"),
    ("&amp;", "&"),
    ("&lt;", "<"),
    ("&gt;", ">"),
]


# =========================
# Helpers
# =========================

def _clean_stream_url(raw: str) -> str:
    url = raw.replace("\\/", "/").replace("\\u0026", "&")
    return _html.unescape(url)


def decode_html_entities(value: str) -> str:
    for entity, ch in _HTML_ENTITY_FIXES:
        value = value.replace(entity, ch)
    return value


def pick_audio_file(file_map: Any) -> str:
    """mp3-128 -> mp3-v0 -> first available quality."""
    if not isinstance(file_map, dict) or not file_map:
        return ""
    for key in AUDIO_QUALITY_KEYS:
        if file_map.get(key):
            return str(file_map[key])
    first = next(iter(file_map.values()), "")
    return str(first) if first else ""


def _seconds(value: Any) -> Optional[float]:
    try:
        seconds = float(value)
    except (TypeError, ValueError):
        return None
    return seconds if seconds > 0 else None


def _meta_content(ctx: ExtractionContext, prop: str) -> str:
    tag = ctx.soup.find("meta", attrs={"property": prop})
    if tag and tag.get("content"):
        return str(tag.get("content")).strip()
    return ""


def _first_image_src(ctx: ExtractionContext, selectors: Sequence[str]) -> str:
    for selector in selectors:
        el = ctx.soup.select_one(selector)
        if el is None:
            continue
        for attr in IMAGE_SOURCE_ATTRS:
            src = el.get(attr)
            if src:
                return str(src).strip()
    return ""


def _name_of(value: Any) -> str:
    if isinstance(value, dict):
        name = value.get("name")
        return str(name).strip() if name else ""
    if isinstance(value, str):
        return value.strip()
    return ""


def _image_of(value: Any) -> str:
    if isinstance(value, list):
        value = value[0] if value else ""
    if isinstance(value, dict):
        value = value.get("url") or ""
    return str(value).strip() if value else ""


def _linked_data_types(data: Dict[str, Any]) -> List[str]:
    t = data.get("@type")
    if isinstance(t, list):
        return [str(x) for x in t]
    return [str(t)] if t else []


# =========================
# Strategies
# =========================

def scan_stream_url(ctx: ExtractionContext) -> PartialRecord:
    for pattern in STREAM_URL_PATTERNS:
        m = pattern.search(ctx.raw_html)
        if m and m.group(1):
            return PartialRecord(audio_url=_clean_stream_url(m.group(1)))
    return PartialRecord()


def scan_duration(ctx: ExtractionContext) -> PartialRecord:
    m = DURATION_PATTERN.search(ctx.raw_html)
    if m:
        return PartialRecord(duration_seconds=float(m.group(1)))
    return PartialRecord()


def album_tracks_from_trackinfo(trackinfo: Sequence[Dict[str, Any]]) -> List[AlbumTrack]:
    tracks: List[AlbumTrack] = []
    for track in trackinfo:
        if not isinstance(track, dict):
            continue
        artist, title = split_artist_title(track.get("title") or "")
        if artist is None and track.get("artist"):
            artist = str(track.get("artist")).strip() or None
        tracks.append(AlbumTrack(
            title=title,
            artist=artist,
            duration=format_duration(track.get("duration")),
            audio_url=pick_audio_file(track.get("file")),
            track_number=len(tracks) + 1,
        ))
    return tracks


def record_from_tralbum(ctx: ExtractionContext, data: Dict[str, Any]) -> PartialRecord:
    """Map a decoded TralbumData blob onto a partial record."""
    if not isinstance(data, dict):
        return PartialRecord()

    partial = PartialRecord(structured_data=data)
    trackinfo = data.get("trackinfo")
    if isinstance(trackinfo, list) and trackinfo:
        if ctx.is_album:
            partial.tracks = album_tracks_from_trackinfo(trackinfo)
        else:
            first = trackinfo[0] if isinstance(trackinfo[0], dict) else {}
            partial.audio_url = pick_audio_file(first.get("file"))
            partial.duration_seconds = _seconds(first.get("duration"))
            if first.get("title"):
                partial.title = str(first["title"])
            if first.get("artist"):
                partial.artist = str(first["artist"])

    current = data.get("current") if isinstance(data.get("current"), dict) else {}
    if data.get("artist"):
        # the blob-level artist beats the per-track one
        partial.artist = str(data["artist"])
    if current.get("title") and not partial.title:
        partial.title = str(current["title"])
    if current.get("album_title"):
        partial.album = str(current["album_title"])
    partial.artist_image = str(data.get("artist_image") or current.get("artist_image") or "")
    return partial


def parse_tralbum_attribute(ctx: ExtractionContext) -> PartialRecord:
    el = ctx.soup.find(attrs={TRALBUM_ATTRIBUTE: True})
    if el is None:
        return PartialRecord()
    raw = el.get(TRALBUM_ATTRIBUTE) or ""
    if not raw:
        return PartialRecord()
    try:
        data = json.loads(raw)
    except ValueError:
        data = json.loads(decode_html_entities(raw))
    return record_from_tralbum(ctx, data)


def parse_tralbum_script(ctx: ExtractionContext) -> PartialRecord:
    blob = extract_json_object(ctx.raw_html, TRALBUM_SCRIPT_MARKER)
    if not blob:
        return PartialRecord()
    return record_from_tralbum(ctx, json.loads(blob))


def parse_linked_data(ctx: ExtractionContext) -> PartialRecord:
    found: Optional[Dict[str, Any]] = None
    for script in ctx.soup.find_all("script", attrs={"type": "application/ld+json"}):
        try:
            data = json.loads(script.string or script.get_text() or "{}")
        except ValueError as e:
            logger.debug(f"[Extractor] ld+json parse failed: {e}")
            continue
        if isinstance(data, dict) and any(t in LINKED_DATA_TYPES for t in _linked_data_types(data)):
            found = data
            break
    if found is None:
        return PartialRecord()

    types = _linked_data_types(found)
    by_artist = found.get("byArtist") or found.get("artist")
    partial = PartialRecord(linked_data=found)
    if "MusicRecording" in types:
        partial.title = _name_of(found.get("name"))
        partial.artist = _name_of(by_artist)
        partial.album = _name_of(found.get("inAlbum") or found.get("album"))
        partial.cover_art = _image_of(found.get("image"))
    elif "MusicAlbum" in types:
        partial.album = _name_of(found.get("name"))
        partial.artist = _name_of(by_artist)
        partial.cover_art = _image_of(found.get("image"))
    elif "MusicGroup" in types:
        partial.artist_image = _image_of(found.get("image"))
    if not partial.artist_image and isinstance(by_artist, dict):
        partial.artist_image = _image_of(by_artist.get("image"))
    return partial


def parse_meta_tags(ctx: ExtractionContext) -> PartialRecord:
    soup = ctx.soup
    partial = PartialRecord()

    partial.title = _meta_content(ctx, "og:title")
    if not partial.title and soup.title and soup.title.string:
        partial.title = soup.title.string.strip()

    partial.artist = _meta_content(ctx, "og:site_name")
    album_link = soup.select_one('a[href*="/album/"]')
    if not partial.artist:
        band = soup.select_one(".band-name")
        if band is not None:
            partial.artist = band.get_text(strip=True)
    if not partial.artist and album_link is not None:
        partial.artist = album_link.get_text(strip=True)

    partial.cover_art = _meta_content(ctx, "og:image")
    if not partial.cover_art:
        for selector, attr in COVER_ART_SELECTORS:
            el = soup.select_one(selector)
            if el is not None and el.get(attr):
                partial.cover_art = str(el.get(attr)).strip()
                break

    if album_link is not None:
        partial.album = album_link.get_text(strip=True)
    if not partial.album:
        m = re.search(r"album/([^/?#]+)", ctx.page_url)
        if m:
            partial.album = unquote(m.group(1).replace("-", " "))
    return partial


def parse_page_text(ctx: ExtractionContext) -> PartialRecord:
    partial = PartialRecord()
    for script in ctx.soup.find_all("script"):
        content = script.string or script.get_text() or ""
        for pattern in SCRIPT_AUDIO_PATTERNS:
            m = pattern.search(content)
            if m:
                partial.audio_url = m.group(1)
                break
        if partial.audio_url:
            break

    if not partial.audio_url:
        for selector in ("audio source", "audio"):
            el = ctx.soup.select_one(selector)
            if el is not None and el.get("src"):
                partial.audio_url = urljoin(ctx.page_url, str(el.get("src")))
                break

    partial.artist_image = _first_image_src(ctx, ARTIST_PHOTO_SELECTORS)
    return partial


STRATEGIES: List[Strategy] = [
    scan_stream_url,
    scan_duration,
    parse_tralbum_attribute,
    parse_tralbum_script,
    parse_linked_data,
    parse_meta_tags,
    parse_page_text,
]


def _attempt(strategy: Strategy, ctx: ExtractionContext) -> PartialRecord:
    try:
        return strategy(ctx)
    except Exception as e:
        logger.debug(f"[Extractor] {strategy.__name__} failed for {ctx.page_url}: {e!r}")
        return PartialRecord()


def extract(ctx: ExtractionContext, strategies: Sequence[Strategy] | None = None) -> PartialRecord:
    """
    Run every strategy and merge field-by-field.

    ctx.structured_data is set to the decoded TralbumData blob when one was found.
    """
    record = PartialRecord()
    for strategy in strategies if strategies is not None else STRATEGIES:
        record = record.merge_missing(_attempt(strategy, ctx))
    ctx.structured_data = record.structured_data
    logger.debug(
        f"[Extractor] url={ctx.page_url} title={record.title!r} artist={record.artist!r} "
        f"audio={'yes' if record.audio_url else 'no'} tracks={len(record.tracks)}"
    )
    return record
