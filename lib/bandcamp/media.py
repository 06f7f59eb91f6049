"""
Audio URL normalisation and the expired-URL refresh protocol.

Bandcamp streams are short-lived signed URLs on bcbits.com. Callers store
them, so a proxied fetch can come back 410 Gone; when the caller also sent the
catalog page URL we re-extract a fresh stream URL from that page and retry
exactly once.
"""
from __future__ import annotations

import logging
import re
from typing import Optional
from urllib.parse import urljoin, urlparse

from lib.bandcamp.errors import ResourceExpired, UpstreamFetchFailed
from lib.bandcamp.extractor import extract
from lib.bandcamp.fetcher import BANDCAMP_ORIGIN, Fetcher, media_headers, page_headers
from lib.bandcamp.models import AudioPayload, ExtractionContext, FetchResult
from lib.bandcamp.safety import validate_media_url, validate_page_url

logger = logging.getLogger(__name__)

MEDIA_CDN_DOMAIN = "bcbits.com"
AUDIO_EXTENSIONS = re.compile(r"\.(?:mp3|ogg|flac)\b", re.I)

STATUS_GONE = 410
STATUS_NOT_FOUND = 404

EXPIRED_NO_PAGE_URL = (
    "Audio URL expired. This song was added before automatic refresh was available. "
    "Please re-add it from Bandcamp."
)
EXPIRED_NOT_REFRESHED = "Audio URL expired and could not be refreshed. Please re-add this song from Bandcamp."
EXPIRED_OR_MISSING = "Audio URL expired or not found. Please re-add this song from Bandcamp."


def is_playable_audio_url(url: str) -> bool:
    """bcbits.com host (or subdomain), or an .mp3/.ogg/.flac path."""
    try:
        parsed = urlparse(url)
    except ValueError:
        return False
    if parsed.scheme not in ("http", "https"):
        return False
    host = (parsed.hostname or "").lower()
    if host == MEDIA_CDN_DOMAIN or host.endswith("." + MEDIA_CDN_DOMAIN):
        return True
    return bool(AUDIO_EXTENSIONS.search(parsed.path or ""))


def _origin(page_url: str) -> Optional[str]:
    parsed = urlparse(page_url or "")
    if parsed.scheme and parsed.netloc:
        return f"{parsed.scheme}://{parsed.netloc}"
    return None


def normalize_audio_url(url: str | None, page_url: str | None) -> str:
    """
    Absolute URL if playable, "" otherwise. A page URL is never returned
    as if it were media.
    """
    if not url:
        return ""
    candidate = url.strip()
    if not candidate.lower().startswith("http"):
        base = _origin(page_url or "") or BANDCAMP_ORIGIN
        try:
            candidate = urljoin(base + "/", candidate)
        except ValueError:
            candidate = urljoin(BANDCAMP_ORIGIN + "/", candidate)
    return candidate if is_playable_audio_url(candidate) else ""


def _stream_id(url: str) -> str:
    # https://t4.bcbits.com/stream/<hash>/mp3-128/<track id>?p=...&token=...
    path = urlparse(url).path.rstrip("/")
    return path.rsplit("/", 1)[-1] if path else ""


def fresh_audio_url(page_url: str, html: str, stale_url: str = "") -> str:
    """Re-run the extractor on a re-fetched page and return a playable stream URL."""
    ctx = ExtractionContext.from_page(page_url, html)
    record = extract(ctx)
    if ctx.is_album and record.tracks:
        wanted = _stream_id(stale_url)
        candidates = [t.audio_url for t in record.tracks if t.audio_url]
        for url in candidates:
            if wanted and _stream_id(url) == wanted:
                return normalize_audio_url(url, page_url)
        return normalize_audio_url(candidates[0], page_url) if candidates else ""
    return normalize_audio_url(record.audio_url, page_url)


def _payload(resp: FetchResult, url: str, refreshed: bool) -> AudioPayload:
    return AudioPayload(
        status=resp.status,
        content_type=resp.header("Content-Type") or "audio/mpeg",
        content_length=resp.header("Content-Length"),
        body=resp.body,
        audio_url=url,
        refreshed=refreshed,
    )


async def _refresh(stale_url: str, page_url: str, fetcher: Fetcher) -> AudioPayload:
    """Page re-fetch -> extraction -> one retry. Any failure is terminal."""
    try:
        page = await fetcher.get(page_url, page_headers())
        if not page.ok:
            raise UpstreamFetchFailed(f"Failed to fetch Bandcamp page: {page.status}", status=page.status)

        fresh = fresh_audio_url(page_url, page.text, stale_url)
        if not fresh:
            raise ResourceExpired("Could not extract fresh audio URL from Bandcamp page", has_page_url=True)

        logger.info(f"[Media] retrying with refreshed audio url page={page_url}")
        retry = await fetcher.get(fresh, media_headers())
    except ResourceExpired:
        raise
    except Exception as e:
        logger.warning(f"[Media] refresh failed page={page_url}: {e!r}")
        raise ResourceExpired(str(e) or EXPIRED_NOT_REFRESHED, has_page_url=True) from e

    if not retry.ok:
        logger.warning(f"[Media] refreshed url still failing status={retry.status} page={page_url}")
        raise ResourceExpired(EXPIRED_NOT_REFRESHED, has_page_url=True)
    return _payload(retry, fresh, refreshed=True)


async def fetch_audio(url: str, page_url: str | None, fetcher: Fetcher) -> AudioPayload:
    """
    Proxy fetch of a stored audio URL with the refresh protocol.

    Raises:
        InvalidInput / SafetyRejected: bad audio URL or page URL
        ResourceExpired: 410 (or 404 with a page URL) that could not be recovered
        UpstreamFetchFailed: any other upstream failure
    """
    audio_url = validate_media_url(url)
    checked_page_url = validate_page_url(page_url) if page_url else None

    resp = await fetcher.get(audio_url, media_headers())

    if resp.status == STATUS_GONE:
        if not checked_page_url:
            raise ResourceExpired(EXPIRED_NO_PAGE_URL, has_page_url=False)
        logger.info(f"[Media] audio url expired, refreshing from page={checked_page_url}")
        return await _refresh(audio_url, checked_page_url, fetcher)

    if not resp.ok:
        if resp.status == STATUS_NOT_FOUND and checked_page_url:
            raise ResourceExpired(EXPIRED_OR_MISSING, has_page_url=True)
        raise UpstreamFetchFailed(f"Failed to fetch audio: {resp.status}", status=resp.status)

    return _payload(resp, audio_url, refreshed=False)
