#!/usr/bin/env python3
"""
Bandcamp のトラック / アルバムページから
- タイトル / アーティスト / アルバムアーティスト / アルバム
- アーティスト画像 / カバーアート
- 再生可能な音声 URL（期限切れ時の再取得を含む）

を取り出し、Python 辞書で返すコアモジュール。
"""

from __future__ import annotations

import logging
from time import perf_counter
from typing import Any, Dict, List, MutableMapping, Optional

from lib.bandcamp.artist_image import find_artist_image
from lib.bandcamp.attribution import resolve_attribution
from lib.bandcamp.errors import InvalidInput, UpstreamFetchFailed
from lib.bandcamp.extractor import extract
from lib.bandcamp.fetcher import Fetcher, page_headers
from lib.bandcamp.media import fetch_audio
from lib.bandcamp.models import ArtistImage, AudioPayload, ExtractionContext
from lib.bandcamp.response import build_record, record_response, search_result_response
from lib.bandcamp.safety import validate_page_url
from lib.bandcamp.search import search_catalog

# Configure logger for this module
logger = logging.getLogger(__name__)

ArtistImageCache = MutableMapping[str, Optional[ArtistImage]]


# =========================
# メタデータ取得
# =========================


async def fetch_bandcamp_metadata(
    url: str,
    fetcher: Fetcher,
    artist_image_cache: ArtistImageCache | None = None,
) -> Dict[str, Any]:
    """
    Resolve one catalog page into the track or album JSON shape.

    Safety filter -> page fetch -> extraction -> attribution (-> artist image
    lookup) -> media URL check -> response.

    Raises:
        InvalidInput / SafetyRejected: bad URL (before any fetch)
        UpstreamFetchFailed: the page itself could not be fetched
    """
    t0 = perf_counter()
    page_url = validate_page_url(url)

    resp = await fetcher.get(page_url, page_headers())
    if not resp.ok:
        raise UpstreamFetchFailed(f"Failed to fetch Bandcamp page: {resp.status}", status=resp.status)
    t_fetch = perf_counter()

    ctx = ExtractionContext.from_page(page_url, resp.text)
    partial = extract(ctx)
    attribution = await resolve_attribution(ctx, partial, fetcher, cache=artist_image_cache)

    data = record_response(build_record(ctx, partial, attribution))
    t_end = perf_counter()
    logger.info(
        f"[PERF] bandcamp-metadata type={data['type']} fetch_ms={(t_fetch - t0) * 1000:.1f} "
        f"total_ms={(t_end - t0) * 1000:.1f} tracks={len(data.get('tracks', []))} "
        f"audio={'yes' if data.get('audioUrl') else 'no'}"
    )
    return data


# =========================
# 音声プロキシ
# =========================


async def proxy_bandcamp_audio(url: str, page_url: str | None, fetcher: Fetcher) -> AudioPayload:
    """Fetch audio bytes for a stored stream URL, refreshing it once if it expired."""
    if not url:
        raise InvalidInput("URL parameter is required")
    return await fetch_audio(url, page_url or None, fetcher)


# =========================
# アーティスト画像 / 検索
# =========================


async def fetch_bandcamp_artist_image(
    artist: str,
    fetcher: Fetcher,
    cache: ArtistImageCache | None = None,
) -> Dict[str, Optional[str]]:
    name = (artist or "").strip()
    if not name:
        raise InvalidInput("Artist parameter is required")
    image = await find_artist_image(name, fetcher, cache=cache)
    if image is None:
        return {"imageUrl": None, "sourceUrl": None}
    return {"imageUrl": image.image_url, "sourceUrl": image.source_url}


async def search_bandcamp(query: str, fetcher: Fetcher) -> Dict[str, List[Dict[str, Any]]]:
    results = await search_catalog(query, fetcher)
    return {"results": [search_result_response(r) for r in results]}
