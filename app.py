from __future__ import annotations

import os
import logging
from typing import Annotated, Any, AsyncIterator, Dict, List, Literal, Optional, Union

from fastapi import Depends, FastAPI, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel, Field

from core import (
    fetch_bandcamp_artist_image,
    fetch_bandcamp_metadata,
    proxy_bandcamp_audio,
    search_bandcamp,
)
from lib.bandcamp.errors import BandcampError
from lib.bandcamp.fetcher import Fetcher, HttpxFetcher
from lib.bandcamp.response import error_response
from lib.cache_manager import (
    SEARCH_CACHE_TTL_S,
    build_search_cache_key,
    get_artist_image_cache,
    get_search_cache,
)

# Basic logging configuration to ensure logger outputs appear in the terminal
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("uvicorn.error")
logger.setLevel(logging.INFO)


# =========================
# Pydantic models
# =========================

class TrackResponse(BaseModel):
    type: Literal["track"] = "track"
    title: str = ""
    artist: str = ""
    albumArtist: str = ""
    album: str = ""
    artistImage: str = ""
    artistImageSourceUrl: Optional[str] = None
    coverArt: str = ""
    audioUrl: str = ""
    duration: str = ""  # HH:MM:SS or ""
    pageUrl: str


class AlbumTrackModel(BaseModel):
    title: str
    artist: Optional[str] = None  # only set when the track title carries "Artist - Title"
    duration: str = ""
    audioUrl: str = ""
    trackNumber: int


class AlbumResponse(BaseModel):
    type: Literal["album"] = "album"
    album: str = ""
    artist: str = ""
    artistImage: str = ""
    artistImageSourceUrl: Optional[str] = None
    coverArt: str = ""
    tracks: List[AlbumTrackModel]
    pageUrl: str


MetadataResponse = Annotated[Union[TrackResponse, AlbumResponse], Field(discriminator="type")]


class ArtistImageResponse(BaseModel):
    imageUrl: Optional[str] = None
    sourceUrl: Optional[str] = None


class SearchResultModel(BaseModel):
    title: str
    artist: str = ""
    type: str  # 'album' | 'track'
    url: str
    coverArt: str = ""


class SearchResponse(BaseModel):
    results: List[SearchResultModel]


class ErrorResponse(BaseModel):
    error: str
    expired: Optional[bool] = None
    hasPageUrl: Optional[bool] = None


# =========================
# FastAPI app & CORS
# =========================

app = FastAPI(
    title="Bandcamp Metadata Backend",
    version="1.0.0",
)


@app.on_event("startup")
def _log_startup():
    logger.info("bandcamp-metadata: startup event triggered")


# 環境変数 ALLOWED_ORIGINS があればそれを優先（カンマ区切り）
env_origins = os.getenv("ALLOWED_ORIGINS")
if env_origins:
    origins = [o.strip() for o in env_origins.split(",") if o.strip()]
else:
    origins = ["*"]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=origins != ["*"],
    allow_methods=["GET", "OPTIONS"],
    allow_headers=["Content-Type"],
)


@app.exception_handler(BandcampError)
async def _bandcamp_error_handler(request: Request, exc: BandcampError):
    if exc.status_code >= 500:
        logger.error(f"[api] {request.url.path} failed: {exc}")
    else:
        logger.info(f"[api] {request.url.path} rejected ({exc.status_code}): {exc}")
    return JSONResponse(status_code=exc.status_code, content=error_response(exc))


def _unexpected(path: str, e: Exception, fallback: str) -> JSONResponse:
    logger.exception(f"[api] {path} unexpected error: {e}")
    return JSONResponse(status_code=500, content={"error": str(e) or fallback})


async def get_fetcher() -> AsyncIterator[Fetcher]:
    """One httpx client per request; closed once the response is sent."""
    fetcher = HttpxFetcher()
    try:
        yield fetcher
    finally:
        await fetcher.aclose()


# =========================
# Health check
# =========================

@app.get("/health", tags=["system"])
def health() -> Dict[str, Any]:
    return {
        "ok": True,
        "status": "ok",
        "build_commit": os.getenv("RENDER_GIT_COMMIT", "local")[:7],
    }


@app.get("/", tags=["system"])
def root() -> Dict[str, Any]:
    return {"ok": True, "status": "ok"}


# =========================
# Endpoints
# =========================

_ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    410: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
}


@app.get("/api/bandcamp-metadata", response_model=MetadataResponse, responses=_ERROR_RESPONSES)
async def get_bandcamp_metadata(
    url: Optional[str] = Query(None, description="Bandcamp track or album page URL"),
    fetcher: Fetcher = Depends(get_fetcher),
):
    """
    トラック / アルバムページのメタデータを取得。
    """
    try:
        return await fetch_bandcamp_metadata(url or "", fetcher, artist_image_cache=get_artist_image_cache())
    except BandcampError:
        raise
    except Exception as e:
        return _unexpected("/api/bandcamp-metadata", e, "Failed to extract metadata from Bandcamp URL")


@app.get("/api/bandcamp-audio-proxy", responses=_ERROR_RESPONSES)
async def get_bandcamp_audio(
    url: Optional[str] = Query(None, description="Stored Bandcamp stream URL"),
    pageUrl: Optional[str] = Query(None, description="Catalog page URL, enables refresh on 410"),
    fetcher: Fetcher = Depends(get_fetcher),
):
    """
    音声をプロキシする。期限切れ（410）の場合は pageUrl から新しい URL を取り直して 1 回だけ再試行。
    """
    try:
        payload = await proxy_bandcamp_audio(url or "", pageUrl, fetcher)
    except BandcampError:
        raise
    except Exception as e:
        return _unexpected("/api/bandcamp-audio-proxy", e, "Failed to proxy audio")

    headers = {
        "Accept-Ranges": "bytes",
        "Cache-Control": "public, max-age=3600",
        "X-Audio-Url": payload.audio_url,
        "X-Audio-Refreshed": "1" if payload.refreshed else "0",
    }
    return Response(content=payload.body, media_type=payload.content_type, headers=headers)


@app.get("/api/bandcamp-artist-image", response_model=ArtistImageResponse, responses=_ERROR_RESPONSES)
async def get_bandcamp_artist_image(
    artist: Optional[str] = Query(None, description="Artist name (exact match)"),
    fetcher: Fetcher = Depends(get_fetcher),
):
    try:
        return await fetch_bandcamp_artist_image(artist or "", fetcher, cache=get_artist_image_cache())
    except BandcampError:
        raise
    except Exception as e:
        return _unexpected("/api/bandcamp-artist-image", e, "Failed to fetch artist image")


@app.get("/api/bandcamp-search", response_model=SearchResponse, responses=_ERROR_RESPONSES)
async def get_bandcamp_search(
    q: Optional[str] = Query(None, description="Free-text query (max 200 chars)"),
    refresh: Optional[int] = Query(None, description="Bypass cache when set to 1"),
    fetcher: Fetcher = Depends(get_fetcher),
):
    cache = get_search_cache()
    cache_key = build_search_cache_key(q or "")
    bypass = (refresh == 1)
    cached = None if bypass else cache.get(cache_key)
    if cached is not None:
        logger.info(f"[api/bandcamp-search] cache_hit q={q!r} ttl_s={SEARCH_CACHE_TTL_S}")
        return cached

    try:
        data = await search_bandcamp(q or "", fetcher)
    except BandcampError:
        raise
    except Exception as e:
        return _unexpected("/api/bandcamp-search", e, "Failed to search Bandcamp")

    if data["results"]:
        cache[cache_key] = data
    return data
