"""
Bandcamp page extraction and media URL resolution.

Public API:
  - validate_page_url(url) -> str
  - extract(ExtractionContext) -> PartialRecord
  - resolve_attribution(ctx, partial, fetcher, cache=None) -> Attribution
  - find_artist_image(name, fetcher, cache=None) -> ArtistImage | None
  - fetch_audio(url, page_url, fetcher) -> AudioPayload
  - search_catalog(query, fetcher) -> list[SearchResult]
"""
from lib.bandcamp.artist_image import find_artist_image
from lib.bandcamp.attribution import Attribution, resolve_attribution
from lib.bandcamp.errors import (
    BandcampError,
    InvalidInput,
    ResourceExpired,
    SafetyRejected,
    UpstreamFetchFailed,
)
from lib.bandcamp.extractor import extract
from lib.bandcamp.fetcher import Fetcher, HttpxFetcher
from lib.bandcamp.media import fetch_audio, normalize_audio_url
from lib.bandcamp.models import (
    AlbumRecord,
    AlbumTrack,
    ArtistImage,
    AudioPayload,
    ExtractionContext,
    FetchResult,
    PartialRecord,
    SearchResult,
    TrackRecord,
)
from lib.bandcamp.safety import validate_media_url, validate_page_url
from lib.bandcamp.search import search_catalog

__all__ = [
    "find_artist_image",
    "Attribution",
    "resolve_attribution",
    "BandcampError",
    "InvalidInput",
    "ResourceExpired",
    "SafetyRejected",
    "UpstreamFetchFailed",
    "extract",
    "Fetcher",
    "HttpxFetcher",
    "fetch_audio",
    "normalize_audio_url",
    "AlbumRecord",
    "AlbumTrack",
    "ArtistImage",
    "AudioPayload",
    "ExtractionContext",
    "FetchResult",
    "PartialRecord",
    "SearchResult",
    "TrackRecord",
    "validate_media_url",
    "validate_page_url",
    "search_catalog",
]
