"""
Final record assembly and the JSON shapes returned to callers.
"""
from __future__ import annotations

from typing import Any, Dict, Optional, Union
from urllib.parse import urljoin

from lib.bandcamp.attribution import Attribution
from lib.bandcamp.errors import BandcampError
from lib.bandcamp.media import normalize_audio_url
from lib.bandcamp.models import (
    AlbumRecord,
    AlbumTrack,
    ExtractionContext,
    PartialRecord,
    SearchResult,
    TrackRecord,
)
from lib.bandcamp.normalizer import format_duration, upgrade_image_url


def absolute_image_url(url: str, page_url: str) -> str:
    if not url:
        return ""
    try:
        absolute = url if url.startswith("http") else urljoin(page_url, url)
    except ValueError:
        return ""
    return upgrade_image_url(absolute)


def _artist_image(
    ctx: ExtractionContext,
    partial: PartialRecord,
    attribution: Attribution,
) -> tuple[str, Optional[str]]:
    if attribution.artist_image is not None:
        return attribution.artist_image.image_url, attribution.artist_image.source_url
    if attribution.track_artist_differs:
        # the band photo on this page belongs to the album artist, not the performer
        return "", None
    image = absolute_image_url(partial.artist_image, ctx.page_url)
    return image, (ctx.page_url if image else None)


def build_record(
    ctx: ExtractionContext,
    partial: PartialRecord,
    attribution: Attribution,
) -> Union[TrackRecord, AlbumRecord]:
    """
    Album pages with structured tracks -> AlbumRecord. Everything else
    (including an album page whose tracks could not be read) -> TrackRecord.
    """
    artist_image, artist_image_source = _artist_image(ctx, partial, attribution)
    cover_art = absolute_image_url(partial.cover_art, ctx.page_url)

    if ctx.is_album and partial.tracks:
        return AlbumRecord(
            album=partial.album,
            artist=attribution.artist,
            artist_image=artist_image,
            artist_image_source_url=artist_image_source,
            cover_art=cover_art,
            page_url=ctx.page_url,
            tracks=[
                AlbumTrack(
                    title=t.title,
                    artist=t.artist,
                    duration=t.duration,
                    audio_url=normalize_audio_url(t.audio_url, ctx.page_url),
                    track_number=t.track_number,
                )
                for t in partial.tracks
            ],
        )

    return TrackRecord(
        title=attribution.title,
        artist=attribution.artist,
        album_artist=attribution.album_artist,
        album=partial.album,
        artist_image=artist_image,
        artist_image_source_url=artist_image_source,
        cover_art=cover_art,
        audio_url=normalize_audio_url(partial.audio_url, ctx.page_url),
        duration_seconds=partial.duration_seconds,
        page_url=ctx.page_url,
    )


def track_response(record: TrackRecord) -> Dict[str, Any]:
    return {
        "type": "track",
        "title": record.title,
        "artist": record.artist,
        "albumArtist": record.album_artist or record.artist,
        "album": record.album,
        "artistImage": record.artist_image,
        "artistImageSourceUrl": record.artist_image_source_url,
        "coverArt": record.cover_art,
        "audioUrl": record.audio_url,
        "duration": format_duration(record.duration_seconds),
        "pageUrl": record.page_url,
    }


def album_response(record: AlbumRecord) -> Dict[str, Any]:
    return {
        "type": "album",
        "album": record.album,
        "artist": record.artist,
        "artistImage": record.artist_image,
        "artistImageSourceUrl": record.artist_image_source_url,
        "coverArt": record.cover_art,
        "tracks": [
            {
                "title": t.title,
                "artist": t.artist,
                "duration": t.duration,
                "audioUrl": t.audio_url,
                "trackNumber": t.track_number,
            }
            for t in record.tracks
        ],
        "pageUrl": record.page_url,
    }


def record_response(record: Union[TrackRecord, AlbumRecord]) -> Dict[str, Any]:
    if isinstance(record, AlbumRecord):
        return album_response(record)
    return track_response(record)


def search_result_response(result: SearchResult) -> Dict[str, Any]:
    return {
        "title": result.title,
        "artist": result.artist,
        "type": result.type,
        "url": result.url,
        "coverArt": result.cover_art,
    }


def error_response(exc: Exception) -> Dict[str, Any]:
    if isinstance(exc, BandcampError):
        return exc.to_dict()
    return {"error": str(exc) or "Unexpected error"}
