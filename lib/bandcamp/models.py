"""
Bandcamp のページから取り出すデータモデル。
"""
from __future__ import annotations

from dataclasses import dataclass, field, fields
from typing import Any, Dict, List, Mapping, Optional
from urllib.parse import urlparse

from bs4 import BeautifulSoup


@dataclass
class FetchResult:
    """Result of a single HTTP GET."""
    status: int
    headers: Mapping[str, str]
    body: bytes
    url: str = ""

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    @property
    def text(self) -> str:
        return self.body.decode("utf-8", errors="replace")

    def header(self, name: str) -> Optional[str]:
        lower = name.lower()
        for k, v in self.headers.items():
            if k.lower() == lower:
                return v
        return None


@dataclass
class ExtractionContext:
    """Per-request view of one catalog page. Discarded once the response is built."""
    page_url: str
    is_album: bool
    is_track: bool
    raw_html: str
    structured_data: Optional[Dict[str, Any]] = None
    _soup: Optional[BeautifulSoup] = field(default=None, repr=False, compare=False)

    @classmethod
    def from_page(cls, page_url: str, raw_html: str) -> "ExtractionContext":
        path = urlparse(page_url).path or ""
        return cls(
            page_url=page_url,
            is_album="/album/" in path,
            is_track="/track/" in path,
            raw_html=raw_html or "",
        )

    @property
    def soup(self) -> BeautifulSoup:
        if self._soup is None:
            self._soup = BeautifulSoup(self.raw_html, "html.parser")
        return self._soup


@dataclass
class AlbumTrack:
    title: str
    artist: Optional[str]
    duration: str
    audio_url: str
    track_number: int


@dataclass
class PartialRecord:
    """
    抽出ストラテジー 1 つ分の結果。
    空でないフィールドだけが意味を持ち、merge_missing() で前のストラテジーの
    結果に「まだ空のフィールドだけ」を埋める。
    """
    title: str = ""
    artist: str = ""
    album: str = ""
    cover_art: str = ""
    artist_image: str = ""
    audio_url: str = ""
    duration_seconds: Optional[float] = None
    tracks: List[AlbumTrack] = field(default_factory=list)
    structured_data: Optional[Dict[str, Any]] = None
    linked_data: Optional[Dict[str, Any]] = None

    def merge_missing(self, other: "PartialRecord") -> "PartialRecord":
        """Return a new record: self's values, with empty fields taken from other."""
        merged = {}
        for f in fields(self):
            mine = getattr(self, f.name)
            merged[f.name] = getattr(other, f.name) if _is_empty(mine) else mine
        return PartialRecord(**merged)


def _is_empty(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, (str, list, dict)):
        return len(value) == 0
    return False


@dataclass
class TrackRecord:
    title: str = ""
    artist: str = ""
    album_artist: str = ""
    album: str = ""
    artist_image: str = ""
    artist_image_source_url: Optional[str] = None
    cover_art: str = ""
    audio_url: str = ""
    duration_seconds: Optional[float] = None
    page_url: str = ""


@dataclass
class AlbumRecord:
    album: str = ""
    artist: str = ""
    artist_image: str = ""
    artist_image_source_url: Optional[str] = None
    cover_art: str = ""
    page_url: str = ""
    tracks: List[AlbumTrack] = field(default_factory=list)


@dataclass
class ArtistImage:
    image_url: str
    source_url: str


@dataclass
class SearchResult:
    title: str
    artist: str
    type: str  # "album" | "track" | "artist" | "unknown"
    url: str
    cover_art: str = ""
    heading: str = ""  # raw heading text, used for exact artist matching


@dataclass
class AudioPayload:
    """Audio bytes fetched through the proxy, plus whether a refresh was needed."""
    status: int
    content_type: str
    content_length: Optional[str]
    body: bytes
    audio_url: str
    refreshed: bool = False
