"""Shared fakes and HTML builders for the Bandcamp tests."""
from __future__ import annotations

import html
import json
from typing import Dict, List, Mapping, Optional, Sequence, Union

from lib.bandcamp.models import FetchResult
from lib.bandcamp.search import build_search_url

Route = Union[FetchResult, Exception, List[Union[FetchResult, Exception]]]

TRACK_URL = "https://labelrecords.bandcamp.com/track/song-title"
ALBUM_URL = "https://labelrecords.bandcamp.com/album/summer-comp"
PROFILE_URL = "https://realperformer.bandcamp.com"

STREAM_URL = "https://t4.bcbits.com/stream/abc123/mp3-128/111?p=0&ts=1700000000&t=aaa&token=bbb"
FRESH_STREAM_URL = "https://t4.bcbits.com/stream/def456/mp3-128/111?p=0&ts=1800000000&t=ccc&token=ddd"


def ok(body: Union[str, bytes], content_type: str = "text/html; charset=utf-8", url: str = "") -> FetchResult:
    data = body.encode("utf-8") if isinstance(body, str) else body
    return FetchResult(status=200, headers={"Content-Type": content_type}, body=data, url=url)


def status(code: int) -> FetchResult:
    return FetchResult(status=code, headers={}, body=b"")


class FakeFetcher:
    """
    In-memory Fetcher. Routes map a URL to a FetchResult, an exception to
    raise, or a list consumed one item per call. Unknown URLs answer 404.
    """

    def __init__(self, routes: Optional[Dict[str, Route]] = None):
        self.routes: Dict[str, Route] = dict(routes or {})
        self.calls: List[str] = []
        self.headers: List[Mapping[str, str]] = []

    async def get(self, url: str, headers: Optional[Mapping[str, str]] = None) -> FetchResult:
        self.calls.append(url)
        self.headers.append(dict(headers or {}))
        route = self.routes.get(url)
        if isinstance(route, list):
            route = route.pop(0) if route else None
        if route is None:
            return status(404)
        if isinstance(route, Exception):
            raise route
        return route

    def count(self, url: str) -> int:
        return self.calls.count(url)


def tralbum(
    trackinfo: Sequence[dict],
    artist: str = "Label Records",
    album_title: str = "Summer Comp",
    title: str = "",
    **extra,
) -> dict:
    current = {"album_title": album_title}
    if title:
        current["title"] = title
    data = {"artist": artist, "current": current, "trackinfo": list(trackinfo)}
    data.update(extra)
    return data


def track_info(title: str, stream_url: str = STREAM_URL, duration: float = 205.5, artist: str | None = None) -> dict:
    return {
        "title": title,
        "duration": duration,
        "file": {"mp3-128": stream_url} if stream_url else None,
        "artist": artist,
    }


def page(
    *,
    data: Optional[dict] = None,
    data_in_script: bool = False,
    og_title: str = "",
    site_name: str = "Label Records",
    band_name: str = "Label Records",
    og_image: str = "https://f4.bcbits.com/img/a0123456789_5.jpg",
    og_description: str = "",
    band_photo: str = "/img/0011223344_21.jpg",
    ld_json: Optional[dict] = None,
    body_extra: str = "",
) -> str:
    """Build a small Bandcamp-like page."""
    head = [f"<title>{html.escape(og_title or 'Bandcamp')}</title>"]
    if og_title:
        head.append(f'<meta property="og:title" content="{html.escape(og_title)}">')
    if site_name:
        head.append(f'<meta property="og:site_name" content="{html.escape(site_name)}">')
    if og_image:
        head.append(f'<meta property="og:image" content="{html.escape(og_image)}">')
    if og_description:
        head.append(f'<meta property="og:description" content="{html.escape(og_description)}">')
    if ld_json is not None:
        head.append(f'<script type="application/ld+json">{json.dumps(ld_json)}</script>')

    body = []
    if data is not None:
        if data_in_script:
            body.append(f"<script>\n    var TralbumData = {json.dumps(data)};\n</script>")
        else:
            body.append(f'<script data-tralbum="{html.escape(json.dumps(data), quote=True)}"></script>')
    if band_name:
        body.append(f'<p id="band-name-location"><span class="title band-name">{html.escape(band_name)}</span></p>')
    if band_photo:
        body.append(f'<div class="band-photo"><img src="{html.escape(band_photo)}"></div>')
    body.append(body_extra)

    return (
        "<!DOCTYPE html><html><head>" + "".join(head) + "</head><body>"
        + "\n".join(body) + "</body></html>"
    )


def search_page(items: Sequence[dict]) -> str:
    """items: dicts with type, heading, url and optional subhead / img."""
    rows = []
    for item in items:
        img = item.get("img", "")
        img_html = f'<div class="art"><img src="{img}"></div>' if img else ""
        rows.append(
            '<li class="searchresult data-search">'
            f'<a class="artcont" href="{item["url"]}">{img_html}</a>'
            '<div class="result-info">'
            f'<div class="itemtype">{item["type"]}</div>'
            f'<div class="heading"><a href="{item["url"]}">{item["heading"]}</a></div>'
            f'<div class="subhead">{item.get("subhead", "")}</div>'
            '</div></li>'
        )
    return '<html><body><ul class="result-items">' + "".join(rows) + "</ul></body></html>"


def artist_routes(name: str, profile_url: str = PROFILE_URL, photo: str = "https://f4.bcbits.com/img/0099887766_21.jpg") -> Dict[str, Route]:
    """Routes answering an artist-image lookup for `name`."""
    return {
        build_search_url(name): ok(search_page([
            {"type": "ARTIST", "heading": name, "url": profile_url},
        ])),
        profile_url: ok(f'<html><body><div class="band-photo-container"><img class="band-photo" src="{photo}"></div></body></html>'),
    }
