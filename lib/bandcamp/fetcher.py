"""
HTTP GET capability used by the core.

The core only depends on the Fetcher protocol; HttpxFetcher is the production
implementation. There is no retry here; the only retry in the system is the
audio refresh in media.py.
"""
from __future__ import annotations

import logging
import os
from typing import Dict, Mapping, Optional, Protocol

import httpx

from lib.bandcamp.errors import SafetyRejected, UpstreamFetchFailed
from lib.bandcamp.models import FetchResult
from lib.bandcamp.safety import is_disallowed_hostname

logger = logging.getLogger(__name__)

BANDCAMP_HTTP_TIMEOUT_S = float(os.getenv("BANDCAMP_HTTP_TIMEOUT_S", "20"))
BANDCAMP_USER_AGENT = os.getenv(
    "BANDCAMP_USER_AGENT",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/131.0.0.0 Safari/537.36",
)
BANDCAMP_ORIGIN = "https://bandcamp.com"


def page_headers() -> Dict[str, str]:
    return {
        "User-Agent": BANDCAMP_USER_AGENT,
        "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
        "Accept-Language": "en-US,en;q=0.9",
    }


def media_headers() -> Dict[str, str]:
    return {
        "User-Agent": BANDCAMP_USER_AGENT,
        "Referer": f"{BANDCAMP_ORIGIN}/",
        "Accept": "audio/*,*/*",
    }


class Fetcher(Protocol):
    async def get(self, url: str, headers: Optional[Mapping[str, str]] = None) -> FetchResult:
        ...


async def _guard_redirect_target(request: httpx.Request) -> None:
    # redirects must not land on internal hosts either
    if is_disallowed_hostname(request.url.host):
        raise SafetyRejected("Invalid Bandcamp URL")


class HttpxFetcher:
    """Fetcher backed by a shared httpx.AsyncClient."""

    def __init__(self, client: httpx.AsyncClient | None = None, timeout_s: float | None = None):
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            follow_redirects=True,
            timeout=httpx.Timeout(timeout_s or BANDCAMP_HTTP_TIMEOUT_S),
            event_hooks={"request": [_guard_redirect_target]},
        )

    async def get(self, url: str, headers: Optional[Mapping[str, str]] = None) -> FetchResult:
        try:
            resp = await self._client.get(url, headers=dict(headers or {}))
        except httpx.HTTPError as e:
            logger.warning(f"[Fetcher] GET failed url={url}: {e!r}")
            raise UpstreamFetchFailed(f"Network error fetching {url}: {e}") from e
        return FetchResult(
            status=resp.status_code,
            headers=dict(resp.headers),
            body=resp.content,
            url=str(resp.url),
        )

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "HttpxFetcher":
        return self

    async def __aexit__(self, *exc) -> None:
        await self.aclose()
