"""Error taxonomy shared by the core and the HTTP layer."""
from __future__ import annotations

from typing import Any, Dict


class BandcampError(Exception):
    """Base error. Carries the HTTP status the API layer should answer with."""

    status_code = 500

    def __init__(self, message: str, meta: dict | None = None):
        super().__init__(message)
        self.meta = meta or {}

    def to_dict(self) -> Dict[str, Any]:
        return {"error": str(self)}


class InvalidInput(BandcampError):
    """Missing or malformed URL / parameter."""

    status_code = 400


class SafetyRejected(InvalidInput):
    """Disallowed host, protocol or page kind. Reported exactly like InvalidInput."""


class UpstreamFetchFailed(BandcampError):
    """Non-2xx or network failure from the target site."""

    def __init__(self, message: str, status: int | None = None, meta: dict | None = None):
        super().__init__(message, meta=meta)
        self.status = status


class ResourceExpired(BandcampError):
    """Signed media URL is gone and could not be refreshed."""

    status_code = 410

    def __init__(self, message: str, has_page_url: bool, meta: dict | None = None):
        super().__init__(message, meta=meta)
        self.has_page_url = has_page_url

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": str(self),
            "expired": True,
            "hasPageUrl": self.has_page_url,
        }
