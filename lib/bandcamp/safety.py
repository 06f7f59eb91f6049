"""
URL safety checks. Everything here runs before the fetcher sees a URL, so the
backend cannot be used as a proxy into loopback / link-local / private networks.
"""
from __future__ import annotations

import ipaddress
import re
import socket
from typing import Optional
from urllib.parse import urlparse, urlunparse

from lib.bandcamp.errors import InvalidInput, SafetyRejected

ALLOWED_SCHEMES = ("http", "https")

BLOCKED_HOSTNAMES = ("localhost",)
BLOCKED_HOST_SUFFIXES = (".localhost", ".local", ".internal")

BLOCKED_NETWORKS = [
    ipaddress.ip_network(n)
    for n in (
        "10.0.0.0/8",
        "127.0.0.0/8",
        "169.254.0.0/16",
        "192.168.0.0/16",
        "172.16.0.0/12",
        "::1/128",
        "fe80::/10",
        "fc00::/7",
    )
]

# Page kinds we know how to extract
PAGE_PATH_MARKERS = ("/track/", "/album/")

# Hosts an audio proxy request may point at
MEDIA_HOST_MARKERS = ("bandcamp.com", "bcbits.com")

_DOTTED_QUAD = re.compile(r"^\d{1,3}(\.\d{1,3}){3}$")


def _sanitize_url(raw: str) -> str:
    """
    Trim whitespace, strip surrounding angle brackets and surrounding
    single/double quotes.
    """
    if not raw:
        return raw
    s = raw.strip().strip("'\"").strip()
    if s.startswith("<") and s.endswith(">"):
        s = s[1:-1].strip()
    s = s.strip("'\"")
    return s


def _legacy_ipv4(host: str) -> Optional[ipaddress.IPv4Address]:
    """
    Shorthand / integer / hex / octal IPv4 forms ("127.1", "2130706433",
    "0x7f000001", "0177.0.0.1") that the resolver still accepts.
    """
    try:
        return ipaddress.IPv4Address(socket.inet_aton(host))
    except (OSError, ValueError):
        return None


def is_disallowed_hostname(hostname: str) -> bool:
    lower = (hostname or "").lower().strip("[]").rstrip(".")
    if not lower:
        return True
    if lower in BLOCKED_HOSTNAMES or lower.endswith(BLOCKED_HOST_SUFFIXES):
        return True

    # "999.1.1.1" はアドレスとして不正なので拒否
    if _DOTTED_QUAD.match(lower):
        if any(int(part) > 255 for part in lower.split(".")):
            return True

    try:
        ip = ipaddress.ip_address(lower)
    except ValueError:
        ip = _legacy_ipv4(lower)
        if ip is None:
            return False

    if isinstance(ip, ipaddress.IPv6Address) and ip.ipv4_mapped is not None:
        ip = ip.ipv4_mapped
    return any(ip.version == net.version and ip in net for net in BLOCKED_NETWORKS)


def _parse_checked(raw: str):
    url = _sanitize_url(raw or "")
    if not url:
        raise InvalidInput("URL parameter is required")
    try:
        parsed = urlparse(url)
        hostname = parsed.hostname
    except ValueError:
        raise InvalidInput("Invalid URL format")

    if not parsed.scheme or not parsed.netloc:
        raise InvalidInput("Invalid URL format")
    if parsed.scheme.lower() not in ALLOWED_SCHEMES:
        raise SafetyRejected("Invalid URL protocol")
    if not hostname or is_disallowed_hostname(hostname):
        raise SafetyRejected("Invalid Bandcamp URL")
    return parsed


def validate_page_url(raw: str) -> str:
    """
    Validate a catalog page URL and return it normalised.

    Raises:
        InvalidInput: empty or unparsable URL
        SafetyRejected: disallowed protocol / host, or not a track/album page
    """
    parsed = _parse_checked(raw)
    path = parsed.path or ""
    if not any(marker in path for marker in PAGE_PATH_MARKERS):
        raise SafetyRejected("Invalid Bandcamp URL")
    return urlunparse((parsed.scheme.lower(), parsed.netloc.lower(), path, parsed.params, parsed.query, ""))


def validate_media_url(raw: str) -> str:
    """Validate an audio URL handed to the proxy."""
    url = _sanitize_url(raw or "")
    parsed = _parse_checked(url)
    host = (parsed.hostname or "").lower()
    if not any(host == m or host.endswith("." + m) for m in MEDIA_HOST_MARKERS):
        raise InvalidInput("Invalid audio URL - must be a Bandcamp URL")
    return url
