"""
正規化ヘルパー: アーティスト名の比較キー、"Artist - Title" の分割、
再生時間の整形、画像 URL のサイズ指定の除去。
"""
from __future__ import annotations

import re
from typing import Optional, Tuple

# "Artist - Title" separator (spaced hyphen, so "NA-3LDK" stays intact)
TITLE_SEPARATOR = " - "
_LOOSE_TITLE_SPLIT = re.compile(r"^(.+?)\s+-\s+(.+)$")
_BULLET_PREFIX = re.compile(r"^\s*[^•]+•\s*")
_FROM_BY_PREFIX = re.compile(r"^from\s+.+?\s+by\s+", re.IGNORECASE)
_IMAGE_SIZE_SUFFIX = re.compile(r"_\d+\.(jpg|png)$")


def normalize_name(name: str | None) -> str:
    """
    名前比較用のキー:
    - 小文字化
    - 前後の空白を削る
    - 連続する空白を 1 つに詰める
    """
    return re.sub(r"\s+", " ", (name or "").lower().strip())


def collapse_whitespace(text: str | None) -> str:
    return re.sub(r"\s+", " ", text or "").strip()


def split_artist_title(raw_title: str | None) -> Tuple[Optional[str], str]:
    """
    Split "Artist - Title" on the LAST spaced hyphen.

    >>> split_artist_title("NA-3LDK / DEFRIC - Song Title")
    ('NA-3LDK / DEFRIC', 'Song Title')

    Returns (None, title) when no separator is present.
    """
    title = raw_title or ""
    idx = title.rfind(TITLE_SEPARATOR)
    if idx > 0:
        artist = title[:idx].strip()
        rest = title[idx + len(TITLE_SEPARATOR):].strip()
        if artist and rest:
            return artist, rest

    m = _LOOSE_TITLE_SPLIT.match(title)
    if m:
        return m.group(1).strip(), m.group(2).strip()
    return None, title.strip()


def strip_bullet_prefix(title: str) -> str:
    """"Track Name • Artist" 形式の先頭部分を削る。"""
    return _BULLET_PREFIX.sub("", title or "").strip()


def strip_from_by_prefix(artist: str) -> str:
    """'from <album> by <artist>' -> '<artist>'"""
    return _FROM_BY_PREFIX.sub("", artist or "").strip()


def format_duration(seconds: float | int | str | None) -> str:
    """Seconds -> "HH:MM:SS". Unknown / unparsable -> ""."""
    if seconds is None or seconds == "":
        return ""
    try:
        total = float(seconds)
    except (TypeError, ValueError):
        return ""
    if total <= 0:
        return ""
    hours = int(total // 3600)
    minutes = int((total % 3600) // 60)
    secs = int(total % 60)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}"


def upgrade_image_url(url: str | None) -> str:
    """'..._10.jpg' -> '..._0.jpg' (unscaled original)."""
    if not url:
        return ""
    return _IMAGE_SIZE_SUFFIX.sub(r"_0.\1", url)
