"""Utility helpers for string normalization and path handling."""

from __future__ import annotations

import posixpath
import re
from urllib.parse import urlparse

UNSAFE_FILENAME_PATTERN = re.compile(r'[\x00-\x1f<>:"/\\|?*]+')
MAX_FILENAME_LEN = 150


def safe_filename(value: str, fallback: str = "book") -> str:
    """Turn a book title into a file name that stays inside the output directory."""
    normalized = UNSAFE_FILENAME_PATTERN.sub("_", value).strip().strip(".")
    return normalized[:MAX_FILENAME_LEN].rstrip() or fallback


def url_basename(url: str) -> str:
    """Return the last path component of a URL, ignoring any query string."""
    return posixpath.basename(urlparse(url).path)
