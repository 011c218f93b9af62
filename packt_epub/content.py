"""HTML rewriting applied to every page fragment before it enters the archive.

Two unrelated defects of the upstream markup are corrected here:

* each page repeats its section title as an ``<h1>`` block, which the EPUB
  table of contents already carries;
* image sources point at a duplicated ``/graphics/<x>/graphics/<y>/`` path
  that neither resolves inside the archive nor on the CDN.

All functions are pure.
"""

from __future__ import annotations

import re
from typing import List, Tuple

from bs4 import BeautifulSoup

from .models import IMAGE_ARCHIVE_PREFIX, ImageReference

H1_PATTERN = re.compile(r"<h1\b.*?</h1>", re.DOTALL | re.IGNORECASE)
IMG_SRC_PATTERN = re.compile(r'<img\b[^>]*?\bsrc="([^"]*)"')
NESTED_GRAPHICS_PATTERN = re.compile(r'/graphics/([^"\s]*?)/graphics/([^"\s]*?)/')
GRAPHICS_SEGMENT_PATTERN = re.compile(r"/graphics/(.*?)/")
IMG_TAG_PATTERN = re.compile(r"<img\b([^>]*?)/?>")
BR_TAG_PATTERN = re.compile(r"<br(\s[^>]*?|)/?>")


def remove_heading(html: str) -> str:
    """Drop the longest ``<h1>...</h1>`` block from the fragment."""
    groups = [match.group(0) for match in H1_PATTERN.finditer(html)]
    # Longest first so a shorter heading never cuts into a longer one.
    groups.sort(key=len, reverse=True)
    if not groups:
        return html
    return html.replace(groups[0], "", 1)


def _self_close(pattern: re.Pattern, name: str, html: str) -> str:
    return pattern.sub(lambda match: f"<{name}{match.group(1).rstrip()}/>", html)


def rewrite_resources(html: str) -> Tuple[str, List[ImageReference]]:
    """Point images at the archive and make void tags self-closing.

    Returns the rewritten fragment and one reference per ``<img src>`` found
    in the original markup, in document order.
    """
    sources = IMG_SRC_PATTERN.findall(html)
    rewritten = NESTED_GRAPHICS_PATTERN.sub(IMAGE_ARCHIVE_PREFIX, html)
    rewritten = _self_close(IMG_TAG_PATTERN, "img", rewritten)
    rewritten = _self_close(BR_TAG_PATTERN, "br", rewritten)
    return rewritten, [ImageReference.from_source(src) for src in sources]


def fix_image_url(path: str) -> str:
    """Strip the ``/graphics/<id>/`` segment that breaks CDN download URLs."""
    return GRAPHICS_SEGMENT_PATTERN.sub("", path, count=1)


def normalize_page(html: str) -> Tuple[str, List[ImageReference]]:
    """Apply both corrections to a raw page fragment."""
    return rewrite_resources(remove_heading(html))


def html_to_text(html: str) -> str:
    """Render a marketing blurb (HTML) as plain text for EPUB metadata."""
    if not html:
        return ""
    soup = BeautifulSoup(html, "html.parser")
    return soup.get_text(" ", strip=True)
