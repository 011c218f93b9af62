from __future__ import annotations

from pathlib import Path
from typing import Dict, List, Tuple

import pytest

from packt_epub.config import BuildConfig
from packt_epub.errors import FetchError
from packt_epub.models import Author, Summary, TableOfContents

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64
JPEG_BYTES = b"\xff\xd8\xff\xe0" + b"\x00" * 64
ISBN = "9781800000000"
STATIC = "https://static.example.test"


def image_url(path: str) -> str:
    return f"{STATIC}/products/{ISBN}/{path}"


class FakeFetcher:
    """In-memory stand-in for ContentFetcher."""

    def __init__(
        self,
        toc: dict,
        pages: Dict[Tuple[str, str], str],
        images: Dict[str, bytes] | None = None,
        summary: dict | None = None,
    ) -> None:
        self.toc = toc
        self.pages = pages
        self.images = dict(images or {})
        self.summary = summary or {
            "title": "Test Book",
            "productId": ISBN,
            "authors": ["42"],
            "about": "<p>A <b>fine</b> book.</p>",
            "coverImage": f"{STATIC}/covers/cover.png",
        }
        self.images.setdefault(f"{STATIC}/covers/cover.png", PNG_BYTES)
        self.page_calls: List[Tuple[str, str]] = []
        self.downloads: List[str] = []

    def get_summary(self, isbn):
        return Summary.from_dict(self.summary)

    def get_author(self, author_id):
        return Author.from_dict({"id": author_id, "author": "Jane Doe"})

    def get_toc(self, isbn):
        return TableOfContents.from_dict(self.toc)

    def get_page(self, isbn, chapter_id, section_id):
        self.page_calls.append((chapter_id, section_id))
        try:
            return self.pages[(chapter_id, section_id)]
        except KeyError:
            raise FetchError(f"page/{chapter_id}/{section_id}", "404 Not Found") from None

    def download(self, url, destination: Path) -> Path:
        self.downloads.append(url)
        if url not in self.images:
            raise FetchError(url, "404 Not Found")
        destination.parent.mkdir(parents=True, exist_ok=True)
        destination.write_bytes(self.images[url])
        return destination


def chapter(chapter_id: str, title: str, *sections: Tuple[str, str]) -> dict:
    return {
        "id": chapter_id,
        "title": title,
        "sections": [
            {"id": sid, "title": stitle, "contentType": "text"} for sid, stitle in sections
        ],
    }


@pytest.fixture
def config(tmp_path) -> BuildConfig:
    return BuildConfig(
        output_dir=tmp_path / "out",
        scratch_dir=tmp_path / "scratch",
        static_base=STATIC,
        services_base="https://services.example.test",
    )
