"""Data models used throughout the EPUB pipeline."""

from __future__ import annotations

import posixpath
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, List, Mapping, Optional

from .errors import DecodeError

IMAGE_ARCHIVE_PREFIX = "../images/"


def _expect_mapping(data: Any, what: str) -> Mapping[str, Any]:
    if not isinstance(data, Mapping):
        raise DecodeError(f"Expected a JSON object for {what}, got {type(data).__name__}")
    return data


def _require_str(data: Mapping[str, Any], key: str, what: str) -> str:
    value = data.get(key)
    if not isinstance(value, str):
        raise DecodeError(f"{what} is missing the string field {key!r}")
    return value


def _optional_str(data: Mapping[str, Any], key: str) -> str:
    value = data.get(key)
    return value if isinstance(value, str) else ""


def _list_of(data: Mapping[str, Any], key: str, what: str) -> List[Any]:
    value = data.get(key)
    if value is None:
        return []
    if not isinstance(value, list):
        raise DecodeError(f"{what} field {key!r} must be a list")
    return value


@dataclass(frozen=True)
class TocSection:
    """A single page of a chapter."""

    id: str
    title: str
    content_type: str = ""

    @classmethod
    def from_dict(cls, data: Any) -> "TocSection":
        data = _expect_mapping(data, "section")
        return cls(
            id=_require_str(data, "id", "section"),
            title=_optional_str(data, "title"),
            content_type=_optional_str(data, "contentType"),
        )


@dataclass(frozen=True)
class TocEntry:
    """A preface, chapter or appendix with its ordered sections."""

    id: str
    title: str
    sections: List[TocSection] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Any) -> "TocEntry":
        data = _expect_mapping(data, "table of contents entry")
        return cls(
            id=_require_str(data, "id", "table of contents entry"),
            title=_optional_str(data, "title"),
            sections=[
                TocSection.from_dict(item)
                for item in _list_of(data, "sections", "table of contents entry")
            ],
        )


@dataclass(frozen=True)
class TableOfContents:
    """Book structure; defines the traversal order of the pipeline."""

    product_id: str
    prefaces: List[TocEntry] = field(default_factory=list)
    chapters: List[TocEntry] = field(default_factory=list)
    appendices: List[TocEntry] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Any) -> "TableOfContents":
        data = _expect_mapping(data, "table of contents")

        def entries(key: str) -> List[TocEntry]:
            return [TocEntry.from_dict(item) for item in _list_of(data, key, "table of contents")]

        return cls(
            product_id=_optional_str(data, "productId"),
            prefaces=entries("prefaces"),
            chapters=entries("chapters"),
            appendices=entries("appendices"),
        )


@dataclass
class Summary:
    """Product summary returned by the metadata endpoint."""

    title: str
    product_id: str
    authors: List[str]
    about: str
    one_liner: str
    cover_image: str

    @classmethod
    def from_dict(cls, data: Any) -> "Summary":
        data = _expect_mapping(data, "summary")
        authors = _list_of(data, "authors", "summary")
        if not all(isinstance(author, str) for author in authors):
            raise DecodeError("summary field 'authors' must contain author ids")
        return cls(
            title=_require_str(data, "title", "summary"),
            product_id=_optional_str(data, "productId"),
            authors=authors,
            about=_optional_str(data, "about"),
            one_liner=_optional_str(data, "oneLiner"),
            cover_image=_optional_str(data, "coverImage"),
        )


@dataclass
class Author:
    """Author profile referenced from the summary."""

    id: str
    name: str
    description: str = ""

    @classmethod
    def from_dict(cls, data: Any) -> "Author":
        data = _expect_mapping(data, "author")
        return cls(
            id=_optional_str(data, "id"),
            name=_require_str(data, "author", "author"),
            description=_optional_str(data, "description"),
        )


@dataclass(frozen=True)
class ImageReference:
    """Image source as embedded in page HTML plus its path inside the archive."""

    source: str
    target: str

    @classmethod
    def from_source(cls, source: str) -> "ImageReference":
        return cls(source=source, target=IMAGE_ARCHIVE_PREFIX + posixpath.basename(source))

    @property
    def basename(self) -> str:
        return posixpath.basename(self.target)


@dataclass
class MaterializedAsset:
    """Downloaded image stored in scratch storage awaiting embedding."""

    reference: ImageReference
    scratch_path: Path
    media_type: Optional[str] = None

    @property
    def archive_path(self) -> str:
        return self.reference.target


@dataclass
class BuildResult:
    """Outcome of a successful pipeline run."""

    output_path: Path
    title: str
    section_titles: List[str]
    image_paths: List[str]
