"""Incremental EPUB assembly on top of ebooklib."""

from __future__ import annotations

import html
import logging
import mimetypes
import posixpath
import threading
from pathlib import Path
from typing import Dict, List

from ebooklib import epub

from .errors import AssemblyError
from .images import detect_media_type, infer_image_extension

logger = logging.getLogger("packt_epub")

SECTION_DIR = "xhtml"


def archive_item_name(archive_path: str) -> str:
    """Map an HTML-relative image path to its location in the package.

    Sections live in ``xhtml/``, so ``../images/x.png`` as written in a page
    is stored as ``images/x.png``.
    """
    normalized = posixpath.normpath(posixpath.join(SECTION_DIR, archive_path))
    if normalized.startswith("../") or normalized == "..":
        raise AssemblyError(f"Archive path escapes the package: {archive_path}")
    return normalized


class ArchiveAssembler:
    """Accumulates ordered sections and images and writes them as one EPUB."""

    def __init__(self, title: str, language: str = "en") -> None:
        self.title = title
        self.language = language
        self._book = epub.EpubBook()
        self._book.set_title(title)
        self._book.set_language(language)
        self._sections: List[epub.EpubHtml] = []
        self._images: Dict[str, epub.EpubImage] = {}
        self._has_cover = False
        self._committed = False
        self._lock = threading.Lock()

    @property
    def sections(self) -> List[epub.EpubHtml]:
        return list(self._sections)

    @property
    def images(self) -> List[str]:
        with self._lock:
            return list(self._images)

    def _check_metadata_phase(self, what: str) -> None:
        if self._sections:
            raise AssemblyError(f"{what} must be set before the first section is added")

    def set_identifier(self, identifier: str) -> None:
        self._check_metadata_phase("Identifier")
        self._book.set_identifier(identifier)

    def set_author(self, author: str) -> None:
        self._check_metadata_phase("Author")
        if author:
            self._book.add_author(author)

    def set_description(self, description: str) -> None:
        self._check_metadata_phase("Description")
        if description:
            self._book.add_metadata("DC", "description", description)

    def set_cover(self, scratch_path: Path, archive_name: str) -> str:
        """Embed the cover image; returns its name inside the package.

        The media type comes from the image bytes, and ``archive_name`` gets a
        matching extension when it lacks one.
        """
        self._check_metadata_phase("Cover")
        try:
            data = Path(scratch_path).read_bytes()
        except OSError as exc:
            raise AssemblyError(f"Cannot read cover image {scratch_path}: {exc}") from exc
        media_type = detect_media_type(data, archive_name)
        if media_type is None:
            raise AssemblyError(f"Cover image {scratch_path} is not a recognizable image")
        if mimetypes.guess_type(archive_name)[0] != media_type:
            extension = infer_image_extension(data, media_type)
            if extension:
                archive_name = f"{posixpath.splitext(archive_name)[0]}.{extension}"
        self._book.set_cover(archive_name, data)
        cover = self._book.get_item_with_id("cover-img")
        if cover is not None:
            cover.media_type = media_type
        self._has_cover = True
        return archive_name

    def add_section(
        self,
        body: str,
        title: str,
        subtitle: str = "",
        summary: str = "",
    ) -> str:
        """Append a section after every previously added one; returns its file name."""
        if self._committed:
            raise AssemblyError("Cannot add sections to a committed archive")
        index = len(self._sections) + 1
        file_name = f"{SECTION_DIR}/section{index:04d}.xhtml"
        parts = []
        if subtitle:
            parts.append(f'<h2 class="subtitle">{html.escape(subtitle)}</h2>')
        if summary:
            parts.append(f'<p class="summary">{html.escape(summary)}</p>')
        parts.append(body)
        chapter = epub.EpubHtml(
            uid=f"section{index:04d}",
            title=title,
            file_name=file_name,
            lang=self.language,
        )
        # ebooklib refuses to serialize an empty document
        chapter.content = '<div class="section">' + "".join(parts) + "</div>"
        self._book.add_item(chapter)
        self._sections.append(chapter)
        logger.debug("Added section %d: %s", index, title)
        return file_name

    def add_image(self, scratch_path: Path, archive_path: str) -> str:
        """Embed image bytes under ``archive_path``; repeated paths are ignored."""
        name = archive_item_name(archive_path)
        with self._lock:
            if name in self._images:
                logger.debug("Image %s already embedded", name)
                return name
            try:
                data = Path(scratch_path).read_bytes()
            except OSError as exc:
                raise AssemblyError(f"Cannot read image {scratch_path}: {exc}") from exc
            image = epub.EpubImage(
                uid=f"image{len(self._images) + 1:04d}",
                file_name=name,
                media_type=detect_media_type(data, name) or "",
                content=data,
            )
            self._book.add_item(image)
            self._images[name] = image
        return name

    def commit(self, output_path: Path) -> Path:
        """Serialize the accumulated book; may only be called once."""
        if self._committed:
            raise AssemblyError("Archive has already been committed")
        self._committed = True
        book = self._book
        book.toc = tuple(self._sections)
        book.add_item(epub.EpubNcx())
        book.add_item(epub.EpubNav())
        spine: List[object] = ["cover"] if self._has_cover else []
        book.spine = spine + ["nav"] + self._sections
        try:
            epub.write_epub(str(output_path), book, {})
        except Exception as exc:  # pylint: disable=broad-except
            raise AssemblyError(f"Failed to write {output_path}: {exc}") from exc
        logger.info("Saved EPUB to %s", output_path)
        return Path(output_path)

