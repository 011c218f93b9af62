"""High-level orchestration: table of contents to a committed EPUB."""

from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import List, Optional

from tqdm import tqdm

from .archive import ArchiveAssembler
from .config import EPUB_EXTENSION, BuildConfig
from .content import html_to_text, normalize_page
from .fetcher import ContentFetcher
from .images import IMAGE_SUFFIXES, ImageMaterializer, ScratchRegistry
from .models import BuildResult, Summary, TableOfContents
from .utils import safe_filename, url_basename

logger = logging.getLogger("packt_epub")


def sweep_scratch_dir(scratch_dir: Path) -> List[Path]:
    """Remove stray image files left behind by interrupted runs."""
    removed: List[Path] = []
    try:
        entries = list(scratch_dir.iterdir())
    except FileNotFoundError:
        return removed
    except OSError as exc:
        logger.warning("Cannot list scratch directory %s: %s", scratch_dir, exc)
        return removed
    for entry in entries:
        if entry.suffix.lower() not in IMAGE_SUFFIXES:
            continue
        try:
            if not entry.is_file():
                continue
            entry.unlink()
            removed.append(entry)
        except OSError as exc:
            logger.warning("Failed to remove stray scratch file %s: %s", entry, exc)
    return removed


def cleanup_scratch(registry: ScratchRegistry, scratch_dir: Path) -> None:
    """Best-effort removal of everything this run left in scratch storage."""
    failed = registry.purge()
    swept = sweep_scratch_dir(scratch_dir)
    logger.debug(
        "Scratch cleanup: %d stray file(s) removed, %d failure(s)",
        len(swept),
        len(failed),
    )


class EpubBuilder:
    """Drives fetch, normalize, materialize and append for one book."""

    def __init__(
        self,
        config: BuildConfig,
        fetcher: ContentFetcher,
        progress: bool = True,
    ) -> None:
        self.config = config
        self.fetcher = fetcher
        self.progress = progress
        self.registry = ScratchRegistry()

    def _start_archive(self, isbn: str, summary: Summary, author_name: str) -> ArchiveAssembler:
        archive = ArchiveAssembler(summary.title, language=self.config.language)
        archive.set_identifier(isbn)
        archive.set_author(author_name)
        archive.set_description(html_to_text(summary.about) or summary.one_liner)
        return archive

    def _append_page(
        self,
        isbn: str,
        chapter_id: str,
        section_id: str,
        title: str,
        archive: ArchiveAssembler,
        materializer: ImageMaterializer,
    ) -> None:
        raw = self.fetcher.get_page(isbn, chapter_id, section_id)
        body, references = normalize_page(raw)
        if references:
            assets = materializer.materialize(isbn, references)
            logger.debug(
                "Section %s/%s: %d/%d image(s) embedded",
                chapter_id,
                section_id,
                len(assets),
                len({ref.target for ref in references}),
            )
        archive.add_section(body, title)

    def _append_chapters(
        self,
        isbn: str,
        toc: TableOfContents,
        archive: ArchiveAssembler,
        materializer: ImageMaterializer,
    ) -> None:
        with tqdm(
            total=len(toc.chapters),
            desc="Chapters",
            unit="chapter",
            disable=not self.progress,
        ) as bar:
            for chapter in toc.chapters:
                if not chapter.sections:
                    logger.warning("Chapter %s (%s) has no sections; skipping", chapter.id, chapter.title)
                    bar.update(1)
                    continue
                # The first section doubles as the chapter page and carries the chapter title.
                first = chapter.sections[0]
                self._append_page(isbn, chapter.id, first.id, chapter.title, archive, materializer)
                for index, section in enumerate(chapter.sections):
                    if index == 0:
                        continue
                    self._append_page(isbn, chapter.id, section.id, section.title, archive, materializer)
                bar.update(1)

    def build(self, isbn: str, output_path: Optional[Path] = None) -> BuildResult:
        """Download the book identified by ``isbn`` and write it as one EPUB.

        Any fetch, decode or assembly error aborts the run; scratch storage is
        cleaned up either way.
        """
        start = time.perf_counter()
        scratch_dir = Path(self.config.scratch_dir)
        scratch_dir.mkdir(parents=True, exist_ok=True)
        try:
            summary = self.fetcher.get_summary(isbn)
            author_name = ""
            if summary.authors:
                author_name = self.fetcher.get_author(summary.authors[0]).name
            else:
                logger.warning("No author listed for %s", isbn)
            toc = self.fetcher.get_toc(isbn)
            logger.info("Building '%s' (%d chapters)", summary.title, len(toc.chapters))

            archive = self._start_archive(isbn, summary, author_name)
            materializer = ImageMaterializer(
                self.fetcher,
                archive,
                self.registry,
                scratch_dir,
                self.config.static_base,
                jobs=self.config.jobs,
            )
            if summary.cover_image:
                cover_name = url_basename(summary.cover_image) or "cover"
                cover_path = materializer.materialize_cover(summary.cover_image, cover_name)
                archive.set_cover(cover_path, cover_name)
            else:
                logger.warning("No cover image available for %s", isbn)

            self._append_chapters(isbn, toc, archive, materializer)

            if output_path is None:
                output_dir = Path(self.config.output_dir)
                output_dir.mkdir(parents=True, exist_ok=True)
                output_path = output_dir / (safe_filename(summary.title) + EPUB_EXTENSION)
            archive.commit(output_path)
        finally:
            cleanup_scratch(self.registry, scratch_dir)

        logger.info(
            "Finished '%s' in %.2fs (%d sections, %d images)",
            summary.title,
            time.perf_counter() - start,
            len(archive.sections),
            len(archive.images),
        )
        return BuildResult(
            output_path=Path(output_path),
            title=summary.title,
            section_titles=[section.title for section in archive.sections],
            image_paths=archive.images,
        )
