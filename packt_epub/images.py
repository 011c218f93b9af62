"""Image downloading, scratch bookkeeping and archive registration."""

from __future__ import annotations

import logging
import mimetypes
import threading
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import TYPE_CHECKING, Dict, List, Optional, Sequence

from filetype import guess

from .content import fix_image_url
from .errors import PacktEpubError
from .models import ImageReference, MaterializedAsset

if TYPE_CHECKING:  # pragma: no cover
    from .archive import ArchiveAssembler
    from .fetcher import ContentFetcher

logger = logging.getLogger("packt_epub")

IMAGE_SUFFIXES = {".png", ".jpg", ".jpeg"}
SIGNATURE_BYTES = 8192


def detect_media_type(data: bytes, name: str = "") -> Optional[str]:
    """Detect an image MIME type from its signature, falling back to the name."""
    kind = guess(data)
    if kind and kind.mime.startswith("image/"):
        return kind.mime
    if name:
        media_type, _ = mimetypes.guess_type(name)
        if media_type and media_type.startswith("image/"):
            return media_type
    return None


def infer_image_extension(data: bytes, media_type: Optional[str] = None) -> Optional[str]:
    """Guess an image file extension from its signature or MIME type."""
    kind = guess(data)
    if kind and kind.mime.startswith("image/"):
        return kind.extension
    if not media_type:
        return None
    parts = media_type.split(";")[0].split("/")
    if len(parts) == 2 and parts[0] == "image":
        ext = parts[1].strip().lower()
        if ext == "jpeg":
            ext = "jpg"
        return ext
    return None


def image_download_url(static_base: str, isbn: str, source: str) -> str:
    """Build the CDN URL for an image source found in page HTML."""
    return f"{static_base}/products/{isbn}/{fix_image_url(source)}"


class ScratchRegistry:
    """Scratch files written during one run, purged once the run is over."""

    def __init__(self) -> None:
        self._paths: Dict[Path, None] = {}
        self._lock = threading.Lock()

    def record(self, path: Path) -> None:
        with self._lock:
            self._paths[Path(path)] = None

    def __contains__(self, path: object) -> bool:
        with self._lock:
            return Path(path) in self._paths  # type: ignore[arg-type]

    def __len__(self) -> int:
        with self._lock:
            return len(self._paths)

    def purge(self) -> List[Path]:
        """Delete every recorded file; returns the ones that could not be removed."""
        failed: List[Path] = []
        with self._lock:
            paths = list(self._paths)
            self._paths.clear()
        for path in paths:
            try:
                path.unlink()
            except FileNotFoundError:
                continue
            except OSError as exc:
                logger.warning("Failed to remove scratch file %s: %s", path, exc)
                failed.append(path)
        return failed


class ImageMaterializer:
    """Downloads page images into scratch storage and embeds them in the archive.

    A failing image is logged and skipped; the rest of the batch continues.
    """

    def __init__(
        self,
        fetcher: "ContentFetcher",
        archive: "ArchiveAssembler",
        registry: ScratchRegistry,
        scratch_dir: Path,
        static_base: str,
        jobs: int = 1,
    ) -> None:
        self.fetcher = fetcher
        self.archive = archive
        self.registry = registry
        self.scratch_dir = Path(scratch_dir)
        self.static_base = static_base
        self.jobs = max(1, jobs)

    def _materialize_one(self, isbn: str, reference: ImageReference) -> Optional[MaterializedAsset]:
        scratch_path = self.scratch_dir / reference.basename
        url = image_download_url(self.static_base, isbn, reference.source)
        try:
            if scratch_path in self.registry and scratch_path.exists():
                logger.debug("Reusing %s for %s", scratch_path, reference.source)
            else:
                self.fetcher.download(url, scratch_path)
                self.registry.record(scratch_path)
            with scratch_path.open("rb") as handle:
                head = handle.read(SIGNATURE_BYTES)
            media_type = detect_media_type(head, reference.basename)
            if media_type is None:
                logger.warning("Skipping %s: not a recognizable image", url)
                return None
            asset = MaterializedAsset(reference=reference, scratch_path=scratch_path, media_type=media_type)
            self.archive.add_image(asset.scratch_path, asset.archive_path)
        except (PacktEpubError, OSError) as exc:
            logger.warning("Failed to embed image %s (%s): %s", reference.source, url, exc)
            return None
        return asset

    def materialize(self, isbn: str, references: Sequence[ImageReference]) -> List[MaterializedAsset]:
        """Download and register every distinct image of one page.

        Returns only after all images of the batch have been handled.
        """
        unique: Dict[str, ImageReference] = {}
        for reference in references:
            if not reference.basename:
                logger.warning("Skipping image with empty source path: %r", reference.source)
                continue
            unique.setdefault(reference.target, reference)
        if not unique:
            return []
        self.scratch_dir.mkdir(parents=True, exist_ok=True)

        if self.jobs == 1 or len(unique) == 1:
            results = [self._materialize_one(isbn, ref) for ref in unique.values()]
        else:
            with ThreadPoolExecutor(max_workers=self.jobs) as pool:
                results = list(pool.map(lambda ref: self._materialize_one(isbn, ref), unique.values()))
        return [asset for asset in results if asset is not None]

    def materialize_cover(self, url: str, name: str) -> Path:
        """Download the cover image; failures propagate to the caller.

        Stored as ``cover-<name>``, apart from page images of the same name.
        """
        scratch_path = self.scratch_dir / f"cover-{name}"
        self.fetcher.download(url, scratch_path)
        self.registry.record(scratch_path)
        return scratch_path
