"""Optional conversion of a committed EPUB with calibre's ``ebook-convert``."""

from __future__ import annotations

import logging
import shutil
import subprocess
from pathlib import Path
from typing import Optional

from .errors import ConversionError

logger = logging.getLogger("packt_epub")

CONVERTER_NAME = "ebook-convert"
FALLBACK_CONVERTERS = (
    Path("/Applications/calibre.app/Contents/MacOS/ebook-convert"),
    Path("/usr/bin/ebook-convert"),
)


def find_converter() -> Optional[Path]:
    found = shutil.which(CONVERTER_NAME)
    if found:
        return Path(found)
    for candidate in FALLBACK_CONVERTERS:
        if candidate.exists():
            return candidate
    return None


def convert_epub(epub_path: Path, suffix: str = ".mobi", keep_source: bool = False) -> Path:
    """Convert ``epub_path`` next to itself and return the new file.

    The EPUB is removed after a successful conversion unless ``keep_source``
    is set; on failure it is always kept.
    """
    converter = find_converter()
    if converter is None:
        raise ConversionError(f"{CONVERTER_NAME} not found; install calibre or use the epub command")
    target = epub_path.with_suffix(suffix)
    logger.info("Converting %s to %s", epub_path, target)
    try:
        subprocess.run(
            [str(converter), str(epub_path), str(target)],
            capture_output=True,
            text=True,
            check=True,
        )
    except (OSError, subprocess.CalledProcessError) as exc:
        detail = getattr(exc, "stderr", None) or exc
        raise ConversionError(f"{CONVERTER_NAME} failed for {epub_path}: {detail}") from exc
    if not keep_source:
        epub_path.unlink()
    return target
