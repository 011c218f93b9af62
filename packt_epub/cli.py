"""Command-line entry point for the Packt EPUB builder."""

from __future__ import annotations

import argparse
import logging
import sys
import time
from pathlib import Path
from typing import Iterable, Sequence

from .config import CONFIG_PATH, DEFAULT_SCRATCH_DIR, DEFAULT_TIMEOUT, BuildConfig
from .convert import convert_epub
from .credentials import resolve_token
from .errors import PacktEpubError
from .fetcher import ContentFetcher
from .pipeline import EpubBuilder

logger = logging.getLogger("packt_epub.cli")


def _ensure_command_prefix(argv: Sequence[str], commands: Iterable[str]) -> Sequence[str]:
    if not argv:
        return argv
    first = argv[0]
    if first in commands or first.startswith("-"):
        return argv
    return ("epub", *argv)


def _add_book_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("isbn", help="ISBN or product id of the book to download")
    parser.add_argument(
        "--output",
        default=Path("."),
        type=Path,
        help="Directory where the book file should be written (default: current directory)",
    )
    parser.add_argument(
        "--token",
        default=None,
        help="Bearer token for the content API (default: PACKT_TOKEN or ~/.packt_config)",
    )
    parser.add_argument(
        "--config",
        default=CONFIG_PATH,
        type=Path,
        help="dotenv file holding TOKEN= (written by the login flow)",
    )
    parser.add_argument(
        "--scratch-dir",
        default=DEFAULT_SCRATCH_DIR,
        type=Path,
        help="Directory for temporary image downloads",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=DEFAULT_TIMEOUT,
        help="Per-request timeout in seconds",
    )
    parser.add_argument(
        "--jobs",
        type=int,
        default=1,
        help="Parallel image downloads per page",
    )
    parser.add_argument(
        "--no-progress",
        action="store_true",
        help="Do not display the chapter progress bar",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="packt-epub",
        description="Download a Packt book through the subscription API and package it as an e-book.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    epub_parser = subparsers.add_parser("epub", help="Build an EPUB file")
    _add_book_arguments(epub_parser)

    mobi_parser = subparsers.add_parser(
        "mobi", help="Build an EPUB and convert it to MOBI with calibre's ebook-convert"
    )
    _add_book_arguments(mobi_parser)
    mobi_parser.add_argument(
        "--keep-epub",
        action="store_true",
        help="Keep the intermediate EPUB after conversion",
    )

    argv = list(sys.argv[1:] if argv is None else argv)
    argv = list(_ensure_command_prefix(argv, subparsers.choices.keys()))
    return parser.parse_args(argv)


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        force=True,
    )
    # urllib3 connection chatter drowns out the per-page messages.
    logging.getLogger("urllib3").setLevel(logging.WARNING)


def _run_build(args: argparse.Namespace) -> Path:
    config = BuildConfig(
        output_dir=Path(args.output).resolve(),
        scratch_dir=Path(args.scratch_dir).expanduser(),
        timeout=args.timeout,
        jobs=args.jobs,
    )
    token = resolve_token(args.token, Path(args.config).expanduser())
    fetcher = ContentFetcher(config, token=token)
    builder = EpubBuilder(config, fetcher, progress=not args.no_progress)

    overall_start = time.perf_counter()
    result = builder.build(args.isbn)
    output_path = result.output_path
    if args.command == "mobi":
        output_path = convert_epub(output_path, keep_source=args.keep_epub)
    logger.debug("Total time %.2fs", time.perf_counter() - overall_start)
    return output_path


def main(argv: Sequence[str] | None = None) -> int:
    args = parse_args(argv)
    _configure_logging(args.verbose)
    try:
        output_path = _run_build(args)
    except (PacktEpubError, OSError) as exc:
        logger.error("%s", exc)
        return 1
    print(f"Output : {output_path}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
