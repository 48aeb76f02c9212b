"""Command-line entry point for the wiki harvester."""

from __future__ import annotations

import argparse
import logging
import sys
import time
from pathlib import Path
from typing import Iterable, Sequence

from .config import DEFAULT_OUTPUT_ROOT, DEFAULT_START_URL, CrawlConfig
from .crawler import run_crawler
from .storage import rebuild_indexes

logger = logging.getLogger("wiki_harvester.cli")


def _ensure_command_prefix(argv: Sequence[str], commands: Iterable[str]) -> Sequence[str]:
    if not argv:
        return ("crawl",)
    first = argv[0]
    if first in commands or first in ("-h", "--help"):
        return argv
    return ("crawl", *argv)


def _split_keywords(raw: str) -> tuple:
    return tuple(token.strip() for token in (raw or "").split(",") if token.strip())


def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--out",
        default=DEFAULT_OUTPUT_ROOT,
        type=Path,
        help="Directory where page records, images and indexes are written",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )


def _add_crawl_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "start_url",
        nargs="?",
        default=DEFAULT_START_URL,
        help="Page the crawl starts from; only its host is crawled",
    )
    parser.add_argument(
        "--max",
        dest="max_pages",
        type=int,
        default=40,
        help="Maximum number of pages to process",
    )
    parser.add_argument(
        "--img-include",
        default="",
        help="Comma-separated keywords; only images whose URL or alt text contains one are kept",
    )
    parser.add_argument(
        "--max-images",
        type=int,
        default=150,
        help="Maximum number of image downloads for the whole run",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=20.0,
        help="Per-request timeout in seconds",
    )
    _add_common_arguments(parser)


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Politely crawl a wiki into JSON page records with localized images.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    crawl_parser = subparsers.add_parser(
        "crawl", help="Crawl the wiki and write pages, images, manifest and indexes"
    )
    _add_crawl_arguments(crawl_parser)

    rebuild_parser = subparsers.add_parser(
        "rebuild-index", help="Regenerate index.json and by-type.json from stored pages"
    )
    _add_common_arguments(rebuild_parser)

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


def _run_crawl(args: argparse.Namespace) -> None:
    config = CrawlConfig(
        output_root=Path(args.out),
        start_url=args.start_url,
        max_pages=args.max_pages,
        max_images=args.max_images,
        image_keywords=_split_keywords(args.img_include),
        timeout=args.timeout,
    )
    overall_start = time.perf_counter()
    summary = run_crawler(config)
    logger.info(
        "Finished in %.2fs (%d page(s) processed, output: %s)",
        time.perf_counter() - overall_start,
        summary.processed,
        summary.output_root,
    )


def _run_rebuild(args: argparse.Namespace) -> None:
    entries = rebuild_indexes(Path(args.out))
    logger.info("Indexed %d page(s) in %s", len(entries), args.out)


def main(argv: Sequence[str] | None = None) -> int:
    args = parse_args(argv)
    _configure_logging(args.verbose)
    try:
        if args.command == "crawl":
            _run_crawl(args)
        else:
            _run_rebuild(args)
    except OSError as exc:
        logger.error("Aborting: %s", exc)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
