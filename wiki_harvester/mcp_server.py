"""MCP server exposing wiki-harvester crawl/index tools."""

from __future__ import annotations

import json
import logging
import tempfile
from pathlib import Path
from typing import Optional

from mcp.server.fastmcp import FastMCP

from .config import CrawlConfig
from .crawler import run_crawler
from .storage import INDEX_FILE, rebuild_indexes

logger = logging.getLogger("wiki_harvester.mcp")
logger.setLevel(logging.ERROR)

mcp = FastMCP(name="wiki-harvester")


def _crawl_once(config: CrawlConfig) -> str:
    summary = run_crawler(config)
    index_path = summary.output_root / INDEX_FILE
    return json.dumps(
        {
            "processed": summary.processed,
            "outputDir": str(summary.output_root),
            "pages": summary.pages,
            "index": json.loads(index_path.read_text(encoding="utf-8")),
        },
        ensure_ascii=False,
    )


@mcp.tool()
def harvest(
    start_url: str,
    max_pages: int = 5,
    output_dir: Optional[str] = None,
) -> str:
    """Crawl a wiki from ``start_url`` and return a JSON summary with the index."""

    if output_dir:
        config = CrawlConfig(output_root=Path(output_dir).expanduser(), start_url=start_url, max_pages=max_pages)
        return _crawl_once(config)

    with tempfile.TemporaryDirectory(prefix="wiki-harvester-") as tmp_dir:
        config = CrawlConfig(output_root=Path(tmp_dir), start_url=start_url, max_pages=max_pages)
        return _crawl_once(config)


@mcp.tool()
def rebuild_index(output_dir: str) -> str:
    """Rebuild index.json and by-type.json from stored pages and return the index."""

    root = Path(output_dir).expanduser()
    if not root.exists():
        raise FileNotFoundError(f"Output directory does not exist: {root}")
    entries = rebuild_indexes(root)
    return json.dumps([entry.to_dict() for entry in entries], ensure_ascii=False)


def main() -> None:
    """Entry point for running the MCP server."""
    logging.basicConfig(level=logging.ERROR)
    mcp.run()


if __name__ == "__main__":
    main()
