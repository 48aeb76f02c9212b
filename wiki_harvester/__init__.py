"""Polite offline harvester for wiki pages and their images."""

from .config import CrawlConfig
from .crawler import CrawlScheduler, CrawlSummary, run_crawler
from .storage import rebuild_indexes

__all__ = ["CrawlConfig", "CrawlScheduler", "CrawlSummary", "rebuild_indexes", "run_crawler"]
