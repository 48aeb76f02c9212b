"""Configuration objects and constants for the harvester."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Tuple

DEFAULT_START_URL = "https://eldenring.wiki.gg/"
DEFAULT_OUTPUT_ROOT = Path("output") / "wiki"
USER_AGENT = "eldenring-checklist-scraper/0.1 (+https://localhost)"
IMAGE_ACCEPT = "image/avif,image/webp,image/apng,image/*,*/*;q=0.8"

# Asset hosts accepted for images even when they are not under the crawl's domain.
EXTRA_IMAGE_HOSTS = (
    "i.imgur.com",
    "imgur.com",
    "wp.com",
    "i0.wp.com",
    "i1.wp.com",
    "i2.wp.com",
    "static.wiki.gg",
    "images.wiki.gg",
    "media.wiki.gg",
)

# MediaWiki namespaces that never hold article content.
BANNED_NAMESPACES = (
    "File:",
    "Fichier:",
    "Special:",
    "User:",
    "Talk:",
    "Template:",
    "Module:",
    "Help:",
    "Project:",
    "Media:",
    "MediaWiki:",
)


@dataclass
class CrawlConfig:
    """Top-level settings that control crawling and image localization."""

    output_root: Path = DEFAULT_OUTPUT_ROOT
    start_url: str = DEFAULT_START_URL
    max_pages: int = 40
    max_images: int = 150
    image_keywords: Tuple[str, ...] = ()
    timeout: float = 20.0
    page_delay: float = 1.2
    image_delay: float = 0.3
    user_agent: str = USER_AGENT
