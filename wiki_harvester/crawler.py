"""Breadth-first crawl orchestration: frontier, politeness and per-page pipeline."""

from __future__ import annotations

import logging
import time
from collections import deque
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Deque, Dict, Iterable, List, Optional, Set
from urllib.parse import urlparse

from .classify import classify_page
from .config import BANNED_NAMESPACES, CrawlConfig
from .content import extract_content
from .fetcher import FetchError, PageFetcher
from .images import ImagePipeline
from .models import IndexEntry, PageRecord
from .rewrite import rewrite_content_html
from .robots import RobotsPolicy, fetch_robots
from .storage import PageStore
from .utils import absolutize, decode_path, strip_fragment, url_to_slug

logger = logging.getLogger("wiki_harvester")

IDLE = "idle"
RUNNING = "running"
DONE = "done"


@dataclass
class CrawlSummary:
    """Outcome of one crawl run."""

    processed: int
    output_root: Path
    pages: List[str] = field(default_factory=list)


class Pacer:
    """Enforces a fixed pause between consecutive events."""

    def __init__(self, delay: float, sleep: Callable[[float], None] = time.sleep) -> None:
        self.delay = delay
        self.sleep = sleep
        self._started = False

    def wait(self) -> None:
        if self._started:
            self.sleep(self.delay)
        self._started = True


def is_wiki_path_allowed(url: str) -> bool:
    """Reject MediaWiki namespaces that hold no article content."""
    last_segment = decode_path(urlparse(url).path).rsplit("/", 1)[-1]
    return not last_segment.startswith(BANNED_NAMESPACES)


class CrawlScheduler:
    """Single-threaded crawl loop owning the frontier, visited set and manifest."""

    def __init__(
        self,
        config: CrawlConfig,
        fetcher: Optional[PageFetcher] = None,
        store: Optional[PageStore] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.config = config
        self.fetcher = fetcher or PageFetcher(user_agent=config.user_agent, timeout=config.timeout)
        self.store = store or PageStore(config.output_root)
        self.sleep = sleep
        self.start_url = strip_fragment(config.start_url)
        self.start_host = urlparse(self.start_url).netloc.lower()
        self.frontier: Deque[str] = deque()
        self.visited: Set[str] = set()
        self.queued: Set[str] = set()
        self.processed = 0
        self.state = IDLE
        self.robots = RobotsPolicy()
        self.page_pacer = Pacer(config.page_delay, sleep)
        self.images = ImagePipeline(config, self.fetcher, self.store.output_root, sleep=sleep)
        self.index: Dict[str, IndexEntry] = {}
        self.saved: List[str] = []

    def run(self) -> CrawlSummary:
        """Crawl until the frontier is empty or the page budget is spent."""
        self.store.prepare()
        self.images.manifest.update(self.store.load_manifest())
        self.index = self.store.load_index()
        self.robots = fetch_robots(self.start_url, self.fetcher.session, self.config.timeout)

        self.frontier.append(self.start_url)
        self.queued.add(self.start_url)
        self.state = RUNNING
        while self.frontier and self.processed < self.config.max_pages:
            url = self.frontier.popleft()
            if url in self.visited:
                continue
            self.visited.add(url)
            if not self.admit(url):
                continue

            self.page_pacer.wait()
            try:
                self.process_page(url)
            except FetchError as exc:
                logger.warning("[skip] %s: %s", url, exc)
            except OSError:
                raise
            except Exception:  # pylint: disable=broad-except
                logger.exception("[error] %s", url)
        self.state = DONE

        self.store.commit(self.images.manifest, self.index.values())
        logger.info("[done] processed %d page(s) into %s", self.processed, self.store.output_root)
        return CrawlSummary(
            processed=self.processed,
            output_root=self.store.output_root,
            pages=list(self.saved),
        )

    def admit(self, url: str) -> bool:
        """Host restriction and robots policy; rejections are logged and skipped."""
        parsed = urlparse(url)
        if parsed.netloc.lower() != self.start_host:
            logger.info("[skip host] %s", url)
            return False
        path = parsed.path or "/"
        if not self.robots.allows(path):
            logger.info("[skip robots] %s", path)
            return False
        return True

    def process_page(self, url: str) -> PageRecord:
        """Fetch, extract, localize, classify and persist one page."""
        html = self.fetcher.fetch_html(url)
        self.processed += 1
        path = urlparse(url).path or "/"
        logger.info("[%d/%d] %s", self.processed, self.config.max_pages, path)

        page = extract_content(html, url)
        slug = url_to_slug(url)
        images = self.images.process_page(page.images, url, slug)

        content_html_local = None
        if page.content_html:
            mapping = {image.url: image.local_path for image in images if image.local_path}
            content_html_local = rewrite_content_html(page.content_html, url, mapping)
            if content_html_local != page.content_html:
                logger.debug("[rewrite] localized images in %s", slug)

        record = PageRecord(
            url=url,
            slug=slug,
            title=page.title,
            page_type=classify_page(page.categories, page.title, path),
            description=page.description,
            h1=page.h1,
            excerpt=page.excerpt,
            content_html=page.content_html,
            content_html_local=content_html_local,
            content_text=page.content_text,
            headings=page.headings,
            infobox_html=page.infobox_html,
            categories=page.categories,
            images=images,
        )
        self.store.save_page(record)
        self.index[slug] = IndexEntry.from_record(record)
        self.saved.append(slug)

        added = self.enqueue_links(page.links, url)
        logger.debug("[links] enqueued: %d, queue: %d", added, len(self.frontier))
        return record

    def enqueue_links(self, links: Iterable[str], page_url: str) -> int:
        """Queue same-host content links that have not been seen yet."""
        added = 0
        for href in links:
            absolute = absolutize(href, page_url)
            if absolute is None:
                continue
            absolute = strip_fragment(absolute)
            if urlparse(absolute).netloc.lower() != self.start_host:
                continue
            if absolute in self.visited or absolute in self.queued:
                continue
            if not is_wiki_path_allowed(absolute):
                continue
            self.frontier.append(absolute)
            self.queued.add(absolute)
            added += 1
        return added


def run_crawler(
    config: CrawlConfig,
    fetcher: Optional[PageFetcher] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> CrawlSummary:
    """Run one crawl with the given settings."""
    return CrawlScheduler(config, fetcher=fetcher, sleep=sleep).run()
