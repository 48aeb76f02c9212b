"""Image filtering, naming, downloading and manifest bookkeeping."""

from __future__ import annotations

import logging
import re
import time
from pathlib import Path, PurePosixPath
from typing import Callable, Dict, Iterable, List, Optional, Sequence
from urllib.parse import urlparse

from filetype import guess

from .config import EXTRA_IMAGE_HOSTS, CrawlConfig
from .fetcher import FetchError, PageFetcher
from .models import ImageCandidate, ImageRef
from .utils import absolutize, ascii_fold, decode_path, root_domain

logger = logging.getLogger("wiki_harvester")

MAX_NAME_CHARS = 80
MAX_NAME_TOKENS = 4
CONTENT_TYPE_EXTENSIONS = (
    ("jpeg", ".jpg"),
    ("png", ".png"),
    ("gif", ".gif"),
    ("webp", ".webp"),
    ("svg", ".svg"),
)
STOP_WORDS = frozenset(
    {
        "elden", "ring", "eldenring", "shadow", "of", "the", "erdtree", "dlc",
        "wiki", "guide", "file", "image", "images", "icon", "icons", "thumb",
        "thumbnail", "weapons", "weapon", "armor", "armors", "classes", "class",
        "skills", "skill", "incantations", "incantation", "sorceries", "sorcery",
        "shields", "shield", "helms", "helm", "boss", "map", "maps",
    }
)

_EXTENSION = re.compile(r"\.[^.]+$")
_DENSITY_SUFFIX = re.compile(r"@\d+x$", re.I)
_SIZE_SUFFIX = re.compile(r"[_-](?:\d{2,4}px|\d+x\d+)$", re.I)
_THUMB_PREFIX = re.compile(r"^\d{2,4}px[_-]", re.I)
_TOKEN_SPLIT = re.compile(r"[^a-z0-9]+")
_HAS_LETTER = re.compile(r"[a-z]")
_URL_EXTENSION = re.compile(r"^\.[a-z0-9]{1,5}$")


def allowed_image_host(url: str, start_host: str, start_root: str) -> bool:
    """Accept the crawl host, its registrable domain, and known asset hosts."""
    parsed = urlparse(url)
    host = parsed.netloc.lower()
    if not host:
        return False
    if host == start_host:
        return True
    if root_domain(parsed.hostname or "") == start_root:
        return True
    return any(host.endswith(domain) for domain in EXTRA_IMAGE_HOSTS)


def matches_keywords(url: str, alt: Optional[str], keywords: Sequence[str]) -> bool:
    """Case-insensitive substring match against the image URL or its alt text."""
    if not keywords:
        return True
    haystacks = (url.lower(), (alt or "").lower())
    return any(keyword.lower() in text for keyword in keywords for text in haystacks)


def detect_image_format(data: bytes) -> Optional[str]:
    """Detect image type using filetype; returns a lowercase extension."""
    kind = guess(data)
    if kind and kind.mime.startswith("image/"):
        ext = kind.extension.lower()
        if ext == "jpeg":
            return "jpg"
        return ext
    return None


def image_extension(content_type: str, url: str, data: bytes = b"") -> str:
    """Pick a file extension from the content type, the bytes, then the URL."""
    lowered = (content_type or "").lower()
    for marker, ext in CONTENT_TYPE_EXTENSIONS:
        if marker in lowered:
            return ext
    detected = detect_image_format(data) if data else None
    if detected:
        return f".{detected}"
    suffix = PurePosixPath(urlparse(url).path).suffix.lower()
    if _URL_EXTENSION.match(suffix):
        return suffix
    return ".img"


def _tokens(value: str) -> List[str]:
    return [token for token in _TOKEN_SPLIT.split(ascii_fold(value).lower()) if token]


def derive_image_base_name(url: str, page_slug: str) -> str:
    """Build a short, readable file name from the URL's last path segment.

    Size and density suffixes, stop words and words already in the page slug
    are dropped; returns an empty string when nothing meaningful is left.
    """
    filename = decode_path(urlparse(url).path.rsplit("/", 1)[-1]) or "img"
    base = _EXTENSION.sub("", filename)
    base = _DENSITY_SUFFIX.sub("", base)
    base = _SIZE_SUFFIX.sub("", base)
    base = _THUMB_PREFIX.sub("", base)

    tokens = _tokens(base)
    page_tokens = set(_tokens(page_slug))
    picked = [
        token
        for token in tokens
        if token not in STOP_WORDS
        and token not in page_tokens
        and len(token) >= 2
        and _HAS_LETTER.search(token)
    ]
    name = "_".join(picked[:MAX_NAME_TOKENS])
    if not name:
        name = next((token for token in tokens if _HAS_LETTER.search(token)), "")
    name = name[:MAX_NAME_CHARS]
    return name if len(name) >= 2 else ""


def unique_destination(directory: Path, base: str, ext: str) -> Path:
    """Return ``base+ext`` in ``directory``, suffixing -2, -3, ... on collision."""
    destination = directory / f"{base}{ext}"
    counter = 2
    while destination.exists():
        destination = directory / f"{base}-{counter}{ext}"
        counter += 1
    return destination


class ImagePipeline:
    """Localizes page images for one crawl run.

    The download cap and the manifest are shared by every page of the run.
    """

    def __init__(
        self,
        config: CrawlConfig,
        fetcher: PageFetcher,
        output_root: Path,
        manifest: Optional[Dict[str, str]] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.config = config
        self.fetcher = fetcher
        self.output_root = Path(output_root)
        self.manifest: Dict[str, str] = manifest if manifest is not None else {}
        self.sleep = sleep
        self.attempted = 0
        parsed = urlparse(config.start_url)
        self.start_host = parsed.netloc.lower()
        self.start_root = root_domain(parsed.hostname or "")

    @property
    def exhausted(self) -> bool:
        return self.attempted >= self.config.max_images

    def process_page(
        self,
        candidates: Iterable[ImageCandidate],
        page_url: str,
        page_slug: str,
    ) -> List[ImageRef]:
        """Download the page's eligible images and return their references."""
        refs: List[ImageRef] = []
        found = allowed = filtered = attempted = 0
        for candidate in candidates:
            found += 1
            absolute = absolutize(candidate.url, page_url)
            if absolute is None:
                continue
            if not allowed_image_host(absolute, self.start_host, self.start_root):
                continue
            allowed += 1
            if not matches_keywords(absolute, candidate.alt, self.config.image_keywords):
                filtered += 1
                continue
            if self.exhausted:
                logger.debug("max-images %d reached, skipping rest", self.config.max_images)
                break

            attempted += 1
            local_path = self.download(absolute, page_url, page_slug, attempted)
            refs.append(ImageRef(url=absolute, alt=candidate.alt, local_path=local_path))
            self.attempted += 1
            self.sleep(self.config.image_delay)

        logger.debug(
            "Images on %s -> found:%d allowed:%d filtered:%d downloaded:%d",
            page_slug,
            found,
            allowed,
            filtered,
            attempted,
        )
        return refs

    def download(self, url: str, page_url: str, page_slug: str, index: int) -> Optional[str]:
        """Save one image under images/<page_slug>/ and record it in the manifest."""
        if index <= 5 or index % 10 == 0:
            logger.debug("Downloading image %d -> %s", index, url)
        try:
            content_type, data = self.fetcher.fetch_image(url, referer=page_url)
        except FetchError as exc:
            logger.warning("Failed to fetch image %s: %s", url, exc)
            return None

        ext = image_extension(content_type, url, data)
        base = derive_image_base_name(url, page_slug)
        if not base:
            base = page_slug if index <= 1 else f"{page_slug}-{index}"

        image_dir = self.output_root / "images" / page_slug
        image_dir.mkdir(parents=True, exist_ok=True)
        destination = unique_destination(image_dir, base, ext)
        destination.write_bytes(data)

        relative_path = destination.relative_to(self.output_root).as_posix()
        self.manifest[url] = relative_path
        return relative_path
