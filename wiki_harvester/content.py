"""HTML extraction and metadata parsing utilities."""

from __future__ import annotations

import logging
import re
from typing import Dict, Iterable, List, Optional

from bs4 import BeautifulSoup, Tag
from bs4.dammit import EntitySubstitution
from bs4.formatter import HTMLFormatter

from .models import ExtractedPage, Heading, ImageCandidate
from .utils import decode_entities

logger = logging.getLogger("wiki_harvester")

EXCERPT_CHARS = 600

# Serialize void elements HTML-style (<img src="...">) and keep non-ASCII text as-is.
HTML_FORMATTER = HTMLFormatter(
    entity_substitution=EntitySubstitution.substitute_xml,
    void_element_close_prefix=None,
)

_WHITESPACE = re.compile(r"\s+")
_CSS_URL = re.compile(r"""url\((['"]?)([^'")]+)\1\)""", re.I)
_HEADING = re.compile(r"^h[1-6]$")
_OG_IMAGE = re.compile(r"^og:image(?::secure_url)?$", re.I)
_IMAGE_LINK_RELS = {"image_src", "preload"}
_LAZY_SRC_ATTRS = ("data-src", "data-original", "data-cfsrc")
_STRIPPED_TAGS = ["script", "style", "noscript", "iframe"]


def _collapse(text: str) -> str:
    return _WHITESPACE.sub(" ", text).strip()


def _attr(tag: Tag, name: str) -> Optional[str]:
    value = tag.get(name)
    if isinstance(value, list):
        value = " ".join(value)
    if not value or not value.strip():
        return None
    return value.strip()


def _meta_content(soup: BeautifulSoup, name: str) -> Optional[str]:
    tag = soup.find("meta", attrs={"name": re.compile(f"^{name}$", re.I)})
    if tag is None:
        return None
    return _attr(tag, "content")


def pick_best_from_srcset(srcset: str) -> Optional[str]:
    """Return the highest-resolution URL of a srcset; ties keep the first entry."""
    best_url: Optional[str] = None
    best_score = -1.0
    for part in srcset.split(","):
        pieces = part.strip().split()
        if not pieces:
            continue
        descriptor = pieces[1] if len(pieces) > 1 else ""
        try:
            score = float(re.sub(r"[^0-9.]", "", descriptor) or 0)
        except ValueError:
            score = 0.0
        if score > best_score:
            best_url, best_score = pieces[0], score
    return best_url


def _best_img_source(img: Tag) -> Optional[str]:
    for name in ("src", *_LAZY_SRC_ATTRS):
        value = _attr(img, name)
        # Inline placeholders stand in for the lazily loaded source.
        if value and not value.lower().startswith("data:"):
            return value
    srcset = _attr(img, "srcset") or _attr(img, "data-srcset")
    if srcset:
        return pick_best_from_srcset(srcset)
    return None


def gather_images(soup: BeautifulSoup, html: str) -> List[ImageCandidate]:
    """Collect image candidates in discovery order, deduplicated by raw URL."""
    found: Dict[str, Optional[str]] = {}

    def add(url: Optional[str], alt: Optional[str] = None) -> None:
        if not url or url.lower().startswith("data:"):
            return
        if url not in found:
            found[url] = alt
        elif found[url] is None and alt:
            found[url] = alt

    for img in soup.find_all("img"):
        add(_best_img_source(img), _attr(img, "alt"))
    for meta in soup.find_all("meta", attrs={"property": _OG_IMAGE}):
        add(_attr(meta, "content"))
    for link in soup.find_all("link", href=True):
        rels = {rel.lower() for rel in (link.get("rel") or [])}
        if rels & _IMAGE_LINK_RELS:
            add(_attr(link, "href"))
    # Attribute values escape their quotes, so decode before matching url(...).
    for match in _CSS_URL.finditer(decode_entities(html)):
        add(match.group(2).strip())

    return [ImageCandidate(url=url, alt=alt) for url, alt in found.items()]


def _iter_content_blocks(soup: BeautifulSoup) -> Iterable[Optional[Tag]]:
    """Known content containers, most specific first."""
    yield soup.find(id="mw-content-text")
    yield soup.find(class_="mw-parser-output")
    yield soup.find(id=re.compile(r"^wiki-content"))
    yield soup.find("article")
    yield soup.find("div", class_=re.compile(r"wiki"))


def find_content_block(soup: BeautifulSoup) -> Optional[Tag]:
    for block in _iter_content_blocks(soup):
        if block is not None:
            return block
    return None


def sanitize_fragment(markup: str) -> BeautifulSoup:
    """Drop script-like elements and inline event handlers from a fragment."""
    fragment = BeautifulSoup(markup, "html.parser")
    for tag in fragment(_STRIPPED_TAGS):
        tag.decompose()
    for tag in fragment.find_all(True):
        for name in [attr for attr in tag.attrs if attr.lower().startswith("on")]:
            del tag[name]
    return fragment


def collect_headings(fragment: BeautifulSoup) -> List[Heading]:
    headings: List[Heading] = []
    for tag in fragment.find_all(_HEADING):
        text = _collapse(tag.get_text(" "))
        if text:
            headings.append(Heading(level=int(tag.name[1]), text=text))
    return headings


def find_infobox(soup: BeautifulSoup) -> Optional[str]:
    infobox = soup.find("aside", class_=re.compile(r"infobox")) or soup.find(
        "table", class_=re.compile(r"infobox|wiki[_-]table")
    )
    if infobox is None:
        return None
    return infobox.decode(formatter=HTML_FORMATTER)


def collect_categories(soup: BeautifulSoup) -> List[str]:
    categories: Dict[str, None] = {}
    catlinks = soup.find(id="catlinks")
    if catlinks is not None:
        for anchor in catlinks.find_all("a"):
            text = _collapse(anchor.get_text(" "))
            if text:
                categories.setdefault(text)
    keywords = _meta_content(soup, "keywords")
    if keywords:
        for token in keywords.split(","):
            token = token.strip()
            if token:
                categories.setdefault(token)
    return list(categories)


def extract_content(html: str, page_url: str) -> ExtractedPage:
    """Extract title, content block, links, images and taxonomy hints from HTML."""
    soup = BeautifulSoup(html, "html.parser")

    title_tag = soup.find("title")
    title = _collapse(title_tag.get_text()) if title_tag else ""

    h1: Optional[str] = None
    h1_tag = soup.find("h1")
    if h1_tag is not None:
        h1 = _collapse(h1_tag.get_text()) or None

    links = []
    for anchor in soup.find_all("a", href=True):
        href = anchor["href"].strip()
        if href and not href.startswith("#"):
            links.append(href)

    page = ExtractedPage(
        title=title or page_url,
        description=_meta_content(soup, "description"),
        h1=h1,
        links=links,
        images=gather_images(soup, html),
        infobox_html=find_infobox(soup),
        categories=collect_categories(soup),
    )

    block = find_content_block(soup)
    if block is None:
        logger.debug("No content block matched on %s", page_url)
        return page

    fragment = sanitize_fragment(block.decode_contents(formatter=HTML_FORMATTER))
    text = _collapse(fragment.get_text(" "))
    page.content_html = fragment.decode(formatter=HTML_FORMATTER)
    page.content_text = text
    page.excerpt = text[:EXCERPT_CHARS] or None
    page.headings = collect_headings(fragment)
    return page
