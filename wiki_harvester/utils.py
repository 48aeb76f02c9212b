"""Utility helpers for string normalization, URLs and path handling."""

from __future__ import annotations

import re
import unicodedata
from typing import Optional
from urllib.parse import unquote, urldefrag, urljoin, urlparse

import tldextract

SLUG_PATTERN = re.compile(r"[^a-z0-9]+")
_UNSAFE_SCHEMES = ("javascript:", "mailto:", "tel:")
_ENTITIES = (
    ("&lt;", "<"),
    ("&gt;", ">"),
    ("&quot;", '"'),
    ("&#39;", "'"),
    ("&apos;", "'"),
    ("&amp;", "&"),
)

_extractor: Optional[tldextract.TLDExtract] = None


def ascii_fold(value: str) -> str:
    """Drop diacritics and any remaining non-ASCII characters."""
    normalized = unicodedata.normalize("NFKD", value)
    return normalized.encode("ascii", "ignore").decode("ascii")


def slugify(value: str, fallback: str = "page") -> str:
    """Generate a filesystem-friendly slug using ASCII characters only."""
    normalized = ascii_fold(value).lower()
    normalized = SLUG_PATTERN.sub("-", normalized).strip("-")
    return normalized or fallback


def url_to_slug(url: str) -> str:
    """Derive the page slug from a URL path; the site root becomes ``home``."""
    raw = (urlparse(url).path or "/").strip("/")
    if not raw:
        return "home"
    return slugify(unquote(raw), fallback=slugify(raw, fallback="home"))


def decode_entities(text: str) -> str:
    """Decode the handful of entities that survive raw-markup scans."""
    for entity, char in _ENTITIES:
        text = text.replace(entity, char)
    return text


def decode_path(path: str) -> str:
    try:
        return unquote(path, errors="strict")
    except UnicodeDecodeError:
        return path


def absolutize(href: Optional[str], base_url: str) -> Optional[str]:
    """Resolve ``href`` against the page URL, keeping only http(s) results."""
    if not href:
        return None
    href = href.strip()
    if href.lower().startswith(_UNSAFE_SCHEMES):
        return None
    try:
        absolute = urljoin(base_url, href)
        parsed = urlparse(absolute)
    except ValueError:
        return None
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        return None
    return absolute


def strip_fragment(url: str) -> str:
    return urldefrag(url)[0]


def _get_extractor() -> tldextract.TLDExtract:
    """Lazy initialization of tldextract using its bundled suffix list."""
    global _extractor
    if _extractor is None:
        _extractor = tldextract.TLDExtract(suffix_list_urls=())
    return _extractor


def root_domain(host: str) -> str:
    """Registrable domain for ``host``; bare hosts and IPs are returned as-is."""
    host = (host or "").lower().split(":", 1)[0]
    extracted = _get_extractor()(host)
    if extracted.domain and extracted.suffix:
        return f"{extracted.domain}.{extracted.suffix}"
    parts = [part for part in host.split(".") if part]
    if len(parts) <= 2:
        return host
    return ".".join(parts[-2:])
