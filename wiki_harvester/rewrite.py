"""Point image references in extracted content at their downloaded copies."""

from __future__ import annotations

import re
from typing import List, Mapping, Optional

from bs4 import BeautifulSoup, Tag

from .content import HTML_FORMATTER
from .utils import absolutize

_CSS_URL = re.compile(r"""url\(\s*(['"]?)([^'")]+)\1\s*\)""", re.I)
_OG_IMAGE = re.compile(r"^og:image(?::secure_url)?$", re.I)
_IMAGE_LINK_RELS = {"image_src", "preload"}
_STALE_IMG_ATTRS = ("srcset", "data-src", "data-srcset", "data-original", "data-cfsrc")


def _srcset_urls(srcset: str) -> List[str]:
    urls = []
    for part in srcset.split(","):
        pieces = part.strip().split()
        if pieces:
            urls.append(pieces[0])
    return urls


def _img_sources(img: Tag) -> List[str]:
    sources: List[str] = []
    if img.get("src"):
        sources.append(img["src"])
    lazy = img.get("data-src") or img.get("data-original") or img.get("data-cfsrc")
    if lazy:
        sources.append(lazy)
    srcset = img.get("srcset") or img.get("data-srcset")
    if srcset:
        sources.extend(_srcset_urls(srcset))
    return sources


class _Localizer:
    def __init__(self, page_url: str, mapping: Mapping[str, str]) -> None:
        self.page_url = page_url
        self.mapping = mapping
        self.changed = False

    def lookup(self, ref: Optional[str]) -> Optional[str]:
        absolute = absolutize(ref, self.page_url)
        if absolute is None:
            return None
        return self.mapping.get(absolute)

    def rewrite_img(self, img: Tag) -> None:
        for source in _img_sources(img):
            local = self.lookup(source)
            if local:
                img["src"] = local
                for name in _STALE_IMG_ATTRS:
                    if name in img.attrs:
                        del img[name]
                self.changed = True
                return

    def rewrite_style(self, tag: Tag) -> None:
        style = tag["style"]

        def replace(match: re.Match) -> str:
            local = self.lookup(match.group(2).strip())
            return f"url({local})" if local else match.group(0)

        updated = _CSS_URL.sub(replace, style)
        if updated != style:
            tag["style"] = updated
            self.changed = True

    def rewrite_attr(self, tag: Tag, name: str) -> None:
        local = self.lookup(tag.get(name))
        if local:
            tag[name] = local
            self.changed = True

    def drop_source(self, source: Tag) -> None:
        # A flattened local src on the sibling <img> supersedes responsive sources.
        if any(self.lookup(url) for url in _srcset_urls(source["srcset"])):
            source.decompose()
            self.changed = True


def rewrite_content_html(html: str, page_url: str, mapping: Mapping[str, str]) -> str:
    """Rewrite remote image references to local paths; unknown references stay as-is."""
    if not html or not mapping:
        return html
    fragment = BeautifulSoup(html, "html.parser")
    localizer = _Localizer(page_url, mapping)

    for img in fragment.find_all("img"):
        localizer.rewrite_img(img)
    for tag in fragment.find_all(style=True):
        localizer.rewrite_style(tag)
    for link in fragment.find_all("link", href=True):
        rels = {rel.lower() for rel in (link.get("rel") or [])}
        if rels & _IMAGE_LINK_RELS:
            localizer.rewrite_attr(link, "href")
    for meta in fragment.find_all("meta", attrs={"property": _OG_IMAGE}):
        localizer.rewrite_attr(meta, "content")
    for source in fragment.find_all("source", srcset=True):
        localizer.drop_source(source)

    if not localizer.changed:
        return html
    return fragment.decode(formatter=HTML_FORMATTER)
