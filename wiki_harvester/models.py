"""Data models used throughout the harvester pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class ImageCandidate:
    """Raw image reference discovered while scanning page markup."""

    url: str
    alt: Optional[str] = None


@dataclass
class ImageRef:
    """Image reference recorded on a page, localized when the download worked."""

    url: str
    alt: Optional[str] = None
    local_path: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"url": self.url}
        if self.alt:
            data["alt"] = self.alt
        if self.local_path:
            data["localPath"] = self.local_path
        return data


@dataclass
class Heading:
    level: int
    text: str


@dataclass
class ExtractedPage:
    """Best-effort structured view of one page's markup."""

    title: str
    description: Optional[str] = None
    h1: Optional[str] = None
    links: List[str] = field(default_factory=list)
    images: List[ImageCandidate] = field(default_factory=list)
    excerpt: Optional[str] = None
    content_html: Optional[str] = None
    content_text: Optional[str] = None
    headings: List[Heading] = field(default_factory=list)
    infobox_html: Optional[str] = None
    categories: List[str] = field(default_factory=list)


@dataclass
class PageRecord:
    """Durable output for one processed page, written once as pages/<slug>.json."""

    url: str
    slug: str
    title: str
    page_type: str
    description: Optional[str] = None
    h1: Optional[str] = None
    excerpt: Optional[str] = None
    content_html: Optional[str] = None
    content_html_local: Optional[str] = None
    content_text: Optional[str] = None
    headings: List[Heading] = field(default_factory=list)
    infobox_html: Optional[str] = None
    categories: List[str] = field(default_factory=list)
    images: List[ImageRef] = field(default_factory=list)

    @property
    def primary_image(self) -> Optional[str]:
        for image in self.images:
            if image.local_path:
                return image.local_path
        return None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "url": self.url,
            "slug": self.slug,
            "title": self.title,
            "description": self.description,
            "h1": self.h1,
            "excerpt": self.excerpt,
            "contentHtml": self.content_html,
            "contentHtmlLocal": self.content_html_local,
            "contentText": self.content_text,
            "headings": [
                {"level": heading.level, "text": heading.text}
                for heading in self.headings
            ],
            "infoboxHtml": self.infobox_html,
            "categories": list(self.categories),
            "pageType": self.page_type,
            "images": [image.to_dict() for image in self.images],
        }
        # Consumers treat missing keys as absent fields.
        return {key: value for key, value in data.items() if value is not None}


@dataclass
class IndexEntry:
    """Summary projection of a page record used by index.json and by-type.json."""

    slug: str
    title: str
    page_type: str
    primary_image: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "slug": self.slug,
            "title": self.title,
            "pageType": self.page_type,
        }
        if self.primary_image:
            data["primaryImage"] = self.primary_image
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "IndexEntry":
        return cls(
            slug=str(data["slug"]),
            title=str(data.get("title") or data["slug"]),
            page_type=str(data.get("pageType") or "other"),
            primary_image=data.get("primaryImage") or None,
        )

    @classmethod
    def from_record(cls, record: PageRecord) -> "IndexEntry":
        return cls(
            slug=record.slug,
            title=record.title,
            page_type=record.page_type,
            primary_image=record.primary_image,
        )
