"""On-disk layout: page records, image manifest and the two derived indexes."""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Iterable, List

from .classify import DEFAULT_PAGE_TYPE, classify_local
from .models import IndexEntry, PageRecord

logger = logging.getLogger("wiki_harvester")

MANIFEST_FILE = "manifest.json"
INDEX_FILE = "index.json"
BY_TYPE_FILE = "by-type.json"
PAGES_DIR = "pages"
IMAGES_DIR = "images"


def write_json(path: Path, payload: Any) -> None:
    """Write JSON through a temporary sibling so readers never see a partial file."""
    tmp_path = path.with_name(f".{path.name}.tmp")
    tmp_path.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")
    os.replace(tmp_path, path)


def _read_json(path: Path, default: Any) -> Any:
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        return default
    except (OSError, ValueError) as exc:
        logger.warning("Ignoring unreadable %s: %s", path, exc)
        return default


def sort_entries(entries: Iterable[IndexEntry]) -> List[IndexEntry]:
    return sorted(entries, key=lambda entry: (entry.title.casefold(), entry.title, entry.slug))


def group_by_type(entries: Iterable[IndexEntry]) -> Dict[str, List[IndexEntry]]:
    grouped: Dict[str, List[IndexEntry]] = {}
    for entry in entries:
        grouped.setdefault(entry.page_type or DEFAULT_PAGE_TYPE, []).append(entry)
    return grouped


class PageStore:
    """Owns everything written under the output root."""

    def __init__(self, output_root: Path) -> None:
        self.output_root = Path(output_root)
        self.pages_dir = self.output_root / PAGES_DIR
        self.images_dir = self.output_root / IMAGES_DIR

    def prepare(self) -> None:
        self.pages_dir.mkdir(parents=True, exist_ok=True)
        self.images_dir.mkdir(parents=True, exist_ok=True)

    def page_path(self, slug: str) -> Path:
        return self.pages_dir / f"{slug}.json"

    def save_page(self, record: PageRecord) -> Path:
        """Persist one record; an existing file with the same slug is replaced."""
        path = self.page_path(record.slug)
        write_json(path, record.to_dict())
        return path

    def load_manifest(self) -> Dict[str, str]:
        data = _read_json(self.output_root / MANIFEST_FILE, {})
        if not isinstance(data, dict):
            return {}
        return {str(url): str(local) for url, local in data.items()}

    def load_index(self) -> Dict[str, IndexEntry]:
        """Entries from a previous run's index.json, keyed by slug."""
        data = _read_json(self.output_root / INDEX_FILE, [])
        entries: Dict[str, IndexEntry] = {}
        if not isinstance(data, list):
            return entries
        for item in data:
            if isinstance(item, dict) and item.get("slug"):
                entry = IndexEntry.from_dict(item)
                entries[entry.slug] = entry
        return entries

    def commit(self, manifest: Dict[str, str], entries: Iterable[IndexEntry]) -> List[IndexEntry]:
        """Write manifest.json, index.json and by-type.json for the run."""
        write_json(self.output_root / MANIFEST_FILE, manifest)
        return self.write_indexes(entries)

    def write_indexes(self, entries: Iterable[IndexEntry]) -> List[IndexEntry]:
        ordered = sort_entries(entries)
        write_json(self.output_root / INDEX_FILE, [entry.to_dict() for entry in ordered])
        grouped = group_by_type(ordered)
        write_json(
            self.output_root / BY_TYPE_FILE,
            {page_type: [entry.to_dict() for entry in items] for page_type, items in grouped.items()},
        )
        return ordered

    def scan_pages(self) -> List[IndexEntry]:
        """Project every stored page record onto an index entry."""
        if not self.pages_dir.is_dir():
            raise FileNotFoundError(f"pages directory not found: {self.pages_dir}")
        entries: List[IndexEntry] = []
        for path in sorted(self.pages_dir.glob("*.json")):
            try:
                data = json.loads(path.read_text(encoding="utf-8"))
            except (OSError, ValueError) as exc:
                logger.warning("[skip] %s: %s", path.name, exc)
                continue
            if not isinstance(data, dict):
                logger.warning("[skip] %s: not a page record", path.name)
                continue
            entries.append(_entry_from_record(data, path.stem))
        return entries


def _entry_from_record(data: Dict[str, Any], fallback_slug: str) -> IndexEntry:
    slug = str(data.get("slug") or fallback_slug)
    title = str(data.get("title") or slug)
    page_type = str(data.get("pageType") or classify_local(title, slug))
    primary_image = None
    for image in data.get("images") or []:
        if isinstance(image, dict) and image.get("localPath"):
            primary_image = str(image["localPath"])
            break
    return IndexEntry(slug=slug, title=title, page_type=page_type, primary_image=primary_image)


def rebuild_indexes(output_root: Path) -> List[IndexEntry]:
    """Regenerate index.json and by-type.json from pages/*.json alone."""
    store = PageStore(output_root)
    entries = store.scan_pages()
    ordered = store.write_indexes(entries)
    logger.info(
        "Rebuilt %s and %s from %d page(s)",
        store.output_root / INDEX_FILE,
        store.output_root / BY_TYPE_FILE,
        len(ordered),
    )
    return ordered
