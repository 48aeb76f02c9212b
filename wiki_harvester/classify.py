"""Map a page onto the checklist's content taxonomy."""

from __future__ import annotations

import re
from typing import Sequence, Tuple

from .utils import ascii_fold, decode_path

DEFAULT_PAGE_TYPE = "other"

# Order matters: the first group with a keyword present wins.
PAGE_TYPE_KEYWORDS: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    ("boss", ("boss", "bosses")),
    ("weapon", ("weapons", "weapon")),
    ("armor", ("armor", "armors", "helm", "chest armor", "gauntlets", "greaves")),
    ("shield", ("shield", "shields")),
    ("talisman", ("talisman", "talismans")),
    ("spirit-ash", ("spirit ash", "spirit ashes")),
    ("sorcery", ("sorcery", "sorceries")),
    ("incantation", ("incantation", "incantations")),
    ("site-of-grace", ("site of grace", "grace")),
    ("region", ("region", "regions")),
    ("location", ("location", "locations", "area", "areas")),
    ("npc", ("npc",)),
)

# Used when rebuilding indexes from stored records that carry no page type.
LOCAL_PAGE_TYPE_KEYWORDS: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    ("boss", ("boss", "bosses")),
    ("weapon", ("weapon", "weapons", "arme", "armes")),
    ("armor", ("armor", "armure", "helm", "gauntlets", "greaves", "chest armor")),
    ("shield", ("shield", "bouclier")),
    ("talisman", ("talisman",)),
    ("sorcery", ("spells", "sorcery", "sorceries")),
    ("incantation", ("incantation", "incantations")),
    ("site-of-grace", ("grace", "site of grace", "sites of grace")),
    ("region", ("region", "limgrave", "liurnia", "caelid", "altus")),
    ("location", ("location", "locations")),
    ("npc", ("npc",)),
)

_NON_ALNUM = re.compile(r"[^a-z0-9]+")


def _first_match(text: str, groups: Sequence[Tuple[str, Tuple[str, ...]]]) -> str:
    for page_type, keywords in groups:
        if any(keyword in text for keyword in keywords):
            return page_type
    return DEFAULT_PAGE_TYPE


def classify_page(categories: Sequence[str], title: str, path: str) -> str:
    """Return the taxonomy tag for a crawled page."""
    text = " ".join(
        [" ".join(categories).lower(), (title or "").lower(), decode_path(path or "").lower()]
    )
    return _first_match(text, PAGE_TYPE_KEYWORDS)


def _normalize(value: str) -> str:
    return _NON_ALNUM.sub(" ", ascii_fold(str(value or "")).lower()).strip()


_LOCAL_GROUPS = tuple(
    (page_type, tuple(_normalize(keyword) for keyword in keywords))
    for page_type, keywords in LOCAL_PAGE_TYPE_KEYWORDS
)


def classify_local(title: str, slug: str) -> str:
    """Heuristic tag for a stored record, from its title and slug only."""
    text = f"{_normalize(title)} {_normalize(slug)}"
    return _first_match(text, _LOCAL_GROUPS)
