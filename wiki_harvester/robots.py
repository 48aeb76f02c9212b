"""Minimal robots.txt support: ``User-agent: *`` disallow prefixes only."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Tuple
from urllib.parse import urlparse

import requests

logger = logging.getLogger("wiki_harvester")


@dataclass(frozen=True)
class RobotsPolicy:
    """Disallowed path prefixes for the wildcard user agent."""

    disallow: Tuple[str, ...] = ()

    def allows(self, path: str) -> bool:
        return not any(path.startswith(rule) for rule in self.disallow)


def parse_robots(text: str) -> RobotsPolicy:
    """Collect ``Disallow`` values from ``User-agent: *`` blocks.

    ``Allow`` lines are recognised but not applied, and rules use literal
    prefix matching without wildcard expansion.
    """
    disallow: List[str] = []
    in_wildcard = False
    for raw_line in text.splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        key, _, value = line.partition(":")
        key = key.strip().lower()
        value = value.strip()
        if key == "user-agent":
            in_wildcard = value == "*"
        elif key == "disallow" and in_wildcard:
            if value:
                disallow.append(value)
        elif key == "allow":
            continue
    return RobotsPolicy(tuple(disallow))


def fetch_robots(origin_url: str, session: requests.Session, timeout: float = 20.0) -> RobotsPolicy:
    """Fetch and parse the site's robots.txt; any failure means no restrictions."""
    parsed = urlparse(origin_url)
    robots_url = f"{parsed.scheme}://{parsed.netloc}/robots.txt"
    try:
        resp = session.get(robots_url, timeout=timeout)
    except requests.RequestException as exc:
        logger.info("robots.txt unavailable at %s (%s); crawling unrestricted", robots_url, exc)
        return RobotsPolicy()
    if not resp.ok:
        logger.info("robots.txt returned HTTP %s; crawling unrestricted", resp.status_code)
        return RobotsPolicy()
    policy = parse_robots(resp.text)
    logger.debug("Loaded %d disallow rule(s) from %s", len(policy.disallow), robots_url)
    return policy
