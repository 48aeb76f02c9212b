"""Single bounded HTTP retrievals with content-type validation."""

from __future__ import annotations

import logging
import re
import time
from typing import Callable, Optional, Tuple

import requests
from bs4.dammit import UnicodeDammit

from .config import IMAGE_ACCEPT, USER_AGENT

logger = logging.getLogger("wiki_harvester")

CHUNK_SIZE = 16 * 1024
_CHARSET = re.compile(r"charset=[\"']?([\w.:-]+)", re.I)


class FetchError(Exception):
    """A resource could not be retrieved; callers skip it and move on."""


class FetchTimeout(FetchError):
    """The request deadline elapsed."""


def decode_html(data: bytes, content_type: str) -> str:
    """Decode a page body: header charset, then BOM or <meta charset>, then UTF-8."""
    match = _CHARSET.search(content_type or "")
    known = [match.group(1)] if match else []
    dammit = UnicodeDammit(data, known_definite_encodings=known, user_encodings=["utf-8"], is_html=True)
    if dammit.unicode_markup is None:
        return data.decode("utf-8", errors="replace")
    return dammit.unicode_markup


class PageFetcher:
    """Performs one GET per call with the crawler's identifying headers.

    ``timeout`` bounds the whole retrieval, body included, not just each read.
    """

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        user_agent: str = USER_AGENT,
        timeout: float = 20.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.session = session or requests.Session()
        self.session.headers["User-Agent"] = user_agent
        self.timeout = timeout
        self.clock = clock

    def _get(
        self,
        url: str,
        accept: Callable[[str], Optional[str]],
        headers: Optional[dict] = None,
    ) -> Tuple[str, bytes]:
        """GET ``url`` and return ``(content_type, body)``.

        ``accept`` inspects the content type and returns an error message to
        reject the response before its body is read.
        """
        deadline = self.clock() + self.timeout
        try:
            resp = self.session.get(url, headers=headers, timeout=self.timeout, stream=True)
        except requests.Timeout as exc:
            raise FetchTimeout(f"timed out after {self.timeout:.0f}s: {url}") from exc
        except requests.RequestException as exc:
            raise FetchError(f"request failed for {url}: {exc}") from exc

        try:
            if not resp.ok:
                raise FetchError(f"HTTP {resp.status_code}: {url}")
            content_type = resp.headers.get("Content-Type", "")
            problem = accept(content_type)
            if problem:
                raise FetchError(problem)
            chunks = []
            for chunk in resp.iter_content(chunk_size=CHUNK_SIZE):
                chunks.append(chunk)
                if self.clock() > deadline:
                    raise FetchTimeout(f"timed out after {self.timeout:.0f}s: {url}")
        except requests.Timeout as exc:
            raise FetchTimeout(f"timed out after {self.timeout:.0f}s: {url}") from exc
        except requests.RequestException as exc:
            raise FetchError(f"request failed for {url}: {exc}") from exc
        finally:
            resp.close()
        return content_type, b"".join(chunks)

    def fetch_html(self, url: str) -> str:
        """Return the page body; only ``text/html`` responses are accepted."""
        start = time.perf_counter()

        def accept(content_type: str) -> Optional[str]:
            if "text/html" not in content_type.lower():
                return f"unexpected content-type: {content_type or '(none)'}"
            return None

        content_type, data = self._get(url, accept)
        html = decode_html(data, content_type)
        logger.debug(
            "Fetched %s in %.0fms, size ~%d chars",
            url,
            (time.perf_counter() - start) * 1000,
            len(html),
        )
        return html

    def fetch_image(self, url: str, referer: Optional[str] = None) -> Tuple[str, bytes]:
        """Return ``(content_type, data)`` for an ``image/*`` response."""
        headers = {"Accept": IMAGE_ACCEPT}
        if referer:
            headers["Referer"] = referer

        def accept(content_type: str) -> Optional[str]:
            if not content_type.lower().startswith("image/"):
                return f"not an image ({content_type or 'no content-type'}): {url}"
            return None

        return self._get(url, accept, headers=headers)
