from typing import Dict, Iterable, List, Optional, Tuple, Union

import pytest

from wiki_harvester.config import CrawlConfig
from wiki_harvester.fetcher import PageFetcher

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00\x00\x00\rIHDR" + b"\x00" * 48


class StubResponse:
    def __init__(
        self,
        status_code: int = 200,
        content_type: str = "text/html; charset=utf-8",
        body: Union[str, bytes] = "",
        chunks: Optional[Iterable[bytes]] = None,
    ) -> None:
        self.status_code = status_code
        self.headers = {"Content-Type": content_type}
        if isinstance(body, bytes):
            self.content = body
            self.text = body.decode("utf-8", errors="replace")
        else:
            self.text = body
            self.content = body.encode("utf-8")
        self.chunks = chunks
        self.closed = False

    @property
    def ok(self) -> bool:
        return self.status_code < 400

    def iter_content(self, chunk_size=1):
        if self.chunks is not None:
            yield from self.chunks
        elif self.content:
            yield self.content

    def close(self) -> None:
        self.closed = True


def html_page(body: str, content_type: str = "text/html; charset=utf-8") -> StubResponse:
    return StubResponse(200, content_type, body)


def png_image() -> StubResponse:
    return StubResponse(200, "image/png", PNG_BYTES)


class StubSession:
    """Stands in for requests.Session; unknown URLs answer 404."""

    def __init__(self, routes: Optional[Dict[str, Union[StubResponse, Exception]]] = None) -> None:
        self.routes = dict(routes or {})
        self.headers: Dict[str, str] = {}
        self.calls: List[Tuple[str, Dict[str, str]]] = []

    def get(self, url, headers=None, timeout=None, stream=False):
        self.calls.append((url, dict(headers or {})))
        target = self.routes.get(url)
        if target is None:
            return StubResponse(404, "text/plain", "not found")
        if isinstance(target, Exception):
            raise target
        return target

    def fetched(self, url: str) -> int:
        return sum(1 for called, _ in self.calls if called == url)


class SleepRecorder:
    def __init__(self) -> None:
        self.calls: List[float] = []

    def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


@pytest.fixture
def sleeper():
    return SleepRecorder()


@pytest.fixture
def make_config(tmp_path):
    def factory(**overrides) -> CrawlConfig:
        params = dict(
            output_root=tmp_path / "wiki",
            start_url="https://wiki.example/Home",
            max_pages=40,
            page_delay=1.2,
            image_delay=0.3,
        )
        params.update(overrides)
        return CrawlConfig(**params)

    return factory


@pytest.fixture
def make_fetcher():
    def factory(routes=None):
        session = StubSession(routes)
        return PageFetcher(session=session, timeout=5), session

    return factory
