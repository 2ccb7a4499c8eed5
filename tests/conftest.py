"""Shared pytest fixtures for the NovelShelf test suite."""

from __future__ import annotations

import logging
from collections.abc import Callable

import httpx
import pytest
import structlog

from novelshelf.config.settings import Settings
from novelshelf.interfaces.catalog_provider import ICatalogProvider, NovelInfo, SearchHit
from novelshelf.models.cache import SearchTarget
from novelshelf.providers.storage.memory_storage import MemoryStorageBackend
from novelshelf.services.cache_store import TTLCacheStore
from novelshelf.utils.errors import NovelNotFoundError

START_TIME = 1_700_000_000.0


# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _test_logging() -> None:
    """Route structlog through stdlib logging so pytest captures it.

    Loggers are not cached, so a stream swapped in by one test never
    leaks into the next.
    """
    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.dev.ConsoleRenderer(colors=False),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(logging.DEBUG),
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=False,
    )


# ---------------------------------------------------------------------------
# Clock / cache
# ---------------------------------------------------------------------------


class FakeClock:
    """Manually advanced stand-in for ``time.time``."""

    def __init__(self, start: float = START_TIME) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def backend() -> MemoryStorageBackend:
    return MemoryStorageBackend()


@pytest.fixture()
def cache(backend: MemoryStorageBackend, clock: FakeClock) -> TTLCacheStore:
    return TTLCacheStore(backend, clock=clock)


def make_settings(**overrides) -> Settings:
    """Build a Settings instance with test-friendly defaults."""
    defaults = {
        "cache_backend": "memory",
        "retry_base_delay_seconds": 0.0,
        "app_env": "test",
    }
    defaults.update(overrides)
    return Settings(**defaults)


# ---------------------------------------------------------------------------
# HTTP
# ---------------------------------------------------------------------------


def mock_client(handler: Callable[[httpx.Request], object]) -> httpx.AsyncClient:
    """An AsyncClient whose requests are answered by *handler*."""
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def text_server(
    body: bytes,
    content_type: str = "text/plain; charset=utf-8",
    get_status: int = 200,
    head_status: int = 200,
) -> Callable[[httpx.Request], httpx.Response]:
    """Handler serving *body* on GET and its headers on HEAD."""

    def handler(request: httpx.Request) -> httpx.Response:
        if request.method == "HEAD":
            return httpx.Response(head_status, headers={"content-type": content_type})
        return httpx.Response(get_status, content=body, headers={"content-type": content_type})

    return handler


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------


class FakeCatalog(ICatalogProvider):
    """In-memory catalog: titles are matched by substring, content by count."""

    def __init__(self, novels: dict[int, tuple[NovelInfo, str]] | None = None) -> None:
        self._novels = novels or {}

    async def get_by_id(self, novel_id: int) -> NovelInfo | None:
        entry = self._novels.get(novel_id)
        return entry[0] if entry else None

    async def get_all(self) -> list[NovelInfo]:
        return [info for info, _ in self._novels.values()]

    async def search(self, keyword: str, target: SearchTarget) -> list[SearchHit]:
        hits = []
        for info, text in self._novels.values():
            count = 0
            if target in (SearchTarget.TITLE, SearchTarget.BOTH) and keyword in info.title:
                count += 1
            if target in (SearchTarget.CONTENT, SearchTarget.BOTH):
                count += text.count(keyword)
            if count:
                hits.append(SearchHit(id=info.id, title=info.title, count=count))
        return hits

    async def load_content(self, novel_id: int) -> str:
        entry = self._novels.get(novel_id)
        if entry is None:
            raise NovelNotFoundError(message=f"Unknown id {novel_id}", provider_name="fake")
        return entry[1]


@pytest.fixture()
def catalog() -> FakeCatalog:
    novels = {
        i: (
            NovelInfo(id=i, title=f"第{i}部小说", author="作者甲", path_parts=["玄幻"]),
            f"第一章 开端\n正文内容 {i}",
        )
        for i in range(1, 46)
    }
    novels[100] = (
        NovelInfo(id=100, title="斗破苍穹", author="天蚕土豆"),
        "第一章 陨落的天才\n萧炎，萧炎，萧炎。",
    )
    return FakeCatalog(novels)
