"""Pytest configuration and shared fixtures for the HN-Sort-Validator test suite.

Guarantees:
- No browser and no network: pipeline tests drive a StubPage implementing
  the PageQuery interface
- Isolated configuration: the cached GlobalConfig is rebuilt from
  test-specific environment variables for every test
- Deterministic time: validator tests pass an explicit reference instant
"""

import asyncio
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, Callable

import pytest

from config.settings import GlobalConfig
from src.exceptions import SelectorNotFoundError
from src.validator import ArticleSchema

REFERENCE = datetime(2026, 10, 19, 12, 0, tzinfo=UTC)
LISTING_URL = "https://test.example.com/newest"

PageFactory = Callable[[int], list[dict[str, Any]] | None]


def raw_item(
    rank: int | None = 1,
    age: str | None = "5 minutes ago",
    title: str | None = None,
    href: str | None = "https://example.com/story",
    user: str | None = "alice",
    score: str | None = "10 points",
    age_title: str | None = "2026-10-19T11:55:00 1792410900",
    with_meta: bool = True,
) -> dict[str, Any]:
    """Build one raw item mapping shaped like PlaywrightPageQuery.query_items output."""
    meta = None
    if with_meta:
        meta = {"age_text": age, "age_title": age_title, "user": user, "score": score}
    return {
        "rank": f"{rank}." if rank is not None else None,
        "title": title if title is not None else f"Story {rank}",
        "href": href,
        "meta": meta,
    }


class StubPage:
    """In-memory PageQuery serving pages produced by a factory.

    ``page_factory(i)`` returns the raw items of page ``i`` (0-based), or None
    when page ``i`` does not exist. The "More" control is present while the
    next page exists.
    """

    def __init__(
        self,
        page_factory: PageFactory,
        url: str = LISTING_URL,
        fail_wait: bool = False,
        gate: asyncio.Event | None = None,
    ) -> None:
        self.page_factory = page_factory
        self._url = url
        self.fail_wait = fail_wait
        self.gate = gate
        self.index = 0
        self.clicks = 0
        self.selectors: dict[str, str] | None = None

    @property
    def url(self) -> str:
        return self._url

    async def wait_for_selector(self, selector: str) -> None:
        if self.gate is not None:
            await self.gate.wait()
        if self.fail_wait:
            raise SelectorNotFoundError(selector=selector, url=self._url)

    async def query_items(self, selectors: dict[str, str]) -> list[dict[str, Any]]:
        self.selectors = selectors
        return self.page_factory(self.index) or []

    async def count(self, selector: str) -> int:
        return 0 if self.page_factory(self.index + 1) is None else 1

    async def click_and_settle(self, selector: str) -> None:
        self.index += 1
        self.clicks += 1


def paged_source(per_page: int, pages: int | None = None, age: str = "5 minutes ago") -> PageFactory:
    """Factory for a listing with ``per_page`` items per page.

    ``pages=None`` means the listing never runs out.
    """

    def _factory(index: int) -> list[dict[str, Any]] | None:
        if pages is not None and index >= pages:
            return None
        start = index * per_page + 1
        return [raw_item(rank=rank, age=age) for rank in range(start, start + per_page)]

    return _factory


class StubSessionFactory:
    """Session factory yielding a StubPage and recording open/close calls."""

    def __init__(self, page: StubPage) -> None:
        self.page = page
        self.opened = 0
        self.closed = 0

    @asynccontextmanager
    async def __call__(self, config: GlobalConfig):
        self.opened += 1
        try:
            yield self.page
        finally:
            self.closed += 1


@pytest.fixture
def mock_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> GlobalConfig:
    """Provide an isolated GlobalConfig with safe test defaults.

    Clears the lru_cache before and after the test so no configuration leaks
    between tests. All file output goes to tmp_path.
    """
    from config.settings import get_config

    get_config.cache_clear()

    log_dir = tmp_path / "logs"
    output_dir = tmp_path / "output"
    log_dir.mkdir()
    output_dir.mkdir()

    test_env = {
        "APP_NAME": "HN-Sort-Validator-Test",
        "ENVIRONMENT": "test",
        "DEBUG": "false",
        "HEADLESS": "true",
        "LOG_LEVEL": "DEBUG",
        "LOG_DIR": str(log_dir),
        "LOG_ROTATION": "1 day",
        "LOG_RETENTION": "1 day",
        "BASE_URL": LISTING_URL,
        "REQUEST_TIMEOUT_MS": "5000",
        "TARGET_COUNT": "100",
        "OUTPUT_DIR": str(output_dir),
    }

    for key, value in test_env.items():
        monkeypatch.setenv(key, value)

    config = get_config()

    yield config

    get_config.cache_clear()


@pytest.fixture
def make_article() -> Callable[..., ArticleSchema]:
    """Factory for ArticleSchema instances with sensible defaults."""

    def _make(rank: int, raw_time: str = "5 minutes ago", title: str | None = None) -> ArticleSchema:
        return ArticleSchema(
            rank=rank,
            title=title or f"Story {rank}",
            url=f"https://example.com/{rank}",
            author="alice",
            raw_time=raw_time,
            score=rank,
        )

    return _make


@pytest.fixture
def reference() -> datetime:
    return REFERENCE


def pytest_configure(config: Any) -> None:
    """Register custom markers."""
    config.addinivalue_line(
        "markers",
        "integration: marks tests that wire several components together",
    )
