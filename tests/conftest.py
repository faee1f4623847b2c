"""Pytest configuration providing shared fixtures."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Callable, Iterable

import pytest

from ingest_guard.config import ConfigLocator, ConfigRepository, GlobalConfig, SourceConfig
from ingest_guard.engine import ArticleCandidate, TTLCache
from ingest_guard.engine.store import SQLiteArticleStore
from ingest_guard.infra import SQLiteManager


class FakeClock:
    """Manually advanced clock returning seconds."""

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float = 0.0, *, minutes: float = 0.0) -> None:
        self.now += seconds + minutes * 60.0


@pytest.fixture(autouse=True)
def _isolated_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("INGEST_GUARD_HOME", str(tmp_path))


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def cache(clock: FakeClock) -> TTLCache:
    return TTLCache(default_ttl=300.0, clock=clock)


@pytest.fixture
def article() -> Callable[..., ArticleCandidate]:
    def _builder(title: str, url: str | None = None, **payload: Any) -> ArticleCandidate:
        return ArticleCandidate(title=title, source_url=url, payload=payload)

    return _builder


@pytest.fixture
def sample_global_config() -> GlobalConfig:
    return GlobalConfig()


@pytest.fixture
def sample_source_config() -> Callable[..., SourceConfig]:
    def _builder(**overrides: Any) -> SourceConfig:
        base: dict[str, Any] = {
            "source_id": 1,
            "source_name": "Example",
            "feed_url": "https://example.com/feed.json",
        }
        base.update(overrides)
        return SourceConfig(**base)

    return _builder


@pytest.fixture
def temp_config_repository(tmp_path: Path) -> Iterable[ConfigRepository]:
    locator = ConfigLocator(project_root=tmp_path)
    yield ConfigRepository(locator)


@pytest.fixture
def sqlite_manager() -> Iterable[SQLiteManager]:
    manager = SQLiteManager()
    yield manager
    manager.close_all()


@pytest.fixture
def article_store(tmp_path: Path, sqlite_manager: SQLiteManager) -> SQLiteArticleStore:
    return SQLiteArticleStore(sqlite_manager, tmp_path / "articles.db")
