"""Bounded memory of article URLs that already went through analysis."""

from __future__ import annotations

from threading import Lock
from typing import Any, Iterable

import structlog

from ..config import CacheConfig, LedgerConfig
from .cache import TTLCache
from .keys import ArticleAnalysisKey, ProcessedUrlsKey


class ProcessedUrlLedger:
    """In-memory set of processed URLs backed by a single 24h cache entry.

    This is an optimisation only: once the cache entry expires (or the process
    restarts) URLs may be forgotten, and persisted-state deduplication remains
    the guard against storing an article twice.
    """

    def __init__(
        self,
        cache: TTLCache,
        config: LedgerConfig | None = None,
        analysis_ttl: float | None = None,
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        self.cache = cache
        self.config = config or LedgerConfig()
        self.analysis_ttl = analysis_ttl or CacheConfig().analysis_ttl_seconds
        self.logger = logger or structlog.get_logger("ingest_guard.ledger")
        self._urls: set[str] = set()
        self._lock = Lock()
        self._key = ProcessedUrlsKey()

    @property
    def ttl_seconds(self) -> float:
        return self.config.ttl_hours * 3600.0

    def mark_processed(self, urls: Iterable[str]) -> None:
        fresh = [url for url in urls if url]
        with self._lock:
            self._urls.update(fresh)
            cached = self.cache.get(self._key) or []
            merged = list(dict.fromkeys([*cached, *fresh]))
            self.cache.set(self._key, merged, ttl=self.ttl_seconds)
        self.logger.debug("urls_marked_processed", added=len(fresh), cached=len(merged))

    def is_processed(self, url: str) -> bool:
        with self._lock:
            if url in self._urls:
                return True
            return url in (self.cache.get(self._key) or ())

    def processed_urls(self) -> list[str]:
        with self._lock:
            cached = self.cache.get(self._key) or []
            return list(dict.fromkeys([*self._urls, *cached]))

    def forget_local(self) -> None:
        """Drop the in-memory set, leaving only the cached list."""

        with self._lock:
            self._urls.clear()

    def cache_analysis(self, url: str, analysis: Any) -> None:
        self.cache.set(ArticleAnalysisKey(url), analysis, ttl=self.analysis_ttl)

    def cached_analysis(self, url: str) -> Any | None:
        return self.cache.get(ArticleAnalysisKey(url))

    def __len__(self) -> int:
        return len(self.processed_urls())


__all__ = ["ProcessedUrlLedger"]
