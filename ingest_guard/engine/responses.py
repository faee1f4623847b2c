"""Short-lived caching for listing and summary read paths."""

from __future__ import annotations

from typing import Any, Mapping

from ..config import CacheConfig
from .cache import TTLCache
from .keys import NewsListKey, NewsSummaryKey


class ResponseCache:
    """Cache computed article lists and summaries under the ``news`` namespace."""

    def __init__(self, cache: TTLCache, config: CacheConfig | None = None) -> None:
        self.cache = cache
        self.config = config or CacheConfig()

    def cache_news_articles(self, filters: Mapping[str, Any], articles: list[Any]) -> None:
        self.cache.set(NewsListKey(dict(filters)), articles, ttl=self.config.news_list_ttl_seconds)

    def cached_news_articles(self, filters: Mapping[str, Any]) -> list[Any] | None:
        return self.cache.get(NewsListKey(dict(filters)))

    def cache_summary(self, summary: Any) -> None:
        self.cache.set(NewsSummaryKey(), summary, ttl=self.config.summary_ttl_seconds)

    def cached_summary(self) -> Any | None:
        return self.cache.get(NewsSummaryKey())

    def invalidate_news(self) -> int:
        return self.cache.invalidate_prefix(NewsListKey.prefix())


__all__ = ["ResponseCache"]
