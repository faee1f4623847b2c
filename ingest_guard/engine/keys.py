"""Typed cache keys, one class per namespace."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, ClassVar


class CacheKey:
    """Base class; ``to_key`` renders the opaque string stored in the cache."""

    namespace: ClassVar[str] = ""

    @classmethod
    def prefix(cls) -> str:
        return f"{cls.namespace}:"

    def to_key(self) -> str:
        raise NotImplementedError

    def __str__(self) -> str:
        return self.to_key()


@dataclass(frozen=True)
class NewsListKey(CacheKey):
    filters: dict[str, Any] = field(default_factory=dict, hash=False)

    namespace: ClassVar[str] = "news"

    def to_key(self) -> str:
        return f"news:list:{json.dumps(self.filters, sort_keys=True, default=str)}"


@dataclass(frozen=True)
class NewsSummaryKey(CacheKey):
    namespace: ClassVar[str] = "news"

    def to_key(self) -> str:
        return "news:summary"


@dataclass(frozen=True)
class SourceFetchKey(CacheKey):
    source_id: int

    namespace: ClassVar[str] = "source"

    def to_key(self) -> str:
        return f"source:lastfetch:{self.source_id}"


@dataclass(frozen=True)
class ProcessedUrlsKey(CacheKey):
    namespace: ClassVar[str] = "articles"

    def to_key(self) -> str:
        return "articles:processed:urls"


@dataclass(frozen=True)
class ArticleAnalysisKey(CacheKey):
    url: str

    namespace: ClassVar[str] = "article"

    def to_key(self) -> str:
        return f"article:analysis:{self.url}"


__all__ = [
    "ArticleAnalysisKey",
    "CacheKey",
    "NewsListKey",
    "NewsSummaryKey",
    "ProcessedUrlsKey",
    "SourceFetchKey",
]
