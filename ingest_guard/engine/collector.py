"""Fetch JSON article feeds and turn them into candidates."""

from __future__ import annotations

from typing import Any, Iterable, Protocol

import httpx
import structlog

from ..config import CollectionConfig, SourceConfig
from .candidate import ArticleCandidate

_FEED_MARKERS = ("/rss", "/feed", ".rss", ".xml", "feeds.", "category/")


class FeedFormatError(ValueError):
    """Raised when a feed payload is not a list of article objects."""


class Collector(Protocol):
    def fetch(self, source: SourceConfig) -> list[ArticleCandidate]: ...


def is_article_url(url: str | None) -> bool:
    """Reject missing, non-http and feed/listing URLs."""

    if not url or not url.startswith("http"):
        return False
    return not any(marker in url for marker in _FEED_MARKERS)


def filter_valid_article_urls(
    candidates: Iterable[ArticleCandidate], logger: structlog.BoundLogger | None = None
) -> list[ArticleCandidate]:
    log = logger or structlog.get_logger("ingest_guard.collector")
    kept: list[ArticleCandidate] = []
    for candidate in candidates:
        if is_article_url(candidate.source_url):
            kept.append(candidate)
        else:
            log.debug("feed_url_filtered", title=candidate.title[:50], url=candidate.source_url)
    return kept


def _entries(payload: Any) -> list[dict[str, Any]]:
    if isinstance(payload, dict):
        payload = payload.get("articles", payload.get("items"))
    if not isinstance(payload, list):
        raise FeedFormatError("feed payload must be a list or contain an 'articles'/'items' list")
    return [entry for entry in payload if isinstance(entry, dict)]


class HttpFeedCollector:
    """GET a source's ``feed_url`` and parse the JSON body into candidates."""

    def __init__(
        self,
        config: CollectionConfig | None = None,
        client: httpx.Client | None = None,
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        self.config = config or CollectionConfig()
        headers = {"User-Agent": self.config.user_agent} if self.config.user_agent else None
        self._client = client or httpx.Client(
            follow_redirects=True, timeout=self.config.request_timeout, headers=headers
        )
        self.logger = logger or structlog.get_logger("ingest_guard.collector")

    def _get_payload(self, source: SourceConfig) -> object:
        attempts = self.config.retries + 1
        for attempt in range(1, attempts + 1):
            try:
                response = self._client.get(source.feed_url)
                response.raise_for_status()
            except httpx.HTTPError as exc:
                self.logger.warning(
                    "feed_fetch_failed",
                    source=source.source_name,
                    attempt=attempt,
                    error=str(exc),
                )
                if attempt == attempts:
                    raise
                continue
            try:
                return response.json()
            except ValueError as exc:
                raise FeedFormatError(f"feed body is not JSON: {source.feed_url}") from exc
        raise RuntimeError("unreachable: retries must be >= 0")

    def fetch(self, source: SourceConfig) -> list[ArticleCandidate]:
        entries = _entries(self._get_payload(source))
        candidates = []
        for entry in entries:
            entry.setdefault("source_name", source.source_name)
            candidates.append(ArticleCandidate.from_mapping(entry))
        self.logger.info("feed_fetched", source=source.source_name, articles=len(candidates))
        return candidates

    def close(self) -> None:
        self._client.close()


__all__ = [
    "Collector",
    "FeedFormatError",
    "HttpFeedCollector",
    "filter_valid_article_urls",
    "is_article_url",
]
