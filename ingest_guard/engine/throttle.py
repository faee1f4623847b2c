"""Gate how often a single source may be re-fetched."""

from __future__ import annotations

import time
from dataclasses import dataclass
from datetime import datetime, timezone

import structlog

from ..config import ThrottleConfig
from .cache import Clock, TTLCache
from .keys import SourceFetchKey


@dataclass(frozen=True, slots=True)
class SourceFetchRecord:
    source_id: int
    source_name: str
    last_fetch: float
    article_count: int

    @property
    def last_fetch_at(self) -> datetime:
        return datetime.fromtimestamp(self.last_fetch, tz=timezone.utc)


class SourceFetchThrottle:
    """Fetch records live in the cache; a missing record means "eligible to fetch".

    A record is kept for ``max(record_ttl_minutes, min interval)`` so it cannot
    expire before the interval it enforces has elapsed.
    """

    def __init__(
        self,
        cache: TTLCache,
        config: ThrottleConfig | None = None,
        clock: Clock | None = None,
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        self.cache = cache
        self.config = config or ThrottleConfig()
        self._clock = clock or time.time
        self.logger = logger or structlog.get_logger("ingest_guard.throttle")

    def last_fetch(self, source_id: int) -> SourceFetchRecord | None:
        return self.cache.get(SourceFetchKey(source_id))

    def should_fetch(self, source_id: int, min_interval_minutes: float | None = None) -> bool:
        record = self.last_fetch(source_id)
        if record is None:
            return True
        interval = self.config.min_interval_minutes if min_interval_minutes is None else min_interval_minutes
        minutes_since = (self._clock() - record.last_fetch) / 60.0
        return minutes_since >= interval

    def record_fetch(
        self,
        source_id: int,
        source_name: str,
        article_count: int,
        min_interval_minutes: float | None = None,
    ) -> SourceFetchRecord:
        interval = self.config.min_interval_minutes if min_interval_minutes is None else min_interval_minutes
        ttl_minutes = max(self.config.record_ttl_minutes, interval)
        record = SourceFetchRecord(
            source_id=source_id,
            source_name=source_name,
            last_fetch=self._clock(),
            article_count=article_count,
        )
        self.cache.set(SourceFetchKey(source_id), record, ttl=ttl_minutes * 60.0)
        self.logger.debug(
            "source_fetch_recorded", source_id=source_id, source=source_name, articles=article_count
        )
        return record


__all__ = ["SourceFetchRecord", "SourceFetchThrottle"]
