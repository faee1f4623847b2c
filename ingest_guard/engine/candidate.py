"""Transient article record passed between collection and storage."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Mapping

_URL_FIELDS = ("sourceUrl", "source_url", "url", "link")
_PUBLISHED_FIELDS = ("publishedAt", "published_at", "pubDate", "published")
_RESERVED = {"title", *_URL_FIELDS, *_PUBLISHED_FIELDS}


def _coerce_datetime(value: object) -> datetime | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, (int, float)):
        numeric = float(value)
        if not math.isfinite(numeric):
            return None
        # nano-, micro- or millisecond epochs
        for _ in range(3):
            if abs(numeric) > 1_000_000_000_000:
                numeric /= 1000.0
        try:
            return datetime.fromtimestamp(numeric, tz=timezone.utc)
        except (ValueError, OverflowError, OSError):
            return None
    elif isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            dt = datetime.fromisoformat(text)
        except ValueError:
            return None
    else:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


@dataclass(slots=True)
class ArticleCandidate:
    """An article fetched from a feed that has not been persisted yet."""

    title: str
    source_url: str | None = None
    published_at: datetime | None = None
    payload: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "ArticleCandidate":
        """Build a candidate from a feed entry, accepting camelCase or snake_case keys."""

        url = next((data[key] for key in _URL_FIELDS if data.get(key)), None)
        published = next((data[key] for key in _PUBLISHED_FIELDS if data.get(key)), None)
        return cls(
            title=str(data.get("title") or ""),
            source_url=str(url).strip() if url else None,
            published_at=_coerce_datetime(published),
            payload={k: v for k, v in data.items() if k not in _RESERVED},
        )

    def to_record(self) -> dict[str, Any]:
        record = dict(self.payload)
        record["title"] = self.title
        record["source_url"] = self.source_url
        record["published_at"] = self.published_at.isoformat() if self.published_at else None
        return record


__all__ = ["ArticleCandidate"]
