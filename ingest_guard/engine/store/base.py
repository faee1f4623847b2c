"""Article storage Service Provider Interface."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Iterable, Sequence

import structlog

from ..candidate import ArticleCandidate
from ..dedup import ArticleIdentity


@dataclass(slots=True)
class InsertFailure:
    title: str
    source_url: str | None
    error: str


@dataclass(slots=True)
class InsertReport:
    inserted: list[ArticleCandidate] = field(default_factory=list)
    failures: list[InsertFailure] = field(default_factory=list)
    used_fallback: bool = False


class BaseArticleStore(ABC):
    """Uniform persistence contract used by the ingestion pipeline."""

    logger: structlog.BoundLogger = structlog.get_logger("ingest_guard.store")

    @abstractmethod
    def identities(self) -> Iterable[ArticleIdentity]:
        """Return (id, title, source_url) for every persisted article."""

    @abstractmethod
    def insert_many(self, candidates: Sequence[ArticleCandidate]) -> None:
        """Insert all candidates atomically or raise."""

    @abstractmethod
    def insert_one(self, candidate: ArticleCandidate) -> None:
        """Insert a single candidate or raise."""

    @abstractmethod
    def close(self) -> None:
        """Release underlying resources."""

    def insert_with_fallback(self, candidates: Sequence[ArticleCandidate]) -> InsertReport:
        """Bulk insert, falling back to one-at-a-time inserts if the batch fails."""

        report = InsertReport()
        if not candidates:
            return report
        try:
            self.insert_many(candidates)
        except Exception as exc:  # noqa: BLE001
            self.logger.warning("batch_insert_failed", count=len(candidates), error=str(exc))
        else:
            report.inserted.extend(candidates)
            return report

        report.used_fallback = True
        for candidate in candidates:
            try:
                self.insert_one(candidate)
            except Exception as exc:  # noqa: BLE001
                self.logger.error(
                    "article_insert_failed",
                    title=candidate.title[:60],
                    url=candidate.source_url,
                    error=str(exc),
                )
                report.failures.append(InsertFailure(candidate.title, candidate.source_url, str(exc)))
            else:
                report.inserted.append(candidate)
        return report


__all__ = ["BaseArticleStore", "InsertFailure", "InsertReport"]
