"""Batch and persisted-state deduplication of article candidates."""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from typing import Iterable, Protocol, Sequence

import structlog

from ..config import DedupConfig
from .candidate import ArticleCandidate
from .normalizer import TitleNormalizer, similarity


class CorpusReader(Protocol):
    """Read access to the (title, source_url) pairs already persisted."""

    def identities(self) -> Iterable["ArticleIdentity"]: ...


@dataclass(frozen=True, slots=True)
class ArticleIdentity:
    id: int | None
    title: str
    source_url: str | None


@dataclass(slots=True)
class SeenSet:
    """URL/key bookkeeping scoped to a single deduplication pass."""

    urls: set[str] = field(default_factory=set)
    keys: set[str] = field(default_factory=set)
    index: dict[str, set[str]] = field(default_factory=lambda: defaultdict(set))

    def add(self, url: str | None, key: str) -> None:
        if url:
            self.urls.add(url)
        if key in self.keys:
            return
        self.keys.add(key)
        for token in set(key.split()):
            self.index[token].add(key)

    def related_keys(self, key: str) -> set[str]:
        """Return seen keys sharing at least one token with ``key``."""

        related: set[str] = set()
        for token in set(key.split()):
            related.update(self.index.get(token, ()))
        return related

    def __len__(self) -> int:
        return len(self.keys)


@dataclass(slots=True)
class DuplicateCheck:
    url_duplicate: bool = False
    matched_key: str | None = None
    score: float = 0.0

    @property
    def is_duplicate(self) -> bool:
        return self.url_duplicate or self.matched_key is not None


class DuplicateDetector:
    """Decide whether a candidate repeats something already seen in the pass."""

    def __init__(self, config: DedupConfig | None = None) -> None:
        self.config = config or DedupConfig()
        self.normalizer = TitleNormalizer(
            max_tokens=self.config.max_key_tokens,
            min_token_length=self.config.min_token_length,
        )
        self.threshold = self.config.similarity_threshold

    def key(self, title: str) -> str:
        return self.normalizer.key(title)

    def check(self, candidate: ArticleCandidate, seen: SeenSet) -> DuplicateCheck:
        if candidate.source_url and candidate.source_url in seen.urls:
            return DuplicateCheck(url_duplicate=True, score=1.0)
        key = self.key(candidate.title)
        # any key scoring above a non-negative threshold shares a token with ours
        pool = seen.related_keys(key) if self.config.use_token_index else seen.keys
        for existing in pool:
            score = similarity(key, existing)
            if score > self.threshold:
                return DuplicateCheck(matched_key=existing, score=score)
        return DuplicateCheck()

    def is_duplicate(self, candidate: ArticleCandidate, seen: SeenSet) -> bool:
        return self.check(candidate, seen).is_duplicate

    def register(self, candidate: ArticleCandidate, seen: SeenSet) -> None:
        seen.add(candidate.source_url, self.key(candidate.title))

    def seen_from_identities(self, identities: Iterable[ArticleIdentity]) -> SeenSet:
        seen = SeenSet()
        for identity in identities:
            seen.add(identity.source_url, self.key(identity.title))
        return seen


def _log_skip(logger: structlog.BoundLogger, candidate: ArticleCandidate, result: DuplicateCheck, stage: str) -> None:
    logger.debug(
        "duplicate_skipped",
        stage=stage,
        title=candidate.title[:60],
        url=candidate.source_url,
        reason="url" if result.url_duplicate else "title",
        similarity=round(result.score, 2),
    )


class BatchDeduplicator:
    """Remove duplicates within one freshly fetched batch, preserving order."""

    def __init__(self, detector: DuplicateDetector | None = None, logger: structlog.BoundLogger | None = None) -> None:
        self.detector = detector or DuplicateDetector()
        self.logger = logger or structlog.get_logger("ingest_guard.dedup")

    def deduplicate(self, candidates: Sequence[ArticleCandidate]) -> list[ArticleCandidate]:
        seen = SeenSet()
        unique: list[ArticleCandidate] = []
        for candidate in candidates:
            result = self.detector.check(candidate, seen)
            if result.is_duplicate:
                _log_skip(self.logger, candidate, result, "batch")
                continue
            unique.append(candidate)
            self.detector.register(candidate, seen)
        self.logger.info("batch_deduplicated", received=len(candidates), unique=len(unique))
        return unique


class PersistedStateDeduplicator:
    """Drop candidates that repeat an article already in the persisted corpus.

    Every call reads the whole corpus, so cost grows linearly with its size.
    """

    def __init__(
        self,
        corpus: CorpusReader,
        detector: DuplicateDetector | None = None,
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        self.corpus = corpus
        self.detector = detector or DuplicateDetector()
        self.logger = logger or structlog.get_logger("ingest_guard.dedup")

    def deduplicate(self, candidates: Sequence[ArticleCandidate]) -> list[ArticleCandidate]:
        if not candidates:
            return []
        seen = self.detector.seen_from_identities(self.corpus.identities())
        fresh: list[ArticleCandidate] = []
        for candidate in candidates:
            result = self.detector.check(candidate, seen)
            if result.is_duplicate:
                _log_skip(self.logger, candidate, result, "persisted")
                continue
            fresh.append(candidate)
        self.logger.info(
            "persisted_deduplicated", corpus_keys=len(seen), received=len(candidates), fresh=len(fresh)
        )
        return fresh


__all__ = [
    "ArticleIdentity",
    "BatchDeduplicator",
    "CorpusReader",
    "DuplicateCheck",
    "DuplicateDetector",
    "PersistedStateDeduplicator",
    "SeenSet",
]
