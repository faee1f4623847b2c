"""Collection run wiring together throttling, fetching, dedup, storage and the ledger."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from contextlib import contextmanager
from dataclasses import asdict, dataclass, field
from threading import Lock
from typing import Any, Callable, Iterator, Sequence

from .config import ConfigRepository, GlobalConfig, SourceConfig
from .engine import (
    ArticleCandidate,
    BatchDeduplicator,
    DuplicateDetector,
    PersistedStateDeduplicator,
    ProcessedUrlLedger,
    ResponseCache,
    SourceFetchThrottle,
    TTLCache,
    filter_valid_article_urls,
)
from .engine.cache import Clock
from .engine.collector import Collector
from .engine.store import BaseArticleStore, InsertFailure
from .logging_conf import get_logger, source_logger

Analyzer = Callable[[ArticleCandidate], Any]


class CollectorBusyError(RuntimeError):
    """Raised when a collection run starts while another one is in progress."""


@dataclass(slots=True)
class CollectionSummary:
    sources_fetched: int = 0
    sources_throttled: int = 0
    sources_failed: int = 0
    collected: int = 0
    already_processed: int = 0
    unique: int = 0
    valid_urls: int = 0
    fresh: int = 0
    inserted: int = 0
    analysed: int = 0
    insert_failures: list[InsertFailure] = field(default_factory=list)

    def as_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["insert_failures"] = len(self.insert_failures)
        return data


class IngestionOrchestrator:
    """Run one collection job at a time against the configured sources."""

    def __init__(
        self,
        config_repository: ConfigRepository,
        store: BaseArticleStore,
        cache: TTLCache,
        collector: Collector,
        *,
        throttle: SourceFetchThrottle | None = None,
        ledger: ProcessedUrlLedger | None = None,
        analyzer: Analyzer | None = None,
        clock: Clock | None = None,
    ) -> None:
        self.config_repository = config_repository
        self.global_config: GlobalConfig = config_repository.load_global_config()
        self.store = store
        self.cache = cache
        self.collector = collector
        self.analyzer = analyzer
        self.logger = get_logger("orchestrator")

        detector = DuplicateDetector(self.global_config.dedup)
        self.batch_dedup = BatchDeduplicator(detector, logger=self.logger)
        self.persisted_dedup = PersistedStateDeduplicator(store, detector, logger=self.logger)
        self.throttle = throttle or SourceFetchThrottle(cache, self.global_config.throttle, clock=clock)
        self.ledger = ledger or ProcessedUrlLedger(
            cache, self.global_config.ledger, analysis_ttl=self.global_config.cache.analysis_ttl_seconds
        )
        self.responses = ResponseCache(cache, self.global_config.cache)
        self._run_lock = Lock()

    # ------------------------------------------------------------------
    @contextmanager
    def _exclusive(self) -> Iterator[None]:
        if not self._run_lock.acquire(blocking=False):
            raise CollectorBusyError("a collection run is already in progress")
        try:
            yield
        finally:
            self._run_lock.release()

    @property
    def busy(self) -> bool:
        return self._run_lock.locked()

    def run_collection(self, purpose: str | None = None, force: bool = False) -> CollectionSummary:
        with self._exclusive():
            summary = CollectionSummary()
            sources = self.config_repository.list_sources(purpose=purpose, active_only=True)
            eligible: list[SourceConfig] = []
            for source in sources:
                if not force and not self.throttle.should_fetch(
                    source.source_id, source.min_interval_minutes
                ):
                    self.logger.info("source_throttled", source=source.source_name)
                    summary.sources_throttled += 1
                    continue
                eligible.append(source)

            candidates: list[ArticleCandidate] = []
            for source, articles in self._fetch_all(eligible, summary):
                new_articles = [
                    article
                    for article in articles
                    if not (article.source_url and self.ledger.is_processed(article.source_url))
                ]
                summary.already_processed += len(articles) - len(new_articles)
                candidates.extend(new_articles)
                self.throttle.record_fetch(
                    source.source_id,
                    source.source_name,
                    len(new_articles),
                    source.min_interval_minutes,
                )
            self._ingest(candidates, summary)
            self.logger.info("collection_finished", **summary.as_dict())
            return summary

    def ingest(self, candidates: Sequence[ArticleCandidate]) -> CollectionSummary:
        """Deduplicate and persist an already fetched batch."""

        with self._exclusive():
            summary = CollectionSummary()
            self._ingest(candidates, summary)
            return summary

    # ------------------------------------------------------------------
    def _fetch_all(
        self, sources: Sequence[SourceConfig], summary: CollectionSummary
    ) -> list[tuple[SourceConfig, list[ArticleCandidate]]]:
        if not sources:
            return []
        workers = min(self.global_config.collection.max_workers, len(sources))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="collector") as executor:
            futures = [(source, executor.submit(self.collector.fetch, source)) for source in sources]
            results: list[tuple[SourceConfig, list[ArticleCandidate]]] = []
            for source, future in futures:
                try:
                    articles = future.result()
                except Exception as exc:  # noqa: BLE001
                    source_logger(source.source_name).error("source_fetch_error", error=str(exc))
                    summary.sources_failed += 1
                    continue
                summary.sources_fetched += 1
                results.append((source, articles))
        return results

    def _ingest(self, candidates: Sequence[ArticleCandidate], summary: CollectionSummary) -> None:
        summary.collected += len(candidates)
        unique = self.batch_dedup.deduplicate(candidates)
        summary.unique = len(unique)
        if self.global_config.collection.filter_feed_urls:
            unique = filter_valid_article_urls(unique, logger=self.logger)
        summary.valid_urls = len(unique)
        fresh = self.persisted_dedup.deduplicate(unique)
        summary.fresh = len(fresh)

        report = self.store.insert_with_fallback(fresh)
        summary.inserted = len(report.inserted)
        summary.insert_failures = report.failures
        if report.inserted:
            self.responses.invalidate_news()
        summary.analysed = self._after_insert(report.inserted)

    def _after_insert(self, inserted: Sequence[ArticleCandidate]) -> int:
        if self.analyzer is None:
            self.ledger.mark_processed(c.source_url for c in inserted if c.source_url)
            return 0
        analysed: list[str] = []
        for candidate in inserted:
            url = candidate.source_url
            if not url or self.ledger.is_processed(url):
                continue
            analysis = self.ledger.cached_analysis(url)
            if analysis is None:
                try:
                    analysis = self.analyzer(candidate)
                except Exception as exc:  # noqa: BLE001
                    self.logger.error("analysis_failed", url=url, error=str(exc))
                    continue
                self.ledger.cache_analysis(url, analysis)
            analysed.append(url)
        self.ledger.mark_processed(analysed)
        return len(analysed)


__all__ = ["Analyzer", "CollectionSummary", "CollectorBusyError", "IngestionOrchestrator"]
