from __future__ import annotations

import threading

import pytest

from ingest_guard.engine import ArticleCandidate, ProcessedUrlLedger
from ingest_guard.engine.keys import NewsSummaryKey
from ingest_guard.orchestrator import CollectorBusyError, IngestionOrchestrator


class StubCollector:
    def __init__(self, feeds: dict[int, list[ArticleCandidate] | Exception]) -> None:
        self.feeds = feeds
        self.calls: list[int] = []

    def fetch(self, source):
        self.calls.append(source.source_id)
        result = self.feeds.get(source.source_id, [])
        if isinstance(result, Exception):
            raise result
        return list(result)


@pytest.fixture
def build_orchestrator(temp_config_repository, article_store, cache, clock):
    def _build(collector, analyzer=None) -> IngestionOrchestrator:
        return IngestionOrchestrator(
            temp_config_repository, article_store, cache, collector, analyzer=analyzer, clock=clock
        )

    return _build


def _register(repo, sample_source_config, *specs) -> None:
    for source_id, name in specs:
        repo.save_source(sample_source_config(source_id=source_id, source_name=name))


def test_full_collection_pipeline(build_orchestrator, temp_config_repository, sample_source_config, article_store, cache):
    _register(temp_config_repository, sample_source_config, (1, "Alpha"), (2, "Beta"))
    article_store.insert_one(ArticleCandidate("Chip shortage eases across industry", "https://old.com/1"))
    collector = StubCollector(
        {
            1: [
                ArticleCandidate("OpenAI releases GPT-5 today", "https://x.com/1"),
                ArticleCandidate("OpenAI Releases GPT-5!!", "https://x.com/2"),
                ArticleCandidate("Feed index page", "https://x.com/feed/"),
            ],
            2: [
                ArticleCandidate("Google launches Gemini 3", "https://g.com/1"),
                ArticleCandidate("Chip shortage eases across the industry", "https://new.com/1"),
            ],
        }
    )
    cache.set(NewsSummaryKey(), {"total": 1})
    orchestrator = build_orchestrator(collector)

    summary = orchestrator.run_collection()

    assert summary.sources_fetched == 2
    assert summary.collected == 5
    assert summary.unique == 4
    assert summary.valid_urls == 3
    assert summary.fresh == 2
    assert summary.inserted == 2
    assert summary.insert_failures == []
    assert article_store.count() == 3
    assert orchestrator.ledger.is_processed("https://x.com/1")
    assert orchestrator.ledger.is_processed("https://g.com/1")
    assert not orchestrator.ledger.is_processed("https://new.com/1")
    assert cache.get(NewsSummaryKey()) is None


def test_throttle_skips_recent_sources(build_orchestrator, temp_config_repository, sample_source_config, clock):
    _register(temp_config_repository, sample_source_config, (1, "Alpha"))
    collector = StubCollector({1: [ArticleCandidate("Story one here", "https://a.com/1")]})
    orchestrator = build_orchestrator(collector)

    orchestrator.run_collection()
    second = orchestrator.run_collection()
    assert second.sources_throttled == 1
    assert collector.calls == [1]

    clock.advance(minutes=15)
    orchestrator.run_collection()
    assert collector.calls == [1, 1]

    orchestrator.run_collection(force=True)
    assert collector.calls == [1, 1, 1]


def test_failed_source_is_not_recorded(build_orchestrator, temp_config_repository, sample_source_config):
    _register(temp_config_repository, sample_source_config, (1, "Alpha"), (2, "Beta"))
    collector = StubCollector({1: RuntimeError("boom"), 2: [ArticleCandidate("Working feed story", "https://b.com/1")]})
    orchestrator = build_orchestrator(collector)

    summary = orchestrator.run_collection()
    assert summary.sources_failed == 1
    assert summary.inserted == 1
    assert orchestrator.throttle.should_fetch(1)
    assert not orchestrator.throttle.should_fetch(2)


def test_processed_urls_are_skipped_before_dedup(build_orchestrator, temp_config_repository, sample_source_config):
    _register(temp_config_repository, sample_source_config, (1, "Alpha"))
    collector = StubCollector({1: [ArticleCandidate("Seen before story", "https://a.com/1")]})
    orchestrator = build_orchestrator(collector)
    orchestrator.ledger.mark_processed(["https://a.com/1"])

    summary = orchestrator.run_collection()
    assert summary.already_processed == 1
    assert summary.inserted == 0
    assert orchestrator.throttle.last_fetch(1).article_count == 0


def test_persisted_state_backstops_forgotten_ledger(build_orchestrator, cache):
    orchestrator = build_orchestrator(StubCollector({}))
    batch = [ArticleCandidate("Robots learn to fold laundry", "https://r.com/1")]
    assert orchestrator.ingest(batch).inserted == 1

    cache.invalidate()
    orchestrator.ledger.forget_local()
    again = orchestrator.ingest(batch)
    assert again.fresh == 0
    assert again.inserted == 0


def test_analyzer_marks_only_successful_urls(build_orchestrator):
    analysed: list[str] = []

    def analyzer(candidate: ArticleCandidate) -> dict:
        if "fail" in candidate.source_url:
            raise ValueError("model error")
        analysed.append(candidate.source_url)
        return {"summary": candidate.title}

    orchestrator = build_orchestrator(StubCollector({}), analyzer=analyzer)
    summary = orchestrator.ingest(
        [
            ArticleCandidate("Analysis works for this story", "https://ok.com/1"),
            ArticleCandidate("Analysis breaks on another topic", "https://fail.com/1"),
        ]
    )
    assert summary.inserted == 2
    assert summary.analysed == 1
    assert analysed == ["https://ok.com/1"]
    assert orchestrator.ledger.is_processed("https://ok.com/1")
    assert not orchestrator.ledger.is_processed("https://fail.com/1")
    assert orchestrator.ledger.cached_analysis("https://ok.com/1") == {"summary": "Analysis works for this story"}


def test_concurrent_run_is_rejected(build_orchestrator, temp_config_repository, sample_source_config):
    _register(temp_config_repository, sample_source_config, (1, "Alpha"))
    started = threading.Event()
    release = threading.Event()

    class BlockingCollector:
        def fetch(self, source):
            started.set()
            release.wait(timeout=5)
            return []

    orchestrator = build_orchestrator(BlockingCollector())
    worker = threading.Thread(target=orchestrator.run_collection)
    worker.start()
    try:
        assert started.wait(timeout=5)
        assert orchestrator.busy
        with pytest.raises(CollectorBusyError):
            orchestrator.ingest([])
    finally:
        release.set()
        worker.join(timeout=5)
    assert not orchestrator.busy


def test_injected_ledger_is_used(temp_config_repository, article_store, cache, clock):
    ledger = ProcessedUrlLedger(cache)
    orchestrator = IngestionOrchestrator(
        temp_config_repository, article_store, cache, StubCollector({}), ledger=ledger, clock=clock
    )
    orchestrator.ingest([ArticleCandidate("Injected ledger story", "https://l.com/1")])
    assert ledger.is_processed("https://l.com/1")
