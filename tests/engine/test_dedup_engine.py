from __future__ import annotations

import pytest

from ingest_guard.config import DedupConfig
from ingest_guard.engine.dedup import (
    ArticleIdentity,
    BatchDeduplicator,
    DuplicateDetector,
    PersistedStateDeduplicator,
    SeenSet,
)


class StaticCorpus:
    def __init__(self, identities: list[ArticleIdentity]) -> None:
        self._identities = identities
        self.reads = 0

    def identities(self) -> list[ArticleIdentity]:
        self.reads += 1
        return self._identities


def test_exact_url_duplicate_dropped(article) -> None:
    batch = [
        article("First headline about chips", "https://x.com/1"),
        article("Completely different story", "https://x.com/1"),
    ]
    result = BatchDeduplicator().deduplicate(batch)
    assert [c.title for c in result] == ["First headline about chips"]


def test_fuzzy_title_duplicate_dropped(article) -> None:
    a = article("OpenAI releases GPT-5 today", "https://x.com/1")
    b = article("OpenAI Releases GPT-5!!", "https://x.com/2")
    assert BatchDeduplicator().deduplicate([a, b]) == [a]


def test_unrelated_titles_retained(article) -> None:
    a = article("OpenAI releases GPT-5")
    c = article("Google launches Gemini 3")
    assert BatchDeduplicator().deduplicate([a, c]) == [a, c]


def test_batch_preserves_order_and_is_idempotent(article) -> None:
    batch = [
        article("Nvidia earnings beat expectations again", "https://n.com/1"),
        article("Apple unveils new vision headset", "https://a.com/1"),
        article("Nvidia earnings beat expectations again!", "https://n.com/2"),
        article("Regulators probe cloud market", None),
        article("Apple unveils new vision headset", "https://a.com/2"),
        article("Something else", "https://n.com/1"),
    ]
    dedup = BatchDeduplicator()
    once = dedup.deduplicate(batch)
    assert [c.source_url for c in once] == ["https://n.com/1", "https://a.com/1", None]
    assert dedup.deduplicate(once) == once


def test_missing_url_still_runs_title_check(article) -> None:
    batch = [article("Quantum computing startup raises funds"), article("Quantum computing startup raises funds")]
    assert len(BatchDeduplicator().deduplicate(batch)) == 1


def test_similarity_must_exceed_threshold(article) -> None:
    # 7 of 10 tokens shared -> 0.7, which is not strictly greater
    detector = DuplicateDetector(DedupConfig(max_key_tokens=10))
    seen = SeenSet()
    detector.register(article("alpha bravo charlie delta echo foxtrot golf hotel india juliet"), seen)
    candidate = article("alpha bravo charlie delta echo foxtrot golf kilo lima mike")
    assert not detector.is_duplicate(candidate, seen)


@pytest.mark.parametrize("use_index", [True, False])
def test_index_and_linear_scan_agree(article, use_index: bool) -> None:
    detector = DuplicateDetector(DedupConfig(use_token_index=use_index))
    batch = [
        article("Microsoft invests billions into new data centers"),
        article("Microsoft invests billions into data centers"),
        article("Tesla recalls vehicles over software fault"),
        article("Tesla recalls vehicles over software"),
    ]
    result = BatchDeduplicator(detector).deduplicate(batch)
    assert [c.title for c in result] == [batch[0].title, batch[2].title]


def test_check_reports_reason(article) -> None:
    detector = DuplicateDetector()
    seen = SeenSet()
    detector.register(article("Chipmakers rally on strong demand", "https://c.com/1"), seen)

    by_url = detector.check(article("Other", "https://c.com/1"), seen)
    assert by_url.url_duplicate and by_url.is_duplicate

    by_title = detector.check(article("Chipmakers rally on strong demand", "https://c.com/2"), seen)
    assert not by_title.url_duplicate
    assert by_title.matched_key == "chipmakers rally strong demand"
    assert by_title.score == pytest.approx(1.0)


def test_seen_set_index_tracks_tokens() -> None:
    seen = SeenSet()
    seen.add("https://a", "alpha beta")
    seen.add(None, "beta gamma")
    assert seen.related_keys("beta") == {"alpha beta", "beta gamma"}
    assert seen.related_keys("delta") == set()
    assert len(seen) == 2


def test_persisted_dedup_filters_against_corpus(article) -> None:
    corpus = StaticCorpus(
        [
            ArticleIdentity(1, "OpenAI releases GPT-5 today", "https://x.com/1"),
            ArticleIdentity(2, "Stored without a link", None),
        ]
    )
    candidates = [
        article("OpenAI Releases GPT-5!!", "https://y.com/9"),
        article("Brand new story", "https://x.com/1"),
        article("Fresh news about robotics", "https://z.com/3"),
    ]
    fresh = PersistedStateDeduplicator(corpus).deduplicate(candidates)
    assert [c.source_url for c in fresh] == ["https://z.com/3"]
    assert corpus.reads == 1


def test_persisted_dedup_skips_corpus_read_for_empty_input() -> None:
    corpus = StaticCorpus([])
    assert PersistedStateDeduplicator(corpus).deduplicate([]) == []
    assert corpus.reads == 0
