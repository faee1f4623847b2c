from __future__ import annotations

from pathlib import Path

import pytest

from ingest_guard.config import DedupConfig, GlobalConfig, SourceConfig, ThrottleConfig


def test_defaults_match_tuned_constants() -> None:
    config = GlobalConfig()
    assert config.dedup.similarity_threshold == 0.7
    assert config.dedup.max_key_tokens == 8
    assert config.dedup.min_token_length == 3
    assert config.throttle.min_interval_minutes == 15
    assert config.throttle.record_ttl_minutes == 30
    assert config.ledger.ttl_hours == 24
    assert config.cache.default_ttl_seconds == 300


def test_dedup_threshold_bounds() -> None:
    with pytest.raises(ValueError):
        DedupConfig(similarity_threshold=1.5)
    with pytest.raises(ValueError):
        DedupConfig(max_key_tokens=0)


def test_throttle_rejects_non_positive_record_ttl() -> None:
    with pytest.raises(ValueError):
        ThrottleConfig(record_ttl_minutes=0)


def test_source_validation() -> None:
    with pytest.raises(ValueError):
        SourceConfig(source_id=1, source_name="X", feed_url="ftp://example.com")
    with pytest.raises(ValueError):
        SourceConfig(source_id=1, source_name="  ", feed_url="https://example.com")
    with pytest.raises(ValueError):
        SourceConfig(source_id=1, source_name="X", feed_url="https://example.com", purpose="other")


@pytest.mark.parametrize(
    ("purpose", "is_active", "requested", "expected"),
    [
        ("dashboard", True, "dashboard", True),
        ("both", True, "market-intelligence", True),
        ("dashboard", True, "market-intelligence", False),
        ("dashboard", False, "dashboard", False),
        ("dashboard", True, None, True),
    ],
)
def test_source_serves_purpose(sample_source_config, purpose, is_active, requested, expected) -> None:
    source = sample_source_config(purpose=purpose, is_active=is_active)
    assert source.serves(requested) is expected


def test_database_path_resolution(tmp_path: Path) -> None:
    config = GlobalConfig(database_path="data/custom.db")
    assert config.resolved_database_path(tmp_path) == (tmp_path / "data" / "custom.db").resolve()
    absolute = tmp_path / "abs.db"
    assert GlobalConfig(database_path=absolute).resolved_database_path(Path("/elsewhere")) == absolute
