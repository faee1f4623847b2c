"""Pydantic models used across the ingestion configuration flow."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator, model_validator

Purpose = Literal["dashboard", "market-intelligence", "both"]


class DedupConfig(BaseModel):
    """Tunables for title normalisation and fuzzy matching."""

    similarity_threshold: float = Field(default=0.7, ge=0.0, le=1.0)
    max_key_tokens: int = Field(default=8, ge=1)
    # tokens shorter than this are not significant (default drops length <= 2)
    min_token_length: int = Field(default=3, ge=1)
    use_token_index: bool = True


class CacheConfig(BaseModel):
    """TTLs (seconds) for the in-process cache store."""

    default_ttl_seconds: float = Field(default=300.0, gt=0)
    news_list_ttl_seconds: float = Field(default=120.0, gt=0)
    summary_ttl_seconds: float = Field(default=600.0, gt=0)
    analysis_ttl_seconds: float = Field(default=86400.0, gt=0)
    sweep_interval_seconds: float = Field(default=300.0, gt=0)


class ThrottleConfig(BaseModel):
    """Per-source fetch throttling."""

    min_interval_minutes: float = Field(default=15.0, ge=0)
    record_ttl_minutes: float = Field(default=30.0, gt=0)


class LedgerConfig(BaseModel):
    """Retention of the processed-URL ledger."""

    ttl_hours: float = Field(default=24.0, gt=0)


class CollectionConfig(BaseModel):
    """Controls for a single collection run."""

    interval_minutes: float = Field(default=15.0, gt=0)
    filter_feed_urls: bool = True
    max_workers: int = Field(default=4, ge=1)
    request_timeout: float = Field(default=15.0, gt=0)
    retries: int = Field(default=1, ge=0)
    user_agent: str | None = None


class SourceConfig(BaseModel):
    """Definition of an external feed."""

    source_id: int
    source_name: str
    feed_url: str
    is_active: bool = True
    purpose: Purpose = "both"
    min_interval_minutes: float | None = Field(default=None, ge=0)

    @model_validator(mode="after")
    def _validate_source(self) -> "SourceConfig":
        if not self.source_name.strip():
            raise ValueError("source_name cannot be empty")
        if not self.feed_url.startswith(("http://", "https://")):
            raise ValueError("feed_url must be an http(s) URL")
        return self

    def serves(self, purpose: str | None) -> bool:
        """Return True if the source is active and configured for ``purpose``."""

        if not self.is_active:
            return False
        if purpose is None or purpose == "both":
            return True
        return self.purpose in (purpose, "both")


class GlobalConfig(BaseModel):
    """Global controls shared across sources."""

    dedup: DedupConfig = Field(default_factory=DedupConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    throttle: ThrottleConfig = Field(default_factory=ThrottleConfig)
    ledger: LedgerConfig = Field(default_factory=LedgerConfig)
    collection: CollectionConfig = Field(default_factory=CollectionConfig)
    database_path: Path = Field(default=Path("data/articles.db"))

    @field_validator("database_path", mode="before")
    @classmethod
    def _coerce_path(cls, value: Any) -> Path:
        return Path(value)

    def resolved_database_path(self, base_dir: Path) -> Path:
        """Return the article database path relative to the project root."""

        if not self.database_path.is_absolute():
            return (base_dir / self.database_path).resolve()
        return self.database_path


__all__ = [
    "CacheConfig",
    "CollectionConfig",
    "DedupConfig",
    "GlobalConfig",
    "LedgerConfig",
    "Purpose",
    "SourceConfig",
    "ThrottleConfig",
]
