"""Configuration package exports."""

from .loader import ConfigLocator, ConfigRepository
from .models import (
    CacheConfig,
    CollectionConfig,
    DedupConfig,
    GlobalConfig,
    LedgerConfig,
    Purpose,
    SourceConfig,
    ThrottleConfig,
)

__all__ = [
    "CacheConfig",
    "CollectionConfig",
    "ConfigLocator",
    "ConfigRepository",
    "DedupConfig",
    "GlobalConfig",
    "LedgerConfig",
    "Purpose",
    "SourceConfig",
    "ThrottleConfig",
]
