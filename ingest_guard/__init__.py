"""Deduplicating, cache-aware article ingestion."""

__version__ = "0.1.0"
