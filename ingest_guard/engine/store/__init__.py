"""Article storage SPI and implementations."""

from .base import BaseArticleStore, InsertFailure, InsertReport
from .sqlite_store import SQLiteArticleStore

__all__ = ["BaseArticleStore", "InsertFailure", "InsertReport", "SQLiteArticleStore"]
