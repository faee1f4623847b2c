"""Persist articles to a SQLite table."""

from __future__ import annotations

import json
import sqlite3
from pathlib import Path
from threading import Lock
from typing import Iterable, Sequence

from ...infra.storage import SQLiteManager
from ..candidate import ArticleCandidate
from ..dedup import ArticleIdentity
from .base import BaseArticleStore

_INSERT_SQL = (
    "INSERT INTO articles(title, source_url, published_at, source_name, payload) "
    "VALUES (?, ?, ?, ?, ?)"
)


def _row(candidate: ArticleCandidate) -> tuple[object, ...]:
    return (
        candidate.title,
        candidate.source_url,
        candidate.published_at.isoformat() if candidate.published_at else None,
        candidate.payload.get("source_name") or candidate.payload.get("source"),
        json.dumps(candidate.payload, ensure_ascii=False, default=str),
    )


class SQLiteArticleStore(BaseArticleStore):
    """Articles table keyed by autoincrement id with unique ``source_url``."""

    def __init__(self, manager: SQLiteManager, path: Path) -> None:
        self.manager = manager
        self.path = path
        self.conn = manager.connect(path)
        self._lock = Lock()

    def identities(self) -> Iterable[ArticleIdentity]:
        with self._lock:
            rows = self.conn.execute("SELECT id, title, source_url FROM articles").fetchall()
        return [ArticleIdentity(row["id"], row["title"], row["source_url"]) for row in rows]

    def insert_many(self, candidates: Sequence[ArticleCandidate]) -> None:
        with self._lock:
            try:
                self.conn.executemany(_INSERT_SQL, [_row(c) for c in candidates])
            except sqlite3.Error:
                self.conn.rollback()
                raise
            self.conn.commit()

    def insert_one(self, candidate: ArticleCandidate) -> None:
        with self._lock:
            try:
                self.conn.execute(_INSERT_SQL, _row(candidate))
            except sqlite3.Error:
                self.conn.rollback()
                raise
            self.conn.commit()

    def count(self) -> int:
        with self._lock:
            return self.conn.execute("SELECT count(*) FROM articles").fetchone()[0]

    def recent(self, limit: int = 20) -> list[dict[str, object]]:
        with self._lock:
            rows = self.conn.execute(
                "SELECT id, title, source_url, source_name, created_at FROM articles "
                "ORDER BY id DESC LIMIT ?",
                (limit,),
            ).fetchall()
        return [dict(row) for row in rows]

    def close(self) -> None:
        with self._lock:
            self.conn.commit()


__all__ = ["SQLiteArticleStore"]
