"""SQLite connections for the article store."""

from __future__ import annotations

import sqlite3
from pathlib import Path
from threading import Lock

# NULL source_url values never collide under UNIQUE, URL-less articles rely on title dedup.
ARTICLES_SCHEMA = """
CREATE TABLE IF NOT EXISTS articles (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    title TEXT NOT NULL,
    source_url TEXT UNIQUE,
    published_at TEXT,
    source_name TEXT,
    payload TEXT NOT NULL DEFAULT '{}',
    created_at TEXT NOT NULL DEFAULT (datetime('now'))
);
CREATE INDEX IF NOT EXISTS idx_articles_created_at ON articles(created_at);
"""

_SIDECARS = ("-wal", "-shm", "-journal")


class SQLiteManager:
    """One shared connection per database file, schema applied on first open."""

    def __init__(self) -> None:
        self._connections: dict[Path, sqlite3.Connection] = {}
        self._lock = Lock()

    def connect(self, path: Path) -> sqlite3.Connection:
        key = path.resolve()
        with self._lock:
            conn = self._connections.get(key)
            if conn is None:
                key.parent.mkdir(parents=True, exist_ok=True)
                conn = sqlite3.connect(key, check_same_thread=False)
                conn.row_factory = sqlite3.Row
                conn.execute("PRAGMA journal_mode=WAL")
                conn.executescript(ARTICLES_SCHEMA)
                self._connections[key] = conn
            return conn

    def close(self, path: Path) -> None:
        with self._lock:
            conn = self._connections.pop(path.resolve(), None)
        if conn is not None:
            conn.close()

    def reset(self, path: Path) -> None:
        """Close and delete the database file together with its journal files."""

        self.close(path)
        for candidate in (path, *(path.with_name(path.name + suffix) for suffix in _SIDECARS)):
            candidate.unlink(missing_ok=True)

    def close_all(self) -> None:
        with self._lock:
            connections = list(self._connections.values())
            self._connections.clear()
        for conn in connections:
            conn.close()


__all__ = ["ARTICLES_SCHEMA", "SQLiteManager"]
