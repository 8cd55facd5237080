"""Persistent store backed by SQLite; survives process restarts.

Drop-in replacement for MemoryStore when you need durability, e.g. when
scrub and restore run as separate CLI invocations.

Usage:
    store = SqliteStore("default", db_path="~/.aegis-shield/store.db")
    store.set({"pii_mapping": {"[EMAIL]": "john@acme.com"}})
    store.get(["pii_mapping"])
"""

from __future__ import annotations
import json
import sqlite3
from pathlib import Path
from typing import Any, Iterable


_SCHEMA = """
CREATE TABLE IF NOT EXISTS entries (
    namespace TEXT NOT NULL,
    key TEXT NOT NULL,
    value TEXT NOT NULL,
    updated_at REAL NOT NULL DEFAULT (julianday('now')),
    PRIMARY KEY (namespace, key)
);
"""


class SqliteStore:
    """Namespaced key-value store; values are stored as JSON."""

    __slots__ = ("_namespace", "_db")

    def __init__(self, namespace: str = "default", *, db_path: str | Path = "store.db") -> None:
        self._namespace = namespace
        if str(db_path) != ":memory:":
            db_path = Path(db_path).expanduser()
            db_path.parent.mkdir(parents=True, exist_ok=True)
        self._db = sqlite3.connect(str(db_path), check_same_thread=False)
        self._db.executescript(_SCHEMA)

    @property
    def namespace(self) -> str:
        return self._namespace

    def get(self, keys: Iterable[str]) -> dict[str, Any]:
        out: dict[str, Any] = {}
        for key in keys:
            row = self._db.execute(
                "SELECT value FROM entries WHERE namespace = ? AND key = ?",
                (self._namespace, key),
            ).fetchone()
            if row is not None:
                out[key] = json.loads(row[0])
        return out

    def set(self, obj: dict[str, Any]) -> None:
        rows = [
            (self._namespace, key, json.dumps(value, ensure_ascii=False))
            for key, value in obj.items()
        ]
        self._db.executemany(
            "INSERT OR REPLACE INTO entries (namespace, key, value) VALUES (?, ?, ?)",
            rows,
        )
        self._db.commit()

    def remove(self, keys: Iterable[str]) -> None:
        self._db.executemany(
            "DELETE FROM entries WHERE namespace = ? AND key = ?",
            [(self._namespace, key) for key in keys],
        )
        self._db.commit()

    def dump(self) -> dict[str, Any]:
        rows = self._db.execute(
            "SELECT key, value FROM entries WHERE namespace = ?",
            (self._namespace,),
        ).fetchall()
        return {key: json.loads(value) for key, value in rows}

    def clear(self) -> None:
        self._db.execute("DELETE FROM entries WHERE namespace = ?", (self._namespace,))
        self._db.commit()

    def list_namespaces(self) -> list[str]:
        """List all namespaces in the database."""
        rows = self._db.execute("SELECT DISTINCT namespace FROM entries").fetchall()
        return [r[0] for r in rows]

    def close(self) -> None:
        self._db.close()
