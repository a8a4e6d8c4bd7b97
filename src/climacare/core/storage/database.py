"""SQLite data bank: connection lifecycle and ordered schema migrations.

Tables:

* ``kv_store``       — one row per persisted blob (primary profile, family
  list, alert history, symptom history), value encoded by a blob codec.
* ``audit_log``      — PHI-free trail of tool calls and store mutations.
* ``schema_version`` — applied migration level.
"""

from __future__ import annotations

import logging
import sqlite3
from pathlib import Path

logger = logging.getLogger(__name__)

_BOOTSTRAP = """
CREATE TABLE IF NOT EXISTS schema_version (
    version    INTEGER NOT NULL,
    applied_at TEXT NOT NULL DEFAULT (datetime('now'))
);
"""

_KV_STORE = """
CREATE TABLE IF NOT EXISTS kv_store (
    key         TEXT PRIMARY KEY,
    value       TEXT NOT NULL,
    updated_at  TEXT NOT NULL DEFAULT (datetime('now'))
);
"""

_AUDIT_LOG = """
CREATE TABLE IF NOT EXISTS audit_log (
    id              TEXT PRIMARY KEY,
    timestamp       TEXT NOT NULL DEFAULT (datetime('now')),
    action          TEXT NOT NULL,
    tool_name       TEXT,
    tool_input_hash TEXT,
    entity_id       TEXT,
    duration_ms     REAL,
    status          TEXT NOT NULL DEFAULT 'success',
    error_type      TEXT,
    metadata_json   TEXT
);

CREATE INDEX IF NOT EXISTS idx_audit_timestamp ON audit_log(timestamp);
CREATE INDEX IF NOT EXISTS idx_audit_action    ON audit_log(action);
CREATE INDEX IF NOT EXISTS idx_audit_tool      ON audit_log(tool_name);
CREATE INDEX IF NOT EXISTS idx_audit_entity    ON audit_log(entity_id);
"""

# (version, DDL) in application order
_MIGRATIONS = (
    (1, _KV_STORE),
    (2, _AUDIT_LOG),
)
SCHEMA_VERSION = _MIGRATIONS[-1][0]


class DatabaseError(Exception):
    """Raised when database operations fail."""


class AdvisoryDatabase:
    """Owns the single SQLite connection behind the key-value store and audit log.

    ``":memory:"`` gives a throwaway database (tests, ephemeral sessions);
    any other path is a file, created with its parent directory on first use.

    Usage::

        with AdvisoryDatabase("~/.climacare/advisory.db") as db:
            store = SqliteKeyValueStore(db)
    """

    def __init__(self, db_path: str = ":memory:") -> None:
        self._db_path = db_path
        self._conn: sqlite3.Connection | None = None

    @property
    def connection(self) -> sqlite3.Connection:
        """The open connection.

        Raises:
            DatabaseError: ``initialize()`` has not been called (or the
                database was closed).
        """
        if self._conn is None:
            raise DatabaseError("Database not initialized. Call initialize() first.")
        return self._conn

    @property
    def is_memory(self) -> bool:
        return self._db_path == ":memory:"

    def initialize(self) -> None:
        """Open the connection and bring the schema up to date. Idempotent."""
        if self._conn is not None:
            return

        target = ":memory:"
        if not self.is_memory:
            db_file = Path(self._db_path).expanduser()
            db_file.parent.mkdir(parents=True, exist_ok=True)
            target = str(db_file)

        self._conn = sqlite3.connect(target, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._migrate()
        logger.info("Advisory database initialized: %s", self._db_path)

    def _migrate(self) -> None:
        conn = self.connection
        conn.executescript(_BOOTSTRAP)

        current = self.get_schema_version()
        for version, script in _MIGRATIONS:
            if version > current:
                conn.executescript(script)
                logger.info("Applied schema migration V%d", version)

        if current < SCHEMA_VERSION:
            conn.execute("INSERT INTO schema_version (version) VALUES (?)", (SCHEMA_VERSION,))
            conn.commit()
            logger.info("Schema updated from version %d to %d", current, SCHEMA_VERSION)

    def get_schema_version(self) -> int:
        """Highest applied migration, 0 for a fresh database."""
        row = self.connection.execute("SELECT MAX(version) FROM schema_version").fetchone()
        return row[0] or 0

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None
            logger.info("Advisory database closed")

    def __enter__(self) -> AdvisoryDatabase:
        self.initialize()
        return self

    def __exit__(self, *args) -> None:
        self.close()
