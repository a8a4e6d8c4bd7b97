"""Key-value persistence for the advisory stores.

Each store keeps its whole state under one fixed key (``healthProfile``,
``familyProfiles``, ``alertHistory``, ``symptomHistory``) and rewrites it on
every mutation, so a ``set`` is the unit of atomicity.
"""

from __future__ import annotations

import copy
import logging
from datetime import datetime, timezone
from typing import Any, Protocol, runtime_checkable

from climacare.core.storage.codecs import BlobCodec, EncryptionError, JsonCodec
from climacare.core.storage.database import AdvisoryDatabase

logger = logging.getLogger(__name__)


class StorageError(Exception):
    """Raised when a stored blob cannot be read or written."""


@runtime_checkable
class KeyValueStore(Protocol):
    """Get/set/delete of JSON-shaped values by key."""

    def get(self, key: str) -> Any | None:
        """Return the value for ``key``, or None if absent."""
        ...

    def set(self, key: str, value: Any) -> None:
        """Replace the value for ``key``."""
        ...

    def delete(self, key: str) -> None:
        """Remove ``key``; no error if absent."""
        ...


class InMemoryKeyValueStore:
    """Dict-backed store for tests and ephemeral sessions.

    Values are deep-copied on the way in and out so callers never share
    mutable state with the store.
    """

    def __init__(self) -> None:
        self._data: dict[str, Any] = {}

    def get(self, key: str) -> Any | None:
        if key not in self._data:
            return None
        return copy.deepcopy(self._data[key])

    def set(self, key: str, value: Any) -> None:
        self._data[key] = copy.deepcopy(value)

    def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> list[str]:
        return sorted(self._data)


class SqliteKeyValueStore:
    """Store backed by the ``kv_store`` table of an :class:`AdvisoryDatabase`.

    Usage::

        db = AdvisoryDatabase("~/.climacare/advisory.db")
        db.initialize()
        store = SqliteKeyValueStore(db, EncryptedCodec(key))
        store.set("healthProfile", {...})
    """

    def __init__(self, database: AdvisoryDatabase, codec: BlobCodec | None = None) -> None:
        self._db = database
        self._codec = codec or JsonCodec()

    def get(self, key: str) -> Any | None:
        row = self._db.connection.execute(
            "SELECT value FROM kv_store WHERE key = ?", (key,)
        ).fetchone()
        if row is None:
            return None
        try:
            return self._codec.decode(row["value"])
        except (EncryptionError, ValueError) as exc:
            raise StorageError(f"Could not decode stored value for {key!r}: {exc}") from exc

    def set(self, key: str, value: Any) -> None:
        try:
            encoded = self._codec.encode(value)
        except (EncryptionError, TypeError, ValueError) as exc:
            raise StorageError(f"Could not encode value for {key!r}: {exc}") from exc

        conn = self._db.connection
        conn.execute(
            """INSERT INTO kv_store (key, value, updated_at) VALUES (?, ?, ?)
               ON CONFLICT(key) DO UPDATE SET
                   value = excluded.value,
                   updated_at = excluded.updated_at""",
            (key, encoded, datetime.now(timezone.utc).isoformat()),
        )
        conn.commit()
        logger.debug("Stored key %s", key)

    def delete(self, key: str) -> None:
        conn = self._db.connection
        conn.execute("DELETE FROM kv_store WHERE key = ?", (key,))
        conn.commit()

    def keys(self) -> list[str]:
        rows = self._db.connection.execute("SELECT key FROM kv_store ORDER BY key").fetchall()
        return [row[0] for row in rows]
