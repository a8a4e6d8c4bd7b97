"""Audit logger — PHI-free trail of store mutations and tool invocations.

Each event records what happened and to which entity id, never the health
data itself:

* ``tool_input_hash`` — SHA-256 of canonical JSON of the tool arguments.
* ``entity_id``       — id of the profile, alert or symptom entry touched.
"""

from __future__ import annotations

import hashlib
import json
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from climacare.core.storage.database import AdvisoryDatabase

logger = logging.getLogger(__name__)


def _hash_input(data: Any) -> str:
    """SHA-256 hash of canonical JSON.

    Returns:
        Hex-encoded digest, or empty string if ``data`` is not serializable.
    """
    try:
        canonical = json.dumps(data, sort_keys=True, separators=(",", ":"))
        return hashlib.sha256(canonical.encode()).hexdigest()
    except (TypeError, ValueError):
        return ""


@dataclass
class AuditEvent:
    """A single audit log entry."""

    action: str                          # 'tool_invocation' | 'data_write' | 'data_delete'
    tool_name: str = ""
    tool_input_hash: str = ""
    entity_id: str | None = None
    duration_ms: float | None = None
    status: str = "success"              # 'success' | 'failure'
    error_type: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


class AuditLogger:
    """Records audit events to the ``audit_log`` SQLite table.

    All writes are committed immediately.

    Usage::

        audit = AuditLogger(db)
        audit.log_tool_call("record_symptoms", {"severity": "high"}, entity_id=entry.id)
    """

    def __init__(self, database: AdvisoryDatabase) -> None:
        self._db = database

    def log_event(self, event: AuditEvent) -> str:
        """Insert an audit event and return its UUID (empty string if the write failed)."""
        event_id = str(uuid.uuid4())
        row = {
            "id": event_id,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "action": event.action,
            "tool_name": event.tool_name or None,
            "tool_input_hash": event.tool_input_hash or None,
            "entity_id": event.entity_id,
            "duration_ms": event.duration_ms,
            "status": event.status,
            "error_type": event.error_type,
            "metadata_json": (
                json.dumps(event.metadata, separators=(",", ":")) if event.metadata else None
            ),
        }
        columns = ", ".join(row)
        placeholders = ", ".join(f":{name}" for name in row)

        try:
            conn = self._db.connection
            conn.execute(f"INSERT INTO audit_log ({columns}) VALUES ({placeholders})", row)
            conn.commit()
        except Exception:
            logger.exception(
                "Failed to write audit event %s (%s); event lost", event.action, event.tool_name
            )
            return ""

        return event_id

    def log_tool_call(
        self,
        tool_name: str,
        tool_input: Any = None,
        *,
        entity_id: str | None = None,
        duration_ms: float | None = None,
        status: str = "success",
        error_type: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> str:
        """Log an MCP tool invocation. ``tool_input`` is hashed, never stored."""
        return self.log_event(AuditEvent(
            action="tool_invocation",
            tool_name=tool_name,
            tool_input_hash=_hash_input(tool_input) if tool_input else "",
            entity_id=entity_id,
            duration_ms=duration_ms,
            status=status,
            error_type=error_type,
            metadata=metadata or {},
        ))

    def log_data_write(
        self,
        *,
        tool_name: str = "",
        entity_id: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> str:
        """Log creation or modification of a stored record."""
        return self.log_event(AuditEvent(
            action="data_write",
            tool_name=tool_name,
            entity_id=entity_id,
            metadata=metadata or {},
        ))

    def log_data_delete(
        self,
        *,
        tool_name: str = "",
        entity_id: str | None = None,
        count: int = 0,
        metadata: dict[str, Any] | None = None,
    ) -> str:
        """Log a deletion event."""
        return self.log_event(AuditEvent(
            action="data_delete",
            tool_name=tool_name,
            entity_id=entity_id,
            metadata={**(metadata or {}), "records_deleted": count},
        ))

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    @staticmethod
    def _filters(**criteria: Any) -> tuple[str, list[Any]]:
        """WHERE clause for the non-empty criteria. ``since`` is a timestamp lower bound."""
        clauses: list[str] = []
        params: list[Any] = []
        for column, value in criteria.items():
            if not value:
                continue
            clauses.append("timestamp >= ?" if column == "since" else f"{column} = ?")
            params.append(value)
        return (" WHERE " + " AND ".join(clauses)) if clauses else "", params

    def get_events(
        self,
        *,
        action: str | None = None,
        tool_name: str | None = None,
        entity_id: str | None = None,
        since: str | None = None,
        limit: int = 50,
    ) -> list[dict[str, Any]]:
        """Audit events matching every given filter, newest first.

        ``entity_id`` returns the trail of one profile, alert or symptom entry.
        """
        where, params = self._filters(
            action=action, tool_name=tool_name, entity_id=entity_id, since=since
        )
        rows = self._db.connection.execute(
            f"SELECT * FROM audit_log{where} ORDER BY timestamp DESC LIMIT ?",
            [*params, limit],
        ).fetchall()
        return [dict(row) for row in rows]

    def count_events(self, *, action: str | None = None, since: str | None = None) -> int:
        where, params = self._filters(action=action, since=since)
        row = self._db.connection.execute(
            f"SELECT COUNT(*) FROM audit_log{where}", params
        ).fetchone()
        return row[0]
