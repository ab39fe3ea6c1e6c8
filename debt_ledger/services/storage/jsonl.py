"""
JSON-lines Audit Storage

DESIGN DECISION: The audit trail is written to an append-only file,
one JSON object per line, because:
1. Appends never rewrite earlier history
2. Any log shipper or `jq` can read it
3. No database setup required

TRADEOFFS:
- Queries scan the whole file (fine for an audit trail of one ledger)
- Concurrent writers from several processes are not coordinated
"""

import json
from pathlib import Path
from typing import Optional
from uuid import UUID

from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from debt_ledger.config import get_settings
from debt_ledger.models.audit import AuditEvent
from debt_ledger.services.storage.interface import (
    AuditStorageInterface,
    ConnectionError,
    StorageError,
)


class JsonlAuditStorage(AuditStorageInterface):
    """
    File-backed implementation of audit storage.

    Events are appended as single lines and read back in file order.
    """

    def __init__(self, path: Optional[str] = None):
        path = path or get_settings().audit.log_path
        if not path:
            raise ConnectionError("No audit log path configured")
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    @retry(
        retry=retry_if_exception_type(OSError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def _write_line(self, line: str) -> None:
        with self._path.open("a", encoding="utf-8") as fh:
            fh.write(line + "\n")

    def _read_events(self) -> list[AuditEvent]:
        if not self._path.exists():
            return []

        events = []
        with self._path.open("r", encoding="utf-8") as fh:
            for line in fh:
                line = line.strip()
                if not line:
                    continue
                try:
                    events.append(AuditEvent.model_validate(json.loads(line)))
                except ValueError:
                    # Torn or foreign line; the rest of the trail is still usable
                    continue
        return events

    async def append_event(self, event: AuditEvent) -> bool:
        """Append an audit event."""
        try:
            self._write_line(event.to_json_line())
            return True
        except OSError as e:
            raise StorageError(f"Failed to write audit event: {e}")

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """Get events by correlation ID."""
        try:
            events = [
                e for e in self._read_events()
                if e.correlation_id == correlation_id
            ]
        except OSError as e:
            raise StorageError(f"Failed to get audit events: {e}")

        events.sort(key=lambda e: e.timestamp)
        return events

    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: str,
    ) -> list[AuditEvent]:
        """Get events by entity."""
        try:
            events = [
                e for e in self._read_events()
                if e.entity_type == entity_type and e.entity_id == entity_id
            ]
        except OSError as e:
            raise StorageError(f"Failed to get audit events: {e}")

        events.sort(key=lambda e: e.timestamp)
        return events

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """Get recent events."""
        try:
            events = self._read_events()
        except OSError as e:
            raise StorageError(f"Failed to get audit events: {e}")

        # Newest first
        events.sort(key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
