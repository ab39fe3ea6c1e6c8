"""In-memory audit storage, used by tests and local runs."""

import asyncio
from uuid import UUID

from debt_ledger.models.audit import AuditEvent
from debt_ledger.services.storage.interface import AuditStorageInterface


class InMemoryAuditStorage(AuditStorageInterface):
    """Keeps audit events in a list, in append order."""

    def __init__(self):
        self._events: list[AuditEvent] = []
        self._lock = asyncio.Lock()

    async def append_event(self, event: AuditEvent) -> bool:
        async with self._lock:
            self._events.append(event)
        return True

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        return [e for e in self._events if e.correlation_id == correlation_id]

    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: str,
    ) -> list[AuditEvent]:
        return [
            e for e in self._events
            if e.entity_type == entity_type and e.entity_id == entity_id
        ]

    async def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        return list(reversed(self._events))[:limit]
