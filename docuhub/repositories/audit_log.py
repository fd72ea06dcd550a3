"""
Key-Value Audit Storage

Keeps the most recent audit events in the same store as everything else,
so the admin dashboard can show recent activity without a log shipper.
The list is capped; the structlog output is the complete record.

The events share the store quota with the documents, so a nearly full store
can refuse an audit write. AuditLogger reports that and carries on; the
audited operation itself is not affected.
"""

from docuhub.models.audit import AuditEvent
from docuhub.repositories.base import JsonCollection
from docuhub.services.storage.interface import AuditStorageInterface, KeyValueStore


class KeyValueAuditStorage(AuditStorageInterface):
    """Append-only, capped audit log stored under one key."""

    def __init__(
        self,
        store: KeyValueStore,
        key: str = "docuhub_audit_log",
        max_entries: int = 500,
    ):
        self._events = JsonCollection(store, key, AuditEvent)
        self._max_entries = max_entries

    async def append_event(self, event: AuditEvent) -> bool:
        def mutate(events: list[AuditEvent]):
            kept = (events + [event])[-self._max_entries:]
            return kept, True

        return await self._events.transaction(mutate)

    async def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        events = await self._events.load()
        # Stored oldest first
        return list(reversed(events))[:limit]
