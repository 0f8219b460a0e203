"""
Observability & Audit Layer

RESPONSIBILITY: Record what the registry did, in order
ALLOWED INPUTS: Audit entries from the registry facade
OUTPUTS: Read-only audit entry lists

WHAT THIS LAYER MUST NOT DO:
============================
- Modify system behavior
- Filter or interpret events (only record them)
- Block or delay other layer operations
"""

from __future__ import annotations
from typing import Dict, List, Optional
import hashlib

from ..contracts.base import now_millis
from ..contracts.events import AuditEventType, AuditLogEntry


class AuditLog:
    """
    Append-only audit collector.

    Bounded by max_entries; the oldest entries are discarded first.
    """

    def __init__(self, max_entries: int = 1000):
        self._entries: List[AuditLogEntry] = []
        self._sequence: int = 0
        self._max_entries = max_entries

    def record(
        self,
        event_type: AuditEventType,
        action: str,
        entity_id: Optional[str] = None,
        metadata: Optional[Dict[str, object]] = None
    ) -> AuditLogEntry:
        """Append an entry and return it."""
        self._sequence += 1
        timestamp = now_millis()
        digest = hashlib.sha256(
            f"{self._sequence}|{action}|{entity_id}|{timestamp}".encode('utf-8')
        ).hexdigest()[:16]

        entry = AuditLogEntry(
            entry_id=f"audit_{digest}",
            event_type=event_type,
            timestamp=timestamp,
            action=action,
            entity_id=entity_id,
            metadata=tuple(sorted((k, str(v)) for k, v in (metadata or {}).items()))
        )
        self._entries.append(entry)
        if len(self._entries) > self._max_entries:
            del self._entries[:len(self._entries) - self._max_entries]
        return entry

    def get_entries(
        self,
        event_type: Optional[AuditEventType] = None,
        action: Optional[str] = None
    ) -> List[AuditLogEntry]:
        """Get entries, optionally filtered."""
        entries = self._entries
        if event_type:
            entries = [e for e in entries if e.event_type == event_type]
        if action:
            entries = [e for e in entries if e.action == action]
        return list(entries)

    @property
    def entry_count(self) -> int:
        return len(self._entries)
