"""
Delivery queue: an ordered, explicitly owned collection of records awaiting delivery.

Entries keep insertion order. Successful entries are removed; failed entries are
kept with status ``failed`` so the user can inspect or retry them.
"""

import datetime
import enum
import logging
import time
import uuid
from dataclasses import dataclass
from typing import Dict, List, Optional

from notebooklm_bridge.records import ContentRecord

logger = logging.getLogger(__name__)


class EntryStatus(enum.Enum):
    PENDING = "pending"
    SENT = "sent"
    FAILED = "failed"


@dataclass
class QueueEntry:
    id: str
    record: ContentRecord
    enqueued_at: datetime.datetime
    status: EntryStatus = EntryStatus.PENDING

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "note": self.record.to_dict(),
            "timestamp": int(self.enqueued_at.timestamp() * 1000),
            "status": self.status.value,
        }


def new_entry_id() -> str:
    """Timestamp plus a random suffix, e.g. ``note-1718000000000-3fa9c02b1``."""
    return f"note-{int(time.time() * 1000)}-{uuid.uuid4().hex[:9]}"


class DeliveryQueue:
    """FIFO queue of content records with per-entry status tracking."""

    def __init__(self):
        self._entries: Dict[str, QueueEntry] = {}

    def enqueue(self, record: ContentRecord) -> str:
        entry_id = new_entry_id()
        while entry_id in self._entries:
            entry_id = new_entry_id()
        self._entries[entry_id] = QueueEntry(
            id=entry_id,
            record=record,
            enqueued_at=datetime.datetime.now(),
        )
        logger.debug(f"Enqueued {entry_id}: {record.title}")
        return entry_id

    def peek_next_pending(self) -> Optional[QueueEntry]:
        for entry in self._entries.values():
            if entry.status is EntryStatus.PENDING:
                return entry
        return None

    def get(self, entry_id: str) -> Optional[QueueEntry]:
        return self._entries.get(entry_id)

    def mark_sent(self, entry_id: str) -> bool:
        """Drop a delivered entry. Returns False if the id is unknown."""
        entry = self._entries.pop(entry_id, None)
        if entry is None:
            logger.debug(f"mark_sent ignored unknown entry {entry_id}")
            return False
        entry.status = EntryStatus.SENT
        return True

    def mark_failed(self, entry_id: str) -> bool:
        entry = self._entries.get(entry_id)
        if entry is None:
            logger.debug(f"mark_failed ignored unknown entry {entry_id}")
            return False
        entry.status = EntryStatus.FAILED
        return True

    def retry_failed(self) -> int:
        """Return every failed entry to pending. Original order is preserved."""
        count = 0
        for entry in self._entries.values():
            if entry.status is EntryStatus.FAILED:
                entry.status = EntryStatus.PENDING
                count += 1
        return count

    def remove(self, entry_id: str) -> bool:
        return self._entries.pop(entry_id, None) is not None

    def clear(self) -> None:
        self._entries.clear()

    def size(self) -> int:
        """Number of entries still pending."""
        return sum(1 for e in self._entries.values() if e.status is EntryStatus.PENDING)

    def entries(self) -> List[QueueEntry]:
        return list(self._entries.values())

    def failed(self) -> List[QueueEntry]:
        return [e for e in self._entries.values() if e.status is EntryStatus.FAILED]

    def __contains__(self, entry_id: str) -> bool:
        return entry_id in self._entries

    def __len__(self) -> int:
        return len(self._entries)
