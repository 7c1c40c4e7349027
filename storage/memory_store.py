"""In-memory memory source: per-user note records, newest first."""

from __future__ import annotations

from dataclasses import dataclass
from threading import Lock
from typing import Dict, Iterable, List, Optional

from core import MemoryRecord
from utils.exceptions import NotFoundError


@dataclass(frozen=True)
class MemoryFilter:
    """Which memories a scan reads: one by id, or the newest ``limit``."""

    user_id: str
    memory_id: Optional[str] = None
    limit: int = 8


class InMemoryMemoryStore:
    """Thread-safe store of memory records keyed by user."""

    def __init__(self) -> None:
        self._records: Dict[str, Dict[str, MemoryRecord]] = {}
        self._lock = Lock()

    def add_memories(self, user_id: str, records: Iterable[MemoryRecord]) -> List[MemoryRecord]:
        stored: List[MemoryRecord] = []
        with self._lock:
            bucket = self._records.setdefault(str(user_id), {})
            for record in records or []:
                bucket[record.id] = record
                stored.append(record)
        return stored

    def get_memory(self, user_id: str, memory_id: str) -> MemoryRecord:
        with self._lock:
            record = self._records.get(str(user_id), {}).get(str(memory_id))
        if record is None:
            raise NotFoundError("Memory not found", {"memory_id": memory_id})
        return record

    def list_memories(self, user_id: str, limit: Optional[int] = None) -> List[MemoryRecord]:
        with self._lock:
            records = list(self._records.get(str(user_id), {}).values())
        records.sort(key=lambda record: record.created_at, reverse=True)
        return records if limit is None else records[: max(0, int(limit))]

    def fetch_memories(self, query: MemoryFilter) -> List[MemoryRecord]:
        """Resolve a filter; an empty match raises ``NotFoundError``."""
        if query.memory_id:
            return [self.get_memory(query.user_id, query.memory_id)]
        records = self.list_memories(query.user_id, limit=query.limit)
        if not records:
            raise NotFoundError("No memories found to scan", {"user_id": query.user_id})
        return records

    def delete_memory(self, user_id: str, memory_id: str) -> bool:
        with self._lock:
            return self._records.get(str(user_id), {}).pop(str(memory_id), None) is not None

    def count(self, user_id: str) -> int:
        with self._lock:
            return len(self._records.get(str(user_id), {}))
