"""In-memory store, the default when no durable store is configured.

Records live for the lifetime of the process. Using a MemoryStore rather
than None lets the orchestrator always talk to a store without conditional
checks, and gives tests a real backend with no files on disk.
"""

from __future__ import annotations

import threading
import uuid
from typing import TYPE_CHECKING

from safepost_store.base import BaseStore
from safepost_store.models import to_utc_iso

if TYPE_CHECKING:
    from datetime import datetime

    from safepost_store.models import CheckRecord


class MemoryStore(BaseStore):
    """Keeps records in a list guarded by a lock.

    Nothing survives a restart. Switch to SQLiteStore (.safepost.yml:
    store: sqlite) for history that outlives the process.
    """

    def __init__(self):
        self._records: list[CheckRecord] = []
        self._lock = threading.Lock()

    def insert(self, record: CheckRecord) -> CheckRecord:
        stored = record.with_id(uuid.uuid4().hex[:12])
        with self._lock:
            self._records.append(stored)
        return stored

    def select_by_user(self, user_id: str, limit: int | None = None) -> list[CheckRecord]:
        with self._lock:
            owned = [r for r in self._records if r.user_id == user_id]
        owned.sort(key=lambda r: r.created_at, reverse=True)
        return owned if limit is None else owned[:limit]

    def count_by_user(self, user_id: str, since: datetime | None = None) -> int:
        since_iso = to_utc_iso(since) if since is not None else ""
        with self._lock:
            return sum(1 for r in self._records if r.user_id == user_id and r.created_at >= since_iso)

    def delete(self, record_id: str, user_id: str) -> bool:
        with self._lock:
            for i, r in enumerate(self._records):
                if r.id == record_id and r.user_id == user_id:
                    del self._records[i]
                    return True
        return False

    def get(self, record_id: str, user_id: str) -> CheckRecord | None:
        with self._lock:
            for r in self._records:
                if r.id == record_id and r.user_id == user_id:
                    return r
        return None
