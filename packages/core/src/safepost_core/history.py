"""Async adapter between the orchestrator and a synchronous BaseStore.

Store calls run on worker threads via ``asyncio.to_thread`` so a slow
database never blocks the event loop. Backend exceptions are wrapped in
StoreError; whether they are surfaced or only logged is the caller's call.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import TYPE_CHECKING, Callable

from safepost_core.errors import StoreError
from safepost_core.usage import month_start

if TYPE_CHECKING:
    from safepost_store.base import BaseStore
    from safepost_store.models import CheckRecord

logger = logging.getLogger(__name__)


class HistoryRepository:
    def __init__(self, store: BaseStore, clock: Callable[[], datetime] | None = None):
        self._store = store
        # Naive local wall-clock time; month_start localizes the boundary itself.
        self._clock = clock or datetime.now

    async def _run(self, op: str, fn, *args):
        try:
            return await asyncio.to_thread(fn, *args)
        except Exception as e:
            raise StoreError(f"{op} failed ({type(e).__name__}: {e})") from e

    async def fetch_history(self, user_id: str, limit: int | None) -> list[CheckRecord]:
        """Newest-first records, silently truncated to the plan's history depth."""
        return await self._run("fetch_history", self._store.select_by_user, user_id, limit)

    async def fetch_monthly_count(self, user_id: str) -> int:
        since = month_start(self._clock())
        return await self._run("fetch_monthly_count", self._store.count_by_user, user_id, since)

    async def insert(self, record: CheckRecord) -> CheckRecord:
        return await self._run("insert", self._store.insert, record)

    async def delete(self, record_id: str, user_id: str) -> bool:
        deleted = await self._run("delete", self._store.delete, record_id, user_id)
        if not deleted:
            logger.info("Check %s not deleted: not found for user %s", record_id, user_id)
        return deleted

    async def get(self, record_id: str, user_id: str) -> CheckRecord | None:
        return await self._run("get", self._store.get, record_id, user_id)
