"""Optimistic local updates reconciled against the durable store.

After a check completes the new record is shown immediately under a
temporary id and the monthly count is bumped, without waiting on the store.
A background task then writes the real record, refetches count and history,
and replaces the local state wholesale with what the store returned.

Background failures are logged and never roll back the optimistic state:
the user keeps their result even if the store is unreachable. The
provisional entry stays until a later reconciliation succeeds.

Each refresh takes a sequence number when it starts fetching. A refresh that
finishes after a newer one has already been applied is dropped, so a slow
response can never overwrite fresher data.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING

from safepost_core.cache import CacheKey
from safepost_core.errors import StoreError
from safepost_store.models import PROVISIONAL_PREFIX

if TYPE_CHECKING:
    from safepost_core.cache import TTLCache
    from safepost_core.history import HistoryRepository
    from safepost_core.models import AnalysisResult
    from safepost_store.models import CheckRecord

logger = logging.getLogger(__name__)


class CheckerStep(str, Enum):
    IDLE = "idle"
    ANALYZING = "analyzing"
    COMPLETE = "complete"
    ERROR = "error"


@dataclass
class CheckerState:
    """Everything the UI reads. Mutated only by the checker and the reconciler."""

    step: CheckerStep = CheckerStep.IDLE
    result: AnalysisResult | None = None
    error: str | None = None
    last_content: str = ""
    history: list[CheckRecord] = field(default_factory=list)
    checks_used_this_month: int = 0
    is_loading_history: bool = False


def provisional_id() -> str:
    return f"{PROVISIONAL_PREFIX}{uuid.uuid4().hex[:12]}"


class OptimisticReconciler:
    def __init__(
        self,
        state: CheckerState,
        repository: HistoryRepository,
        usage_cache: TTLCache[int],
        history_cache: TTLCache[list[CheckRecord]],
        user_id: str,
        history_limit: int | None,
    ):
        self._state = state
        self._repository = repository
        self._usage_cache = usage_cache
        self._history_cache = history_cache
        self._user_id = user_id
        self._history_limit = history_limit
        self._issued_seq = 0
        self._applied_seq = 0
        self._pending: set[asyncio.Task] = set()

    # ------------------------------------------------------------------ #
    # Optimistic mutations                                                #
    # ------------------------------------------------------------------ #

    def apply_insert(self, record: CheckRecord) -> CheckRecord:
        """Show ``record`` locally now and schedule the durable write.

        Must be called from within a running event loop. Returns the
        provisional record that was prepended to the history.
        """
        self.invalidate_cache()
        provisional = record.with_id(provisional_id())
        self._state.history.insert(0, provisional)
        self._state.checks_used_this_month += 1

        task = asyncio.create_task(self._persist_and_reconcile(record))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return provisional

    def apply_delete(self, record_id: str) -> bool:
        """Drop a record from local state. Returns False if it was not shown."""
        self.invalidate_cache()
        before = len(self._state.history)
        self._state.history = [r for r in self._state.history if r.id != record_id]
        removed = len(self._state.history) < before
        if removed:
            self._state.checks_used_this_month = max(0, self._state.checks_used_this_month - 1)
        return removed

    def invalidate_cache(self) -> None:
        self._usage_cache.invalidate(CacheKey.USAGE, self._user_id)
        self._history_cache.invalidate(CacheKey.HISTORY, self._user_id)

    # ------------------------------------------------------------------ #
    # Reconciliation                                                      #
    # ------------------------------------------------------------------ #

    def load_cached(self) -> bool:
        """Apply cached usage and history if both are fresh."""
        count = self._usage_cache.get(CacheKey.USAGE, self._user_id)
        history = self._history_cache.get(CacheKey.HISTORY, self._user_id)
        if count is None or history is None:
            return False
        self._state.checks_used_this_month = count
        self._state.history = history
        return True

    async def refresh(self) -> bool:
        """Refetch count and history and replace local state with them.

        Raises StoreError on failure. Returns False if a newer refresh was
        applied while this one was in flight and its results were dropped.
        """
        self._issued_seq += 1
        seq = self._issued_seq
        count, history = await asyncio.gather(
            self._repository.fetch_monthly_count(self._user_id),
            self._repository.fetch_history(self._user_id, self._history_limit),
        )
        if seq < self._applied_seq:
            logger.debug("Dropping stale reconciliation %d (applied %d)", seq, self._applied_seq)
            return False
        self._applied_seq = seq
        self._state.checks_used_this_month = count
        self._state.history = list(history)
        self._usage_cache.set(CacheKey.USAGE, count, self._user_id)
        self._history_cache.set(CacheKey.HISTORY, list(history), self._user_id)
        return True

    async def _persist_and_reconcile(self, record: CheckRecord) -> None:
        try:
            saved = await self._repository.insert(record)
            logger.debug("Saved check %s for %s", saved.id, self._user_id)
            await self.refresh()
        except StoreError as e:
            logger.warning("Background sync failed, keeping optimistic state: %s", e)
        except Exception:
            logger.exception("Background sync failed unexpectedly, keeping optimistic state")

    async def wait(self) -> None:
        """Wait for every in-flight background reconciliation to finish."""
        while self._pending:
            await asyncio.gather(*list(self._pending))

    @property
    def pending(self) -> int:
        return len(self._pending)
