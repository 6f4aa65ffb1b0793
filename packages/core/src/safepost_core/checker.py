"""Compliance check orchestration.

ComplianceChecker drives one user's checks:

    idle -> analyzing -> complete
                      -> error
    complete / error -> idle (reset_checker)

Quota is checked before the transition into ``analyzing``; an exhausted
plan raises QuotaExceededError straight away with no state change. The
analysis call is awaited, but the durable write that follows is not: the
result is shown at once and reconciled in the background.
"""

from __future__ import annotations

import logging
import time
from datetime import datetime
from typing import TYPE_CHECKING, Callable

from safepost_core.cache import DEFAULT_TTL_SECONDS, TTLCache
from safepost_core.errors import AnalysisError, QuotaExceededError, StoreError
from safepost_core.models import AnalysisResult
from safepost_core.plans import DEFAULT_CATALOG, PlanCatalog, normalize_plan
from safepost_core.reconciler import CheckerState, CheckerStep, OptimisticReconciler
from safepost_core.session import SessionPersistence
from safepost_core.storage import KeyValueStorage, MemoryStorage
from safepost_core.usage import UsageInfo, compute_usage
from safepost_core.verdict import compliance_score, normalize_status
from safepost_store.models import PROVISIONAL_PREFIX, CheckRecord

if TYPE_CHECKING:
    from safepost_core.history import HistoryRepository
    from safepost_core.models import ImageInput, RewrittenPost
    from safepost_core.providers.base import BaseAnalyzer

logger = logging.getLogger(__name__)

_UNEXPECTED_ERROR = "An unexpected error occurred"


def _encode_history(records: list[CheckRecord]) -> list[dict]:
    return [r.to_dict() for r in records]


def _decode_history(data) -> list[CheckRecord]:
    return [CheckRecord.from_dict(d) for d in data]


class ComplianceChecker:
    """Runs compliance checks for one user on one plan.

    ``storage`` backs both the TTL cache and the saved last result; pass the
    same storage to a new checker to pick up where a previous one left off.
    """

    def __init__(
        self,
        analyzer: BaseAnalyzer,
        repository: HistoryRepository,
        user_id: str,
        plan: str = "starter",
        storage: KeyValueStorage | None = None,
        catalog: PlanCatalog = DEFAULT_CATALOG,
        cache_ttl: float = DEFAULT_TTL_SECONDS,
        content_type: str = "social_media_post",
        platform: str = "general",
        clock: Callable[[], datetime] | None = None,
        cache_clock: Callable[[], float] = time.time,
    ):
        storage = storage if storage is not None else MemoryStorage()
        self._analyzer = analyzer
        self._repository = repository
        self.user_id = user_id
        self.plan = normalize_plan(plan)
        self._catalog = catalog
        self._default_content_type = content_type
        self._default_platform = platform
        self._clock = clock or (lambda: datetime.now().astimezone())
        self._session = SessionPersistence(storage)
        self.state = CheckerState()
        self._reconciler = OptimisticReconciler(
            state=self.state,
            repository=repository,
            usage_cache=TTLCache(storage, encode=int, decode=int, ttl=cache_ttl, clock=cache_clock),
            history_cache=TTLCache(
                storage, encode=_encode_history, decode=_decode_history, ttl=cache_ttl, clock=cache_clock
            ),
            user_id=user_id,
            history_limit=catalog.history_limit(self.plan),
        )

    # ------------------------------------------------------------------ #
    # Read-only views                                                     #
    # ------------------------------------------------------------------ #

    @property
    def step(self) -> CheckerStep:
        return self.state.step

    @property
    def result(self) -> AnalysisResult | None:
        return self.state.result

    @property
    def error(self) -> str | None:
        return self.state.error

    @property
    def last_content(self) -> str:
        return self.state.last_content

    @property
    def history(self) -> list[CheckRecord]:
        return list(self.state.history)

    @property
    def is_loading_history(self) -> bool:
        return self.state.is_loading_history

    @property
    def usage(self) -> UsageInfo:
        return compute_usage(self.plan, self.state.checks_used_this_month, self._catalog, self._clock())

    @property
    def history_limit(self) -> int | None:
        return self._catalog.history_limit(self.plan)

    # ------------------------------------------------------------------ #
    # Loading                                                             #
    # ------------------------------------------------------------------ #

    async def load(self) -> None:
        """Restore the saved result, then usage and history (cache first).

        Store failures are logged and leave the counters where they were.
        """
        restored = self._session.restore()
        if restored is not None:
            self.state.result, self.state.last_content = restored
            self.state.step = CheckerStep.COMPLETE

        if self._reconciler.load_cached():
            logger.debug("Usage and history for %s served from cache", self.user_id)
            return
        await self.refresh()

    async def refresh(self) -> None:
        """Refetch usage and history from the store, bypassing the cache."""
        self.state.is_loading_history = True
        try:
            await self._reconciler.refresh()
        except StoreError as e:
            logger.warning("Could not load usage/history for %s: %s", self.user_id, e)
        finally:
            self.state.is_loading_history = False

    # ------------------------------------------------------------------ #
    # Checks                                                              #
    # ------------------------------------------------------------------ #

    async def run_check(
        self,
        content: str,
        content_type: str | None = None,
        platform: str | None = None,
        image: ImageInput | None = None,
    ) -> AnalysisResult | None:
        """Analyse ``content`` and record the verdict.

        Raises QuotaExceededError before doing anything if the plan is used
        up. Analysis failures do not raise: they move the checker to
        ``error`` with a readable message and return None.
        """
        if not content or not content.strip():
            raise ValueError("content must not be empty")

        usage = self.usage
        if usage.is_at_limit:
            raise QuotaExceededError(self.plan, usage.plan_limit, usage.checks_used_this_month)

        self.state.step = CheckerStep.ANALYZING
        self.state.result = None
        self.state.error = None
        self.state.last_content = content

        try:
            result = await self._analyzer.analyze(content, image=image)
            overall_status = normalize_status(result)
            score = compliance_score(result)
        except AnalysisError as e:
            return self._fail(str(e))
        except Exception:
            logger.exception("Analysis raised an unexpected error")
            return self._fail(_UNEXPECTED_ERROR)

        self._session.save(result, content)
        self._reconciler.apply_insert(
            CheckRecord(
                user_id=self.user_id,
                content_text=content,
                content_type=content_type or self._default_content_type,
                platform=platform or self._default_platform,
                overall_status=overall_status,
                compliance_score=score,
                result_json=result.to_dict(),
            )
        )
        self.state.result = result
        self.state.step = CheckerStep.COMPLETE
        return result

    def _fail(self, message: str) -> None:
        self.state.error = message
        self.state.step = CheckerStep.ERROR
        return None

    async def delete_check(self, record_id: str) -> bool:
        """Remove a check locally at once, then from the store.

        The store only deletes records owned by this checker's user. Store
        failures are logged; the next refresh restores the truth.

        A check still shown under its temporary id has no durable row yet
        and cannot be deleted until its background write has landed.
        """
        if record_id.startswith(PROVISIONAL_PREFIX):
            logger.info("Check %s is still syncing; delete it once it has been saved", record_id)
            return False
        removed = self._reconciler.apply_delete(record_id)
        try:
            deleted = await self._repository.delete(record_id, self.user_id)
        except StoreError as e:
            logger.warning("Could not delete check %s: %s", record_id, e)
            return removed
        return removed or deleted

    async def get_check(self, record_id: str) -> CheckRecord | None:
        for record in self.state.history:
            if record.id == record_id:
                return record
        try:
            return await self._repository.get(record_id, self.user_id)
        except StoreError as e:
            logger.warning("Could not fetch check %s: %s", record_id, e)
            return None

    def open_check(self, record: CheckRecord) -> AnalysisResult:
        """Show a past check as the current result and keep it across navigation."""
        try:
            result = AnalysisResult.from_dict(record.result_json)
        except (ValueError, TypeError, KeyError) as e:
            raise AnalysisError(f"Saved check {record.id} has no readable result") from e
        self._session.save(result, record.content_text)
        self.state.result = result
        self.state.last_content = record.content_text
        self.state.error = None
        self.state.step = CheckerStep.COMPLETE
        return result

    async def suggest_rewrites(self) -> list[RewrittenPost]:
        """Ask for compliant rewrites of the last checked content."""
        if self.state.result is None or not self.state.last_content:
            raise AnalysisError("There is no completed check to rewrite.")
        return await self._analyzer.suggest_rewrites(self.state.last_content, self.state.result.issues)

    def reset_checker(self) -> None:
        self.state.step = CheckerStep.IDLE
        self.state.result = None
        self.state.error = None
        self.state.last_content = ""
        self._session.clear()

    async def wait_for_sync(self) -> None:
        """Block until background reconciliation has finished."""
        await self._reconciler.wait()
