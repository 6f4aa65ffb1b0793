"""Monthly quota arithmetic.

The quota window is the current calendar month in local time: a check
created at any point since the first instant of this month counts, one
created last month does not. The allowance resets on the first day of the
following month.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime

from safepost_core.plans import DEFAULT_CATALOG, PlanCatalog


@dataclass
class UsageInfo:
    """Snapshot of a user's quota consumption. Derived, never stored."""

    checks_used_this_month: int
    plan_limit: int | None  # None = unlimited
    checks_remaining: int | None
    is_at_limit: bool
    reset_date: date

    @property
    def is_unlimited(self) -> bool:
        return self.plan_limit is None


def _local_now(now: datetime | None) -> datetime:
    if now is None:
        return datetime.now().astimezone()
    return now if now.tzinfo is not None else now.astimezone()


def month_start(now: datetime | None = None) -> datetime:
    """First instant of the current calendar month, local time.

    The offset is the one in force on the 1st, not the one in force now, so
    a daylight-saving change inside the month does not shift the window.
    """
    if now is not None and now.tzinfo is not None:
        return datetime(now.year, now.month, 1, tzinfo=now.tzinfo)
    current = now or datetime.now()
    return datetime(current.year, current.month, 1).astimezone()


def reset_date(now: datetime | None = None) -> date:
    """First day of the following calendar month."""
    current = _local_now(now)
    if current.month == 12:
        return date(current.year + 1, 1, 1)
    return date(current.year, current.month + 1, 1)


def monthly_limit(plan: str | None, catalog: PlanCatalog = DEFAULT_CATALOG) -> int | None:
    return catalog.monthly_limit(plan)


def compute_usage(
    plan: str | None,
    count: int,
    catalog: PlanCatalog = DEFAULT_CATALOG,
    now: datetime | None = None,
) -> UsageInfo:
    """Turn a plan and this month's check count into a UsageInfo."""
    limit = catalog.monthly_limit(plan)
    used = max(0, count)
    if limit is None:
        remaining = None
        at_limit = False
    else:
        remaining = max(0, limit - used)
        at_limit = used >= limit
    return UsageInfo(
        checks_used_this_month=used,
        plan_limit=limit,
        checks_remaining=remaining,
        is_at_limit=at_limit,
        reset_date=reset_date(now),
    )
