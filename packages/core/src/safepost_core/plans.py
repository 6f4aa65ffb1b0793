"""Subscription plan tables.

Two static lookups drive the checker: how many checks a plan may run per
calendar month, and how many of the most recent checks it may see in its
history. ``None`` means unbounded. Both fall back to the lowest tier for an
unrecognized plan, never to unlimited.
"""

from __future__ import annotations

from dataclasses import dataclass, field

LOWEST_TIER = "starter"

MONTHLY_CHECK_LIMITS: dict[str, int | None] = {
    "starter": 3,
    "professional": 30,
    "proplus": 100,
    "ultra": None,
}

HISTORY_LIMITS: dict[str, int | None] = {
    "starter": 5,
    "professional": 20,
    "proplus": 50,
    "ultra": 100,
}

PLAN_ALIASES: dict[str, str] = {"free": "starter"}

_TIER_LABELS: dict[str, str] = {
    "starter": "Starter",
    "professional": "Professional",
    "proplus": "Pro+",
    "ultra": "Ultra",
}


def normalize_plan(plan: str | None) -> str:
    """Lower-case, strip and resolve aliases; empty input means the lowest tier."""
    key = (plan or "").strip().lower() or LOWEST_TIER
    return PLAN_ALIASES.get(key, key)


def plan_tier_label(plan: str | None) -> str:
    """Short tier label, e.g. "free" -> "Starter"."""
    return _TIER_LABELS.get(normalize_plan(plan), _TIER_LABELS[LOWEST_TIER])


def plan_display_name(plan: str | None) -> str:
    """Full display name, e.g. "proplus" -> "SafePost Pro+"."""
    return f"SafePost {plan_tier_label(plan)}"


@dataclass
class PlanCatalog:
    """Plan limit tables, optionally overridden from configuration."""

    check_limits: dict[str, int | None] = field(default_factory=lambda: dict(MONTHLY_CHECK_LIMITS))
    history_limits: dict[str, int | None] = field(default_factory=lambda: dict(HISTORY_LIMITS))

    @classmethod
    def from_config(cls, config: dict) -> PlanCatalog:
        catalog = cls()
        for key, value in (config.get("plan_limits") or {}).items():
            catalog.check_limits[normalize_plan(key)] = value
        for key, value in (config.get("history_limits") or {}).items():
            catalog.history_limits[normalize_plan(key)] = value
        return catalog

    def monthly_limit(self, plan: str | None) -> int | None:
        key = normalize_plan(plan)
        if key not in self.check_limits:
            return self.check_limits[LOWEST_TIER]
        return self.check_limits[key]

    def history_limit(self, plan: str | None) -> int | None:
        key = normalize_plan(plan)
        if key not in self.history_limits:
            return self.history_limits[LOWEST_TIER]
        return self.history_limits[key]


DEFAULT_CATALOG = PlanCatalog()
