"""Wiring between CLI configuration and the core orchestrator.

This lives in the CLI so neither safepost_core nor safepost_store know about
the .safepost.yml format or where the session file is kept.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from safepost_core.checker import ComplianceChecker
from safepost_core.history import HistoryRepository
from safepost_core.plans import PlanCatalog
from safepost_core.storage import FileStorage

if TYPE_CHECKING:
    from safepost_core.providers.base import BaseAnalyzer
    from safepost_store.base import BaseStore


def build_checker(config: dict, store: BaseStore, user_id: str, analyzer: BaseAnalyzer | None = None):
    """Build a ComplianceChecker for one CLI invocation.

    The session file backs both the TTL cache and the last result, so a
    second invocation sees what the first one left behind. ``analyzer`` is
    only needed by commands that run a check or ask for rewrites.
    """
    return ComplianceChecker(
        analyzer=analyzer,
        repository=HistoryRepository(store),
        user_id=user_id,
        plan=config.get("plan", "starter"),
        storage=FileStorage(config.get("session_path", ".safepost_session.json")),
        catalog=PlanCatalog.from_config(config),
        cache_ttl=float(config.get("cache_ttl_seconds", 60)),
        content_type=config.get("content_type", "social_media_post"),
        platform=config.get("platform", "general"),
    )


def require_store(ctx: click.Context) -> BaseStore:
    """Return the configured store, refusing the process-local MemoryStore.

    Commands that read back past checks are meaningless without a store that
    outlives the process.
    """
    from safepost_store.memory import MemoryStore

    store = ctx.obj.get("store") if ctx.obj else None
    if store is None or isinstance(store, MemoryStore):
        raise click.UsageError(
            "No store configured. Add 'store: sqlite' to .safepost.yml, "
            "or run `safepost init` to set one up."
        )
    return store
