"""Abstract store interface.

Any storage backend (SQLite, in-memory, a hosted Postgres table) implements
this interface. The orchestrator depends on BaseStore through the history
adapter, not on a concrete backend, so backends are swappable without
touching core code.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from datetime import datetime

    from safepost_store.models import CheckRecord


class BaseStore(ABC):
    """Pluggable durable store for compliance check records.

    Every query is scoped by user id. Methods are synchronous and may be
    called from worker threads, so implementations must guard any shared
    connection themselves.
    """

    @abstractmethod
    def insert(self, record: CheckRecord) -> CheckRecord:
        """Persist a record and return it with the store-assigned id.

        Any id already on the record (for example a provisional one) is
        ignored.
        """

    @abstractmethod
    def select_by_user(self, user_id: str, limit: int | None = None) -> list[CheckRecord]:
        """Return a user's records ordered newest first, at most ``limit`` of them.

        Returns an empty list if the user has no records.
        """

    @abstractmethod
    def count_by_user(self, user_id: str, since: datetime | None = None) -> int:
        """Count a user's records created at or after ``since``."""

    @abstractmethod
    def delete(self, record_id: str, user_id: str) -> bool:
        """Delete one record owned by ``user_id``.

        Returns False when no record with that id belongs to the user, so a
        caller can never remove somebody else's check by guessing its id.
        """

    @abstractmethod
    def get(self, record_id: str, user_id: str) -> CheckRecord | None:
        """Return one record owned by ``user_id``, or None."""

    def close(self) -> None:
        """Release any resources held by the store (connections, file handles).

        Optional. Default is a no-op so callers can always call close() safely.
        """
