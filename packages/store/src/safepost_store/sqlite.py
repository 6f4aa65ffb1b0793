"""SQLiteStore: local file-based store for check history.

Why SQLite as the durable store:
- Batteries included: ships with Python, no extra dependencies.
- Indexed queries on (user_id, created_at) serve both the newest-first
  history read and the monthly quota count without a full scan.
- A single file is easy to share between CLI invocations.

Schema:
  compliance_checks  one row per completed check; the structured verdict is
                     kept as a JSON column so reads never need a JOIN.
"""

from __future__ import annotations

import json
import logging
import sqlite3
import threading
from typing import TYPE_CHECKING

from safepost_store.base import BaseStore
from safepost_store.models import CheckRecord, to_utc_iso

if TYPE_CHECKING:
    from datetime import datetime

logger = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS compliance_checks (
    id                INTEGER PRIMARY KEY AUTOINCREMENT,
    created_at        TEXT NOT NULL,
    user_id           TEXT NOT NULL,
    content_text      TEXT NOT NULL,
    content_type      TEXT,
    platform          TEXT,
    overall_status    TEXT NOT NULL,
    compliance_score  INTEGER DEFAULT 0,
    result_json       TEXT DEFAULT '{}',
    notes             TEXT
);
CREATE INDEX IF NOT EXISTS idx_checks_user_created ON compliance_checks (user_id, created_at);
"""


class SQLiteStore(BaseStore):
    """Stores check history in a local SQLite database file.

    The database file path defaults to `.safepost.db` in the current working
    directory. Configure via .safepost.yml: `store_path: /path/to/safepost.db`.

    The history adapter calls the store from worker threads, so the
    connection is opened with check_same_thread=False and every statement
    runs under a lock.
    """

    def __init__(self, db_path: str = ".safepost.db"):
        self._conn = sqlite3.connect(db_path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._lock = threading.Lock()
        self._conn.executescript(_SCHEMA)
        self._conn.commit()

    def insert(self, record: CheckRecord) -> CheckRecord:
        with self._lock:
            cursor = self._conn.execute(
                """
                INSERT INTO compliance_checks
                  (created_at, user_id, content_text, content_type, platform,
                   overall_status, compliance_score, result_json, notes)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    record.created_at,
                    record.user_id,
                    record.content_text,
                    record.content_type,
                    record.platform,
                    record.overall_status,
                    record.compliance_score,
                    json.dumps(record.result_json),
                    record.notes,
                ),
            )
            self._conn.commit()
        return record.with_id(str(cursor.lastrowid))

    def select_by_user(self, user_id: str, limit: int | None = None) -> list[CheckRecord]:
        query = "SELECT * FROM compliance_checks WHERE user_id=? ORDER BY created_at DESC, id DESC"
        params: tuple = (user_id,)
        if limit is not None:
            query += " LIMIT ?"
            params = (user_id, limit)
        with self._lock:
            rows = self._conn.execute(query, params).fetchall()
        return [self._row_to_record(r) for r in rows]

    def count_by_user(self, user_id: str, since: datetime | None = None) -> int:
        with self._lock:
            if since is None:
                row = self._conn.execute(
                    "SELECT COUNT(*) FROM compliance_checks WHERE user_id=?",
                    (user_id,),
                ).fetchone()
            else:
                row = self._conn.execute(
                    "SELECT COUNT(*) FROM compliance_checks WHERE user_id=? AND created_at >= ?",
                    (user_id, to_utc_iso(since)),
                ).fetchone()
        return row[0]

    def delete(self, record_id: str, user_id: str) -> bool:
        if not record_id.isdigit():
            return False
        with self._lock:
            cursor = self._conn.execute(
                "DELETE FROM compliance_checks WHERE id=? AND user_id=?",
                (int(record_id), user_id),
            )
            self._conn.commit()
        if cursor.rowcount == 0:
            logger.debug("No check %s owned by %s to delete", record_id, user_id)
        return cursor.rowcount > 0

    def get(self, record_id: str, user_id: str) -> CheckRecord | None:
        if not record_id.isdigit():
            return None
        with self._lock:
            row = self._conn.execute(
                "SELECT * FROM compliance_checks WHERE id=? AND user_id=?",
                (int(record_id), user_id),
            ).fetchone()
        return self._row_to_record(row) if row is not None else None

    def close(self) -> None:
        with self._lock:
            self._conn.close()

    @staticmethod
    def _row_to_record(row: sqlite3.Row) -> CheckRecord:
        try:
            result_json = json.loads(row["result_json"] or "{}")
        except json.JSONDecodeError:
            logger.warning("Check %s has an unreadable result_json column", row["id"])
            result_json = {}
        return CheckRecord(
            id=str(row["id"]),
            created_at=row["created_at"],
            user_id=row["user_id"],
            content_text=row["content_text"],
            content_type=row["content_type"] or "social_media_post",
            platform=row["platform"] or "general",
            overall_status=row["overall_status"],
            compliance_score=row["compliance_score"],
            result_json=result_json,
            notes=row["notes"],
        )
