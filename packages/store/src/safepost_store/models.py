"""Compliance check data models.

Decoupled from safepost_core so the store layer can be used independently
and safepost_core only sees records through the history adapter.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone

PROVISIONAL_PREFIX = "temp-"

OVERALL_STATUSES = ("compliant", "non_compliant", "requires_review")


def utc_now_iso() -> str:
    """Current UTC time in the fixed-width format every record uses."""
    return datetime.now(timezone.utc).isoformat(timespec="microseconds")


def to_utc_iso(dt: datetime) -> str:
    """Render an aware datetime in the same format as ``created_at``.

    Fixed width means timestamps compare correctly as plain strings, which is
    what the SQLite and in-memory stores rely on for ordering and counting.
    """
    if dt.tzinfo is None:
        dt = dt.astimezone()
    return dt.astimezone(timezone.utc).isoformat(timespec="microseconds")


@dataclass
class CheckRecord:
    """A completed compliance check persisted to the store.

    Created by the orchestrator after a successful analysis. Records built
    locally before the store has seen them carry a ``temp-`` id; the store
    assigns the final id on insert.
    """

    user_id: str
    content_text: str
    overall_status: str  # "compliant" | "non_compliant" | "requires_review"
    compliance_score: int
    result_json: dict = field(default_factory=dict)
    content_type: str = "social_media_post"
    platform: str = "general"
    notes: str | None = None
    id: str = ""
    created_at: str = field(default_factory=utc_now_iso)  # ISO-8601 UTC timestamp

    @property
    def is_provisional(self) -> bool:
        return self.id.startswith(PROVISIONAL_PREFIX)

    def with_id(self, record_id: str) -> CheckRecord:
        return replace(self, id=record_id)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "created_at": self.created_at,
            "user_id": self.user_id,
            "content_text": self.content_text,
            "content_type": self.content_type,
            "platform": self.platform,
            "overall_status": self.overall_status,
            "compliance_score": self.compliance_score,
            "result_json": self.result_json,
            "notes": self.notes,
        }

    @classmethod
    def from_dict(cls, d: dict) -> CheckRecord:
        return cls(
            id=str(d.get("id", "")),
            created_at=d.get("created_at", ""),
            user_id=d.get("user_id", ""),
            content_text=d.get("content_text", ""),
            content_type=d.get("content_type", "social_media_post"),
            platform=d.get("platform", "general"),
            overall_status=d.get("overall_status", "requires_review"),
            compliance_score=int(d.get("compliance_score", 0)),
            result_json=d.get("result_json") or {},
            notes=d.get("notes"),
        )
