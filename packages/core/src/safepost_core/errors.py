"""Exception hierarchy for the compliance checker.

Only QuotaExceededError and AnalysisError (with its OffTopicContentError
subclass) ever reach the user. StoreError is raised by the history adapter
and caught, logged and dropped by the orchestrator.
"""

from __future__ import annotations


class SafePostError(Exception):
    """Base class for all SafePost errors."""


class QuotaExceededError(SafePostError):
    """The plan's monthly check allowance is used up."""

    def __init__(self, plan: str, limit: int | None, used: int):
        self.plan = plan
        self.limit = limit
        self.used = used
        super().__init__(
            f"You have used all {limit} compliance checks included in your plan this month. "
            "Upgrade your plan or wait for your allowance to reset."
        )


class AnalysisError(SafePostError):
    """The analysis call failed or returned something we could not use."""


class OffTopicContentError(AnalysisError):
    """The model judged the content to be outside the healthcare domain."""


class StoreError(SafePostError):
    """A durable store read or write failed."""
