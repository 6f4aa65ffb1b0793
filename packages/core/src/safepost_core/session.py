"""Keeps the last result on screen across navigation.

Two keys hold the serialized last result and the content it was produced
from. They are written when a check completes, read once on load, and
cleared on reset so a later load does not resurrect a stale result.
"""

from __future__ import annotations

import json
import logging

from safepost_core.models import AnalysisResult
from safepost_core.storage import KeyValueStorage

logger = logging.getLogger(__name__)

LAST_RESULT_KEY = "safepost_last_result"
LAST_CONTENT_KEY = "safepost_last_content"


class SessionPersistence:
    def __init__(self, storage: KeyValueStorage):
        self._storage = storage

    def save(self, result: AnalysisResult, content: str) -> None:
        """Best effort: a storage failure is logged and the result is simply not kept."""
        try:
            self._storage.set_item(LAST_RESULT_KEY, json.dumps(result.to_dict()))
            self._storage.set_item(LAST_CONTENT_KEY, content)
        except OSError as e:
            logger.warning("Could not save the last result (%s: %s)", type(e).__name__, e)

    def restore(self) -> tuple[AnalysisResult, str] | None:
        """Return the saved (result, content) pair, or None.

        An unreadable saved result is treated as absent.
        """
        try:
            raw = self._storage.get_item(LAST_RESULT_KEY)
            content = self._storage.get_item(LAST_CONTENT_KEY)
        except OSError as e:
            logger.warning("Could not read the saved result (%s: %s)", type(e).__name__, e)
            return None
        if raw is None:
            return None
        try:
            result = AnalysisResult.from_dict(json.loads(raw))
        except (ValueError, TypeError, KeyError) as e:
            logger.warning("Discarding unreadable saved result: %s", e)
            return None
        return result, content or ""

    def clear(self) -> None:
        try:
            self._storage.remove_item(LAST_RESULT_KEY)
            self._storage.remove_item(LAST_CONTENT_KEY)
        except OSError as e:
            logger.warning("Could not clear the saved result (%s: %s)", type(e).__name__, e)
