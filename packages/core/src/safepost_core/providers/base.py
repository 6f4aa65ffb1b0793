"""Base analyzer implementing the Template Method pattern.

All providers share the same analysis algorithm:
    analyze() -> analysis_prompt()
              -> _call_with_retry() -> _call_api()   <- only this differs per provider
              -> _parse_result()

Subclasses implement two things only:
  - __init__: validate and store the async SDK client
  - _call_api: make one raw API call and return the text response

Prompt construction, JSON extraction, validation and retry live here so
every provider behaves the same way. Unlike a best-effort reviewer, an
analyzer never returns a partial verdict: anything it cannot use is raised
as AnalysisError.
"""

from __future__ import annotations

import asyncio
import json
import logging
import re
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from safepost_core.errors import AnalysisError
from safepost_core.models import AnalysisResult, RewrittenPost
from safepost_core.providers.prompts import SYSTEM_PROMPT, analysis_prompt, rewrite_prompt

if TYPE_CHECKING:
    from safepost_core.models import ComplianceIssue, ImageInput

logger = logging.getLogger(__name__)

# Shared defaults. Subclasses may override as class attributes if needed.
_MAX_RETRIES = 3
_MAX_TOKENS = 1500
_REWRITE_MAX_TOKENS = 2000

ANALYSIS_FAILED = "Failed to analyze post. Please try again."
REWRITE_FAILED = "Failed to generate compliant suggestions."

_OBJECT_RE = re.compile(r"\{[\s\S]*\}")
_ARRAY_RE = re.compile(r"\[[\s\S]*\]")


class BaseAnalyzer(ABC):
    MAX_RETRIES: int = _MAX_RETRIES
    MAX_TOKENS: int = _MAX_TOKENS
    MODEL: str = ""

    # ------------------------------------------------------------------ #
    # Public interface                                                     #
    # ------------------------------------------------------------------ #

    async def analyze(self, content: str, image: ImageInput | None = None) -> AnalysisResult:
        """Return the model's verdict for one post.

        Raises AnalysisError if every attempt fails or the response cannot
        be parsed into a complete AnalysisResult.
        """
        raw = await self._call_with_retry(SYSTEM_PROMPT, analysis_prompt(content), image, self.MAX_TOKENS)
        if raw is None:
            raise AnalysisError(ANALYSIS_FAILED)
        return self._parse_result(raw)

    async def suggest_rewrites(self, original: str, issues: list[ComplianceIssue]) -> list[RewrittenPost]:
        """Ask for three compliant rewrites of ``original``."""
        issues_json = json.dumps([i.to_dict() for i in issues])
        raw = await self._call_with_retry(None, rewrite_prompt(original, issues_json), None, _REWRITE_MAX_TOKENS)
        if raw is None:
            raise AnalysisError(REWRITE_FAILED)
        return self._parse_rewrites(raw)

    # ------------------------------------------------------------------ #
    # Abstract: implement in each provider                                #
    # ------------------------------------------------------------------ #

    @abstractmethod
    async def _call_api(
        self,
        system_prompt: str | None,
        user_prompt: str,
        image: ImageInput | None,
        max_tokens: int,
    ) -> str:
        """Make a single API call and return the raw text response.

        Should raise on failure; _call_with_retry handles retries and logging.
        """

    # ------------------------------------------------------------------ #
    # Shared implementations                                               #
    # ------------------------------------------------------------------ #

    async def _call_with_retry(
        self,
        system_prompt: str | None,
        user_prompt: str,
        image: ImageInput | None,
        max_tokens: int,
    ) -> str | None:
        """Retry _call_api up to MAX_RETRIES times with exponential backoff."""
        for attempt in range(self.MAX_RETRIES):
            try:
                return await self._call_api(system_prompt, user_prompt, image, max_tokens)
            except Exception as e:
                if attempt == self.MAX_RETRIES - 1:
                    logger.error(
                        "%s API failed after %d attempts: %s",
                        self.__class__.__name__,
                        self.MAX_RETRIES,
                        e,
                    )
                    return None
                delay = 2**attempt
                logger.warning(
                    "%s API error (attempt %d/%d): %s. Retrying in %ds...",
                    self.__class__.__name__,
                    attempt + 1,
                    self.MAX_RETRIES,
                    e,
                    delay,
                )
                await asyncio.sleep(delay)
        return None

    def _parse_result(self, raw: str) -> AnalysisResult:
        """Extract the outermost JSON object and validate it."""
        match = _OBJECT_RE.search(raw or "")
        if not match:
            logger.warning("%s: no JSON object in response: %s", self.__class__.__name__, (raw or "")[:200])
            raise AnalysisError(ANALYSIS_FAILED)
        try:
            return AnalysisResult.from_dict(json.loads(match.group(0)))
        except (json.JSONDecodeError, ValueError, TypeError, KeyError) as e:
            logger.warning("%s: malformed analysis response (%s): %s", self.__class__.__name__, e, raw[:200])
            raise AnalysisError(ANALYSIS_FAILED) from e

    def _parse_rewrites(self, raw: str) -> list[RewrittenPost]:
        match = _ARRAY_RE.search(raw or "")
        if not match:
            return []
        try:
            data = json.loads(match.group(0))
        except json.JSONDecodeError as e:
            logger.warning("%s: malformed rewrite response: %s", self.__class__.__name__, raw[:200])
            raise AnalysisError(REWRITE_FAILED) from e
        return [RewrittenPost.from_dict(d) for d in data if isinstance(d, dict)]
