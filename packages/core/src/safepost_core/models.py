"""Structured analysis verdicts returned by the providers."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum

logger = logging.getLogger(__name__)


class ComplianceStatus(str, Enum):
    """Verdict as reported by the model, before normalization."""

    COMPLIANT = "COMPLIANT"
    NON_COMPLIANT = "NON_COMPLIANT"
    WARNING = "WARNING"
    NOT_HEALTHCARE = "NOT_HEALTHCARE"

    @classmethod
    def parse(cls, value: str) -> ComplianceStatus:
        key = str(value).strip().upper().replace("-", "_").replace(" ", "_")
        if key == "REQUIRES_REVIEW":
            return cls.WARNING
        return cls(key)


class Severity(str, Enum):
    CRITICAL = "Critical"
    WARNING = "Warning"
    INFO = "Info"

    @classmethod
    def normalize(cls, value) -> Severity:
        """Map any casing of a known severity onto the enum.

        Unrecognized values become INFO so they are shown to the user but
        never lower the compliance score.
        """
        key = str(value or "").strip().lower()
        for member in cls:
            if member.value.lower() == key:
                return member
        logger.debug("Unrecognized issue severity %r treated as Info", value)
        return cls.INFO


@dataclass
class ComplianceIssue:
    guideline_reference: str
    finding: str
    severity: Severity
    recommendation: str

    def to_dict(self) -> dict:
        return {
            "guidelineReference": self.guideline_reference,
            "finding": self.finding,
            "severity": self.severity.value,
            "recommendation": self.recommendation,
        }

    @classmethod
    def from_dict(cls, d: dict) -> ComplianceIssue:
        return cls(
            guideline_reference=str(d.get("guidelineReference", "")),
            finding=str(d.get("finding", "")),
            severity=Severity.normalize(d.get("severity")),
            recommendation=str(d.get("recommendation", "")),
        )


@dataclass
class AnalysisResult:
    """The model's full verdict for one piece of content.

    ``from_dict`` raises ValueError/TypeError/KeyError on a malformed payload
    rather than returning a partially filled result.
    """

    status: ComplianceStatus
    summary: str
    overall_verdict: str
    issues: list[ComplianceIssue] = field(default_factory=list)

    def count(self, severity: Severity) -> int:
        return sum(1 for i in self.issues if i.severity is severity)

    def to_dict(self) -> dict:
        return {
            "status": self.status.value,
            "summary": self.summary,
            "overallVerdict": self.overall_verdict,
            "issues": [i.to_dict() for i in self.issues],
        }

    @classmethod
    def from_dict(cls, d: dict) -> AnalysisResult:
        if not isinstance(d, dict):
            raise TypeError(f"expected a JSON object, got {type(d).__name__}")
        issues = d.get("issues") or []
        if not isinstance(issues, list):
            raise TypeError("'issues' must be a list")
        return cls(
            status=ComplianceStatus.parse(d["status"]),
            summary=str(d.get("summary", "")),
            overall_verdict=str(d.get("overallVerdict", "")),
            issues=[ComplianceIssue.from_dict(i) for i in issues if isinstance(i, dict)],
        )


@dataclass
class ImageInput:
    """An image attached to a post, base64-encoded."""

    base64: str
    mime_type: str


@dataclass
class RewrittenPost:
    option_title: str
    content: str
    explanation: str

    @classmethod
    def from_dict(cls, d: dict) -> RewrittenPost:
        return cls(
            option_title=str(d.get("optionTitle", "")),
            content=str(d.get("content", "")),
            explanation=str(d.get("explanation", "")),
        )
