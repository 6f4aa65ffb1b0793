"""Turn a model verdict into the stored status and score."""

from __future__ import annotations

from safepost_core.errors import OffTopicContentError
from safepost_core.models import AnalysisResult, ComplianceStatus, Severity

_STATUS_MAP = {
    ComplianceStatus.COMPLIANT: "compliant",
    ComplianceStatus.NON_COMPLIANT: "non_compliant",
    ComplianceStatus.WARNING: "requires_review",
}

CRITICAL_PENALTY = 25
WARNING_PENALTY = 10
REVIEW_SCORE = 70

_OFF_TOPIC_MESSAGE = (
    "This content doesn't appear to be healthcare-related. Ahpra compliance guidelines only "
    "apply to posts about healthcare services, medical advice, or professional medical practice."
)


def normalize_status(result: AnalysisResult) -> str:
    """Map the model status onto compliant / non_compliant / requires_review.

    NOT_HEALTHCARE is not a verdict: it raises OffTopicContentError carrying
    the model's own summary.
    """
    if result.status is ComplianceStatus.NOT_HEALTHCARE:
        raise OffTopicContentError(result.summary or _OFF_TOPIC_MESSAGE)
    return _STATUS_MAP[result.status]


def compliance_score(result: AnalysisResult) -> int:
    """100 if compliant, 70 under review, else 100 - 25/critical - 10/warning, floored at 0."""
    status = normalize_status(result)
    if status == "compliant":
        return 100
    if status == "requires_review":
        return REVIEW_SCORE
    penalty = CRITICAL_PENALTY * result.count(Severity.CRITICAL) + WARNING_PENALTY * result.count(Severity.WARNING)
    return max(0, 100 - penalty)
