"""
Fallback - Arsenal Module
Deterministic safe assessment used whenever the model path fails.
"""

from typing import Dict

from lib.errors import FailureKind
from lib.models import DocumentAuthenticity, Issue, LeaseAssessment, RiskAssessment, Severity

UNAVAILABLE_ISSUE_TITLE = "AI Analysis Unavailable"
FALLBACK_SCORE = 75
FALLBACK_CONFIDENCE = 50

_REASON_NOTES: Dict[FailureKind, str] = {
    FailureKind.UNAVAILABLE: "The analysis service could not be reached.",
    FailureKind.REFUSED: "The analysis service declined to assess this document.",
    FailureKind.MISCONFIGURED: "Automated analysis is not configured for this service.",
    FailureKind.MALFORMED_REPLY: "The analysis service returned an unreadable result.",
}


def synthesize(reason: FailureKind) -> LeaseAssessment:
    """Build the fallback assessment for a failure reason. Pure and deterministic."""
    return LeaseAssessment(
        overall_score=FALLBACK_SCORE,
        document_authenticity=DocumentAuthenticity(
            is_legitimate=True,
            concerns=["Analysis performed without AI verification due to service unavailability"],
            confidence=FALLBACK_CONFIDENCE,
        ),
        issues=[
            Issue(
                severity=Severity.MEDIUM,
                title=UNAVAILABLE_ISSUE_TITLE,
                description="Detailed AI analysis could not be performed. Manual review recommended.",
                suggestion="Consider having a legal professional review this lease agreement.",
                legal_basis="General tenant protection advice",
                clause_reference="N/A",
            )
        ],
        recommendations=[
            "Review local tenant rights laws in your area",
            "Consider getting a legal consultation before signing",
            "Keep detailed records of all communications with your landlord",
        ],
        location_specific_advice=[
            "Check local housing authority resources for tenant rights information",
        ],
        risk_assessment=RiskAssessment(
            high_risk=0,
            medium_risk=1,
            low_risk=0,
            overall_risk_level=Severity.MEDIUM,
        ),
        verification_notes=[
            "Document verification could not be completed automatically",
            _REASON_NOTES[reason],
        ],
    )
