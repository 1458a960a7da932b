"""
Models - Arsenal Module
Canonical lease analysis records (camelCase on the wire, snake_case in Python).
"""

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_SCORE = 75
DEFAULT_CONFIDENCE = 85
DEFAULT_FILE_NAME = "lease_document"
DEFAULT_LOCATION = "Unknown"

MODEL_ANALYSIS_VERSION = "gemini-enhanced-v1"
FALLBACK_ANALYSIS_VERSION = "fallback-v1"


class Severity(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class _RecordModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)


class Issue(_RecordModel):
    severity: Severity
    title: str
    description: str = ""
    suggestion: str = ""
    legal_basis: Optional[str] = Field(default=None, alias="legalBasis")
    clause_reference: Optional[str] = Field(default=None, alias="clauseReference")


class DocumentAuthenticity(_RecordModel):
    is_legitimate: bool = Field(default=True, alias="isLegitimate")
    concerns: List[str] = Field(default_factory=list)
    confidence: int = Field(default=DEFAULT_CONFIDENCE, ge=0, le=100)


class RiskAssessment(_RecordModel):
    high_risk: int = Field(default=0, ge=0, alias="highRisk")
    medium_risk: int = Field(default=0, ge=0, alias="mediumRisk")
    low_risk: int = Field(default=0, ge=0, alias="lowRisk")
    overall_risk_level: Severity = Field(default=Severity.LOW, alias="overallRiskLevel")


class LeaseAssessment(_RecordModel):
    """The model-derived part of an analysis."""

    overall_score: int = Field(default=DEFAULT_SCORE, ge=0, le=100, alias="overallScore")
    issues: List[Issue] = Field(default_factory=list)
    document_authenticity: DocumentAuthenticity = Field(
        default_factory=DocumentAuthenticity, alias="documentAuthenticity"
    )
    risk_assessment: RiskAssessment = Field(default_factory=RiskAssessment, alias="riskAssessment")
    recommendations: List[str] = Field(default_factory=list)
    location_specific_advice: List[str] = Field(default_factory=list, alias="locationSpecificAdvice")
    verification_notes: List[str] = Field(default_factory=list, alias="verificationNotes")

    def to_payload(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")


class AnalysisRecord(LeaseAssessment):
    """Persisted, immutable result of analyzing one lease."""

    id: str
    user_id: str = Field(alias="userId")
    file_name: str = Field(default=DEFAULT_FILE_NAME, alias="fileName")
    location: str = DEFAULT_LOCATION
    analysis_date: str = Field(alias="analysisDate")
    ai_powered: bool = Field(alias="aiPowered")
    analysis_version: str = Field(default=MODEL_ANALYSIS_VERSION, alias="analysisVersion")

    @classmethod
    def from_assessment(
        cls,
        assessment: LeaseAssessment,
        *,
        record_id: str,
        user_id: str,
        file_name: str,
        location: str,
        analysis_date: str,
        ai_powered: bool,
        analysis_version: str,
    ) -> "AnalysisRecord":
        return cls.model_validate(
            {
                **assessment.to_payload(),
                "id": record_id,
                "userId": user_id,
                "fileName": file_name,
                "location": location,
                "analysisDate": analysis_date,
                "aiPowered": ai_powered,
                "analysisVersion": analysis_version,
            }
        )

    def summary(self) -> "AnalysisSummary":
        return AnalysisSummary(
            id=self.id,
            file_name=self.file_name,
            location=self.location,
            analysis_date=self.analysis_date,
            overall_score=self.overall_score,
            issue_count=len(self.issues),
            ai_powered=self.ai_powered,
        )


class AnalysisSummary(_RecordModel):
    """History listing entry; carries no issue detail or long text."""

    id: str
    file_name: str = Field(alias="fileName")
    location: str
    analysis_date: str = Field(alias="analysisDate")
    overall_score: int = Field(alias="overallScore")
    issue_count: int = Field(alias="issueCount")
    ai_powered: bool = Field(alias="aiPowered")
