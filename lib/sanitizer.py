"""
Sanitizer - Arsenal Module
Repairs an untrusted model reply into a schema-complete LeaseAssessment.

Steps: strip fences -> extract object -> parse -> coerce.
Only an unparsable reply raises; everything after parsing is defaulted.
"""

import json
import logging
import math
import re
from typing import Any, Dict, List, Optional

from lib.errors import MalformedReplyError
from lib.models import (
    DEFAULT_CONFIDENCE,
    DEFAULT_SCORE,
    DocumentAuthenticity,
    Issue,
    LeaseAssessment,
    RiskAssessment,
    Severity,
)

logger = logging.getLogger(__name__)

_FENCE_PATTERN = re.compile(r"```(?:json|JSON)?[ \t]*\n?|\n?```")

DEFAULT_ISSUE_SEVERITY = Severity.MEDIUM
DEFAULT_UNKNOWN_RISK_LEVEL = Severity.MEDIUM
UNTITLED_ISSUE = "Untitled issue"


def strip_fences(text: str) -> str:
    """Remove markdown code fences around the payload."""
    return _FENCE_PATTERN.sub("", text).strip()


def extract_json_object(text: str) -> Optional[str]:
    """Extract the first complete JSON object, ignoring braces inside strings."""
    start_idx = text.find("{")
    if start_idx == -1:
        return None

    depth = 0
    in_string = False
    escaped = False
    for i, char in enumerate(text[start_idx:], start=start_idx):
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue

        if char == '"':
            in_string = True
        elif char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return text[start_idx:i + 1]
    return None


def parse_payload(text: str) -> Dict[str, Any]:
    """Parse reply text into a JSON object or raise MalformedReplyError."""
    try:
        payload = json.loads(text)
    except json.JSONDecodeError as exc:
        # Prose around the object is common; retry on the first balanced object.
        candidate = extract_json_object(text)
        if candidate is None:
            raise MalformedReplyError(f"Reply is not valid JSON: {exc}") from exc
        try:
            payload = json.loads(candidate)
        except json.JSONDecodeError as inner_exc:
            raise MalformedReplyError(f"Reply is not valid JSON: {inner_exc}") from inner_exc

    if not isinstance(payload, dict):
        raise MalformedReplyError(
            f"Reply must be a JSON object, got {type(payload).__name__}"
        )
    return payload


def _as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        if isinstance(value, float) and not math.isfinite(value):
            return None
        return int(round(value))
    if isinstance(value, str):
        try:
            number = float(value.strip().rstrip("%"))
        except ValueError:
            return None
        if not math.isfinite(number):
            return None
        return int(round(number))
    return None


def clamp_score(value: Any, default: int = DEFAULT_SCORE) -> int:
    """Coerce a 0-100 score; missing or non-numeric values fall back to default."""
    number = _as_int(value)
    if number is None:
        return default
    return max(0, min(100, number))


def _as_text(value: Any) -> Optional[str]:
    if value is None or isinstance(value, (dict, list)):
        return None
    text = str(value).strip()
    return text or None


def _string_list(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    return [text for text in (_as_text(item) for item in value) if text]


def _severity(value: Any, default: Severity) -> Severity:
    if isinstance(value, str):
        try:
            return Severity(value.strip().lower())
        except ValueError:
            pass
    return default


def _coerce_issue(raw: Dict[str, Any]) -> Issue:
    return Issue(
        severity=_severity(raw.get("severity"), DEFAULT_ISSUE_SEVERITY),
        title=_as_text(raw.get("title")) or UNTITLED_ISSUE,
        description=_as_text(raw.get("description")) or "",
        suggestion=_as_text(raw.get("suggestion")) or "",
        legal_basis=_as_text(raw.get("legalBasis")),
        clause_reference=_as_text(raw.get("clauseReference")),
    )


def _coerce_authenticity(raw: Any) -> DocumentAuthenticity:
    if not isinstance(raw, dict):
        return DocumentAuthenticity()

    is_legitimate = raw.get("isLegitimate")
    return DocumentAuthenticity(
        is_legitimate=is_legitimate if isinstance(is_legitimate, bool) else True,
        concerns=_string_list(raw.get("concerns")),
        confidence=clamp_score(raw.get("confidence"), default=DEFAULT_CONFIDENCE),
    )


def _coerce_risk(raw: Any) -> RiskAssessment:
    if not isinstance(raw, dict):
        return RiskAssessment()

    def count(key: str) -> int:
        number = _as_int(raw.get(key))
        return max(0, number) if number is not None else 0

    level = raw.get("overallRiskLevel")
    return RiskAssessment(
        high_risk=count("highRisk"),
        medium_risk=count("mediumRisk"),
        low_risk=count("lowRisk"),
        overall_risk_level=(
            Severity.LOW if level is None else _severity(level, DEFAULT_UNKNOWN_RISK_LEVEL)
        ),
    )


def coerce_assessment(payload: Dict[str, Any]) -> LeaseAssessment:
    """Fill defaults, clamp ranges and normalize enums on a parsed reply."""
    raw_issues = payload.get("issues")
    issues: List[Issue] = []
    if isinstance(raw_issues, list):
        for idx, raw_issue in enumerate(raw_issues):
            if not isinstance(raw_issue, dict):
                logger.warning("Dropping issue %s: expected object, got %s", idx, type(raw_issue).__name__)
                continue
            issues.append(_coerce_issue(raw_issue))

    return LeaseAssessment(
        overall_score=clamp_score(payload.get("overallScore")),
        issues=issues,
        document_authenticity=_coerce_authenticity(payload.get("documentAuthenticity")),
        risk_assessment=_coerce_risk(payload.get("riskAssessment")),
        recommendations=_string_list(payload.get("recommendations")),
        location_specific_advice=_string_list(payload.get("locationSpecificAdvice")),
        verification_notes=_string_list(payload.get("verificationNotes")),
    )


def sanitize(raw_text: str) -> LeaseAssessment:
    """Turn raw reply text into a valid assessment, or raise MalformedReplyError."""
    if not isinstance(raw_text, str) or not raw_text.strip():
        raise MalformedReplyError("Reply is empty")

    payload = parse_payload(strip_fences(raw_text))
    return coerce_assessment(payload)
