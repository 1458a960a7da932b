from __future__ import annotations

import pytest

from lib.errors import FailureKind
from lib.fallback import UNAVAILABLE_ISSUE_TITLE, synthesize
from lib.models import Severity


@pytest.mark.parametrize("reason", list(FailureKind))
def test_fallback_has_single_medium_unavailable_issue(reason: FailureKind) -> None:
    assessment = synthesize(reason)

    assert assessment.overall_score == 75
    assert len(assessment.issues) == 1
    assert assessment.issues[0].severity == Severity.MEDIUM
    assert assessment.issues[0].title == UNAVAILABLE_ISSUE_TITLE
    assert assessment.recommendations


def test_fallback_is_deterministic_per_reason() -> None:
    assert synthesize(FailureKind.REFUSED) == synthesize(FailureKind.REFUSED)
    assert synthesize(FailureKind.REFUSED) != synthesize(FailureKind.UNAVAILABLE)
