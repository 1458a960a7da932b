from __future__ import annotations

import importlib
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Optional

import pytest
from fastapi.testclient import TestClient

from lib.errors import AuthError

LEASE_TEXT = (
    "RESIDENTIAL LEASE AGREEMENT. The Landlord agrees to rent the premises at 12 Elm Street "
    "to the Tenant for a term of twelve months. Rent of $1,500 is due on the first day of each "
    "month. A security deposit of $3,000 is required. The Landlord may enter the premises at any "
    "time without notice. The Tenant is responsible for all repairs regardless of cause."
)

VALID_REPLY = """```json
{
  "overallScore": 62,
  "documentAuthenticity": {"isLegitimate": true, "concerns": [], "confidence": 90},
  "issues": [
    {
      "severity": "high",
      "title": "Entry without notice",
      "description": "The landlord may enter at any time.",
      "suggestion": "Request 24 hours written notice.",
      "legalBasis": "Civil Code 1954",
      "clauseReference": "Section 7"
    },
    {
      "severity": "medium",
      "title": "Excessive deposit",
      "description": "Deposit equals two months of rent.",
      "suggestion": "Negotiate a one-month deposit."
    }
  ],
  "recommendations": ["Document the unit's condition at move-in"],
  "locationSpecificAdvice": ["California limits deposits for most landlords"],
  "riskAssessment": {"highRisk": 1, "mediumRisk": 1, "lowRisk": 0, "overallRiskLevel": "high"},
  "verificationNotes": ["No lead paint disclosure found"]
}
```"""


class FakeModelClient:
    """Returns a canned reply or raises a canned error, and counts calls."""

    def __init__(self, reply: str = VALID_REPLY, error: Optional[Exception] = None) -> None:
        self.reply = reply
        self.error = error
        self.calls: list[tuple[str, Optional[str]]] = []

    async def invoke(self, lease_text: str, location: Optional[str]) -> str:
        self.calls.append((lease_text, location))
        if self.error is not None:
            raise self.error
        return self.reply


class FakeIdentityProvider:
    def __init__(self, tokens: Optional[dict[str, str]] = None) -> None:
        self.tokens = tokens or {"token-alice": "alice", "token-bob": "bob"}

    async def verify(self, token: str) -> str:
        user_id = self.tokens.get(token)
        if user_id is None:
            raise AuthError("Invalid authorization token")
        return user_id


class StepClock:
    """Deterministic clock that advances one minute per call."""

    def __init__(self, start: Optional[datetime] = None) -> None:
        self.current = start or datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        value = self.current
        self.current += timedelta(minutes=1)
        return value


def auth_headers(token: str = "token-alice") -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def model_client() -> FakeModelClient:
    return FakeModelClient()


@pytest.fixture
def app(monkeypatch: pytest.MonkeyPatch, tmp_path: Path, model_client: FakeModelClient):
    main = importlib.import_module("main")

    class DummyReportGenerator:
        def __init__(self, templates_dir: Optional[str] = None) -> None:
            self.templates_dir = templates_dir
            self.documents: list[Any] = []

        def generate_pdf(self, document) -> bytes:
            self.documents.append(document)
            return b"%PDF-1.4\n"

    monkeypatch.setattr(main, "ReportGenerator", DummyReportGenerator)
    monkeypatch.setattr(main, "LeaseModelClient", lambda **_kwargs: model_client)
    monkeypatch.setattr(main, "SupabaseIdentityProvider", lambda **_kwargs: FakeIdentityProvider())

    config = main.AppConfig(
        APP_BASE_URL="http://localhost:8000",
        GEMINI_API_KEY="test-key",
        SUPABASE_URL="https://example.supabase.co",
        SUPABASE_ANON_KEY="anon-key",
        DATA_DIR=str(tmp_path / "data"),
    )

    return main.create_app(config_override=config)


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client
