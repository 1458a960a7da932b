from __future__ import annotations

from lib.errors import ModelUnavailableError
from tests.conftest import LEASE_TEXT, auth_headers


def test_startup_reports_healthy_state(client) -> None:
    health = client.get("/health")

    assert health.status_code == 200
    assert health.json()["status"] == "healthy"
    assert health.json()["version"] == "1.0.0"
    assert health.headers["X-App-Version"] == "1.0.0"


def test_analyze_requires_bearer_token(client, model_client) -> None:
    missing = client.post("/api/analyze-lease", json={"leaseText": LEASE_TEXT})
    invalid = client.post(
        "/api/analyze-lease", json={"leaseText": LEASE_TEXT}, headers=auth_headers("bogus")
    )

    assert missing.status_code == 401
    assert invalid.status_code == 401
    assert model_client.calls == []


def test_analyze_rejects_short_text_without_model_call(client, model_client) -> None:
    response = client.post(
        "/api/analyze-lease", json={"leaseText": "x" * 40}, headers=auth_headers()
    )

    assert response.status_code == 400
    assert "substantial" in response.json()["detail"]
    assert model_client.calls == []


def test_analyze_returns_persisted_record(client) -> None:
    response = client.post(
        "/api/analyze-lease",
        json={"leaseText": LEASE_TEXT, "fileName": "elm.txt", "location": "Fresno, CA"},
        headers=auth_headers(),
    )

    assert response.status_code == 200
    analysis = response.json()["analysis"]
    assert analysis["aiPowered"] is True
    assert analysis["userId"] == "alice"
    assert analysis["overallScore"] == 62
    assert analysis["issues"][0]["clauseReference"] == "Section 7"

    detail = client.get(f"/api/analysis/{analysis['id']}", headers=auth_headers())
    assert detail.status_code == 200
    assert detail.json()["analysis"] == analysis


def test_model_outage_is_not_surfaced(client, model_client) -> None:
    model_client.error = ModelUnavailableError("connection refused")

    response = client.post(
        "/api/analyze-lease", json={"leaseText": LEASE_TEXT}, headers=auth_headers()
    )

    assert response.status_code == 200
    analysis = response.json()["analysis"]
    assert analysis["aiPowered"] is False
    assert analysis["issues"][0]["title"] == "AI Analysis Unavailable"
    assert "connection refused" not in response.text


def test_history_lists_most_recent_first_and_counts_usage(client) -> None:
    ids = []
    for name in ("first.txt", "second.txt"):
        response = client.post(
            "/api/analyze-lease",
            json={"leaseText": LEASE_TEXT, "fileName": name},
            headers=auth_headers(),
        )
        ids.append(response.json()["analysis"]["id"])

    history = client.get("/api/analyses", headers=auth_headers()).json()["analyses"]
    assert [item["id"] for item in history] == list(reversed(ids))
    assert history[0]["issueCount"] == 2
    assert "issues" not in history[0]

    profile = client.get("/api/profile", headers=auth_headers()).json()["profile"]
    assert profile["analysisCount"] == 2
    assert profile["subscription"] == "free"
    assert profile["lastAnalysis"]


def test_other_users_cannot_read_analysis_or_report(client) -> None:
    created = client.post(
        "/api/analyze-lease", json={"leaseText": LEASE_TEXT}, headers=auth_headers()
    ).json()["analysis"]

    detail = client.get(f"/api/analysis/{created['id']}", headers=auth_headers("token-bob"))
    report = client.get(f"/api/analysis/{created['id']}/report", headers=auth_headers("token-bob"))

    assert detail.status_code == 403
    assert report.status_code == 403
    assert "overallScore" not in detail.text


def test_unknown_analysis_is_not_found(client) -> None:
    response = client.get("/api/analysis/does-not-exist", headers=auth_headers())

    assert response.status_code == 404


def test_first_request_creates_empty_profile(client) -> None:
    response = client.get("/api/profile", headers=auth_headers("token-bob"))

    assert response.status_code == 200
    profile = response.json()["profile"]
    assert profile["id"] == "bob"
    assert profile["analysisCount"] == 0
    assert profile["subscription"] == "free"


def test_profile_update_merges_name_and_preferences(client) -> None:
    client.post("/api/analyze-lease", json={"leaseText": LEASE_TEXT}, headers=auth_headers())

    response = client.put(
        "/api/profile",
        json={"name": "Alice", "preferences": {"emailReports": True}},
        headers=auth_headers(),
    )
    blank = client.put("/api/profile", json={"name": "  "}, headers=auth_headers())

    assert response.status_code == 200
    profile = response.json()["profile"]
    assert profile["name"] == "Alice"
    assert profile["preferences"] == {"emailReports": True}
    assert profile["analysisCount"] == 1
    assert profile["updatedAt"]
    assert blank.json()["profile"]["name"] == "Alice"
    assert blank.json()["profile"]["preferences"] == {"emailReports": True}


def test_profile_update_requires_bearer_token(client) -> None:
    assert client.put("/api/profile", json={"name": "Mallory"}).status_code == 401


def test_report_download_uses_derived_file_name(client) -> None:
    created = client.post(
        "/api/analyze-lease",
        json={"leaseText": LEASE_TEXT, "fileName": "Elm St Lease.docx"},
        headers=auth_headers(),
    ).json()["analysis"]

    response = client.get(f"/api/analysis/{created['id']}/report", headers=auth_headers())

    assert response.status_code == 200
    assert response.headers["content-type"] == "application/pdf"
    assert response.content.startswith(b"%PDF")
    disposition = response.headers["content-disposition"]
    assert "filename=lease-analysis-elm_st_lease_docx-" in disposition

    generator = client.app.state.services.report_generator
    assert generator.documents[0].source_file_name == "Elm St Lease.docx"
