"""
Tests for the daily job trigger, run history and manual send endpoints
"""
from datetime import datetime, timezone
from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from app.api import deps
from app.config import Settings
from app.infrastructure.db.models import AdminSummaryLog, WhatsAppNotification
from app.main import create_app

FIXED_NOW = datetime(2026, 3, 10, 4, 0, tzinfo=timezone.utc)


@pytest.fixture
def api(db_session, settings, sender):
    """App with DB, settings and sender overridden; returns (client, overrides)"""
    app = create_app()
    overrides = {"settings": settings}

    def _get_db():
        yield db_session

    app.dependency_overrides[deps.get_db] = _get_db
    app.dependency_overrides[deps.get_settings] = lambda: overrides["settings"]
    app.dependency_overrides[deps.get_sender] = lambda: sender
    with patch("app.application.daily_whatsapp_job._utc_now", return_value=FIXED_NOW):
        yield TestClient(app), overrides


def test_trigger_runs_then_skips(api, db_session, sender, make_branch, make_member):
    client, _ = api
    member = make_member(make_branch(), days=0)

    response = client.post("/api/v1/jobs/daily-whatsapp", json={})

    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    assert data["skipped"] is False
    assert data["runDate"] == "2026-03-10"
    assert data["expiringToday"] == 1
    assert data["notificationsSent"] == 1
    assert data["failed"] == 0

    again = client.post("/api/v1/jobs/daily-whatsapp", json={"manual": True})
    assert again.status_code == 200
    assert again.json()["skipped"] is True
    assert len(sender.calls) == 1

    runs = client.get("/api/v1/jobs/daily-whatsapp/runs").json()["runs"]
    assert len(runs) == 1
    assert runs[0]["status"] == "completed"
    assert runs[0]["memberIds"] == [str(member.id)]


def test_trigger_without_body(api, make_branch, make_member):
    client, _ = api
    make_member(make_branch(), days=0)

    response = client.post("/api/v1/jobs/daily-whatsapp")

    assert response.status_code == 200
    assert response.json()["notificationsSent"] == 1


def test_trigger_missing_credentials_returns_500(api, db_session, sender, make_branch, make_member):
    client, overrides = api
    make_member(make_branch(), days=0)
    overrides["settings"] = Settings(DATABASE_URL="sqlite:///:memory:", _env_file=None)

    response = client.post("/api/v1/jobs/daily-whatsapp", json={})

    assert response.status_code == 500
    assert response.json()["success"] is False
    assert "PERISKOPE_API_KEY" in response.json()["error"]
    assert sender.calls == []
    assert db_session.query(AdminSummaryLog).count() == 0
    assert db_session.query(WhatsAppNotification).count() == 0


def test_trigger_token_required_when_configured(api, settings):
    client, overrides = api
    overrides["settings"] = settings.model_copy(update={"JOB_TRIGGER_TOKEN": "s3cret"})

    assert client.post("/api/v1/jobs/daily-whatsapp", json={}).status_code == 401
    wrong = client.post(
        "/api/v1/jobs/daily-whatsapp", json={}, headers={"Authorization": "Bearer nope"}
    )
    assert wrong.status_code == 401

    ok = client.post(
        "/api/v1/jobs/daily-whatsapp", json={}, headers={"Authorization": "Bearer s3cret"}
    )
    assert ok.status_code == 200


def test_manual_send_endpoint(api, sender, make_branch, make_member):
    client, _ = api
    branch = make_branch()
    member = make_member(branch, "Aarav", days=3)

    response = client.post(
        "/api/v1/whatsapp/send",
        json={
            "member_ids": [str(member.id)],
            "type": "custom",
            "custom_message": "Hi {name}",
            "branch_id": str(branch.id),
        },
    )

    assert response.status_code == 200
    assert response.json() == {"success": True, "sent": 1, "failed": 0, "notFound": 0}
    assert sender.calls == [("919876543210", "Hi Aarav")]


def test_manual_send_validation_error(api):
    client, _ = api

    response = client.post("/api/v1/whatsapp/send", json={"member_ids": [], "type": "custom"})

    assert response.status_code == 400
    assert response.json()["success"] is False


def test_health(api):
    client, _ = api
    assert client.get("/health").text == "ok"
