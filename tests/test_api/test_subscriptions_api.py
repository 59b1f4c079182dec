"""
Tests for the HTTP API (auth, subscriptions, profile, reminder trigger)
"""
import pytest
from datetime import timedelta
from fastapi.testclient import TestClient
from unittest.mock import MagicMock, patch
from sqlalchemy.exc import OperationalError

from subtrack.main import app
from subtrack.config import Settings, get_settings
from subtrack.infrastructure.db.session import get_db
from subtrack.infrastructure.storage.avatars import LocalAvatarStorage, get_avatar_storage
from subtrack.utils.clock import local_today


@pytest.fixture
def settings():
    return Settings(REMINDER_CRON_SECRET="cron-secret", RESEND_API_KEY="", EMAIL_FROM="")


@pytest.fixture
def client(db_session, settings, tmp_path):
    """TestClient wired to the in-memory test database"""
    def _get_db():
        yield db_session

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_avatar_storage] = lambda: LocalAvatarStorage(tmp_path, "/media")
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def logged_in(client):
    response = client.post("/api/v1/auth/register", json={
        "email": "alice@example.com", "password": "secret123", "confirm_password": "secret123",
    })
    assert response.status_code == 200
    return client


def _in_days(n: int) -> str:
    return (local_today() + timedelta(days=n)).isoformat()


class TestAuth:
    def test_requires_login(self, client):
        assert client.get("/api/v1/subscriptions/").status_code == 401
        assert client.get("/api/v1/profile/").status_code == 401

    def test_register_mismatch_is_400(self, client):
        response = client.post("/api/v1/auth/register", json={
            "email": "bob@example.com", "password": "secret123", "confirm_password": "other123",
        })
        assert response.status_code == 400
        assert response.json()["detail"] == "兩次輸入的密碼不一致"

    def test_logout_then_login(self, logged_in):
        logged_in.post("/api/v1/auth/logout")
        assert logged_in.get("/api/v1/subscriptions/").status_code == 401

        bad = logged_in.post("/api/v1/auth/login", json={"email": "alice@example.com", "password": "nope"})
        assert bad.status_code == 401

        ok = logged_in.post("/api/v1/auth/login", json={"email": "alice@example.com", "password": "secret123"})
        assert ok.status_code == 200
        assert logged_in.get("/api/v1/subscriptions/").status_code == 200


class TestSubscriptions:
    def test_crud(self, logged_in):
        created = logged_in.post("/api/v1/subscriptions/", json={
            "name": "Adobe CC", "expiry_date": _in_days(2), "price": "54.99", "category": "設計",
        })
        assert created.status_code == 200
        body = created.json()
        assert body["status"] == "expiring"
        assert body["days_remaining"] == 2
        assert body["price"] == "$54.99"

        sid = body["id"]
        updated = logged_in.put(f"/api/v1/subscriptions/{sid}", json={
            "name": "Adobe CC", "expiry_date": _in_days(-1), "price": "54.99", "category": "設計",
        })
        assert updated.json()["status"] == "expired"

        listed = logged_in.get("/api/v1/subscriptions/").json()
        assert [s["id"] for s in listed] == [sid]

        assert logged_in.delete(f"/api/v1/subscriptions/{sid}").json() == {"status": "deleted"}
        assert logged_in.get("/api/v1/subscriptions/").json() == []

    def test_validation_error_is_400(self, logged_in):
        response = logged_in.post("/api/v1/subscriptions/", json={"name": "  ", "expiry_date": _in_days(3)})
        assert response.status_code == 400
        assert response.json()["detail"] == "服務名稱不能為空"

    def test_unknown_billing_cycle_rejected(self, logged_in):
        response = logged_in.post("/api/v1/subscriptions/", json={
            "name": "Zoom", "expiry_date": _in_days(3), "billing_cycle": "weekly",
        })
        assert response.status_code == 422

    def test_search_and_urgent(self, logged_in):
        for name, days in (("Spotify", 40), ("AWS", -3), ("Zoom", 1)):
            logged_in.post("/api/v1/subscriptions/", json={"name": name, "expiry_date": _in_days(days)})

        found = logged_in.get("/api/v1/subscriptions/", params={"q": "spot"}).json()
        assert [s["name"] for s in found] == ["Spotify"]

        urgent = logged_in.get("/api/v1/subscriptions/urgent").json()
        assert [s["name"] for s in urgent] == ["AWS", "Zoom"]

        dash = logged_in.get("/api/v1/subscriptions/dashboard").json()
        assert dash["display_name"] == "alice"
        assert dash["counts"] == {"total": 3, "active": 1, "expiring": 1, "expired": 1}

    def test_other_users_subscription_hidden(self, logged_in, client):
        sid = logged_in.post("/api/v1/subscriptions/", json={"name": "Zoom", "expiry_date": _in_days(3)}).json()["id"]
        logged_in.post("/api/v1/auth/logout")
        client.post("/api/v1/auth/register", json={
            "email": "bob@example.com", "password": "secret123", "confirm_password": "secret123",
        })
        assert client.delete(f"/api/v1/subscriptions/{sid}").status_code == 400
        assert client.get("/api/v1/subscriptions/").json() == []


class TestProfile:
    def test_settings(self, logged_in):
        response = logged_in.put("/api/v1/profile/settings", json={"email_notify": False, "reminder_days": 14})
        assert response.status_code == 200
        assert response.json()["reminder_days"] == 14
        assert logged_in.get("/api/v1/profile/").json()["email_notify"] is False

    def test_settings_out_of_range(self, logged_in):
        response = logged_in.put("/api/v1/profile/settings", json={"email_notify": True, "reminder_days": 0})
        assert response.status_code == 400

    def test_patch_nickname_only(self, logged_in):
        body = logged_in.patch("/api/v1/profile/", json={"nickname": "Alice"}).json()
        assert body["nickname"] == "Alice"
        assert body["email"] == "alice@example.com"

    def test_avatar_upload_and_delete(self, logged_in):
        response = logged_in.post(
            "/api/v1/profile/avatar",
            files={"file": ("me.png", b"\x89PNG", "image/png")},
        )
        assert response.status_code == 200
        assert response.json()["avatar_url"].endswith("/avatar.png")

        logged_in.delete("/api/v1/profile/avatar")
        assert logged_in.get("/api/v1/profile/").json()["avatar_url"] is None


class TestReminderTrigger:
    def test_missing_secret_forbidden(self, client):
        assert client.post("/api/v1/reminders/run").status_code == 403

    def test_wrong_secret_forbidden(self, client):
        response = client.post("/api/v1/reminders/run", headers={"X-Cron-Secret": "guess"})
        assert response.status_code == 403

    def test_unconfigured_email_aborts_with_500(self, client):
        response = client.post("/api/v1/reminders/run", headers={"X-Cron-Secret": "cron-secret"})
        assert response.status_code == 500
        assert response.json()["success"] is False

    def test_store_failure_answers_json_summary(self, client, settings):
        settings.RESEND_API_KEY = "re_test"
        settings.EMAIL_FROM = "noreply@example.com"
        broken = MagicMock()
        broken.query.side_effect = OperationalError("SELECT profiles", {}, Exception("connection lost"))

        def _broken_db():
            yield broken

        app.dependency_overrides[get_db] = _broken_db
        response = client.post("/api/v1/reminders/run", headers={"X-Cron-Secret": "cron-secret"})

        assert response.status_code == 500
        body = response.json()
        assert body["success"] is False
        assert "connection lost" in body["error"]

    def test_run_sends_digest(self, logged_in, settings):
        settings.RESEND_API_KEY = "re_test"
        settings.EMAIL_FROM = "noreply@example.com"
        logged_in.post("/api/v1/subscriptions/", json={"name": "Zoom", "expiry_date": _in_days(1)})

        with patch("subtrack.application.email_service.get_settings", return_value=settings), \
                patch("subtrack.application.email_service.requests.post") as mock_post:
            mock_post.return_value = MagicMock(ok=True, status_code=200)
            response = logged_in.post("/api/v1/reminders/run", headers={"X-Cron-Secret": "cron-secret"})

        assert response.status_code == 200
        body = response.json()
        assert body["processed_users"] == 1
        assert body["results"][0]["email_sent"] is True
        assert mock_post.call_args.kwargs["json"]["to"] == ["alice@example.com"]


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.text == "ok"
