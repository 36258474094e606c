"""
Tests for user sync, settings, activity, integrations and AI endpoints.
"""
from unittest.mock import MagicMock

from app.auth import create_access_token
from app.main import app
from app.models.activity import Activity
from app.models.settings import UserSettings
from app.models.user import User
from app.routes.ai_generation import get_ai_client


class TestUserSync:
    """POST /api/users/sync"""

    def test_sync_creates_user_with_defaults(self, client, db):
        headers = {"Authorization": f"Bearer {create_access_token({'sub': 'user_new'})}"}

        response = client.post("/api/users/sync", headers=headers, json={"email": "new@example.com"})

        assert response.status_code == 201
        assert response.json()["id"] == "user_new"
        assert response.json()["display_name"] == "new"
        assert db.query(UserSettings).filter(UserSettings.user_id == "user_new").count() == 1
        assert db.query(Activity).filter(Activity.user_id == "user_new").count() == 1

    def test_sync_existing_user(self, client, auth_headers):
        response = client.post("/api/users/sync", headers=auth_headers, json={"email": "test@example.com"})

        assert response.status_code == 200
        assert response.json()["id"] == "user_test1"

    def test_sync_email_taken(self, client, test_user, db):
        headers = {"Authorization": f"Bearer {create_access_token({'sub': 'user_dup'})}"}

        response = client.post("/api/users/sync", headers=headers, json={"email": "test@example.com"})

        assert response.status_code == 400
        assert db.query(User).filter(User.id == "user_dup").count() == 0

    def test_sync_invalid_email(self, client, db):
        headers = {"Authorization": f"Bearer {create_access_token({'sub': 'user_new'})}"}

        assert client.post("/api/users/sync", headers=headers, json={"email": "nope"}).status_code == 400


class TestSettings:
    """GET/PATCH /api/settings"""

    def test_get_creates_defaults(self, client, auth_headers):
        response = client.get("/api/settings", headers=auth_headers)

        assert response.status_code == 200
        assert response.json()["language_code"] == "en"
        assert response.json()["default_location_id"] is None

    def test_default_location_used_for_scheduling(self, client, auth_headers):
        client.patch("/api/settings", headers=auth_headers, json={"default_location_id": "loc-home"})

        client.post(
            "/api/scheduled-qna",
            headers=auth_headers,
            json={"qna": [{"question": "What are your opening hours?"}], "scheduled_publish_time": "2030-01-01T00:00:00Z"},
        )

        qna = client.get("/api/scheduled-qna", headers=auth_headers).json()["qna"]
        assert qna[0]["location_id"] == "loc-home"


class TestActivity:
    def test_activity_listed_newest_first(self, client, auth_headers, test_user, db):
        db.add_all([
            Activity(user_id=test_user.id, activity_type="account", title="Account created"),
            Activity(user_id=test_user.id, activity_type="google", title="Google connected"),
        ])
        db.commit()

        response = client.get("/api/activity", headers=auth_headers)

        assert response.status_code == 200
        assert [a["title"] for a in response.json()] == ["Google connected", "Account created"]


class TestGoogleIntegration:
    def test_store_status_and_disconnect(self, client, auth_headers):
        response = client.put(
            "/api/integrations/google/token",
            headers=auth_headers,
            json={"access_token": "access-1", "refresh_token": "refresh-1", "expires_in": 3600, "scope": "business.manage"},
        )
        assert response.status_code == 200
        assert response.json()["connected"] is True

        assert client.get("/api/integrations/google/status", headers=auth_headers).json()["connected"] is True

        assert client.delete("/api/integrations/google/token", headers=auth_headers).status_code == 200
        assert client.get("/api/integrations/google/status", headers=auth_headers).json()["connected"] is False


class TestAIGeneration:
    def test_generate(self, client, auth_headers):
        ai_client = MagicMock()
        ai_client.generate.return_value = {"questions": ["What are your hours?"]}
        app.dependency_overrides[get_ai_client] = lambda: ai_client

        response = client.post(
            "/api/ai-generation",
            headers=auth_headers,
            json={"type": "questions", "businessInfo": {"name": "Joe's Diner"}, "count": 1},
        )

        assert response.status_code == 200
        assert response.json()["data"] == {"questions": ["What are your hours?"]}
        ai_client.generate.assert_called_once_with(
            "questions", prompt=None, business_info={"name": "Joe's Diner"}, question_text=None, count=1,
        )

    def test_unconfigured_returns_503(self, client, auth_headers):
        response = client.post("/api/ai-generation", headers=auth_headers, json={"type": "questions"})

        assert response.status_code == 503
        assert response.json()["details"]["service"] == "ai_generation"


def test_health(client):
    response = client.get("/api/health")

    assert response.status_code == 200
    assert response.json()["database"]["status"] == "healthy"
