"""
Tests for Google OAuth token storage and refresh.
"""
from datetime import timedelta
from unittest.mock import MagicMock

import pytest

from app.config import Settings
from app.exceptions import ExternalServiceError
from app.models.google_oauth import GoogleOAuthToken
from app.services.google_oauth import GoogleTokenProvider, is_token_expired
from app.services.timeutil import utcnow


def _response(status_code=200, json_data=None, text=""):
    response = MagicMock()
    response.status_code = status_code
    response.ok = status_code < 400
    response.text = text
    response.json.return_value = json_data or {}
    return response


@pytest.fixture
def settings():
    return Settings(google_client_id="client-id", google_client_secret="client-secret")


@pytest.fixture
def session():
    return MagicMock()


@pytest.fixture
def provider(db, settings, session):
    return GoogleTokenProvider(db, settings=settings, session=session)


class TestStorage:
    def test_store_and_status(self, provider, test_user):
        provider.store_tokens(test_user.id, "access-1", refresh_token="refresh-1", expires_in=3600, scope="business.manage")

        status = provider.status(test_user.id)

        assert status["connected"] is True
        assert status["scope"] == "business.manage"

    def test_store_keeps_refresh_token(self, db, provider, test_user):
        provider.store_tokens(test_user.id, "access-1", refresh_token="refresh-1")
        provider.store_tokens(test_user.id, "access-2")

        row = db.query(GoogleOAuthToken).filter(GoogleOAuthToken.user_id == test_user.id).one()
        assert row.access_token == "access-2"
        assert row.refresh_token == "refresh-1"

    def test_first_store_requires_refresh_token(self, provider, test_user):
        with pytest.raises(ExternalServiceError):
            provider.store_tokens(test_user.id, "access-1")

    def test_delete(self, provider, test_user):
        provider.store_tokens(test_user.id, "access-1", refresh_token="refresh-1")

        assert provider.delete_tokens(test_user.id) is True
        assert provider.status(test_user.id)["connected"] is False


class TestAccessToken:
    def test_valid_token_returned_without_refresh(self, provider, session, test_user):
        provider.store_tokens(test_user.id, "access-1", refresh_token="refresh-1", expires_in=3600)

        assert provider.get_valid_access_token(test_user.id) == "access-1"
        session.post.assert_not_called()

    def test_expiring_token_refreshed(self, db, provider, session, test_user):
        provider.store_tokens(test_user.id, "old", refresh_token="refresh-1", expires_in=60)
        session.post.return_value = _response(json_data={"access_token": "new", "expires_in": 3600})

        assert provider.get_valid_access_token(test_user.id) == "new"

        data = session.post.call_args[1]["data"]
        assert data["grant_type"] == "refresh_token"
        assert data["refresh_token"] == "refresh-1"
        db.expire_all()
        assert db.query(GoogleOAuthToken).one().access_token == "new"

    def test_not_connected(self, provider, test_user):
        with pytest.raises(ExternalServiceError) as exc_info:
            provider.get_valid_access_token(test_user.id)

        assert exc_info.value.service == "google_oauth"
        assert exc_info.value.retryable is False

    def test_refresh_failure(self, provider, session, test_user):
        provider.store_tokens(test_user.id, "old", refresh_token="refresh-1", expires_in=0)
        session.post.return_value = _response(400, text="invalid_grant")

        with pytest.raises(ExternalServiceError) as exc_info:
            provider.get_valid_access_token(test_user.id)

        assert "invalid_grant" in exc_info.value.message

    def test_refresh_without_client_credentials(self, db, session, test_user):
        provider = GoogleTokenProvider(db, settings=Settings(google_client_id=None, google_client_secret=None), session=session)
        provider.store_tokens(test_user.id, "old", refresh_token="refresh-1", expires_in=0)

        with pytest.raises(ExternalServiceError) as exc_info:
            provider.get_valid_access_token(test_user.id)

        assert exc_info.value.status_code == 503
        session.post.assert_not_called()


def test_expiry_margin():
    now = utcnow()
    assert is_token_expired(now + timedelta(minutes=4), now=now)
    assert not is_token_expired(now + timedelta(minutes=6), now=now)
