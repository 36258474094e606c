"""
Tests for session tokens and tenant resolution.
"""
from datetime import timedelta

import pytest
from app.auth import create_access_token, resolve_tenant_id, verify_token
from app.exceptions import AuthorizationError


class TestTokens:
    """Token verification."""

    def test_verify_valid_token(self):
        payload = verify_token(create_access_token({"sub": "user_test1"}))
        assert payload["sub"] == "user_test1"

    def test_expired_token_rejected(self):
        token = create_access_token({"sub": "user_test1"}, expires_delta=timedelta(seconds=-1))
        assert verify_token(token) is None

    def test_garbage_token_rejected(self):
        assert verify_token("not-a-jwt") is None

    def test_invalid_token_returns_401(self, client):
        response = client.get("/api/scheduled-qna", headers={"Authorization": "Bearer not-a-jwt"})
        assert response.status_code == 401

    def test_missing_token_returns_401(self, client):
        response = client.get("/api/settings")
        assert response.status_code == 401


class TestTenantResolution:
    """The tenant always comes from the token."""

    def test_matching_user_id(self, test_user):
        assert resolve_tenant_id(test_user, "user_test1") == "user_test1"

    def test_omitted_user_id(self, test_user):
        assert resolve_tenant_id(test_user, None) == "user_test1"

    def test_mismatched_user_id(self, test_user):
        with pytest.raises(AuthorizationError):
            resolve_tenant_id(test_user, "user_other")

    def test_query_user_id_mismatch(self, client, auth_headers, other_user):
        response = client.get("/api/scheduled-qna", headers=auth_headers, params={"user_id": other_user.id})
        assert response.status_code == 401

    def test_inactive_user_rejected(self, client, auth_headers, test_user, db):
        test_user.is_active = False
        db.commit()

        response = client.get("/api/scheduled-qna", headers=auth_headers)
        assert response.status_code == 401
