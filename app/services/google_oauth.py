"""
Google OAuth token storage and refresh for Business Profile publishing.
"""
from datetime import datetime, timedelta
from typing import Any, Dict, Optional

import requests
from sqlalchemy.orm import Session

from ..config import Settings, get_settings
from ..exceptions import ExternalServiceError
from ..logging_config import publisher_logger
from ..models.google_oauth import GoogleOAuthToken
from .timeutil import ensure_utc, isoformat, utcnow

SERVICE = "google_oauth"
REFRESH_MARGIN = timedelta(minutes=5)


def is_token_expired(expires_at: datetime, now: Optional[datetime] = None) -> bool:
    """Tokens are treated as expired five minutes early."""
    now = now or utcnow()
    return now >= ensure_utc(expires_at) - REFRESH_MARGIN


class GoogleTokenProvider:
    """Returns a usable access token per tenant, refreshing it when close to expiry."""

    def __init__(self, db: Session, settings: Optional[Settings] = None, session: Optional[requests.Session] = None):
        self.db = db
        self.settings = settings or get_settings()
        self.session = session or requests.Session()

    def _get_row(self, user_id: str) -> Optional[GoogleOAuthToken]:
        return self.db.query(GoogleOAuthToken).filter(GoogleOAuthToken.user_id == user_id).first()

    def store_tokens(
        self,
        user_id: str,
        access_token: str,
        refresh_token: Optional[str] = None,
        expires_in: Optional[int] = None,
        expires_at: Optional[datetime] = None,
        scope: Optional[str] = None,
        token_type: str = "Bearer",
    ) -> GoogleOAuthToken:
        """Insert or update the tenant's tokens. A missing refresh token keeps the stored one."""
        if expires_at is None:
            expires_at = utcnow() + timedelta(seconds=3600 if expires_in is None else expires_in)

        row = self._get_row(user_id)
        if row is None:
            if not refresh_token:
                raise ExternalServiceError(
                    "A refresh token is required when connecting Google",
                    service=SERVICE,
                    status_code=400,
                )
            row = GoogleOAuthToken(user_id=user_id, refresh_token=refresh_token)
            self.db.add(row)
        elif refresh_token:
            row.refresh_token = refresh_token

        row.access_token = access_token
        row.expires_at = ensure_utc(expires_at)
        row.token_type = token_type or "Bearer"
        if scope is not None:
            row.scope = scope

        self.db.commit()
        self.db.refresh(row)
        return row

    def delete_tokens(self, user_id: str) -> bool:
        deleted = self.db.query(GoogleOAuthToken).filter(GoogleOAuthToken.user_id == user_id).delete()
        self.db.commit()
        return deleted > 0

    def status(self, user_id: str) -> Dict[str, Any]:
        row = self._get_row(user_id)
        if not row:
            return {"connected": False, "expires_at": None, "scope": None}
        return {"connected": True, "expires_at": isoformat(row.expires_at), "scope": row.scope}

    def refresh(self, row: GoogleOAuthToken) -> GoogleOAuthToken:
        if not (self.settings.google_client_id and self.settings.google_client_secret):
            raise ExternalServiceError(
                "Google OAuth client credentials are not configured",
                service=SERVICE,
                status_code=503,
            )

        try:
            response = self.session.post(
                self.settings.google_token_url,
                data={
                    "client_id": self.settings.google_client_id,
                    "client_secret": self.settings.google_client_secret,
                    "refresh_token": row.refresh_token,
                    "grant_type": "refresh_token",
                },
                timeout=self.settings.http_timeout_seconds,
            )
        except requests.RequestException as exc:
            raise ExternalServiceError(
                f"Token refresh failed: {exc}",
                service=SERVICE,
                retryable=True,
            ) from exc

        if not response.ok:
            raise ExternalServiceError(
                f"Token refresh failed: {response.status_code} - {response.text}",
                service=SERVICE,
                upstream_status=response.status_code,
                retryable=response.status_code >= 500,
            )

        tokens = response.json()
        publisher_logger.info("Refreshed Google access token", tenant_id=row.user_id)
        return self.store_tokens(
            row.user_id,
            access_token=tokens["access_token"],
            expires_in=tokens.get("expires_in"),
            scope=tokens.get("scope"),
            token_type=tokens.get("token_type", "Bearer"),
        )

    def get_valid_access_token(self, user_id: str) -> str:
        row = self._get_row(user_id)
        if not row:
            raise ExternalServiceError(
                "Google account not connected. Please connect your Google Business Profile.",
                service=SERVICE,
                reason="NOT_CONNECTED",
            )
        if is_token_expired(row.expires_at):
            row = self.refresh(row)
        return row.access_token
