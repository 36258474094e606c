"""
Google Business Profile connection: token handover, status and disconnect.
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..auth import get_current_tenant
from ..database import get_db
from ..models.activity import Activity
from ..models.user import User
from ..responses import deleted
from ..schemas.integrations import GoogleTokenStatus, GoogleTokenUpdate
from ..services.best_effort import run_best_effort
from ..services.google_oauth import GoogleTokenProvider

router = APIRouter(prefix="/api/integrations/google", tags=["integrations"])


def _record_connection(db: Session, user_id: str, title: str) -> None:
    try:
        db.add(Activity(user_id=user_id, activity_type="google", title=title))
        db.commit()
    except Exception:
        db.rollback()
        raise


@router.put("/token", response_model=GoogleTokenStatus)
def store_google_token(
    payload: GoogleTokenUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_tenant),
):
    """Store tokens handed over by the OAuth callback."""
    provider = GoogleTokenProvider(db)
    provider.store_tokens(current_user.id, **payload.model_dump())
    run_best_effort(
        [("connection_activity", lambda: _record_connection(db, current_user.id, "Google Business Profile connected"))],
        tenant_id=current_user.id,
    )
    return provider.status(current_user.id)


@router.get("/status", response_model=GoogleTokenStatus)
def google_status(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_tenant),
):
    return GoogleTokenProvider(db).status(current_user.id)


@router.delete("/token")
def disconnect_google(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_tenant),
):
    GoogleTokenProvider(db).delete_tokens(current_user.id)
    return deleted("Google Business Profile disconnected")
