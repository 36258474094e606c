"""
Tenant provisioning for users coming from the identity provider.
"""
from typing import Optional

from sqlalchemy.orm import Session

from ..exceptions import ValidationError
from ..logging_config import api_logger
from ..models.activity import Activity
from ..models.settings import UserSettings
from ..models.user import User
from .best_effort import run_best_effort


def _create_default_settings(db: Session, user_id: str) -> None:
    try:
        if not db.query(UserSettings).filter(UserSettings.user_id == user_id).first():
            db.add(UserSettings(user_id=user_id, language_code="en", timezone="UTC"))
            db.commit()
    except Exception:
        db.rollback()
        raise


def _record_signup(db: Session, user_id: str) -> None:
    try:
        db.add(Activity(user_id=user_id, activity_type="account", title="Account created"))
        db.commit()
    except Exception:
        db.rollback()
        raise


def provision_user(db: Session, user_id: str, email: str, display_name: Optional[str] = None):
    """Create the tenant row if missing; returns ``(user, created)``.

    Default settings and the signup activity are best effort: their failure
    is logged and never undoes the user row.
    """
    user = db.query(User).filter(User.id == user_id).first()
    if user:
        return user, False

    existing = db.query(User).filter(User.email == email).first()
    if existing:
        raise ValidationError(
            "Email already belongs to another account",
            [{"field": "email", "message": "already registered"}],
        )

    user = User(id=user_id, email=email, display_name=display_name or email.split("@")[0])
    db.add(user)
    db.commit()
    db.refresh(user)
    api_logger.info("Provisioned user", tenant_id=user_id)

    run_best_effort(
        [
            ("default_settings", lambda: _create_default_settings(db, user_id)),
            ("signup_activity", lambda: _record_signup(db, user_id)),
        ],
        tenant_id=user_id,
    )
    return user, True
