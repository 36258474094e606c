"""
Settings routes for scheduling defaults.
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..database import get_db
from ..models.settings import UserSettings
from ..models.user import User
from ..auth import get_current_tenant
from ..schemas.settings import SettingsUpdate, SettingsResponse

router = APIRouter(prefix="/api/settings", tags=["settings"])


def _get_or_create(db: Session, user_id: str) -> UserSettings:
    settings = db.query(UserSettings).filter(
        UserSettings.user_id == user_id
    ).first()

    if not settings:
        settings = UserSettings(
            user_id=user_id,
            language_code="en",
            timezone="UTC",
            email_notifications=True,
        )
        db.add(settings)
        db.commit()
        db.refresh(settings)
    return settings


@router.get("", response_model=SettingsResponse)
def get_settings(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_tenant),
):
    """Get settings for the current user."""
    return _get_or_create(db, current_user.id)


@router.patch("", response_model=SettingsResponse)
def update_settings(
    update: SettingsUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_tenant),
):
    """Update settings for the current user."""
    settings = _get_or_create(db, current_user.id)

    update_data = update.model_dump(exclude_unset=True)
    for field, value in update_data.items():
        setattr(settings, field, value)

    db.commit()
    db.refresh(settings)
    return settings
