"""
Activity routes for the tenant's audit log.
"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import List, Optional

from ..database import get_db
from ..models.activity import Activity
from ..models.user import User
from ..auth import get_current_tenant
from ..services.timeutil import isoformat

router = APIRouter(prefix="/api/activity", tags=["activity"])


def activity_to_dict(activity: Activity) -> dict:
    """Convert an Activity model to a dictionary response."""
    return {
        "id": activity.id,
        "type": activity.activity_type,
        "title": activity.title,
        "description": activity.description,
        "metadata": activity.extra_data,
        "timestamp": isoformat(activity.created_at),
    }


@router.get("", response_model=List[dict])
def get_activities(
    activity_type: Optional[str] = None,
    limit: int = Query(default=20, le=100),
    offset: int = 0,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_tenant),
):
    """Get activity log for the current user with optional filtering and pagination."""
    query = db.query(Activity).filter(Activity.user_id == current_user.id)

    if activity_type:
        query = query.filter(Activity.activity_type == activity_type)

    activities = query.order_by(Activity.created_at.desc(), Activity.id.desc()).offset(offset).limit(limit).all()
    return [activity_to_dict(a) for a in activities]
