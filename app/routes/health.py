"""
ReviewDesk Health Check Routes
"""
from fastapi import APIRouter, Depends
from datetime import datetime, timezone
from sqlalchemy import text
from sqlalchemy.orm import Session
from typing import Dict, Any

from ..config import get_settings
from ..database import get_db

router = APIRouter(prefix="/api/health", tags=["health"])

START_TIME = datetime.now(timezone.utc)


def get_uptime() -> str:
    """Get uptime as human-readable string"""
    delta = datetime.now(timezone.utc) - START_TIME
    hours, remainder = divmod(delta.seconds, 3600)
    minutes, seconds = divmod(remainder, 60)

    if delta.days > 0:
        return f"{delta.days}d {hours}h {minutes}m"
    elif hours > 0:
        return f"{hours}h {minutes}m {seconds}s"
    else:
        return f"{minutes}m {seconds}s"


def check_database(db: Session) -> Dict[str, Any]:
    """Check database connectivity"""
    try:
        db.execute(text("SELECT 1"))
        return {"status": "healthy"}
    except Exception as e:
        return {"status": "unhealthy", "error": str(e)}


@router.get("")
def health(db: Session = Depends(get_db)):
    settings = get_settings()
    database = check_database(db)
    return {
        "status": "healthy" if database["status"] == "healthy" else "degraded",
        "app": settings.app_name,
        "environment": settings.environment,
        "uptime": get_uptime(),
        "database": database,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
