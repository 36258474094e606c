"""
User sync: provision the tenant behind a session token.
"""
from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session

from ..auth import get_token_claims
from ..database import get_db
from ..schemas.users import UserResponse, UserSync
from ..services.users import provision_user

router = APIRouter(prefix="/api/users", tags=["users"])


@router.post("/sync", response_model=UserResponse)
def sync_user(
    payload: UserSync,
    response: Response,
    claims: dict = Depends(get_token_claims),
    db: Session = Depends(get_db),
):
    """Create the user on first sign-in; returns 201 when created, 200 otherwise."""
    user, created = provision_user(db, str(claims["sub"]), payload.email, payload.display_name)
    if created:
        response.status_code = 201
    return user
