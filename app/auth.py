"""
Session token verification and tenant resolution.

Tokens are HS256 JWTs issued by the identity provider with the user id in
``sub``. Every request resolves exactly one tenant from its token; handlers
pass that tenant id explicitly into the services.
"""
from datetime import datetime, timedelta, timezone
from typing import Optional
from jose import JWTError, jwt
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from .database import get_db
from .exceptions import AuthorizationError
from .models.user import User
from .config import get_settings

settings = get_settings()

bearer_scheme = HTTPBearer(auto_error=False)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Create a JWT access token."""
    to_encode = data.copy()
    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(minutes=settings.access_token_expire_minutes)
    to_encode.update({"exp": expire, "type": "access"})
    return jwt.encode(to_encode, settings.secret_key, algorithm=settings.algorithm)


def verify_token(token: str) -> Optional[dict]:
    """Verify a JWT and return its payload, or None when invalid or expired."""
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
    except JWTError:
        return None
    if payload.get("type", "access") != "access":
        return None
    return payload


def get_token_claims(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> dict:
    """Claims of a valid session token; the user row need not exist yet."""
    if not credentials or not credentials.credentials:
        raise AuthorizationError("Not authenticated")

    payload = verify_token(credentials.credentials)
    if not payload or not payload.get("sub"):
        raise AuthorizationError("Invalid or expired session token")
    return payload


def get_current_tenant(
    claims: dict = Depends(get_token_claims),
    db: Session = Depends(get_db),
) -> User:
    """The provisioned, active user behind the session token."""
    user = db.query(User).filter(User.id == str(claims["sub"])).first()
    if not user or not user.is_active:
        raise AuthorizationError("Tenant could not be resolved; sync the user first")
    return user


def resolve_tenant_id(current_user: User, claimed_user_id: Optional[str] = None) -> str:
    """Tenant id for a request, rejecting a ``user_id`` that names someone else."""
    if claimed_user_id and claimed_user_id != current_user.id:
        raise AuthorizationError("user_id does not match the authenticated user")
    return current_user.id
