from pydantic import BaseModel
from datetime import datetime
from typing import Optional


class GoogleTokenUpdate(BaseModel):
    access_token: str
    refresh_token: Optional[str] = None
    expires_in: Optional[int] = None
    expires_at: Optional[datetime] = None
    scope: Optional[str] = None
    token_type: str = "Bearer"


class GoogleTokenStatus(BaseModel):
    connected: bool
    expires_at: Optional[str] = None
    scope: Optional[str] = None
