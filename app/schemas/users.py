from pydantic import BaseModel, EmailStr
from datetime import datetime
from typing import Optional


class UserSync(BaseModel):
    email: EmailStr
    display_name: Optional[str] = None


class UserResponse(BaseModel):
    id: str
    email: str
    display_name: Optional[str]
    is_active: bool
    created_at: datetime

    class Config:
        from_attributes = True
