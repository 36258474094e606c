from pydantic import BaseModel
from typing import Optional


class SettingsUpdate(BaseModel):
    default_location_id: Optional[str] = None
    default_account_name: Optional[str] = None
    language_code: Optional[str] = None
    timezone: Optional[str] = None
    email_notifications: Optional[bool] = None


class SettingsResponse(BaseModel):
    user_id: str
    default_location_id: Optional[str]
    default_account_name: Optional[str]
    language_code: Optional[str]
    timezone: Optional[str]
    email_notifications: bool

    class Config:
        from_attributes = True
