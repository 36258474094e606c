from .scheduled_qna import ScheduledQnACreate, ScheduledQnAUpdate, ScheduledQnABulkUpdate, BatchUpdateFields, ResubmitRequest
from .scheduled_post import ScheduledPostCreate, ScheduledPostUpdate, ScheduledPostBulkUpdate
from .settings import SettingsUpdate, SettingsResponse
from .users import UserSync, UserResponse
from .ai_generation import AIGenerationRequest
from .integrations import GoogleTokenUpdate, GoogleTokenStatus

__all__ = [
    "ScheduledQnACreate", "ScheduledQnAUpdate", "ScheduledQnABulkUpdate", "BatchUpdateFields", "ResubmitRequest",
    "ScheduledPostCreate", "ScheduledPostUpdate", "ScheduledPostBulkUpdate",
    "SettingsUpdate", "SettingsResponse",
    "UserSync", "UserResponse",
    "AIGenerationRequest",
    "GoogleTokenUpdate", "GoogleTokenStatus",
]
