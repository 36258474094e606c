from .user import User
from .settings import UserSettings
from .activity import Activity
from .google_oauth import GoogleOAuthToken
from .scheduled_qna import ScheduledQnA
from .scheduled_post import ScheduledPost

__all__ = [
    "User",
    "UserSettings",
    "Activity",
    "GoogleOAuthToken",
    "ScheduledQnA",
    "ScheduledPost",
]
