from .scheduled_qna import router as scheduled_qna_router
from .scheduled_posts import router as scheduled_posts_router
from .users import router as users_router
from .settings import router as settings_router
from .activity import router as activity_router
from .ai_generation import router as ai_generation_router
from .integrations import router as integrations_router
from .health import router as health_router

__all__ = [
    "scheduled_qna_router",
    "scheduled_posts_router",
    "users_router",
    "settings_router",
    "activity_router",
    "ai_generation_router",
    "integrations_router",
    "health_router",
]
