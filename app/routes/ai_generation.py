"""
AI generation of draft questions, answers, Q&A pairs and posts.
"""
from fastapi import APIRouter, Depends, Request

from ..auth import get_current_tenant
from ..config import get_settings
from ..limiter import limiter
from ..models.user import User
from ..responses import success
from ..schemas.ai_generation import AIGenerationRequest
from ..services.ai_generation import AIGenerationClient

router = APIRouter(prefix="/api/ai-generation", tags=["ai-generation"])
settings = get_settings()


def get_ai_client() -> AIGenerationClient:
    return AIGenerationClient()


@router.post("")
@limiter.limit(settings.ai_rate_limit)
def generate_content(
    request: Request,
    payload: AIGenerationRequest,
    current_user: User = Depends(get_current_tenant),
    client: AIGenerationClient = Depends(get_ai_client),
):
    """Generate drafts; nothing is stored until the user schedules them."""
    data = client.generate(
        payload.type,
        prompt=payload.prompt,
        business_info=payload.business_info,
        question_text=payload.question_text,
        count=payload.count,
    )
    return success(data=data)
