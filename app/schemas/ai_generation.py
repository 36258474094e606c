from pydantic import BaseModel, Field
from typing import Any, Dict, Optional


class AIGenerationRequest(BaseModel):
    type: str
    prompt: Optional[str] = None
    business_info: Optional[Dict[str, Any]] = Field(default=None, alias="businessInfo")
    question_text: Optional[str] = Field(default=None, alias="questionText")
    count: Optional[int] = None

    class Config:
        populate_by_name = True
