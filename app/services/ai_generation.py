"""
AI content generation for Q&A and Google Business Profile posts.

Talks to an OpenAI-compatible chat completions endpoint and asks for a JSON
object back, which is then normalised into the shapes the scheduling
endpoints accept.
"""
import json
from typing import Any, Dict, List, Optional, Tuple

import requests

from ..config import Settings, get_settings
from ..exceptions import ExternalServiceError, ValidationError
from ..logging_config import get_logger, timed

logger = get_logger("ai")

SERVICE = "ai_generation"
KINDS = ("questions", "answer", "qna", "post")
DEFAULT_COUNTS = {"questions": 5, "qna": 3, "post": 2}
MAX_COUNT = 10


def _clamp_count(kind: str, count: Any) -> int:
    try:
        value = int(count) if count else DEFAULT_COUNTS[kind]
    except (TypeError, ValueError):
        value = DEFAULT_COUNTS[kind]
    return max(1, min(value, MAX_COUNT))


def _business_block(business_info: Optional[Dict[str, Any]]) -> str:
    if not business_info:
        return "Business Information:\nNo specific business information provided"
    return "Business Information:\n" + json.dumps(business_info, indent=2)


def build_prompts(
    kind: str,
    prompt: Optional[str] = None,
    business_info: Optional[Dict[str, Any]] = None,
    question_text: Optional[str] = None,
    count: Any = None,
) -> Tuple[str, str]:
    """Return ``(system_prompt, user_prompt)`` for a generation request."""
    if kind not in KINDS:
        raise ValidationError(
            f"Invalid generation type '{kind}'",
            [{"field": "type", "message": f"must be one of {', '.join(KINDS)}"}],
        )

    business = _business_block(business_info)

    if kind == "questions":
        n = _clamp_count(kind, count)
        system = (
            "You are an assistant generating questions that customers commonly ask about a business. "
            "Questions must be specific, clear and useful for the owner to prepare answers for.\n\n"
            f"{business}\n\n"
            'Respond with a JSON object: {"questions": ["What are your business hours?"]}\n\n'
            f"Generate exactly {n} question{'s' if n != 1 else ''} only (no answers)."
        )
        user = prompt or "Generate common questions customers might ask about this business"

    elif kind == "answer":
        if not question_text or not question_text.strip():
            raise ValidationError(
                "questionText is required to generate an answer",
                [{"field": "questionText", "message": "is required"}],
            )
        system = (
            "You are an assistant writing professional, helpful answers to customer questions for a business. "
            "Use the business information to give specific details when possible.\n\n"
            f"{business}\n\n"
            f'Question to answer: "{question_text.strip()}"\n\n'
            'Respond with a JSON object: {"answer": "..."}'
        )
        user = prompt or f'Generate a professional answer to this question: "{question_text.strip()}"'

    elif kind == "qna":
        n = _clamp_count(kind, count)
        system = (
            "You are an assistant generating Q&A content for a business. Questions should be ones potential "
            "customers commonly ask; answers should be helpful, informative and professional.\n\n"
            f"{business}\n\n"
            'Respond with a JSON object: {"questions": [{"question": "...", "answer": "..."}]}\n\n'
            f"Generate exactly {n} Q&A pair{'s' if n != 1 else ''}."
        )
        user = prompt or "Generate common questions and answers for this business"

    else:
        n = _clamp_count(kind, count)
        system = (
            "You are an assistant writing engaging posts for Google Business Profile. Posts are professional, "
            "concise and drive customer action.\n\n"
            f"{business}\n\n"
            'Respond with a JSON object: {"posts": [{"summary": "...", "topicType": "STANDARD", '
            '"actionType": "LEARN_MORE", "actionUrl": ""}]}\n\n'
            "Topic types: STANDARD, EVENT, OFFER, ALERT\n"
            "Action types: LEARN_MORE, BOOK, ORDER, SHOP, SIGN_UP\n\n"
            f"Generate exactly {n} post{'s' if n != 1 else ''}."
        )
        user = prompt or "Generate engaging business posts for our Google Business Profile"

    return system, user


def _as_text(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ""


def normalize_output(kind: str, content: Dict[str, Any]) -> Dict[str, Any]:
    """Reduce the model's JSON to the fields the scheduling endpoints use."""
    if kind == "answer":
        return {"answer": _as_text(content.get("answer"))}

    raw = content.get("posts" if kind == "post" else "questions")
    if raw is None and kind == "qna":
        raw = content.get("qna")
    entries = raw if isinstance(raw, list) else []

    if kind == "questions":
        questions = []
        for entry in entries:
            text = _as_text(entry.get("question") if isinstance(entry, dict) else entry)
            if text:
                questions.append(text)
        return {"questions": questions}

    if kind == "qna":
        pairs = []
        for entry in entries:
            if isinstance(entry, dict) and _as_text(entry.get("question")):
                pairs.append({
                    "question": _as_text(entry.get("question")),
                    "answer": _as_text(entry.get("answer")),
                })
        return {"qna": pairs}

    posts: List[Dict[str, Any]] = []
    for entry in entries:
        if not isinstance(entry, dict) or not _as_text(entry.get("summary")):
            continue
        posts.append({
            "summary": _as_text(entry.get("summary")),
            "topic_type": (_as_text(entry.get("topicType") or entry.get("topic_type")) or "STANDARD").upper(),
            "action_type": (_as_text(entry.get("actionType") or entry.get("action_type")) or "LEARN_MORE").upper(),
            "action_url": _as_text(entry.get("actionUrl") or entry.get("action_url")) or None,
        })
    return {"posts": posts}


class AIGenerationClient:
    """Generates draft Q&A and post content."""

    def __init__(self, settings: Optional[Settings] = None, session: Optional[requests.Session] = None):
        self.settings = settings or get_settings()
        self.session = session or requests.Session()

    @timed(logger)
    def generate(
        self,
        kind: str,
        prompt: Optional[str] = None,
        business_info: Optional[Dict[str, Any]] = None,
        question_text: Optional[str] = None,
        count: Any = None,
    ) -> Dict[str, Any]:
        system_prompt, user_prompt = build_prompts(kind, prompt, business_info, question_text, count)

        if not self.settings.ai_api_key:
            raise ExternalServiceError(
                "AI generation is not configured",
                service=SERVICE,
                status_code=503,
            )

        try:
            response = self.session.post(
                self.settings.ai_api_url,
                json={
                    "model": self.settings.ai_model,
                    "messages": [
                        {"role": "system", "content": system_prompt},
                        {"role": "user", "content": user_prompt},
                    ],
                    "temperature": 0.7,
                    "max_tokens": 1500,
                    "response_format": {"type": "json_object"},
                },
                headers={"Authorization": f"Bearer {self.settings.ai_api_key}"},
                timeout=self.settings.http_timeout_seconds,
            )
        except requests.RequestException as exc:
            raise ExternalServiceError(
                f"AI generation request failed: {exc}",
                service=SERVICE,
                retryable=True,
            ) from exc

        if not response.ok:
            raise ExternalServiceError(
                f"AI generation failed: {response.status_code} - {response.text}",
                service=SERVICE,
                upstream_status=response.status_code,
                retryable=response.status_code == 429 or response.status_code >= 500,
            )

        try:
            body = response.json()
            content = body["choices"][0]["message"]["content"]
            parsed = json.loads(content)
        except (ValueError, KeyError, IndexError, TypeError) as exc:
            raise ExternalServiceError(
                "Failed to parse AI response",
                service=SERVICE,
                reason="INVALID_RESPONSE",
            ) from exc

        if not isinstance(parsed, dict):
            raise ExternalServiceError(
                "Failed to parse AI response",
                service=SERVICE,
                reason="INVALID_RESPONSE",
            )

        result = normalize_output(kind, parsed)
        logger.info("Generated AI content", kind=kind, usage=body.get("usage"))
        return result
