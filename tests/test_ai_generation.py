"""
Tests for AI content generation.
"""
import json
from unittest.mock import MagicMock

import pytest

from app.config import Settings
from app.exceptions import ExternalServiceError, ValidationError
from app.services.ai_generation import AIGenerationClient, build_prompts, normalize_output


def _completion(content, status_code=200):
    response = MagicMock()
    response.status_code = status_code
    response.ok = status_code < 400
    response.text = "upstream error"
    response.json.return_value = {
        "choices": [{"message": {"content": content}}],
        "usage": {"total_tokens": 42},
    }
    return response


@pytest.fixture
def session():
    return MagicMock()


@pytest.fixture
def ai_client(session):
    return AIGenerationClient(settings=Settings(ai_api_key="sk-test"), session=session)


class TestPrompts:
    def test_question_count_defaults_and_clamps(self):
        system, _ = build_prompts("questions")
        assert "exactly 5 questions" in system

        system, _ = build_prompts("questions", count=50)
        assert "exactly 10 questions" in system

        system, _ = build_prompts("questions", count=1)
        assert "exactly 1 question only" in system

    def test_qna_and_post_defaults(self):
        assert "exactly 3 Q&A pairs" in build_prompts("qna")[0]
        assert "exactly 2 posts" in build_prompts("post")[0]

    def test_business_info_included(self):
        system, user = build_prompts("qna", prompt="Focus on parking", business_info={"name": "Joe's Diner"})

        assert "Joe's Diner" in system
        assert user == "Focus on parking"

    def test_answer_requires_question(self):
        with pytest.raises(ValidationError):
            build_prompts("answer")

    def test_unknown_kind(self):
        with pytest.raises(ValidationError):
            build_prompts("poem")


class TestNormalize:
    def test_questions_from_strings_or_objects(self):
        content = {"questions": ["What are your hours?", {"question": "Do you deliver?"}, ""]}

        assert normalize_output("questions", content) == {"questions": ["What are your hours?", "Do you deliver?"]}

    def test_posts_camel_case(self):
        content = {"posts": [{"summary": "Big sale", "topicType": "offer", "actionType": "SHOP", "actionUrl": ""}]}

        assert normalize_output("post", content) == {
            "posts": [{"summary": "Big sale", "topic_type": "OFFER", "action_type": "SHOP", "action_url": None}]
        }


class TestGenerate:
    def test_generate_qna(self, ai_client, session):
        pairs = [{"question": "What are your hours?", "answer": "Nine to five."}]
        session.post.return_value = _completion(json.dumps({"questions": pairs}))

        result = ai_client.generate("qna", count=1)

        assert result == {"qna": pairs}
        body = session.post.call_args[1]["json"]
        assert body["response_format"] == {"type": "json_object"}
        assert body["messages"][0]["role"] == "system"
        assert session.post.call_args[1]["headers"]["Authorization"] == "Bearer sk-test"

    def test_generate_answer(self, ai_client, session):
        session.post.return_value = _completion(json.dumps({"answer": " We open at nine. "}))

        assert ai_client.generate("answer", question_text="When do you open?") == {"answer": "We open at nine."}

    def test_missing_key(self, session):
        client = AIGenerationClient(settings=Settings(ai_api_key=None), session=session)

        with pytest.raises(ExternalServiceError) as exc_info:
            client.generate("questions")

        assert exc_info.value.status_code == 503
        session.post.assert_not_called()

    def test_upstream_error(self, ai_client, session):
        session.post.return_value = _completion("{}", status_code=500)

        with pytest.raises(ExternalServiceError) as exc_info:
            ai_client.generate("questions")

        assert exc_info.value.status_code == 502
        assert exc_info.value.retryable is True

    def test_unparseable_content(self, ai_client, session):
        session.post.return_value = _completion("Sure! Here are some questions")

        with pytest.raises(ExternalServiceError) as exc_info:
            ai_client.generate("questions")

        assert exc_info.value.reason == "INVALID_RESPONSE"
