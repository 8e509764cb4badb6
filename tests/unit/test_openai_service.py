"""
Unit tests for the OpenAI service wrapper.
"""
import json
from unittest.mock import AsyncMock, MagicMock

import httpx
import openai
import pytest

from expert_interviews.core.exceptions import ExternalServiceError
from expert_interviews.models.models import WinnerFlag
from expert_interviews.schemas.analysis import StepAnalysisOutput
from expert_interviews.services.openai_service import (
    OpenAIService, format_instructions, parse_structured_output
)

STEP_REPLY = {
    "WINNER_FLAG": "B",
    "SEVERITY_SCORE": 0.8,
    "RATIONALE_DIGEST": "B names the shared state.",
    "KNOWLEDGE_GAPS": ["concurrency"],
    "PROMPT_SUGGESTIONS": ["ask for definitions"],
}


def make_client(content=None, side_effect=None):
    """Mock AsyncOpenAI client returning one chat completion."""
    client = MagicMock()
    response = MagicMock()
    response.choices = [MagicMock(message=MagicMock(content=content))]
    client.chat.completions.create = AsyncMock(return_value=response, side_effect=side_effect)
    return client


class TestStructuredOutput:
    """Test cases for parsing model replies."""

    @pytest.mark.unit
    def test_format_instructions_embed_schema(self):
        instructions = format_instructions(StepAnalysisOutput)
        assert "JSON" in instructions
        assert "SEVERITY_SCORE" in instructions

    @pytest.mark.unit
    def test_parses_fenced_json(self):
        text = f"```json\n{json.dumps(STEP_REPLY)}\n```"
        parsed = parse_structured_output(text, StepAnalysisOutput)
        assert parsed.WINNER_FLAG == WinnerFlag.B
        assert parsed.SEVERITY_SCORE == 0.8

    @pytest.mark.unit
    def test_severity_is_clipped(self):
        parsed = parse_structured_output(json.dumps({**STEP_REPLY, "SEVERITY_SCORE": 3}), StepAnalysisOutput)
        assert parsed.SEVERITY_SCORE == 1.0

    @pytest.mark.unit
    def test_reply_without_json_raises(self):
        with pytest.raises(ValueError):
            parse_structured_output("I cannot help with that", StepAnalysisOutput)

    @pytest.mark.unit
    def test_reply_not_matching_schema_raises(self):
        with pytest.raises(ValueError):
            parse_structured_output('{"WINNER_FLAG": "C"}', StepAnalysisOutput)


class TestOpenAIService:
    """Test cases for OpenAIService calls."""

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_structured_completion_uses_json_mode(self):
        client = make_client(content=json.dumps(STEP_REPLY))
        service = OpenAIService(client=client)

        parsed = await service.create_structured_completion("Analyze this", StepAnalysisOutput)

        assert parsed.RATIONALE_DIGEST == "B names the shared state."
        kwargs = client.chat.completions.create.call_args.kwargs
        assert kwargs["response_format"] == {"type": "json_object"}
        assert kwargs["messages"][0]["role"] == "system"
        assert kwargs["messages"][0]["content"].startswith("Analyze this")

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_api_error_becomes_external_service_error(self):
        request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
        error = openai.BadRequestError("bad request", response=httpx.Response(400, request=request), body=None)
        service = OpenAIService(client=make_client(side_effect=error))

        with pytest.raises(ExternalServiceError):
            await service.create_chat_completion([{"role": "user", "content": "hi"}])

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_unconfigured_service_raises(self):
        service = OpenAIService()
        service.is_configured = False

        with pytest.raises(ExternalServiceError):
            await service.create_chat_completion([{"role": "user", "content": "hi"}])
