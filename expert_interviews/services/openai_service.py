import json
import re
from typing import Dict, List, Optional, Type, TypeVar

import httpx
import openai
from openai import AsyncOpenAI
from loguru import logger
from pydantic import BaseModel, ValidationError
from tenacity import retry, stop_after_attempt, wait_exponential, retry_if_exception_type

from expert_interviews.core.config import settings
from expert_interviews.core.exceptions import ExternalServiceError

OutputT = TypeVar("OutputT", bound=BaseModel)

# Errors worth another attempt; anything else fails fast
RETRYABLE_ERRORS = (
    openai.APIConnectionError,
    openai.APITimeoutError,
    openai.RateLimitError,
    openai.InternalServerError,
    httpx.TimeoutException,
)

_JSON_OBJECT = re.compile(r"\{[\s\S]*\}")


def format_instructions(output_model: Type[BaseModel]) -> str:
    """
    Describe the expected JSON reply for the prompt

    Args:
        output_model: Pydantic model the reply must validate against

    Returns:
        Instructions embedding the model's JSON schema
    """
    schema = json.dumps(output_model.model_json_schema())
    return (
        "The output should be formatted as a JSON instance that conforms to the JSON schema below.\n\n"
        "Here is the output schema:\n"
        f"```\n{schema}\n```\n"
        "Return only the JSON object, without any surrounding text."
    )


def parse_structured_output(text: str, output_model: Type[OutputT]) -> OutputT:
    """
    Validate a model reply against an output schema

    Tolerates markdown fences or chatter around the JSON object.

    Raises:
        ValueError: If no valid JSON object matching the schema is found
    """
    match = _JSON_OBJECT.search(text or "")
    if not match:
        raise ValueError("No JSON object found in model output")

    try:
        return output_model.model_validate_json(match.group(0))
    except ValidationError as e:
        raise ValueError(f"Model output does not match {output_model.__name__}: {e}") from e


class OpenAIService:
    """
    Service wrapper for OpenAI API integration

    Provides a consistent interface for the chat completion calls with
    error handling, retries, and structured output parsing.
    """

    def __init__(self, client: Optional[AsyncOpenAI] = None):
        self.api_key = settings.OPENAI_API_KEY
        self.is_configured = client is not None or (bool(self.api_key) and not self.api_key.startswith("your-"))
        self.chat_model = settings.OPENAI_CHAT_MODEL
        self._client = client

        logger.info(f"OpenAI service initialized with API key configured: {self.is_configured}")

    @property
    def client(self) -> AsyncOpenAI:
        if self._client is None:
            self._client = AsyncOpenAI(
                api_key=self.api_key,
                timeout=settings.OPENAI_TIMEOUT,
                max_retries=0,
            )
        return self._client

    def _check_configuration(self) -> None:
        """
        Check if the API key is configured

        Raises:
            ExternalServiceError: If API key is not properly configured
        """
        if not self.is_configured:
            raise ExternalServiceError("OpenAI", "API key is not properly configured")

    @retry(
        reraise=True,
        stop=stop_after_attempt(settings.OPENAI_MAX_RETRIES),
        wait=wait_exponential(multiplier=settings.OPENAI_RETRY_DELAY, min=1, max=60),
        retry=retry_if_exception_type(RETRYABLE_ERRORS),
    )
    async def _complete(self, **kwargs) -> str:
        response = await self.client.chat.completions.create(**kwargs)
        return response.choices[0].message.content or ""

    async def create_chat_completion(
            self,
            messages: List[Dict[str, str]],
            max_tokens: Optional[int] = None,
            temperature: Optional[float] = None,
            model: Optional[str] = None,
            json_mode: bool = False,
    ) -> str:
        """
        Create a chat completion

        Args:
            messages: List of messages in the conversation
            max_tokens: Maximum tokens to generate
            temperature: Sampling temperature, defaults to OPENAI_TEMPERATURE
            model: Optional model override
            json_mode: Ask the API for a JSON object reply

        Returns:
            Generated text

        Raises:
            ExternalServiceError: If there's an error with the OpenAI API
        """
        self._check_configuration()

        kwargs = {
            "model": model or self.chat_model,
            "messages": messages,
            "temperature": settings.OPENAI_TEMPERATURE if temperature is None else temperature,
        }
        if max_tokens is not None:
            kwargs["max_tokens"] = max_tokens
        if json_mode:
            kwargs["response_format"] = {"type": "json_object"}

        try:
            return await self._complete(**kwargs)
        except openai.OpenAIError as e:
            error_msg = f"Error in chat completion: {str(e)}"
            logger.error(error_msg)
            raise ExternalServiceError("OpenAI", error_msg) from e
        except httpx.HTTPError as e:
            error_msg = f"HTTP error in chat completion: {str(e)}"
            logger.error(error_msg)
            raise ExternalServiceError("OpenAI", error_msg) from e

    async def create_structured_completion(
            self,
            prompt: str,
            output_model: Type[OutputT],
            model: Optional[str] = None,
    ) -> OutputT:
        """
        Send a system prompt and validate the JSON reply

        The schema instructions of `output_model` are appended to the prompt.

        Raises:
            ExternalServiceError: If the API call fails
            ValueError: If the reply doesn't match the schema
        """
        content = f"{prompt}\n\n{format_instructions(output_model)}"
        text = await self.create_chat_completion(
            messages=[{"role": "system", "content": content}],
            model=model,
            json_mode=True,
        )
        return parse_structured_output(text, output_model)


# Create singleton instance
openai_service = OpenAIService()
