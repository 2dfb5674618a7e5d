"""
Generative AI client.

Talks to Gemini through its OpenAI-compatible endpoint with the official
openai SDK, so any OpenAI-compatible provider works by changing
AI_BASE_URL / AI_MODEL. Every call goes through the service gateway
(circuit breaker, timeout, retry with backoff on 429/503).
"""
import json
import re
from typing import Any, Optional, Type, TypeVar

from openai import AsyncOpenAI
from pydantic import BaseModel, ValidationError

from careerpilot.config import get_settings
from careerpilot.services.gateway import get_gateway
from careerpilot.utils.errors import AppError
from careerpilot.utils.logger import logger
from careerpilot.utils.metrics import track_duration

T = TypeVar("T", bound=BaseModel)

_FENCE_RE = re.compile(r"```(?:json)?\s*|\s*```")


class AIResponseError(AppError):
    """The model replied, but not with the JSON we asked for."""

    def __init__(self, message: str, raw: str = ""):
        super().__init__(message, code="AI_INVALID_RESPONSE", status_code=502)
        self.raw = raw


def strip_code_fences(text: str) -> str:
    return _FENCE_RE.sub("", text).strip()


def extract_json(text: str, array: bool = False) -> str:
    """
    Pull the JSON payload out of a model reply: drop markdown fences, then
    keep everything from the first opening bracket to the last closing one.
    """
    cleaned = strip_code_fences(text)
    open_ch, close_ch = ("[", "]") if array else ("{", "}")
    start = cleaned.find(open_ch)
    end = cleaned.rfind(close_ch)
    if start == -1 or end == -1 or end < start:
        kind = "array" if array else "object"
        raise AIResponseError(f"No valid JSON {kind} found in the response", raw=text)
    return cleaned[start:end + 1]


def parse_json(text: str, array: bool = False) -> Any:
    try:
        return json.loads(extract_json(text, array=array))
    except json.JSONDecodeError as e:
        raise AIResponseError(f"Invalid JSON in AI response: {e}", raw=text)


class AIClient:
    """Thin async wrapper exposing text and structured-object generation"""

    def __init__(self, api_key: str, base_url: Optional[str] = None, model: Optional[str] = None):
        settings = get_settings()
        self.model = model or settings.ai_model
        # the gateway owns retries
        self.client = AsyncOpenAI(
            api_key=api_key,
            base_url=base_url or settings.ai_base_url,
            max_retries=0,
            timeout=settings.ai_timeout_seconds,
        )

    async def _complete(self, prompt: str, system: Optional[str], temperature: float, json_mode: bool) -> str:
        messages = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": prompt})

        kwargs = {}
        if json_mode:
            kwargs["response_format"] = {"type": "json_object"}

        response = await get_gateway().execute(
            "ai",
            self.client.chat.completions.create,
            model=self.model,
            messages=messages,
            temperature=temperature,
            **kwargs,
        )
        return (response.choices[0].message.content or "").strip()

    async def generate_text(self, prompt: str, system: Optional[str] = None, temperature: float = 0.7) -> str:
        async with track_duration("ai", "generate_text"):
            return await self._complete(prompt, system, temperature, json_mode=False)

    async def generate_object(
        self,
        prompt: str,
        schema: Type[T],
        system: Optional[str] = None,
        temperature: float = 0.2,
    ) -> T:
        """Ask for a JSON object and validate it against a pydantic schema."""
        async with track_duration("ai", "generate_object"):
            text = await self._complete(prompt, system, temperature, json_mode=True)
        data = parse_json(text)
        try:
            return schema.model_validate(data)
        except ValidationError as e:
            logger.warning(f"AI response failed {schema.__name__} validation: {e}")
            raise AIResponseError(f"AI response did not match {schema.__name__}", raw=text)


_client: Optional[AIClient] = None


def get_ai_client() -> AIClient:
    global _client
    if _client is None:
        settings = get_settings()
        if not settings.ai_api_key:
            raise AppError(
                "AI_API_KEY is not configured",
                code="AI_NOT_CONFIGURED",
                status_code=503,
            )
        _client = AIClient(api_key=settings.ai_api_key)
    return _client


def set_ai_client(client) -> None:
    """Install a client explicitly (tests, alternative providers)."""
    global _client
    _client = client
