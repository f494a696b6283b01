"""Thin wrapper over the OpenAI chat API with JSON decoding and bounded retries."""

import asyncio
import json
import random
import re
from collections.abc import Awaitable, Callable
from typing import TypeVar

import structlog
from openai import AsyncOpenAI
from pydantic import BaseModel

from taltrekkers.errors import GenerationError

logger = structlog.get_logger()

T = TypeVar("T")
M = TypeVar("M", bound=BaseModel)

_FENCE_START = re.compile(r"^```(?:json)?\s*")
_FENCE_END = re.compile(r"\s*```$")


def clean_json_output(text: str) -> str:
    """Strip markdown code fences the model sometimes wraps around JSON."""
    cleaned = text.strip()
    if cleaned.startswith("```"):
        cleaned = _FENCE_END.sub("", _FENCE_START.sub("", cleaned))
    return cleaned


def schema_instruction(model: type[BaseModel]) -> str:
    schema = json.dumps(model.model_json_schema(), ensure_ascii=False)
    return f"Antwoord uitsluitend met een JSON-object dat voldoet aan dit schema:\n{schema}"


async def retry_with_backoff(
    operation: Callable[[], Awaitable[T]],
    *,
    label: str,
    max_attempts: int = 3,
    base_delay: float = 1.0,
) -> T:
    """Run ``operation`` up to ``max_attempts`` times with exponential backoff.

    Delay before attempt ``n + 1`` is ``base_delay * 2**n`` plus up to 100 ms jitter.
    Raises GenerationError carrying the last failure once attempts are exhausted.
    """
    last_error: Exception | None = None
    for attempt in range(max_attempts):
        try:
            return await operation()
        except Exception as e:
            last_error = e
            logger.warning(
                "generation_attempt_failed",
                label=label,
                attempt=attempt + 1,
                max_attempts=max_attempts,
                error=str(e),
            )
            if attempt < max_attempts - 1:
                delay = base_delay * (2 ** attempt) + random.uniform(0, 0.1)
                await asyncio.sleep(delay)

    logger.error("generation_failed", label=label, attempts=max_attempts)
    raise GenerationError(
        f"Kon {label} niet genereren na {max_attempts} pogingen. Fout: {last_error}"
    ) from last_error


class LanguageClient:
    """Chat-completion client returning text or validated JSON models.

    Args:
        api_key: OpenAI API key.
        client: Preconfigured client (tests inject a mock here).
    """

    def __init__(self, api_key: str | None = None, client: AsyncOpenAI | None = None):
        self.client = client or AsyncOpenAI(api_key=api_key)

    async def complete_text(
        self,
        prompt: str,
        *,
        model: str,
        system: str | None = None,
        temperature: float = 0.7,
    ) -> str:
        messages = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": prompt})
        response = await self.client.chat.completions.create(
            model=model,
            messages=messages,
            temperature=temperature,
        )
        text = response.choices[0].message.content or ""
        if not text.strip():
            raise ValueError("Leeg antwoord van de AI")
        return text.strip()

    async def complete_json(
        self,
        prompt: str,
        response_model: type[M],
        *,
        model: str,
        temperature: float = 0.7,
    ) -> M:
        """Request a JSON object and validate it against ``response_model``."""
        response = await self.client.chat.completions.create(
            model=model,
            messages=[
                {"role": "system", "content": schema_instruction(response_model)},
                {"role": "user", "content": prompt},
            ],
            temperature=temperature,
            response_format={"type": "json_object"},
        )
        content = clean_json_output(response.choices[0].message.content or "")
        return response_model.model_validate(json.loads(content))

    async def synthesize(self, text: str, *, model: str, voice: str) -> bytes:
        """Text-to-speech as raw 24 kHz mono PCM16 bytes."""
        response = await self.client.audio.speech.create(
            model=model,
            voice=voice,
            input=text,
            response_format="pcm",
        )
        return response.content
