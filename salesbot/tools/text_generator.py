"""
Text generation for soft-sell hooks, phrasing and small talk.

Generation is optional copy: every failure is logged and replaced with an
empty string, so the conversation never depends on the model being up.
"""

import logging
from typing import Optional, Protocol

from openai import AsyncOpenAI, OpenAIError

from salesbot.config import settings

logger = logging.getLogger(__name__)


class TextGenerator(Protocol):
    async def generate(self, system_prompt: str, user_prompt: str, temperature: float) -> str: ...


class OpenAITextGenerator:
    """Chat-completions backed generator. Reads OPENAI_API_KEY from the environment."""

    def __init__(self, client: Optional[AsyncOpenAI] = None, model: Optional[str] = None) -> None:
        self._client = client or AsyncOpenAI()
        self._model = model or settings.model.llm_model

    async def generate(self, system_prompt: str, user_prompt: str, temperature: float) -> str:
        try:
            response = await self._client.chat.completions.create(
                model=self._model,
                temperature=temperature,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt},
                ],
            )
        except OpenAIError as e:
            logger.warning("Text generation failed: %s", e)
            return ""
        content = response.choices[0].message.content if response.choices else None
        return (content or "").strip()


class NullTextGenerator:
    """Always returns empty copy."""

    async def generate(self, system_prompt: str, user_prompt: str, temperature: float) -> str:
        return ""


async def safe_generate(
    generator: TextGenerator,
    system_prompt: str,
    user_prompt: str,
    temperature: float,
    max_chars: Optional[int] = None,
) -> str:
    """Generate one line of copy; any error yields an empty string."""
    try:
        text = await generator.generate(system_prompt, user_prompt, temperature)
    except Exception as e:
        logger.warning("Text generator raised %s: %s", type(e).__name__, e)
        return ""
    lines = (text or "").strip().splitlines()
    line = lines[0].strip().strip('"').strip() if lines else ""
    if max_chars is not None and len(line) > max_chars:
        line = line[:max_chars].rstrip()
    return line
