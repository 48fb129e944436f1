from __future__ import annotations

import asyncio
import logging
from typing import Protocol

from openai import AsyncOpenAI

from core.config import Settings
from interview_assistant.errors import EvaluationUnavailable

logger = logging.getLogger("interview_assistant.ai.providers")


class CompletionProvider(Protocol):
    name: str

    async def complete(self, system: str, prompt: str, temperature: float = 0.4, max_tokens: int = 1000) -> str:
        ...


class OpenAIProvider:
    name = "openai"

    def __init__(self, api_key: str, model: str = "gpt-4o-mini", timeout_sec: float = 12.0, retries: int = 1):
        self.client = AsyncOpenAI(api_key=api_key)
        self.model = model
        self.timeout_sec = timeout_sec
        self.retries = max(0, int(retries))

    async def complete(self, system: str, prompt: str, temperature: float = 0.4, max_tokens: int = 1000) -> str:
        if not str(prompt or "").strip():
            raise EvaluationUnavailable("empty prompt")

        last_error: Exception | None = None
        for attempt in range(self.retries + 1):
            try:
                response = await asyncio.wait_for(
                    self.client.chat.completions.create(
                        model=self.model,
                        messages=[
                            {"role": "system", "content": system},
                            {"role": "user", "content": prompt},
                        ],
                        temperature=temperature,
                        max_tokens=max_tokens,
                    ),
                    timeout=self.timeout_sec,
                )
                content = str(response.choices[0].message.content or "").strip()
                if content:
                    return content
                last_error = EvaluationUnavailable("empty completion")
            except asyncio.TimeoutError as exc:
                last_error = exc
                logger.warning("openai timeout | attempt=%s", attempt + 1)
            except Exception as exc:
                last_error = exc
                logger.warning("openai failure | attempt=%s err=%s", attempt + 1, exc)

            if attempt < self.retries:
                await asyncio.sleep(0.35 * (attempt + 1))

        raise EvaluationUnavailable(f"openai unavailable: {last_error}")


class GeminiProvider:
    name = "gemini"

    def __init__(self, api_key: str, model: str = "gemini-1.5-flash", timeout_sec: float = 12.0, retries: int = 1):
        import google.generativeai as genai

        genai.configure(api_key=api_key)
        self._genai = genai
        self.model = model
        self.timeout_sec = timeout_sec
        self.retries = max(0, int(retries))

    async def complete(self, system: str, prompt: str, temperature: float = 0.4, max_tokens: int = 1000) -> str:
        if not str(prompt or "").strip():
            raise EvaluationUnavailable("empty prompt")

        model = self._genai.GenerativeModel(self.model, system_instruction=system)
        last_error: Exception | None = None
        for attempt in range(self.retries + 1):
            try:
                response = await asyncio.wait_for(
                    model.generate_content_async(
                        prompt,
                        generation_config={"temperature": temperature, "max_output_tokens": max_tokens},
                    ),
                    timeout=self.timeout_sec,
                )
                content = str(getattr(response, "text", "") or "").strip()
                if content:
                    return content
                last_error = EvaluationUnavailable("empty completion")
            except asyncio.TimeoutError as exc:
                last_error = exc
                logger.warning("gemini timeout | attempt=%s", attempt + 1)
            except Exception as exc:
                last_error = exc
                logger.warning("gemini failure | attempt=%s err=%s", attempt + 1, exc)

            if attempt < self.retries:
                await asyncio.sleep(0.35 * (attempt + 1))

        raise EvaluationUnavailable(f"gemini unavailable: {last_error}")


def build_provider(settings: Settings) -> CompletionProvider | None:
    choice = settings.ai_provider
    if choice == "none":
        return None
    if choice == "auto":
        if settings.openai_api_key:
            choice = "openai"
        elif settings.gemini_api_key:
            choice = "gemini"
        else:
            return None

    if choice == "openai" and settings.openai_api_key:
        return OpenAIProvider(
            api_key=settings.openai_api_key,
            model=settings.openai_model,
            timeout_sec=settings.ai_timeout_sec,
            retries=settings.ai_retries,
        )
    if choice == "gemini" and settings.gemini_api_key:
        return GeminiProvider(
            api_key=settings.gemini_api_key,
            model=settings.gemini_model,
            timeout_sec=settings.ai_timeout_sec,
            retries=settings.ai_retries,
        )

    logger.warning("AI provider %s requested but not configured; using rule-based scoring", choice)
    return None
