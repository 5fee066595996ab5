"""
LLMService: chat completions with retry and a deterministic fallback.

Provider selection: OpenRouter when OPENROUTER_API_KEY is set, else OpenAI.
With no key, FALLBACK_MODE on, or every attempt failing, the caller gets a
canned reply tagged with model ``fallback-model`` instead of an error.
"""
from __future__ import annotations

import logging
from functools import lru_cache
from typing import Any

from tenacity import Retrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from chatbridge.config.settings import Settings, get_settings
from chatbridge.monitoring.metrics import LLM_COMPLETIONS
from chatbridge.providers.base import ChatProvider, ChatResult, ProviderError
from chatbridge.providers.openai_compatible import OpenAIProvider, OpenRouterProvider

logger = logging.getLogger(__name__)

FALLBACK_MODEL = "fallback-model"
FALLBACK_PREFIX = "I'm currently operating in fallback mode and cannot access my AI provider."

# 1s, 2s, 4s ... between attempts
RETRY_WAIT = wait_exponential(multiplier=1, min=1, max=8)


def fallback_reply(messages: list[dict[str, str]]) -> str:
    last_user = next((m.get("content", "") for m in reversed(messages) if m.get("role") == "user"), "")
    lowered = last_user.lower()
    words = set(lowered.replace("!", " ").replace(",", " ").replace(".", " ").split())
    if "hello" in lowered or "hi" in words:
        return f"{FALLBACK_PREFIX} Hello! I'm here to help, but my capabilities are limited right now."
    if "help" in lowered:
        return f"{FALLBACK_PREFIX} I'd like to help, but my capabilities are limited in fallback mode."
    return f"{FALLBACK_PREFIX} Please try again later when my connection to the AI service is restored."


class LLMService:
    def __init__(self, settings: Settings, provider: ChatProvider | None = None) -> None:
        self.settings = settings
        self.provider = provider if provider is not None else self._build_provider()

    def _build_provider(self) -> ChatProvider | None:
        timeout = self.settings.llm_timeout_seconds
        if self.settings.openrouter_api_key:
            return OpenRouterProvider(
                self.settings.openrouter_api_key,
                timeout=timeout,
                referer=self.settings.app_public_url,
            )
        if self.settings.openai_api_key:
            return OpenAIProvider(self.settings.openai_api_key, timeout=timeout)
        return None

    @property
    def available(self) -> bool:
        return self.provider is not None and not self.settings.fallback_mode

    def generate_chat_completion(
        self,
        messages: list[dict[str, str]],
        *,
        system_prompt: str | None = None,
        temperature: float = 0.7,
        max_tokens: int = 1000,
        model: str | None = None,
    ) -> dict[str, Any]:
        conversation = list(messages)
        if system_prompt and not any(m.get("role") == "system" for m in conversation):
            conversation.insert(0, {"role": "system", "content": system_prompt})

        if not self.available:
            logger.info("LLM provider unavailable, answering in fallback mode")
            return self._fallback(conversation)

        model = model or self.settings.default_model
        try:
            result = self._complete_with_retry(conversation, model, temperature, max_tokens)
        except ProviderError as exc:
            logger.error("LLM completion failed after retries: %s", exc)
            return self._fallback(conversation)
        LLM_COMPLETIONS.labels(kind="provider").inc()
        return {"response": result.content, "model": result.model, "usage": result.usage}

    def _complete_with_retry(
        self, messages: list[dict[str, str]], model: str, temperature: float, max_tokens: int
    ) -> ChatResult:
        retrying = Retrying(
            retry=retry_if_exception_type(ProviderError),
            wait=RETRY_WAIT,
            stop=stop_after_attempt(self.settings.llm_max_retries + 1),
            reraise=True,
        )
        for attempt in retrying:
            with attempt:
                if attempt.retry_state.attempt_number > 1:
                    logger.warning("Retrying LLM completion (attempt %d)", attempt.retry_state.attempt_number)
                return self.provider.chat(  # type: ignore[union-attr]
                    messages, model=model, temperature=temperature, max_tokens=max_tokens
                )
        raise ProviderError("LLM completion did not run")  # pragma: no cover

    @staticmethod
    def _fallback(messages: list[dict[str, str]]) -> dict[str, Any]:
        LLM_COMPLETIONS.labels(kind="fallback").inc()
        return {"response": fallback_reply(messages), "model": FALLBACK_MODEL, "usage": {}}


@lru_cache(maxsize=1)
def get_llm_service() -> LLMService:
    return LLMService(get_settings())
