from __future__ import annotations

from typing import Any

import httpx

from chatbridge.providers.base import ChatProvider, ChatResult, ProviderError


def extract_text(data: dict[str, Any]) -> str | None:
    """Pull the reply text out of the response shapes seen across OpenAI-compatible APIs."""
    choices = data.get("choices") or []
    if choices:
        choice = choices[0]
        message = choice.get("message") or {}
        if message.get("content"):
            return message["content"]
        if choice.get("text"):
            return choice["text"]
    for key in ("message", "output", "response"):
        value = data.get(key)
        if isinstance(value, str) and value:
            return value
    return None


class OpenAICompatibleProvider(ChatProvider):
    """
    Any provider that exposes an OpenAI-compatible /chat/completions endpoint.

    Subclasses set ``provider_type`` and ``_default_base_url`` and may add
    headers or body fields.
    """

    provider_type = "OpenAI"
    _default_base_url: str = "https://api.openai.com/v1"

    def __init__(self, api_key: str, timeout: float = 30.0, base_url: str | None = None, **client_options: Any):
        super().__init__(api_key, timeout, **client_options)
        self.base_url = (base_url or self._default_base_url).rstrip("/")

    def _headers(self) -> dict[str, str]:
        return {"Content-Type": "application/json", "Authorization": f"Bearer {self.api_key}"}

    def _payload(self, messages: list[dict[str, str]], model: str, temperature: float, max_tokens: int) -> dict:
        return {"model": model, "messages": messages, "temperature": temperature, "max_tokens": max_tokens}

    def chat(
        self,
        messages: list[dict[str, str]],
        *,
        model: str,
        temperature: float = 0.7,
        max_tokens: int = 1000,
    ) -> ChatResult:
        payload = self._payload(messages, model, temperature, max_tokens)
        try:
            with httpx.Client(timeout=self.timeout, **self.client_options) as client:
                response = client.post(f"{self.base_url}/chat/completions", headers=self._headers(), json=payload)
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPStatusError as exc:
            raise self.handle_error(
                ProviderError(f"{self.provider_type} API error {exc.response.status_code}: {exc.response.text[:300]}")
            ) from exc
        except httpx.RequestError as exc:
            raise ProviderError(f"{self.provider_type} request failed: {exc}") from exc
        except ValueError as exc:
            raise ProviderError(f"{self.provider_type} returned invalid JSON") from exc

        content = extract_text(data)
        if content is None:
            raise ProviderError(f"{self.provider_type} response had no content")
        usage = data.get("usage") or {}
        return ChatResult(
            content=content,
            model=data.get("model", model),
            usage={
                "input_tokens": usage.get("prompt_tokens", 0),
                "output_tokens": usage.get("completion_tokens", 0),
            },
        )


class OpenAIProvider(OpenAICompatibleProvider):
    provider_type = "OpenAI"
    _default_base_url = "https://api.openai.com/v1"


class OpenRouterProvider(OpenAICompatibleProvider):
    provider_type = "OpenRouter"
    _default_base_url = "https://openrouter.ai/api/v1"

    def __init__(self, api_key: str, timeout: float = 30.0, referer: str = "", title: str = "AI Agent Application", **kw):
        super().__init__(api_key, timeout, **kw)
        self.referer = referer
        self.title = title

    def _headers(self) -> dict[str, str]:
        headers = super()._headers()
        if self.referer:
            headers["HTTP-Referer"] = self.referer
        headers["X-Title"] = self.title
        return headers

    def _payload(self, messages: list[dict[str, str]], model: str, temperature: float, max_tokens: int) -> dict:
        payload = super()._payload(messages, model, temperature, max_tokens)
        payload["transforms"] = ["middle-out"]
        payload["route"] = "fallback"
        return payload
