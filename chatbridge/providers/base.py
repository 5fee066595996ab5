from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any


class ProviderError(RuntimeError):
    """Domain-level provider exception."""


@dataclass
class ChatResult:
    content: str
    model: str
    usage: dict[str, int] = field(default_factory=dict)


class ChatProvider(ABC):
    """Common contract for chat-completion providers."""

    provider_type: str = "base"

    def __init__(self, api_key: str, timeout: float = 30.0, **client_options: Any) -> None:
        if not api_key:
            raise ProviderError(f"{self.provider_type}: api_key is required")
        self.api_key = api_key
        self.timeout = timeout
        # Extra httpx.Client kwargs (e.g. transport in tests)
        self.client_options = client_options

    def handle_error(self, error: Exception) -> ProviderError:
        message = str(error)
        if "429" in message:
            return ProviderError("Rate limit reached. Retry later.")
        if "503" in message:
            return ProviderError("Provider temporarily unavailable (503).")
        return ProviderError(message)

    @abstractmethod
    def chat(
        self,
        messages: list[dict[str, str]],
        *,
        model: str,
        temperature: float = 0.7,
        max_tokens: int = 1000,
    ) -> ChatResult:
        """Run one chat completion; raise ProviderError on any failure."""
