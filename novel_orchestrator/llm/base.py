"""Base LLM Provider - Abstract interface for model backends.

This module defines the request/response types shared by every backend and the
abstract base class each backend adapter implements. Adapters perform exactly
one attempt per ``complete`` call; retry and fallback live in the gateway.
"""

from __future__ import annotations

import math
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Literal

from novel_orchestrator.models.agent import ProviderDescriptor
from novel_orchestrator.utils.exceptions import ProviderError

_CJK_PATTERN = re.compile(r"[\u4e00-\u9fff]")


@dataclass
class ChatMessage:
    """One conversation message sent to a backend."""

    role: Literal["user", "assistant", "system"]
    content: str

    def to_dict(self) -> dict[str, str]:
        return {"role": self.role, "content": self.content}


@dataclass
class LLMRequest:
    """A provider-neutral completion request.

    ``max_tokens`` and ``temperature`` fall back to the backend descriptor
    when left unset.
    """

    messages: list[ChatMessage] = field(default_factory=list)
    system_prompt: str | None = None
    max_tokens: int | None = None
    temperature: float | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass
class LLMResponse:
    """Response from a model backend."""

    content: str
    model: str
    usage: dict[str, int] = field(default_factory=dict)
    finish_reason: str | None = None
    provider: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)
    raw_response: Any = None


class BaseLLMProvider(ABC):
    """Abstract base class for model backends.

    Every adapter (OpenAI, DeepSeek, OpenRouter, Ollama, Anthropic) is built
    from a ``ProviderDescriptor`` and must implement this interface so the
    gateway can use them interchangeably.
    """

    # Seconds; subclasses override with their service's default
    DEFAULT_TIMEOUT: float = 60.0

    def __init__(self, descriptor: ProviderDescriptor) -> None:
        """Initialize the adapter.

        Args:
            descriptor: Connection settings and request limits.
        """
        self._descriptor = descriptor

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Return the provider identity (e.g., 'openai', 'ollama')."""

    @property
    def default_model(self) -> str:
        """Return the model this adapter is bound to."""
        return self._descriptor.model

    @property
    def descriptor(self) -> ProviderDescriptor:
        return self._descriptor

    @property
    def timeout(self) -> float:
        """Per-request timeout in seconds."""
        return self._descriptor.timeout_seconds or self.DEFAULT_TIMEOUT

    @abstractmethod
    async def complete(self, request: LLMRequest) -> LLMResponse:
        """Send one completion request.

        Args:
            request: The provider-neutral request.

        Returns:
            LLMResponse containing the model's answer.

        Raises:
            ProviderError: On any failure, with ``retryable`` set for
                transient conditions.
        """

    @abstractmethod
    async def validate_config(self) -> bool:
        """Check that the backend is reachable and the credentials work."""

    @abstractmethod
    async def list_models(self) -> list[str]:
        """Return the models the backend offers."""

    async def aclose(self) -> None:
        """Release pooled connections. Default: nothing to release."""
        return None

    def resolve_limits(self, request: LLMRequest) -> tuple[int, float]:
        """Return (max_tokens, temperature) for ``request``."""
        max_tokens = request.max_tokens or self._descriptor.max_tokens
        temperature = (
            request.temperature
            if request.temperature is not None
            else self._descriptor.temperature
        )
        return max_tokens, temperature

    def format_messages(self, request: LLMRequest) -> list[dict[str, str]]:
        """Return chat messages with the system prompt prepended."""
        formatted: list[dict[str, str]] = []
        if request.system_prompt:
            formatted.append({"role": "system", "content": request.system_prompt})
        formatted.extend(message.to_dict() for message in request.messages)
        return formatted

    def ensure_usable(self, requires_key: bool = True) -> None:
        """Raise a terminal ProviderError if the descriptor cannot be used."""
        if not self._descriptor.enabled or not self._descriptor.model:
            raise ProviderError(
                f"{self.provider_name} configuration is invalid",
                provider=self.provider_name,
                code="INVALID_CONFIG",
                model=self._descriptor.model,
            )
        if requires_key and not self._descriptor.api_key:
            raise ProviderError(
                f"{self.provider_name} API key is not set",
                provider=self.provider_name,
                code="MISSING_API_KEY",
                model=self._descriptor.model,
            )


def estimate_tokens(text: str) -> int:
    """Rough token count: ~1.5 chars per CJK character, ~4 chars otherwise."""
    cjk = len(_CJK_PATTERN.findall(text))
    other = len(text) - cjk
    return math.ceil(cjk / 1.5 + other / 4)
