"""Anthropic LLM Provider implementation.

This module provides the Anthropic Claude API integration.
"""

from __future__ import annotations

from typing import Any

import anthropic

from novel_orchestrator.llm.base import BaseLLMProvider, LLMRequest, LLMResponse
from novel_orchestrator.models.agent import ProviderDescriptor
from novel_orchestrator.utils.exceptions import ProviderError


def map_anthropic_error(exc: Exception, model: str | None = None) -> ProviderError:
    """Translate an ``anthropic`` SDK exception into a ProviderError."""
    if isinstance(exc, anthropic.APITimeoutError):
        return ProviderError(
            "anthropic request timed out",
            provider="anthropic", code="TIMEOUT", retryable=True, model=model, cause=exc,
        )
    if isinstance(exc, anthropic.APIConnectionError):
        return ProviderError(
            f"anthropic connection failed: {exc}",
            provider="anthropic", code="CONNECTION_ERROR", retryable=True, model=model, cause=exc,
        )
    if isinstance(exc, anthropic.RateLimitError):
        return ProviderError(
            "anthropic rate limit exceeded",
            provider="anthropic", code="RATE_LIMITED", status_code=429,
            retryable=True, model=model, cause=exc,
        )
    if isinstance(exc, (anthropic.AuthenticationError, anthropic.PermissionDeniedError)):
        return ProviderError(
            "anthropic rejected the credentials",
            provider="anthropic", code="AUTHENTICATION_FAILED",
            status_code=exc.status_code, model=model, cause=exc,
        )
    if isinstance(exc, anthropic.APIStatusError):
        return ProviderError(
            f"anthropic API error ({exc.status_code}): {exc.message}",
            provider="anthropic", code="API_ERROR", status_code=exc.status_code,
            retryable=exc.status_code >= 500, model=model, cause=exc,
        )
    return ProviderError(
        f"anthropic request failed: {exc}",
        provider="anthropic", code="REQUEST_FAILED", model=model, cause=exc,
    )


class AnthropicProvider(BaseLLMProvider):
    """Anthropic Claude API provider.

    Provides access to Claude models through the Anthropic API.
    """

    DEFAULT_TIMEOUT = 60.0

    AVAILABLE_MODELS = [
        "claude-opus-4-20250514",
        "claude-sonnet-4-20250514",
        "claude-haiku-4-5-20251001",
        "claude-3-5-sonnet-20241022",
        "claude-3-5-haiku-20241022",
    ]

    def __init__(self, descriptor: ProviderDescriptor) -> None:
        """Initialize the Anthropic provider.

        Args:
            descriptor: Connection settings; ``base_url`` overrides the API host.
        """
        super().__init__(descriptor)
        self._async_client = anthropic.AsyncAnthropic(
            api_key=descriptor.api_key or "",
            base_url=descriptor.base_url,
            timeout=self.timeout,
            max_retries=0,
        )

    @property
    def provider_name(self) -> str:
        """Return the provider name."""
        return "anthropic"

    async def complete(self, request: LLMRequest) -> LLMResponse:
        """Send a messages request to Anthropic.

        The system prompt travels in the dedicated ``system`` parameter; any
        system-role turns in the history are folded into it.
        """
        self.ensure_usable()
        max_tokens, temperature = self.resolve_limits(request)

        system_parts = [request.system_prompt] if request.system_prompt else []
        messages: list[dict[str, str]] = []
        for message in request.messages:
            if message.role == "system":
                system_parts.append(message.content)
            else:
                messages.append(message.to_dict())

        request_params: dict[str, Any] = {
            "model": self.default_model,
            "max_tokens": max_tokens,
            "temperature": min(temperature, 1.0),
            "messages": messages,
        }
        if system_parts:
            request_params["system"] = "\n\n".join(system_parts)

        try:
            response = await self._async_client.messages.create(**request_params)
        except anthropic.AnthropicError as e:
            raise map_anthropic_error(e, self.default_model) from e

        if not response.content:
            raise ProviderError(
                "anthropic returned an empty response",
                provider="anthropic",
                code="EMPTY_RESPONSE",
                model=self.default_model,
            )

        # Extract content
        content = "".join(
            block.text for block in response.content if getattr(block, "type", "") == "text"
        )

        return LLMResponse(
            content=content,
            model=response.model,
            usage={
                "input_tokens": response.usage.input_tokens,
                "output_tokens": response.usage.output_tokens,
                "total_tokens": response.usage.input_tokens + response.usage.output_tokens,
            },
            finish_reason=response.stop_reason,
            provider=self.provider_name,
            metadata={"id": response.id},
            raw_response=response,
        )

    async def validate_config(self) -> bool:
        """Check the key with a one-token request."""
        if not self._descriptor.api_key:
            return False
        try:
            await self._async_client.messages.create(
                model=self.default_model,
                max_tokens=1,
                messages=[{"role": "user", "content": "Hi"}],
            )
        except (anthropic.AuthenticationError, anthropic.PermissionDeniedError):
            return False
        except anthropic.AnthropicError:
            return True
        return True

    async def list_models(self) -> list[str]:
        """Return list of available Anthropic models."""
        return self.AVAILABLE_MODELS.copy()

    async def aclose(self) -> None:
        await self._async_client.close()
