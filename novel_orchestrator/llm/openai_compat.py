"""OpenAI-compatible LLM Providers.

OpenAI, DeepSeek and OpenRouter all speak the OpenAI chat-completions API, so
they share one implementation on top of the ``openai`` SDK pointed at each
service's base URL. SDK-level retries are disabled; the gateway owns retry.
"""

from __future__ import annotations

import openai
from openai import AsyncOpenAI

from novel_orchestrator.llm.base import BaseLLMProvider, LLMRequest, LLMResponse
from novel_orchestrator.models.agent import ProviderDescriptor
from novel_orchestrator.utils.exceptions import ProviderError


def map_openai_error(exc: Exception, provider: str, model: str | None = None) -> ProviderError:
    """Translate an ``openai`` SDK exception into a ProviderError."""
    if isinstance(exc, openai.APITimeoutError):
        return ProviderError(
            f"{provider} request timed out",
            provider=provider, code="TIMEOUT", retryable=True, model=model, cause=exc,
        )
    if isinstance(exc, openai.APIConnectionError):
        return ProviderError(
            f"{provider} connection failed: {exc}",
            provider=provider, code="CONNECTION_ERROR", retryable=True, model=model, cause=exc,
        )
    if isinstance(exc, openai.RateLimitError):
        return ProviderError(
            f"{provider} rate limit exceeded",
            provider=provider, code="RATE_LIMITED", status_code=429,
            retryable=True, model=model, cause=exc,
        )
    if isinstance(exc, (openai.AuthenticationError, openai.PermissionDeniedError)):
        return ProviderError(
            f"{provider} rejected the credentials",
            provider=provider, code="AUTHENTICATION_FAILED",
            status_code=exc.status_code, model=model, cause=exc,
        )
    if isinstance(exc, openai.APIStatusError):
        return ProviderError(
            f"{provider} API error ({exc.status_code}): {exc.message}",
            provider=provider, code="API_ERROR", status_code=exc.status_code,
            retryable=exc.status_code >= 500, model=model, cause=exc,
        )
    return ProviderError(
        f"{provider} request failed: {exc}",
        provider=provider, code="REQUEST_FAILED", model=model, cause=exc,
    )


class OpenAICompatibleProvider(BaseLLMProvider):
    """Chat-completions backend reached through ``AsyncOpenAI``."""

    BASE_URL = "https://api.openai.com/v1"
    PROVIDER = "openai"
    FALLBACK_MODELS: list[str] = []

    def __init__(self, descriptor: ProviderDescriptor) -> None:
        super().__init__(descriptor)
        self._base_url = descriptor.base_url or self.BASE_URL
        self._client = AsyncOpenAI(
            api_key=descriptor.api_key or "",
            base_url=self._base_url,
            timeout=self.timeout,
            max_retries=0,
            default_headers=self.default_headers() or None,
        )

    @property
    def provider_name(self) -> str:
        return self.PROVIDER

    def default_headers(self) -> dict[str, str]:
        """Extra headers sent with every request."""
        return {}

    async def complete(self, request: LLMRequest) -> LLMResponse:
        self.ensure_usable()
        max_tokens, temperature = self.resolve_limits(request)

        try:
            response = await self._client.chat.completions.create(
                model=self.default_model,
                messages=self.format_messages(request),  # type: ignore
                max_tokens=max_tokens,
                temperature=temperature,
                stream=False,
            )
        except openai.OpenAIError as e:
            raise map_openai_error(e, self.provider_name, self.default_model) from e

        if not response.choices:
            raise ProviderError(
                f"{self.provider_name} returned an empty response",
                provider=self.provider_name,
                code="EMPTY_RESPONSE",
                model=self.default_model,
            )

        choice = response.choices[0]
        usage: dict[str, int] = {}
        if response.usage:
            usage = {
                "input_tokens": response.usage.prompt_tokens,
                "output_tokens": response.usage.completion_tokens,
                "total_tokens": response.usage.total_tokens,
            }

        return LLMResponse(
            content=choice.message.content or "",
            model=response.model,
            usage=usage,
            finish_reason=choice.finish_reason,
            provider=self.provider_name,
            metadata={"id": response.id, "created": response.created},
            raw_response=response,
        )

    async def validate_config(self) -> bool:
        """A key the service accepts for listing models counts as valid.

        Errors other than an authentication failure are treated as transient
        and do not invalidate the configuration.
        """
        if not self._descriptor.api_key:
            return False
        try:
            await self._client.models.list()
        except (openai.AuthenticationError, openai.PermissionDeniedError):
            return False
        except openai.OpenAIError:
            return True
        return True

    async def list_models(self) -> list[str]:
        self.ensure_usable()
        try:
            page = await self._client.models.list()
        except openai.OpenAIError as e:
            if self.FALLBACK_MODELS:
                return list(self.FALLBACK_MODELS)
            raise map_openai_error(e, self.provider_name, self.default_model) from e
        return sorted(self.filter_models([model.id for model in page.data]))

    def filter_models(self, model_ids: list[str]) -> list[str]:
        return model_ids

    async def aclose(self) -> None:
        await self._client.close()


class OpenAIProvider(OpenAICompatibleProvider):
    """OpenAI API provider."""

    BASE_URL = "https://api.openai.com/v1"
    PROVIDER = "openai"
    DEFAULT_TIMEOUT = 60.0

    def filter_models(self, model_ids: list[str]) -> list[str]:
        """Keep chat models only."""
        return [model_id for model_id in model_ids if "gpt" in model_id]


class DeepSeekProvider(OpenAICompatibleProvider):
    """DeepSeek API provider.

    DeepSeek publishes a short fixed model list, so ``list_models`` does not
    hit the network.
    """

    BASE_URL = "https://api.deepseek.com/v1"
    PROVIDER = "deepseek"
    DEFAULT_TIMEOUT = 60.0
    FALLBACK_MODELS = ["deepseek-chat", "deepseek-coder"]

    async def list_models(self) -> list[str]:
        return list(self.FALLBACK_MODELS)


class OpenRouterProvider(OpenAICompatibleProvider):
    """OpenRouter API provider.

    OpenRouter asks callers to identify themselves with referer and title
    headers, and upstream models can be slow to answer.
    """

    BASE_URL = "https://openrouter.ai/api/v1"
    PROVIDER = "openrouter"
    DEFAULT_TIMEOUT = 90.0
    FALLBACK_MODELS = [
        "anthropic/claude-3-haiku",
        "anthropic/claude-3-sonnet",
        "meta-llama/llama-2-70b-chat",
        "mistralai/mixtral-8x7b-instruct",
        "openai/gpt-3.5-turbo",
        "openai/gpt-4",
    ]

    APP_REFERER = "https://novel-orchestrator.app"
    APP_TITLE = "Novel Orchestrator"

    def default_headers(self) -> dict[str, str]:
        return {"HTTP-Referer": self.APP_REFERER, "X-Title": self.APP_TITLE}
