"""LLM Provider Factory.

This module maps provider identities to backend adapter classes and builds
adapters from provider descriptors.
"""

from __future__ import annotations

import os

from novel_orchestrator.llm.anthropic import AnthropicProvider
from novel_orchestrator.llm.base import BaseLLMProvider
from novel_orchestrator.llm.ollama import OllamaProvider
from novel_orchestrator.llm.openai_compat import (
    DeepSeekProvider,
    OpenAIProvider,
    OpenRouterProvider,
)
from novel_orchestrator.models.agent import ProviderDescriptor
from novel_orchestrator.utils.exceptions import InvalidConfigurationError


class LLMProviderFactory:
    """Factory for creating backend adapter instances.

    Supports creating adapters by provider identity with the API key filled
    in from environment variables when the descriptor carries none.
    """

    # Registry of available providers
    _providers: dict[str, type[BaseLLMProvider]] = {
        "openai": OpenAIProvider,
        "deepseek": DeepSeekProvider,
        "openrouter": OpenRouterProvider,
        "ollama": OllamaProvider,
        "anthropic": AnthropicProvider,
    }

    # Providers that run without a credential
    _keyless: set[str] = {"ollama"}

    @classmethod
    def register_provider(
        cls,
        name: str,
        provider_class: type[BaseLLMProvider],
    ) -> None:
        """Register a new backend adapter.

        Args:
            name: Provider identity (e.g., 'openai').
            provider_class: Class implementing BaseLLMProvider.
        """
        cls._providers[name] = provider_class

    @classmethod
    def create(cls, descriptor: ProviderDescriptor) -> BaseLLMProvider:
        """Create an adapter for ``descriptor``.

        Args:
            descriptor: Provider descriptor.

        Returns:
            BaseLLMProvider instance.

        Raises:
            InvalidConfigurationError: If the provider identity is unknown.
        """
        provider = descriptor.provider.value
        if provider not in cls._providers:
            available = ", ".join(cls._providers.keys())
            raise InvalidConfigurationError(
                "provider",
                provider,
                f"Unknown provider: {provider}. Available: {available}",
            )

        # Get API key from environment if not provided
        if descriptor.api_key is None and provider not in cls._keyless:
            env_key = os.getenv(f"{provider.upper()}_API_KEY")
            if env_key:
                descriptor = descriptor.model_copy(update={"api_key": env_key})

        provider_class = cls._providers[provider]
        return provider_class(descriptor)

    @classmethod
    def list_providers(cls) -> list[str]:
        """List all registered provider identities."""
        return list(cls._providers.keys())
