"""Model backend adapters and the provider gateway.

This module provides a unified interface for the model services agents use
(OpenAI, DeepSeek, OpenRouter, Ollama, Anthropic) and the gateway that adds
retry and fallback on top of them.
"""

from novel_orchestrator.llm.anthropic import AnthropicProvider
from novel_orchestrator.llm.base import (
    BaseLLMProvider,
    ChatMessage,
    LLMRequest,
    LLMResponse,
    estimate_tokens,
)
from novel_orchestrator.llm.factory import LLMProviderFactory
from novel_orchestrator.llm.gateway import GatewayConfig, ProviderGateway
from novel_orchestrator.llm.ollama import OllamaProvider
from novel_orchestrator.llm.openai_compat import (
    DeepSeekProvider,
    OpenAIProvider,
    OpenRouterProvider,
)

__all__ = [
    # Base classes
    "BaseLLMProvider",
    "ChatMessage",
    "LLMRequest",
    "LLMResponse",
    "estimate_tokens",
    # Providers
    "AnthropicProvider",
    "DeepSeekProvider",
    "OllamaProvider",
    "OpenAIProvider",
    "OpenRouterProvider",
    # Factory and gateway
    "LLMProviderFactory",
    "GatewayConfig",
    "ProviderGateway",
]
