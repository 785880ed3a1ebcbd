"""Ollama LLM Provider implementation.

Talks to a locally running Ollama server over its native HTTP API with
``httpx``. Ollama uses a single prompt string rather than chat messages, and
reports no token usage, so usage is estimated.
"""

from __future__ import annotations

from typing import Any

import httpx

from novel_orchestrator.llm.base import (
    BaseLLMProvider,
    LLMRequest,
    LLMResponse,
    estimate_tokens,
)
from novel_orchestrator.models.agent import ProviderDescriptor
from novel_orchestrator.utils.exceptions import ProviderError


class OllamaProvider(BaseLLMProvider):
    """Local Ollama server provider."""

    BASE_URL = "http://localhost:11434"
    DEFAULT_TIMEOUT = 120.0
    # Availability probe before each request
    PROBE_TIMEOUT = 5.0

    def __init__(
        self,
        descriptor: ProviderDescriptor,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the Ollama provider.

        Args:
            descriptor: Connection settings; ``base_url`` defaults to localhost.
            client: Optional preconfigured client (tests pass a mock transport).
        """
        super().__init__(descriptor)
        self._base_url = descriptor.base_url or self.BASE_URL
        self._client = client or httpx.AsyncClient(
            base_url=self._base_url,
            headers={"Content-Type": "application/json"},
            timeout=self.timeout,
        )

    @property
    def provider_name(self) -> str:
        return "ollama"

    @staticmethod
    def build_prompt(request: LLMRequest) -> str:
        """Flatten a chat request into System/Human/Assistant turns."""
        prompt = ""
        if request.system_prompt:
            prompt += f"System: {request.system_prompt}\n\n"
        for message in request.messages:
            role = "Assistant" if message.role == "assistant" else "Human"
            prompt += f"{role}: {message.content}\n\n"
        prompt += "Assistant: "
        return prompt.strip()

    async def complete(self, request: LLMRequest) -> LLMResponse:
        self.ensure_usable(requires_key=False)

        if not await self._is_available():
            raise ProviderError(
                "Ollama service is unavailable; make sure it is running",
                provider="ollama",
                code="SERVICE_UNAVAILABLE",
                retryable=True,
                model=self.default_model,
            )

        max_tokens, temperature = self.resolve_limits(request)
        prompt = self.build_prompt(request)
        payload = {
            "model": self.default_model,
            "prompt": prompt,
            "stream": False,
            "options": {"temperature": temperature, "num_predict": max_tokens},
        }

        body = await self._request("POST", "/api/generate", json=payload)
        text = body.get("response") or ""
        if not text:
            raise ProviderError(
                "Ollama returned an empty response",
                provider="ollama",
                code="EMPTY_RESPONSE",
                model=self.default_model,
            )

        prompt_tokens = estimate_tokens(prompt)
        completion_tokens = estimate_tokens(text)
        return LLMResponse(
            content=text.strip(),
            model=self.default_model,
            usage={
                "input_tokens": prompt_tokens,
                "output_tokens": completion_tokens,
                "total_tokens": estimate_tokens(prompt + text),
            },
            finish_reason="stop" if body.get("done") else "length",
            provider=self.provider_name,
            metadata={
                "eval_count": body.get("eval_count"),
                "eval_duration": body.get("eval_duration"),
            },
            raw_response=body,
        )

    async def validate_config(self) -> bool:
        """Valid when the server answers and has the configured model."""
        if not await self._is_available():
            return False
        try:
            models = await self.list_models()
        except ProviderError:
            return False
        return self.default_model in models

    async def list_models(self) -> list[str]:
        body = await self._request("GET", "/api/tags")
        return [model["name"] for model in body.get("models", [])]

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _is_available(self) -> bool:
        try:
            response = await self._client.get("/api/tags", timeout=self.PROBE_TIMEOUT)
        except httpx.HTTPError:
            return False
        return response.status_code == 200

    async def _request(self, method: str, path: str, **kwargs: Any) -> dict[str, Any]:
        try:
            response = await self._client.request(method, path, **kwargs)
            response.raise_for_status()
        except httpx.TimeoutException as e:
            raise ProviderError(
                "Ollama request timed out",
                provider="ollama", code="TIMEOUT", retryable=True,
                model=self.default_model, cause=e,
            ) from e
        except httpx.ConnectError as e:
            raise ProviderError(
                "Cannot connect to the Ollama service",
                provider="ollama", code="CONNECTION_ERROR", retryable=True,
                model=self.default_model, cause=e,
            ) from e
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            message = f"Ollama API error ({status})"
            try:
                detail = e.response.json().get("error")
            except ValueError:
                detail = None
            if detail:
                message += f": {detail}"
            raise ProviderError(
                message,
                provider="ollama", code="API_ERROR", status_code=status,
                retryable=status >= 500 or status == 429,
                model=self.default_model, cause=e,
            ) from e
        except httpx.HTTPError as e:
            raise ProviderError(
                f"Ollama request failed: {e}",
                provider="ollama", code="CONNECTION_ERROR", retryable=True,
                model=self.default_model, cause=e,
            ) from e

        try:
            body = response.json()
        except ValueError as e:
            raise ProviderError(
                "Ollama returned a malformed response",
                provider="ollama", code="MALFORMED_RESPONSE",
                model=self.default_model, cause=e,
            ) from e
        if not isinstance(body, dict):
            raise ProviderError(
                f"Ollama returned {type(body).__name__} instead of an object",
                provider="ollama", code="MALFORMED_RESPONSE",
                model=self.default_model,
            )
        return body
