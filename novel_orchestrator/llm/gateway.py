"""Provider Gateway - retry, backoff and fallback across model backends.

The gateway owns one adapter per provider key (``"{provider}-{model}"``). A
request goes to the explicit key or to the default backend. Retryable
failures are retried with exponential backoff; terminal failures stop the
primary immediately. Once the primary is done, exactly one alternate backend
gets a chance under the same policy.
"""

from __future__ import annotations

import asyncio
import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable

from novel_orchestrator.llm.base import BaseLLMProvider, ChatMessage, LLMRequest, LLMResponse
from novel_orchestrator.llm.factory import LLMProviderFactory
from novel_orchestrator.models.agent import ProviderDescriptor
from novel_orchestrator.models.output import ProbeResult
from novel_orchestrator.utils.exceptions import ProviderError, ProviderNotFoundError
from novel_orchestrator.utils.logging import get_logger, get_provider_logger
from novel_orchestrator.utils.observability import LangfuseClient

logger = get_logger(__name__)

SleepFunc = Callable[[float], Awaitable[None]]
AdapterBuilder = Callable[[ProviderDescriptor], BaseLLMProvider]

PROBE_PROMPT = "Hello, this is a connection test."


class AttemptState(str, Enum):
    """Per-attempt dispatch state, used in log events."""

    IDLE = "idle"
    SENDING = "sending"
    SUCCESS = "success"
    RETRYABLE_FAILURE = "retryable_failure"
    TERMINAL_FAILURE = "terminal_failure"


@dataclass
class GatewayConfig:
    """Retry and fallback settings."""

    max_attempts: int = 3
    base_delay: float = 1.0
    max_delay: float = 30.0
    backoff_factor: float = 2.0
    fallback_enabled: bool = True

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.base_delay < 0 or self.max_delay < 0:
            raise ValueError("delays must not be negative")
        if self.backoff_factor <= 1.0:
            raise ValueError("backoff_factor must be greater than 1")
        # Every backoff must be longer than the one before it
        delays = [self.delay_for(n) for n in range(1, self.max_attempts)]
        if any(later <= earlier for earlier, later in zip(delays, delays[1:])):
            raise ValueError(
                f"max_delay {self.max_delay} flattens the backoff schedule "
                f"within {self.max_attempts} attempts"
            )

    def delay_for(self, attempt: int) -> float:
        """Backoff before retrying after failed ``attempt`` (1-based)."""
        return min(self.base_delay * self.backoff_factor ** (attempt - 1), self.max_delay)


@dataclass
class ProviderStats:
    """Call counters for one backend."""

    requests: int = 0
    successes: int = 0
    failures: int = 0
    retries: int = 0
    fallbacks: int = 0
    input_tokens: int = 0
    output_tokens: int = 0
    last_error: str | None = None
    last_latency_ms: float | None = None

    def as_dict(self) -> dict[str, Any]:
        return dict(self.__dict__)


@dataclass
class _Backend:
    descriptor: ProviderDescriptor
    adapter: BaseLLMProvider
    stats: ProviderStats = field(default_factory=ProviderStats)


class ProviderGateway:
    """Dispatches model requests to interchangeable backends.

    Example:
        ```python
        gateway = ProviderGateway(GatewayConfig(max_attempts=3))
        gateway.configure(descriptors)
        response = await gateway.send(request, "openai-gpt-4o-mini")
        ```
    """

    def __init__(
        self,
        config: GatewayConfig | None = None,
        adapter_builder: AdapterBuilder | None = None,
        tracer: LangfuseClient | None = None,
        sleep: SleepFunc | None = None,
    ) -> None:
        """Initialize the gateway.

        Args:
            config: Retry and fallback settings.
            adapter_builder: Builds an adapter from a descriptor. Defaults to
                ``LLMProviderFactory.create``.
            tracer: Optional Langfuse client for generation tracing.
            sleep: Awaitable used for backoff waits.
        """
        self.config = config or GatewayConfig()
        self._build_adapter = adapter_builder or LLMProviderFactory.create
        self._tracer = tracer or LangfuseClient.disabled()
        self._sleep = sleep or asyncio.sleep
        self._backends: dict[str, _Backend] = {}
        self._default_key: str | None = None
        # Replaced adapters, closed on aclose()
        self._retired: list[BaseLLMProvider] = []

    # ------------------------------------------------------------------
    # Backend management
    # ------------------------------------------------------------------

    def configure(self, descriptors: list[ProviderDescriptor]) -> None:
        """Replace all backends with adapters for the enabled ``descriptors``."""
        self._retired.extend(backend.adapter for backend in self._backends.values())
        self._backends = {}
        self._default_key = None
        for descriptor in descriptors:
            if descriptor.enabled:
                self.add_provider(descriptor)
        logger.info(
            "Provider gateway configured",
            providers=list(self._backends),
            default=self._default_key,
        )

    def add_provider(self, descriptor: ProviderDescriptor) -> str:
        """Add or replace one backend. Returns its key."""
        key = descriptor.key
        existing = self._backends.get(key)
        adapter = self._build_adapter(descriptor)
        self._backends[key] = _Backend(descriptor=descriptor, adapter=adapter)
        if existing is not None:
            self._retired.append(existing.adapter)
        if self._default_key is None:
            self._default_key = key
        return key

    def remove_provider(self, key: str) -> bool:
        """Remove a backend. Returns False if the key was unknown."""
        backend = self._backends.pop(key, None)
        if backend is None:
            return False
        if self._default_key == key:
            self._default_key = next(iter(self._backends), None)
        self._retired.append(backend.adapter)
        return True

    def set_default(self, key: str) -> None:
        """Make ``key`` the backend used when a request names none."""
        if key not in self._backends:
            raise ProviderNotFoundError(key)
        self._default_key = key

    @property
    def default_key(self) -> str | None:
        return self._default_key

    def list_providers(self) -> list[dict[str, Any]]:
        """Describe each configured backend."""
        return [
            {
                "key": key,
                "provider": backend.descriptor.provider.value,
                "model": backend.descriptor.model,
                "default": key == self._default_key,
            }
            for key, backend in self._backends.items()
        ]

    def has_provider(self, key: str) -> bool:
        return key in self._backends

    def stats(self) -> dict[str, dict[str, Any]]:
        """Per-backend call counters."""
        return {key: backend.stats.as_dict() for key, backend in self._backends.items()}

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    async def send(self, request: LLMRequest, provider_key: str | None = None) -> LLMResponse:
        """Send ``request`` with retry and a single fallback.

        Args:
            request: Provider-neutral request.
            provider_key: Target backend; the default backend when None.

        Returns:
            The first successful response.

        Raises:
            ProviderNotFoundError: No backend is configured, or the key is unknown.
            ProviderError: The primary failed and no alternate succeeded.
        """
        primary_key = self._resolve_key(provider_key)

        try:
            return await self._send_with_retry(primary_key, request)
        except ProviderError as primary_error:
            fallback_key = self._fallback_key(primary_key)
            if fallback_key is None:
                raise

            logger.warning(
                "Primary provider failed, trying fallback",
                primary=primary_key,
                fallback=fallback_key,
                code=primary_error.code,
            )
            self._backends[primary_key].stats.fallbacks += 1
            try:
                return await self._send_with_retry(fallback_key, request)
            except ProviderError as fallback_error:
                error = ProviderError(
                    f"All providers failed: {primary_key} ({primary_error.message}); "
                    f"{fallback_key} ({fallback_error.message})",
                    provider=primary_key,
                    code="ALL_PROVIDERS_FAILED",
                    retryable=False,
                    cause=fallback_error,
                )
                error.details.update(primary=primary_key, fallback=fallback_key)
                raise error from fallback_error

    def _resolve_key(self, provider_key: str | None) -> str:
        if provider_key is None:
            if self._default_key is None:
                raise ProviderNotFoundError(None, code="NO_PROVIDER_AVAILABLE")
            return self._default_key
        if provider_key not in self._backends:
            raise ProviderNotFoundError(provider_key)
        return provider_key

    def _fallback_key(self, primary_key: str) -> str | None:
        if not self.config.fallback_enabled:
            return None
        for key in self._backends:
            if key != primary_key:
                return key
        return None

    async def _send_with_retry(self, key: str, request: LLMRequest) -> LLMResponse:
        backend = self._backends[key]
        log = get_provider_logger(key)
        attempt = 0

        while True:
            attempt += 1
            log.debug("Provider attempt", state=AttemptState.SENDING.value, attempt=attempt)
            backend.stats.requests += 1
            generation_id = self._start_generation(key, backend, request)
            started = time.perf_counter()

            try:
                response = await self._complete(backend, request)
            except ProviderError as e:
                backend.stats.failures += 1
                backend.stats.last_error = e.message
                self._tracer.end_generation(generation_id, error=e.message)

                if not e.retryable:
                    log.error(
                        "Provider attempt failed",
                        state=AttemptState.TERMINAL_FAILURE.value,
                        attempt=attempt,
                        code=e.code,
                        error=e.message,
                    )
                    raise
                if attempt >= self.config.max_attempts:
                    log.error(
                        "Provider retries exhausted",
                        state=AttemptState.TERMINAL_FAILURE.value,
                        attempt=attempt,
                        code=e.code,
                        error=e.message,
                    )
                    raise

                delay = self.config.delay_for(attempt)
                log.warning(
                    "Provider attempt failed, retrying",
                    state=AttemptState.RETRYABLE_FAILURE.value,
                    attempt=attempt,
                    max_attempts=self.config.max_attempts,
                    code=e.code,
                    delay=delay,
                )
                backend.stats.retries += 1
                await self._sleep(delay)
                log.debug("Provider backoff elapsed", state=AttemptState.IDLE.value)
                continue

            latency_ms = (time.perf_counter() - started) * 1000
            backend.stats.successes += 1
            backend.stats.last_latency_ms = latency_ms
            backend.stats.input_tokens += response.usage.get("input_tokens", 0)
            backend.stats.output_tokens += response.usage.get("output_tokens", 0)
            self._tracer.end_generation(
                generation_id, output=response.content, usage=response.usage
            )
            log.info(
                "Provider attempt succeeded",
                state=AttemptState.SUCCESS.value,
                attempt=attempt,
                latency_ms=round(latency_ms, 1),
            )
            if response.provider is None:
                response.provider = backend.descriptor.provider.value
            return response

    async def _complete(self, backend: _Backend, request: LLMRequest) -> LLMResponse:
        """Call the adapter, mapping anything it leaks to a terminal ProviderError."""
        try:
            return await backend.adapter.complete(request)
        except ProviderError:
            raise
        except Exception as e:
            raise ProviderError(
                f"Unexpected {type(e).__name__} from provider: {e}",
                provider=backend.descriptor.provider.value,
                code="UNEXPECTED_ERROR",
                model=backend.descriptor.model,
                cause=e,
            ) from e

    def _start_generation(
        self, key: str, backend: _Backend, request: LLMRequest
    ) -> str:
        generation_id = uuid.uuid4().hex
        if self._tracer.active:
            self._tracer.start_generation(
                generation_id,
                name=key,
                model=backend.descriptor.model,
                input_messages=[m.to_dict() for m in request.messages],
                model_parameters={
                    "max_tokens": request.max_tokens or backend.descriptor.max_tokens,
                    "temperature": request.temperature
                    if request.temperature is not None
                    else backend.descriptor.temperature,
                },
                metadata=request.metadata,
            )
        return generation_id

    # ------------------------------------------------------------------
    # Probing
    # ------------------------------------------------------------------

    async def validate(self, provider_key: str) -> bool:
        """Ask one backend whether its configuration works."""
        backend = self._backends.get(provider_key)
        if backend is None:
            raise ProviderNotFoundError(provider_key)
        try:
            return await backend.adapter.validate_config()
        except ProviderError as e:
            logger.warning("Provider validation failed", provider=provider_key, error=e.message)
            return False

    async def validate_all(self) -> dict[str, bool]:
        """Validate every backend."""
        return {key: await self.validate(key) for key in list(self._backends)}

    async def list_models(self, provider_key: str) -> list[str]:
        """Models offered by one backend."""
        backend = self._backends.get(provider_key)
        if backend is None:
            raise ProviderNotFoundError(provider_key)
        return await backend.adapter.list_models()

    async def test_provider(self, provider_key: str) -> ProbeResult:
        """Send a tiny request straight to one backend, without retry or fallback."""
        backend = self._backends.get(provider_key)
        if backend is None:
            raise ProviderNotFoundError(provider_key)

        request = LLMRequest(
            messages=[ChatMessage(role="user", content=PROBE_PROMPT)],
            max_tokens=16,
        )
        started = time.perf_counter()
        try:
            await backend.adapter.complete(request)
        except ProviderError as e:
            latency_ms = (time.perf_counter() - started) * 1000
            return ProbeResult(success=False, latency_ms=latency_ms, error=e.message)
        latency_ms = (time.perf_counter() - started) * 1000
        return ProbeResult(success=True, latency_ms=latency_ms)

    async def aclose(self) -> None:
        """Close every adapter's connections."""
        adapters = [backend.adapter for backend in self._backends.values()] + self._retired
        self._backends = {}
        self._retired = []
        self._default_key = None
        for adapter in adapters:
            await adapter.aclose()
