"""Shared test fixtures."""

import json
from collections.abc import AsyncGenerator
from typing import Any

import pytest
import pytest_asyncio

from novel_orchestrator.core import (
    InMemoryCollaborationStore,
    InMemoryConfigurationProvider,
    Orchestrator,
)
from novel_orchestrator.llm import BaseLLMProvider, LLMRequest, LLMResponse
from novel_orchestrator.llm.gateway import GatewayConfig, ProviderGateway
from novel_orchestrator.models import (
    AgentContext,
    AgentDescriptor,
    ProjectRef,
    ProviderDescriptor,
    ProviderIdentity,
    Specialty,
)
from novel_orchestrator.utils.exceptions import ProviderError

OPENAI_KEY = "openai-gpt-4o-mini"
DEEPSEEK_KEY = "deepseek-deepseek-chat"

DEFAULT_AGENT_IDS = {
    Specialty.THEME: "theme-planner",
    Specialty.OUTLINE: "outline-architect",
    Specialty.WORLD: "world-builder",
    Specialty.CHARACTER: "character-designer",
    Specialty.RELATIONSHIP: "relationship-mapper",
    Specialty.DIALOGUE: "dialogue-master",
    Specialty.PLOT: "plot-advisor",
}


def structured_answer(
    content: str = "Analysis.",
    suggestions: list[str] | None = None,
    data: Any = None,
) -> str:
    """A model answer laid out with the default section markers."""
    parts = [content]
    if suggestions is not None:
        parts.append("[SUGGESTIONS]\n" + "\n".join(f"- {s}" for s in suggestions))
    if data is not None:
        parts.append("[DATA]\n" + json.dumps(data))
    return "\n\n".join(parts)


def retryable(code: str = "TIMEOUT") -> ProviderError:
    return ProviderError("transient failure", provider="test", code=code, retryable=True)


def terminal(code: str = "AUTHENTICATION_FAILED") -> ProviderError:
    return ProviderError("terminal failure", provider="test", code=code, retryable=False)


class FakeProvider(BaseLLMProvider):
    """Backend adapter that plays back a script of answers and errors."""

    def __init__(self, descriptor: ProviderDescriptor) -> None:
        super().__init__(descriptor)
        self.script: list[str | Exception] = []
        self.requests: list[LLMRequest] = []
        self.default_answer = structured_answer()
        self.valid = True
        self.closed = False

    @property
    def provider_name(self) -> str:
        return self._descriptor.provider.value

    def queue(self, *items: str | Exception) -> "FakeProvider":
        self.script.extend(items)
        return self

    @property
    def calls(self) -> int:
        return len(self.requests)

    async def complete(self, request: LLMRequest) -> LLMResponse:
        self.requests.append(request)
        item = self.script.pop(0) if self.script else self.default_answer
        if isinstance(item, Exception):
            raise item
        return LLMResponse(
            content=item,
            model=self._descriptor.model,
            usage={"input_tokens": 10, "output_tokens": 5},
        )

    async def validate_config(self) -> bool:
        return self.valid

    async def list_models(self) -> list[str]:
        return [self._descriptor.model]

    async def aclose(self) -> None:
        self.closed = True


class FakeBackends:
    """Adapter builder handing out one FakeProvider per backend key.

    Rebuilding a key returns the adapter already handed out, so a script set
    up before a reconfiguration survives it.
    """

    def __init__(self) -> None:
        self.adapters: dict[str, FakeProvider] = {}

    def __call__(self, descriptor: ProviderDescriptor) -> FakeProvider:
        if descriptor.key not in self.adapters:
            self.adapters[descriptor.key] = FakeProvider(descriptor)
        return self.adapters[descriptor.key]

    def __getitem__(self, key: str) -> FakeProvider:
        return self.adapters[key]

    def total_calls(self) -> int:
        return sum(adapter.calls for adapter in self.adapters.values())


class RecordedSleep:
    """Sleep replacement that records the requested delays."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


def provider_descriptor(
    provider: ProviderIdentity = ProviderIdentity.OPENAI,
    model: str = "gpt-4o-mini",
    **kwargs: Any,
) -> ProviderDescriptor:
    kwargs.setdefault("api_key", "sk-test")
    return ProviderDescriptor(provider=provider, model=model, **kwargs)


def agent_descriptor(
    specialty: Specialty,
    agent_id: str | None = None,
    llm: ProviderDescriptor | None = None,
    **kwargs: Any,
) -> AgentDescriptor:
    agent_id = agent_id or DEFAULT_AGENT_IDS[specialty]
    return AgentDescriptor(
        id=agent_id,
        name=agent_id.replace("-", " ").title(),
        specialty=specialty,
        llm=llm or provider_descriptor(),
        **kwargs,
    )


@pytest.fixture
def fake_backends() -> FakeBackends:
    return FakeBackends()


@pytest.fixture
def sleeps() -> RecordedSleep:
    return RecordedSleep()


@pytest.fixture
def openai_descriptor() -> ProviderDescriptor:
    return provider_descriptor()


@pytest.fixture
def deepseek_descriptor() -> ProviderDescriptor:
    return provider_descriptor(ProviderIdentity.DEEPSEEK, "deepseek-chat")


@pytest.fixture
def gateway(
    fake_backends: FakeBackends,
    sleeps: RecordedSleep,
    openai_descriptor: ProviderDescriptor,
    deepseek_descriptor: ProviderDescriptor,
) -> ProviderGateway:
    """Gateway with an OpenAI primary and a DeepSeek alternate."""
    gw = ProviderGateway(
        GatewayConfig(max_attempts=3, base_delay=1.0, max_delay=30.0, backoff_factor=2.0),
        adapter_builder=fake_backends,
        sleep=sleeps,
    )
    gw.configure([openai_descriptor, deepseek_descriptor])
    return gw


@pytest.fixture
def project() -> ProjectRef:
    return ProjectRef(
        id="proj-1",
        title="The Glass Tide",
        genre="fantasy",
        target_audience="young adult",
        description="A lighthouse keeper discovers the sea is a mirror.",
    )


@pytest.fixture
def context(project: ProjectRef) -> AgentContext:
    return AgentContext(project=project, user_input="Help me sharpen the central theme")


@pytest.fixture
def agent_descriptors() -> list[AgentDescriptor]:
    """One agent per specialty, all on the OpenAI backend."""
    return [agent_descriptor(specialty) for specialty in DEFAULT_AGENT_IDS]


@pytest.fixture
def config_provider(
    agent_descriptors: list[AgentDescriptor],
    openai_descriptor: ProviderDescriptor,
    deepseek_descriptor: ProviderDescriptor,
) -> InMemoryConfigurationProvider:
    return InMemoryConfigurationProvider(
        agents=agent_descriptors,
        providers=[openai_descriptor, deepseek_descriptor],
        default_provider=OPENAI_KEY,
    )


@pytest.fixture
def store() -> InMemoryCollaborationStore:
    return InMemoryCollaborationStore()


@pytest_asyncio.fixture
async def orchestrator(
    config_provider: InMemoryConfigurationProvider,
    store: InMemoryCollaborationStore,
    fake_backends: FakeBackends,
    sleeps: RecordedSleep,
) -> AsyncGenerator[Orchestrator, None]:
    """Orchestrator over the default agents and scripted backends."""
    orch = Orchestrator(
        config_provider,
        store,
        gateway_config=GatewayConfig(max_attempts=2, base_delay=0.5),
        adapter_builder=fake_backends,
        sleep=sleeps,
    )
    yield orch
    await orch.aclose()
