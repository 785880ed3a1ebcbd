"""Novel Orchestrator - Main Application Entry Point.

This module creates and configures the FastAPI application with all necessary
middleware, routers, and startup/shutdown handlers.
"""

import re
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any
from uuid import uuid4

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from novel_orchestrator.agents import SectionMarkers
from novel_orchestrator.api.routes import api_router
from novel_orchestrator.core import (
    InMemoryCollaborationStore,
    Orchestrator,
    YamlConfigurationProvider,
)
from novel_orchestrator.llm import BaseLLMProvider, GatewayConfig, LLMProviderFactory
from novel_orchestrator.models import ProviderDescriptor, ProviderIdentity
from novel_orchestrator.utils.config import (
    AppConfig,
    Environment,
    LogFormat,
    ParsingConfig,
    ProviderCredentials,
    get_config,
    init_config,
)
from novel_orchestrator.utils.error_handlers import register_error_handlers
from novel_orchestrator.utils.logging import (
    clear_correlation_id,
    get_api_logger,
    get_logger,
    set_correlation_id,
    setup_logging,
)
from novel_orchestrator.utils.observability import LangfuseClient

logger = get_logger(__name__)


def get_project_root() -> Path:
    """Get the project root directory."""
    return Path(__file__).parent.parent


def get_config_path() -> Path:
    """Get the path to the app.yaml configuration file."""
    return get_project_root() / "configs" / "app.yaml"


def get_agents_config_path(config: AppConfig) -> Path:
    """Get the path to the agents/providers/workflows file."""
    if config.app.agents_config:
        path = Path(config.app.agents_config)
        return path if path.is_absolute() else get_project_root() / path
    return get_project_root() / "configs" / "agents.yaml"


def build_markers(parsing: ParsingConfig) -> SectionMarkers:
    """Section markers from the parsing settings."""
    if parsing.suggestions_marker and parsing.data_marker:
        boundary = "|".join(
            re.escape(marker) for marker in (parsing.suggestions_marker, parsing.data_marker)
        )
        return SectionMarkers(
            suggestions=parsing.suggestions_marker,
            data=parsing.data_marker,
            boundary=boundary,
        )
    if parsing.preset == "cjk":
        return SectionMarkers.cjk()
    return SectionMarkers()


def credential_adapter_builder(credentials: ProviderCredentials):
    """Adapter builder that fills missing keys and URLs from the environment."""
    api_keys = {
        ProviderIdentity.OPENAI: credentials.openai_api_key,
        ProviderIdentity.DEEPSEEK: credentials.deepseek_api_key,
        ProviderIdentity.OPENROUTER: credentials.openrouter_api_key,
        ProviderIdentity.ANTHROPIC: credentials.anthropic_api_key,
    }

    def build(descriptor: ProviderDescriptor) -> BaseLLMProvider:
        updates: dict[str, Any] = {}
        if not descriptor.api_key and api_keys.get(descriptor.provider):
            updates["api_key"] = api_keys[descriptor.provider]
        if descriptor.provider == ProviderIdentity.OLLAMA and not descriptor.base_url:
            updates["base_url"] = credentials.ollama_base_url
        if updates:
            descriptor = descriptor.model_copy(update=updates)
        return LLMProviderFactory.create(descriptor)

    return build


def build_orchestrator(config: AppConfig) -> Orchestrator:
    """Wire the orchestrator from application settings."""
    agents_path = get_agents_config_path(config)
    config_provider = YamlConfigurationProvider(
        agents_path, writable=config.app.persist_agent_changes
    )
    tracer = LangfuseClient(
        public_key=config.langfuse.public_key,
        secret_key=config.langfuse.secret_key,
        host=config.langfuse.host,
        enabled=config.langfuse.enabled,
    )
    gateway = config.gateway
    gateway_config = GatewayConfig(
        max_attempts=gateway.max_attempts,
        base_delay=gateway.base_delay,
        max_delay=gateway.max_delay,
        backoff_factor=gateway.backoff_factor,
        fallback_enabled=gateway.fallback_enabled,
    )

    orchestrator = Orchestrator(
        config_provider,
        InMemoryCollaborationStore(),
        gateway_config=gateway_config,
        markers=build_markers(config.parsing),
        history_limit=config.history.limit,
        tracer=tracer,
        adapter_builder=credential_adapter_builder(config.providers),
    )
    if gateway.default_provider:
        orchestrator.gateway.set_default(gateway.default_provider)
    return orchestrator


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan context manager.

    Builds the orchestrator on startup unless one was injected, and closes it
    on shutdown.
    """
    config: AppConfig = app.state.config if hasattr(app.state, "config") else AppConfig()

    logger.info(
        "Starting Novel Orchestrator",
        app_name=config.app.name,
        version=config.app.version,
        environment=config.app.env.value,
    )

    if getattr(app.state, "orchestrator", None) is None:
        app.state.orchestrator = build_orchestrator(config)

    orchestrator: Orchestrator = app.state.orchestrator
    logger.info(
        "Novel Orchestrator started successfully",
        agents=len(orchestrator.list_available_agents()),
        providers=len(orchestrator.list_providers()),
        host=config.app.host,
        port=config.app.port,
    )

    yield

    logger.info("Shutting down Novel Orchestrator")
    await orchestrator.aclose()
    orchestrator.tracer.shutdown()
    app.state.orchestrator = None
    logger.info("Novel Orchestrator shutdown complete")


def create_app(
    config_path: str | Path | None = None,
    env_file: str | Path | None = None,
    orchestrator: Orchestrator | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        config_path: Optional path to YAML configuration file.
        env_file: Optional path to .env file.
        orchestrator: Prebuilt orchestrator; one is built from configuration
            at startup when omitted.

    Returns:
        Configured FastAPI application instance.
    """
    # Load configuration
    if config_path is None:
        default_config_path = get_config_path()
        if default_config_path.exists():
            config_path = default_config_path

    config = init_config(yaml_path=config_path, env_file=env_file)

    # Setup logging
    setup_logging(
        level=config.logging.level,
        json_format=config.logging.format == LogFormat.JSON,
        log_file=config.logging.file,
    )

    # Create FastAPI app
    app = FastAPI(
        title=config.app.name,
        description="Specialty agents that collaborate on planning and writing fiction",
        version=config.app.version,
        docs_url="/docs" if config.app.debug else None,
        redoc_url="/redoc" if config.app.debug else None,
        openapi_url="/openapi.json" if config.app.debug else None,
        lifespan=lifespan,
    )

    # Store config in app state
    app.state.config = config
    app.state.orchestrator = orchestrator

    # Add CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if config.app.env == Environment.DEVELOPMENT else [],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    api_logger = get_api_logger()

    # Add request ID middleware
    @app.middleware("http")
    async def add_request_id(request: Request, call_next: Any) -> Any:
        """Add request ID to each request for tracing."""
        request_id = request.headers.get("X-Request-ID", str(uuid4()))
        request.state.request_id = request_id
        set_correlation_id(request_id)

        response = await call_next(request)

        response.headers["X-Request-ID"] = request_id
        clear_correlation_id()

        return response

    # Add logging middleware
    @app.middleware("http")
    async def log_requests(request: Request, call_next: Any) -> Any:
        """Log incoming requests and responses."""
        api_logger.info(
            "Request received",
            method=request.method,
            path=str(request.url.path),
            client=request.client.host if request.client else "unknown",
        )

        response = await call_next(request)

        api_logger.info(
            "Response sent",
            method=request.method,
            path=str(request.url.path),
            status_code=response.status_code,
        )

        return response

    # Register error handlers
    register_error_handlers(app)

    # Include API routers
    app.include_router(api_router)

    # Root endpoint
    @app.get("/", tags=["Root"])
    async def root() -> dict[str, Any]:
        """Root endpoint with basic information."""
        return {
            "name": config.app.name,
            "version": config.app.version,
            "status": "running",
            "docs": "/docs" if config.app.debug else "disabled",
        }

    # Readiness probe
    @app.get("/ready", tags=["Health"])
    async def readiness(request: Request) -> JSONResponse:
        """Kubernetes readiness probe."""
        if getattr(request.app.state, "orchestrator", None) is None:
            return JSONResponse(
                status_code=503,
                content={"status": "not_ready", "message": "Service not initialized"},
            )

        return JSONResponse(
            status_code=200,
            content={"status": "ready"},
        )

    # Liveness probe
    @app.get("/live", tags=["Health"])
    async def liveness() -> JSONResponse:
        """Kubernetes liveness probe."""
        return JSONResponse(
            status_code=200,
            content={"status": "alive"},
        )

    return app


def run_dev_server() -> None:
    """Run the development server with hot-reload."""
    import uvicorn

    config = get_config()

    uvicorn.run(
        "novel_orchestrator.main:create_app",
        factory=True,
        host=config.app.host,
        port=config.app.port,
        reload=True,
        reload_dirs=["novel_orchestrator"],
        log_level="info",
    )


def run_prod_server() -> None:
    """Run the production server."""
    import uvicorn

    config = get_config()

    uvicorn.run(
        "novel_orchestrator.main:create_app",
        factory=True,
        host=config.app.host,
        port=config.app.port,
        reload=False,
        workers=4,
        log_level="warning",
        access_log=False,
    )


def main() -> None:
    """Console entry point."""
    config = init_config(
        yaml_path=get_config_path() if get_config_path().exists() else None
    )
    if config.app.env == Environment.PRODUCTION:
        run_prod_server()
    else:
        run_dev_server()


if __name__ == "__main__":
    main()
