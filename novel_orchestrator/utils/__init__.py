"""Utility modules for Novel Orchestrator.

This package provides utility functions and classes for:
- Configuration management
- Structured logging
- Exception handling
- LLM observability (Langfuse)
"""

from .config import (
    AppConfig,
    AppSettings,
    Environment,
    GatewaySettings,
    HistoryConfig,
    LangfuseConfig,
    LogFormat,
    LoggingConfig,
    ParsingConfig,
    ProviderCredentials,
    get_config,
    init_config,
    reset_config,
)
from .error_handlers import (
    configuration_status,
    create_error_response,
    register_error_handlers,
)
from .exceptions import (
    AgentDisabledError,
    AgentNotFoundError,
    APIError,
    BadRequestError,
    ConfigurationError,
    DependencyUnmetError,
    ExternalServiceError,
    InvalidConfigurationError,
    InvalidWorkflowError,
    MissingConfigurationError,
    NoAgentForSpecialtyError,
    NotFoundError,
    NovelOrchestratorError,
    ParseError,
    ProviderError,
    ProviderNotFoundError,
    ServiceUnavailableError,
    SessionNotFoundError,
    SessionStateError,
    WorkflowNotFoundError,
)
from .logging import (
    LoggerAdapter,
    clear_correlation_id,
    get_agent_logger,
    get_api_logger,
    get_correlation_id,
    get_logger,
    get_provider_logger,
    get_workflow_logger,
    set_correlation_id,
    setup_logging,
)
from .observability import LangfuseClient

__all__ = [
    # Config
    "AppConfig",
    "AppSettings",
    "GatewaySettings",
    "HistoryConfig",
    "LoggingConfig",
    "ParsingConfig",
    "ProviderCredentials",
    "LangfuseConfig",
    "Environment",
    "LogFormat",
    "get_config",
    "init_config",
    "reset_config",
    # Logging
    "setup_logging",
    "get_logger",
    "LoggerAdapter",
    "get_agent_logger",
    "get_workflow_logger",
    "get_provider_logger",
    "get_api_logger",
    "get_correlation_id",
    "set_correlation_id",
    "clear_correlation_id",
    # Exceptions
    "NovelOrchestratorError",
    "ConfigurationError",
    "MissingConfigurationError",
    "InvalidConfigurationError",
    "AgentNotFoundError",
    "AgentDisabledError",
    "NoAgentForSpecialtyError",
    "WorkflowNotFoundError",
    "InvalidWorkflowError",
    "ProviderNotFoundError",
    "SessionNotFoundError",
    "SessionStateError",
    "APIError",
    "BadRequestError",
    "NotFoundError",
    "ServiceUnavailableError",
    "ExternalServiceError",
    "ProviderError",
    "ParseError",
    "DependencyUnmetError",
    # Error Handlers
    "register_error_handlers",
    "create_error_response",
    "configuration_status",
    # Observability
    "LangfuseClient",
]
