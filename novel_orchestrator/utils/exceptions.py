"""Custom exception classes for the Novel Orchestrator.

This module provides the unified exception hierarchy for the application.
Configuration errors are immediate caller mistakes (unknown or disabled ids,
malformed definitions), provider errors come from the model backends, and the
remaining classes are recovered locally by the component that raises them.
"""

from typing import Any


class NovelOrchestratorError(Exception):
    """Base exception for all Novel Orchestrator errors.

    All custom exceptions in this system should inherit from this class.
    """

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ):
        """Initialize the exception.

        Args:
            message: Human-readable error message
            details: Optional dictionary with additional error details
            cause: Optional original exception that caused this error
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.cause = cause

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for API responses."""
        result: dict[str, Any] = {
            "error": self.__class__.__name__,
            "message": self.message,
        }
        if self.details:
            result["details"] = self.details
        if self.cause:
            result["cause"] = str(self.cause)
        return result


# ============================================================================
# Configuration Errors
# ============================================================================


class ConfigurationError(NovelOrchestratorError):
    """Raised for unknown, disabled or malformed configuration references."""

    pass


class MissingConfigurationError(ConfigurationError):
    """Raised when a required configuration is missing."""

    def __init__(self, config_key: str, message: str | None = None):
        self.config_key = config_key
        msg = message or f"Missing required configuration: {config_key}"
        super().__init__(msg, details={"config_key": config_key})


class InvalidConfigurationError(ConfigurationError):
    """Raised when a configuration value is invalid."""

    def __init__(self, config_key: str, value: Any, message: str | None = None):
        self.config_key = config_key
        self.value = value
        msg = message or f"Invalid configuration value for {config_key}: {value}"
        super().__init__(msg, details={"config_key": config_key, "value": str(value)})


class AgentNotFoundError(ConfigurationError):
    """Raised when an agent id is not registered."""

    def __init__(self, agent_id: str):
        self.agent_id = agent_id
        super().__init__(f"Agent not found: {agent_id}", details={"agent_id": agent_id})


class AgentDisabledError(ConfigurationError):
    """Raised when an agent id exists but is disabled."""

    def __init__(self, agent_id: str):
        self.agent_id = agent_id
        super().__init__(f"Agent is disabled: {agent_id}", details={"agent_id": agent_id})


class NoAgentForSpecialtyError(ConfigurationError):
    """Raised when no enabled agent serves a specialty."""

    def __init__(self, specialty: str):
        self.specialty = specialty
        super().__init__(
            f"No enabled agent for specialty: {specialty}",
            details={"specialty": specialty},
        )


class WorkflowNotFoundError(ConfigurationError):
    """Raised when a workflow id is unknown."""

    def __init__(self, workflow_id: str):
        self.workflow_id = workflow_id
        super().__init__(
            f"Workflow not found: {workflow_id}", details={"workflow_id": workflow_id}
        )


class InvalidWorkflowError(ConfigurationError):
    """Raised when a workflow definition is not a valid dependency DAG."""

    def __init__(self, workflow_id: str, reason: str):
        self.workflow_id = workflow_id
        self.reason = reason
        super().__init__(
            f"Invalid workflow {workflow_id}: {reason}",
            details={"workflow_id": workflow_id, "reason": reason},
        )


class ProviderNotFoundError(ConfigurationError):
    """Raised when a provider key does not name a configured backend."""

    def __init__(self, provider_key: str | None, code: str = "PROVIDER_NOT_FOUND"):
        self.provider_key = provider_key
        self.code = code
        if provider_key is None:
            msg = "No AI provider is available"
        else:
            msg = f"Provider not found: {provider_key}"
        super().__init__(msg, details={"provider_key": provider_key, "code": code})


class SessionNotFoundError(ConfigurationError):
    """Raised when a collaboration session id is unknown."""

    def __init__(self, session_id: str):
        self.session_id = session_id
        super().__init__(
            f"Collaboration session not found: {session_id}",
            details={"session_id": session_id},
        )


class SessionStateError(ConfigurationError):
    """Raised when an operation is invalid for the session's status."""

    def __init__(self, session_id: str, current_state: str, operation: str):
        self.session_id = session_id
        self.current_state = current_state
        self.operation = operation
        super().__init__(
            f"Cannot {operation} session {session_id} in state {current_state}",
            details={
                "session_id": session_id,
                "state": current_state,
                "operation": operation,
            },
        )


# ============================================================================
# API Errors
# ============================================================================


class APIError(NovelOrchestratorError):
    """Base class for API-related errors."""

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        details: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message, details, cause)
        self.status_code = status_code


class BadRequestError(APIError):
    """Raised for bad request errors (400)."""

    def __init__(
        self,
        message: str = "Bad request",
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message, status_code=400, details=details)


class NotFoundError(APIError):
    """Raised when a resource is not found (404)."""

    def __init__(
        self,
        resource_type: str,
        resource_id: str,
        message: str | None = None,
    ):
        self.resource_type = resource_type
        self.resource_id = resource_id
        msg = message or f"{resource_type} not found: {resource_id}"
        super().__init__(
            msg,
            status_code=404,
            details={"resource_type": resource_type, "resource_id": resource_id},
        )


class ServiceUnavailableError(APIError):
    """Raised when a service is unavailable (503)."""

    def __init__(
        self,
        service_name: str,
        message: str | None = None,
    ):
        msg = message or f"Service unavailable: {service_name}"
        super().__init__(msg, status_code=503, details={"service": service_name})
        self.service_name = service_name


# ============================================================================
# LLM/External Service Errors
# ============================================================================


class ExternalServiceError(NovelOrchestratorError):
    """Base class for external service errors."""

    pass


class ProviderError(ExternalServiceError):
    """Raised when a model backend call fails.

    ``retryable`` tells the gateway whether another attempt against the same
    backend may succeed (timeouts, transient network errors, rate limits,
    server errors). Authentication and configuration failures are terminal.
    """

    def __init__(
        self,
        message: str,
        provider: str,
        code: str = "REQUEST_FAILED",
        status_code: int | None = None,
        retryable: bool = False,
        model: str | None = None,
        cause: Exception | None = None,
    ):
        details: dict[str, Any] = {"provider": provider, "code": code}
        if status_code is not None:
            details["status_code"] = status_code
        if model:
            details["model"] = model
        super().__init__(message, details=details, cause=cause)
        self.provider = provider
        self.code = code
        self.status_code = status_code
        self.retryable = retryable
        self.model = model


# ============================================================================
# Locally recovered errors
# ============================================================================


class ParseError(NovelOrchestratorError):
    """Raised when a structured-output section cannot be decoded.

    Always handled by the parser, which falls back to an empty payload.
    """

    def __init__(self, section: str, cause: Exception | None = None):
        self.section = section
        super().__init__(
            f"Could not decode {section} section", details={"section": section}, cause=cause
        )


class DependencyUnmetError(NovelOrchestratorError):
    """Raised inside the workflow engine when a step's prerequisites are missing.

    The engine logs it and skips the step; it never escapes ``execute``.
    """

    def __init__(self, step_id: str, missing: list[str]):
        self.step_id = step_id
        self.missing = missing
        super().__init__(
            f"Step {step_id} has unmet dependencies: {', '.join(missing)}",
            details={"step_id": step_id, "missing": missing},
        )
