"""Unit tests for utility modules.

Tests for config, logging, exceptions, error_handlers, and observability.
"""

import os
from unittest.mock import MagicMock, patch

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from novel_orchestrator.utils.config import (
    AppConfig,
    AppSettings,
    Environment,
    GatewaySettings,
    HistoryConfig,
    LogFormat,
    LoggingConfig,
    ParsingConfig,
    get_config,
    init_config,
    reset_config,
)
from novel_orchestrator.utils.error_handlers import (
    configuration_status,
    create_error_response,
    register_error_handlers,
)
from novel_orchestrator.utils.exceptions import (
    AgentDisabledError,
    AgentNotFoundError,
    BadRequestError,
    ConfigurationError,
    InvalidConfigurationError,
    InvalidWorkflowError,
    MissingConfigurationError,
    NoAgentForSpecialtyError,
    NotFoundError,
    NovelOrchestratorError,
    ProviderError,
    ProviderNotFoundError,
    ServiceUnavailableError,
    SessionNotFoundError,
    SessionStateError,
    WorkflowNotFoundError,
)
from novel_orchestrator.utils.logging import (
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
from novel_orchestrator.utils.observability import LangfuseClient

# ============================================================================
# Config Tests
# ============================================================================


class TestAppSettings:
    """Tests for AppSettings model."""

    def test_default_values(self):
        """Test default values are set correctly."""
        settings = AppSettings()
        assert settings.env == Environment.DEVELOPMENT
        assert settings.debug is False
        assert settings.port == 8000
        assert settings.agents_config is None
        assert settings.persist_agent_changes is False

    def test_invalid_port(self):
        """Test invalid port raises error."""
        with pytest.raises(ValueError):
            AppSettings(port=0)
        with pytest.raises(ValueError):
            AppSettings(port=70000)


class TestLoggingConfig:
    """Tests for LoggingConfig model."""

    def test_level_is_normalized(self):
        assert LoggingConfig(level="debug").level == "DEBUG"

    def test_invalid_level(self):
        """Test invalid log level raises error."""
        with pytest.raises(ValueError):
            LoggingConfig(level="INVALID")


class TestGatewaySettings:
    """Tests for GatewaySettings model."""

    def test_default_values(self):
        settings = GatewaySettings()
        assert settings.max_attempts == 3
        assert settings.base_delay == 1.0
        assert settings.max_delay == 30.0
        assert settings.backoff_factor == 2.0
        assert settings.fallback_enabled is True

    @pytest.mark.parametrize(
        "kwargs",
        [{"max_attempts": 0}, {"base_delay": -0.5}, {"backoff_factor": 1.0}],
    )
    def test_invalid_values(self, kwargs):
        with pytest.raises(ValueError):
            GatewaySettings(**kwargs)


class TestHistoryAndParsing:
    """Tests for HistoryConfig and ParsingConfig."""

    def test_history_limit_bounds(self):
        assert HistoryConfig(limit=0).limit == 0
        with pytest.raises(ValueError):
            HistoryConfig(limit=21)

    def test_unknown_preset(self):
        with pytest.raises(ValueError):
            ParsingConfig(preset="emoji")

    def test_custom_markers_come_in_pairs(self):
        ParsingConfig(suggestions_marker="<<S>>", data_marker="<<D>>")
        with pytest.raises(ValueError):
            ParsingConfig(suggestions_marker="<<S>>")


class TestAppConfig:
    """Tests for AppConfig loading."""

    def test_from_yaml(self, tmp_path):
        """Test loading configuration from a YAML file."""
        path = tmp_path / "app.yaml"
        path.write_text(
            "app:\n  env: testing\n  agents_config: agents.yaml\n"
            "gateway:\n  max_attempts: 5\n"
            "logging:\n  format: console\n",
            encoding="utf-8",
        )

        config = AppConfig.from_yaml(path)

        assert config.app.env == Environment.TESTING
        assert config.app.agents_config == "agents.yaml"
        assert config.gateway.max_attempts == 5
        assert config.logging.format == LogFormat.CONSOLE

    def test_from_yaml_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            AppConfig.from_yaml(tmp_path / "absent.yaml")

    def test_from_yaml_empty_file(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("", encoding="utf-8")
        assert AppConfig.from_yaml(path) == AppConfig()

    def test_from_yaml_non_mapping(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n", encoding="utf-8")
        with pytest.raises(ValueError):
            AppConfig.from_yaml(path)

    def test_env_overrides_yaml(self, tmp_path):
        """Test environment variables take precedence over YAML values."""
        path = tmp_path / "app.yaml"
        path.write_text("app:\n  port: 8000\ngateway:\n  max_attempts: 3\n", encoding="utf-8")
        env = {
            "APP_PORT": "9100",
            "GATEWAY_MAX_ATTEMPTS": "4",
            "DEFAULT_PROVIDER_KEY": "deepseek-deepseek-chat",
            "DEEPSEEK_API_KEY": "ds-key",
            "OLLAMA_BASE_URL": "http://ollama:11434",
            "LANGFUSE_ENABLED": "true",
        }

        with patch.dict(os.environ, env):
            config = AppConfig.load(yaml_path=path, env_file=tmp_path / "missing.env")

        assert config.app.port == 9100
        assert config.gateway.max_attempts == 4
        assert config.gateway.default_provider == "deepseek-deepseek-chat"
        assert config.providers.deepseek_api_key == "ds-key"
        assert config.providers.ollama_base_url == "http://ollama:11434"
        assert config.langfuse.enabled is True

    def test_env_file_is_loaded(self, tmp_path):
        env_file = tmp_path / ".env"
        env_file.write_text("OPENROUTER_API_KEY=or-from-file\n", encoding="utf-8")

        with patch.dict(os.environ, {}, clear=False):
            os.environ.pop("OPENROUTER_API_KEY", None)
            config = AppConfig.from_env(env_file)

        assert config.providers.openrouter_api_key == "or-from-file"


class TestGlobalConfig:
    """Tests for the global configuration instance."""

    def setup_method(self):
        reset_config()

    def teardown_method(self):
        reset_config()

    def test_get_before_init_raises(self):
        with pytest.raises(RuntimeError):
            get_config()

    def test_init_then_get(self, tmp_path):
        config = init_config(env_file=tmp_path / "missing.env")
        assert get_config() is config


# ============================================================================
# Exception Tests
# ============================================================================


class TestExceptions:
    """Tests for the exception hierarchy."""

    def test_to_dict(self):
        error = NovelOrchestratorError("boom", details={"k": 1}, cause=KeyError("x"))

        result = error.to_dict()

        assert result["error"] == "NovelOrchestratorError"
        assert result["message"] == "boom"
        assert result["details"] == {"k": 1}
        assert "x" in result["cause"]

    @pytest.mark.parametrize(
        "error",
        [
            MissingConfigurationError("agents"),
            InvalidConfigurationError("temperature", 9),
            AgentNotFoundError("a"),
            AgentDisabledError("a"),
            NoAgentForSpecialtyError("plot"),
            WorkflowNotFoundError("w"),
            InvalidWorkflowError("w", "cycle"),
            ProviderNotFoundError("openai-x"),
            SessionNotFoundError("s"),
            SessionStateError("s", "paused", "pause"),
        ],
    )
    def test_configuration_errors(self, error):
        assert isinstance(error, ConfigurationError)
        assert error.message

    def test_provider_error(self):
        error = ProviderError("slow", provider="openai", code="TIMEOUT", retryable=True)

        assert error.retryable is True
        assert error.details == {"provider": "openai", "code": "TIMEOUT"}
        assert not isinstance(error, ConfigurationError)

    def test_no_provider_available(self):
        error = ProviderNotFoundError(None, code="NO_PROVIDER_AVAILABLE")
        assert error.message == "No AI provider is available"

    def test_api_errors(self):
        assert BadRequestError().status_code == 400
        assert NotFoundError("agent", "a").status_code == 404
        assert ServiceUnavailableError("orchestrator").details == {"service": "orchestrator"}


# ============================================================================
# Error Handler Tests
# ============================================================================


class TestErrorHandlers:
    """Tests for error handler functions."""

    def test_create_error_response(self):
        response = create_error_response(
            status_code=400, error="BadRequest", message="nope", request_id="req-1"
        )

        assert response.status_code == 400
        assert b'"request_id":"req-1"' in response.body
        assert b'"success":false' in response.body

    @pytest.mark.parametrize(
        "error,status",
        [
            (AgentNotFoundError("a"), 404),
            (WorkflowNotFoundError("w"), 404),
            (SessionNotFoundError("s"), 404),
            (ProviderNotFoundError("openai-x"), 404),
            (ProviderNotFoundError(None, code="NO_PROVIDER_AVAILABLE"), 400),
            (AgentDisabledError("a"), 400),
            (SessionStateError("s", "completed", "resume"), 400),
            (InvalidConfigurationError("k", "v"), 400),
        ],
    )
    def test_configuration_status(self, error, status):
        assert configuration_status(error) == status

    @pytest.fixture
    def client(self):
        app = FastAPI()
        register_error_handlers(app)

        @app.get("/disabled")
        async def disabled():
            raise AgentDisabledError("plot-advisor")

        @app.get("/provider")
        async def provider():
            raise ProviderError("down", provider="openai", code="ALL_PROVIDERS_FAILED")

        @app.get("/crash")
        async def crash():
            raise RuntimeError("unexpected")

        return TestClient(app, raise_server_exceptions=False)

    def test_configuration_error_envelope(self, client):
        response = client.get("/disabled")

        assert response.status_code == 400
        body = response.json()
        assert body["success"] is False
        assert body["error"]["code"] == "AgentDisabledError"
        assert body["error"]["details"] == {"agent_id": "plot-advisor"}

    def test_provider_error_is_bad_gateway(self, client):
        response = client.get("/provider")

        assert response.status_code == 502
        assert response.json()["error"]["details"]["code"] == "ALL_PROVIDERS_FAILED"

    def test_unexpected_error(self, client):
        response = client.get("/crash")

        assert response.status_code == 500
        assert response.json()["error"]["code"] == "InternalServerError"


# ============================================================================
# Logging Tests
# ============================================================================


class TestLogging:
    """Tests for structured logging helpers."""

    def teardown_method(self):
        clear_correlation_id()

    def test_setup_logging(self, tmp_path):
        setup_logging(level="DEBUG", json_format=False, log_file=str(tmp_path / "app.log"))
        assert get_logger("test") is not None

    def test_correlation_id(self):
        assert get_correlation_id() is None

        generated = set_correlation_id()
        assert get_correlation_id() == generated

        set_correlation_id("req-42")
        assert get_correlation_id() == "req-42"

        clear_correlation_id()
        assert get_correlation_id() is None

    def test_adapter_bind_merges_context(self):
        adapter = LoggerAdapter("test", agent_id="a")
        bound = adapter.bind(step="theme")

        assert bound._context == {"agent_id": "a", "step": "theme"}
        assert adapter._context == {"agent_id": "a"}

    def test_adapter_forwards_context(self):
        adapter = LoggerAdapter("test", agent_id="a")
        adapter._logger = MagicMock()

        adapter.info("called", latency_ms=3)

        adapter._logger.info.assert_called_once_with("called", agent_id="a", latency_ms=3)

    def test_domain_loggers(self):
        assert get_agent_logger("a", "Agent A", "theme")._context == {
            "agent_id": "a",
            "agent_name": "Agent A",
            "specialty": "theme",
        }
        assert get_workflow_logger("w", "r")._context == {"workflow_id": "w", "run_id": "r"}
        assert get_provider_logger("openai-x")._context == {"provider_key": "openai-x"}
        assert get_api_logger()._context == {}


# ============================================================================
# Observability Tests
# ============================================================================


class TestLangfuseClient:
    """Tests for LangfuseClient."""

    def test_disabled_client_is_a_no_op(self):
        client = LangfuseClient.disabled()

        assert client.active is False
        assert client.start_span("s", "run") is None
        assert client.start_generation("g", "openai-x", "x", []) is None
        client.end_span("s")
        client.end_generation("g", output="ok")
        client.flush()
        client.shutdown()

    def test_missing_credentials_disable_tracking(self):
        client = LangfuseClient(enabled=True)
        assert client.enabled is False

    def test_span_lifecycle(self):
        client = LangfuseClient.disabled()
        client.enabled = True
        client._client = MagicMock()

        assert client.start_span("run-1", "workflow", {"x": 1}) == "run-1"
        client.end_span("run-1", output={"done": True}, status="success")

        span = client._client.start_span.return_value
        span.update.assert_called_once_with(
            output={"done": True}, level="DEFAULT", metadata={"status": "success"}
        )
        span.end.assert_called_once()

    def test_generation_error(self):
        client = LangfuseClient.disabled()
        client.enabled = True
        client._client = MagicMock()

        client.start_generation("g-1", "openai-x", "x", [{"role": "user", "content": "hi"}])
        client.end_generation("g-1", error="timeout")

        generation = client._client.start_generation.return_value
        generation.update.assert_called_once_with(level="ERROR", status_message="timeout")
