"""Application configuration management.

This module provides configuration loading from environment variables and YAML files.
"""

import os
from enum import Enum
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator, model_validator


class Environment(str, Enum):
    """Application environment types."""

    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"
    TESTING = "testing"


class LogFormat(str, Enum):
    """Log output format types."""

    JSON = "json"
    CONSOLE = "console"


class AppSettings(BaseModel):
    """Application settings."""

    env: Environment = Field(
        default=Environment.DEVELOPMENT, description="Application environment"
    )
    debug: bool = Field(default=False, description="Debug mode")
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=8000, description="Server port")
    name: str = Field(default="Novel Orchestrator", description="Application name")
    version: str = Field(default="1.0.0", description="Application version")
    agents_config: str | None = Field(
        default=None, description="YAML file with agents, providers and workflows"
    )
    persist_agent_changes: bool = Field(
        default=False, description="Write agent changes back to the agents file"
    )

    @field_validator("port")
    @classmethod
    def validate_port(cls, v: int) -> int:
        if not 1 <= v <= 65535:
            raise ValueError("Port must be between 1 and 65535")
        return v


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field(default="INFO", description="Log level")
    format: LogFormat = Field(default=LogFormat.JSON, description="Log format")
    file: str | None = Field(default=None, description="Optional log file")

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"Log level must be one of {valid_levels}")
        return v_upper


class GatewaySettings(BaseModel):
    """Provider gateway retry and fallback settings."""

    default_provider: str | None = Field(
        default=None, description="Provider key used when a request names none"
    )
    max_attempts: int = Field(default=3, description="Attempts per backend")
    base_delay: float = Field(default=1.0, description="First backoff in seconds")
    max_delay: float = Field(default=30.0, description="Backoff ceiling in seconds")
    backoff_factor: float = Field(default=2.0, description="Backoff multiplier")
    fallback_enabled: bool = Field(default=True, description="Try one alternate backend")

    @field_validator("max_attempts")
    @classmethod
    def validate_attempts(cls, v: int) -> int:
        if v < 1:
            raise ValueError("max_attempts must be at least 1")
        return v

    @field_validator("base_delay", "max_delay")
    @classmethod
    def validate_delay(cls, v: float) -> float:
        if v < 0:
            raise ValueError("Delays must not be negative")
        return v

    @field_validator("backoff_factor")
    @classmethod
    def validate_factor(cls, v: float) -> float:
        if v <= 1.0:
            raise ValueError("backoff_factor must be greater than 1")
        return v


class HistoryConfig(BaseModel):
    """Conversation history settings."""

    limit: int = Field(default=20, description="Prior turns carried into each call")

    @field_validator("limit")
    @classmethod
    def validate_limit(cls, v: int) -> int:
        if not 0 <= v <= 20:
            raise ValueError("History limit must be between 0 and 20")
        return v


class ParsingConfig(BaseModel):
    """Section markers agents ask models to use."""

    preset: str = Field(default="default", description="default or cjk")
    suggestions_marker: str | None = Field(default=None, description="Custom suggestions marker")
    data_marker: str | None = Field(default=None, description="Custom data marker")

    @model_validator(mode="after")
    def validate_markers(self) -> "ParsingConfig":
        if self.preset not in {"default", "cjk"}:
            raise ValueError("Parsing preset must be 'default' or 'cjk'")
        if (self.suggestions_marker is None) != (self.data_marker is None):
            raise ValueError("suggestions_marker and data_marker must be set together")
        return self


class ProviderCredentials(BaseModel):
    """Credentials and endpoints for model services, read from the environment."""

    openai_api_key: str = Field(default="", description="OpenAI API key")
    deepseek_api_key: str = Field(default="", description="DeepSeek API key")
    openrouter_api_key: str = Field(default="", description="OpenRouter API key")
    anthropic_api_key: str = Field(default="", description="Anthropic API key")
    ollama_base_url: str = Field(
        default="http://localhost:11434", description="Ollama server URL"
    )


class LangfuseConfig(BaseModel):
    """Langfuse observability configuration."""

    enabled: bool = Field(default=False, description="Enable Langfuse")
    public_key: str = Field(default="", description="Langfuse public key")
    secret_key: str = Field(default="", description="Langfuse secret key")
    host: str = Field(
        default="https://cloud.langfuse.com", description="Langfuse host URL"
    )


class AppConfig(BaseModel):
    """Main application configuration."""

    app: AppSettings = Field(default_factory=AppSettings)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    gateway: GatewaySettings = Field(default_factory=GatewaySettings)
    history: HistoryConfig = Field(default_factory=HistoryConfig)
    parsing: ParsingConfig = Field(default_factory=ParsingConfig)
    providers: ProviderCredentials = Field(default_factory=ProviderCredentials)
    langfuse: LangfuseConfig = Field(default_factory=LangfuseConfig)

    @classmethod
    def from_env(cls, env_file: str | Path | None = None) -> "AppConfig":
        """Load configuration from environment variables only.

        Args:
            env_file: Optional path to .env file

        Returns:
            AppConfig instance populated from environment
        """
        if env_file:
            load_dotenv(env_file)
        else:
            load_dotenv()
        return cls._apply_env_overrides(cls())

    @classmethod
    def from_yaml(cls, yaml_path: str | Path) -> "AppConfig":
        """Load configuration from YAML file.

        Args:
            yaml_path: Path to YAML configuration file

        Returns:
            AppConfig instance populated from YAML

        Raises:
            FileNotFoundError: If YAML file doesn't exist
            ValueError: If YAML content is invalid
        """
        path = Path(yaml_path)
        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {yaml_path}")

        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)

        if data is None:
            return cls()
        if not isinstance(data, dict):
            raise ValueError("YAML content must be a dictionary")

        return cls.model_validate(data)

    @classmethod
    def load(
        cls,
        yaml_path: str | Path | None = None,
        env_file: str | Path | None = None,
    ) -> "AppConfig":
        """Load configuration from YAML and environment variables.

        Environment variables take precedence over YAML values.

        Args:
            yaml_path: Optional path to YAML configuration file
            env_file: Optional path to .env file

        Returns:
            AppConfig instance with merged configuration
        """
        config = cls.from_yaml(yaml_path) if yaml_path else cls()

        if env_file:
            load_dotenv(env_file)
        else:
            load_dotenv()

        return cls._apply_env_overrides(config)

    @classmethod
    def _apply_env_overrides(cls, config: "AppConfig") -> "AppConfig":
        """Apply environment variable overrides to existing config."""
        data: dict[str, Any] = config.model_dump()

        # App settings
        if os.getenv("APP_ENV"):
            data["app"]["env"] = os.getenv("APP_ENV")
        if os.getenv("APP_DEBUG"):
            data["app"]["debug"] = os.getenv("APP_DEBUG", "").lower() == "true"
        if os.getenv("APP_HOST"):
            data["app"]["host"] = os.getenv("APP_HOST")
        if os.getenv("APP_PORT"):
            data["app"]["port"] = int(os.getenv("APP_PORT", "8000"))
        if os.getenv("AGENTS_CONFIG"):
            data["app"]["agents_config"] = os.getenv("AGENTS_CONFIG")

        # Logging
        if os.getenv("LOG_LEVEL"):
            data["logging"]["level"] = os.getenv("LOG_LEVEL", "INFO")
        if os.getenv("LOG_FORMAT"):
            data["logging"]["format"] = os.getenv("LOG_FORMAT", "json")

        # Gateway
        if os.getenv("DEFAULT_PROVIDER_KEY"):
            data["gateway"]["default_provider"] = os.getenv("DEFAULT_PROVIDER_KEY")
        if os.getenv("GATEWAY_MAX_ATTEMPTS"):
            data["gateway"]["max_attempts"] = int(os.getenv("GATEWAY_MAX_ATTEMPTS", "3"))
        if os.getenv("GATEWAY_BASE_DELAY"):
            data["gateway"]["base_delay"] = float(os.getenv("GATEWAY_BASE_DELAY", "1.0"))

        # Provider credentials
        for name in ("openai", "deepseek", "openrouter", "anthropic"):
            value = os.getenv(f"{name.upper()}_API_KEY")
            if value:
                data["providers"][f"{name}_api_key"] = value
        if os.getenv("OLLAMA_BASE_URL"):
            data["providers"]["ollama_base_url"] = os.getenv("OLLAMA_BASE_URL", "")

        # Langfuse
        if os.getenv("LANGFUSE_ENABLED"):
            data["langfuse"]["enabled"] = (
                os.getenv("LANGFUSE_ENABLED", "").lower() == "true"
            )
        if os.getenv("LANGFUSE_PUBLIC_KEY"):
            data["langfuse"]["public_key"] = os.getenv("LANGFUSE_PUBLIC_KEY", "")
        if os.getenv("LANGFUSE_SECRET_KEY"):
            data["langfuse"]["secret_key"] = os.getenv("LANGFUSE_SECRET_KEY", "")
        if os.getenv("LANGFUSE_HOST"):
            data["langfuse"]["host"] = os.getenv("LANGFUSE_HOST", "")

        return cls.model_validate(data)


# Global configuration instance
_config: AppConfig | None = None


def get_config() -> AppConfig:
    """Get the global configuration instance.

    Returns:
        The global AppConfig instance

    Raises:
        RuntimeError: If configuration has not been initialized
    """
    global _config
    if _config is None:
        raise RuntimeError("Configuration not initialized. Call init_config() first.")
    return _config


def init_config(
    yaml_path: str | Path | None = None,
    env_file: str | Path | None = None,
) -> AppConfig:
    """Initialize the global configuration.

    Args:
        yaml_path: Optional path to YAML configuration file
        env_file: Optional path to .env file

    Returns:
        The initialized AppConfig instance
    """
    global _config
    _config = AppConfig.load(yaml_path=yaml_path, env_file=env_file)
    return _config


def reset_config() -> None:
    """Reset the global configuration (mainly for testing)."""
    global _config
    _config = None
