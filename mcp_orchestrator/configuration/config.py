"""Configuration management for the MCP orchestrator."""

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings."""

    # Tool server configuration file (mcpServers / aiModels)
    mcp_config_path: str = Field(default="conf.json", alias="MCP_CONFIG_PATH")

    # Stdio protocol settings
    mcp_request_timeout: float = Field(default=30.0, alias="MCP_REQUEST_TIMEOUT")
    mcp_startup_delay: float = Field(default=2.0, alias="MCP_STARTUP_DELAY")
    mcp_init_attempts: int = Field(default=3, alias="MCP_INIT_ATTEMPTS")
    mcp_init_retry_delay: float = Field(default=1.0, alias="MCP_INIT_RETRY_DELAY")
    mcp_max_fragment_lines: int = Field(
        default=8,
        alias="MCP_MAX_FRAGMENT_LINES",
        description="Unparsable lines joined while recovering a multi-line message "
        "before the fragment is discarded.",
    )

    # Document retrieval HTTP API
    document_api_url: str = Field(default="http://localhost:3001", alias="DOCUMENT_API_URL")
    document_api_username: str = Field(default="admin", alias="DOCUMENT_API_USERNAME")
    document_api_password: str = Field(default="admin", alias="DOCUMENT_API_PASSWORD")
    document_api_timeout: float = Field(default=30.0, alias="DOCUMENT_API_TIMEOUT")

    # Tool selection / agent settings
    matcher_warmup_delay: float = Field(default=5.0, alias="MATCHER_WARMUP_DELAY")
    agent_max_iterations: int = Field(default=5, alias="AGENT_MAX_ITERATIONS")

    # LLM settings
    default_ai_model: str | None = Field(default=None, alias="DEFAULT_AI_MODEL")
    llm_timeout: int = Field(default=120, alias="LLM_TIMEOUT")
    llm_max_retries: int = Field(default=2, alias="LLM_MAX_RETRIES")
    stream_fallback_delay: float = Field(default=0.05, alias="STREAM_FALLBACK_DELAY")

    # Logging
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, value: str | None) -> str:
        """Normalize log level value from environment."""
        if value is None:
            return "INFO"
        normalized = str(value).strip().upper()
        if normalized in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            return normalized
        raise ValueError("LOG_LEVEL must be one of: DEBUG, INFO, WARNING, ERROR, CRITICAL")

    @field_validator("mcp_init_attempts", "agent_max_iterations", "mcp_max_fragment_lines")
    @classmethod
    def require_positive(cls, value: int) -> int:
        if value < 1:
            raise ValueError("value must be at least 1")
        return value


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
