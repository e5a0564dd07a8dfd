"""
Tool server and AI model configuration file models.

The configuration file is a JSON document shaped like:

    {
        "mcpServers": {
            "mcp-abap-abap-adt-api": {
                "command": "node",
                "args": ["dist/index.js"],
                "env": {"SAP_URL": "https://sap.example.com"},
                "disabled": false,
                "autoApprove": []
            }
        },
        "aiModels": {
            "defaultModel": "claude-3-5-sonnet-20241022",
            "models": [...]
        }
    }

Loading is tolerant: a missing or malformed file is logged and yields an
empty configuration so that the registry can still come up.
"""

import json
import logging
import os
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from mcp_orchestrator.domain.exceptions.mcp import MCPConfigurationError
from mcp_orchestrator.domain.model.mcp import ServerKind

logger = logging.getLogger(__name__)


class ToolServerConfig(BaseModel):
    """Launch configuration for one stdio tool server."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    name: str = ""
    command: str = ""
    args: list[str] = Field(default_factory=list)
    env: dict[str, str] = Field(default_factory=dict)
    disabled: bool = False
    auto_approve: list[str] = Field(default_factory=list, alias="autoApprove")
    kind: ServerKind | None = Field(
        default=None,
        description="Explicit server kind; inferred from the server name when omitted",
    )

    @property
    def enabled(self) -> bool:
        return not self.disabled


class AIModelConfig(BaseModel):
    """A configured LLM model entry."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str = ""
    provider: str = "local"
    endpoint: str | None = None
    api_key_env: str | None = Field(default=None, alias="apiKeyEnv")
    max_tokens: int = Field(default=4096, alias="maxTokens")
    temperature: float = 0.7
    description: str = ""
    enabled: bool = True

    @property
    def api_key(self) -> str | None:
        if not self.api_key_env:
            return None
        return os.environ.get(self.api_key_env) or None

    @property
    def is_available(self) -> bool:
        """Enabled in config and, if an API key is required, the key is present."""
        return self.enabled and (not self.api_key_env or self.api_key is not None)


class AIModelsSection(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    default_model: str | None = Field(default=None, alias="defaultModel")
    models: list[AIModelConfig] = Field(default_factory=list)


class OrchestratorConfigFile(BaseModel):
    """Top-level configuration file."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    mcp_servers: dict[str, ToolServerConfig] = Field(default_factory=dict, alias="mcpServers")
    ai_models: AIModelsSection = Field(default_factory=AIModelsSection, alias="aiModels")
    providers: dict[str, Any] = Field(default_factory=dict)

    def model_post_init(self, __context: Any) -> None:
        # Server names are the mapping keys; copy them onto the entries
        self.mcp_servers = {
            name: cfg if cfg.name == name else cfg.model_copy(update={"name": name})
            for name, cfg in self.mcp_servers.items()
        }


def parse_config_file(path: str | Path) -> OrchestratorConfigFile:
    """
    Parse the configuration file strictly.

    Raises:
        MCPConfigurationError: If the file is missing, not JSON, or invalid
    """
    config_path = Path(path)
    try:
        raw = config_path.read_text(encoding="utf-8")
    except OSError as e:
        raise MCPConfigurationError(
            f"Cannot read configuration file {config_path}", original_error=e
        ) from e
    try:
        return OrchestratorConfigFile.model_validate(json.loads(raw))
    except (json.JSONDecodeError, ValidationError) as e:
        raise MCPConfigurationError(
            f"Invalid configuration file {config_path}", original_error=e
        ) from e


def load_config_file(path: str | Path) -> OrchestratorConfigFile:
    """Load the configuration file, falling back to an empty configuration."""
    try:
        return parse_config_file(path)
    except MCPConfigurationError as e:
        logger.error(f"Failed to load configuration: {e}")
        return OrchestratorConfigFile()
