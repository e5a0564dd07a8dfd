"""Declarative keyword and domain tables for tool selection.

Both tables ship as YAML package data and are validated into pydantic
models. Alternate files can be passed to the loaders, which allows new
domains or keyword tools without code changes.
"""

import logging
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from mcp_orchestrator.domain.exceptions.mcp import MCPConfigurationError

logger = logging.getLogger(__name__)

DATA_DIR = Path(__file__).parent / "data"
KEYWORD_TOOLS_FILE = DATA_DIR / "keyword_tools.yaml"
DOMAIN_MAPPINGS_FILE = DATA_DIR / "domain_mappings.yaml"


class ProactiveToolConfig(BaseModel):
    """Keyword trigger for one tool."""

    model_config = ConfigDict(populate_by_name=True)

    priority: int
    auto_trigger: bool = Field(default=True, alias="autoTrigger")
    keywords: list[str] = Field(default_factory=list)
    default_args: dict[str, Any] = Field(default_factory=dict, alias="defaultArgs")


class ProactiveServerConfig(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    enabled: bool = True
    keywords: list[str] = Field(default_factory=list)
    tools: dict[str, ProactiveToolConfig] = Field(default_factory=dict)


class ProactiveToolsConfig(BaseModel):
    """Keyword table: server -> server keywords and keyword-triggered tools."""

    model_config = ConfigDict(populate_by_name=True)

    enabled: bool = True
    auto_discovery: bool = Field(default=True, alias="autoDiscovery")
    proactive_tools: dict[str, ProactiveServerConfig] = Field(
        default_factory=dict, alias="proactiveTools"
    )


class SemanticMapping(BaseModel):
    """A business domain: trigger concepts, SAP tables and tool operations."""

    concepts: list[str] = Field(default_factory=list)
    tables: list[str] = Field(default_factory=list)
    operations: list[str] = Field(default_factory=list)
    priority: int = 0


class SemanticConfig(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    enabled: bool = True
    semantic_mappings: dict[str, SemanticMapping] = Field(
        default_factory=dict, alias="semanticMappings"
    )
    fallback_behavior: Literal["ask_user", "search_all", "use_default"] = Field(
        default="search_all", alias="fallbackBehavior"
    )


def _read_yaml(path: Path) -> dict[str, Any]:
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except (OSError, yaml.YAMLError) as e:
        raise MCPConfigurationError(f"Cannot load tool table {path}", original_error=e) from e
    if not isinstance(data, dict):
        raise MCPConfigurationError(f"Tool table {path} must be a mapping")
    return data


def load_proactive_tools(path: str | Path | None = None) -> ProactiveToolsConfig:
    """
    Load the keyword table.

    Raises:
        MCPConfigurationError: If the file is unreadable or invalid
    """
    table_path = Path(path) if path else KEYWORD_TOOLS_FILE
    try:
        config = ProactiveToolsConfig.model_validate(_read_yaml(table_path))
    except ValidationError as e:
        raise MCPConfigurationError(f"Invalid keyword table {table_path}", original_error=e) from e
    logger.debug(f"Loaded keyword table for {len(config.proactive_tools)} servers")
    return config


def load_semantic_config(path: str | Path | None = None) -> SemanticConfig:
    """
    Load the domain mappings.

    Raises:
        MCPConfigurationError: If the file is unreadable or invalid
    """
    table_path = Path(path) if path else DOMAIN_MAPPINGS_FILE
    try:
        config = SemanticConfig.model_validate(_read_yaml(table_path))
    except ValidationError as e:
        raise MCPConfigurationError(f"Invalid domain mappings {table_path}", original_error=e) from e
    logger.debug(f"Loaded {len(config.semantic_mappings)} domain mappings")
    return config
