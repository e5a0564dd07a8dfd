"""Test helpers shared across test modules."""

import json
import sys
from pathlib import Path

from mcp_orchestrator.configuration.config import Settings
from mcp_orchestrator.configuration.server_config import ToolServerConfig

FIXTURES_DIR = Path(__file__).parent / "fixtures"
FAKE_SERVER = FIXTURES_DIR / "fake_mcp_server.py"


def make_settings(config_path: Path | str = "conf.json", **overrides) -> Settings:
    """Settings with fast timings for tests; overrides use env-style names."""
    values = {
        "MCP_CONFIG_PATH": str(config_path),
        "MCP_REQUEST_TIMEOUT": 5.0,
        "MCP_STARTUP_DELAY": 0.05,
        "MCP_INIT_ATTEMPTS": 3,
        "MCP_INIT_RETRY_DELAY": 0.05,
        "MATCHER_WARMUP_DELAY": 0.0,
        "STREAM_FALLBACK_DELAY": 0.0,
        "DEFAULT_AI_MODEL": None,
        "DOCUMENT_API_URL": "http://documents.test",
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


def write_config(path: Path, servers: dict | None = None, models: dict | None = None) -> Path:
    data: dict = {"mcpServers": servers or {}}
    if models is not None:
        data["aiModels"] = models
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


def fake_server_config(name: str = "fake", *extra_args: str) -> ToolServerConfig:
    return ToolServerConfig(
        name=name,
        command=sys.executable,
        args=[str(FAKE_SERVER), *extra_args],
    )
