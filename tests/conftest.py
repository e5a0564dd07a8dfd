"""Shared fixtures for orchestrator tests."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from mcp_orchestrator.domain.model.mcp import ToolResult
from mcp_orchestrator.infrastructure.mcp.registry import ToolRegistry
from tests.helpers import make_settings, write_config


@pytest.fixture
def settings(tmp_path):
    return make_settings(tmp_path / "conf.json")


@pytest.fixture
def sample_config(tmp_path):
    """Configuration with one server of each kind plus a disabled one."""
    return write_config(
        tmp_path / "conf.json",
        servers={
            "mcp-abap-abap-adt-api": {"command": "node", "args": ["abap.js"]},
            "document-retrieval": {"command": "node", "args": ["docs.js"]},
            "everest-SAP-system": {"command": "node", "args": ["sap.js"]},
            "agentdb": {"command": "npx", "args": ["agentdb"]},
            "legacy": {"command": "node", "args": ["legacy.js"], "disabled": True},
        },
    )


@pytest.fixture
def supervisor():
    """Process supervisor stand-in with no running servers."""
    mock = MagicMock()
    mock.is_server_running = MagicMock(return_value=False)
    mock.start_server = AsyncMock(return_value=False)
    mock.stop_all_servers = AsyncMock()
    mock.list_tools = AsyncMock(return_value=[])
    mock.list_resources = AsyncMock(return_value=[])
    mock.call_tool = AsyncMock()
    mock.read_resource = AsyncMock()
    return mock


@pytest.fixture
def document_client():
    mock = MagicMock()
    mock.execute = AsyncMock(return_value=ToolResult.ok({"results": []}))
    mock.aclose = AsyncMock()
    return mock


@pytest.fixture
def registry(sample_config, supervisor, document_client):
    """Registry over the sample configuration with synthesized tool lists."""
    return ToolRegistry(
        sample_config,
        supervisor=supervisor,
        document_client=document_client,
        settings=make_settings(sample_config),
    )
