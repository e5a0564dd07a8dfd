"""Stdio tool server supervision and the tool registry."""

from mcp_orchestrator.infrastructure.mcp.document_client import DocumentRetrievalClient
from mcp_orchestrator.infrastructure.mcp.line_buffer import LineBuffer
from mcp_orchestrator.infrastructure.mcp.registry import ToolRegistry
from mcp_orchestrator.infrastructure.mcp.server_catalog import (
    resolve_server_kind,
    synthesize_resources,
    synthesize_tools,
)
from mcp_orchestrator.infrastructure.mcp.supervisor import ProcessSupervisor

__all__ = [
    "DocumentRetrievalClient",
    "LineBuffer",
    "ProcessSupervisor",
    "ToolRegistry",
    "resolve_server_kind",
    "synthesize_resources",
    "synthesize_tools",
]
