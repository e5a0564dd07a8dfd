"""
Domain exceptions for the MCP orchestrator.

Raised by the process supervisor and configuration loaders; the tool
registry and planners convert them into result objects.
"""

from mcp_orchestrator.domain.exceptions.mcp import (
    MCPConfigurationError,
    MCPConnectionError,
    MCPError,
    MCPProtocolError,
    MCPRequestTimeoutError,
    MCPResourceNotFoundError,
    MCPServerDisconnectedError,
    MCPServerError,
    MCPServerNotConnectedError,
    MCPServerNotFoundError,
    MCPToolError,
    MCPToolNotFoundError,
)

__all__ = [
    "MCPError",
    "MCPServerError",
    "MCPServerNotFoundError",
    "MCPServerNotConnectedError",
    "MCPServerDisconnectedError",
    "MCPToolError",
    "MCPToolNotFoundError",
    "MCPResourceNotFoundError",
    "MCPProtocolError",
    "MCPRequestTimeoutError",
    "MCPConnectionError",
    "MCPConfigurationError",
]
