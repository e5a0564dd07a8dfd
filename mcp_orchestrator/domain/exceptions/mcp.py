"""
MCP domain exceptions.

Exception hierarchy for tool server lifecycle, the stdio JSON-RPC protocol,
tool lookup and configuration handling.

Exception Hierarchy:
    MCPError (base)
    ├── MCPServerError
    │   ├── MCPServerNotFoundError      - Server not in the catalog
    │   ├── MCPServerNotConnectedError  - No live process for the server
    │   └── MCPServerDisconnectedError  - Process exited with requests in flight
    ├── MCPToolError
    │   └── MCPToolNotFoundError        - Tool not found on server
    ├── MCPResourceNotFoundError        - Resource not found on server
    ├── MCPProtocolError                - JSON-RPC error reply
    ├── MCPRequestTimeoutError          - No reply within the request timeout
    ├── MCPConnectionError              - Connection/transport failure
    └── MCPConfigurationError           - Missing or malformed configuration
"""

from typing import Any


class MCPError(Exception):
    """Base exception for all MCP-related errors."""

    def __init__(
        self,
        message: str,
        original_error: Exception | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.original_error = original_error
        self.details = details or {}

    def __str__(self) -> str:
        if self.original_error:
            return f"{self.message} (caused by: {self.original_error})"
        return self.message


class MCPServerError(MCPError):
    """Base exception for MCP server errors."""


class MCPServerNotFoundError(MCPServerError):
    """Raised when a server name is not in the catalog."""

    def __init__(self, server_name: str, message: str | None = None) -> None:
        self.server_name = server_name
        msg = message or f"MCP server '{server_name}' not found"
        super().__init__(msg, details={"server_name": server_name})


class MCPServerNotConnectedError(MCPServerError):
    """Raised when sending to a server that has no live process."""

    def __init__(self, server_name: str, message: str | None = None) -> None:
        self.server_name = server_name
        msg = message or f"MCP server {server_name} not available"
        super().__init__(msg, details={"server_name": server_name})


class MCPServerDisconnectedError(MCPServerError):
    """Raised on every pending request when its server process goes away."""

    def __init__(self, server_name: str, exit_code: int | None = None) -> None:
        self.server_name = server_name
        self.exit_code = exit_code
        super().__init__(
            f"Server {server_name} disconnected",
            details={"server_name": server_name, "exit_code": exit_code},
        )


class MCPToolError(MCPError):
    """Base exception for MCP tool errors."""


class MCPToolNotFoundError(MCPToolError):
    """Raised when a tool cannot be found on a server."""

    def __init__(
        self,
        tool_name: str,
        server_name: str | None = None,
        message: str | None = None,
    ) -> None:
        self.tool_name = tool_name
        self.server_name = server_name
        if server_name:
            msg = message or f"Tool '{tool_name}' not found on server '{server_name}'"
        else:
            msg = message or f"Tool '{tool_name}' not found"
        super().__init__(msg, details={"tool_name": tool_name, "server_name": server_name})


class MCPResourceNotFoundError(MCPError):
    """Raised when a resource URI is not exposed by a server."""

    def __init__(self, uri: str, server_name: str) -> None:
        self.uri = uri
        self.server_name = server_name
        super().__init__(
            f"Resource '{uri}' not found on server '{server_name}'",
            details={"uri": uri, "server_name": server_name},
        )


class MCPProtocolError(MCPError):
    """Raised when a server answers a request with a JSON-RPC error object."""

    def __init__(self, error: Any, server_name: str | None = None) -> None:
        if isinstance(error, dict):
            error_msg = error.get("message") or str(error)
            code = error.get("code")
        else:
            error_msg = str(error)
            code = None
        self.code = code
        self.server_name = server_name
        super().__init__(
            f"MCP Error: {error_msg}",
            details={"code": code, "server_name": server_name},
        )


class MCPRequestTimeoutError(MCPError):
    """Raised when a request receives no reply within the timeout."""

    def __init__(self, server_name: str, method: str | None = None, timeout: float | None = None):
        self.server_name = server_name
        self.method = method
        self.timeout = timeout
        super().__init__(
            f"Request timeout for {server_name}",
            details={"server_name": server_name, "method": method, "timeout": timeout},
        )


class MCPConnectionError(MCPError):
    """Raised when MCP connection or transport fails."""

    def __init__(
        self,
        endpoint: str | None = None,
        message: str | None = None,
        original_error: Exception | None = None,
    ) -> None:
        self.endpoint = endpoint
        msg = message or "MCP connection failed"
        if endpoint:
            msg += f" (endpoint: {endpoint})"
        super().__init__(msg, original_error=original_error, details={"endpoint": endpoint})


class MCPConfigurationError(MCPError):
    """Raised when tool server configuration cannot be loaded."""
