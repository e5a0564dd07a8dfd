"""
MCP Domain Models.

Value objects shared by the supervisor, the registry and the tool selection
strategies: server kinds, tool/resource descriptors, tool calls and results.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ServerKind(str, Enum):
    """How the registry dispatches tool calls for a server."""

    GENERIC = "generic"
    DOCUMENT_RETRIEVAL = "document_retrieval"
    ABAP_SYSTEM = "abap_system"
    SIMULATED_SAP_CATALOG = "simulated_sap_catalog"


@dataclass(frozen=True)
class ToolDescriptor:
    """A tool exposed by a server."""

    name: str
    description: str = ""
    input_schema: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "inputSchema": self.input_schema,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ToolDescriptor":
        """Create from MCP protocol format."""
        return cls(
            name=data.get("name", ""),
            description=data.get("description") or "",
            input_schema=data.get("inputSchema", data.get("input_schema", {})) or {},
        )


@dataclass(frozen=True)
class ResourceDescriptor:
    """A resource exposed by a server."""

    uri: str
    name: str = ""
    description: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {"uri": self.uri, "name": self.name, "description": self.description}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ResourceDescriptor":
        return cls(
            uri=data.get("uri", ""),
            name=data.get("name", ""),
            description=data.get("description") or "",
        )


@dataclass(frozen=True)
class ToolCall:
    """A single tool invocation request."""

    server_name: str
    tool_name: str
    arguments: dict[str, Any] = field(default_factory=dict)

    @property
    def qualified_name(self) -> str:
        return f"{self.server_name}.{self.tool_name}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "serverName": self.server_name,
            "toolName": self.tool_name,
            "arguments": dict(self.arguments),
        }


@dataclass(frozen=True)
class ToolResult:
    """Outcome of one execute_tool invocation."""

    success: bool
    result: Any = None
    error: str | None = None

    @classmethod
    def ok(cls, result: Any) -> "ToolResult":
        return cls(success=True, result=result)

    @classmethod
    def fail(cls, error: str) -> "ToolResult":
        return cls(success=False, error=error)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"success": self.success}
        if self.success:
            data["result"] = self.result
        else:
            data["error"] = self.error
        return data


@dataclass(frozen=True)
class ToolCallRecord:
    """A tool call paired with its result; one entry of a tool-call trace."""

    tool_call: ToolCall
    result: ToolResult

    def to_dict(self) -> dict[str, Any]:
        return {"toolCall": self.tool_call.to_dict(), "result": self.result.to_dict()}


@dataclass
class ToolServer:
    """Catalog entry for a configured, enabled tool server."""

    name: str
    kind: ServerKind
    tools: list[ToolDescriptor] = field(default_factory=list)
    resources: list[ResourceDescriptor] = field(default_factory=list)
    disabled: bool = False

    @property
    def url(self) -> str:
        return f"mcp://{self.name}"

    @property
    def description(self) -> str:
        return f"MCP server: {self.name}"

    def find_tool(self, tool_name: str) -> ToolDescriptor | None:
        return next((t for t in self.tools if t.name == tool_name), None)

    def find_resource(self, uri: str) -> ResourceDescriptor | None:
        return next((r for r in self.resources if r.uri == uri), None)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "kind": self.kind.value,
            "url": self.url,
            "description": self.description,
            "tools": [t.to_dict() for t in self.tools],
            "resources": [r.to_dict() for r in self.resources],
            "disabled": self.disabled,
        }
