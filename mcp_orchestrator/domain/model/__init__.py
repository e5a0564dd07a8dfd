"""Domain value objects."""

from mcp_orchestrator.domain.model.agent import (
    AgentAction,
    AgentResult,
    AgentStep,
    ChainResult,
    ChainStep,
)
from mcp_orchestrator.domain.model.mcp import (
    ResourceDescriptor,
    ServerKind,
    ToolCall,
    ToolCallRecord,
    ToolDescriptor,
    ToolResult,
    ToolServer,
)

__all__ = [
    "AgentAction",
    "AgentResult",
    "AgentStep",
    "ChainResult",
    "ChainStep",
    "ResourceDescriptor",
    "ServerKind",
    "ToolCall",
    "ToolCallRecord",
    "ToolDescriptor",
    "ToolResult",
    "ToolServer",
]
