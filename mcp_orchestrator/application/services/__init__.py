"""Application services."""

from mcp_orchestrator.application.services.chat_orchestrator import (
    ChatOrchestrator,
    ChatReply,
    ChatRequest,
    create_chat_orchestrator,
)

__all__ = ["ChatOrchestrator", "ChatReply", "ChatRequest", "create_chat_orchestrator"]
