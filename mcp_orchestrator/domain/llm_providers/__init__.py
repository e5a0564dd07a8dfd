"""LLM provider port."""

from mcp_orchestrator.domain.llm_providers.llm_types import (
    LLMClient,
    LLMResponse,
    Message,
    MessageRole,
)

__all__ = ["LLMClient", "LLMResponse", "Message", "MessageRole"]
