"""
LLM type definitions for the orchestrator.

This module is the provider port consumed by the chain planner, the agent
loop and the chat orchestrator. Planning steps expect a best-effort single
string reply and parse it defensively.
"""

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator, Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from mcp_orchestrator.domain.model.mcp import ToolCallRecord


class MessageRole(str, Enum):
    """Role enumeration for chat messages."""

    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


@dataclass
class Message:
    """Chat message for LLM interactions."""

    role: str  # "system", "user", "assistant"
    content: str

    @classmethod
    def system(cls, content: str) -> "Message":
        """Create a system message."""
        return cls(role=MessageRole.SYSTEM.value, content=content)

    @classmethod
    def user(cls, content: str) -> "Message":
        """Create a user message."""
        return cls(role=MessageRole.USER.value, content=content)

    @classmethod
    def assistant(cls, content: str) -> "Message":
        """Create an assistant message."""
        return cls(role=MessageRole.ASSISTANT.value, content=content)

    def to_dict(self) -> dict[str, str]:
        return {"role": self.role, "content": self.content}


@dataclass
class LLMResponse:
    """Response from a chat completion."""

    content: str
    model: str = ""
    usage: dict[str, int] = field(default_factory=dict)

    @property
    def text(self) -> str:
        """Alias for content for compatibility."""
        return self.content


class LLMClient(ABC):
    """
    Abstract base class for LLM clients.

    Implementations answer a conversation, optionally augmented with the
    tool-call trace gathered for the latest user message.
    """

    @abstractmethod
    async def _generate_response(
        self,
        messages: list[Message],
        model_id: str | None = None,
        tool_results: Sequence[ToolCallRecord] | None = None,
    ) -> LLMResponse:
        """
        Generate a response from the LLM.

        Args:
            messages: List of conversation messages
            model_id: Configured model id (default model when None)
            tool_results: Tool calls executed for the latest user message

        Returns:
            LLMResponse with content and token usage
        """

    async def generate_response(
        self,
        messages: list[Message],
        model_id: str | None = None,
        tool_results: Sequence[ToolCallRecord] | None = None,
    ) -> LLMResponse:
        """Public method to generate a response."""
        return await self._generate_response(
            messages=messages,
            model_id=model_id,
            tool_results=tool_results,
        )

    async def generate_response_stream(
        self,
        messages: list[Message],
        model_id: str | None = None,
        tool_results: Sequence[ToolCallRecord] | None = None,
    ) -> AsyncIterator[str]:
        """
        Stream a response as text chunks.

        The default implementation yields the complete response once;
        providers with native streaming override it.
        """
        response = await self.generate_response(messages, model_id, tool_results)
        yield response.content

    async def ainvoke(self, prompt: str, **kwargs: Any) -> LLMResponse:
        """Single user-prompt convenience wrapper."""
        return await self.generate_response([Message.user(prompt)], **kwargs)
