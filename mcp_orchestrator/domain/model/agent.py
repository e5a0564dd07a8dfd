"""Agent and chain run records."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from mcp_orchestrator.domain.model.mcp import ToolCall, ToolCallRecord, ToolResult


class AgentAction(str, Enum):
    SEARCH = "search"
    ANALYZE = "analyze"
    REFINE = "refine"
    COMPLETE = "complete"


@dataclass(frozen=True)
class AgentStep:
    """One iteration of an agent run. Immutable once appended to the trail."""

    iteration: int
    thought: str
    action: AgentAction
    decision: str
    tool_call: ToolCall | None = None
    result: Any = None

    def to_dict(self) -> dict[str, Any]:
        result = self.result
        if isinstance(result, ToolResult):
            result = result.to_dict()
        elif hasattr(result, "model_dump"):
            result = result.model_dump()
        return {
            "iteration": self.iteration,
            "thought": self.thought,
            "action": self.action.value,
            "toolCall": self.tool_call.to_dict() if self.tool_call else None,
            "result": result,
            "decision": self.decision,
        }


@dataclass(frozen=True)
class AgentResult:
    steps: list[AgentStep]
    final_answer: str
    iterations: int
    success: bool

    def to_dict(self) -> dict[str, Any]:
        return {
            "steps": [s.to_dict() for s in self.steps],
            "finalAnswer": self.final_answer,
            "iterations": self.iterations,
            "success": self.success,
        }


@dataclass(frozen=True)
class ChainStep:
    step: str
    prompt: str
    result: str | None = None


@dataclass(frozen=True)
class ChainResult:
    steps: list[ChainStep]
    final_result: str
    tool_calls: list[ToolCallRecord] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "steps": [{"step": s.step, "prompt": s.prompt, "result": s.result} for s in self.steps],
            "finalResult": self.final_result,
            "mcpToolCalls": [c.to_dict() for c in self.tool_calls],
        }
