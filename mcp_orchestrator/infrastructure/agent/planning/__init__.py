"""LLM-assisted planning: the three-step chain and the bounded agent loop."""

from mcp_orchestrator.infrastructure.agent.planning.agent_loop import AgentLoop
from mcp_orchestrator.infrastructure.agent.planning.chain_planner import (
    ChainPlanner,
    extract_search_term,
)
from mcp_orchestrator.infrastructure.agent.planning.decisions import (
    AnalysisVerdict,
    ThinkDecision,
    decode_decision,
)

__all__ = [
    "AgentLoop",
    "AnalysisVerdict",
    "ChainPlanner",
    "ThinkDecision",
    "decode_decision",
    "extract_search_term",
]
