"""LLM-free tool selection: keyword and domain matchers and their fallback chain."""

from mcp_orchestrator.infrastructure.agent.selection.domain_matcher import (
    DomainMatcher,
    SemanticAnalysis,
)
from mcp_orchestrator.infrastructure.agent.selection.keyword_matcher import (
    KeywordMatch,
    KeywordMatcher,
)
from mcp_orchestrator.infrastructure.agent.selection.strategy_chain import (
    StrategyChain,
    ToolSelectionStrategy,
)
from mcp_orchestrator.infrastructure.agent.selection.tool_tables import (
    ProactiveToolsConfig,
    SemanticConfig,
    SemanticMapping,
    load_proactive_tools,
    load_semantic_config,
)

__all__ = [
    "DomainMatcher",
    "KeywordMatch",
    "KeywordMatcher",
    "ProactiveToolsConfig",
    "SemanticAnalysis",
    "SemanticConfig",
    "SemanticMapping",
    "StrategyChain",
    "ToolSelectionStrategy",
    "load_proactive_tools",
    "load_semantic_config",
]
