"""
Bounded think -> act -> analyze/refine agent loop for document search.

State machine::

    search -> analyze -> refine -> search ...
                      -> complete

Each iteration asks the LLM for the next action and performs at most one
tool call. The loop ends when an analysis is satisfied, when the model
chooses ``complete``, or when the iteration cap forces completion. A final
LLM call then writes the user-facing answer.

The think, analyze and final-answer calls are separate fallible LLM round
trips; each has its own fallback (see ``decisions``) so a bad or failed
reply never aborts the loop.
"""

import logging
from collections.abc import Sequence
from typing import Any

from mcp_orchestrator.configuration.config import Settings, get_settings
from mcp_orchestrator.domain.llm_providers.llm_types import LLMClient, Message
from mcp_orchestrator.domain.model.agent import AgentAction, AgentResult, AgentStep
from mcp_orchestrator.domain.model.mcp import ToolCall, ToolResult
from mcp_orchestrator.infrastructure.agent.planning.decisions import (
    AnalysisVerdict,
    ThinkDecision,
    count_results,
    decode_decision,
    fallback_final_answer,
    fallback_think,
    fallback_think_on_error,
    fallback_verdict,
    result_documents,
)
from mcp_orchestrator.infrastructure.agent.planning.prompts import (
    AGENT_ANALYZE_PROMPT,
    AGENT_FINAL_PROMPT,
    AGENT_THINK_PROMPT,
    format_agent_results,
    format_history,
)
from mcp_orchestrator.infrastructure.agent.selection.query_extraction import (
    extract_simple_query,
)
from mcp_orchestrator.infrastructure.mcp.registry import ToolRegistry
from mcp_orchestrator.infrastructure.mcp.server_catalog import DOCUMENT_RETRIEVAL_SERVER

logger = logging.getLogger(__name__)

SEARCH_LIMIT = 10
SEARCH_THRESHOLD = 0.1


def _format_steps(steps: Sequence[AgentStep]) -> str:
    return "\n".join(f"{s.iteration}. {s.action.value}: {s.decision}" for s in steps)


class AgentLoop:
    """LLM-directed iterative document search."""

    def __init__(
        self,
        llm_client: LLMClient,
        registry: ToolRegistry,
        max_iterations: int | None = None,
        server_name: str = DOCUMENT_RETRIEVAL_SERVER,
        settings: Settings | None = None,
    ) -> None:
        settings = settings or get_settings()
        self._llm = llm_client
        self._registry = registry
        self.max_iterations = max_iterations or settings.agent_max_iterations
        self.server_name = server_name

    async def execute_agentic_search(
        self,
        query: str,
        history: Sequence[Message] = (),
        auth_token: str | None = None,
    ) -> AgentResult:
        """Run the loop; ``iterations <= max_iterations == len(steps)`` at the cap."""
        steps: list[AgentStep] = []
        iteration = 0
        is_complete = False
        search_result: ToolResult | None = None
        current_query = query

        logger.info(f'Starting agentic search for: "{query}"')

        while not is_complete and iteration < self.max_iterations:
            iteration += 1
            logger.info(f"Iteration {iteration}/{self.max_iterations}")

            thought = await self._think(query, history, steps, search_result, iteration)
            logger.info(f"Thought: {thought.action.value} - {thought.reasoning}")

            tool_call: ToolCall | None = None
            result: Any = None

            if thought.action == AgentAction.SEARCH:
                search_query = thought.search_query or extract_simple_query(query)
                tool_call = ToolCall(
                    server_name=self.server_name,
                    tool_name="search_documents",
                    arguments={
                        "query": search_query,
                        "limit": SEARCH_LIMIT,
                        "threshold": SEARCH_THRESHOLD,
                    },
                )
                search_result = await self._registry.execute_tool(tool_call, auth_token)
                result = search_result
                decision = (
                    f'Searched for "{search_query}", '
                    f"found {count_results(search_result)} results"
                )
                current_query = search_query
            elif thought.action == AgentAction.ANALYZE:
                verdict = await self._analyze(query, current_query, search_result)
                result = verdict
                decision = verdict.conclusion
                is_complete = verdict.satisfied
            elif thought.action == AgentAction.REFINE:
                current_query = thought.search_query or current_query
                decision = f'Refining search query to: "{current_query}"'
            else:
                is_complete = True
                decision = "Ready to present final answer"

            steps.append(
                AgentStep(
                    iteration=iteration,
                    thought=thought.reasoning,
                    action=thought.action,
                    decision=decision,
                    tool_call=tool_call,
                    result=result,
                )
            )

            if iteration >= self.max_iterations and not is_complete:
                logger.warning("Max iterations reached, forcing completion")
                is_complete = True

        final_answer = await self._final_answer(query, current_query, search_result, steps)
        logger.info(f"Agentic search completed in {iteration} iterations")

        return AgentResult(
            steps=steps,
            final_answer=final_answer,
            iterations=iteration,
            success=search_result is not None,
        )

    async def run(
        self,
        query: str,
        history: Sequence[Message] = (),
        auth_token: str | None = None,
    ) -> AgentResult:
        return await self.execute_agentic_search(query, history, auth_token)

    async def _think(
        self,
        query: str,
        history: Sequence[Message],
        steps: Sequence[AgentStep],
        search_result: ToolResult | None,
        iteration: int,
    ) -> ThinkDecision:
        previous_steps = f"\nBisherige Schritte:\n{_format_steps(steps)}" if steps else ""
        results = (
            f"\nAktuelle Ergebnisse: {count_results(search_result)} Treffer gefunden"
            if search_result is not None
            else "\nNoch keine Suchergebnisse"
        )
        prompt = AGENT_THINK_PROMPT.format(
            query=query,
            history=format_history(history, "Gespräch"),
            previous_steps=previous_steps,
            results=results,
            iteration=iteration,
            max_iterations=self.max_iterations,
        )

        try:
            response = await self._llm.generate_response([Message.user(prompt)])
        except Exception as e:
            logger.error(f"Think step failed: {e}")
            return fallback_think_on_error(iteration, query)

        decision = decode_decision(response.content, ThinkDecision)
        if decision is None:
            return fallback_think(iteration, search_result is not None, query)
        return decision

    async def _analyze(
        self, query: str, search_query: str, search_result: ToolResult | None
    ) -> AnalysisVerdict:
        count = count_results(search_result)
        prompt = AGENT_ANALYZE_PROMPT.format(query=query, search_query=search_query, count=count)

        try:
            response = await self._llm.generate_response([Message.user(prompt)])
        except Exception as e:
            logger.error(f"Analysis failed: {e}")
            return fallback_verdict(count)

        return decode_decision(response.content, AnalysisVerdict) or fallback_verdict(count)

    async def _final_answer(
        self,
        query: str,
        search_query: str,
        search_result: ToolResult | None,
        steps: Sequence[AgentStep],
    ) -> str:
        count = count_results(search_result)
        prompt = AGENT_FINAL_PROMPT.format(
            query=query,
            search_query=search_query,
            steps=_format_steps(steps),
            results=format_agent_results(result_documents(search_result)),
            count=count,
        )

        try:
            response = await self._llm.generate_response([Message.user(prompt)])
        except Exception as e:
            logger.error(f"Final answer generation failed: {e}")
            return fallback_final_answer(count, search_query)
        return response.content
