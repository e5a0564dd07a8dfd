"""
Three-step document search chain.

1. Plan: the LLM reduces the user query to one ``SUCHBEGRIFF: <term>`` line.
2. Execute: the term is searched through the document-retrieval server.
3. Present: the LLM renders every result for the user.

A simpler alternative to the AgentLoop: no iteration, one search.
"""

import json
import logging
import re
from collections.abc import Sequence

from mcp_orchestrator.domain.llm_providers.llm_types import LLMClient, Message
from mcp_orchestrator.domain.model.agent import ChainResult, ChainStep
from mcp_orchestrator.domain.model.mcp import ToolCall, ToolCallRecord
from mcp_orchestrator.infrastructure.agent.planning.decisions import result_documents
from mcp_orchestrator.infrastructure.agent.planning.prompts import (
    CHAIN_PLANNING_PROMPT,
    CHAIN_PRESENTATION_PROMPT,
    format_chain_results,
    format_history,
)
from mcp_orchestrator.infrastructure.mcp.registry import ToolRegistry
from mcp_orchestrator.infrastructure.mcp.server_catalog import DOCUMENT_RETRIEVAL_SERVER

logger = logging.getLogger(__name__)

SEARCH_LIMIT = 10
SEARCH_THRESHOLD = 0.1

_SEARCH_TERM_LINE = re.compile(r"SUCHBEGRIFF:\s*(.+?)(?:\n|$)", re.IGNORECASE)
_CAPITALIZED = re.compile(r"\b([A-ZÄÖÜ][a-zäöüß]+)\b")


def extract_search_term(planning_reply: str) -> str:
    """Search term from the planning reply: tagged line, capitalized word, first line."""
    match = _SEARCH_TERM_LINE.search(planning_reply)
    if match and match.group(1).strip():
        return match.group(1).strip()

    capitalized = _CAPITALIZED.search(planning_reply)
    if capitalized:
        return capitalized.group(1)

    return planning_reply.split("\n")[0].strip()


class ChainPlanner:
    """Plan -> execute -> present pipeline over the document search tool."""

    def __init__(
        self,
        llm_client: LLMClient,
        registry: ToolRegistry,
        server_name: str = DOCUMENT_RETRIEVAL_SERVER,
    ) -> None:
        self._llm = llm_client
        self._registry = registry
        self.server_name = server_name

    async def execute_document_search_chain(
        self,
        query: str,
        history: Sequence[Message] = (),
        auth_token: str | None = None,
    ) -> ChainResult:
        """
        Run the chain. Never raises.

        Any failure yields a German error text and an empty tool-call trace;
        steps completed before the failure are kept.
        """
        steps: list[ChainStep] = []
        try:
            logger.info("Step 1: Query Planning")
            planning_prompt = CHAIN_PLANNING_PROMPT.format(
                query=query, history=format_history(history, "Gesprächskontext")
            )
            planning = await self._llm.generate_response([Message.user(planning_prompt)])
            steps.append(ChainStep("Query Planning", planning_prompt, planning.content))

            search_query = extract_search_term(planning.content)
            logger.info(f'Extracted search query: "{search_query}"')

            logger.info("Step 2: MCP Execution")
            search_call = ToolCall(
                server_name=self.server_name,
                tool_name="search_documents",
                arguments={"query": search_query, "limit": SEARCH_LIMIT, "threshold": SEARCH_THRESHOLD},
            )
            search_result = await self._registry.execute_tool(search_call, auth_token)
            steps.append(
                ChainStep(
                    "MCP Execution",
                    f'Searching for: "{search_query}"',
                    json.dumps(search_result.to_dict(), indent=2, ensure_ascii=False, default=str),
                )
            )

            logger.info("Step 3: Result Presentation")
            presentation_prompt = CHAIN_PRESENTATION_PROMPT.format(
                query=query,
                search_query=search_query,
                results=format_chain_results(result_documents(search_result), search_query),
            )
            presentation = await self._llm.generate_response([Message.user(presentation_prompt)])
            steps.append(
                ChainStep(
                    "Result Presentation",
                    "Analyzing and formatting results...",
                    presentation.content,
                )
            )

            trace_call = ToolCall(
                server_name=self.server_name,
                tool_name="search_documents",
                arguments={"query": search_query},
            )
            return ChainResult(
                steps=steps,
                final_result=presentation.content,
                tool_calls=[ToolCallRecord(tool_call=trace_call, result=search_result)],
            )
        except Exception as e:
            logger.error(f"AI chain execution failed: {e}", exc_info=True)
            return ChainResult(
                steps=steps,
                final_result=f"Es gab einen Fehler bei der Verarbeitung Ihrer Anfrage: {e}",
                tool_calls=[],
            )

    async def run(
        self,
        query: str,
        history: Sequence[Message] = (),
        auth_token: str | None = None,
    ) -> ChainResult:
        return await self.execute_document_search_chain(query, history, auth_token)
