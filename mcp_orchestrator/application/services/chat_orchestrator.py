"""Chat orchestrator - conversation-facing entry point.

Takes one user message with its history, runs LLM-free tool selection over
the requested servers, and answers through the LLM client with the
tool-call trace attached. The caller persists the returned content and
trace; nothing here writes to a store.
"""

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from mcp_orchestrator.configuration.config import Settings, get_settings
from mcp_orchestrator.domain.llm_providers.llm_types import LLMClient, Message, MessageRole
from mcp_orchestrator.domain.model.agent import AgentResult, ChainResult
from mcp_orchestrator.domain.model.mcp import ToolCall, ToolCallRecord, ToolResult
from mcp_orchestrator.infrastructure.agent.planning.agent_loop import AgentLoop
from mcp_orchestrator.infrastructure.agent.planning.chain_planner import ChainPlanner
from mcp_orchestrator.infrastructure.agent.selection.domain_matcher import DomainMatcher
from mcp_orchestrator.infrastructure.agent.selection.keyword_matcher import KeywordMatcher
from mcp_orchestrator.infrastructure.agent.selection.strategy_chain import StrategyChain
from mcp_orchestrator.infrastructure.llm.response_synthesizer import ResponseSynthesizer
from mcp_orchestrator.infrastructure.mcp.registry import ToolRegistry

logger = logging.getLogger(__name__)

APOLOGY_MESSAGE = (
    "I apologize, but I encountered an error while processing your request. Please try again."
)

DEFAULT_SYSTEM_PROMPT = """You are an intelligent AI assistant with access to MCP (Model Context Protocol) tools that allow you to interact with various systems including SAP ABAP systems, document stores and databases.

IMPORTANT: Tool results for the current message are attached below the user's message. Base your answer on them instead of giving generic responses.

Available capabilities:
- SAP ABAP system access via mcp-abap-abap-adt-api (table contents, object search, source code, etc.)
- Document search via document-retrieval (semantic search, context, statistics)
- Database queries via agentdb (natural language queries)

When tool results are present:
- SAP tables (like VBAK, VBRK, etc.) -> present the rows clearly
- Documents -> list titles, paths, relevance and previews
- Errors -> explain what went wrong and what the user can do

Always provide specific, data-driven answers based on the actual MCP tool results."""


@dataclass
class ChatRequest:
    """One user turn as received from the conversation layer."""

    content: str
    role: str = MessageRole.USER.value
    conversation_id: str | None = None
    use_mcp: bool = False
    history: list[Message] = field(default_factory=list)
    mcp_servers: list[str] = field(default_factory=list)
    model_id: str | None = None
    auth_token: str | None = None
    system_prompt: str | None = None


@dataclass
class ChatReply:
    """Reply content and the tool-call trace for the caller to persist."""

    content: str
    tool_call_trace: list[ToolCallRecord] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "content": self.content,
            "toolCallTrace": [record.to_dict() for record in self.tool_call_trace],
        }


class ChatOrchestrator:
    """
    Ties tool selection, planning and response synthesis together.

    Usage:
        orchestrator = create_chat_orchestrator("conf.json")
        await orchestrator.start()
        reply = await orchestrator.handle_message(
            ChatRequest(content="Zeige VBAK", use_mcp=True, mcp_servers=["mcp-abap-abap-adt-api"])
        )
        await orchestrator.shutdown()
    """

    def __init__(
        self,
        registry: ToolRegistry,
        llm_client: LLMClient,
        strategy_chain: StrategyChain,
        chain_planner: ChainPlanner | None = None,
        agent_loop: AgentLoop | None = None,
        system_prompt: str = DEFAULT_SYSTEM_PROMPT,
    ) -> None:
        self.registry = registry
        self.llm_client = llm_client
        self.strategy_chain = strategy_chain
        self.chain_planner = chain_planner or ChainPlanner(llm_client, registry)
        self.agent_loop = agent_loop or AgentLoop(llm_client, registry)
        self.system_prompt = system_prompt

    async def start(self) -> None:
        await self.registry.start()
        for strategy in self.strategy_chain.strategies:
            start = getattr(strategy, "start", None)
            if start is not None:
                await start()

    async def shutdown(self) -> None:
        for strategy in self.strategy_chain.strategies:
            stop = getattr(strategy, "stop", None)
            if stop is not None:
                await stop()
        await self.registry.shutdown()

    async def handle_message(self, request: ChatRequest) -> ChatReply:
        """Answer one message. Never raises."""
        try:
            messages = [Message.system(request.system_prompt or self.system_prompt)]
            messages.extend(request.history)
            messages.append(Message(role=request.role, content=request.content))

            trace: list[ToolCallRecord] = []
            if request.use_mcp and request.mcp_servers:
                trace = await self._select_tools(request)

            response = await self.llm_client.generate_response(
                messages, model_id=request.model_id, tool_results=trace or None
            )
            return ChatReply(content=response.content, tool_call_trace=trace)
        except Exception as e:
            logger.error(f"Error generating response: {e}", exc_info=True)
            return ChatReply(content=APOLOGY_MESSAGE)

    async def _select_tools(self, request: ChatRequest) -> list[ToolCallRecord]:
        enabled = {server.name for server in self.registry.get_available_servers()}
        active_servers = [name for name in request.mcp_servers if name in enabled]
        logger.info(
            f'Analyzing user input: "{request.content}" '
            f"with active servers: {', '.join(active_servers)}"
        )
        try:
            return await self.strategy_chain.select_and_execute(
                request.content, active_servers, request.auth_token
            )
        except Exception as e:
            logger.error(f"MCP tool selection failed: {e}")
            return [
                ToolCallRecord(
                    tool_call=ToolCall(server_name="system", tool_name="error"),
                    result=ToolResult.fail(f"MCP tools temporarily unavailable: {e}"),
                )
            ]

    async def run_chain(
        self,
        query: str,
        history: Sequence[Message] = (),
        auth_token: str | None = None,
    ) -> ChainResult:
        return await self.chain_planner.execute_document_search_chain(query, history, auth_token)

    async def run_agent(
        self,
        query: str,
        history: Sequence[Message] = (),
        auth_token: str | None = None,
    ) -> AgentResult:
        return await self.agent_loop.execute_agentic_search(query, history, auth_token)


def create_chat_orchestrator(
    config_path: str | Path | None = None,
    settings: Settings | None = None,
) -> ChatOrchestrator:
    """Wire the default components: domain matcher first, keyword matcher second."""
    settings = settings or get_settings()
    registry = ToolRegistry(config_path, settings=settings)
    llm_client = ResponseSynthesizer(config_path, settings=settings)
    strategy_chain = StrategyChain(
        [
            DomainMatcher(registry, settings=settings),
            KeywordMatcher(registry, settings=settings),
        ]
    )
    return ChatOrchestrator(
        registry=registry,
        llm_client=llm_client,
        strategy_chain=strategy_chain,
        agent_loop=AgentLoop(llm_client, registry, settings=settings),
    )
