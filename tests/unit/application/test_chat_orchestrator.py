"""Tests for the chat orchestrator and the command-line entry point."""

import argparse
import json
from unittest.mock import AsyncMock, MagicMock

import pytest

from mcp_orchestrator.__main__ import build_parser, run
from mcp_orchestrator.application.services.chat_orchestrator import (
    APOLOGY_MESSAGE,
    DEFAULT_SYSTEM_PROMPT,
    ChatOrchestrator,
    ChatRequest,
    create_chat_orchestrator,
)
from mcp_orchestrator.domain.llm_providers.llm_types import LLMResponse, Message
from mcp_orchestrator.domain.model.agent import AgentResult, ChainResult
from mcp_orchestrator.domain.model.mcp import (
    ServerKind,
    ToolCall,
    ToolCallRecord,
    ToolResult,
    ToolServer,
)
from mcp_orchestrator.infrastructure.agent.selection.domain_matcher import DomainMatcher
from mcp_orchestrator.infrastructure.agent.selection.keyword_matcher import KeywordMatcher
from tests.helpers import make_settings

RECORD = ToolCallRecord(
    ToolCall("mcp-abap-abap-adt-api", "tableContents", {"ddicEntityName": "VBAK"}),
    ToolResult.ok([{"VBELN": "1"}]),
)


@pytest.fixture
def registry():
    mock = MagicMock()
    mock.get_available_servers = MagicMock(
        return_value=[
            ToolServer("mcp-abap-abap-adt-api", ServerKind.ABAP_SYSTEM),
            ToolServer("document-retrieval", ServerKind.DOCUMENT_RETRIEVAL),
        ]
    )
    mock.start = AsyncMock()
    mock.shutdown = AsyncMock()
    return mock


@pytest.fixture
def llm():
    mock = MagicMock()
    mock.generate_response = AsyncMock(return_value=LLMResponse(content="Hier sind die Daten"))
    return mock


@pytest.fixture
def strategy():
    mock = MagicMock()
    mock.name = "keyword"
    mock.start = AsyncMock()
    mock.stop = AsyncMock()
    mock.select_and_execute = AsyncMock(return_value=[RECORD])
    return mock


@pytest.fixture
def chain(strategy):
    mock = MagicMock()
    mock.strategies = [strategy]
    mock.select_and_execute = AsyncMock(return_value=[RECORD])
    return mock


@pytest.fixture
def orchestrator(registry, llm, chain):
    return ChatOrchestrator(
        registry=registry,
        llm_client=llm,
        strategy_chain=chain,
        chain_planner=MagicMock(),
        agent_loop=MagicMock(),
    )


class TestHandleMessage:
    @pytest.mark.asyncio
    async def test_tools_are_selected_and_attached(self, orchestrator, llm, chain):
        request = ChatRequest(
            content="Zeige VBAK",
            use_mcp=True,
            mcp_servers=["mcp-abap-abap-adt-api", "not-configured"],
            model_id="gpt-4o",
            auth_token="token",
            history=[Message.user("Hallo"), Message.assistant("Hi")],
        )

        reply = await orchestrator.handle_message(request)

        assert reply.content == "Hier sind die Daten"
        assert reply.tool_call_trace == [RECORD]
        chain.select_and_execute.assert_awaited_once_with(
            "Zeige VBAK", ["mcp-abap-abap-adt-api"], "token"
        )

        messages = llm.generate_response.await_args.args[0]
        assert [m.role for m in messages] == ["system", "user", "assistant", "user"]
        assert messages[0].content == DEFAULT_SYSTEM_PROMPT
        assert llm.generate_response.await_args.kwargs == {
            "model_id": "gpt-4o",
            "tool_results": [RECORD],
        }

    @pytest.mark.asyncio
    async def test_without_mcp_no_tools_run(self, orchestrator, llm, chain):
        reply = await orchestrator.handle_message(
            ChatRequest(content="Hallo", mcp_servers=["mcp-abap-abap-adt-api"])
        )

        chain.select_and_execute.assert_not_awaited()
        assert reply.tool_call_trace == []
        assert llm.generate_response.await_args.kwargs["tool_results"] is None

    @pytest.mark.asyncio
    async def test_custom_system_prompt(self, orchestrator, llm):
        await orchestrator.handle_message(ChatRequest(content="x", system_prompt="Sei kurz."))
        assert llm.generate_response.await_args.args[0][0].content == "Sei kurz."

    @pytest.mark.asyncio
    async def test_selection_failure_becomes_error_record(self, orchestrator, llm, chain):
        chain.select_and_execute = AsyncMock(side_effect=RuntimeError("index broken"))

        reply = await orchestrator.handle_message(
            ChatRequest(content="x", use_mcp=True, mcp_servers=["document-retrieval"])
        )

        (record,) = reply.tool_call_trace
        assert record.tool_call.qualified_name == "system.error"
        assert record.result.error == "MCP tools temporarily unavailable: index broken"
        assert llm.generate_response.await_args.kwargs["tool_results"] == [record]

    @pytest.mark.asyncio
    async def test_llm_failure_apologizes(self, orchestrator, llm):
        llm.generate_response = AsyncMock(side_effect=RuntimeError("boom"))

        reply = await orchestrator.handle_message(ChatRequest(content="x"))

        assert reply.content == APOLOGY_MESSAGE
        assert reply.to_dict() == {"content": APOLOGY_MESSAGE, "toolCallTrace": []}


class TestLifecycle:
    @pytest.mark.asyncio
    async def test_start_and_shutdown(self, orchestrator, registry, strategy):
        await orchestrator.start()
        await orchestrator.shutdown()

        registry.start.assert_awaited_once()
        strategy.start.assert_awaited_once()
        strategy.stop.assert_awaited_once()
        registry.shutdown.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_chain_and_agent_delegate(self, orchestrator):
        orchestrator.chain_planner.execute_document_search_chain = AsyncMock(
            return_value=ChainResult(steps=[], final_result="chain")
        )
        orchestrator.agent_loop.execute_agentic_search = AsyncMock(
            return_value=AgentResult(steps=[], final_answer="agent", iterations=1, success=False)
        )

        assert (await orchestrator.run_chain("Fitzer")).final_result == "chain"
        assert (await orchestrator.run_agent("Fitzer")).final_answer == "agent"


def test_factory_orders_domain_before_keyword(sample_config):
    orchestrator = create_chat_orchestrator(sample_config, settings=make_settings(sample_config))

    strategies = orchestrator.strategy_chain.strategies
    assert [type(s) for s in strategies] == [DomainMatcher, KeywordMatcher]
    assert orchestrator.agent_loop.max_iterations == 5


class TestCli:
    def parse(self, *argv: str) -> argparse.Namespace:
        return build_parser().parse_args(list(argv))

    @pytest.mark.asyncio
    async def test_chat_mode_uses_all_enabled_servers(self, orchestrator, chain, capsys):
        code = await run(self.parse("Zeige VBAK"), orchestrator)

        assert code == 0
        assert capsys.readouterr().out.strip() == "Hier sind die Daten"
        assert chain.select_and_execute.await_args.args[1] == [
            "mcp-abap-abap-adt-api",
            "document-retrieval",
        ]

    @pytest.mark.asyncio
    async def test_json_output(self, orchestrator, capsys):
        await run(self.parse("--json", "--server", "document-retrieval", "x"), orchestrator)

        data = json.loads(capsys.readouterr().out)
        assert data["content"] == "Hier sind die Daten"
        assert data["toolCallTrace"][0]["toolCall"]["toolName"] == "tableContents"

    @pytest.mark.asyncio
    async def test_missing_utterance(self, orchestrator, registry, capsys):
        assert await run(self.parse(), orchestrator) == 2
        registry.start.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_list_servers(self, orchestrator, registry, capsys):
        registry.get_all_servers_with_status = MagicMock(
            return_value=[ToolServer("legacy", ServerKind.GENERIC, disabled=True)]
        )

        assert await run(self.parse("--list-servers"), orchestrator) == 0

        data = json.loads(capsys.readouterr().out)
        assert data[0]["name"] == "legacy"
        assert data[0]["disabled"] is True
