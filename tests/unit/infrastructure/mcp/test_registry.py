"""Unit tests for the ToolRegistry with a mocked process supervisor."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from mcp_orchestrator.domain.exceptions.mcp import (
    MCPProtocolError,
    MCPRequestTimeoutError,
)
from mcp_orchestrator.domain.model.mcp import (
    ResourceDescriptor,
    ServerKind,
    ToolCall,
    ToolDescriptor,
    ToolResult,
)
from mcp_orchestrator.infrastructure.mcp.registry import (
    SAP_CONNECTION_FAILED_MESSAGE,
    SAP_LOGIN_FAILED_MESSAGE,
    ToolRegistry,
)
from tests.helpers import make_settings, write_config

ABAP = "mcp-abap-abap-adt-api"


class TestCatalog:
    def test_disabled_servers_are_not_active(self, registry):
        names = {s.name for s in registry.get_available_servers()}
        assert names == {ABAP, "document-retrieval", "everest-SAP-system", "agentdb"}

    def test_kinds_are_resolved_at_load(self, registry):
        assert registry.get_server(ABAP).kind == ServerKind.ABAP_SYSTEM
        assert registry.get_server("document-retrieval").kind == ServerKind.DOCUMENT_RETRIEVAL
        assert registry.get_server("everest-SAP-system").kind == ServerKind.SIMULATED_SAP_CATALOG
        assert registry.get_server("agentdb").kind == ServerKind.GENERIC

    def test_all_servers_with_status_includes_disabled(self, registry):
        status = {s.name: s.disabled for s in registry.get_all_servers_with_status()}
        assert status["legacy"] is True
        assert status[ABAP] is False

    def test_missing_config_yields_empty_catalog(self, tmp_path, supervisor, document_client):
        registry = ToolRegistry(
            tmp_path / "missing.json",
            supervisor=supervisor,
            document_client=document_client,
            settings=make_settings(tmp_path / "missing.json"),
        )
        assert registry.get_available_servers() == []
        assert registry.get_all_servers_with_status() == []


class TestLifecycle:
    @pytest.mark.asyncio
    async def test_start_replaces_synthesized_tools_with_live_ones(self, registry, supervisor):
        live = [ToolDescriptor("live_tool")]
        supervisor.start_server = AsyncMock(side_effect=lambda name, cfg: name == "agentdb")
        supervisor.list_tools = AsyncMock(return_value=live)

        await registry.start()

        assert registry.get_server("agentdb").tools == live
        assert registry.get_server(ABAP).find_tool("tableContents") is not None

    @pytest.mark.asyncio
    async def test_reload_stops_clears_and_restarts(self, registry, supervisor):
        await registry.discover_and_cache_tools("agentdb")

        await registry.reload_configuration()

        supervisor.stop_all_servers.assert_awaited_once()
        assert registry._tools_cache == {}
        assert supervisor.start_server.await_count == 4

    @pytest.mark.asyncio
    async def test_shutdown_closes_everything(self, registry, supervisor, document_client):
        await registry.shutdown()
        supervisor.stop_all_servers.assert_awaited_once()
        document_client.aclose.assert_awaited_once()


class TestDiscovery:
    @pytest.mark.asyncio
    async def test_document_retrieval_tools_are_cached(self, registry, supervisor):
        first = await registry.discover_and_cache_tools("document-retrieval")
        second = await registry.discover_and_cache_tools("document-retrieval")

        assert second is first
        assert "search_documents" in [t.name for t in first]
        supervisor.list_tools.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_live_discovery_runs_once(self, registry, supervisor):
        supervisor.is_server_running = MagicMock(return_value=True)
        supervisor.list_tools = AsyncMock(return_value=[ToolDescriptor("echo")])

        await registry.discover_and_cache_tools("agentdb")
        tools = await registry.get_available_tools("agentdb")

        assert [t.name for t in tools] == ["echo"]
        supervisor.list_tools.assert_awaited_once_with("agentdb")

    @pytest.mark.asyncio
    async def test_discovery_error_yields_empty_list(self, registry, supervisor):
        supervisor.is_server_running = MagicMock(return_value=True)
        supervisor.list_tools = AsyncMock(side_effect=MCPRequestTimeoutError("agentdb"))

        assert await registry.discover_and_cache_tools("agentdb") == []

    @pytest.mark.asyncio
    async def test_clear_server_cache_forces_rediscovery(self, registry, supervisor):
        supervisor.is_server_running = MagicMock(return_value=True)
        await registry.discover_and_cache_tools("agentdb")
        registry.clear_server_cache("agentdb")
        await registry.discover_and_cache_tools("agentdb")

        assert supervisor.list_tools.await_count == 2

    @pytest.mark.asyncio
    async def test_resources_fall_back_to_synthesized(self, registry):
        resources = await registry.get_available_resources("everest-SAP-system")
        assert [r.uri for r in resources] == ["sap://services"]


class TestExecuteTool:
    @pytest.mark.asyncio
    async def test_unknown_server(self, registry):
        result = await registry.execute_tool(ToolCall("nope", "x"))
        assert result.success is False
        assert "not found" in result.error

    @pytest.mark.asyncio
    async def test_unknown_tool(self, registry):
        result = await registry.execute_tool(ToolCall(ABAP, "dropTable"))
        assert result.success is False
        assert "not found" in result.error

    @pytest.mark.asyncio
    async def test_document_retrieval_goes_to_http_client(self, registry, document_client):
        call = ToolCall("document-retrieval", "search_documents", {"query": "Fitzer"})

        result = await registry.execute_tool(call, auth_token="token")

        assert result.success is True
        document_client.execute.assert_awaited_once_with(call, "token")

    @pytest.mark.asyncio
    async def test_simulated_sap_catalog(self, registry):
        result = await registry.execute_tool(
            ToolCall("everest-SAP-system", "search-sap-services", {"query": "sales"})
        )
        assert result.success is True
        assert result.result["totalCount"] == 3

    @pytest.mark.asyncio
    async def test_generic_server_without_process_is_simulated(self, registry):
        result = await registry.execute_tool(ToolCall("agentdb", "query", {"sql": "SELECT 1"}))
        assert result.success is True
        assert result.result["response"] == "MCP tool executed successfully (simulated)"

    @pytest.mark.asyncio
    async def test_abap_call_logs_in_first(self, registry, supervisor):
        supervisor.is_server_running = MagicMock(return_value=True)
        supervisor.call_tool = AsyncMock(side_effect=[{"ok": True}, {"rows": []}])

        result = await registry.execute_tool(
            ToolCall(ABAP, "tableContents", {"ddicEntityName": "VBAK", "rowNumber": 5})
        )

        assert result == ToolResult.ok({"rows": []})
        assert [c.args[1] for c in supervisor.call_tool.await_args_list] == [
            "login",
            "tableContents",
        ]

    @pytest.mark.asyncio
    async def test_abap_login_failure_is_translated(self, registry, supervisor):
        supervisor.is_server_running = MagicMock(return_value=True)
        supervisor.call_tool = AsyncMock(side_effect=MCPRequestTimeoutError(ABAP))

        result = await registry.execute_tool(ToolCall(ABAP, "tableContents", {}))

        assert result.error == SAP_LOGIN_FAILED_MESSAGE

    @pytest.mark.asyncio
    async def test_abap_connectivity_error_is_translated(self, registry, supervisor):
        supervisor.is_server_running = MagicMock(return_value=True)
        supervisor.call_tool = AsyncMock(
            side_effect=[{}, MCPProtocolError({"message": "connect ECONNREFUSED 10.0.0.1"})]
        )

        result = await registry.execute_tool(ToolCall(ABAP, "tableContents", {}))

        assert result.error == SAP_CONNECTION_FAILED_MESSAGE

    @pytest.mark.asyncio
    async def test_other_abap_errors_pass_through(self, registry, supervisor):
        supervisor.is_server_running = MagicMock(return_value=True)
        supervisor.call_tool = AsyncMock(side_effect=[{}, MCPProtocolError({"message": "no auth"})])

        result = await registry.execute_tool(ToolCall(ABAP, "tableContents", {}))

        assert result.error == "MCP Error: no auth"

    @pytest.mark.asyncio
    async def test_sap_named_server_is_called_without_login(
        self, tmp_path, supervisor, document_client
    ):
        path = write_config(
            tmp_path / "odata.json", servers={"sap-odata-mcp": {"command": "node"}}
        )
        registry = ToolRegistry(
            path,
            supervisor=supervisor,
            document_client=document_client,
            settings=make_settings(path),
        )
        supervisor.is_server_running = MagicMock(return_value=True)
        supervisor.call_tool = AsyncMock(side_effect=MCPRequestTimeoutError("sap-odata-mcp"))

        result = await registry.execute_tool(
            ToolCall("sap-odata-mcp", "searchObject", {"query": "VBAK"})
        )

        supervisor.call_tool.assert_awaited_once_with(
            "sap-odata-mcp", "searchObject", {"query": "VBAK"}
        )
        assert result.error == "Request timeout for sap-odata-mcp"

    @pytest.mark.asyncio
    async def test_unexpected_exception_becomes_failure(self, registry, document_client):
        document_client.execute = AsyncMock(side_effect=RuntimeError("kaputt"))

        result = await registry.execute_tool(ToolCall("document-retrieval", "get_document_stats"))

        assert result == ToolResult.fail("kaputt")


class TestGetResource:
    @pytest.mark.asyncio
    async def test_simulated_resource(self, registry):
        result = await registry.get_resource("everest-SAP-system", "sap://services")
        assert result.result["resource"] == "MCP resource fetched successfully (simulated)"

    @pytest.mark.asyncio
    async def test_unknown_resource(self, registry):
        result = await registry.get_resource("everest-SAP-system", "sap://nothing")
        assert result.success is False
        assert "not found" in result.error

    @pytest.mark.asyncio
    async def test_live_resource(self, registry, supervisor):
        server = registry.get_server("agentdb")
        server.resources = [ResourceDescriptor("db://tables")]
        supervisor.is_server_running = MagicMock(return_value=True)
        supervisor.read_resource = AsyncMock(return_value={"contents": []})

        result = await registry.get_resource("agentdb", "db://tables")

        assert result == ToolResult.ok({"contents": []})
