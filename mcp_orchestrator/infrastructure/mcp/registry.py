"""
Tool registry: the single entry point for executing tools on servers.

The registry owns the catalog of configured tool servers, caches each
server's tool and resource lists, and dispatches tool calls by server kind:

- DOCUMENT_RETRIEVAL servers go to the document HTTP API.
- Servers with a live process go through the ProcessSupervisor. ABAP
  systems get an implicit ``login`` call first and localized connectivity
  errors.
- SIMULATED_SAP_CATALOG servers answer from fixed payloads.
- Anything else is echoed back as a simulated success.

``execute_tool`` and ``get_resource`` never raise; failures come back as
``ToolResult(success=False, error=...)``.

Reload is a critical section guarded by a lock. Tool calls are not blocked
by it: calls against a server that is stopped mid-reload fail with a
disconnection or not-available error.
"""

import asyncio
import logging
from dataclasses import replace
from pathlib import Path

from mcp_orchestrator.configuration.config import Settings, get_settings
from mcp_orchestrator.configuration.server_config import (
    ToolServerConfig,
    load_config_file,
    parse_config_file,
)
from mcp_orchestrator.domain.exceptions.mcp import (
    MCPConfigurationError,
    MCPError,
    MCPResourceNotFoundError,
    MCPServerNotFoundError,
    MCPToolNotFoundError,
)
from mcp_orchestrator.domain.model.mcp import (
    ResourceDescriptor,
    ServerKind,
    ToolCall,
    ToolDescriptor,
    ToolResult,
    ToolServer,
)
from mcp_orchestrator.infrastructure.mcp.document_client import DocumentRetrievalClient
from mcp_orchestrator.infrastructure.mcp.server_catalog import build_server
from mcp_orchestrator.infrastructure.mcp.simulated_sap import execute_simulated_sap_tool
from mcp_orchestrator.infrastructure.mcp.supervisor import ProcessSupervisor

logger = logging.getLogger(__name__)

SAP_LOGIN_FAILED_MESSAGE = (
    "SAP System nicht erreichbar. Es gab einen Timeout-Fehler bei der Verbindung zum "
    "SAP System. Bitte überprüfen Sie die Netzwerkverbindung oder wenden Sie sich an "
    "Ihren SAP-Administrator."
)
SAP_CONNECTION_FAILED_MESSAGE = (
    "SAP System nicht erreichbar. Es gab einen Verbindungsfehler zum SAP System. "
    "Bitte überprüfen Sie die Netzwerkverbindung oder wenden Sie sich an Ihren "
    "SAP-Administrator."
)
_CONNECTIVITY_MARKERS = ("timeout", "ECONNREFUSED", "ENOTFOUND")


class ToolRegistry:
    """
    Catalog and dispatch facade over configured tool servers.

    Usage:
        registry = ToolRegistry("conf.json")
        await registry.start()
        result = await registry.execute_tool(
            ToolCall("document-retrieval", "search_documents", {"query": "Fitzer"})
        )
        await registry.shutdown()
    """

    def __init__(
        self,
        config_path: str | Path | None = None,
        supervisor: ProcessSupervisor | None = None,
        document_client: DocumentRetrievalClient | None = None,
        settings: Settings | None = None,
    ) -> None:
        settings = settings or get_settings()
        self.config_path = Path(config_path or settings.mcp_config_path)
        self._supervisor = supervisor or ProcessSupervisor(settings=settings)
        self._document_client = document_client or DocumentRetrievalClient(settings=settings)

        self._servers: dict[str, ToolServer] = {}
        self._server_configs: dict[str, ToolServerConfig] = {}
        self._tools_cache: dict[str, list[ToolDescriptor]] = {}
        self._resources_cache: dict[str, list[ResourceDescriptor]] = {}
        self._reload_lock = asyncio.Lock()

        self._load_configuration()

    @property
    def supervisor(self) -> ProcessSupervisor:
        return self._supervisor

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def _load_configuration(self) -> None:
        config = load_config_file(self.config_path)
        for name, server_config in config.mcp_servers.items():
            if server_config.disabled:
                logger.info(f"MCP server disabled: {name}")
                continue
            self._server_configs[name] = server_config
            self._servers[name] = build_server(name, server_config)
            logger.info(f"Loaded MCP server: {name} ({self._servers[name].kind.value})")
        logger.info(f"Initialized {len(self._servers)} MCP servers")

    async def start(self) -> None:
        """Start every enabled server and replace synthesized lists with live ones."""
        logger.info("Starting MCP servers...")
        await self._start_enabled_servers()

    async def shutdown(self) -> None:
        logger.info("Stopping MCP servers...")
        await self._supervisor.stop_all_servers()
        await self._document_client.aclose()

    async def reload_configuration(self) -> None:
        """Stop all servers, clear every cache, re-read the file and restart."""
        async with self._reload_lock:
            logger.info("Reloading MCP server configuration...")
            await self._supervisor.stop_all_servers()
            self._servers.clear()
            self._server_configs.clear()
            self.clear_all_caches()
            self._load_configuration()
            await self._start_enabled_servers()
            logger.info("MCP configuration reloaded successfully")

    async def _start_enabled_servers(self) -> None:
        for name, config in list(self._server_configs.items()):
            try:
                if not await self._supervisor.start_server(name, config):
                    continue
                tools = await self._supervisor.list_tools(name)
                resources = await self._supervisor.list_resources(name)
            except MCPError as e:
                logger.error(f"Failed to start MCP server {name}: {e}")
                continue

            server = self._servers.get(name)
            if server is not None:
                server.tools = tools
                server.resources = resources
            logger.info(
                f"MCP server {name} started with {len(tools)} tools "
                f"and {len(resources)} resources"
            )

    # ------------------------------------------------------------------
    # Catalog
    # ------------------------------------------------------------------

    def get_available_servers(self) -> list[ToolServer]:
        return list(self._servers.values())

    def get_all_servers_with_status(self) -> list[ToolServer]:
        """
        List configured servers including disabled ones.

        Re-reads the configuration file; on failure only the active servers
        are returned.
        """
        try:
            config = parse_config_file(self.config_path)
        except MCPConfigurationError as e:
            logger.error(f"Failed to get all servers with status: {e}")
            return [replace(s, disabled=False) for s in self._servers.values()]

        servers: list[ToolServer] = []
        for name, server_config in config.mcp_servers.items():
            if server_config.disabled:
                servers.append(replace(build_server(name, server_config), disabled=True))
            elif name in self._servers:
                servers.append(replace(self._servers[name], disabled=False))
        return servers

    def get_server(self, name: str) -> ToolServer | None:
        return self._servers.get(name)

    def get_server_config(self, name: str) -> ToolServerConfig | None:
        return self._server_configs.get(name)

    async def discover_and_cache_tools(self, name: str) -> list[ToolDescriptor]:
        """Return cached tools, fetching them live if the server process runs."""
        if name in self._tools_cache:
            return self._tools_cache[name]

        if self._supervisor.is_server_running(name):
            try:
                tools = await self._supervisor.list_tools(name)
            except MCPError as e:
                logger.error(f"Failed to discover tools for {name}: {e}")
                return []
            self._tools_cache[name] = tools
            logger.info(f"Cached {len(tools)} tools for MCP server: {name}")
            server = self._servers.get(name)
            if server is not None:
                server.tools = tools
            return tools

        server = self._servers.get(name)
        tools = list(server.tools) if server else []
        self._tools_cache[name] = tools
        return tools

    async def discover_and_cache_resources(self, name: str) -> list[ResourceDescriptor]:
        if name in self._resources_cache:
            return self._resources_cache[name]

        if self._supervisor.is_server_running(name):
            resources = await self._supervisor.list_resources(name)
            self._resources_cache[name] = resources
            logger.info(f"Cached {len(resources)} resources for MCP server: {name}")
            server = self._servers.get(name)
            if server is not None:
                server.resources = resources
            return resources

        server = self._servers.get(name)
        resources = list(server.resources) if server else []
        self._resources_cache[name] = resources
        return resources

    async def get_available_tools(self, name: str) -> list[ToolDescriptor]:
        return await self.discover_and_cache_tools(name)

    async def get_available_resources(self, name: str) -> list[ResourceDescriptor]:
        return await self.discover_and_cache_resources(name)

    def clear_server_cache(self, name: str) -> None:
        self._tools_cache.pop(name, None)
        self._resources_cache.pop(name, None)
        logger.info(f"Cleared cache for MCP server: {name}")

    def clear_all_caches(self) -> None:
        self._tools_cache.clear()
        self._resources_cache.clear()
        logger.info("Cleared all MCP server caches")

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    async def execute_tool(self, tool_call: ToolCall, auth_token: str | None = None) -> ToolResult:
        """Execute a tool call. Never raises."""
        try:
            server = self._servers.get(tool_call.server_name)
            if server is None:
                return ToolResult.fail(str(MCPServerNotFoundError(tool_call.server_name)))
            if server.find_tool(tool_call.tool_name) is None:
                return ToolResult.fail(
                    str(MCPToolNotFoundError(tool_call.tool_name, tool_call.server_name))
                )

            logger.info(f"Executing MCP tool: {tool_call.qualified_name}")

            if server.kind == ServerKind.DOCUMENT_RETRIEVAL:
                return await self._document_client.execute(tool_call, auth_token)
            if self._supervisor.is_server_running(server.name):
                return await self._call_live(server, tool_call)
            if server.kind == ServerKind.SIMULATED_SAP_CATALOG:
                return execute_simulated_sap_tool(tool_call)

            return ToolResult.ok(
                {
                    "toolName": tool_call.tool_name,
                    "serverName": tool_call.server_name,
                    "arguments": dict(tool_call.arguments),
                    "response": "MCP tool executed successfully (simulated)",
                }
            )
        except Exception as e:
            logger.exception(f"Error executing MCP tool {tool_call.qualified_name}: {e}")
            return ToolResult.fail(str(e))

    async def _call_live(self, server: ToolServer, tool_call: ToolCall) -> ToolResult:
        is_abap = server.kind == ServerKind.ABAP_SYSTEM
        if is_abap:
            try:
                await self._supervisor.call_tool(server.name, "login", {})
            except MCPError as e:
                logger.warning(f"Login failed for {server.name}: {e}")
                return ToolResult.fail(SAP_LOGIN_FAILED_MESSAGE)

        try:
            result = await self._supervisor.call_tool(
                server.name, tool_call.tool_name, dict(tool_call.arguments)
            )
        except MCPError as e:
            logger.error(f"MCP tool call failed: {e}")
            if is_abap and any(marker in str(e) for marker in _CONNECTIVITY_MARKERS):
                return ToolResult.fail(SAP_CONNECTION_FAILED_MESSAGE)
            return ToolResult.fail(str(e))
        return ToolResult.ok(result)

    async def get_resource(self, server_name: str, uri: str) -> ToolResult:
        """Read a resource. Never raises."""
        try:
            server = self._servers.get(server_name)
            if server is None:
                return ToolResult.fail(str(MCPServerNotFoundError(server_name)))
            if server.find_resource(uri) is None:
                return ToolResult.fail(str(MCPResourceNotFoundError(uri, server_name)))

            logger.info(f"Fetching MCP resource: {server_name}/{uri}")
            if self._supervisor.is_server_running(server_name):
                return ToolResult.ok(await self._supervisor.read_resource(server_name, uri))
            return ToolResult.ok(
                {
                    "uri": uri,
                    "serverName": server_name,
                    "resource": "MCP resource fetched successfully (simulated)",
                }
            )
        except MCPError as e:
            logger.error(f"Error fetching MCP resource: {e}")
            return ToolResult.fail(str(e))
