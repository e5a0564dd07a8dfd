"""
Keyword-priority tool selection.

A static table maps utterance keywords to (server, tool, default args)
triples. Matching is plain substring search on the lowercased utterance:

1. A server is considered when it is active and one of its server
   keywords occurs.
2. A tool of that server matches when one of its own keywords occurs and
   the tool exists in the tools index.
3. Matches run by descending priority, at most two of them. A successful
   call with priority >= 8 ends the run early.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any

from mcp_orchestrator.configuration.config import Settings, get_settings
from mcp_orchestrator.domain.model.mcp import ToolCall, ToolCallRecord, ToolDescriptor
from mcp_orchestrator.infrastructure.agent.selection.query_extraction import (
    extract_document_search_terms,
    extract_entry_count,
    extract_object_query,
    extract_table_names,
)
from mcp_orchestrator.infrastructure.agent.selection.tool_tables import (
    ProactiveToolsConfig,
    load_proactive_tools,
)
from mcp_orchestrator.infrastructure.mcp.registry import ToolRegistry

logger = logging.getLogger(__name__)

MAX_TOOLS_PER_UTTERANCE = 2
EARLY_STOP_PRIORITY = 8


@dataclass(frozen=True)
class KeywordMatch:
    """A keyword-triggered tool candidate."""

    server_name: str
    tool_name: str
    tool: ToolDescriptor
    priority: int
    auto_trigger: bool
    default_args: dict[str, Any] = field(default_factory=dict)


class KeywordMatcher:
    """Fast first-pass tool selector driven by the keyword table."""

    name = "keyword"

    def __init__(
        self,
        registry: ToolRegistry,
        config: ProactiveToolsConfig | None = None,
        warmup_delay: float | None = None,
        settings: Settings | None = None,
    ) -> None:
        settings = settings or get_settings()
        self._registry = registry
        self.config = config or load_proactive_tools()
        self.warmup_delay = (
            warmup_delay if warmup_delay is not None else settings.matcher_warmup_delay
        )
        self._tools_index: dict[str, ToolDescriptor] = {}
        self._warmup_task: asyncio.Task | None = None

    async def start(self) -> None:
        """Schedule the tools index build after the warm-up delay."""
        if self.config.enabled and self.config.auto_discovery:
            self._warmup_task = asyncio.create_task(self._build_after_warmup())

    async def stop(self) -> None:
        if self._warmup_task and not self._warmup_task.done():
            self._warmup_task.cancel()
            await asyncio.gather(self._warmup_task, return_exceptions=True)
        self._warmup_task = None

    async def _build_after_warmup(self) -> None:
        await asyncio.sleep(self.warmup_delay)
        await self.build_tools_index()

    async def build_tools_index(self) -> None:
        logger.info("Building proactive MCP tools index...")
        for server in self._registry.get_available_servers():
            tools = await self._registry.get_available_tools(server.name)
            for tool in tools:
                self._tools_index[f"{server.name}.{tool.name}"] = tool
            logger.info(f"Indexed {len(tools)} tools for server: {server.name}")
        logger.info(f"Built tools index with {len(self._tools_index)} entries")

    async def refresh_tools_index(self) -> None:
        self._tools_index.clear()
        await self.build_tools_index()

    # ------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------

    async def analyze_and_execute(
        self,
        utterance: str,
        active_servers: list[str],
        auto_execute: bool = True,
        auth_token: str | None = None,
    ) -> list[ToolCallRecord]:
        """
        Execute the best keyword-matched tools for an utterance.

        Args:
            utterance: Free-text user input
            active_servers: Servers the caller allows
            auto_execute: When False only auto-trigger tools run
            auth_token: Bearer token forwarded to the registry

        Returns:
            Executed tool calls with their results, possibly empty
        """
        if not self.config.enabled:
            return []
        if not self._tools_index:
            await self.build_tools_index()

        matches = self.find_matching_tools(utterance.lower(), active_servers)
        if not matches:
            logger.debug("No matching proactive tools found for input")
            return []

        matches.sort(key=lambda m: m.priority, reverse=True)

        records: list[ToolCallRecord] = []
        for match in matches[:MAX_TOOLS_PER_UTTERANCE]:
            if not auto_execute and not match.auto_trigger:
                continue

            tool_call = self.build_tool_call(match, utterance)
            logger.info(f"Proactively executing: {tool_call.qualified_name}")
            result = await self._registry.execute_tool(tool_call, auth_token)
            records.append(ToolCallRecord(tool_call=tool_call, result=result))

            if result.success and match.priority >= EARLY_STOP_PRIORITY:
                break
        return records

    async def select_and_execute(
        self,
        utterance: str,
        active_servers: list[str],
        auth_token: str | None = None,
    ) -> list[ToolCallRecord]:
        return await self.analyze_and_execute(utterance, active_servers, auth_token=auth_token)

    def find_matching_tools(self, input_lower: str, active_servers: list[str]) -> list[KeywordMatch]:
        matches: list[KeywordMatch] = []
        for server_name, server_config in self.config.proactive_tools.items():
            if not server_config.enabled or server_name not in active_servers:
                continue
            if not any(k.lower() in input_lower for k in server_config.keywords):
                continue

            for tool_name, tool_config in server_config.tools.items():
                if not any(k.lower() in input_lower for k in tool_config.keywords):
                    continue
                tool = self._tools_index.get(f"{server_name}.{tool_name}")
                if tool is None:
                    continue
                matches.append(
                    KeywordMatch(
                        server_name=server_name,
                        tool_name=tool_name,
                        tool=tool,
                        priority=tool_config.priority,
                        auto_trigger=tool_config.auto_trigger,
                        default_args=dict(tool_config.default_args),
                    )
                )
        return matches

    def build_tool_call(self, match: KeywordMatch, utterance: str) -> ToolCall:
        """Layer utterance-derived arguments over the tool's default arguments."""
        args = dict(match.default_args)
        lowered = utterance.lower()

        if match.tool_name == "tableContents":
            tables = extract_table_names(utterance)
            if tables:
                args["ddicEntityName"] = tables[0]
            elif "vbak" in lowered:
                args["ddicEntityName"] = "VBAK"
            elif "rechnung" in lowered or "invoice" in lowered or "vbrk" in lowered:
                args["ddicEntityName"] = "VBRK"

            row_count = extract_entry_count(utterance)
            if row_count is not None:
                args["rowNumber"] = row_count
        elif match.tool_name == "searchObject":
            args["query"] = extract_object_query(utterance)
        elif match.tool_name in ("search_documents", "get_document_context"):
            args["query"] = extract_document_search_terms(utterance)
        elif match.tool_name == "natural_language_query":
            args["query"] = utterance

        return ToolCall(server_name=match.server_name, tool_name=match.tool_name, arguments=args)

    # ------------------------------------------------------------------
    # Table access
    # ------------------------------------------------------------------

    def get_proactive_tools_for_server(self, server_name: str) -> list[str]:
        server_config = self.config.proactive_tools.get(server_name)
        if server_config is None or not server_config.enabled:
            return []
        return list(server_config.tools)

    def should_auto_trigger(self, server_name: str, tool_name: str) -> bool:
        server_config = self.config.proactive_tools.get(server_name)
        if server_config is None or not server_config.enabled:
            return False
        tool_config = server_config.tools.get(tool_name)
        return tool_config.auto_trigger if tool_config else False

    def update_config(self, **changes: Any) -> None:
        """Replace top-level table fields; values are validated."""
        self.config = ProactiveToolsConfig.model_validate(
            {**self.config.model_dump(), **changes}
        )
        logger.info("Proactive MCP configuration updated")

    def get_config(self) -> ProactiveToolsConfig:
        return self.config.model_copy(deep=True)
