"""
Domain-concept tool selection.

Maps business concepts found in an utterance (orders, invoices, customers,
documents, ...) to SAP tables and tool operations. The operations of the
highest-priority matching domain are resolved, in a fixed preference
order, against the tools of the active servers; the first hit is built and
executed.
"""

import asyncio
import logging
from dataclasses import asdict, dataclass, field
from typing import Any

from mcp_orchestrator.configuration.config import Settings, get_settings
from mcp_orchestrator.domain.model.mcp import ToolCall, ToolCallRecord
from mcp_orchestrator.infrastructure.agent.selection.query_extraction import (
    DEFAULT_ROW_COUNT,
    extract_row_count,
    extract_search_query,
    extract_table_names,
)
from mcp_orchestrator.infrastructure.agent.selection.tool_tables import (
    SemanticConfig,
    SemanticMapping,
    load_semantic_config,
)
from mcp_orchestrator.infrastructure.mcp.registry import ToolRegistry

logger = logging.getLogger(__name__)

# Document operations are preferred over SAP table/search operations
OPERATION_PREFERENCE = (
    "search_documents",
    "get_document_context",
    "get_document_stats",
    "tableContents",
    "searchObject",
    "objectStructure",
)
DOCUMENT_OPERATIONS = frozenset(OPERATION_PREFERENCE[:3])
DIRECT_TABLE_PRIORITY = 5


@dataclass
class SemanticAnalysis:
    """What an utterance refers to, in table and operation terms."""

    concepts: list[str] = field(default_factory=list)
    tables: list[str] = field(default_factory=list)
    operations: list[str] = field(default_factory=list)
    priority: int = 0
    row_count: int = DEFAULT_ROW_COUNT

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["rowCount"] = data.pop("row_count")
        return data


def _unique(items: list[str]) -> list[str]:
    return list(dict.fromkeys(items))


class DomainMatcher:
    """Semantic tool selector driven by the domain mappings."""

    name = "domain"

    def __init__(
        self,
        registry: ToolRegistry,
        config: SemanticConfig | None = None,
        warmup_delay: float | None = None,
        settings: Settings | None = None,
    ) -> None:
        settings = settings or get_settings()
        self._registry = registry
        self.config = config or load_semantic_config()
        self.warmup_delay = (
            warmup_delay if warmup_delay is not None else settings.matcher_warmup_delay
        )
        self._concept_tables: dict[str, list[str]] = {}
        self._tools_index: set[str] = set()
        self._warmup_task: asyncio.Task | None = None
        self._build_concept_map()

    # ------------------------------------------------------------------
    # Index
    # ------------------------------------------------------------------

    def _build_concept_map(self) -> None:
        self._concept_tables.clear()
        for mapping in self.config.semantic_mappings.values():
            self._add_concepts(mapping)

    def _add_concepts(self, mapping: SemanticMapping) -> None:
        for concept in mapping.concepts:
            key = concept.lower()
            self._concept_tables[key] = [*self._concept_tables.get(key, []), *mapping.tables]

    async def start(self) -> None:
        """Schedule the tools index build after the warm-up delay."""
        if self.config.enabled:
            self._warmup_task = asyncio.create_task(self._build_after_warmup())

    async def stop(self) -> None:
        if self._warmup_task and not self._warmup_task.done():
            self._warmup_task.cancel()
            await asyncio.gather(self._warmup_task, return_exceptions=True)
        self._warmup_task = None

    async def _build_after_warmup(self) -> None:
        await asyncio.sleep(self.warmup_delay)
        await self.build_index()

    async def build_index(self) -> None:
        logger.info("Building semantic MCP index...")
        self._build_concept_map()
        for server in self._registry.get_available_servers():
            tools = await self._registry.get_available_tools(server.name)
            self._tools_index.update(f"{server.name}.{tool.name}" for tool in tools)
            logger.info(f"Indexed {len(tools)} tools for server: {server.name}")
        logger.info(f"Built semantic index with {len(self._concept_tables)} concept mappings")

    async def refresh_index(self) -> None:
        self._tools_index.clear()
        await self.build_index()

    # ------------------------------------------------------------------
    # Analysis
    # ------------------------------------------------------------------

    def analyze_user_intent(self, utterance: str) -> SemanticAnalysis:
        """Collect concepts, tables and operations referenced by an utterance."""
        lowered = utterance.lower()
        analysis = SemanticAnalysis(row_count=extract_row_count(lowered))

        for concept, tables in self._concept_tables.items():
            if concept in lowered:
                analysis.concepts.append(concept)
                analysis.tables.extend(tables)
        analysis.tables = _unique(analysis.tables)

        matched = [
            m
            for m in self.config.semantic_mappings.values()
            if any(c.lower() in lowered for c in m.concepts)
        ]
        if matched:
            analysis.priority = max(m.priority for m in matched)
            analysis.operations = _unique(
                [op for m in matched if m.priority == analysis.priority for op in m.operations]
            )
        elif direct_tables := extract_table_names(utterance):
            analysis.tables = _unique(direct_tables)
            analysis.operations = ["tableContents"]
            analysis.priority = DIRECT_TABLE_PRIORITY

        return analysis

    def find_best_tool(
        self, analysis: SemanticAnalysis, active_servers: list[str]
    ) -> tuple[str, str] | None:
        """First (server, operation) available, in operation preference order."""
        for operation in OPERATION_PREFERENCE:
            if operation not in analysis.operations:
                continue
            for server_name in active_servers:
                if f"{server_name}.{operation}" in self._tools_index:
                    return server_name, operation
        return None

    def build_tool_call(
        self,
        server_name: str,
        tool_name: str,
        analysis: SemanticAnalysis,
        utterance: str,
    ) -> ToolCall:
        args: dict[str, Any] = {}
        row_count = analysis.row_count or DEFAULT_ROW_COUNT

        if tool_name == "search_documents":
            args["query"] = extract_search_query(utterance, self._all_concepts())
            args["limit"] = row_count
            args["threshold"] = 0.1
        elif tool_name == "get_document_context":
            args["query"] = extract_search_query(utterance, self._all_concepts())
            args["maxChunks"] = analysis.row_count or 5
            args["threshold"] = 0.3
        elif tool_name == "tableContents":
            args["ddicEntityName"] = analysis.tables[0] if analysis.tables else None
            args["rowNumber"] = row_count
        elif tool_name == "searchObject":
            args["query"] = (analysis.concepts or analysis.tables or ["VBAK"])[0]
            args["max"] = row_count
        elif tool_name == "objectStructure":
            args["objectName"] = analysis.tables[0] if analysis.tables else None
            args["objectType"] = "TABLE"

        return ToolCall(server_name=server_name, tool_name=tool_name, arguments=args)

    def _all_concepts(self) -> list[str]:
        return list(self._concept_tables)

    async def analyze_and_execute(
        self,
        utterance: str,
        active_servers: list[str],
        auth_token: str | None = None,
    ) -> list[ToolCallRecord]:
        """Execute the single best domain-matched tool, if any."""
        if not self.config.enabled:
            return []
        if not self._tools_index:
            await self.build_index()

        analysis = self.analyze_user_intent(utterance)
        if not analysis.tables and not DOCUMENT_OPERATIONS.intersection(analysis.operations):
            logger.debug("No semantic tables or document operations found for input")
            return []

        best = self.find_best_tool(analysis, active_servers)
        if best is None:
            logger.debug("No suitable tool found for semantic analysis")
            return []

        tool_call = self.build_tool_call(*best, analysis, utterance)
        logger.info(f"Semantically executing: {tool_call.qualified_name} with {tool_call.arguments}")
        result = await self._registry.execute_tool(tool_call, auth_token)
        return [ToolCallRecord(tool_call=tool_call, result=result)]

    async def select_and_execute(
        self,
        utterance: str,
        active_servers: list[str],
        auth_token: str | None = None,
    ) -> list[ToolCallRecord]:
        return await self.analyze_and_execute(utterance, active_servers, auth_token)

    # ------------------------------------------------------------------
    # Mapping management
    # ------------------------------------------------------------------

    def add_semantic_mapping(self, domain: str, mapping: SemanticMapping) -> None:
        """Add a domain at runtime; not persisted across restarts."""
        self.config.semantic_mappings[domain] = mapping
        self._add_concepts(mapping)
        logger.info(f"Added semantic mapping for domain: {domain}")

    def analyze_user_input_debug(self, utterance: str) -> dict[str, Any]:
        return self.analyze_user_intent(utterance).to_dict()

    def get_semantic_config(self) -> SemanticConfig:
        return self.config.model_copy(deep=True)

    def update_semantic_config(self, **changes: Any) -> None:
        self.config = SemanticConfig.model_validate({**self.config.model_dump(), **changes})
        self._build_concept_map()
        logger.info("Semantic MCP configuration updated")
