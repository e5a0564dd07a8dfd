"""Tests for tool-trace rendering and the offline reply."""

import json

import pytest

from mcp_orchestrator.domain.model.mcp import ToolCall, ToolCallRecord, ToolResult
from mcp_orchestrator.infrastructure.llm.tool_context import (
    SimulatedReplyBuilder,
    build_tool_context,
    table_rows,
)
from mcp_orchestrator.infrastructure.mcp.registry import SAP_CONNECTION_FAILED_MESSAGE

ABAP = "mcp-abap-abap-adt-api"
DOCS = "document-retrieval"

DOCUMENT = {
    "documentTitle": "Flugbuch",
    "documentPath": "/docs/flugbuch.pdf",
    "score": 0.875,
    "content": "Platzrunde mit Fitzer",
}


def record(server: str, tool: str, result: ToolResult, **arguments) -> ToolCallRecord:
    return ToolCallRecord(ToolCall(server, tool, arguments), result)


def text_content(payload) -> dict:
    return {"content": [{"type": "text", "text": json.dumps(payload)}]}


class TestBuildToolContext:
    def test_block_layout(self):
        trace = [
            record("agentdb", "query", ToolResult.ok([{"id": 1}]), sql="SELECT 1"),
            record(ABAP, "tableContents", ToolResult.fail("no auth"), ddicEntityName="VBAK"),
        ]

        context = build_tool_context(trace)

        assert context.startswith("\n\n--- MCP Tool Results ---\n")
        assert "\nTool 1: agentdb.query\n" in context
        assert 'Arguments: {\n  "sql": "SELECT 1"\n}' in context
        assert 'Result: [\n  {\n    "id": 1\n  }\n]' in context
        assert "\nTool 2: mcp-abap-abap-adt-api.tableContents\nArguments:" in context
        assert "Error: no auth\n" in context
        assert "\n--- End MCP Tool Results ---\n\nIMPORTANT:" in context

    def test_document_search_is_rendered_for_the_model(self):
        result = ToolResult.ok({"results": [DOCUMENT], "resultsCount": 1})
        context = build_tool_context([record(DOCS, "search_documents", result, query="Fitzer")])

        assert "DOKUMENTENSUCHE ERFOLGREICH - 1 ERGEBNISSE GEFUNDEN" in context
        assert "【1】 Flugbuch" in context
        assert "⭐ Relevanz: 87.5%" in context
        assert "Du MUSST dem Benutzer diese 1 gefundenen Dokumente präsentieren!" in context

    def test_empty_document_search(self):
        result = ToolResult.ok({"results": []})
        context = build_tool_context([record(DOCS, "search_documents", result, query="Fitzer")])
        assert 'Keine Dokumente gefunden für "Fitzer"' in context


class TestTableRows:
    def test_plain_list(self):
        assert table_rows([{"VBELN": "1"}]) == [{"VBELN": "1"}]

    def test_content_rows(self):
        assert table_rows({"content": [{"VBELN": "1"}]}) == [{"VBELN": "1"}]

    def test_text_content_with_list(self):
        assert table_rows(text_content([{"VBELN": "1"}])) == [{"VBELN": "1"}]

    def test_text_content_with_values(self):
        payload = {"columns": ["VBELN"], "values": [{"VBELN": "1"}]}
        assert table_rows(text_content(payload)) == [{"VBELN": "1"}]

    def test_unusable(self):
        assert table_rows({"content": [{"type": "text", "text": "not json"}]}) is None
        assert table_rows({"rows": []}) is None
        assert table_rows("VBAK") is None


class TestSimulatedReply:
    @pytest.fixture
    def builder(self):
        return SimulatedReplyBuilder()

    def test_no_tools_apologizes(self, builder):
        reply = builder.build("Zeige VBAK", None)
        assert reply.startswith(
            'Entschuldigung, ich hatte ein technisches Problem beim Verarbeiten Ihrer Anfrage '
            '"Zeige VBAK".'
        )

    def test_sap_table_is_formatted(self, builder):
        rows = [{"VBELN": "4711", "AUART": "TA", "ERDAT": "20240131", "NETWR": 5, "WAERK": "EUR"}]
        trace = [
            record(ABAP, "tableContents", ToolResult.ok(text_content(rows)), ddicEntityName="VBAK")
        ]

        reply = builder.build("Zeige VBAK", trace)

        assert "1. 4711 - Standardauftrag (TA) vom 31.01.2024, Wert: 5,00 EUR" in reply

    def test_sap_result_without_rows(self, builder):
        trace = [record(ABAP, "tableContents", ToolResult.ok({"status": "ok"}), ddicEntityName="X")]
        assert builder.build("x", trace).startswith("Die SAP-Tabelle X wurde erfolgreich abgerufen:")

    def test_object_search(self, builder):
        trace = [record(ABAP, "searchObject", ToolResult.ok([{"name": "VBAK"}]), query="VBAK")]
        assert builder.build("x", trace).startswith('SAP-Objektsuche für "VBAK" ergab:')

    def test_document_search_lists_documents(self, builder):
        result = ToolResult.ok({"results": [DOCUMENT]})
        reply = builder.build("x", [record(DOCS, "search_documents", result, query="Fitzer")])

        assert reply.startswith('Ich habe 1 Dokumente gefunden, die den Begriff "Fitzer" enthalten')
        assert "**1. Flugbuch** (Relevanz: 87.5%)" in reply
        assert '📝 Vorschau: "Platzrunde mit Fitzer"' in reply

    def test_document_search_without_hits(self, builder):
        result = ToolResult.ok({"results": []})
        reply = builder.build("x", [record(DOCS, "search_documents", result, query="Fitzer")])
        assert reply.startswith('Ich habe keine Dokumente gefunden, die den Begriff "Fitzer"')

    def test_document_stats(self, builder):
        result = ToolResult.ok({"stats": {"totalDocuments": 12, "totalChunks": 340}})
        reply = builder.build("x", [record(DOCS, "get_document_stats", result)])

        assert reply.startswith("📊 **Dokumentenstatistiken:**")
        assert "• Gesamtanzahl Dokumente: 12" in reply
        assert "• Durchschnittliche Chunk-Größe: Unbekannt Zeichen" in reply

    def test_document_context_text(self, builder):
        result = ToolResult.ok({"context": "Fitzer flog die Platzrunde."})
        reply = builder.build("x", [record(DOCS, "get_document_context", result, query="Fitzer")])
        assert reply.endswith("Fitzer flog die Platzrunde.")

    def test_agentdb_rows_are_appended(self, builder):
        trace = [
            record(ABAP, "searchObject", ToolResult.ok([]), query="VBAK"),
            record("agentdb", "query", ToolResult.ok([{"id": 1}, {"id": 2}])),
        ]

        reply = builder.build("x", trace)

        assert reply.startswith("SAP-Objektsuche")
        assert "Die AgentDB-Abfrage ergab 2 Ergebnisse:\n1. {\"id\": 1}\n2. {\"id\": 2}\n" in reply

    def test_agentdb_count(self, builder):
        reply = builder.build("x", [record("agentdb", "count", ToolResult.ok({"count": 7}))])
        assert reply.endswith("Die AgentDB enthält 7 Einträge.")

    def test_sap_unreachable_overrides_everything(self, builder):
        trace = [
            record(DOCS, "search_documents", ToolResult.ok({"results": [DOCUMENT]}), query="x"),
            record(ABAP, "tableContents", ToolResult.fail(SAP_CONNECTION_FAILED_MESSAGE)),
        ]

        reply = builder.build("x", trace)

        assert reply.startswith("Entschuldigung, das SAP-System ist derzeit nicht erreichbar.")
        assert reply.endswith(f"Fehlerdetails: {SAP_CONNECTION_FAILED_MESSAGE}")

    def test_other_failures(self, builder):
        trace = [record("agentdb", "query", ToolResult.fail("syntax error"))]
        reply = builder.build("x", trace)
        assert reply == "Es gab einen Fehler bei der Ausführung des MCP-Tools: syntax error"

    def test_generic_results_are_listed(self, builder):
        trace = [record("everest-SAP-system", "search-sap-services", ToolResult.ok({"n": 3}))]

        reply = builder.build("x", trace)

        assert reply == (
            "Basierend auf den MCP-Tool-Ergebnissen:\n\n"
            'everest-SAP-system.search-sap-services: {"n": 3}\n'
        )
