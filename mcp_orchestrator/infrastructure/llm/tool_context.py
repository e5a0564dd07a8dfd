"""
Rendering of tool-call traces for the LLM and for the offline reply.

``build_tool_context`` produces the "--- MCP Tool Results ---" block that is
appended to the last user message before a completion call.
``SimulatedReplyBuilder`` answers from the trace alone when no model can be
reached: SAP tables go through the GenericSAPFormatter, document results
are listed, AgentDB rows are appended, and a failed call replaces
everything with an error text.
"""

import json
from collections.abc import Sequence
from typing import Any

from mcp_orchestrator.domain.model.mcp import ServerKind, ToolCallRecord
from mcp_orchestrator.infrastructure.llm.sap_formatter import GenericSAPFormatter
from mcp_orchestrator.infrastructure.mcp.server_catalog import resolve_server_kind

SAP_UNREACHABLE_MARKER = "SAP System nicht erreichbar"

NO_TOOLS_APOLOGY = (
    'Entschuldigung, ich hatte ein technisches Problem beim Verarbeiten Ihrer Anfrage "{query}".\n\n'
    "Das kann verschiedene Gründe haben:\n"
    "- Temporäre Verbindungsprobleme zur AI-API\n"
    "- Überlastung der Systeme\n"
    "- Netzwerkprobleme\n\n"
    "Bitte versuchen Sie es erneut. Ich kann Ihnen helfen bei:\n"
    "- Allgemeinen Fragen und Gesprächen\n"
    "- SAP-Daten (wenn MCP aktiviert ist)\n"
    "- Dokumentensuche\n\n"
    "Stellen Sie Ihre Frage gerne noch einmal - normalerweise funktioniert das System zuverlässig."
)


def _dumps(value: Any, indent: int | None = 2) -> str:
    return json.dumps(value, indent=indent, ensure_ascii=False, default=str)


def _percent(value: Any) -> str | None:
    if isinstance(value, (int, float)) and value:
        return f"{value * 100:.1f}"
    return None


def _document_search_context(record: ToolCallRecord) -> str:
    payload = record.result.result if isinstance(record.result.result, dict) else {}
    documents = payload.get("results")
    query = record.tool_call.arguments.get("query")
    if not isinstance(documents, list):
        return f'No documents found containing "{query}"\n'
    if not documents:
        return f'\nKeine Dokumente gefunden für "{query}"\n'

    count = payload.get("resultsCount") or len(documents)
    text = f"\n\nDOKUMENTENSUCHE ERFOLGREICH - {count} ERGEBNISSE GEFUNDEN\n"
    text += f'Suchbegriff: "{query}"\n\n'
    text += "Die folgenden Dokumente wurden gefunden:\n\n"
    for index, doc in enumerate(documents, start=1):
        doc = doc if isinstance(doc, dict) else {"content": str(doc)}
        text += f"【{index}】 {doc.get('documentTitle') or 'Untitled'}\n"
        text += f"   📂 Dateipfad: {doc.get('documentPath')}\n"
        text += f'   📄 Inhalt: "{str(doc.get("content") or "")[:150].strip()}..."\n'
        score = _percent(doc.get("score"))
        if score:
            text += f"   ⭐ Relevanz: {score}%\n"
        text += "\n"
    text += f"\nDu MUSST dem Benutzer diese {count} gefundenen Dokumente präsentieren!\n"
    text += "Formatiere sie mit Titel, Pfad und Inhalts-Vorschau.\n"
    return text


def build_tool_context(tool_results: Sequence[ToolCallRecord]) -> str:
    """Context block appended to the last user message."""
    text = "\n\n--- MCP Tool Results ---\n"
    for index, record in enumerate(tool_results, start=1):
        call = record.tool_call
        text += f"\nTool {index}: {call.qualified_name}\n"
        text += f"Arguments: {_dumps(call.arguments)}\n"
        if not record.result.success:
            text += f"Error: {record.result.error}\n"
        elif (
            resolve_server_kind(call.server_name) == ServerKind.DOCUMENT_RETRIEVAL
            and call.tool_name == "search_documents"
        ):
            text += _document_search_context(record)
        else:
            text += f"Result: {_dumps(record.result.result)}\n"
    text += "\n--- End MCP Tool Results ---\n\n"
    text += (
        "IMPORTANT: Use the above MCP tool results to provide a detailed, helpful answer. "
        "If documents were found, list them with their relevance scores, titles, and "
        "previews. If no documents were found, explain why and provide suggestions."
    )
    return text


def table_rows(result: Any) -> list[Any] | None:
    """
    Rows of a tableContents result.

    Accepts a bare row list, ``{"content": [rows]}``, or MCP text content
    whose text is a JSON row list.
    """
    if isinstance(result, list):
        return result
    if not isinstance(result, dict) or not isinstance(result.get("content"), list):
        return None
    content = result["content"]
    if content and all(isinstance(c, dict) and c.get("type") == "text" for c in content):
        try:
            decoded = json.loads(content[0].get("text") or "")
        except json.JSONDecodeError:
            return None
        if isinstance(decoded, dict):
            decoded = decoded.get("values") or decoded.get("rows")
        return decoded if isinstance(decoded, list) else None
    return content


def _find(tool_results: Sequence[ToolCallRecord], predicate) -> ToolCallRecord | None:
    return next((r for r in tool_results if predicate(r)), None)


class SimulatedReplyBuilder:
    """Deterministic reply used when no model can answer."""

    def __init__(self, formatter: GenericSAPFormatter | None = None) -> None:
        self.formatter = formatter or GenericSAPFormatter()

    def build(self, last_user_message: str, tool_results: Sequence[ToolCallRecord] | None) -> str:
        if not tool_results:
            return NO_TOOLS_APOLOGY.format(query=last_user_message)

        content = ""

        sap = _find(
            tool_results,
            lambda r: r.result.success
            and resolve_server_kind(r.tool_call.server_name) == ServerKind.ABAP_SYSTEM,
        )
        if sap is not None:
            content = self._sap_reply(sap)

        document = _find(
            tool_results,
            lambda r: r.result.success
            and resolve_server_kind(r.tool_call.server_name) == ServerKind.DOCUMENT_RETRIEVAL,
        )
        if document is not None:
            content = self._document_reply(document) or content

        agentdb = _find(
            tool_results,
            lambda r: r.result.success and "agentdb" in r.tool_call.server_name,
        )
        if agentdb is not None:
            content += self._agentdb_reply(agentdb)

        failed = _find(tool_results, lambda r: not r.result.success)
        if failed is not None:
            error = failed.result.error or ""
            if SAP_UNREACHABLE_MARKER in error:
                content = (
                    "Entschuldigung, das SAP-System ist derzeit nicht erreichbar. Es gab einen "
                    "Verbindungsfehler zum SAP-System. Bitte überprüfen Sie die "
                    "Netzwerkverbindung oder wenden Sie sich an Ihren SAP-Administrator.\n\n"
                    f"Fehlerdetails: {error}"
                )
            else:
                content = f"Es gab einen Fehler bei der Ausführung des MCP-Tools: {error}"

        if not content:
            content = "Basierend auf den MCP-Tool-Ergebnissen:\n\n"
            for record in tool_results:
                name = record.tool_call.qualified_name
                if record.result.success:
                    content += f"{name}: {_dumps(record.result.result, indent=None)}\n"
                else:
                    content += f"Fehler bei {name}: {record.result.error}\n"
        return content

    def _sap_reply(self, record: ToolCallRecord) -> str:
        call = record.tool_call
        result = record.result.result
        if call.tool_name == "tableContents":
            table = str(call.arguments.get("ddicEntityName") or "")
            rows = table_rows(result)
            if rows is None:
                return (
                    f"Die SAP-Tabelle {table} wurde erfolgreich abgerufen:\n\n{_dumps(result)}"
                )
            return self.formatter.format_table_data(table, rows)
        if call.tool_name == "searchObject":
            return (
                f'SAP-Objektsuche für "{call.arguments.get("query")}" ergab:\n\n{_dumps(result)}'
            )
        return f"SAP {call.tool_name} wurde erfolgreich ausgeführt:\n\n{_dumps(result)}"

    @staticmethod
    def _document_reply(record: ToolCallRecord) -> str:
        call = record.tool_call
        payload = record.result.result if isinstance(record.result.result, dict) else {}
        query = call.arguments.get("query")

        if call.tool_name == "search_documents":
            documents = payload.get("results") or []
            if not documents:
                return (
                    f'Ich habe keine Dokumente gefunden, die den Begriff "{query}" enthalten.\n\n'
                    "Das kann verschiedene Gründe haben:\n"
                    "• Der Begriff kommt in keinem der indexierten Dokumente vor\n"
                    "• Die Ähnlichkeitsschwelle ist zu hoch eingestellt\n"
                    "• Die Dokumente wurden noch nicht vollständig indexiert\n\n"
                    "💡 **Vorschläge:**\n"
                    '• Versuchen Sie verwandte Begriffe (z.B. "ABAP", "System", "Software")\n'
                    "• Stellen Sie sicher, dass die Dokumente korrekt hochgeladen und indexiert wurden"
                )
            text = (
                f"Ich habe {len(documents)} Dokumente gefunden, "
                f'die den Begriff "{query}" enthalten:\n\n'
            )
            for index, doc in enumerate(documents, start=1):
                doc = doc if isinstance(doc, dict) else {"content": str(doc)}
                body = str(doc.get("content") or "")
                preview = body[:150].replace("\n", " ")
                score = _percent(doc.get("score")) or "N/A"
                text += f"**{index}. {doc.get('documentTitle') or 'Unbenanntes Dokument'}** "
                text += f"(Relevanz: {score}%)\n"
                text += f"📂 {doc.get('documentPath')}\n"
                text += f'📝 Vorschau: "{preview}{"..." if len(body) > 150 else ""}"\n\n'
            return text

        if call.tool_name == "get_document_context":
            context = payload.get("context")
            if isinstance(context, list) and context:
                text = f'Hier ist der relevante Kontext zu "{query}" aus Ihren Dokumenten:\n\n'
                for index, chunk in enumerate(context, start=1):
                    chunk = chunk if isinstance(chunk, dict) else {"content": str(chunk)}
                    score = _percent(chunk.get("similarity") or chunk.get("score")) or "N/A"
                    text += f"**Kontext {index}** (Relevanz: {score}%)\n"
                    text += f"📄 Aus: {chunk.get('documentTitle') or chunk.get('filename')}\n"
                    text += f"📝 {chunk.get('content')}\n\n"
                return text
            if isinstance(context, str) and context.strip():
                return f'Hier ist der relevante Kontext zu "{query}" aus Ihren Dokumenten:\n\n{context}'
            return f'Kein relevanter Kontext zu "{query}" gefunden.'

        if call.tool_name == "get_document_stats":
            stats = payload.get("stats")
            text = "📊 **Dokumentenstatistiken:**\n\n"
            if not isinstance(stats, dict):
                return text + "Statistiken konnten nicht abgerufen werden."
            text += f"• Gesamtanzahl Dokumente: {stats.get('totalDocuments') or 'Unbekannt'}\n"
            text += f"• Gesamtanzahl Chunks: {stats.get('totalChunks') or 'Unbekannt'}\n"
            text += (
                f"• Durchschnittliche Chunk-Größe: {stats.get('avgChunkSize') or 'Unbekannt'} "
                "Zeichen\n"
            )
            return text

        return ""

    @staticmethod
    def _agentdb_reply(record: ToolCallRecord) -> str:
        result = record.result.result
        if isinstance(result, list) and result:
            text = f"\n\nDie AgentDB-Abfrage ergab {len(result)} Ergebnisse:\n"
            for index, row in enumerate(result, start=1):
                text += f"{index}. {_dumps(row, indent=None)}\n"
            return text
        if isinstance(result, dict) and "count" in result:
            return f"\n\nDie AgentDB enthält {result['count']} Einträge."
        return f"\n\nAgentDB-Abfrage: {_dumps(result, indent=None)}"
