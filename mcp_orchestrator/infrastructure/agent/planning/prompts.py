"""Prompt templates for the chain planner and the agent loop.

The assistant serves German-speaking users, so prompts are German. All
templates are ``str.format`` templates; literal braces are doubled.
"""

from collections.abc import Sequence
from typing import Any

from mcp_orchestrator.domain.llm_providers.llm_types import Message

CHAIN_PLANNING_PROMPT = """Du bist ein intelligenter Assistent, der Suchanfragen optimiert.

AUFGABE: Analysiere die Benutzeranfrage und bestimme den optimalen Suchbegriff für die Dokumentensuche.

Benutzeranfrage: "{query}"{history}

WICHTIGE REGELN:
1. Extrahiere den HAUPTBEGRIFF, nach dem gesucht werden soll (z.B. einen Namen, Begriff, oder Thema)
2. Ignoriere Füllwörter wie "suche", "finde", "dokument", "bitte", "zeige", etc.
3. Bei mehrfachem "nach" (z.B. "nach X nach Y"), nimm den LETZTEN Begriff
4. Wenn ein Name in Anführungszeichen steht, verwende diesen
5. Bei "wo kommt X vor" oder "Begriff X" - verwende X als Suchbegriff
6. Bei Fragen wie "versuche es noch einmal" oder "zeige die Stelle", schaue im Kontext nach dem zuletzt gesuchten Begriff

ANTWORT-FORMAT (NUR diese Zeile, nichts anderes):
SUCHBEGRIFF: [der optimale Suchbegriff]

Beispiele:
- "Suche nach Dokumenten nach Fitzer" → SUCHBEGRIFF: Fitzer
- "Wo kommt Joachim vor" → SUCHBEGRIFF: Joachim
- "Finde mir Infos über Platzrunde" → SUCHBEGRIFF: Platzrunde
- "Zeige mir das nochmal" (mit Kontext "Fitzer") → SUCHBEGRIFF: Fitzer

Analysiere jetzt die Anfrage und gib NUR die SUCHBEGRIFF-Zeile zurück:"""

CHAIN_PRESENTATION_PROMPT = """Du bist ein intelligenter Assistent, der Suchergebnisse präsentiert.

BENUTZERANFRAGE: "{query}"
SUCHBEGRIFF: "{search_query}"
{results}

AUFGABE: Präsentiere die Suchergebnisse dem Benutzer auf eine klare, hilfreiche Weise.

WICHTIGE REGELN:
1. Wenn Ergebnisse gefunden wurden, liste SIE ALLE auf mit:
   - Dokumententitel
   - Dateipfad
   - Relevanz-Score
   - Kurze Vorschau des Inhalts
2. Sei PRÄZISE: Wenn 7 Ergebnisse gefunden wurden, sage es und liste alle 7 auf
3. NIEMALS sagen "keine Treffer" wenn welche da sind!
4. Formatiere schön mit Emojis und Struktur
5. Wenn KEINE Ergebnisse: erkläre warum und gib Vorschläge

Erstelle jetzt eine hilfreiche Antwort für den Benutzer:"""

AGENT_THINK_PROMPT = """Du bist ein intelligenter Agent, der Schritt-für-Schritt arbeitet.

BENUTZERANFRAGE: "{query}"{history}{previous_steps}{results}

ITERATION: {iteration}/{max_iterations}

DEINE AUFGABE: Entscheide, was als NÄCHSTES zu tun ist.

VERFÜGBARE AKTIONEN:
1. "search" - Führe eine Dokumentensuche aus (wenn noch nicht gesucht oder Query muss verfeinert werden)
2. "analyze" - Analysiere die aktuellen Suchergebnisse (nachdem eine Suche durchgeführt wurde)
3. "refine" - Verfeinere die Suchanfrage und suche erneut (wenn Ergebnisse nicht zufriedenstellend)
4. "complete" - Beende den Loop (wenn zufrieden mit Ergebnissen)

REGELN:
- Bei Iteration 1: IMMER mit "search" starten
- Nach "search": IMMER "analyze" als nächstes
- Nach "analyze": Entweder "refine" (wenn Ergebnisse schlecht) oder "complete" (wenn gut)
- Nie mehr als 2x suchen (zu teuer)

ANTWORT-FORMAT (NUR JSON, kein anderer Text):
{{
  "action": "search|analyze|refine|complete",
  "reasoning": "Warum diese Aktion?",
  "searchQuery": "Suchbegriff" (nur bei search/refine)
}}

BEISPIELE:
Iteration 1: {{"action":"search","reasoning":"Extrahiere Suchbegriff aus User-Anfrage","searchQuery":"Fitzer"}}
Iteration 2: {{"action":"analyze","reasoning":"Analysiere ob 7 gefundene Treffer relevant sind"}}
Iteration 3: {{"action":"complete","reasoning":"Ergebnisse sind gut, präsentiere sie"}}

Deine Entscheidung:"""

AGENT_ANALYZE_PROMPT = """Analysiere die Suchergebnisse:

URSPRÜNGLICHE ANFRAGE: "{query}"
SUCHBEGRIFF: "{search_query}"
GEFUNDENE TREFFER: {count}

DEINE AUFGABE: Bewerte ob die Ergebnisse gut sind.

GUT = Ergebnisse entsprechen der Anfrage und sind relevant
SCHLECHT = Keine/Wenige Ergebnisse oder irrelevant

ANTWORT-FORMAT (NUR JSON):
{{
  "satisfied": true|false,
  "reason": "Warum zufrieden oder nicht?",
  "conclusion": "Kurze Zusammenfassung"
}}

BEISPIELE:
{count} Treffer: {{"satisfied":true,"reason":"Viele relevante Treffer","conclusion":"Gute Ergebnisse für '{search_query}'"}}
0 Treffer: {{"satisfied":false,"reason":"Keine Treffer","conclusion":"Suche muss verfeinert werden"}}

Deine Analyse:"""

AGENT_FINAL_PROMPT = """Erstelle die finale Antwort für den Benutzer.

BENUTZERANFRAGE: "{query}"
SUCHBEGRIFF VERWENDET: "{search_query}"
DURCHGEFÜHRTE SCHRITTE:
{steps}
{results}

AUFGABE: Präsentiere die Ergebnisse klar und hilfreich.

REGELN:
1. Sei präzise: Wenn {count} Treffer gefunden, sage es!
2. Liste ALLE Dokumente auf
3. Zeige Relevanz-Scores
4. Wenn keine Treffer: Erkläre warum und gib Vorschläge

Erstelle jetzt eine hilfreiche Antwort:"""


def format_history(history: Sequence[Message], heading: str, limit: int = 3) -> str:
    """Render the last few conversation turns, or nothing for an empty history."""
    if not history:
        return ""
    lines = "\n".join(f"{m.role}: {m.content}" for m in list(history)[-limit:])
    return f"\n{heading}:\n{lines}"


def _score(doc: dict[str, Any]) -> str:
    score = doc.get("score")
    return f"{score * 100:.1f}" if score else "N/A"


def _preview(doc: dict[str, Any], length: int) -> str:
    return str(doc.get("content") or "")[:length].strip()


def format_chain_results(documents: list[dict[str, Any]] | None, search_query: str) -> str:
    if documents is None:
        return "\n\nKEINE ERGEBNISSE gefunden.\n"
    text = f'\n\nSUCHERGEBNISSE ({len(documents)} Treffer für "{search_query}"):\n\n'
    for index, doc in enumerate(documents, start=1):
        text += f"【{index}】 {doc.get('documentTitle') or 'Unbenannt'}\n"
        text += f"   📂 Pfad: {doc.get('documentPath')}\n"
        text += f"   ⭐ Relevanz: {_score(doc)}%\n"
        text += f'   📄 Inhalt: "{_preview(doc, 200)}..."\n\n'
    return text


def format_agent_results(documents: list[dict[str, Any]] | None) -> str:
    if documents is None:
        return ""
    text = f"\n\nGEFUNDENE DOKUMENTE ({len(documents)}):\n\n"
    for index, doc in enumerate(documents, start=1):
        text += f"{index}. {doc.get('documentTitle') or 'Unbenannt'}\n"
        text += f"   📂 {doc.get('documentPath')}\n"
        text += f"   ⭐ Relevanz: {_score(doc)}%\n"
        text += f'   📄 "{_preview(doc, 150)}..."\n\n'
    return text
