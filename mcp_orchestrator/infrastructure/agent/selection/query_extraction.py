"""Heuristic argument extraction from free-text utterances.

All functions are pure and deterministic. They cover German and English
phrasing since users address the assistant in both languages.
"""

import re

STOPWORDS = frozenset(
    {
        "der", "die", "das", "und", "oder", "mit", "für", "von", "zu", "in", "auf", "an",
        "bei", "nach", "über", "unter", "vor", "zwischen", "durch", "gegen", "ohne", "um",
        "the", "and", "or", "with", "for", "from", "to", "on", "at", "by", "after", "over",
        "under", "before", "between", "through", "against", "without", "around",
        "welchen", "welche", "meiner", "meinen", "dokumente", "documents", "kommt",
        "enthalten", "contains", "search", "find", "suche", "finde",
    }
)

_AUXILIARY_VERB = re.compile(
    r"^(ist|sind|war|waren|hat|haben|wird|werden|kann|können|soll|sollen|muss|müssen)$",
    re.IGNORECASE,
)
_PUNCTUATION = re.compile(r"['\"?!.,;:]")

# Explicit "search for X" phrasing, tried in order; group 1 is the term
_PHRASE_PATTERNS = [
    re.compile(r"begriff\s+[\"']?([^\"'?\s]+)[\"']?\s*(?:vor|enthalten|kommt)", re.IGNORECASE),
    re.compile(r"term\s+[\"']?([^\"'?\s]+)[\"']?\s*(?:appears|contains)", re.IGNORECASE),
    re.compile(r"enthalten\s+den\s+begriff\s+[\"']?([^\"'?\s]+)[\"']?", re.IGNORECASE),
    re.compile(r"contain\s+the\s+term\s+[\"']?([^\"'?\s]+)[\"']?", re.IGNORECASE),
    re.compile(
        r"(?:nach|für|über|mit)\s+[\"']?([^\"'?\s]+)[\"']?\s*"
        r"(?:suche|durchsuche|finde|kommt vor|enthalten)",
        re.IGNORECASE,
    ),
    re.compile(r"[\"']([^\"'?\s]+)[\"']\s*(?:vor|enthalten|appears|contains)", re.IGNORECASE),
    re.compile(r"kommt\s+der\s+begriff\s+[\"']?([A-Z0-9]+)[\"']?\s+vor", re.IGNORECASE),
    re.compile(r"contains?\s+the\s+term\s+[\"']?([A-Z0-9]+)[\"']?", re.IGNORECASE),
    re.compile(r"(?:search|look)\s+for\s+[\"']?([^\"'?\s]+)", re.IGNORECASE),
    # With several "nach", the last one names the term
    re.compile(r"such(?:e|en)?\b.*\bnach\s+[\"']?([^\"'?\s]+)", re.IGNORECASE),
]

# Keyword-table extraction adds technical-term fallbacks after the phrasing
_TECHNICAL_PATTERNS = [
    re.compile(r"[\"']([A-Z0-9]{2,})[\"']", re.IGNORECASE),
    re.compile(r"\b([A-Z]{3,})\b"),
]

_QUOTED = re.compile(r"[\"„“”']([^\"„“”']+)[\"„“”']")
_CAPITALIZED = re.compile(r"\b([A-ZÄÖÜ][A-Za-zÄÖÜäöüß0-9]+)\b")
_SIMPLE_CAPITALIZED = re.compile(r"\b([A-ZÄÖÜ][a-zäöüß]+)\b")
_SIMPLE_QUOTED = re.compile(r"[\"']([^\"']+)[\"']")
_SIMPLE_STOPWORDS = frozenset({"der", "die", "das", "suche", "nach", "finde", "dokument", "bitte"})

_TABLE_NAME = re.compile(r"\b([A-Z]{3,8})\b")
_ROW_COUNT_PATTERNS = [
    re.compile(r"ersten?\s+(\d+)"),
    re.compile(r"first\s+(\d+)"),
    re.compile(r"(\d+)\s*(?:einträge|entries|rows|zeilen|belege|documents)"),
    re.compile(r"top\s+(\d+)"),
    re.compile(r"limit\s+(\d+)"),
]
_ENTRY_COUNT = re.compile(r"(\d+)\s*(?:einträge|entries|rows|zeilen)", re.IGNORECASE)

DEFAULT_ROW_COUNT = 10


def _clean(word: str) -> str:
    return _PUNCTUATION.sub("", word)


def _is_content_word(word: str) -> bool:
    cleaned = _clean(word)
    return (
        len(cleaned) > 2
        and cleaned.lower() not in STOPWORDS
        and not _AUXILIARY_VERB.match(cleaned)
    )


def _first_phrase_match(text: str, patterns: list[re.Pattern]) -> str | None:
    for pattern in patterns:
        match = pattern.search(text)
        if match and match.group(1) and len(match.group(1).strip()) > 1:
            return match.group(1).strip()
    return None


def extract_document_search_terms(text: str) -> str:
    """
    Search term for keyword-triggered document tools.

    Phrasing patterns first, then quoted or upper-case technical terms,
    then leftover content words (upper-case tokens preferred).
    """
    term = _first_phrase_match(text, _PHRASE_PATTERNS + _TECHNICAL_PATTERNS)
    if term:
        return term

    words = [w for w in text.split() if _is_content_word(w)]
    technical = [_clean(w) for w in words if re.fullmatch(r"[A-Z]{2,}", _clean(w))]
    if technical:
        return technical[0]
    return " ".join(_clean(w) for w in words[:2]) or "documents"


def _is_sentence_start(text: str, position: int) -> bool:
    before = text[:position].rstrip()
    return not before or before[-1] in ".!?:"


def extract_proper_noun(text: str, concepts: list[str] | tuple[str, ...] = ()) -> str | None:
    """
    First capitalized word that is neither a sentence opener, a stopword
    nor an inflection of a known domain concept.
    """
    stems = [c.lower() for c in concepts if len(c) >= 4]
    for match in _CAPITALIZED.finditer(text):
        word = match.group(1)
        lowered = word.lower()
        if _is_sentence_start(text, match.start()):
            continue
        if lowered in STOPWORDS or lowered in _SIMPLE_STOPWORDS:
            continue
        if any(lowered.startswith(stem) for stem in stems):
            continue
        return word
    return None


def extract_search_query(text: str, concepts: list[str] | tuple[str, ...] = ()) -> str:
    """
    Search query for domain-matched document tools.

    Each heuristic runs only if the previous one produced nothing: quoted
    text, explicit phrasing, a capitalized proper noun, then the first
    three stopword-filtered tokens.
    """
    quoted = _QUOTED.search(text)
    if quoted and len(quoted.group(1).strip()) > 1:
        return quoted.group(1).strip()

    phrase = _first_phrase_match(text, _PHRASE_PATTERNS)
    if phrase:
        return phrase

    proper_noun = extract_proper_noun(text, concepts)
    if proper_noun:
        return proper_noun

    tokens = [_clean(w) for w in text.lower().split() if _is_content_word(w)]
    return " ".join(tokens[:3]) or "documents"


def extract_simple_query(text: str) -> str:
    """Last-resort query for agent searches: a name, a quote, or a content word."""
    capitalized = _SIMPLE_CAPITALIZED.search(text)
    if capitalized:
        return capitalized.group(1)

    quoted = _SIMPLE_QUOTED.search(text)
    if quoted:
        return quoted.group(1)

    for word in text.lower().split():
        if len(word) > 3 and word not in _SIMPLE_STOPWORDS:
            return word
    return "content"


def extract_table_names(text: str) -> list[str]:
    """Upper-case SAP table references in the original-case text."""
    return _TABLE_NAME.findall(text)


def extract_row_count(text: str, default: int = DEFAULT_ROW_COUNT) -> int:
    """Row count from phrases like "ersten 10", "first 5" or "10 einträge"."""
    lowered = text.lower()
    for pattern in _ROW_COUNT_PATTERNS:
        match = pattern.search(lowered)
        if match:
            return int(match.group(1))
    return default


def extract_entry_count(text: str) -> int | None:
    """Explicit "N entries/rows" count, if any."""
    match = _ENTRY_COUNT.search(text)
    return int(match.group(1)) if match else None


def extract_object_query(text: str, default: str = "VBAK") -> str:
    match = re.search(r"(?:search|suche|find)\s+(?:for\s+)?([a-zA-Z0-9_]+)", text, re.IGNORECASE)
    return match.group(1) if match else default
