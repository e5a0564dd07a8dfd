"""
Schema-validated LLM decisions and their fallbacks.

Planning steps ask the model for a single JSON object. The first object in
the reply is validated against a pydantic model; anything else (no object,
broken JSON, schema violation) yields None and the call site applies its
fallback from this module:

    think, iteration 1 or no results yet -> search with a simple query
    think, results exist                 -> complete
    think, LLM error                     -> search on iteration 1, else complete
    analyze                              -> satisfied iff count > 0
    final answer                         -> templated "found N documents" text
"""

import json
import logging
import re
from typing import Any, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from mcp_orchestrator.domain.model.agent import AgentAction
from mcp_orchestrator.domain.model.mcp import ToolResult
from mcp_orchestrator.infrastructure.agent.selection.query_extraction import (
    extract_simple_query,
)

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)

_GREEDY_OBJECT = re.compile(r"\{[\s\S]*\}")
_decoder = json.JSONDecoder()


class ThinkDecision(BaseModel):
    """Next action chosen by the agent's think step."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    action: AgentAction
    reasoning: str = ""
    search_query: str | None = Field(default=None, alias="searchQuery")

    @field_validator("action", mode="before")
    @classmethod
    def normalize_action(cls, value: Any) -> Any:
        return value.strip().lower() if isinstance(value, str) else value

    @field_validator("search_query", mode="before")
    @classmethod
    def blank_query_is_none(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value.strip() if isinstance(value, str) else value


class AnalysisVerdict(BaseModel):
    """Result quality judgement from the agent's analyze step."""

    model_config = ConfigDict(extra="ignore")

    satisfied: bool
    reason: str = ""
    conclusion: str = ""


def extract_json_object(text: str) -> str | None:
    """Return the first balanced JSON object in ``text``, if any."""
    start = text.find("{")
    if start < 0:
        return None
    try:
        _, end = _decoder.raw_decode(text, start)
        return text[start:end]
    except json.JSONDecodeError:
        match = _GREEDY_OBJECT.search(text, start)
        return match.group(0) if match else None


def decode_decision(text: str | None, model: type[T]) -> T | None:
    """Validate the first JSON object of an LLM reply against ``model``."""
    raw = extract_json_object(text or "")
    if raw is None:
        logger.debug(f"No JSON object in LLM reply for {model.__name__}")
        return None
    try:
        return model.model_validate_json(raw)
    except ValidationError as e:
        logger.debug(f"Invalid {model.__name__} in LLM reply: {e.error_count()} error(s)")
        return None


def fallback_think(iteration: int, has_results: bool, utterance: str) -> ThinkDecision:
    """Decision used when the think reply cannot be decoded."""
    if iteration == 1:
        return ThinkDecision(
            action=AgentAction.SEARCH,
            reasoning="Starting first search",
            search_query=extract_simple_query(utterance),
        )
    if not has_results:
        return ThinkDecision(
            action=AgentAction.SEARCH,
            reasoning="No results yet, need to search",
            search_query=extract_simple_query(utterance),
        )
    return ThinkDecision(action=AgentAction.COMPLETE, reasoning="Have results, completing")


def fallback_think_on_error(iteration: int, utterance: str) -> ThinkDecision:
    """Decision used when the think call itself fails."""
    return ThinkDecision(
        action=AgentAction.SEARCH if iteration == 1 else AgentAction.COMPLETE,
        reasoning="Fallback due to error",
        search_query=extract_simple_query(utterance),
    )


def fallback_verdict(result_count: int) -> AnalysisVerdict:
    return AnalysisVerdict(
        satisfied=result_count > 0,
        reason=f"Found {result_count} results",
        conclusion=f"Analysis complete: {result_count} results",
    )


def fallback_final_answer(result_count: int, search_query: str) -> str:
    return f'Ich habe {result_count} Dokumente für "{search_query}" gefunden.'


def result_documents(result: ToolResult | None) -> list[dict[str, Any]] | None:
    """Documents of a search_documents result, None when there are none to show."""
    if result is None or not isinstance(result.result, dict):
        return None
    documents = result.result.get("results")
    return documents if isinstance(documents, list) else None


def count_results(result: ToolResult | None) -> int:
    documents = result_documents(result)
    return len(documents) if documents is not None else 0
