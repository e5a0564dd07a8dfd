"""Ordered fallback over tool selection strategies.

Strategies are tried in order; the first one that executes at least one
tool wins. When none does, the caller proceeds without tool results.
"""

import logging
from typing import Protocol

from mcp_orchestrator.domain.model.mcp import ToolCallRecord

logger = logging.getLogger(__name__)


class ToolSelectionStrategy(Protocol):
    """Selects and executes tools for an utterance without an LLM."""

    name: str

    async def select_and_execute(
        self,
        utterance: str,
        active_servers: list[str],
        auth_token: str | None = None,
    ) -> list[ToolCallRecord]: ...


class StrategyChain:
    def __init__(self, strategies: list[ToolSelectionStrategy]) -> None:
        self.strategies = list(strategies)

    async def select_and_execute(
        self,
        utterance: str,
        active_servers: list[str],
        auth_token: str | None = None,
    ) -> list[ToolCallRecord]:
        for strategy in self.strategies:
            records = await strategy.select_and_execute(utterance, active_servers, auth_token)
            if records:
                logger.info(f"Strategy '{strategy.name}' executed {len(records)} tool(s)")
                return records
            logger.debug(f"Strategy '{strategy.name}' selected no tools")
        return []
