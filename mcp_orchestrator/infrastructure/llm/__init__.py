"""LLM client implementation and reply formatting."""

from mcp_orchestrator.infrastructure.llm.response_synthesizer import ResponseSynthesizer
from mcp_orchestrator.infrastructure.llm.sap_formatter import GenericSAPFormatter, SAPTableSchema

__all__ = ["GenericSAPFormatter", "ResponseSynthesizer", "SAPTableSchema"]
