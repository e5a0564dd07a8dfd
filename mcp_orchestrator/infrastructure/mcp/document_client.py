"""HTTP client for the document-retrieval API.

Tool calls against the document-retrieval server bypass the stdio protocol
and go straight to the document service's REST endpoints. Every request
carries a bearer token: the caller's own when supplied, otherwise one
obtained from ``POST /auth/login`` with the service credentials.
"""

import logging
from typing import Any

import httpx

from mcp_orchestrator.configuration.config import Settings, get_settings
from mcp_orchestrator.domain.model.mcp import ToolCall, ToolResult

logger = logging.getLogger(__name__)


class DocumentRetrievalClient:
    """Executes document-retrieval tool calls over HTTP."""

    def __init__(
        self,
        base_url: str | None = None,
        username: str | None = None,
        password: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        settings: Settings | None = None,
    ) -> None:
        settings = settings or get_settings()
        self.base_url = (base_url or settings.document_api_url).rstrip("/")
        self.username = username or settings.document_api_username
        self.password = password or settings.document_api_password
        self.timeout = timeout or settings.document_api_timeout
        self._transport = transport
        self._http_client: httpx.AsyncClient | None = None

    async def _get_http_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._http_client is None or self._http_client.is_closed:
            self._http_client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=httpx.Timeout(self.timeout),
                transport=self._transport,
            )
        return self._http_client

    async def aclose(self) -> None:
        """Close HTTP client if open."""
        if self._http_client and not self._http_client.is_closed:
            await self._http_client.aclose()
            self._http_client = None

    async def execute(self, tool_call: ToolCall, auth_token: str | None = None) -> ToolResult:
        """
        Execute a document-retrieval tool.

        Never raises for transport or HTTP failures; they come back as a
        failed ToolResult.
        """
        handlers = {
            "search_documents": self._search_documents,
            "get_document_context": self._get_document_context,
            "get_document_stats": self._get_document_stats,
            "test_embedding_service": self._test_embedding_service,
        }
        try:
            token = auth_token or await self._login()
            headers = {"Authorization": f"Bearer {token}", "Content-Type": "application/json"}
            handler = handlers.get(tool_call.tool_name)
            if handler is None:
                return ToolResult.fail(f"Unknown document-retrieval tool: {tool_call.tool_name}")
            return ToolResult.ok(await handler(tool_call.arguments, headers))
        except (httpx.HTTPError, KeyError, TypeError, ValueError) as e:
            logger.error(f"Document retrieval tool error: {e}")
            return ToolResult.fail(f"Document retrieval failed: {e}")

    async def _login(self) -> str:
        client = await self._get_http_client()
        response = await client.post(
            "/auth/login", json={"username": self.username, "password": self.password}
        )
        response.raise_for_status()
        return response.json()["access_token"]

    async def _get(self, path: str, headers: dict[str, str], params: dict | None = None) -> Any:
        client = await self._get_http_client()
        response = await client.get(path, headers=headers, params=params)
        response.raise_for_status()
        return response.json()

    async def _search_documents(self, args: dict[str, Any], headers: dict[str, str]) -> dict:
        query = args.get("query")
        data = await self._get(
            "/documents/search",
            headers,
            params={
                "query": query,
                "limit": args.get("limit") or 5,
                "threshold": args.get("threshold") or 0.1,
            },
        )
        logger.debug(f"Search API response: {str(data)[:500]}")
        results = data.get("data") or []
        return {
            "query": query,
            "results": results,
            "resultsCount": len(results),
            "message": f'Found {len(results)} documents matching "{query}"',
        }

    async def _get_document_context(self, args: dict[str, Any], headers: dict[str, str]) -> dict:
        query = args.get("query")
        data = await self._get(
            "/documents/context",
            headers,
            params={
                "query": query,
                "maxChunks": args.get("maxChunks") or 5,
                "threshold": args.get("threshold") or 0.7,
            },
        )
        return {
            "query": query,
            "context": data.get("data"),
            "message": f'Retrieved context for "{query}"',
        }

    async def _get_document_stats(self, args: dict[str, Any], headers: dict[str, str]) -> dict:
        data = await self._get("/documents/stats", headers)
        return {
            "stats": data.get("data"),
            "message": "Document statistics retrieved successfully",
        }

    async def _test_embedding_service(self, args: dict[str, Any], headers: dict[str, str]) -> dict:
        data = (await self._get("/documents/embedding/test", headers))["data"]
        connected = bool(data["connected"])
        return {
            "connected": connected,
            "dimensions": data.get("dimensions"),
            "message": f"Embedding service is {'connected' if connected else 'disconnected'}",
        }
