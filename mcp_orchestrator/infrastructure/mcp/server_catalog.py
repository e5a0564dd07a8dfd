"""Server kind resolution and synthesized tool catalogs.

Every enabled server gets an initial tool/resource list derived from its
kind (and, for AgentDB and SAP-named servers, its name). The lists stand
in until live discovery through the supervisor replaces them.
"""

from mcp_orchestrator.configuration.server_config import ToolServerConfig
from mcp_orchestrator.domain.model.mcp import (
    ResourceDescriptor,
    ServerKind,
    ToolDescriptor,
    ToolServer,
)

DOCUMENT_RETRIEVAL_SERVER = "document-retrieval"
SIMULATED_SAP_SERVER = "everest-SAP-system"
ABAP_SERVER = "mcp-abap-abap-adt-api"


def resolve_server_kind(name: str, config: ToolServerConfig | None = None) -> ServerKind:
    """Resolve how a server is dispatched. An explicit ``kind`` wins."""
    if config is not None and config.kind is not None:
        return config.kind
    if name == DOCUMENT_RETRIEVAL_SERVER:
        return ServerKind.DOCUMENT_RETRIEVAL
    if name == SIMULATED_SAP_SERVER:
        return ServerKind.SIMULATED_SAP_CATALOG
    if name == ABAP_SERVER:
        return ServerKind.ABAP_SYSTEM
    return ServerKind.GENERIC


def _has_abap_tools(name: str, kind: ServerKind) -> bool:
    # SAP-looking names only pick the tool family; login and error translation need AbapSystem
    return kind == ServerKind.ABAP_SYSTEM or (
        kind == ServerKind.GENERIC and ("sap" in name or "abap" in name)
    )


def _object_schema(properties: dict, required: list[str] | None = None) -> dict:
    schema: dict = {"type": "object", "properties": properties}
    if required:
        schema["required"] = required
    return schema


_ABAP_TOOLS = [
    ToolDescriptor(
        "classComponents",
        "Get class components from SAP system",
        _object_schema({"className": {"type": "string"}}),
    ),
    ToolDescriptor(
        "searchObject",
        "Search for objects in SAP system",
        _object_schema({"objectType": {"type": "string"}, "searchTerm": {"type": "string"}}),
    ),
    ToolDescriptor(
        "objectStructure",
        "Get object structure from SAP system",
        _object_schema({"objectName": {"type": "string"}, "objectType": {"type": "string"}}),
    ),
    ToolDescriptor(
        "getObjectSource",
        "Get source code of SAP object",
        _object_schema({"objectName": {"type": "string"}, "objectType": {"type": "string"}}),
    ),
    ToolDescriptor(
        "tableContents",
        "Get table contents from SAP system",
        _object_schema({"ddicEntityName": {"type": "string"}, "rowNumber": {"type": "number"}}),
    ),
]

_AGENTDB_TOOLS = [
    ToolDescriptor(
        "query",
        "Execute query on AgentDB",
        _object_schema({"sql": {"type": "string"}, "parameters": {"type": "array"}}),
    ),
    ToolDescriptor(
        "insert",
        "Insert data into AgentDB",
        _object_schema({"table": {"type": "string"}, "data": {"type": "object"}}),
    ),
    ToolDescriptor(
        "update",
        "Update data in AgentDB",
        _object_schema(
            {"table": {"type": "string"}, "data": {"type": "object"}, "where": {"type": "object"}}
        ),
    ),
]

_DOCUMENT_TOOLS = [
    ToolDescriptor(
        "search_documents",
        "Search documents using semantic vector search",
        _object_schema(
            {
                "query": {"type": "string", "description": "Search query"},
                "limit": {"type": "number", "description": "Maximum number of results", "default": 5},
                "threshold": {"type": "number", "description": "Similarity threshold", "default": 0.1},
            },
            required=["query"],
        ),
    ),
    ToolDescriptor(
        "get_document_context",
        "Get relevant document context for RAG applications",
        _object_schema(
            {
                "query": {"type": "string", "description": "Context query"},
                "maxChunks": {"type": "number", "description": "Maximum chunks to return", "default": 5},
                "threshold": {"type": "number", "description": "Relevance threshold", "default": 0.7},
            },
            required=["query"],
        ),
    ),
    ToolDescriptor(
        "get_document_stats",
        "Get statistics about indexed documents",
        _object_schema({}),
    ),
    ToolDescriptor(
        "test_embedding_service",
        "Test the embedding service connection",
        _object_schema({}),
    ),
]

_SAP_CATALOG_TOOLS = [
    ToolDescriptor(
        "search-sap-services",
        "Search and filter available SAP OData services",
        _object_schema(
            {"query": {"type": "string"}, "category": {"type": "string"}, "limit": {"type": "number"}}
        ),
    ),
    ToolDescriptor(
        "discover-service-entities",
        "List all entities within a specific SAP service",
        _object_schema({"serviceId": {"type": "string"}, "showCapabilities": {"type": "boolean"}}),
    ),
    ToolDescriptor(
        "get-entity-schema",
        "Get detailed schema information for a specific entity",
        _object_schema({"serviceId": {"type": "string"}, "entityName": {"type": "string"}}),
    ),
    ToolDescriptor(
        "execute-entity-operation",
        "Perform CRUD operations on SAP entities",
        _object_schema(
            {
                "serviceId": {"type": "string"},
                "entityName": {"type": "string"},
                "operation": {"type": "string"},
                "parameters": {"type": "object"},
                "queryOptions": {"type": "object"},
            }
        ),
    ),
]

_SAP_CATALOG_RESOURCES = [
    ResourceDescriptor(
        uri="sap://services",
        name="sap-services",
        description="List of all discovered SAP OData services",
    ),
]


def synthesize_tools(name: str, kind: ServerKind) -> list[ToolDescriptor]:
    """Default tool list for a server before live discovery."""
    tools: list[ToolDescriptor] = []
    if _has_abap_tools(name, kind):
        tools.extend(_ABAP_TOOLS)
    if "agentdb" in name:
        tools.extend(_AGENTDB_TOOLS)
    if kind == ServerKind.DOCUMENT_RETRIEVAL:
        tools.extend(_DOCUMENT_TOOLS)
    if kind == ServerKind.SIMULATED_SAP_CATALOG:
        tools.extend(_SAP_CATALOG_TOOLS)
    return tools


def synthesize_resources(kind: ServerKind) -> list[ResourceDescriptor]:
    if kind == ServerKind.SIMULATED_SAP_CATALOG:
        return list(_SAP_CATALOG_RESOURCES)
    return []


def build_server(name: str, config: ToolServerConfig) -> ToolServer:
    """Create the catalog entry for a configured server."""
    kind = resolve_server_kind(name, config)
    return ToolServer(
        name=name,
        kind=kind,
        tools=synthesize_tools(name, kind),
        resources=synthesize_resources(kind),
        disabled=config.disabled,
    )
