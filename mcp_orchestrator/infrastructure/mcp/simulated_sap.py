"""Stand-in SAP OData catalog.

Returns fixed illustrative payloads for the catalog tools of the simulated
SAP business system. There is no real SAP integration behind it.
"""

from typing import Any

from mcp_orchestrator.domain.model.mcp import ToolCall, ToolResult

_SERVICES = [
    {
        "id": "API_BUSINESS_PARTNER",
        "name": "Business Partner API",
        "description": "Manage business partner master data",
        "category": "business-partner",
        "version": "1.0.0",
    },
    {
        "id": "API_SALES_ORDER_SRV",
        "name": "Sales Order API",
        "description": "Create and manage sales orders",
        "category": "sales",
        "version": "1.0.0",
    },
    {
        "id": "API_PURCHASE_ORDER_PROCESS_SRV",
        "name": "Purchase Order API",
        "description": "Process purchase orders",
        "category": "procurement",
        "version": "1.0.0",
    },
]


def _search_services(args: dict[str, Any]) -> dict[str, Any]:
    return {
        "services": [dict(s) for s in _SERVICES],
        "totalCount": len(_SERVICES),
        "query": args.get("query") or "",
        "category": args.get("category") or "all",
    }


def _discover_entities(args: dict[str, Any]) -> dict[str, Any]:
    return {
        "serviceId": args.get("serviceId"),
        "entities": [
            {
                "name": "BusinessPartner",
                "description": "Business Partner entity",
                "capabilities": {"create": True, "read": True, "update": True, "delete": False},
            },
            {
                "name": "BusinessPartnerAddress",
                "description": "Business Partner Address entity",
                "capabilities": {"create": True, "read": True, "update": True, "delete": True},
            },
        ],
    }


def _entity_schema(args: dict[str, Any]) -> dict[str, Any]:
    return {
        "serviceId": args.get("serviceId"),
        "entityName": args.get("entityName"),
        "schema": {
            "properties": {
                "BusinessPartner": {"type": "string", "key": True},
                "BusinessPartnerCategory": {"type": "string"},
                "BusinessPartnerFullName": {"type": "string"},
                "CreatedByUser": {"type": "string"},
                "CreationDate": {"type": "date"},
            },
            "keys": ["BusinessPartner"],
            "navigationProperties": ["to_BusinessPartnerAddress"],
        },
    }


def _execute_operation(args: dict[str, Any]) -> dict[str, Any]:
    return {
        "operation": args.get("operation"),
        "entityName": args.get("entityName"),
        "data": "Operation executed successfully (simulated)",
        "recordsAffected": 1,
    }


_HANDLERS = {
    "search-sap-services": _search_services,
    "discover-service-entities": _discover_entities,
    "get-entity-schema": _entity_schema,
    "execute-entity-operation": _execute_operation,
}


def execute_simulated_sap_tool(tool_call: ToolCall) -> ToolResult:
    handler = _HANDLERS.get(tool_call.tool_name)
    if handler is None:
        return ToolResult.fail(f"Unknown SAP tool: {tool_call.tool_name}")
    return ToolResult.ok(handler(tool_call.arguments))
