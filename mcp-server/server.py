#!/usr/bin/env python3
"""
Blueprint Studio MCP Server

Provides MCP tools for AI agents to read and edit the blueprint held by the
studio backend. Every tool is a thin wrapper over the HTTP API.
"""

import json
from typing import Optional

import httpx
from mcp.server.fastmcp import FastMCP

from blueprint.config import StudioConfig

# Backend API URL
API_BASE = StudioConfig.from_env().api_base

# Create MCP server
mcp = FastMCP("blueprint-studio")


class ApiError(Exception):
    """The backend answered with an error status."""


# --- HTTP Client Helper ---

def api_request(method: str, endpoint: str, **kwargs) -> dict:
    """Make a request to the blueprint studio backend."""
    url = f"{API_BASE}{endpoint}"
    with httpx.Client(timeout=30.0) as client:
        if method == "GET":
            response = client.get(url, params=kwargs.get("params"))
        elif method == "POST":
            response = client.post(url, json=kwargs.get("json"), params=kwargs.get("params"))
        elif method == "PATCH":
            response = client.patch(url, json=kwargs.get("json"))
        elif method == "DELETE":
            response = client.delete(url)
        else:
            raise ValueError(f"Unknown method: {method}")

        if response.status_code >= 400:
            error = response.json().get("detail", "Unknown error")
            raise ApiError(f"API error: {error}")

        return response.json()


def _dumps(result: dict) -> str:
    return json.dumps(result, indent=2)


# ============================================================================
# BLUEPRINT TOOLS
# ============================================================================

@mcp.tool()
def blueprint_get_current() -> str:
    """
    Get the full current blueprint state.

    Returns every node (tables, logic notes, reports), every edge and the
    catalog of categories, connection types, data sources, field types and
    tags. Use this to understand the model before making changes.
    """
    return _dumps(api_request("GET", "/blueprint"))


@mcp.tool()
def blueprint_new(name: str = "Untitled Blueprint", reset_catalog: bool = False) -> str:
    """
    Start a new empty blueprint.

    Args:
        name: Name for the new blueprint
        reset_catalog: Also restore the default catalog
    """
    return _dumps(api_request("POST", "/blueprint/new", params={"name": name, "reset_catalog": reset_catalog}))


@mcp.tool()
def blueprint_open(file_path: str) -> str:
    """
    Load a blueprint project (.json) as the active blueprint.

    Args:
        file_path: Full path to the project file
    """
    return _dumps(api_request("POST", "/blueprint/open", json={"file_path": file_path}))


@mcp.tool()
def blueprint_save(file_path: Optional[str] = None) -> str:
    """
    Save the current blueprint to a project file.

    Args:
        file_path: Path to save to (uses current path if not specified)
    """
    return _dumps(api_request("POST", "/blueprint/save", json={"file_path": file_path}))


@mcp.tool()
def blueprint_import_workbook(file_path: str) -> str:
    """
    Replace the blueprint with an .xlsx workbook's Nodes/Edges sheets.

    The import is all or nothing: a missing sheet or an edge pointing at an
    unknown node leaves the current blueprint untouched.
    """
    return _dumps(api_request("POST", "/blueprint/import", json={"file_path": file_path}))


@mcp.tool()
def blueprint_export_workbook(file_path: Optional[str] = None) -> str:
    """
    Export the blueprint to an .xlsx workbook.

    Args:
        file_path: Target .xlsx path or directory (default filename is used for a directory)
    """
    return _dumps(api_request("POST", "/blueprint/export", json={"file_path": file_path}))


@mcp.tool()
def blueprint_validate() -> str:
    """
    Check the blueprint for structural issues: orphan nodes, tables without
    columns, dangling catalog references, unnamed nodes and so on.
    """
    return _dumps(api_request("GET", "/blueprint/validate"))


# ============================================================================
# NODE TOOLS
# ============================================================================

@mcp.tool()
def blueprint_add_node(kind: str = "TABLE", x: float = 100, y: float = 100) -> str:
    """
    Create a node with its kind's defaults.

    Args:
        kind: TABLE, LOGIC_NOTE or REPORT
        x: X coordinate on canvas
        y: Y coordinate on canvas

    Returns the created node with its generated ID. Use blueprint_update_node
    to set the label and payload.
    """
    return _dumps(api_request("POST", "/nodes", json={"kind": kind, "x": x, "y": y}))


@mcp.tool()
def blueprint_update_node(
    node_id: str,
    label: Optional[str] = None,
    x: Optional[float] = None,
    y: Optional[float] = None,
    tags: Optional[list[str]] = None,
    category_id: Optional[str] = None,
    column_names: Optional[list[str]] = None,
    data_source_id: Optional[str] = None,
    comment: Optional[str] = None,
    description: Optional[str] = None,
    bullet_points: Optional[list[str]] = None,
) -> str:
    """
    Modify an existing node.

    Args:
        node_id: ID of the node to update
        label: New display text
        x: New X coordinate
        y: New Y coordinate
        tags: Tag ids (replaces existing)
        category_id: Table or logic category id
        column_names: Table column names, in order (replaces existing columns)
        data_source_id: Table data source id
        comment: Table comment
        description: Logic note description
        bullet_points: Logic note bullets, in order

    Only provided fields are updated. Fields that do not apply to the node's
    kind are ignored.
    """
    updates = {
        "label": label,
        "x": x,
        "y": y,
        "tags": tags,
        "category_id": category_id,
        "data_source_id": data_source_id,
        "comment": comment,
        "description": description,
        "bullet_points": bullet_points,
    }
    updates = {k: v for k, v in updates.items() if v is not None}
    if column_names is not None:
        updates["columns"] = [{"name": name} for name in column_names]
    return _dumps(api_request("PATCH", f"/nodes/{node_id}", json=updates))


@mcp.tool()
def blueprint_delete_node(node_id: str) -> str:
    """Delete a node. Every edge touching it is deleted too."""
    return _dumps(api_request("DELETE", f"/nodes/{node_id}"))


@mcp.tool()
def blueprint_search_nodes(query: str = "", kind: Optional[str] = None) -> str:
    """
    Find nodes whose label, description, comment, column names or tag names
    contain the query (case-insensitive).
    """
    return _dumps(api_request("GET", "/nodes/search", params={"q": query, "kind": kind}))


# ============================================================================
# EDGE TOOLS
# ============================================================================

@mcp.tool()
def blueprint_add_edge(
    source: str,
    target: str,
    label: str = "",
    type_id: Optional[str] = None,
    has_arrow: bool = True,
) -> str:
    """
    Connect two nodes.

    Args:
        source: ID of the source node
        target: ID of the target node
        label: Text shown on the connector
        type_id: Connection type id (defaults to the first connection type)
        has_arrow: Draw an arrow head at the target
    """
    return _dumps(api_request("POST", "/edges", json={
        "source": source,
        "target": target,
        "label": label,
        "type_id": type_id,
        "has_arrow": has_arrow,
    }))


@mcp.tool()
def blueprint_update_edge(
    edge_id: str,
    label: Optional[str] = None,
    type_id: Optional[str] = None,
    has_arrow: Optional[bool] = None,
    source: Optional[str] = None,
    target: Optional[str] = None,
) -> str:
    """Modify an existing edge. Only provided fields are updated."""
    updates = {
        "label": label,
        "type_id": type_id,
        "has_arrow": has_arrow,
        "source": source,
        "target": target,
    }
    updates = {k: v for k, v in updates.items() if v is not None}
    return _dumps(api_request("PATCH", f"/edges/{edge_id}", json=updates))


@mcp.tool()
def blueprint_delete_edge(edge_id: str) -> str:
    """Delete an edge."""
    return _dumps(api_request("DELETE", f"/edges/{edge_id}"))


# ============================================================================
# CATALOG TOOLS
# ============================================================================

@mcp.tool()
def blueprint_list_catalog() -> str:
    """List every catalog collection and its entries."""
    return _dumps(api_request("GET", "/catalog"))


@mcp.tool()
def blueprint_add_catalog_entry(collection: str, name: str, fields: Optional[dict] = None) -> str:
    """
    Add a catalog entry.

    Args:
        collection: table_categories, logic_categories, connection_types,
            data_sources, field_types or tags
        name: Display name
        fields: Extra fields (color, is_default, width, dash_style,
            label_position, label_max_width, position)
    """
    body = dict(fields or {})
    body["name"] = name
    return _dumps(api_request("POST", f"/catalog/{collection}", json=body))


@mcp.tool()
def blueprint_remove_catalog_entry(collection: str, entry_id: str) -> str:
    """Remove a catalog entry. Nodes and edges keep their (now dangling) references."""
    return _dumps(api_request("DELETE", f"/catalog/{collection}/{entry_id}"))


# ============================================================================
# VISIBILITY TOOLS
# ============================================================================

@mcp.tool()
def blueprint_visibility(
    table_categories: Optional[list[str]] = None,
    logic_categories: Optional[list[str]] = None,
    tags: Optional[list[str]] = None,
    connection_types: Optional[list[str]] = None,
    search_query: str = "",
) -> str:
    """
    Which nodes and edges are visible or dimmed under a filter selection.

    Each list is a set of catalog ids; an empty list filters nothing and
    "__HIDE_ALL__" hides the whole axis. An edge is dimmed whenever either of
    its endpoints is.
    """
    return _dumps(api_request("POST", "/visibility", json={
        "table_categories": table_categories or [],
        "logic_categories": logic_categories or [],
        "tags": tags or [],
        "connection_types": connection_types or [],
        "search_query": search_query,
    }))


if __name__ == "__main__":
    mcp.run()
