"""
Blueprint Studio Backend - FastAPI Application

This is the main entry point for the blueprint studio backend.
It provides:
- REST API for blueprint operations (CRUD for nodes/edges/catalog, file ops)
- Workbook import/export
- Visibility and label placement queries for the renderer
- CORS configuration for local frontend development
"""
import logging
from typing import Any, Optional

from fastapi import Body, FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from blueprint import (
    CatalogCollection,
    CreateEdgeRequest,
    CreateNodeRequest,
    DashStyle,
    LabelPlacementRequest,
    LabelPosition,
    NodeKind,
    TagPosition,
    UpdateEdgeRequest,
    UpdateNodeRequest,
)
from blueprint.config import StudioConfig, configure_logging
from blueprint.validation import validation_summary
from blueprint.visibility import FilterState

from .studio_manager import studio_manager

logger = logging.getLogger(__name__)


# --- FastAPI App ---

app = FastAPI(
    title="Blueprint Studio API",
    description="Backend API for the blueprint data-model studio",
    version="1.0.0",
)

# CORS for local development
app.add_middleware(
    CORSMiddleware,
    allow_origins=studio_manager.config.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# --- Health Check ---

@app.get("/api/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "ok", "nodes": len(studio_manager.store.nodes)}


# --- Blueprint State ---

@app.get("/api/blueprint")
async def get_blueprint():
    """Get the current blueprint state."""
    return studio_manager.get_state()


# --- File Operations ---

@app.post("/api/blueprint/new")
async def new_blueprint(
    name: str = Query(default="Untitled Blueprint"),
    reset_catalog: bool = Query(default=False),
):
    """Start a new empty blueprint."""
    studio_manager.new_blueprint(name=name, reset_catalog=reset_catalog)
    return {"success": True, "blueprint": studio_manager.to_json_dict()}


class FilePathRequest(BaseModel):
    file_path: str


@app.post("/api/blueprint/open")
async def open_blueprint(request: FilePathRequest):
    """Open a blueprint project from a JSON file."""
    try:
        studio_manager.open_project(request.file_path)
        return {
            "success": True,
            "blueprint": studio_manager.to_json_dict(),
            "file_path": str(studio_manager.file_path)
        }
    except FileNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=f"Failed to open project: {e}")


class SaveBlueprintRequest(BaseModel):
    file_path: Optional[str] = None


@app.post("/api/blueprint/save")
async def save_blueprint(request: SaveBlueprintRequest):
    """Save the blueprint to a JSON project file."""
    try:
        path = studio_manager.save_project(request.file_path)
        return {"success": True, "file_path": str(path)}
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except OSError as e:
        logger.exception("Saving project failed")
        raise HTTPException(status_code=500, detail=f"Failed to save: {e}")


@app.post("/api/blueprint/import")
async def import_workbook(request: FilePathRequest):
    """Replace the blueprint with the contents of an .xlsx workbook."""
    try:
        store = studio_manager.import_workbook(request.file_path)
        return {"success": True, "nodes": len(store.nodes), "edges": len(store.edges)}
    except FileNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


class ExportWorkbookRequest(BaseModel):
    file_path: Optional[str] = None  # .xlsx path or a directory
    filters: Optional[FilterState] = None  # export only what is visible under these


@app.post("/api/blueprint/export")
async def export_workbook(request: ExportWorkbookRequest):
    """Write the blueprint to an .xlsx workbook."""
    try:
        path = studio_manager.export_workbook(request.file_path, filters=request.filters)
        return {"success": True, "file_path": str(path)}
    except OSError as e:
        logger.exception("Workbook export failed")
        raise HTTPException(status_code=500, detail=f"Failed to export: {e}")


@app.get("/api/blueprint/validate")
async def validate_blueprint():
    """
    Validate the current blueprint for structural issues.

    Returns a list of issues (errors, warnings, info) and a summary.
    """
    issues = studio_manager.validate()
    return {
        "success": True,
        "issues": [issue.to_dict() for issue in issues],
        "summary": validation_summary(issues)
    }


# --- Node Operations ---

@app.post("/api/nodes")
async def create_node(request: CreateNodeRequest):
    """Create a new node with its kind's default payload."""
    node = studio_manager.add_node(kind=request.kind, x=request.x, y=request.y)
    return {"success": True, "node": node.model_dump(mode="json")}


# Search endpoint MUST be before the parameterized route
@app.get("/api/nodes/search")
async def search_nodes(
    q: str = Query(default=""),
    kind: Optional[NodeKind] = Query(default=None),
):
    """Search nodes by label, text, column names or tag names."""
    nodes = studio_manager.search_nodes(q, kind)
    return {"success": True, "nodes": [n.model_dump(mode="json") for n in nodes]}


@app.get("/api/nodes/{node_id}")
async def get_node(node_id: str):
    """Get a specific node."""
    node = studio_manager.get_node(node_id)
    if node:
        return {"success": True, "node": node.model_dump(mode="json")}
    raise HTTPException(status_code=404, detail="Node not found")


@app.patch("/api/nodes/{node_id}")
async def update_node(node_id: str, request: UpdateNodeRequest):
    """Update a node. Only the fields present in the body are changed."""
    try:
        node = studio_manager.update_node(node_id, **request.model_dump(exclude_unset=True))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if node:
        return {"success": True, "node": node.model_dump(mode="json")}
    raise HTTPException(status_code=404, detail="Node not found")


@app.delete("/api/nodes/{node_id}")
async def delete_node(node_id: str):
    """Delete a node and its connected edges."""
    deleted = studio_manager.delete_node(node_id)
    return {"success": True, "deleted": deleted}


# --- Edge Operations ---

@app.post("/api/edges")
async def create_edge(request: CreateEdgeRequest):
    """Create a new edge."""
    try:
        edge = studio_manager.add_edge(
            source=request.source,
            target=request.target,
            type_id=request.type_id,
            label=request.label,
            has_arrow=request.has_arrow
        )
        return {"success": True, "edge": edge.model_dump(mode="json")}
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@app.get("/api/edges/{edge_id}")
async def get_edge(edge_id: str):
    """Get a specific edge."""
    edge = studio_manager.get_edge(edge_id)
    if edge:
        return {"success": True, "edge": edge.model_dump(mode="json")}
    raise HTTPException(status_code=404, detail="Edge not found")


@app.patch("/api/edges/{edge_id}")
async def update_edge(edge_id: str, request: UpdateEdgeRequest):
    """Update an edge."""
    try:
        edge = studio_manager.update_edge(edge_id, **request.model_dump(exclude_unset=True))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if edge:
        return {"success": True, "edge": edge.model_dump(mode="json")}
    raise HTTPException(status_code=404, detail="Edge not found")


@app.delete("/api/edges/{edge_id}")
async def delete_edge(edge_id: str):
    """Delete an edge."""
    deleted = studio_manager.delete_edge(edge_id)
    return {"success": True, "deleted": deleted}


@app.post("/api/edges/{edge_id}/label")
async def edge_label_placement(edge_id: str, request: LabelPlacementRequest):
    """Where the edge's label goes, given the ports the renderer drew it between."""
    placement = studio_manager.label_placement(edge_id, request.source, request.target)
    if placement is None:
        raise HTTPException(status_code=404, detail="Edge not found")
    return {"success": True, "placement": placement.to_dict()}


# --- Catalog ---

@app.get("/api/catalog")
async def get_catalog():
    """Get every catalog collection."""
    return {"success": True, "catalog": studio_manager.catalog.to_json_dict()}


@app.get("/api/catalog/{collection}")
async def list_catalog_entries(collection: CatalogCollection):
    """List the entries of one catalog collection, in order."""
    entries = studio_manager.catalog.entries(collection)
    return {"success": True, "entries": [e.model_dump(mode="json") for e in entries]}


@app.post("/api/catalog/{collection}")
async def create_catalog_entry(collection: CatalogCollection, fields: dict[str, Any] = Body(default={})):
    """Add a catalog entry. A missing id is generated."""
    try:
        entry = studio_manager.add_catalog_entry(collection, **fields)
        return {"success": True, "entry": entry.model_dump(mode="json")}
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@app.patch("/api/catalog/{collection}/{entry_id}")
async def update_catalog_entry(collection: CatalogCollection, entry_id: str,
                               changes: dict[str, Any] = Body(default={})):
    """Update a catalog entry."""
    try:
        entry = studio_manager.update_catalog_entry(collection, entry_id, **changes)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if entry:
        return {"success": True, "entry": entry.model_dump(mode="json")}
    raise HTTPException(status_code=404, detail="Catalog entry not found")


@app.delete("/api/catalog/{collection}/{entry_id}")
async def delete_catalog_entry(collection: CatalogCollection, entry_id: str):
    """Remove a catalog entry. Nodes and edges referencing it are left as they are."""
    deleted = studio_manager.remove_catalog_entry(collection, entry_id)
    return {"success": True, "deleted": deleted}


# --- Visibility ---

@app.post("/api/visibility")
async def visibility(filters: FilterState):
    """Visible/dimmed verdict for every node and edge under the given filters."""
    report = studio_manager.visibility(filters)
    return {"success": True, **report.to_dict()}


# --- Enums for Frontend ---

@app.get("/api/enums")
async def get_enums():
    """Get the fixed value sets the editing forms offer."""
    return {
        "kinds": [k.value for k in NodeKind],
        "dash_styles": [d.value for d in DashStyle],
        "label_positions": [p.value for p in LabelPosition],
        "tag_positions": [p.value for p in TagPosition],
        "catalog_collections": [c.value for c in CatalogCollection],
    }


# --- Run with uvicorn ---

def run(config: Optional[StudioConfig] = None):
    """Serve the API with uvicorn."""
    import uvicorn

    config = config or studio_manager.config
    configure_logging(config.log_level)
    logger.info("Serving blueprint studio API on %s:%d", config.host, config.port)
    uvicorn.run(app, host=config.host, port=config.port)


if __name__ == "__main__":
    run()
