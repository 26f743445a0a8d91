"""
Blueprint project files.

A project bundles the graph and its catalog into one JSON document. This is
what gets saved to/loaded from disk by the studio.
"""

from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, Field

from .catalog import EntityCatalog
from .graph_store import GraphStore
from .models import NODE_ADAPTER, Edge


PROJECT_FORMAT_VERSION = 1


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ProjectMetadata(BaseModel):
    """Metadata about the project."""
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)
    version: int = PROJECT_FORMAT_VERSION


def project_to_json_dict(store: GraphStore, catalog: EntityCatalog, name: str = "Untitled Blueprint",
                         metadata: ProjectMetadata | None = None) -> dict:
    """Convert a graph and its catalog to a JSON-serializable dict."""
    metadata = metadata or ProjectMetadata()
    return {
        "name": name,
        "nodes": [node.model_dump(mode="json") for node in store.nodes],
        "edges": [edge.model_dump(mode="json") for edge in store.edges],
        "catalog": catalog.to_json_dict(),
        "metadata": metadata.model_dump(mode="json"),
    }


def project_from_json_dict(data: dict[str, Any]) -> tuple[str, GraphStore, EntityCatalog, ProjectMetadata]:
    """
    Rebuild a project from a JSON dict.

    Edges are checked against the nodes, so a file with a dangling endpoint
    raises InvalidReference instead of loading a broken graph.
    """
    catalog = EntityCatalog.from_json_dict(data.get("catalog", {}))
    nodes = [NODE_ADAPTER.validate_python(n) for n in data.get("nodes", [])]
    edges = [Edge(**e) for e in data.get("edges", [])]

    store = GraphStore(catalog)
    store.replace_contents(nodes, edges)

    metadata = ProjectMetadata(**data.get("metadata", {}))
    return data.get("name", "Untitled Blueprint"), store, catalog, metadata
