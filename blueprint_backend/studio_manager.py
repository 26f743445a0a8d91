"""
Studio Manager - Holds the open blueprint, its catalog, and persistence.

This module implements:
- Single blueprint state management (one blueprint open at a time)
- JSON project files (nodes, edges and catalog together)
- Workbook import/export through the tabular codec
- Visibility and label placement queries against the live state
"""

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

from blueprint.catalog import CatalogCollection, EntityCatalog, default_catalog
from blueprint.config import StudioConfig
from blueprint.graph_store import GraphStore
from blueprint.label_geometry import LabelPlacement, placement_for_edge
from blueprint.models import Edge, NodeBase, NodeKind, Port
from blueprint.project import ProjectMetadata, project_from_json_dict, project_to_json_dict
from blueprint.tabular import (
    export_catalog_sheets,
    export_tabular,
    import_catalog_sheets,
    import_tabular,
    read_workbook,
    workbook_filename,
    write_workbook,
)
from blueprint.validation import ValidationIssue, validate_blueprint
from blueprint.visibility import FilterState, VisibilityReport, evaluate_visibility, visible_subgraph

logger = logging.getLogger(__name__)


class StudioManager:
    """
    Manages the open blueprint's state and persistence.

    The graph and the catalog are replaced as a pair (new, open, import), so
    the store always points at the catalog the manager exposes.
    """

    def __init__(self, config: Optional[StudioConfig] = None):
        self._config = config or StudioConfig.from_env()
        self._catalog: EntityCatalog = default_catalog()
        self._store = GraphStore(self._catalog)
        self._name = "Untitled Blueprint"
        self._metadata = ProjectMetadata()
        self._file_path: Optional[Path] = None
        self._dirty = False  # True if unsaved changes exist

    # --- Properties ---

    @property
    def config(self) -> StudioConfig:
        return self._config

    @property
    def store(self) -> GraphStore:
        return self._store

    @property
    def catalog(self) -> EntityCatalog:
        return self._catalog

    @property
    def name(self) -> str:
        return self._name

    @property
    def file_path(self) -> Optional[Path]:
        """Get the current project file path."""
        return self._file_path

    @property
    def is_dirty(self) -> bool:
        """Check if there are unsaved changes."""
        return self._dirty

    def _swap(self, store: GraphStore, catalog: EntityCatalog):
        self._store = store
        self._catalog = catalog

    # --- File Operations ---

    def new_blueprint(self, name: str = "Untitled Blueprint", reset_catalog: bool = False) -> GraphStore:
        """Start an empty blueprint, keeping the catalog unless asked to reset it."""
        catalog = default_catalog() if reset_catalog else self._catalog
        self._swap(GraphStore(catalog), catalog)
        self._name = name
        self._metadata = ProjectMetadata()
        self._file_path = None
        self._dirty = False
        logger.info("Started new blueprint %r", name)
        return self._store

    def open_project(self, file_path: str | Path) -> GraphStore:
        """Open a blueprint project from a JSON file."""
        path = Path(file_path)
        if not path.exists():
            raise FileNotFoundError(f"Project file not found: {path}")

        with open(path, "r") as f:
            data = json.load(f)

        name, store, catalog, metadata = project_from_json_dict(data)
        self._swap(store, catalog)
        self._name = name
        self._metadata = metadata
        self._file_path = path
        self._dirty = False
        logger.info("Opened project %s (%d nodes, %d edges)", path, len(store.nodes), len(store.edges))
        return self._store

    def save_project(self, file_path: Optional[str | Path] = None) -> Path:
        """
        Save the blueprint to a JSON project file.

        If file_path is provided, save to that path (Save As).
        Otherwise, save to the current file_path.
        """
        if file_path:
            path = Path(file_path)
        elif self._file_path:
            path = self._file_path
        else:
            raise ValueError("No file path specified and no current file path")

        self._metadata.updated_at = datetime.now(timezone.utc)
        path.parent.mkdir(parents=True, exist_ok=True)

        with open(path, "w") as f:
            json.dump(self.to_json_dict(), f, indent=2)

        self._file_path = path
        self._dirty = False
        logger.info("Saved project %s", path)
        return path

    def to_json_dict(self) -> dict:
        return project_to_json_dict(self._store, self._catalog, self._name, self._metadata)

    # --- Workbook Import/Export ---

    def import_workbook(self, file_path: str | Path) -> GraphStore:
        """
        Replace the blueprint (and catalog) with a workbook's contents.

        Both are decoded before anything is swapped in, so a missing sheet or
        a dangling edge endpoint leaves the current state as it was.
        """
        sheets = read_workbook(file_path)
        catalog = import_catalog_sheets(sheets, self._catalog)
        store = import_tabular(sheets, catalog)

        self._swap(store, catalog)
        self._dirty = True
        logger.info("Imported workbook %s (%d nodes, %d edges)", file_path, len(store.nodes), len(store.edges))
        return self._store

    def export_workbook(
        self,
        target: Optional[str | Path] = None,
        filters: Optional[FilterState] = None,
    ) -> Path:
        """
        Write the blueprint to an .xlsx workbook.

        Args:
            target: File path, or a directory to place a default-named file
                in. Defaults to the configured projects directory.
            filters: When given, only entities visible under these filters
                are exported.

        Returns:
            The path written
        """
        path = Path(target) if target else self._config.projects_dir
        if path.suffix.lower() != ".xlsx":
            path = path / workbook_filename(self._config.organization_name, self._config.user_name)

        store = self._store
        if filters is not None and not filters.is_open():
            nodes, edges = visible_subgraph(store, self.visibility(filters))
            store = GraphStore(self._catalog)
            store.replace_contents(nodes, edges)

        sheets = {**export_tabular(store), **export_catalog_sheets(self._catalog)}
        return write_workbook(sheets, path)

    # --- Node Operations ---

    def add_node(self, kind: NodeKind = NodeKind.TABLE, x: float = 100, y: float = 100) -> NodeBase:
        node = self._store.add_node(kind, x, y)
        self._dirty = True
        return node

    def update_node(self, node_id: str, **changes: Any) -> Optional[NodeBase]:
        node = self._store.update_node(node_id, **changes)
        if node is not None:
            self._dirty = True
        return node

    def delete_node(self, node_id: str) -> bool:
        """Delete a node and all connected edges."""
        deleted = self._store.delete_node(node_id)
        if deleted:
            self._dirty = True
        return deleted

    def get_node(self, node_id: str) -> Optional[NodeBase]:
        return self._store.get_node(node_id)

    def search_nodes(self, query: str = "", kind: Optional[NodeKind] = None) -> list[NodeBase]:
        return self._store.search_nodes(query, kind)

    # --- Edge Operations ---

    def add_edge(self, source: str, target: str, type_id: Optional[str] = None,
                 label: str = "", has_arrow: bool = True) -> Edge:
        edge = self._store.add_edge(source, target, type_id=type_id, label=label, has_arrow=has_arrow)
        self._dirty = True
        return edge

    def update_edge(self, edge_id: str, **changes: Any) -> Optional[Edge]:
        edge = self._store.update_edge(edge_id, **changes)
        if edge is not None:
            self._dirty = True
        return edge

    def delete_edge(self, edge_id: str) -> bool:
        deleted = self._store.delete_edge(edge_id)
        if deleted:
            self._dirty = True
        return deleted

    def get_edge(self, edge_id: str) -> Optional[Edge]:
        return self._store.get_edge(edge_id)

    # --- Catalog Operations ---

    def add_catalog_entry(self, collection: CatalogCollection, **fields: Any):
        entry = self._catalog.add_entry(collection, **fields)
        self._dirty = True
        return entry

    def update_catalog_entry(self, collection: CatalogCollection, entry_id: str, **changes: Any):
        entry = self._catalog.update_entry(collection, entry_id, **changes)
        if entry is not None:
            self._dirty = True
        return entry

    def remove_catalog_entry(self, collection: CatalogCollection, entry_id: str) -> bool:
        removed = self._catalog.remove_entry(collection, entry_id)
        if removed:
            self._dirty = True
        return removed

    # --- Queries ---

    def visibility(self, filters: FilterState) -> VisibilityReport:
        return evaluate_visibility(self._store, filters, self._catalog)

    def label_placement(self, edge_id: str, source: Port, target: Port) -> Optional[LabelPlacement]:
        """Label placement for an edge, or None if the edge does not exist."""
        edge = self._store.get_edge(edge_id)
        if edge is None:
            return None
        return placement_for_edge(edge, source, target, self._catalog)

    def validate(self) -> list[ValidationIssue]:
        return validate_blueprint(self._store, self._catalog)

    def get_state(self) -> dict:
        """Get the full current state for API responses."""
        return {
            "blueprint": self.to_json_dict(),
            "file_path": str(self._file_path) if self._file_path else None,
            "is_dirty": self._dirty,
            "node_count": len(self._store.nodes),
            "edge_count": len(self._store.edges),
        }


# Global instance for the application
studio_manager = StudioManager()
