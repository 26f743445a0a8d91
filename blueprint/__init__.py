"""
Blueprint Core - Shared models, catalog, graph store, visibility, label
geometry and workbook codec.

This module provides the core functionality used by both the backend API
and the MCP tools, ensuring a single source of truth for all blueprint logic.
"""

from .models import (
    # Enums
    NodeKind,
    DashStyle,
    LabelPosition,
    TagPosition,
    PortSide,
    # Graph models
    Column,
    TableNode,
    LogicNoteNode,
    ReportNode,
    Node,
    Edge,
    Port,
    # Catalog entries
    TableCategory,
    LogicCategory,
    ConnectionType,
    DataSource,
    FieldType,
    Tag,
    # Request models (for API)
    CreateNodeRequest,
    UpdateNodeRequest,
    CreateEdgeRequest,
    UpdateEdgeRequest,
    LabelPlacementRequest,
)

from .errors import BlueprintError, InvalidReference, MalformedSheet, DuplicateIdentifier
from .catalog import CatalogCollection, EntityCatalog, default_catalog
from .graph_store import GraphStore
from .visibility import HIDE_ALL, FilterState, Verdict, VisibilityReport, evaluate_visibility
from .label_geometry import LabelPlacement, resolve_label_placement, placement_for_edge
from .tabular import export_tabular, import_tabular, read_workbook, write_workbook
from .validation import validate_blueprint, ValidationIssue, IssueSeverity

__all__ = [
    # Enums
    "NodeKind",
    "DashStyle",
    "LabelPosition",
    "TagPosition",
    "PortSide",
    # Models
    "Column",
    "TableNode",
    "LogicNoteNode",
    "ReportNode",
    "Node",
    "Edge",
    "Port",
    "TableCategory",
    "LogicCategory",
    "ConnectionType",
    "DataSource",
    "FieldType",
    "Tag",
    # Request models
    "CreateNodeRequest",
    "UpdateNodeRequest",
    "CreateEdgeRequest",
    "UpdateEdgeRequest",
    "LabelPlacementRequest",
    # Errors
    "BlueprintError",
    "InvalidReference",
    "MalformedSheet",
    "DuplicateIdentifier",
    # Catalog
    "CatalogCollection",
    "EntityCatalog",
    "default_catalog",
    # Graph
    "GraphStore",
    # Visibility
    "HIDE_ALL",
    "FilterState",
    "Verdict",
    "VisibilityReport",
    "evaluate_visibility",
    # Label geometry
    "LabelPlacement",
    "resolve_label_placement",
    "placement_for_edge",
    # Workbook codec
    "export_tabular",
    "import_tabular",
    "read_workbook",
    "write_workbook",
    # Validation
    "validate_blueprint",
    "ValidationIssue",
    "IssueSeverity",
]
