"""
Visibility engine - decides which nodes and edges are shown or dimmed.

The active filter state has four independent axes (table categories, logic
categories, tags, connection types) plus an optional search query. Each axis
is a set of catalog ids; an empty set imposes nothing, and the HIDE_ALL
sentinel excludes everything on that axis. An entity is dimmed if ANY axis
excludes it.

Evaluation is two-pass: node verdicts first, then edge verdicts, since an
edge is never more visible than either of its endpoints.

Nothing is removed from the model; callers only receive verdicts.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Optional

from pydantic import BaseModel, Field

from .graph_store import node_matches_query
from .models import Edge, NodeBase, NodeKind

if TYPE_CHECKING:
    from .catalog import EntityCatalog
    from .graph_store import GraphStore


HIDE_ALL = "__HIDE_ALL__"


class Verdict(str, Enum):
    """Visibility outcome for one entity."""
    VISIBLE = "visible"
    DIMMED = "dimmed"

    @property
    def is_visible(self) -> bool:
        return self is Verdict.VISIBLE


class FilterAxis(str, Enum):
    """Which rule excluded an entity (reported alongside dimmed verdicts)."""
    TABLE_CATEGORY = "table_category"
    LOGIC_CATEGORY = "logic_category"
    TAG = "tag"
    SEARCH = "search"
    CONNECTION_TYPE = "connection_type"
    SOURCE_NODE = "source_node"
    TARGET_NODE = "target_node"


class FilterState(BaseModel):
    """The externally owned selection of active filters."""
    table_categories: set[str] = Field(default_factory=set)
    logic_categories: set[str] = Field(default_factory=set)
    tags: set[str] = Field(default_factory=set)
    connection_types: set[str] = Field(default_factory=set)
    search_query: str = ""

    def is_open(self) -> bool:
        """True when no axis imposes anything."""
        return not (self.table_categories or self.logic_categories or self.tags
                    or self.connection_types or self.search_query.strip())


def _category_axis_excludes(active: set[str], reference: Optional[str]) -> bool:
    # An unset reference is not a mismatch; only the sentinel or an
    # explicit id outside the set excludes.
    if not active:
        return False
    if HIDE_ALL in active:
        return True
    return bool(reference) and reference not in active


def _tag_axis_excludes(active: set[str], tags: list[str]) -> bool:
    # Unlike categories, an untagged node cannot match an active tag filter.
    if not active:
        return False
    if HIDE_ALL in active:
        return True
    return not any(tag in active for tag in tags)


def node_exclusion(
    node: NodeBase,
    filters: FilterState,
    catalog: Optional["EntityCatalog"] = None,
) -> Optional[FilterAxis]:
    """Return the first axis that excludes this node, or None if it is visible."""
    kind = NodeKind(node.kind)
    category_id = getattr(node, "category_id", None)

    if kind == NodeKind.TABLE and _category_axis_excludes(filters.table_categories, category_id):
        return FilterAxis.TABLE_CATEGORY
    if kind == NodeKind.LOGIC_NOTE and _category_axis_excludes(filters.logic_categories, category_id):
        return FilterAxis.LOGIC_CATEGORY
    if _tag_axis_excludes(filters.tags, node.tags):
        return FilterAxis.TAG
    if not node_matches_query(node, filters.search_query, catalog):
        return FilterAxis.SEARCH
    return None


def node_verdict(node: NodeBase, filters: FilterState, catalog: Optional["EntityCatalog"] = None) -> Verdict:
    """Verdict for a single node."""
    if node_exclusion(node, filters, catalog) is None:
        return Verdict.VISIBLE
    return Verdict.DIMMED


def edge_exclusion(
    edge: Edge,
    filters: FilterState,
    source_verdict: Verdict,
    target_verdict: Verdict,
) -> Optional[FilterAxis]:
    """Return the first reason this edge is dimmed, or None if it is visible."""
    if _category_axis_excludes(filters.connection_types, edge.type_id):
        return FilterAxis.CONNECTION_TYPE
    if not source_verdict.is_visible:
        return FilterAxis.SOURCE_NODE
    if not target_verdict.is_visible:
        return FilterAxis.TARGET_NODE
    return None


def edge_verdict(edge: Edge, filters: FilterState, source_verdict: Verdict, target_verdict: Verdict) -> Verdict:
    """Verdict for a single edge, given the already resolved endpoint verdicts."""
    if edge_exclusion(edge, filters, source_verdict, target_verdict) is None:
        return Verdict.VISIBLE
    return Verdict.DIMMED


@dataclass
class VisibilityReport:
    """Verdicts for every node and edge, plus why each dimmed entity was dimmed."""
    nodes: dict[str, Verdict] = field(default_factory=dict)
    edges: dict[str, Verdict] = field(default_factory=dict)
    node_reasons: dict[str, FilterAxis] = field(default_factory=dict)
    edge_reasons: dict[str, FilterAxis] = field(default_factory=dict)

    def is_node_visible(self, node_id: str) -> bool:
        return self.nodes.get(node_id, Verdict.DIMMED).is_visible

    def is_edge_visible(self, edge_id: str) -> bool:
        return self.edges.get(edge_id, Verdict.DIMMED).is_visible

    @property
    def visible_node_ids(self) -> list[str]:
        return [node_id for node_id, verdict in self.nodes.items() if verdict.is_visible]

    @property
    def visible_edge_ids(self) -> list[str]:
        return [edge_id for edge_id, verdict in self.edges.items() if verdict.is_visible]

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "nodes": {k: v.value for k, v in self.nodes.items()},
            "edges": {k: v.value for k, v in self.edges.items()},
            "node_reasons": {k: v.value for k, v in self.node_reasons.items()},
            "edge_reasons": {k: v.value for k, v in self.edge_reasons.items()},
            "visible_nodes": len(self.visible_node_ids),
            "visible_edges": len(self.visible_edge_ids),
        }


def evaluate_visibility(
    store: "GraphStore",
    filters: FilterState,
    catalog: Optional["EntityCatalog"] = None,
) -> VisibilityReport:
    """
    Compute verdicts for the whole graph.

    Args:
        store: The graph to evaluate
        filters: Active filter selections (owned by the caller)
        catalog: Used to resolve tag names for the search query; defaults
            to the store's catalog

    Returns:
        A VisibilityReport with one verdict per node and per edge
    """
    if catalog is None:
        catalog = store.catalog

    report = VisibilityReport()

    # Pass 1: nodes
    for node in store.nodes:
        reason = node_exclusion(node, filters, catalog)
        if reason is None:
            report.nodes[node.id] = Verdict.VISIBLE
        else:
            report.nodes[node.id] = Verdict.DIMMED
            report.node_reasons[node.id] = reason

    # Pass 2: edges, fed by node verdicts (an unknown endpoint counts as dimmed)
    for edge in store.edges:
        source_verdict = report.nodes.get(edge.source, Verdict.DIMMED)
        target_verdict = report.nodes.get(edge.target, Verdict.DIMMED)
        reason = edge_exclusion(edge, filters, source_verdict, target_verdict)
        if reason is None:
            report.edges[edge.id] = Verdict.VISIBLE
        else:
            report.edges[edge.id] = Verdict.DIMMED
            report.edge_reasons[edge.id] = reason

    return report


def visible_subgraph(store: "GraphStore", report: VisibilityReport) -> tuple[list[NodeBase], list[Edge]]:
    """Nodes and edges that are visible under a report (the 'visible only' export scope)."""
    nodes = [node for node in store.nodes if report.is_node_visible(node.id)]
    edges = [edge for edge in store.edges if report.is_edge_visible(edge.id)]
    return nodes, edges
