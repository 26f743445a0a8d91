"""
Graph store - owns the nodes and edges of a blueprint.

This module implements:
- O(1) node/edge lookups via index dictionaries
- Cascade deletion of edges when a node goes away
- Referential integrity for edge endpoints (InvalidReference)
- Partial updates, validated as a whole before the live entity is touched

Catalog references (categories, types, tags) are NOT checked here: a dangling
catalog id is a styling concern, resolved with a fallback by the catalog.
"""

import logging
from typing import Any, Iterable, Optional

from .catalog import EntityCatalog
from .errors import InvalidReference
from .models import (
    NODE_CLASSES,
    Column,
    Edge,
    NodeBase,
    NodeKind,
    TableNode,
)

logger = logging.getLogger(__name__)

# Fields that identify an entity and cannot be changed by an update
_NODE_IMMUTABLE = {"id", "kind"}
_EDGE_IMMUTABLE = {"id"}


def node_search_text(node: NodeBase, catalog: Optional[EntityCatalog] = None) -> list[str]:
    """All text a search query is matched against: label, description,
    column names, comment and the names of resolved tags."""
    texts = [node.label]
    texts.append(getattr(node, "description", "") or "")
    texts.append(getattr(node, "comment", "") or "")
    texts.extend(column.name for column in getattr(node, "columns", []))
    if catalog is not None:
        texts.extend(tag.name for tag in catalog.resolve_tags(node.tags))
    return texts


def node_matches_query(node: NodeBase, query: str, catalog: Optional[EntityCatalog] = None) -> bool:
    """Case-insensitive substring match; a blank query matches everything."""
    needle = query.strip().lower()
    if not needle:
        return True
    return any(needle in text.lower() for text in node_search_text(node, catalog))


class GraphStore:
    """
    Holds the nodes and edges of a single blueprint.

    The catalog is only consulted for defaults when creating entities (and
    for tag names when searching); it is owned by the caller.
    """

    def __init__(self, catalog: EntityCatalog):
        self.catalog = catalog

        # O(1) lookup indexes (insertion ordered, which is display order)
        self._node_index: dict[str, NodeBase] = {}     # node_id -> Node
        self._edge_index: dict[str, Edge] = {}         # edge_id -> Edge
        self._tag_index: dict[str, set[str]] = {}      # tag_id -> set of node_ids
        self._edges_by_node: dict[str, set[str]] = {}  # node_id -> set of edge_ids

    # --- Index Management ---

    def _index_node(self, node: NodeBase):
        """Add a node to the indexes."""
        self._node_index[node.id] = node
        for tag in node.tags:
            self._tag_index.setdefault(tag, set()).add(node.id)

    def _unindex_node(self, node: NodeBase):
        """Remove a node from the indexes."""
        self._node_index.pop(node.id, None)
        for tag in node.tags:
            if tag in self._tag_index:
                self._tag_index[tag].discard(node.id)

    def _index_edge(self, edge: Edge):
        """Add an edge to the indexes."""
        self._edge_index[edge.id] = edge
        self._edges_by_node.setdefault(edge.source, set()).add(edge.id)
        self._edges_by_node.setdefault(edge.target, set()).add(edge.id)

    def _unindex_edge(self, edge: Edge):
        """Remove an edge from the indexes."""
        self._edge_index.pop(edge.id, None)
        if edge.source in self._edges_by_node:
            self._edges_by_node[edge.source].discard(edge.id)
        if edge.target in self._edges_by_node:
            self._edges_by_node[edge.target].discard(edge.id)

    # --- Properties ---

    @property
    def nodes(self) -> list[NodeBase]:
        return list(self._node_index.values())

    @property
    def edges(self) -> list[Edge]:
        return list(self._edge_index.values())

    def __len__(self) -> int:
        return len(self._node_index)

    # --- Node Operations ---

    def add_node(self, kind: NodeKind, x: float = 100, y: float = 100) -> NodeBase:
        """
        Create a node of the given kind with its default payload.

        Tables start with one column, logic notes with empty text, reports
        with nothing. Tables and logic notes get the family's default category.
        """
        kind = NodeKind(kind)
        node_cls = NODE_CLASSES[kind]

        fields: dict[str, Any] = {
            "label": f"New {kind.value.lower()}",
            "x": x,
            "y": y,
        }
        category_id = self.catalog.default_category_id(kind)
        if category_id is not None:
            fields["category_id"] = category_id
        if kind == NodeKind.TABLE:
            fields["columns"] = [Column(name="New Field")]

        node = node_cls(**fields)
        self._index_node(node)
        logger.debug("Added %s node %s", kind.value, node.id)
        return node

    def insert_node(self, node: NodeBase) -> NodeBase:
        """Insert a fully built node (used by loaders). Ids must be unique."""
        if node.id in self._node_index:
            raise ValueError(f"Duplicate node id: {node.id}")
        self._index_node(node)
        return node

    def update_node(self, node_id: str, **changes: Any) -> Optional[NodeBase]:
        """
        Merge changes into an existing node.

        Only the supplied keys are touched. Keys that are not fields of the
        node's kind are ignored (a report has no columns to set).

        Returns:
            The updated node, or None if it does not exist.
        """
        node = self._node_index.get(node_id)
        if node is None:
            return None

        if "id" in changes and changes["id"] != node.id:
            raise ValueError("Node id cannot be changed")
        if "kind" in changes and changes["kind"] != node.kind:
            raise ValueError(f"Node kind cannot be changed (is {node.kind})")

        fields = type(node).model_fields
        accepted = {}
        for key, value in changes.items():
            if key in _NODE_IMMUTABLE:
                continue
            if key not in fields:
                logger.debug("Ignoring field %r for %s node %s", key, node.kind, node_id)
                continue
            accepted[key] = value

        # Nothing on the live node changes unless the merged record validates
        validated = type(node).model_validate({**node.model_dump(), **accepted})

        old_tags = set(node.tags)
        for key in accepted:
            setattr(node, key, getattr(validated, key))

        new_tags = set(node.tags)
        for tag in old_tags - new_tags:
            if tag in self._tag_index:
                self._tag_index[tag].discard(node_id)
        for tag in new_tags - old_tags:
            self._tag_index.setdefault(tag, set()).add(node_id)

        return node

    def delete_node(self, node_id: str) -> bool:
        """Delete a node and every edge whose source or target is that node.

        Deleting an unknown id is a no-op and returns False.
        """
        node = self._node_index.get(node_id)
        if node is None:
            return False

        self._unindex_node(node)

        connected_edge_ids = self._edges_by_node.pop(node_id, set())
        for edge_id in connected_edge_ids:
            edge = self._edge_index.get(edge_id)
            if edge:
                self._unindex_edge(edge)

        logger.debug("Deleted node %s and %d connected edge(s)", node_id, len(connected_edge_ids))
        return True

    def get_node(self, node_id: str) -> Optional[NodeBase]:
        """Get a node by ID (O(1) lookup)."""
        return self._node_index.get(node_id)

    def has_node(self, node_id: str) -> bool:
        """True if a node with this ID is in the store."""
        return node_id in self._node_index

    # --- Edge Operations ---

    def _require_node(self, node_id: str, role: str, edge_id: Optional[str] = None):
        if not self.has_node(node_id):
            raise InvalidReference(f"{role.capitalize()} node not found: {node_id}",
                                   node_id=node_id, edge_id=edge_id)

    def add_edge(
        self,
        source: str,
        target: str,
        type_id: Optional[str] = None,
        label: str = "",
        has_arrow: bool = True,
    ) -> Edge:
        """
        Connect two existing nodes.

        A missing type_id falls back to the catalog's first connection type.

        Raises:
            InvalidReference: if source or target is not a node in this store.
        """
        self._require_node(source, "source")
        self._require_node(target, "target")

        if type_id is None:
            type_id = self.catalog.default_connection_type_id()

        edge = Edge(source=source, target=target, type_id=type_id, label=label, has_arrow=has_arrow)
        self._index_edge(edge)
        logger.debug("Added edge %s (%s -> %s)", edge.id, source, target)
        return edge

    def insert_edge(self, edge: Edge) -> Edge:
        """Insert a fully built edge (used by loaders)."""
        if edge.id in self._edge_index:
            raise ValueError(f"Duplicate edge id: {edge.id}")
        self._require_node(edge.source, "source", edge.id)
        self._require_node(edge.target, "target", edge.id)
        self._index_edge(edge)
        return edge

    def update_edge(self, edge_id: str, **changes: Any) -> Optional[Edge]:
        """Merge changes into an existing edge. Re-pointed endpoints must exist."""
        edge = self._edge_index.get(edge_id)
        if edge is None:
            return None

        if "id" in changes and changes["id"] != edge.id:
            raise ValueError("Edge id cannot be changed")

        for role in ("source", "target"):
            if role in changes:
                self._require_node(changes[role], role, edge_id)

        accepted = {
            key: value for key, value in changes.items()
            if key not in _EDGE_IMMUTABLE and key in Edge.model_fields
        }
        validated = Edge.model_validate({**edge.model_dump(), **accepted})

        self._unindex_edge(edge)
        for key in accepted:
            setattr(edge, key, getattr(validated, key))
        self._index_edge(edge)
        return edge

    def delete_edge(self, edge_id: str) -> bool:
        """Delete an edge. Deleting an unknown id is a no-op and returns False."""
        edge = self._edge_index.get(edge_id)
        if edge is None:
            return False
        self._unindex_edge(edge)
        return True

    def get_edge(self, edge_id: str) -> Optional[Edge]:
        """Get an edge by ID (O(1) lookup)."""
        return self._edge_index.get(edge_id)

    # --- Queries ---

    def edges_for_node(self, node_id: str) -> list[Edge]:
        """Get all edges connected to a node (O(1) index lookup)."""
        edge_ids = self._edges_by_node.get(node_id, set())
        return [edge for edge in self._edge_index.values() if edge.id in edge_ids]

    def nodes_with_tag(self, tag_id: str) -> list[NodeBase]:
        """Get all nodes carrying a tag (O(1) index lookup)."""
        node_ids = self._tag_index.get(tag_id, set())
        return [node for node in self._node_index.values() if node.id in node_ids]

    def search_nodes(self, query: str, kind: Optional[NodeKind] = None) -> list[NodeBase]:
        """Find nodes whose label, text, columns or tag names contain the query."""
        results = []
        for node in self._node_index.values():
            if kind is not None and node.kind != NodeKind(kind):
                continue
            if node_matches_query(node, query, self.catalog):
                results.append(node)
        return results

    def tables(self) -> list[TableNode]:
        return [n for n in self._node_index.values() if isinstance(n, TableNode)]

    # --- Bulk Operations ---

    def clear(self):
        """Remove every node and edge."""
        self._node_index.clear()
        self._edge_index.clear()
        self._tag_index.clear()
        self._edges_by_node.clear()

    def replace_contents(self, nodes: Iterable[NodeBase], edges: Iterable[Edge]):
        """
        Replace all nodes and edges at once.

        The replacement is validated in a scratch store first, so on any
        error (duplicate id, dangling endpoint) this store is left untouched.
        """
        staging = GraphStore(self.catalog)
        for node in nodes:
            staging.insert_node(node)
        for edge in edges:
            staging.insert_edge(edge)

        self._node_index = staging._node_index
        self._edge_index = staging._edge_index
        self._tag_index = staging._tag_index
        self._edges_by_node = staging._edges_by_node
