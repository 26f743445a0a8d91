"""
Entity catalog - user-configurable classification types.

The catalog is a set of independent collections keyed by id (table and logic
categories, connection types, data sources, field types, tags). Nodes and
edges only ever hold ids into it, and every lookup is "reference + fallback":
a dangling id resolves to None (or to a fallback style), never to an error.

Removing an entry never touches the nodes or edges that reference it.
"""

import logging
import uuid
from enum import Enum
from typing import Any, Optional, Union

from pydantic import BaseModel, Field

from .errors import DuplicateIdentifier
from .models import (
    CatalogEntry,
    Category,
    ConnectionType,
    DashStyle,
    DataSource,
    Edge,
    FieldType,
    LabelPosition,
    LogicCategory,
    NodeBase,
    NodeKind,
    Tag,
    TableCategory,
)

logger = logging.getLogger(__name__)


class CatalogCollection(str, Enum):
    """Names of the catalog collections (also used in API paths)."""
    TABLE_CATEGORIES = "table_categories"
    LOGIC_CATEGORIES = "logic_categories"
    CONNECTION_TYPES = "connection_types"
    DATA_SOURCES = "data_sources"
    FIELD_TYPES = "field_types"
    TAGS = "tags"


ENTRY_CLASSES: dict[CatalogCollection, type[CatalogEntry]] = {
    CatalogCollection.TABLE_CATEGORIES: TableCategory,
    CatalogCollection.LOGIC_CATEGORIES: LogicCategory,
    CatalogCollection.CONNECTION_TYPES: ConnectionType,
    CatalogCollection.DATA_SOURCES: DataSource,
    CatalogCollection.FIELD_TYPES: FieldType,
    CatalogCollection.TAGS: Tag,
}

ID_PREFIXES: dict[CatalogCollection, str] = {
    CatalogCollection.TABLE_CATEGORIES: "cat",
    CatalogCollection.LOGIC_CATEGORIES: "log",
    CatalogCollection.CONNECTION_TYPES: "conn",
    CatalogCollection.DATA_SOURCES: "src",
    CatalogCollection.FIELD_TYPES: "ft",
    CatalogCollection.TAGS: "tag",
}

# Names given to entries created without one
DEFAULT_ENTRY_NAMES: dict[CatalogCollection, str] = {
    CatalogCollection.TABLE_CATEGORIES: "New Table Category",
    CatalogCollection.LOGIC_CATEGORIES: "New Logic Category",
    CatalogCollection.CONNECTION_TYPES: "New Link Type",
    CatalogCollection.DATA_SOURCES: "New Data Source",
    CatalogCollection.FIELD_TYPES: "New Field Type",
    CatalogCollection.TAGS: "New Tag",
}

# Card colours used when a node has no (resolvable) category
FALLBACK_NODE_COLORS: dict[NodeKind, str] = {
    NodeKind.TABLE: "#2563eb",
    NodeKind.LOGIC_NOTE: "#9333ea",
    NodeKind.REPORT: "#ea580c",
}

# Style used for edges whose connection type is unset or dangling
FALLBACK_CONNECTION_TYPE = ConnectionType(
    id="",
    name="Unclassified",
    color="#94a3b8",
    width=2,
    dash_style=DashStyle.SOLID,
    label_position=LabelPosition.CENTER,
    label_max_width=150,
)

CATEGORY_FAMILIES: dict[NodeKind, CatalogCollection] = {
    NodeKind.TABLE: CatalogCollection.TABLE_CATEGORIES,
    NodeKind.LOGIC_NOTE: CatalogCollection.LOGIC_CATEGORIES,
}


def generate_entry_id(collection: CatalogCollection) -> str:
    """Generate a unique id with the collection's prefix (e.g. 'cat-1a2b3c4d')."""
    return f"{ID_PREFIXES[collection]}-{uuid.uuid4().hex[:8]}"


class EntityCatalog(BaseModel):
    """
    The classification catalog.

    Each collection is an insertion-ordered mapping of id -> entry. The
    catalog is passed explicitly to every component that needs it; there is
    no module-level instance.
    """
    table_categories: dict[str, TableCategory] = Field(default_factory=dict)
    logic_categories: dict[str, LogicCategory] = Field(default_factory=dict)
    connection_types: dict[str, ConnectionType] = Field(default_factory=dict)
    data_sources: dict[str, DataSource] = Field(default_factory=dict)
    field_types: dict[str, FieldType] = Field(default_factory=dict)
    tags: dict[str, Tag] = Field(default_factory=dict)

    # --- Construction ---

    @classmethod
    def from_lists(cls, **collections: list[Union[CatalogEntry, dict]]) -> "EntityCatalog":
        """Build a catalog from ordered lists of entries (or plain dicts)."""
        catalog = cls()
        for name, entries in collections.items():
            collection = CatalogCollection(name)
            entry_cls = ENTRY_CLASSES[collection]
            for entry in entries:
                if isinstance(entry, dict):
                    entry = entry_cls(**entry)
                catalog.add_entry(collection, entry)
        return catalog

    def to_json_dict(self) -> dict:
        """Serialize as ordered lists, the shape used by project files."""
        return {
            collection.value: [
                entry.model_dump(mode="json") for entry in self.entries(collection)
            ]
            for collection in CatalogCollection
        }

    @classmethod
    def from_json_dict(cls, data: dict) -> "EntityCatalog":
        """Inverse of to_json_dict; missing collections stay empty."""
        return cls.from_lists(**{
            collection.value: data.get(collection.value, [])
            for collection in CatalogCollection
        })

    # --- Generic access ---

    def collection(self, collection: CatalogCollection) -> dict[str, Any]:
        return getattr(self, CatalogCollection(collection).value)

    def entries(self, collection: CatalogCollection) -> list[Any]:
        return list(self.collection(collection).values())

    def get(self, collection: CatalogCollection, entry_id: Optional[str]) -> Optional[Any]:
        """Look up an entry; unset or unknown ids resolve to None."""
        if not entry_id:
            return None
        return self.collection(collection).get(entry_id)

    # --- Management ---

    def add_entry(
        self,
        collection: CatalogCollection,
        entry: Optional[CatalogEntry] = None,
        **fields: Any,
    ) -> CatalogEntry:
        """
        Add an entry to a collection.

        Either pass a ready entry, or keyword fields from which one is built.
        A missing id is generated with the collection's prefix.

        Raises:
            DuplicateIdentifier: if the id is already used in this collection.
        """
        collection = CatalogCollection(collection)
        entry_cls = ENTRY_CLASSES[collection]

        if entry is None:
            fields.setdefault("id", generate_entry_id(collection))
            fields.setdefault("name", DEFAULT_ENTRY_NAMES[collection])
            entry = entry_cls(**fields)
        elif not isinstance(entry, entry_cls):
            entry = entry_cls(**entry.model_dump())

        items = self.collection(collection)
        if entry.id in items:
            raise DuplicateIdentifier(f"Duplicate id in {collection.value}: {entry.id}")

        items[entry.id] = entry
        if isinstance(entry, Category) and entry.is_default:
            self._clear_other_defaults(collection, entry.id)

        logger.debug("Added %s entry %s", collection.value, entry.id)
        return entry

    def update_entry(self, collection: CatalogCollection, entry_id: str, **changes: Any) -> Optional[CatalogEntry]:
        """Update fields of an existing entry. Returns None if it does not exist."""
        collection = CatalogCollection(collection)
        entry = self.get(collection, entry_id)
        if entry is None:
            return None

        for key, value in changes.items():
            if key == "id":
                continue
            if key in type(entry).model_fields:
                setattr(entry, key, value)

        if isinstance(entry, Category) and entry.is_default:
            self._clear_other_defaults(collection, entry.id)
        return entry

    def remove_entry(self, collection: CatalogCollection, entry_id: str) -> bool:
        """Remove an entry. References to it elsewhere are left dangling on purpose."""
        collection = CatalogCollection(collection)
        removed = self.collection(collection).pop(entry_id, None)
        if removed is not None:
            logger.debug("Removed %s entry %s", collection.value, entry_id)
        return removed is not None

    def _clear_other_defaults(self, collection: CatalogCollection, keep_id: str):
        for other in self.collection(collection).values():
            if other.id != keep_id and other.is_default:
                other.is_default = False

    # --- Resolution (reference + fallback) ---

    def default_category_id(self, kind: NodeKind) -> Optional[str]:
        """
        Category given to newly created nodes of this kind.

        The family's flagged default wins, then its first entry. Kinds
        without a category family (reports) get None.
        """
        family = CATEGORY_FAMILIES.get(NodeKind(kind))
        if family is None:
            return None
        categories = self.entries(family)
        for category in categories:
            if category.is_default:
                return category.id
        return categories[0].id if categories else None

    def default_connection_type_id(self) -> Optional[str]:
        types = self.entries(CatalogCollection.CONNECTION_TYPES)
        return types[0].id if types else None

    def category_for(self, node: NodeBase) -> Optional[Category]:
        family = CATEGORY_FAMILIES.get(NodeKind(node.kind))
        if family is None:
            return None
        return self.get(family, getattr(node, "category_id", None))

    def node_color(self, node: NodeBase) -> str:
        category = self.category_for(node)
        if category is not None:
            return category.color
        return FALLBACK_NODE_COLORS[NodeKind(node.kind)]

    def connection_type_for(self, edge: Edge) -> ConnectionType:
        connection_type = self.get(CatalogCollection.CONNECTION_TYPES, edge.type_id)
        return connection_type if connection_type is not None else FALLBACK_CONNECTION_TYPE

    def resolve_tags(self, tag_ids: list[str]) -> list[Tag]:
        """Resolve tag ids in order, silently dropping dangling ones."""
        return [self.tags[tag_id] for tag_id in tag_ids if tag_id in self.tags]


def default_catalog() -> EntityCatalog:
    """The seed configuration a fresh studio starts with."""
    return EntityCatalog.from_lists(
        table_categories=[
            TableCategory(id="cat-std", name="Standard Table", color="#2563eb", is_default=True),
            TableCategory(id="cat-src", name="Source Data", color="#16a34a"),
            TableCategory(id="cat-tmp", name="Draft/Workings", color="#9333ea"),
        ],
        logic_categories=[
            LogicCategory(id="log-std", name="Standard Logic", color="#9333ea", is_default=True),
            LogicCategory(id="log-rule", name="Validation Rule", color="#dc2626"),
            LogicCategory(id="log-calc", name="Calculation Engine", color="#0891b2"),
        ],
        connection_types=[
            ConnectionType(id="conn-std", name="Standard Flow", color="#94a3b8", width=2),
            ConnectionType(id="conn-crit", name="Critical Path", color="#dc2626", width=3),
            ConnectionType(id="conn-ref", name="Reference Only", color="#64748b", width=1,
                           dash_style=DashStyle.DASHED),
        ],
        data_sources=[
            DataSource(id="src-erp", name="ERP Data"),
            DataSource(id="src-xls", name="Excel Data"),
            DataSource(id="src-sql", name="Database"),
        ],
        field_types=[
            FieldType(id="ft-text", name="Text"),
            FieldType(id="ft-number", name="Number"),
            FieldType(id="ft-date", name="Date"),
            FieldType(id="ft-bool", name="Boolean"),
        ],
    )
