"""Tests for the classification catalog: management, defaults and fallbacks."""

import pytest

from blueprint.catalog import (
    FALLBACK_CONNECTION_TYPE,
    CatalogCollection,
    EntityCatalog,
    default_catalog,
)
from blueprint.errors import DuplicateIdentifier
from blueprint.models import Edge, LabelPosition, LogicNoteNode, ReportNode, TableNode, Tag


def test_default_seed():
    catalog = default_catalog()

    assert [c.id for c in catalog.entries(CatalogCollection.TABLE_CATEGORIES)] == ["cat-std", "cat-src", "cat-tmp"]
    assert catalog.default_category_id("TABLE") == "cat-std"
    assert catalog.default_category_id("LOGIC_NOTE") == "log-std"
    assert catalog.default_category_id("REPORT") is None
    assert catalog.default_connection_type_id() == "conn-std"
    assert catalog.entries(CatalogCollection.TAGS) == []
    assert catalog.connection_types["conn-ref"].dash_style == "dashed"


def test_add_entry_generates_prefixed_id_and_defaults(catalog):
    tag = catalog.add_entry(CatalogCollection.TAGS)
    link = catalog.add_entry("connection_types", name="Lookup")

    assert tag.id.startswith("tag-")
    assert tag.name == "New Tag"
    assert tag.color == "#10b981"
    assert tag.position == "left"
    assert link.id.startswith("conn-")
    assert link.label_position == LabelPosition.CENTER
    assert link.label_max_width == 150


def test_duplicate_id_is_rejected(catalog):
    with pytest.raises(DuplicateIdentifier):
        catalog.add_entry(CatalogCollection.DATA_SOURCES, id="src-erp", name="Other ERP")
    assert catalog.data_sources["src-erp"].name == "ERP Data"


def test_same_id_in_different_collections_is_fine(catalog):
    catalog.add_entry(CatalogCollection.TAGS, id="shared", name="Tag")
    catalog.add_entry(CatalogCollection.FIELD_TYPES, id="shared", name="Field")


def test_only_one_default_category_per_family(catalog):
    catalog.add_entry(CatalogCollection.TABLE_CATEGORIES, id="cat-new", name="New", is_default=True)
    assert catalog.default_category_id("TABLE") == "cat-new"
    assert not catalog.table_categories["cat-std"].is_default

    catalog.update_entry(CatalogCollection.TABLE_CATEGORIES, "cat-src", is_default=True)
    defaults = [c.id for c in catalog.entries(CatalogCollection.TABLE_CATEGORIES) if c.is_default]
    assert defaults == ["cat-src"]
    # the logic family is independent
    assert catalog.logic_categories["log-std"].is_default


def test_update_entry(catalog):
    updated = catalog.update_entry(CatalogCollection.CONNECTION_TYPES, "conn-crit",
                                   label_position="source", id="ignored", unknown="x")
    assert updated.id == "conn-crit"
    assert updated.label_position == LabelPosition.SOURCE
    assert catalog.update_entry(CatalogCollection.CONNECTION_TYPES, "missing", name="x") is None


def test_update_entry_validates(catalog):
    with pytest.raises(ValueError):
        catalog.update_entry(CatalogCollection.CONNECTION_TYPES, "conn-std", width=0)


def test_remove_entry_never_cascades(catalog):
    table = TableNode(label="Orders", category_id="cat-src")

    assert catalog.remove_entry(CatalogCollection.TABLE_CATEGORIES, "cat-src") is True
    assert catalog.remove_entry(CatalogCollection.TABLE_CATEGORIES, "cat-src") is False
    assert table.category_id == "cat-src"
    assert catalog.category_for(table) is None
    assert catalog.node_color(table) == "#2563eb"


def test_node_color_uses_category_then_kind_fallback(catalog):
    assert catalog.node_color(TableNode(category_id="cat-src")) == "#16a34a"
    assert catalog.node_color(LogicNoteNode(category_id="log-rule")) == "#dc2626"
    assert catalog.node_color(LogicNoteNode()) == "#9333ea"
    assert catalog.node_color(ReportNode()) == "#ea580c"


def test_connection_type_fallback(catalog):
    assert catalog.connection_type_for(Edge(source="a", target="b", type_id="conn-crit")).width == 3
    fallback = catalog.connection_type_for(Edge(source="a", target="b", type_id="gone"))
    assert fallback is FALLBACK_CONNECTION_TYPE
    assert fallback.label_position == LabelPosition.CENTER
    assert fallback.label_max_width == 150
    assert catalog.connection_type_for(Edge(source="a", target="b")) is FALLBACK_CONNECTION_TYPE


def test_resolve_tags_drops_dangling_ids(catalog):
    catalog.add_entry(CatalogCollection.TAGS, Tag(id="tag-a", name="A"))
    catalog.add_entry(CatalogCollection.TAGS, Tag(id="tag-b", name="B"))

    assert [t.name for t in catalog.resolve_tags(["tag-b", "gone", "tag-a"])] == ["B", "A"]


def test_get_is_none_safe(catalog):
    assert catalog.get(CatalogCollection.DATA_SOURCES, None) is None
    assert catalog.get(CatalogCollection.DATA_SOURCES, "") is None
    assert catalog.get(CatalogCollection.DATA_SOURCES, "src-sql").name == "Database"


def test_json_round_trip_keeps_order(catalog):
    catalog.add_entry(CatalogCollection.TAGS, Tag(id="tag-z", name="Z", position="top"))
    restored = EntityCatalog.from_json_dict(catalog.to_json_dict())

    for collection in CatalogCollection:
        assert [e.id for e in restored.entries(collection)] == [e.id for e in catalog.entries(collection)]
    assert restored.tags["tag-z"].position == "top"
    assert restored.table_categories["cat-std"].is_default
