"""Tests for the Nodes/Edges workbook codec."""

from datetime import datetime

import pandas as pd
import pytest

from blueprint.catalog import CatalogCollection, default_catalog
from blueprint.errors import InvalidReference, MalformedSheet
from blueprint.graph_store import GraphStore
from blueprint.models import Column, LogicNoteNode, NodeKind, ReportNode, TableNode, Tag
from blueprint.tabular import (
    EDGE_COLUMNS,
    NODE_COLUMNS,
    export_catalog_sheets,
    export_tabular,
    import_catalog_sheets,
    import_tabular,
    read_workbook,
    round_position,
    workbook_filename,
    write_workbook,
)


def _by_label(store, label):
    return next(n for n in store.nodes if n.label == label)


def test_export_layout(sample_store):
    sheets = export_tabular(sample_store)

    assert list(sheets) == ["Nodes", "Edges"]
    assert list(sheets["Nodes"].columns) == NODE_COLUMNS
    assert list(sheets["Edges"].columns) == EDGE_COLUMNS

    nodes = sheets["Nodes"].set_index("Label")
    assert nodes.loc["Orders", "Type"] == "TABLE"
    assert nodes.loc["Orders", "Columns"] == "ID|Name"
    assert nodes.loc["Dedupe orders", "Bullets"] == "group by ID|keep latest"
    assert nodes.loc["Monthly revenue", "CatID"] == ""
    assert sheets["Edges"].loc[0, "HasArrow"] == "YES"
    assert sheets["Edges"].loc[0, "Label"] == "feeds"


def test_round_trip_two_node_scenario(store, catalog):
    a = store.add_node(NodeKind.TABLE, x=120, y=40)
    store.update_node(a.id, label="A", columns=[Column(name="ID"), Column(name="Name")])
    b = store.add_node(NodeKind.LOGIC_NOTE, x=420, y=40)
    store.update_node(b.id, label="B")
    store.add_edge(a.id, b.id, label="feeds", has_arrow=True)

    restored = import_tabular(export_tabular(store), catalog)

    assert [(n.kind, n.label, n.position) for n in restored.nodes] == [
        ("TABLE", "A", (120, 40)),
        ("LOGIC_NOTE", "B", (420, 40)),
    ]
    assert [c.name for c in restored.get_node(a.id).columns] == ["ID", "Name"]
    [edge] = restored.edges
    assert (edge.source, edge.target, edge.label, edge.has_arrow) == (a.id, b.id, "feeds", True)


def test_round_trip_preserves_payload_text(sample_store, catalog):
    restored = import_tabular(export_tabular(sample_store), catalog)

    assert len(restored.nodes) == len(sample_store.nodes)
    assert len(restored.edges) == len(sample_store.edges)
    for original in sample_store.nodes:
        copy = restored.get_node(original.id)
        assert type(copy) is type(original)
        assert copy.label == original.label
        assert copy.position == original.position
    note = _by_label(restored, "Dedupe orders")
    assert note.description == "Remove repeated order lines"
    assert note.bullet_points == ["group by ID", "keep latest"]
    table = _by_label(restored, "Orders")
    assert table.comment == "Nightly extract"
    assert table.data_source_id == "src-erp"
    assert table.category_id == "cat-std"


def test_round_trip_drops_column_type_and_key(sample_store, catalog):
    original = _by_label(sample_store, "Orders")
    assert original.columns[0].is_key and original.columns[0].type_id == "ft-number"

    restored = _by_label(import_tabular(export_tabular(sample_store), catalog), "Orders")

    assert [c.id for c in restored.columns] == ["0", "1"]
    assert all(c.type_id is None for c in restored.columns)
    assert all(c.is_key is False for c in restored.columns)


def test_positions_round_half_up(store, catalog):
    store.insert_node(TableNode(id="t1", x=10.5, y=99.4))
    store.insert_node(TableNode(id="t2", x=-10.5, y=-0.6))

    nodes = export_tabular(store)["Nodes"].set_index("ID")
    assert (nodes.loc["t1", "X"], nodes.loc["t1", "Y"]) == (11, 99)
    assert (nodes.loc["t2", "X"], nodes.loc["t2", "Y"]) == (-10, -1)
    assert round_position(2.5) == 3


def test_arrow_flag(store, catalog):
    a = store.add_node(NodeKind.REPORT)
    edge = store.add_edge(a.id, a.id, has_arrow=False)

    sheets = export_tabular(store)
    assert sheets["Edges"].loc[0, "HasArrow"] == "NO"
    assert import_tabular(sheets, catalog).get_edge(edge.id).has_arrow is False


def test_missing_cells_decode_to_neutral_defaults(catalog):
    sheets = {
        "Nodes": pd.DataFrame([
            {"ID": "t1", "Label": "Bare table", "Type": "TABLE"},
            {"ID": "n1", "Label": "Bare note", "Type": "LOGIC_NOTE", "X": None},
            {"ID": "r1", "Type": "REPORT", "X": "not a number", "Y": 5},
        ]),
        "Edges": pd.DataFrame([{"ID": "e1", "Source": "t1", "Target": "n1"}]),
    }

    store = import_tabular(sheets, catalog)

    table = store.get_node("t1")
    assert table.position == (0, 0)
    assert table.columns == []
    assert table.category_id is None
    note = store.get_node("n1")
    assert note.bullet_points == []
    assert note.description == ""
    report = store.get_node("r1")
    assert isinstance(report, ReportNode)
    assert report.label == ""
    assert report.position == (0, 5)
    edge = store.get_edge("e1")
    assert edge.has_arrow is False
    assert edge.label == ""
    assert edge.type_id is None


def test_unknown_kind_imports_as_table(catalog):
    sheets = {
        "Nodes": pd.DataFrame([{"ID": "x1", "Label": "Mystery", "Type": "SPREADSHEET", "Columns": "A|B"}]),
        "Edges": pd.DataFrame(columns=EDGE_COLUMNS),
    }
    node = import_tabular(sheets, catalog).get_node("x1")
    assert isinstance(node, TableNode)
    assert [c.name for c in node.columns] == ["A", "B"]


def test_blank_ids_are_generated(catalog):
    sheets = {
        "Nodes": pd.DataFrame([{"ID": "", "Label": "No id", "Type": "REPORT"}]),
        "Edges": pd.DataFrame(columns=EDGE_COLUMNS),
    }
    [node] = import_tabular(sheets, catalog).nodes
    assert node.id.startswith("n")


@pytest.mark.parametrize("present, missing", [
    (["Nodes"], ["Edges"]),
    (["Edges"], ["Nodes"]),
    ([], ["Nodes", "Edges"]),
])
def test_missing_sheet_raises(present, missing, catalog):
    sheets = {name: pd.DataFrame() for name in present}
    with pytest.raises(MalformedSheet) as excinfo:
        import_tabular(sheets, catalog)
    assert excinfo.value.missing == missing


def test_dangling_edge_raises(catalog):
    sheets = {
        "Nodes": pd.DataFrame([{"ID": "t1", "Type": "TABLE"}]),
        "Edges": pd.DataFrame([{"ID": "e1", "Source": "t1", "Target": "gone", "HasArrow": "YES"}]),
    }
    with pytest.raises(InvalidReference):
        import_tabular(sheets, catalog)


def test_catalog_sheets_round_trip(catalog):
    catalog.add_entry(CatalogCollection.TAGS, Tag(id="tag-pii", name="PII", color="#ef4444"))
    restored = import_catalog_sheets(export_catalog_sheets(catalog), default_catalog())

    assert [t.id for t in restored.entries(CatalogCollection.TAGS)] == ["tag-pii"]
    assert restored.connection_types["conn-ref"].dash_style == "dashed"
    assert restored.table_categories["cat-std"].is_default is True


def test_catalog_sheets_keep_missing_collections_and_skip_bad_rows():
    current = default_catalog()
    sheets = {
        "ConnectionTypes": pd.DataFrame([
            {"id": "conn-bad", "name": "Bad", "width": 0},
            {"id": "conn-new", "name": "New", "width": 4, "label_position": "target"},
        ]),
    }

    catalog = import_catalog_sheets(sheets, current)

    assert list(catalog.connection_types) == ["conn-new"]
    assert catalog.connection_types["conn-new"].width == 4
    assert list(catalog.table_categories) == list(current.table_categories)
    assert catalog.table_categories["cat-std"] is not current.table_categories["cat-std"]


def test_catalog_cells_follow_entry_field_types():
    sheets = {
        "Tags": pd.DataFrame([
            {"id": "tag-true", "name": "True"},
            {"id": 7, "name": 2024},
        ]),
        "TableCategories": pd.DataFrame([
            {"id": "cat-x", "name": "false", "is_default": "TRUE"},
        ]),
    }

    catalog = import_catalog_sheets(sheets, default_catalog())

    assert [(t.id, t.name) for t in catalog.entries(CatalogCollection.TAGS)] == [
        ("tag-true", "True"), ("7", "2024"),
    ]
    assert catalog.table_categories["cat-x"].name == "false"
    assert catalog.table_categories["cat-x"].is_default is True


def test_workbook_file_round_trip(tmp_path, sample_store, catalog):
    catalog.add_entry(CatalogCollection.TAGS, Tag(id="tag-pii", name="PII"))
    sample_store.update_node(_by_label(sample_store, "Orders").id, tags=["tag-pii"])
    path = tmp_path / "out" / "model.xlsx"

    write_workbook({**export_tabular(sample_store), **export_catalog_sheets(catalog)}, path)
    sheets = read_workbook(path)
    restored_catalog = import_catalog_sheets(sheets, default_catalog())
    restored = import_tabular(sheets, restored_catalog)

    assert {n.label for n in restored.nodes} == {n.label for n in sample_store.nodes}
    assert _by_label(restored, "Orders").tags == ["tag-pii"]
    assert [c.name for c in _by_label(restored, "Orders").columns] == ["ID", "Name"]
    assert _by_label(restored, "Orders").position == (100, 80)
    assert restored.edges[0].label == "feeds"
    assert restored_catalog.tags["tag-pii"].name == "PII"
    assert restored_catalog.connection_types["conn-crit"].width == 3
    assert restored_catalog.logic_categories["log-std"].is_default is True


def test_read_missing_workbook(tmp_path):
    with pytest.raises(FileNotFoundError):
        read_workbook(tmp_path / "nope.xlsx")


def test_workbook_filename():
    when = datetime(2024, 3, 5, 9, 15)
    assert workbook_filename("Acme Corp", "jane", when) == "BlueprintX_Acme_Corp_jane_24-03-05_0915.xlsx"
    assert workbook_filename("", "", when) == "BlueprintX_Org_User_24-03-05_0915.xlsx"


def test_import_returns_fresh_store(sample_store, catalog):
    restored = import_tabular(export_tabular(sample_store), catalog)
    assert isinstance(restored, GraphStore)
    assert restored is not sample_store
    assert isinstance(_by_label(restored, "Dedupe orders"), LogicNoteNode)
