"""Tests for the studio manager: project files, workbook import/export and queries."""

import json

import pandas as pd
import pytest

from blueprint.catalog import CatalogCollection
from blueprint.errors import InvalidReference, MalformedSheet
from blueprint.models import Column, NodeKind, Port
from blueprint.tabular import export_tabular, write_workbook
from blueprint.visibility import FilterState
from blueprint_backend.studio_manager import StudioManager


@pytest.fixture
def manager(config):
    manager = StudioManager(config)
    orders = manager.add_node(NodeKind.TABLE, x=0, y=0)
    manager.update_node(orders.id, label="Orders", columns=[Column(name="ID"), Column(name="Total")])
    rules = manager.add_node(NodeKind.LOGIC_NOTE, x=300, y=0)
    manager.update_node(rules.id, label="Totals check", category_id="log-rule")
    manager.add_edge(orders.id, rules.id, label="checked by")
    return manager


def test_mutations_mark_dirty(config):
    manager = StudioManager(config)
    assert not manager.is_dirty
    assert manager.delete_node("missing") is False
    assert not manager.is_dirty

    manager.add_node(NodeKind.REPORT)
    assert manager.is_dirty


def test_save_requires_a_path(manager):
    with pytest.raises(ValueError):
        manager.save_project()


def test_save_and_open_project(manager, tmp_path):
    manager.add_catalog_entry(CatalogCollection.TAGS, id="tag-core", name="Core")
    path = manager.save_project(tmp_path / "nested" / "model.json")

    assert not manager.is_dirty
    data = json.loads(path.read_text())
    assert [n["kind"] for n in data["nodes"]] == ["TABLE", "LOGIC_NOTE"]
    assert data["catalog"]["tags"][0]["id"] == "tag-core"

    other = StudioManager(manager.config)
    other.open_project(path)
    assert [n.label for n in other.store.nodes] == ["Orders", "Totals check"]
    assert [c.name for c in other.store.nodes[0].columns] == ["ID", "Total"]
    assert other.catalog.tags["tag-core"].name == "Core"
    assert other.store.catalog is other.catalog
    assert other.file_path == path

    other.update_node(other.store.nodes[0].id, label="Sales orders")
    assert other.save_project() == path


def test_open_missing_project(manager, tmp_path):
    with pytest.raises(FileNotFoundError):
        manager.open_project(tmp_path / "missing.json")


def test_new_blueprint_keeps_or_resets_catalog(manager):
    manager.add_catalog_entry(CatalogCollection.TAGS, id="tag-core", name="Core")

    manager.new_blueprint("Fresh")
    assert manager.store.nodes == []
    assert manager.name == "Fresh"
    assert "tag-core" in manager.catalog.tags

    manager.new_blueprint(reset_catalog=True)
    assert "tag-core" not in manager.catalog.tags
    assert manager.store.catalog is manager.catalog


def test_export_to_directory_uses_default_name(manager, config):
    path = manager.export_workbook()

    assert path.parent == config.projects_dir
    assert path.name.startswith("BlueprintX_Acme_Corp_jane_")
    assert path.suffix == ".xlsx"
    assert path.exists()


def test_export_import_round_trip(manager, tmp_path):
    path = manager.export_workbook(tmp_path / "model.xlsx")

    other = StudioManager(manager.config)
    other.import_workbook(path)

    assert [n.label for n in other.store.nodes] == ["Orders", "Totals check"]
    assert other.store.edges[0].label == "checked by"
    assert other.store.nodes[1].category_id == "log-rule"
    assert other.is_dirty


def test_export_visible_only(manager, tmp_path):
    path = manager.export_workbook(tmp_path / "visible.xlsx", filters=FilterState(logic_categories={"log-std"}))

    other = StudioManager(manager.config)
    other.import_workbook(path)
    assert [n.label for n in other.store.nodes] == ["Orders"]
    assert other.store.edges == []


def test_export_with_open_filters_keeps_everything(manager, tmp_path):
    path = manager.export_workbook(tmp_path / "all.xlsx", filters=FilterState())

    other = StudioManager(manager.config)
    other.import_workbook(path)
    assert [n.label for n in other.store.nodes] == ["Orders", "Totals check"]
    assert len(other.store.edges) == 1


def test_failed_import_leaves_state_untouched(manager, tmp_path):
    before = manager.to_json_dict()

    nodes_only = tmp_path / "nodes_only.xlsx"
    write_workbook({"Nodes": export_tabular(manager.store)["Nodes"]}, nodes_only)
    with pytest.raises(MalformedSheet):
        manager.import_workbook(nodes_only)

    dangling = tmp_path / "dangling.xlsx"
    edges = pd.DataFrame([{"ID": "e1", "Source": "x", "Target": "y", "HasArrow": "YES"}])
    write_workbook({"Nodes": pd.DataFrame([{"ID": "x", "Type": "TABLE"}]), "Edges": edges}, dangling)
    with pytest.raises(InvalidReference):
        manager.import_workbook(dangling)

    after = manager.to_json_dict()
    assert after["nodes"] == before["nodes"]
    assert after["edges"] == before["edges"]
    assert after["catalog"] == before["catalog"]


def test_visibility_and_label_queries(manager):
    report = manager.visibility(FilterState(logic_categories={"log-std"}))
    assert len(report.visible_node_ids) == 1
    assert report.visible_edge_ids == []

    edge = manager.store.edges[0]
    placement = manager.label_placement(edge.id, Port(x=0, y=0, side="right"), Port(x=300, y=0, side="left"))
    assert (placement.x, placement.y) == (150, 0)
    assert manager.label_placement("missing", Port(x=0, y=0, side="right"), Port(x=1, y=1, side="left")) is None


def test_catalog_passthroughs(manager):
    entry = manager.add_catalog_entry(CatalogCollection.DATA_SOURCES, name="Warehouse")
    assert entry.id.startswith("src-")
    assert manager.update_catalog_entry(CatalogCollection.DATA_SOURCES, entry.id, name="DWH").name == "DWH"
    assert manager.remove_catalog_entry(CatalogCollection.DATA_SOURCES, entry.id) is True
    assert manager.remove_catalog_entry(CatalogCollection.DATA_SOURCES, entry.id) is False


def test_get_state(manager):
    state = manager.get_state()
    assert state["node_count"] == 2
    assert state["edge_count"] == 1
    assert state["file_path"] is None
    assert state["is_dirty"] is True
    assert state["blueprint"]["name"] == "Untitled Blueprint"
