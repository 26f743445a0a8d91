"""Shared fixtures for blueprint tests."""

import pytest

from blueprint.catalog import default_catalog
from blueprint.config import StudioConfig
from blueprint.graph_store import GraphStore
from blueprint.models import Column, NodeKind


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch, tmp_path):
    """Keep tests away from the real projects directory and user settings."""
    for name in ("BLUEPRINT_HOST", "BLUEPRINT_PORT", "BLUEPRINT_ORGANIZATION",
                 "BLUEPRINT_USER", "BLUEPRINT_LOG_LEVEL", "BLUEPRINT_CORS_ORIGINS"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("BLUEPRINT_PROJECTS_DIR", str(tmp_path / "projects"))
    yield


@pytest.fixture
def config(tmp_path):
    return StudioConfig(projects_dir=tmp_path / "projects", organization_name="Acme Corp", user_name="jane")


@pytest.fixture
def catalog():
    return default_catalog()


@pytest.fixture
def store(catalog):
    return GraphStore(catalog)


@pytest.fixture
def sample_store(store):
    """Table A (ID, Name) --feeds--> logic note B, plus an unconnected report."""
    table = store.add_node(NodeKind.TABLE, x=100, y=80)
    store.update_node(
        table.id,
        label="Orders",
        columns=[Column(name="ID", type_id="ft-number", is_key=True), Column(name="Name", type_id="ft-text")],
        data_source_id="src-erp",
        comment="Nightly extract",
    )
    note = store.add_node(NodeKind.LOGIC_NOTE, x=400, y=80)
    store.update_node(
        note.id,
        label="Dedupe orders",
        description="Remove repeated order lines",
        bullet_points=["group by ID", "keep latest"],
    )
    report = store.add_node(NodeKind.REPORT, x=700, y=80)
    store.update_node(report.id, label="Monthly revenue")
    store.add_edge(table.id, note.id, label="feeds")
    return store
