"""Tests for the MCP tool wrappers (HTTP calls are stubbed out)."""

import importlib.util
import json
from pathlib import Path

import pytest

SERVER_PATH = Path(__file__).resolve().parent.parent / "mcp-server" / "server.py"


@pytest.fixture
def server(monkeypatch):
    spec = importlib.util.spec_from_file_location("blueprint_mcp_server", SERVER_PATH)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)

    calls = []

    def fake_api_request(method, endpoint, **kwargs):
        calls.append((method, endpoint, kwargs))
        return {"success": True}

    monkeypatch.setattr(module, "api_request", fake_api_request)
    module.calls = calls
    return module


def test_api_base_follows_config():
    spec = importlib.util.spec_from_file_location("blueprint_mcp_server_cfg", SERVER_PATH)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    assert module.API_BASE == "http://127.0.0.1:8765/api"


def test_update_node_sends_only_given_fields(server):
    result = server.blueprint_update_node("n1", label="Orders", column_names=["ID", "Name"])

    assert json.loads(result) == {"success": True}
    assert server.calls == [(
        "PATCH", "/nodes/n1",
        {"json": {"label": "Orders", "columns": [{"name": "ID"}, {"name": "Name"}]}},
    )]


def test_visibility_sends_every_axis(server):
    server.blueprint_visibility(tags=["__HIDE_ALL__"])

    method, endpoint, kwargs = server.calls[0]
    assert (method, endpoint) == ("POST", "/visibility")
    assert kwargs["json"]["tags"] == ["__HIDE_ALL__"]
    assert kwargs["json"]["table_categories"] == []


def test_add_catalog_entry(server):
    server.blueprint_add_catalog_entry("tags", "PII", fields={"color": "#ef4444"})
    assert server.calls[0] == ("POST", "/catalog/tags", {"json": {"color": "#ef4444", "name": "PII"}})


def test_add_edge(server):
    server.blueprint_add_edge("a", "b", label="feeds")
    assert server.calls[0][2]["json"] == {
        "source": "a", "target": "b", "label": "feeds", "type_id": None, "has_arrow": True,
    }
