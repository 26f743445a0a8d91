#!/usr/bin/env python3
"""Blueprint studio CLI - inspect, validate and convert blueprint files offline, or serve the API."""

import argparse
import json
import logging
import sys
from collections import Counter
from pathlib import Path

from blueprint.catalog import CatalogCollection, EntityCatalog, default_catalog
from blueprint.config import StudioConfig, configure_logging
from blueprint.graph_store import GraphStore
from blueprint.project import project_from_json_dict, project_to_json_dict
from blueprint.tabular import (
    export_catalog_sheets,
    export_tabular,
    import_catalog_sheets,
    import_tabular,
    read_workbook,
    write_workbook,
)
from blueprint.validation import validate_blueprint, validation_summary
from blueprint.visibility import FilterState, evaluate_visibility

logger = logging.getLogger(__name__)


def _json_out(data, code=0):
    print(json.dumps(data))
    sys.exit(code)


def _error(message):
    _json_out({"status": "error", "error": message}, code=1)


def _parse_id_list(value):
    """Parse a comma separated id list ("" or None -> empty set)."""
    if not value:
        return set()
    return {item.strip() for item in value.split(",") if item.strip()}


def _load(path):
    """Load a blueprint from an .xlsx workbook or a .json project."""
    path = Path(path)
    if path.suffix.lower() == ".xlsx":
        sheets = read_workbook(path)
        catalog = import_catalog_sheets(sheets, default_catalog())
        return path.stem, import_tabular(sheets, catalog), catalog

    if not path.exists():
        raise FileNotFoundError(f"Project file not found: {path}")
    with open(path) as f:
        data = json.load(f)
    name, store, catalog, _ = project_from_json_dict(data)
    return name, store, catalog


def _save(store: GraphStore, catalog: EntityCatalog, name: str, path):
    path = Path(path)
    if path.suffix.lower() == ".xlsx":
        return write_workbook({**export_tabular(store), **export_catalog_sheets(catalog)}, path)

    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w") as f:
        json.dump(project_to_json_dict(store, catalog, name), f, indent=2)
    return path


# ── Offline ──────────────────────────────────────────────────────────────────

def cmd_inspect(args):
    name, store, catalog = _load(args.file)
    kinds = Counter(n.kind for n in store.nodes)
    _json_out({
        "success": True,
        "name": name,
        "nodes": len(store.nodes),
        "edges": len(store.edges),
        "by_kind": dict(kinds),
        "columns": sum(len(table.columns) for table in store.tables()),
        "catalog": {c.value: len(catalog.entries(c)) for c in CatalogCollection},
    })


def cmd_validate(args):
    _, store, catalog = _load(args.file)
    issues = validate_blueprint(store, catalog)
    _json_out({
        "success": True,
        "issues": [issue.to_dict() for issue in issues],
        "summary": validation_summary(issues)
    })


def cmd_visibility(args):
    _, store, catalog = _load(args.file)
    filters = FilterState(
        table_categories=_parse_id_list(args.table_categories),
        logic_categories=_parse_id_list(args.logic_categories),
        tags=_parse_id_list(args.tags),
        connection_types=_parse_id_list(args.connection_types),
        search_query=args.search or "",
    )
    report = evaluate_visibility(store, filters, catalog)
    _json_out({"success": True, **report.to_dict()})


def cmd_convert(args):
    name, store, catalog = _load(args.input)
    path = _save(store, catalog, name, args.output)
    _json_out({"success": True, "file_path": str(path), "nodes": len(store.nodes), "edges": len(store.edges)})


# ── Service ──────────────────────────────────────────────────────────────────

def cmd_serve(args):
    from .main import run

    config = StudioConfig.from_env()
    if args.host:
        config.host = args.host
    if args.port:
        config.port = args.port
    run(config)


# ── Main ─────────────────────────────────────────────────────────────────────

def main(argv=None):
    parser = argparse.ArgumentParser(description="Blueprint studio CLI")
    parser.add_argument("--log-level", default=None)
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("inspect")
    p.add_argument("file")

    p = sub.add_parser("validate")
    p.add_argument("file")

    p = sub.add_parser("visibility")
    p.add_argument("file")
    p.add_argument("--table-categories", default=None)
    p.add_argument("--logic-categories", default=None)
    p.add_argument("--tags", default=None)
    p.add_argument("--connection-types", default=None)
    p.add_argument("--search", default=None)

    p = sub.add_parser("convert")
    p.add_argument("input")
    p.add_argument("output")

    p = sub.add_parser("serve")
    p.add_argument("--host", default=None)
    p.add_argument("--port", type=int, default=None)

    args = parser.parse_args(argv)
    if args.log_level:
        configure_logging(args.log_level)

    cmd_map = {
        "inspect": cmd_inspect,
        "validate": cmd_validate,
        "visibility": cmd_visibility,
        "convert": cmd_convert,
        "serve": cmd_serve,
    }
    try:
        cmd_map[args.command](args)
    except FileNotFoundError as e:
        _error(str(e))
    except ValueError as e:
        logger.debug("Command %s failed", args.command, exc_info=True)
        _error(str(e))


if __name__ == "__main__":
    main()
