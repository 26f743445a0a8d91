"""
Tabular codec - flatten a blueprint into workbook sheets and back.

Layout:
- "Nodes": one row per node (ID, Label, Type, CatID, X, Y, Columns, Desc,
  Bullets, Tags, Comment, DataSourceID)
- "Edges": one row per edge (ID, Source, Target, Label, TypeID, HasArrow)
- catalog sheets (TableCategories, LogicCategories, ConnectionTypes,
  DataSources, FieldTypes, Tags), one row per entry

Multi-valued cells (column names, bullets, tag ids) are joined with "|".
Column metadata beyond the name (type_id, is_key) is NOT carried: decoded
columns get sequential ids "0", "1", ... and no type/key information.

Decoding replaces, never merges, and tolerates missing cells by substituting
neutral defaults. Missing "Nodes"/"Edges" sheets raise MalformedSheet.
"""

import logging
import math
from datetime import datetime
from pathlib import Path
from typing import Any, Mapping, Optional

import pandas as pd
from pydantic import ValidationError

from .catalog import ENTRY_CLASSES, CatalogCollection, EntityCatalog
from .errors import MalformedSheet
from .graph_store import GraphStore
from .models import (
    CatalogEntry,
    Column,
    Edge,
    LogicNoteNode,
    NodeBase,
    NodeKind,
    ReportNode,
    TableNode,
)

logger = logging.getLogger(__name__)

NODES_SHEET = "Nodes"
EDGES_SHEET = "Edges"
REQUIRED_SHEETS = (NODES_SHEET, EDGES_SHEET)

NODE_COLUMNS = ["ID", "Label", "Type", "CatID", "X", "Y", "Columns", "Desc", "Bullets",
                "Tags", "Comment", "DataSourceID"]
EDGE_COLUMNS = ["ID", "Source", "Target", "Label", "TypeID", "HasArrow"]

CATALOG_SHEETS: dict[CatalogCollection, str] = {
    CatalogCollection.TABLE_CATEGORIES: "TableCategories",
    CatalogCollection.LOGIC_CATEGORIES: "LogicCategories",
    CatalogCollection.CONNECTION_TYPES: "ConnectionTypes",
    CatalogCollection.DATA_SOURCES: "DataSources",
    CatalogCollection.FIELD_TYPES: "FieldTypes",
    CatalogCollection.TAGS: "Tags",
}

DELIMITER = "|"
ARROW_YES = "YES"
ARROW_NO = "NO"

Sheets = Mapping[str, pd.DataFrame]


# --- Cell helpers ---

def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    return isinstance(value, str) and value == ""


def _cell_text(value: Any) -> str:
    """A cell as text; blanks become "" and whole floats lose their ".0"."""
    if _is_blank(value):
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _cell_number(value: Any) -> float:
    """A cell as a number; blanks and unparseable text become 0."""
    if _is_blank(value):
        return 0.0
    try:
        number = float(value)
    except (TypeError, ValueError):
        logger.warning("Non-numeric position value %r, using 0", value)
        return 0.0
    return 0.0 if math.isnan(number) else number


def _split(value: Any) -> list[str]:
    text = _cell_text(value)
    return text.split(DELIMITER) if text else []


def _join(values: list[str]) -> str:
    return DELIMITER.join(values)


def round_position(value: float) -> int:
    """Round half up, so 10.5 -> 11 and -10.5 -> -10."""
    return int(math.floor(value + 0.5))


# --- Encoding ---

def encode_node(node: NodeBase) -> dict[str, Any]:
    """Flatten one node into a Nodes row."""
    return {
        "ID": node.id,
        "Label": node.label,
        "Type": NodeKind(node.kind).value,
        "CatID": getattr(node, "category_id", None) or "",
        "X": round_position(node.x),
        "Y": round_position(node.y),
        "Columns": _join([c.name for c in node.columns]) if isinstance(node, TableNode) else "",
        "Desc": getattr(node, "description", ""),
        "Bullets": _join(getattr(node, "bullet_points", [])),
        "Tags": _join(node.tags),
        "Comment": getattr(node, "comment", ""),
        "DataSourceID": getattr(node, "data_source_id", None) or "",
    }


def encode_edge(edge: Edge) -> dict[str, Any]:
    """Flatten one edge into an Edges row."""
    return {
        "ID": edge.id,
        "Source": edge.source,
        "Target": edge.target,
        "Label": edge.label,
        "TypeID": edge.type_id or "",
        "HasArrow": ARROW_YES if edge.has_arrow else ARROW_NO,
    }


def export_tabular(store: GraphStore) -> dict[str, pd.DataFrame]:
    """Flatten the graph into the "Nodes" and "Edges" sheets."""
    nodes_df = pd.DataFrame([encode_node(n) for n in store.nodes], columns=NODE_COLUMNS)
    edges_df = pd.DataFrame([encode_edge(e) for e in store.edges], columns=EDGE_COLUMNS)
    logger.info("Encoded %d node(s) and %d edge(s)", len(nodes_df), len(edges_df))
    return {NODES_SHEET: nodes_df, EDGES_SHEET: edges_df}


# --- Decoding ---

def _parse_kind(value: Any, row_id: str) -> NodeKind:
    text = _cell_text(value).strip().upper()
    try:
        return NodeKind(text)
    except ValueError:
        logger.warning("Node %s has unknown type %r, importing as TABLE", row_id, text)
        return NodeKind.TABLE


def decode_node(row: Mapping[str, Any]) -> NodeBase:
    """Rebuild a node from a Nodes row, substituting defaults for blanks."""
    node_id = _cell_text(row.get("ID"))
    kind = _parse_kind(row.get("Type"), node_id)
    common: dict[str, Any] = {
        "label": _cell_text(row.get("Label")),
        "x": _cell_number(row.get("X")),
        "y": _cell_number(row.get("Y")),
        "tags": _split(row.get("Tags")),
    }
    if node_id:
        common["id"] = node_id
    category_id = _cell_text(row.get("CatID")) or None

    if kind == NodeKind.TABLE:
        return TableNode(
            **common,
            category_id=category_id,
            columns=[Column(id=str(i), name=name) for i, name in enumerate(_split(row.get("Columns")))],
            comment=_cell_text(row.get("Comment")),
            data_source_id=_cell_text(row.get("DataSourceID")) or None,
        )
    if kind == NodeKind.LOGIC_NOTE:
        return LogicNoteNode(
            **common,
            category_id=category_id,
            description=_cell_text(row.get("Desc")),
            bullet_points=_split(row.get("Bullets")),
        )
    return ReportNode(**common)


def decode_edge(row: Mapping[str, Any]) -> Edge:
    """Rebuild an edge from an Edges row."""
    fields: dict[str, Any] = {
        "source": _cell_text(row.get("Source")),
        "target": _cell_text(row.get("Target")),
        "label": _cell_text(row.get("Label")),
        "type_id": _cell_text(row.get("TypeID")) or None,
        "has_arrow": _cell_text(row.get("HasArrow")).strip().upper() == ARROW_YES,
    }
    edge_id = _cell_text(row.get("ID"))
    if edge_id:
        fields["id"] = edge_id
    return Edge(**fields)


def _records(df: pd.DataFrame) -> list[dict[str, Any]]:
    return df.to_dict("records")


def require_sheets(sheets: Sheets, names: tuple[str, ...] = REQUIRED_SHEETS):
    missing = [name for name in names if name not in sheets]
    if missing:
        raise MalformedSheet(missing)


def import_tabular(sheets: Sheets, catalog: EntityCatalog) -> GraphStore:
    """
    Rebuild a graph from the "Nodes" and "Edges" sheets.

    A new store is returned; the caller swaps it in, so a failure here never
    touches existing state.

    Raises:
        MalformedSheet: a required sheet is absent
        InvalidReference: an edge names a node that is not in the sheet
    """
    require_sheets(sheets)

    nodes = [decode_node(row) for row in _records(sheets[NODES_SHEET])]
    edges = [decode_edge(row) for row in _records(sheets[EDGES_SHEET])]

    store = GraphStore(catalog)
    store.replace_contents(nodes, edges)
    logger.info("Decoded %d node(s) and %d edge(s)", len(nodes), len(edges))
    return store


# --- Catalog sheets ---

def export_catalog_sheets(catalog: EntityCatalog) -> dict[str, pd.DataFrame]:
    """One sheet per catalog collection, one row per entry."""
    sheets = {}
    for collection, sheet_name in CATALOG_SHEETS.items():
        columns = list(ENTRY_CLASSES[collection].model_fields)
        rows = [entry.model_dump(mode="json") for entry in catalog.entries(collection)]
        sheets[sheet_name] = pd.DataFrame(rows, columns=columns)
    return sheets


def _decode_entry_row(row: Mapping[str, Any], entry_cls: type[CatalogEntry]) -> dict[str, Any]:
    """Coerce a catalog row to the types its entry model declares."""
    fields = {}
    for key, value in row.items():
        if _is_blank(value):
            continue
        if hasattr(value, "item") and not isinstance(value, str):
            value = value.item()  # numpy scalar -> python
        field = entry_cls.model_fields.get(str(key))
        annotation = field.annotation if field is not None else None
        if annotation is str:
            value = _cell_text(value)
        elif annotation is bool and isinstance(value, str):
            if value.strip().lower() in ("true", "false"):
                value = value.strip().lower() == "true"
        elif isinstance(value, float) and value.is_integer():
            value = int(value)
        fields[str(key)] = value
    return fields


def import_catalog_sheets(sheets: Sheets, current: EntityCatalog) -> EntityCatalog:
    """
    Rebuild a catalog from its sheets.

    Collections whose sheet is absent are carried over from `current`. Rows
    that fail validation are skipped with a warning.
    """
    catalog = EntityCatalog()
    for collection, sheet_name in CATALOG_SHEETS.items():
        if sheet_name not in sheets:
            for entry in current.entries(collection):
                catalog.add_entry(collection, entry.model_copy())
            continue

        entry_cls = ENTRY_CLASSES[collection]
        for row in _records(sheets[sheet_name]):
            fields = _decode_entry_row(row, entry_cls)
            try:
                catalog.add_entry(collection, entry_cls(**fields))
            except (ValidationError, ValueError) as exc:
                logger.warning("Skipping %s row %r: %s", sheet_name, fields.get("id"), exc)
    return catalog


# --- Workbook files ---

def write_workbook(sheets: Mapping[str, pd.DataFrame], path: str | Path) -> Path:
    """Write sheets to an .xlsx file, in the given order."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with pd.ExcelWriter(path, engine="openpyxl") as writer:
        for name, df in sheets.items():
            df.to_excel(writer, sheet_name=name, index=False)
    logger.info("Wrote workbook %s (%s)", path, ", ".join(sheets))
    return path


def read_workbook(path: str | Path) -> dict[str, pd.DataFrame]:
    """Read every sheet of an .xlsx file; all cells come back as text."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Workbook not found: {path}")
    return pd.read_excel(path, sheet_name=None, dtype=str, keep_default_na=False, engine="openpyxl")


def workbook_filename(organization: str, user: str, when: Optional[datetime] = None) -> str:
    """Default export name, e.g. BlueprintX_Acme_Corp_jane_24-03-05_0915.xlsx."""
    when = when or datetime.now()
    org = "_".join((organization or "Org").split())
    user = "_".join((user or "User").split())
    return f"BlueprintX_{org}_{user}_{when:%y-%m-%d_%H%M}.xlsx"
