"""
Core data models for blueprints.

These models define the canonical schema for a blueprint:
- Nodes are a tagged variant on `kind` (TABLE, LOGIC_NOTE, REPORT), so a
  report can never carry columns and a table can never carry bullets
- Edges connect two nodes (source/target naming, as in D3/Cytoscape)
- Catalog entries classify nodes and edges and are referenced by id only

Models never hold callbacks or UI state; everything here serializes as-is.
"""

import uuid
from enum import Enum
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator


class NodeKind(str, Enum):
    """Card kinds that can be placed on the canvas."""
    TABLE = "TABLE"
    LOGIC_NOTE = "LOGIC_NOTE"
    REPORT = "REPORT"


class DashStyle(str, Enum):
    """Line styles for connection types."""
    SOLID = "solid"
    DASHED = "dashed"
    DOTTED = "dotted"


class LabelPosition(str, Enum):
    """Where an edge label sits along its connector."""
    CENTER = "center"
    SOURCE = "source"
    TARGET = "target"


class TagPosition(str, Enum):
    """Side of the card a tag badge is drawn on."""
    LEFT = "left"
    RIGHT = "right"
    TOP = "top"
    BOTTOM = "bottom"


class PortSide(str, Enum):
    """Cardinal side of a node an edge endpoint attaches to."""
    TOP = "top"
    BOTTOM = "bottom"
    LEFT = "left"
    RIGHT = "right"


def generate_node_id() -> str:
    """Generate a unique node ID."""
    return f"n{uuid.uuid4().hex[:8]}"


def generate_edge_id() -> str:
    """Generate a unique edge ID."""
    return f"e{uuid.uuid4().hex[:8]}"


def generate_column_id() -> str:
    """Generate a unique column ID."""
    return f"c{uuid.uuid4().hex[:8]}"


def _unique_in_order(values: list[str]) -> list[str]:
    seen: set[str] = set()
    result = []
    for value in values:
        if value not in seen:
            seen.add(value)
            result.append(value)
    return result


# --- Graph entities ---

class Column(BaseModel):
    """A single field of a table card."""
    model_config = ConfigDict(validate_assignment=True)

    id: str = Field(default_factory=generate_column_id)
    name: str = "New Field"
    type_id: Optional[str] = None  # FieldType reference
    is_key: bool = False


class NodeBase(BaseModel):
    """Fields shared by every node kind."""
    model_config = ConfigDict(validate_assignment=True)

    id: str = Field(default_factory=generate_node_id)
    label: str = "New Node"
    x: float = 100
    y: float = 100
    tags: list[str] = Field(default_factory=list)  # Tag ids, ordered, no repeats

    @field_validator("tags")
    @classmethod
    def dedupe_tags(cls, value: list[str]) -> list[str]:
        return _unique_in_order(value)

    @property
    def position(self) -> tuple[float, float]:
        return (self.x, self.y)


class TableNode(NodeBase):
    """A table card: an ordered list of columns plus source metadata."""
    kind: Literal["TABLE"] = "TABLE"
    category_id: Optional[str] = None     # TableCategory reference
    columns: list[Column] = Field(default_factory=list)
    data_source_id: Optional[str] = None  # DataSource reference
    comment: str = ""


class LogicNoteNode(NodeBase):
    """A free-text logic note with ordered bullet points."""
    kind: Literal["LOGIC_NOTE"] = "LOGIC_NOTE"
    category_id: Optional[str] = None  # LogicCategory reference
    description: str = ""
    bullet_points: list[str] = Field(default_factory=list)


class ReportNode(NodeBase):
    """A report card. Carries no payload and has no category."""
    kind: Literal["REPORT"] = "REPORT"


Node = Annotated[Union[TableNode, LogicNoteNode, ReportNode], Field(discriminator="kind")]

NODE_ADAPTER: TypeAdapter[Node] = TypeAdapter(Node)

NODE_CLASSES: dict[NodeKind, type[NodeBase]] = {
    NodeKind.TABLE: TableNode,
    NodeKind.LOGIC_NOTE: LogicNoteNode,
    NodeKind.REPORT: ReportNode,
}


class Edge(BaseModel):
    """A connector between two nodes (self-loops and parallel edges allowed)."""
    model_config = ConfigDict(validate_assignment=True)

    id: str = Field(default_factory=generate_edge_id)
    source: str  # Source node ID
    target: str  # Target node ID
    type_id: Optional[str] = None  # ConnectionType reference
    label: str = ""
    has_arrow: bool = True


# --- Catalog entries ---

class CatalogEntry(BaseModel):
    model_config = ConfigDict(validate_assignment=True)

    id: str
    name: str


class Category(CatalogEntry):
    color: str = "#3b82f6"
    is_default: bool = False


class TableCategory(Category):
    pass


class LogicCategory(Category):
    color: str = "#9333ea"


class ConnectionType(CatalogEntry):
    color: str = "#94a3b8"
    width: int = Field(default=2, gt=0)  # stroke width in pixels
    dash_style: DashStyle = DashStyle.SOLID
    label_position: LabelPosition = LabelPosition.CENTER
    label_max_width: int = Field(default=150, gt=0)


class DataSource(CatalogEntry):
    pass


class FieldType(CatalogEntry):
    pass


class Tag(CatalogEntry):
    color: str = "#10b981"
    position: TagPosition = TagPosition.LEFT


# --- Geometry input ---

class Port(BaseModel):
    """An edge endpoint as placed by the renderer."""
    model_config = ConfigDict(frozen=True)

    x: float
    y: float
    side: PortSide


# --- API Request/Response Models ---

class CreateNodeRequest(BaseModel):
    """Request to create a new node."""
    kind: NodeKind = NodeKind.TABLE
    x: float = 100
    y: float = 100


class UpdateNodeRequest(BaseModel):
    """Request to update an existing node (partial update).

    Only fields present in the request body are applied; fields that do not
    exist on the node's kind are ignored by the store.
    """
    label: Optional[str] = None
    x: Optional[float] = None
    y: Optional[float] = None
    tags: Optional[list[str]] = None
    category_id: Optional[str] = None
    columns: Optional[list[Column]] = None
    data_source_id: Optional[str] = None
    comment: Optional[str] = None
    description: Optional[str] = None
    bullet_points: Optional[list[str]] = None


class CreateEdgeRequest(BaseModel):
    """Request to create a new edge."""
    source: str
    target: str
    type_id: Optional[str] = None
    label: str = ""
    has_arrow: bool = True


class UpdateEdgeRequest(BaseModel):
    """Request to update an existing edge (partial update)."""
    source: Optional[str] = None
    target: Optional[str] = None
    type_id: Optional[str] = None
    label: Optional[str] = None
    has_arrow: Optional[bool] = None


class LabelPlacementRequest(BaseModel):
    """Port geometry for one edge, as measured by the renderer."""
    source: Port
    target: Port
