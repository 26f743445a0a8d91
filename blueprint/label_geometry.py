"""
Edge label geometry - where a link's label goes and how it is aligned.

Given the two endpoint ports of an edge (a point plus the side of the card it
leaves from) and the connection type's label policy, compute an anchor point
and a CSS-style transform so the label never sits on top of the stroke:

- center: the midpoint of the routed (smooth-step) connector
- source/target: a fixed clearance away from that endpoint, in the direction
  the port faces, aligned so the label grows away from the card

Everything here is a pure function of its inputs.
"""

import textwrap
from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional

from .models import Edge, LabelPosition, Port, PortSide

if TYPE_CHECKING:
    from .catalog import EntityCatalog


# Distance the connector travels straight out of a port before turning
ROUTE_OFFSET = 20.0

# Gap between an endpoint and a label anchored at that endpoint
LABEL_CLEARANCE = 12.0

# Rough glyph width used to turn a pixel width into a wrap column
AVERAGE_CHAR_WIDTH = 6.5

HANDLE_DIRECTIONS: dict[PortSide, tuple[int, int]] = {
    PortSide.LEFT: (-1, 0),
    PortSide.RIGHT: (1, 0),
    PortSide.TOP: (0, -1),
    PortSide.BOTTOM: (0, 1),
}

# side -> (translate_x %, translate_y %, text align)
SIDE_ALIGNMENT: dict[PortSide, tuple[float, float, str]] = {
    PortSide.RIGHT: (0.0, -50.0, "left"),
    PortSide.LEFT: (-100.0, -50.0, "right"),
    PortSide.TOP: (-50.0, -100.0, "center"),
    PortSide.BOTTOM: (-50.0, 0.0, "center"),
}

Point = tuple[float, float]


@dataclass(frozen=True)
class RoutedConnector:
    """An orthogonal connector path and the point its label centers on."""
    points: tuple[Point, ...]
    center: Point


@dataclass(frozen=True)
class LabelPlacement:
    """Anchor and alignment for one edge label."""
    x: float
    y: float
    translate_x: float  # percent of the label's own width
    translate_y: float  # percent of the label's own height
    text_align: str
    max_width: int
    position: LabelPosition

    @property
    def css_transform(self) -> str:
        return (f"translate({self.translate_x:g}%, {self.translate_y:g}%) "
                f"translate({self.x:g}px,{self.y:g}px)")

    def to_dict(self) -> dict:
        return {
            "x": self.x,
            "y": self.y,
            "translate_x": self.translate_x,
            "translate_y": self.translate_y,
            "text_align": self.text_align,
            "max_width": self.max_width,
            "position": self.position.value,
            "transform": self.css_transform,
        }


def _heading(source: Point, source_side: PortSide, target: Point) -> tuple[int, int]:
    """Main travel direction, decided along the axis the source port faces."""
    if source_side in (PortSide.LEFT, PortSide.RIGHT):
        return (1, 0) if source[0] < target[0] else (-1, 0)
    return (0, 1) if source[1] < target[1] else (0, -1)


def route_smooth_step(source: Port, target: Port, offset: float = ROUTE_OFFSET) -> RoutedConnector:
    """
    Route an orthogonal connector between two ports.

    The path leaves each port perpendicular to its side for `offset` pixels,
    then joins with axis-aligned segments. The label center is the middle of
    the split segment for facing ports, otherwise the middle of the longest
    leg.
    """
    s: Point = (source.x, source.y)
    t: Point = (target.x, target.y)
    sd = HANDLE_DIRECTIONS[PortSide(source.side)]
    td = HANDLE_DIRECTIONS[PortSide(target.side)]

    source_gapped: Point = (s[0] + sd[0] * offset, s[1] + sd[1] * offset)
    target_gapped: Point = (t[0] + td[0] * offset, t[1] + td[1] * offset)

    heading = _heading(source_gapped, PortSide(source.side), target_gapped)
    axis = 0 if heading[0] != 0 else 1
    current = heading[axis]

    mid_x = (s[0] + t[0]) / 2
    mid_y = (s[1] + t[1]) / 2
    source_shift = [0.0, 0.0]
    target_shift = [0.0, 0.0]

    if sd[axis] * td[axis] == -1:
        # Ports face each other along the travel axis: split in the middle
        center_x, center_y = mid_x, mid_y
        vertical_split = [(center_x, source_gapped[1]), (center_x, target_gapped[1])]
        horizontal_split = [(source_gapped[0], center_y), (target_gapped[0], center_y)]
        if sd[axis] == current:
            points = vertical_split if axis == 0 else horizontal_split
        else:
            points = horizontal_split if axis == 0 else vertical_split
        source_point, target_point = source_gapped, target_gapped
    else:
        source_target = [(source_gapped[0], target_gapped[1])]
        target_source = [(target_gapped[0], source_gapped[1])]
        if axis == 0:
            points = target_source if sd[0] == current else source_target
        else:
            points = source_target if sd[1] == current else target_source

        if source.side == target.side:
            # Same-facing ports closer than the offset would fold back on
            # themselves; pull the leading port's gap in.
            diff = abs(s[axis] - t[axis])
            if diff <= offset:
                gap = min(offset - 1, offset - diff)
                if sd[axis] == current:
                    source_shift[axis] = (-1 if source_gapped[axis] > s[axis] else 1) * gap
                else:
                    target_shift[axis] = (-1 if target_gapped[axis] > t[axis] else 1) * gap
        else:
            other = 1 - axis
            same_dir = sd[axis] == td[other]
            source_greater = source_gapped[other] > target_gapped[other]
            source_less = source_gapped[other] < target_gapped[other]
            flip = (
                (sd[axis] == 1 and ((not same_dir and source_greater) or (same_dir and source_less)))
                or (sd[axis] != 1 and ((not same_dir and source_less) or (same_dir and source_greater)))
            )
            if flip:
                points = source_target if axis == 0 else target_source

        source_point = (source_gapped[0] + source_shift[0], source_gapped[1] + source_shift[1])
        target_point = (target_gapped[0] + target_shift[0], target_gapped[1] + target_shift[1])

        corner = points[0]
        max_x_distance = max(abs(source_point[0] - corner[0]), abs(target_point[0] - corner[0]))
        max_y_distance = max(abs(source_point[1] - corner[1]), abs(target_point[1] - corner[1]))
        if max_x_distance >= max_y_distance:
            center_x = (source_point[0] + target_point[0]) / 2
            center_y = corner[1]
        else:
            center_x = corner[0]
            center_y = (source_point[1] + target_point[1]) / 2

    path = (s, source_point, *points, target_point, t)
    return RoutedConnector(points=tuple(path), center=(center_x, center_y))


def anchor_at_port(port: Port, clearance: float = LABEL_CLEARANCE) -> tuple[Point, tuple[float, float, str]]:
    """Offset a port outward along its side and return the matching alignment."""
    side = PortSide(port.side)
    dx, dy = HANDLE_DIRECTIONS[side]
    anchor = (port.x + dx * clearance, port.y + dy * clearance)
    return anchor, SIDE_ALIGNMENT[side]


def resolve_label_placement(
    source: Port,
    target: Port,
    label_position: LabelPosition = LabelPosition.CENTER,
    label_max_width: int = 150,
    clearance: float = LABEL_CLEARANCE,
) -> LabelPlacement:
    """
    Place an edge label.

    Args:
        source: Port the edge leaves from
        target: Port the edge arrives at
        label_position: center, source or target
        label_max_width: Width cap in pixels (text wraps beyond it)
        clearance: Gap between an endpoint and an endpoint-anchored label

    Returns:
        The LabelPlacement for the label
    """
    label_position = LabelPosition(label_position)

    if label_position == LabelPosition.CENTER:
        center = route_smooth_step(source, target).center
        return LabelPlacement(
            x=center[0], y=center[1],
            translate_x=-50.0, translate_y=-50.0,
            text_align="center",
            max_width=label_max_width,
            position=label_position,
        )

    port = source if label_position == LabelPosition.SOURCE else target
    (x, y), (translate_x, translate_y, text_align) = anchor_at_port(port, clearance)
    return LabelPlacement(
        x=x, y=y,
        translate_x=translate_x, translate_y=translate_y,
        text_align=text_align,
        max_width=label_max_width,
        position=label_position,
    )


def placement_for_edge(
    edge: Edge,
    source: Port,
    target: Port,
    catalog: "EntityCatalog",
) -> LabelPlacement:
    """Place an edge's label using its connection type (or the fallback type)."""
    connection_type = catalog.connection_type_for(edge)
    return resolve_label_placement(
        source,
        target,
        label_position=connection_type.label_position,
        label_max_width=connection_type.label_max_width,
    )


def wrap_label(text: str, max_width: int, char_width: Optional[float] = None) -> list[str]:
    """Break label text into lines no wider than max_width pixels."""
    if not text:
        return []
    char_width = char_width or AVERAGE_CHAR_WIDTH
    columns = max(1, int(max_width // char_width))
    return textwrap.wrap(text, width=columns, break_long_words=True) or [text]
