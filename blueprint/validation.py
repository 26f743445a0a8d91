"""
Blueprint validation - Check a blueprint for structural issues.

Most of what is reported here is NOT an error in the core (dangling catalog
references degrade to fallback styles, self-loops and parallel edges are
allowed); the report exists so a user can tidy a model up.
"""

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

from .catalog import CATEGORY_FAMILIES, CatalogCollection
from .models import NodeKind, TableNode

if TYPE_CHECKING:
    from .catalog import EntityCatalog
    from .graph_store import GraphStore


class IssueSeverity(str, Enum):
    """Severity levels for validation issues."""
    ERROR = "error"      # Invalid state, must be fixed
    WARNING = "warning"  # Potential problem, should review
    INFO = "info"        # Informational, may be intentional


@dataclass
class ValidationIssue:
    """A single validation issue found in a blueprint."""
    severity: IssueSeverity
    message: str
    node_id: str | None = None
    edge_id: str | None = None

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        result = {
            "type": self.severity.value,
            "message": self.message
        }
        if self.node_id:
            result["node_id"] = self.node_id
        if self.edge_id:
            result["edge_id"] = self.edge_id
        return result


def _is_default_label(label: str) -> bool:
    text = label.strip()
    return not text or text in {f"New {kind.value.lower()}" for kind in NodeKind}


def validate_blueprint(store: "GraphStore", catalog: "EntityCatalog") -> list[ValidationIssue]:
    """
    Validate a blueprint and return a list of issues.

    Checks for:
    - Empty blueprint - INFO
    - Orphan nodes (no connections) - WARNING
    - Default or empty labels - WARNING
    - Tables without columns - WARNING
    - Dangling catalog references (category, data source, field type,
      tag, connection type) - WARNING
    - Invalid edge references (source/target doesn't exist) - ERROR
    - Self-referencing edges - INFO
    - Parallel edges (same source->target) - INFO
    - More than one default category in a family - WARNING

    Args:
        store: The graph to validate
        catalog: The catalog its references should resolve against

    Returns:
        List of ValidationIssue objects
    """
    issues: list[ValidationIssue] = []

    nodes = store.nodes
    edges = store.edges
    node_ids = {n.id for n in nodes}

    for kind, family in CATEGORY_FAMILIES.items():
        defaults = [c.id for c in catalog.entries(family) if c.is_default]
        if len(defaults) > 1:
            issues.append(ValidationIssue(
                severity=IssueSeverity.WARNING,
                message=f"Multiple default {kind.value.lower()} categories: {', '.join(defaults)}"
            ))

    if not nodes:
        issues.append(ValidationIssue(
            severity=IssueSeverity.INFO,
            message="Blueprint has no nodes"
        ))
        return issues

    connected_nodes: set[str] = set()
    for edge in edges:
        connected_nodes.add(edge.source)
        connected_nodes.add(edge.target)

    orphans = [n for n in nodes if n.id not in connected_nodes]
    if orphans:
        orphan_labels = [f"{n.label} ({n.id})" for n in orphans]
        issues.append(ValidationIssue(
            severity=IssueSeverity.WARNING,
            message=f"Orphan nodes (no connections): {', '.join(orphan_labels)}"
        ))

    for node in nodes:
        if _is_default_label(node.label):
            issues.append(ValidationIssue(
                severity=IssueSeverity.WARNING,
                message="Node has default or empty label",
                node_id=node.id
            ))

        category_id = getattr(node, "category_id", None)
        if category_id and catalog.category_for(node) is None:
            issues.append(ValidationIssue(
                severity=IssueSeverity.WARNING,
                message=f"Unknown category '{category_id}' (shown unclassified)",
                node_id=node.id
            ))

        for tag_id in node.tags:
            if tag_id not in catalog.tags:
                issues.append(ValidationIssue(
                    severity=IssueSeverity.WARNING,
                    message=f"Unknown tag '{tag_id}'",
                    node_id=node.id
                ))

        if isinstance(node, TableNode):
            if not node.columns:
                issues.append(ValidationIssue(
                    severity=IssueSeverity.WARNING,
                    message="Table has no columns",
                    node_id=node.id
                ))
            if node.data_source_id and catalog.get(CatalogCollection.DATA_SOURCES, node.data_source_id) is None:
                issues.append(ValidationIssue(
                    severity=IssueSeverity.WARNING,
                    message=f"Unknown data source '{node.data_source_id}'",
                    node_id=node.id
                ))
            for column in node.columns:
                if column.type_id and catalog.get(CatalogCollection.FIELD_TYPES, column.type_id) is None:
                    issues.append(ValidationIssue(
                        severity=IssueSeverity.WARNING,
                        message=f"Column '{column.name}' has unknown field type '{column.type_id}'",
                        node_id=node.id
                    ))

    for edge in edges:
        if edge.source not in node_ids:
            issues.append(ValidationIssue(
                severity=IssueSeverity.ERROR,
                message=f"Edge references non-existent source node: {edge.source}",
                edge_id=edge.id
            ))
        if edge.target not in node_ids:
            issues.append(ValidationIssue(
                severity=IssueSeverity.ERROR,
                message=f"Edge references non-existent target node: {edge.target}",
                edge_id=edge.id
            ))
        if edge.type_id and catalog.get(CatalogCollection.CONNECTION_TYPES, edge.type_id) is None:
            issues.append(ValidationIssue(
                severity=IssueSeverity.WARNING,
                message=f"Unknown connection type '{edge.type_id}' (shown with default style)",
                edge_id=edge.id
            ))
        if edge.source == edge.target:
            issues.append(ValidationIssue(
                severity=IssueSeverity.INFO,
                message="Self-referencing edge (node points to itself)",
                edge_id=edge.id,
                node_id=edge.source
            ))

    seen_pairs: set[tuple[str, str]] = set()
    for edge in edges:
        pair = (edge.source, edge.target)
        if pair in seen_pairs:
            issues.append(ValidationIssue(
                severity=IssueSeverity.INFO,
                message=f"Parallel edge from {edge.source} to {edge.target}",
                edge_id=edge.id
            ))
        else:
            seen_pairs.add(pair)

    return issues


def validation_summary(issues: list[ValidationIssue]) -> dict:
    """
    Create a summary of validation issues.

    Args:
        issues: List of validation issues

    Returns:
        Dictionary with counts by severity
    """
    errors = len([i for i in issues if i.severity == IssueSeverity.ERROR])
    return {
        "total": len(issues),
        "errors": errors,
        "warnings": len([i for i in issues if i.severity == IssueSeverity.WARNING]),
        "info": len([i for i in issues if i.severity == IssueSeverity.INFO]),
        "valid": errors == 0
    }
