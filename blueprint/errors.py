"""
Typed failures raised by the blueprint core.

All of them subclass ValueError so the API layer can keep treating
"bad input" uniformly and answer with a 400.
"""


class BlueprintError(ValueError):
    """Base class for structural violations rejected by the core."""


class InvalidReference(BlueprintError):
    """An edge names a node that does not exist."""

    def __init__(self, message: str, node_id: str | None = None, edge_id: str | None = None):
        super().__init__(message)
        self.node_id = node_id
        self.edge_id = edge_id


class MalformedSheet(BlueprintError):
    """An import container is missing one of the required sheets."""

    def __init__(self, missing: list[str]):
        super().__init__(f"Workbook is missing required sheet(s): {', '.join(missing)}")
        self.missing = missing


class DuplicateIdentifier(BlueprintError):
    """A catalog entry id is already taken within its collection."""
