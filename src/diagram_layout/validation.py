"""
Input validation utilities for the layout pipeline.

Provides centralized validation functions for the graph payload, canvas
size, and tuning parameters. Raises descriptive exceptions on invalid input;
the orchestrator turns them into ``success=False`` results.
"""

from __future__ import annotations

from typing import Any, Sequence

from .types import DiagramType, EdgeSpec, NodeSpec


class ValidationError(ValueError):
    """Base exception for layout validation errors."""

    pass


class InvalidCanvasSizeError(ValidationError):
    """Raised when canvas dimensions are invalid."""

    pass


class InvalidNodeError(ValidationError):
    """Raised when the node list is empty or a node is malformed."""

    pass


class InvalidEdgeError(ValidationError):
    """Raised when an edge is malformed."""

    pass


class UnknownNodeError(InvalidEdgeError):
    """Raised when an edge references a node id that does not exist."""

    pass


class LayoutError(RuntimeError):
    """Base exception for failures inside a layout algorithm."""

    pass


class RankingError(LayoutError):
    """Raised when the layered layout cannot rank the graph."""

    pass


def validate_canvas_size(size: Sequence[float]) -> tuple[float, float]:
    """
    Validate canvas size dimensions.

    Args:
        size: [width, height] sequence

    Returns:
        Validated (width, height) tuple

    Raises:
        InvalidCanvasSizeError: If dimensions are invalid
    """
    if len(size) < 2:
        raise InvalidCanvasSizeError(
            f"Canvas size must have 2 elements [width, height], got {len(size)}"
        )

    width, height = float(size[0]), float(size[1])

    if width <= 0:
        raise InvalidCanvasSizeError(f"Canvas width must be positive, got {width}")
    if height <= 0:
        raise InvalidCanvasSizeError(f"Canvas height must be positive, got {height}")

    return width, height


def validate_non_negative(name: str, value: float) -> float:
    """
    Validate that a spacing or margin value is not negative.

    Raises:
        ValidationError: If value < 0
    """
    value = float(value)
    if value < 0:
        raise ValidationError(f"{name} must be >= 0, got {value}")
    return value


def validate_positive(name: str, value: float) -> float:
    """
    Validate that a size value is strictly positive.

    Raises:
        ValidationError: If value <= 0
    """
    value = float(value)
    if value <= 0:
        raise ValidationError(f"{name} must be positive, got {value}")
    return value


def validate_iterations(iterations: int) -> int:
    """
    Validate iteration count is positive.

    Args:
        iterations: Number of iterations

    Returns:
        Validated iteration count

    Raises:
        ValidationError: If iterations < 1
    """
    if iterations < 1:
        raise ValidationError(f"iterations must be >= 1, got {iterations}")
    return iterations


def validate_diagram_type(value: Any) -> DiagramType:
    """
    Coerce a diagram type name into a DiagramType.

    Raises:
        ValidationError: If the name is not one of the supported archetypes
    """
    if isinstance(value, DiagramType):
        return value
    try:
        return DiagramType(str(value).lower())
    except ValueError:
        valid = ", ".join(t.value for t in DiagramType)
        raise ValidationError(
            f"Unsupported diagram type {value!r}; expected one of: {valid}"
        ) from None


def validate_nodes(nodes: Sequence[NodeSpec], strict: bool = True) -> list[tuple[int, str]]:
    """
    Validate node ids and metadata.

    Args:
        nodes: Node specs
        strict: If True, raises on invalid. If False, returns list of issues.

    Returns:
        List of (node_index, issue_description) tuples

    Raises:
        InvalidNodeError: If strict=True and invalid nodes found
    """
    issues: list[tuple[int, str]] = []

    if not nodes:
        issues.append((-1, "Node list is empty"))

    seen: set[str] = set()
    for i, node in enumerate(nodes):
        if not node.id:
            issues.append((i, f"Node {i}: id is missing"))
        elif node.id in seen:
            issues.append((i, f"Node {i}: duplicate id {node.id!r}"))
        seen.add(node.id)

        importance = node.metadata.get("importance")
        if importance is not None:
            try:
                value = float(importance)
            except (TypeError, ValueError):
                issues.append((i, f"Node {i}: importance {importance!r} is not a number"))
            else:
                if not 0.0 <= value <= 1.0:
                    issues.append((i, f"Node {i}: importance {value} outside [0, 1]"))

    if strict and issues:
        msg = "Invalid nodes:\n" + "\n".join(issue[1] for issue in issues)
        raise InvalidNodeError(msg)

    return issues


def validate_edges(
    edges: Sequence[EdgeSpec],
    node_ids: set[str],
    allow_self_loops: bool = True,
    strict: bool = True,
) -> list[tuple[int, str]]:
    """
    Validate that all edge endpoints reference existing node ids.

    Args:
        edges: Edge specs
        node_ids: Ids of the nodes in the graph
        allow_self_loops: If False, an edge from a node to itself is an issue
        strict: If True, raises on invalid. If False, returns list of issues.

    Returns:
        List of (edge_index, issue_description) tuples

    Raises:
        UnknownNodeError: If strict=True and an edge references an unknown node
        InvalidEdgeError: If strict=True and another edge issue was found
    """
    issues: list[tuple[int, str]] = []
    unknown = False

    for i, edge in enumerate(edges):
        if edge.source not in node_ids:
            unknown = True
            issues.append((i, f"Edge {i}: unknown node {edge.source!r} in 'from'"))
        if edge.target not in node_ids:
            unknown = True
            issues.append((i, f"Edge {i}: unknown node {edge.target!r} in 'to'"))
        if not allow_self_loops and edge.is_self_loop:
            issues.append((i, f"Edge {i}: self-loop on {edge.source!r} is not allowed"))

    if strict and issues:
        msg = "Invalid edges:\n" + "\n".join(issue[1] for issue in issues)
        if unknown:
            raise UnknownNodeError(msg)
        raise InvalidEdgeError(msg)

    return issues


def validate_graph(
    nodes: Sequence[NodeSpec],
    edges: Sequence[EdgeSpec],
    allow_self_loops: bool = True,
) -> None:
    """
    Validate a whole graph payload, nodes first.

    Raises:
        InvalidNodeError: If the node list is empty or malformed
        UnknownNodeError: If an edge references an unknown node id
        InvalidEdgeError: If an edge is otherwise malformed
    """
    validate_nodes(nodes, strict=True)
    validate_edges(edges, {node.id for node in nodes}, allow_self_loops, strict=True)


__all__ = [
    "ValidationError",
    "InvalidCanvasSizeError",
    "InvalidNodeError",
    "InvalidEdgeError",
    "UnknownNodeError",
    "LayoutError",
    "RankingError",
    "validate_canvas_size",
    "validate_non_negative",
    "validate_positive",
    "validate_iterations",
    "validate_diagram_type",
    "validate_nodes",
    "validate_edges",
    "validate_graph",
]
