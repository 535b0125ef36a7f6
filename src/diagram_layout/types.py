"""
Common types for the diagram layout pipeline.

This module provides the fundamental types shared by every stage:
- NodeSpec / EdgeSpec: Immutable graph input from the content analyzer
- PositionedNode: A node with a box (top-left corner plus size)
- RoutedEdge: An edge with an ordered polyline
- WorkingSet: The node/edge snapshot threaded through the pipeline stages
- LayoutResult: The envelope handed to the rendering collaborator
- DiagramType, RankDirection, Side: Enumerations used by the stages
- EventType, Event, PipelineStage: Orchestrator lifecycle events
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Any, Callable, Mapping, Optional, TypedDict, Union


class DiagramType(str, Enum):
    """Declared diagram archetype."""

    FLOW = "flow"
    TREE = "tree"
    TIMELINE = "timeline"
    CYCLE = "cycle"
    MATRIX = "matrix"


class RankDirection(str, Enum):
    """Direction in which ranks advance in a layered drawing."""

    TB = "TB"  # top-to-bottom
    LR = "LR"  # left-to-right


class Side(Enum):
    """Side of a node box where an edge attaches."""

    NORTH = "north"
    SOUTH = "south"
    EAST = "east"
    WEST = "west"

    def is_horizontal(self) -> bool:
        """Check if this side is a horizontal edge of the box (top or bottom)."""
        return self in (Side.NORTH, Side.SOUTH)


class EventType(IntEnum):
    """
    Layout lifecycle events.

    - start: A layout invocation has begun
    - tick: A pipeline stage has finished
    - end: The invocation produced its result (successful or not)
    """

    start = 0
    tick = 1
    end = 2


class PipelineStage(str, Enum):
    """States of the orchestrator's state machine."""

    START = "start"
    BASE_PLACEMENT = "base_placement"
    FIRST_OVERLAP_PASS = "first_overlap_pass"
    AESTHETIC_OPTIMIZATION = "aesthetic_optimization"
    EDGE_ROUTING = "edge_routing"
    FINAL_OVERLAP_PASS = "final_overlap_pass"
    EVALUATE = "evaluate"
    DONE = "done"
    FAILED = "failed"


class Event(TypedDict, total=False):
    """Event payload passed to event listeners."""

    type: EventType
    stage: PipelineStage
    elapsed_ms: float
    node_count: int
    result: Optional[LayoutResult]


@dataclass(frozen=True)
class Point:
    """A 2D point."""

    x: float
    y: float

    def to_dict(self) -> dict[str, float]:
        return {"x": self.x, "y": self.y}


@dataclass(frozen=True)
class NodeSpec:
    """
    Node as supplied by the upstream analyzer.

    Attributes:
        id: Unique, stable identifier
        label: Display text (drives the box width)
        metadata: Free-form attributes; ``importance`` (0-1) widens spacing
    """

    id: str
    label: str = ""
    metadata: Mapping[str, Any] = field(default_factory=dict)

    @property
    def importance(self) -> Optional[float]:
        value = self.metadata.get("importance")
        return None if value is None else float(value)

    @classmethod
    def from_any(cls, data: NodeLike) -> NodeSpec:
        """Build a NodeSpec from a NodeSpec, a dict, or an object with attributes."""
        if isinstance(data, NodeSpec):
            return data
        if isinstance(data, dict):
            node_id = data.get("id")
            label = data.get("label")
            metadata = data.get("metadata") or {}
        else:
            node_id = getattr(data, "id", None)
            label = getattr(data, "label", None)
            metadata = getattr(data, "metadata", None) or {}
        return cls(
            id="" if node_id is None else str(node_id),
            label="" if label is None else str(label),
            metadata=dict(metadata),
        )


@dataclass(frozen=True)
class EdgeSpec:
    """
    Directed edge between two node ids.

    The payload keys are ``from``/``to``; since ``from`` is a keyword they
    are exposed here as ``source``/``target``.
    """

    source: str
    target: str
    label: str = ""

    @property
    def is_self_loop(self) -> bool:
        return self.source == self.target

    @classmethod
    def from_any(cls, data: EdgeLike) -> EdgeSpec:
        """Build an EdgeSpec from an EdgeSpec, a dict, or an object with attributes."""
        if isinstance(data, EdgeSpec):
            return data
        if isinstance(data, dict):
            source = data.get("from", data.get("source"))
            target = data.get("to", data.get("target"))
            label = data.get("label")
        else:
            source = getattr(data, "source", None)
            target = getattr(data, "target", None)
            label = getattr(data, "label", None)
        return cls(
            source="" if source is None else str(source),
            target="" if target is None else str(target),
            label="" if label is None else str(label),
        )


@dataclass
class PositionedNode:
    """
    A node placed on the canvas.

    Attributes:
        id: Node id (stable across all stages)
        label: Display text
        x: Left edge
        y: Top edge
        w: Box width
        h: Box height
        metadata: Attributes carried over from the NodeSpec
    """

    id: str
    label: str
    x: float
    y: float
    w: float
    h: float
    metadata: Mapping[str, Any] = field(default_factory=dict)

    @property
    def cx(self) -> float:
        """Center x coordinate."""
        return self.x + self.w / 2

    @property
    def cy(self) -> float:
        """Center y coordinate."""
        return self.y + self.h / 2

    @property
    def right(self) -> float:
        return self.x + self.w

    @property
    def bottom(self) -> float:
        return self.y + self.h

    @property
    def center(self) -> Point:
        return Point(self.cx, self.cy)

    @property
    def importance(self) -> float:
        value = self.metadata.get("importance")
        return 0.0 if value is None else float(value)

    def move_center_to(self, cx: float, cy: float) -> None:
        """Relocate the box so that its center lies at (cx, cy)."""
        self.x = cx - self.w / 2
        self.y = cy - self.h / 2

    def copy(self) -> PositionedNode:
        return PositionedNode(
            id=self.id,
            label=self.label,
            x=self.x,
            y=self.y,
            w=self.w,
            h=self.h,
            metadata=self.metadata,
        )

    @classmethod
    def from_spec(
        cls, spec: NodeSpec, w: float, h: float, x: float = 0.0, y: float = 0.0
    ) -> PositionedNode:
        return cls(id=spec.id, label=spec.label, x=x, y=y, w=w, h=h, metadata=spec.metadata)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "label": self.label,
            "x": self.x,
            "y": self.y,
            "w": self.w,
            "h": self.h,
        }
        if self.metadata:
            data["metadata"] = dict(self.metadata)
        return data

    def __repr__(self) -> str:
        return (
            f"PositionedNode(id={self.id!r}, x={self.x:.2f}, y={self.y:.2f}, "
            f"w={self.w:.2f}, h={self.h:.2f})"
        )


@dataclass
class RoutedEdge:
    """An edge with an ordered polyline (at least a start and an end point)."""

    source: str
    target: str
    label: str = ""
    points: list[Point] = field(default_factory=list)

    def copy(self) -> RoutedEdge:
        return RoutedEdge(self.source, self.target, self.label, list(self.points))

    def to_dict(self) -> dict[str, Any]:
        return {
            "from": self.source,
            "to": self.target,
            "label": self.label,
            "points": [p.to_dict() for p in self.points],
        }


@dataclass(frozen=True)
class Bounds:
    """Axis-aligned bounding box."""

    min_x: float = 0.0
    min_y: float = 0.0
    max_x: float = 0.0
    max_y: float = 0.0

    @property
    def width(self) -> float:
        return self.max_x - self.min_x

    @property
    def height(self) -> float:
        return self.max_y - self.min_y

    def to_dict(self) -> dict[str, float]:
        return {
            "minX": self.min_x,
            "minY": self.min_y,
            "maxX": self.max_x,
            "maxY": self.max_y,
            "width": self.width,
            "height": self.height,
        }


@dataclass
class WorkingSet:
    """
    Snapshot of nodes and edges passed between pipeline stages.

    Stages receive a working set and return a new one; ``copy()`` gives
    every stage private node/edge objects so snapshots are never aliased.
    """

    nodes: list[PositionedNode] = field(default_factory=list)
    edges: list[RoutedEdge] = field(default_factory=list)

    def copy(self) -> WorkingSet:
        return WorkingSet(
            nodes=[node.copy() for node in self.nodes],
            edges=[edge.copy() for edge in self.edges],
        )

    def index_of(self) -> dict[str, int]:
        """Map node id to position in ``nodes``."""
        return {node.id: i for i, node in enumerate(self.nodes)}

    def by_id(self) -> dict[str, PositionedNode]:
        return {node.id: node for node in self.nodes}


@dataclass
class LayoutResult:
    """
    Result envelope of one layout invocation.

    ``success=False`` always comes with an empty layout, zeroed bounds and
    a human-readable ``error``.
    """

    nodes: list[PositionedNode] = field(default_factory=list)
    edges: list[RoutedEdge] = field(default_factory=list)
    bounds: Bounds = field(default_factory=Bounds)
    processing_time_ms: float = 0.0
    success: bool = True
    confidence: float = 0.0
    error: Optional[str] = None
    metrics: dict[str, Any] = field(default_factory=dict)
    compliance: dict[str, bool] = field(default_factory=dict)

    @classmethod
    def failed(cls, error: str, processing_time_ms: float) -> LayoutResult:
        return cls(
            processing_time_ms=processing_time_ms,
            success=False,
            confidence=0.0,
            error=error,
        )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "nodes": [node.to_dict() for node in self.nodes],
            "edges": [edge.to_dict() for edge in self.edges],
            "bounds": self.bounds.to_dict(),
            "processingTimeMs": self.processing_time_ms,
            "success": self.success,
            "confidence": self.confidence,
            "metrics": dict(self.metrics),
            "compliance": dict(self.compliance),
        }
        if self.error is not None:
            data["error"] = self.error
        return data


# Type aliases for the Pythonic API
NodeLike = Union[NodeSpec, dict[str, Any], Any]
"""Input type for nodes: NodeSpec objects, payload dicts, or objects with id/label."""

EdgeLike = Union[EdgeSpec, dict[str, Any], Any]
"""Input type for edges: EdgeSpec objects, payload dicts ({"from", "to"}), or objects."""

EventCallback = Callable[[Optional[Event]], None]


__all__ = [
    "DiagramType",
    "RankDirection",
    "Side",
    "EventType",
    "Event",
    "EventCallback",
    "PipelineStage",
    "Point",
    "NodeSpec",
    "EdgeSpec",
    "PositionedNode",
    "RoutedEdge",
    "Bounds",
    "WorkingSet",
    "LayoutResult",
    "NodeLike",
    "EdgeLike",
]
