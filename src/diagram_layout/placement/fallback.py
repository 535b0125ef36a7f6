"""
Archetype fallback layouts.

Deterministic closed-form placements, one per archetype. They seed the
archetypes that are not naturally hierarchical and take over whenever the
layered pass cannot rank the graph. Every strategy produces valid boxes for
any ``n >= 1``.

- FlowFallback: single column, top to bottom
- TreeFallback: delegates to the flow column
- TimelineFallback: single row along the horizontal axis
- CycleFallback: ring of radius 0.3 * min(width, height)
- MatrixFallback: square grid with ceil(sqrt(n)) columns
- PackedLayout: rows packed to the drawable width, used to fit the canvas
"""

from __future__ import annotations

import math
from typing import Optional, Sequence

from ..base import PlacementStrategy
from ..config import LayoutConfig
from ..types import Bounds, DiagramType, EdgeSpec, PositionedNode

# Fraction of the smaller canvas side used as the cycle radius
RING_RADIUS_FRACTION = 0.3


def ring_radius(config: LayoutConfig) -> float:
    """Base radius of the cycle ring."""
    return RING_RADIUS_FRACTION * min(config.width, config.height)


def grid_shape(n: int) -> tuple[int, int]:
    """(columns, rows) of the square grid holding ``n`` cells."""
    if n <= 0:
        return 0, 0
    cols = math.ceil(math.sqrt(n))
    return cols, math.ceil(n / cols)


class FlowFallback(PlacementStrategy):
    """
    Single column, nodes stacked top to bottom, centered on the canvas.

    The gap between nodes is ``rank_separation``, compressed when the column
    would not fit the drawable height.
    """

    def arrange(
        self,
        nodes: Sequence[PositionedNode],
        edges: Sequence[EdgeSpec] = (),
    ) -> list[PositionedNode]:
        result = [node.copy() for node in nodes]
        if not result:
            return result

        config = self._config
        area = config.drawable_area
        gap = config.rank_separation
        if len(result) > 1:
            fit = (area.height - sum(node.h for node in result)) / (len(result) - 1)
            gap = max(0.0, min(gap, fit))

        y = area.min_y
        for node in result:
            node.x = config.width / 2 - node.w / 2
            node.y = y
            y += node.h + gap
        return result


class TreeFallback(FlowFallback):
    """Tree fallback: the flow column; the optimizer refines it into ranks."""

    pass


class TimelineFallback(PlacementStrategy):
    """Single row, nodes evenly spaced along the horizontal axis at the canvas mid-height."""

    def arrange(
        self,
        nodes: Sequence[PositionedNode],
        edges: Sequence[EdgeSpec] = (),
    ) -> list[PositionedNode]:
        result = [node.copy() for node in nodes]
        if not result:
            return result

        config = self._config
        area = config.drawable_area
        step = area.width / len(result)
        for i, node in enumerate(result):
            node.move_center_to(area.min_x + step * (i + 0.5), config.height / 2)
        return result


class CycleFallback(PlacementStrategy):
    """
    Nodes on a ring around the canvas center.

    Node i sits at angle ``start_angle + 2*pi*i/n`` on a circle of radius
    ``ring_radius(config)`` unless a radius is given.
    """

    def __init__(
        self,
        config: Optional[LayoutConfig] = None,
        *,
        radius: Optional[float] = None,
        start_angle: float = 0.0,
    ) -> None:
        super().__init__(config)
        self._radius = radius
        self._start_angle = float(start_angle)

    @property
    def radius(self) -> float:
        """Ring radius (auto-computed from the canvas when not given)."""
        return self._radius if self._radius is not None else ring_radius(self._config)

    def arrange(
        self,
        nodes: Sequence[PositionedNode],
        edges: Sequence[EdgeSpec] = (),
    ) -> list[PositionedNode]:
        result = [node.copy() for node in nodes]
        n = len(result)
        cx = self._config.width / 2
        cy = self._config.height / 2
        radius = self.radius
        for i, node in enumerate(result):
            angle = self._start_angle + 2 * math.pi * i / n
            node.move_center_to(cx + radius * math.cos(angle), cy + radius * math.sin(angle))
        return result


class MatrixFallback(PlacementStrategy):
    """Nodes at the cell centers of a square grid over the drawable area, row-major."""

    def arrange(
        self,
        nodes: Sequence[PositionedNode],
        edges: Sequence[EdgeSpec] = (),
    ) -> list[PositionedNode]:
        result = [node.copy() for node in nodes]
        if not result:
            return result

        area = self._config.drawable_area
        cols, rows = grid_shape(len(result))
        cell_w = area.width / cols
        cell_h = area.height / rows
        for i, node in enumerate(result):
            row, col = divmod(i, cols)
            node.move_center_to(area.min_x + cell_w * (col + 0.5), area.min_y + cell_h * (row + 0.5))
        return result


def shelf_pack(boxes: Sequence[PositionedNode], area: Bounds, gap: float) -> bool:
    """
    Pack ``boxes`` in order into rows ("shelves") centered in ``area``.

    A shelf takes boxes left to right until the next one would cross the
    area's right edge. Boxes are moved in place and never overlap.

    Returns:
        True if the packed rows fit inside ``area``
    """
    if not boxes:
        return True

    shelves: list[list[PositionedNode]] = [[]]
    width = 0.0
    for box in boxes:
        shelf = shelves[-1]
        extra = box.w + (gap if shelf else 0.0)
        if shelf and width + extra > area.width:
            shelves.append([box])
            width = box.w
        else:
            shelf.append(box)
            width += extra

    heights = [max(box.h for box in shelf) for shelf in shelves]
    total_h = sum(heights) + gap * (len(shelves) - 1)
    y = area.min_y + max(0.0, (area.height - total_h) / 2)
    widest = 0.0
    for shelf, shelf_h in zip(shelves, heights):
        shelf_w = sum(box.w for box in shelf) + gap * (len(shelf) - 1)
        widest = max(widest, shelf_w)
        x = area.min_x + max(0.0, (area.width - shelf_w) / 2)
        for box in shelf:
            box.x = x
            box.y = y + (shelf_h - box.h) / 2
            x += box.w + gap
        y += shelf_h + gap

    return widest <= area.width + 1e-6 and total_h <= area.height + 1e-6


class PackedLayout(PlacementStrategy):
    """
    Rows of nodes packed in input order and centered on the drawable area.

    Used when an archetype arrangement does not fit the canvas. The gap
    between nodes is the archetype's minimum separation.
    """

    def __init__(
        self,
        config: Optional[LayoutConfig] = None,
        diagram_type: DiagramType = DiagramType.FLOW,
    ) -> None:
        super().__init__(config)
        self._diagram_type = DiagramType(diagram_type)

    def arrange(
        self,
        nodes: Sequence[PositionedNode],
        edges: Sequence[EdgeSpec] = (),
    ) -> list[PositionedNode]:
        result = [node.copy() for node in nodes]
        config = self._config
        shelf_pack(result, config.drawable_area, config.separation_for(self._diagram_type))
        return result


FALLBACK_LAYOUTS: dict[DiagramType, type[PlacementStrategy]] = {
    DiagramType.FLOW: FlowFallback,
    DiagramType.TREE: TreeFallback,
    DiagramType.TIMELINE: TimelineFallback,
    DiagramType.CYCLE: CycleFallback,
    DiagramType.MATRIX: MatrixFallback,
}


def fallback_layout(
    diagram_type: DiagramType | str, config: Optional[LayoutConfig] = None
) -> PlacementStrategy:
    """Create the fallback strategy for an archetype."""
    return FALLBACK_LAYOUTS[DiagramType(diagram_type)](config)


__all__ = [
    "RING_RADIUS_FRACTION",
    "ring_radius",
    "grid_shape",
    "FlowFallback",
    "TreeFallback",
    "TimelineFallback",
    "CycleFallback",
    "MatrixFallback",
    "shelf_pack",
    "PackedLayout",
    "FALLBACK_LAYOUTS",
    "fallback_layout",
]
