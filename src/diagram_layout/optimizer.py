"""
Archetype-specific aesthetic refinement.

Level 2 transforms (``config.iteration_level >= 2``):
- tree / flow: group nodes into rank bands and re-center each band on the
  canvas midline
- cycle: re-project every node onto a ring around the canvas center
- timeline: equal horizontal spacing on one shared center line
- matrix: snap every node to the center of its grid cell

Level 3 adds band reordering by neighbor barycenters (tree / flow) and
centers the whole drawing on the canvas.

Every transform returns new node objects and keeps node count, order and
identity. Transforms may reintroduce overlaps; the final overlap pass
removes them.
"""

from __future__ import annotations

import logging
import math
from typing import Optional, Sequence

from .base import LayoutStage
from .config import LayoutConfig
from .geometry import bounding_box
from .placement.fallback import grid_shape, ring_radius
from .types import DiagramType, PositionedNode, RankDirection, RoutedEdge, WorkingSet

logger = logging.getLogger(__name__)


# =============================================================================
# Rank bands
# =============================================================================


def rank_bands(
    nodes: Sequence[PositionedNode], tolerance: float, horizontal: bool = True
) -> list[list[int]]:
    """
    Group nodes into bands of roughly equal rank coordinate.

    With ``horizontal=True`` bands are rows (grouped by center y), otherwise
    columns (grouped by center x). A band collects nodes whose center lies
    within ``tolerance`` of the band's first node. Bands are ordered along the
    rank axis; nodes within a band are ordered across it.
    """

    def rank_of(i: int) -> float:
        return nodes[i].cy if horizontal else nodes[i].cx

    def across_of(i: int) -> float:
        return nodes[i].cx if horizontal else nodes[i].cy

    bands: list[list[int]] = []
    band_start = 0.0
    for i in sorted(range(len(nodes)), key=lambda k: (rank_of(k), k)):
        if bands and rank_of(i) - band_start <= tolerance:
            bands[-1].append(i)
        else:
            bands.append([i])
            band_start = rank_of(i)

    return [sorted(band, key=lambda k: (across_of(k), k)) for band in bands]


def _pack_band(
    nodes: list[PositionedNode],
    band: Sequence[int],
    gap: float,
    midline: float,
    horizontal: bool,
) -> None:
    # Lay a band out edge to edge with ``gap`` spacing, centered on ``midline``
    if horizontal:
        extent = sum(nodes[i].w for i in band) + gap * (len(band) - 1)
        x = midline - extent / 2
        for i in band:
            nodes[i].x = x
            x += nodes[i].w + gap
    else:
        extent = sum(nodes[i].h for i in band) + gap * (len(band) - 1)
        y = midline - extent / 2
        for i in band:
            nodes[i].y = y
            y += nodes[i].h + gap


def center_bands(
    nodes: Sequence[PositionedNode],
    config: LayoutConfig,
    horizontal: bool = True,
) -> list[PositionedNode]:
    """
    Re-center every rank band on the canvas midline.

    Each band keeps its order and its rank coordinate and is repacked with
    ``node_separation`` gaps.
    """
    result = [node.copy() for node in nodes]
    tolerance = (config.node_height if horizontal else config.node_width) / 2
    midline = config.width / 2 if horizontal else config.height / 2
    for band in rank_bands(result, tolerance, horizontal):
        _pack_band(result, band, config.node_separation, midline, horizontal)
    return result


def reorder_bands(
    nodes: Sequence[PositionedNode],
    edges: Sequence[RoutedEdge],
    config: LayoutConfig,
    horizontal: bool = True,
) -> list[PositionedNode]:
    """
    Reorder each band by the barycenter of its neighbors in the previous band.

    Bands are then repacked and re-centered like ``center_bands``.
    """
    result = [node.copy() for node in nodes]
    tolerance = (config.node_height if horizontal else config.node_width) / 2
    midline = config.width / 2 if horizontal else config.height / 2
    index = {node.id: i for i, node in enumerate(result)}

    neighbors: list[list[int]] = [[] for _ in result]
    for edge in edges:
        src = index.get(edge.source)
        tgt = index.get(edge.target)
        if src is None or tgt is None or src == tgt:
            continue
        neighbors[src].append(tgt)
        neighbors[tgt].append(src)

    bands = rank_bands(result, tolerance, horizontal)
    position: dict[int, int] = {}
    for band_idx, band in enumerate(bands):
        if band_idx > 0:
            keyed = []
            for pos, i in enumerate(band):
                above = [position[m] for m in neighbors[i] if m in position]
                barycenter = sum(above) / len(above) if above else float(pos)
                keyed.append((barycenter, pos, i))
            keyed.sort()
            band = [i for _, _, i in keyed]
            bands[band_idx] = band
        position.update({i: pos for pos, i in enumerate(band)})
        _pack_band(result, band, config.node_separation, midline, horizontal)

    return result


# =============================================================================
# Cycle, timeline and matrix transforms
# =============================================================================


def cycle_radius(nodes: Sequence[PositionedNode], config: LayoutConfig, separation: float) -> float:
    """
    Ring radius for ``nodes``.

    The larger of the base ring radius and the radius at which neighboring
    boxes keep ``separation`` apart, capped so the ring fits the drawable area.
    """
    base = ring_radius(config)
    n = len(nodes)
    if n < 2:
        return base
    max_w = max(node.w for node in nodes)
    max_h = max(node.h for node in nodes)
    fit = (math.hypot(max_w, max_h) + separation) / (2 * math.sin(math.pi / n))
    area = config.drawable_area
    cap = min(area.width - max_w, area.height - max_h) / 2
    return max(base, min(fit, cap))


def project_onto_ring(
    nodes: Sequence[PositionedNode],
    config: LayoutConfig,
    separation: float,
    start_angle: float = 0.0,
) -> list[PositionedNode]:
    """Place node i at angle ``start_angle + 2*pi*i/n`` on the ring around the canvas center."""
    result = [node.copy() for node in nodes]
    n = len(result)
    radius = cycle_radius(result, config, separation)
    cx = config.width / 2
    cy = config.height / 2
    for i, node in enumerate(result):
        angle = start_angle + 2 * math.pi * i / n
        node.move_center_to(cx + radius * math.cos(angle), cy + radius * math.sin(angle))
    return result


def align_timeline(
    nodes: Sequence[PositionedNode], config: LayoutConfig, separation: float
) -> list[PositionedNode]:
    """
    Equal horizontal spacing on the canvas mid-height.

    Nodes keep their left-to-right order. The step is the drawable width per
    node, widened to ``max_w + separation`` when boxes would touch.
    """
    result = [node.copy() for node in nodes]
    n = len(result)
    if n == 0:
        return result
    area = config.drawable_area
    step = max(area.width / n, max(node.w for node in result) + separation)
    start = config.width / 2 - step * n / 2
    order = sorted(range(n), key=lambda k: (result[k].cx, k))
    for slot, i in enumerate(order):
        result[i].move_center_to(start + step * (slot + 0.5), config.height / 2)
    return result


def snap_to_grid(nodes: Sequence[PositionedNode], config: LayoutConfig) -> list[PositionedNode]:
    """Move node i to the center of grid cell i (row-major) over the drawable area."""
    result = [node.copy() for node in nodes]
    if not result:
        return result
    area = config.drawable_area
    cols, rows = grid_shape(len(result))
    cell_w = area.width / cols
    cell_h = area.height / rows
    for i, node in enumerate(result):
        row, col = divmod(i, cols)
        node.move_center_to(area.min_x + cell_w * (col + 0.5), area.min_y + cell_h * (row + 0.5))
    return result


def center_on_canvas(nodes: Sequence[PositionedNode], config: LayoutConfig) -> list[PositionedNode]:
    """Translate the drawing so its bounding box is centered on the canvas."""
    result = [node.copy() for node in nodes]
    if not result:
        return result
    bounds = bounding_box(result)
    dx = config.width / 2 - (bounds.min_x + bounds.max_x) / 2
    dy = config.height / 2 - (bounds.min_y + bounds.max_y) / 2
    for node in result:
        node.x += dx
        node.y += dy
    return result


# =============================================================================
# Pipeline stage
# =============================================================================


class AestheticOptimizer(LayoutStage):
    """
    Pipeline stage applying the archetype transforms for the configured level.

    Example:
        optimizer = AestheticOptimizer(config, DiagramType.TREE)
        working = optimizer.run(working)
    """

    def __init__(
        self,
        config: Optional[LayoutConfig] = None,
        diagram_type: DiagramType = DiagramType.FLOW,
        *,
        level: Optional[int] = None,
    ) -> None:
        super().__init__(config, diagram_type)
        self._level = self._config.iteration_level if level is None else int(level)

    @property
    def level(self) -> int:
        return self._level

    def _bands_horizontal(self) -> bool:
        # Tree ranks always run top to bottom
        if self._diagram_type == DiagramType.TREE:
            return True
        return self._config.rank_direction == RankDirection.TB

    def _apply(self, working: WorkingSet) -> None:
        if self._level < 2 or not working.nodes:
            return

        config = self._config
        diagram_type = self._diagram_type
        separation = config.separation_for(diagram_type)
        nodes = working.nodes

        if diagram_type in (DiagramType.TREE, DiagramType.FLOW):
            nodes = center_bands(nodes, config, self._bands_horizontal())
        elif diagram_type == DiagramType.CYCLE:
            nodes = project_onto_ring(nodes, config, separation)
        elif diagram_type == DiagramType.TIMELINE:
            nodes = align_timeline(nodes, config, separation)
        elif diagram_type == DiagramType.MATRIX:
            nodes = snap_to_grid(nodes, config)

        if self._level >= 3:
            if diagram_type in (DiagramType.TREE, DiagramType.FLOW):
                nodes = reorder_bands(nodes, working.edges, config, self._bands_horizontal())
            nodes = center_on_canvas(nodes, config)

        logger.debug(
            "Aesthetic optimization (%s, level %d) on %d node(s)",
            diagram_type.value,
            self._level,
            len(nodes),
        )
        working.nodes = nodes


__all__ = [
    "rank_bands",
    "center_bands",
    "reorder_bands",
    "cycle_radius",
    "project_onto_ring",
    "align_timeline",
    "snap_to_grid",
    "center_on_canvas",
    "AestheticOptimizer",
]
