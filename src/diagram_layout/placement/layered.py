"""
Layered (Sugiyama-style) base placement.

Phases:
1. Cycle removal (reversing DFS back edges, if allowed)
2. Layer assignment by longest path
3. Crossing minimization by barycenter sweeps
4. Coordinate assignment: layers advance along the rank direction, nodes
   within a layer are packed with ``node_separation`` gaps and centered on
   the canvas

Self-loops never take part in ranking.
"""

from __future__ import annotations

import logging
import warnings
from typing import Optional, Sequence

from ..base import PlacementStrategy
from ..config import LayoutConfig
from ..preprocessing import (
    assign_layers_longest_path,
    count_crossings,
    index_edges,
    minimize_crossings_barycenter,
    remove_cycles,
)
from ..types import EdgeSpec, PositionedNode, RankDirection

logger = logging.getLogger(__name__)


class GraphStructureWarning(UserWarning):
    """Warning issued when graph structure doesn't match algorithm assumptions."""

    pass


class LayeredLayout(PlacementStrategy):
    """
    Layered layout for directed graphs.

    Example:
        layout = LayeredLayout(config, rank_direction="LR")
        working = layout.place(specs, edges)
    """

    def __init__(
        self,
        config: Optional[LayoutConfig] = None,
        *,
        rank_direction: Optional[RankDirection | str] = None,
        break_cycles: bool = True,
        crossing_iterations: int = 24,
    ) -> None:
        """
        Initialize layered layout.

        Args:
            config: Layout configuration
            rank_direction: Overrides ``config.rank_direction``
            break_cycles: Reverse back edges of cyclic input. If False, a
                cyclic graph raises RankingError.
            crossing_iterations: Number of barycenter sweeps.
        """
        super().__init__(config)
        if rank_direction is None:
            rank_direction = self._config.rank_direction
        if not isinstance(rank_direction, RankDirection):
            rank_direction = RankDirection(str(rank_direction).upper())
        self._rank_direction = rank_direction
        self._break_cycles = break_cycles
        self._crossing_iterations = max(1, int(crossing_iterations))
        self._layers: list[list[int]] = []
        self._crossings = 0

    # -------------------------------------------------------------------------
    # Properties
    # -------------------------------------------------------------------------

    @property
    def rank_direction(self) -> RankDirection:
        return self._rank_direction

    @property
    def layers(self) -> list[list[int]]:
        """Node indices per layer from the last ``arrange`` call."""
        return [list(layer) for layer in self._layers]

    @property
    def crossings(self) -> int:
        """Layered crossing count after minimization from the last ``arrange`` call."""
        return self._crossings

    # -------------------------------------------------------------------------
    # Layout Computation
    # -------------------------------------------------------------------------

    def arrange(
        self,
        nodes: Sequence[PositionedNode],
        edges: Sequence[EdgeSpec] = (),
    ) -> list[PositionedNode]:
        """
        Rank and position pre-sized nodes.

        Raises:
            RankingError: If the graph is cyclic and ``break_cycles`` is False
        """
        result = [node.copy() for node in nodes]
        n = len(result)
        if n == 0:
            self._layers = []
            self._crossings = 0
            return result

        pairs = index_edges([node.id for node in result], edges)

        if self._break_cycles:
            acyclic, reversed_edges = remove_cycles(n, pairs)
            if reversed_edges:
                warnings.warn(
                    f"Graph contains cycles; reversed {len(reversed_edges)} edge(s) "
                    "to rank it. Layered placement is designed for DAGs.",
                    GraphStructureWarning,
                    stacklevel=3,
                )
            pairs = acyclic

        if pairs:
            isolated = n - len({i for pair in pairs for i in pair})
            if isolated:
                warnings.warn(
                    f"Found {isolated} node(s) without edges. "
                    "These will be placed in the first layer.",
                    GraphStructureWarning,
                    stacklevel=3,
                )

        layers = assign_layers_longest_path(n, pairs)
        layers = minimize_crossings_barycenter(layers, pairs, self._crossing_iterations)
        self._layers = layers
        self._crossings = count_crossings(layers, pairs)

        if self._rank_direction == RankDirection.LR:
            self._assign_coordinates_lr(result, layers)
        else:
            self._assign_coordinates_tb(result, layers)

        logger.debug(
            "Layered placement: %d nodes in %d layers, %d crossings",
            n,
            len(layers),
            self._crossings,
        )
        return result

    def _rank_gap(self, extents: list[float], available: float) -> float:
        """Rank separation, compressed so the ranks fit ``available`` if possible."""
        gap = self._config.rank_separation
        if len(extents) > 1:
            fit = (available - sum(extents)) / (len(extents) - 1)
            gap = max(0.0, min(gap, fit))
        return gap

    def _assign_coordinates_tb(
        self, nodes: list[PositionedNode], layers: list[list[int]]
    ) -> None:
        config = self._config
        area = config.drawable_area
        heights = [max(nodes[i].h for i in layer) for layer in layers]
        gap = self._rank_gap(heights, area.height)

        y = area.min_y
        for layer, layer_h in zip(layers, heights):
            row_width = sum(nodes[i].w for i in layer) + config.node_separation * (len(layer) - 1)
            x = config.width / 2 - row_width / 2
            for i in layer:
                nodes[i].x = x
                nodes[i].y = y + (layer_h - nodes[i].h) / 2
                x += nodes[i].w + config.node_separation
            y += layer_h + gap

    def _assign_coordinates_lr(
        self, nodes: list[PositionedNode], layers: list[list[int]]
    ) -> None:
        config = self._config
        area = config.drawable_area
        widths = [max(nodes[i].w for i in layer) for layer in layers]
        gap = self._rank_gap(widths, area.width)

        x = area.min_x
        for layer, layer_w in zip(layers, widths):
            column_height = sum(nodes[i].h for i in layer) + config.node_separation * (
                len(layer) - 1
            )
            y = config.height / 2 - column_height / 2
            for i in layer:
                nodes[i].x = x + (layer_w - nodes[i].w) / 2
                nodes[i].y = y
                y += nodes[i].h + config.node_separation
            x += layer_w + gap


__all__ = ["LayeredLayout", "GraphStructureWarning"]
