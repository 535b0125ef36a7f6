"""
Clustered placement for large graphs.

Large graphs are laid out at two granularities:
1. Nodes are grown into breadth-first connectivity clusters of at most
   ``max_cluster_size`` members.
2. Each cluster becomes a pseudo-node just big enough to hold its members
   in a compact grid. Pseudo-nodes are placed by the archetype fallback
   layout, refined by the aesthetic optimizer and separated by the overlap
   resolver.
3. Members are expanded into the grid cells of their cluster's box.

If the coarse arrangement leaves the drawable area or keeps overlapping
boxes, the cluster boxes are shelf-packed instead; if even that does not
fit, every node is shelf-packed in cluster order. Members stay inside
their pseudo-node box, so separated clusters keep their members apart.
"""

from __future__ import annotations

import logging
import random
from typing import Optional, Sequence

from ..base import PlacementStrategy
from ..config import LayoutConfig
from ..geometry import bounding_box, contains, count_overlaps
from ..overlap import OverlapResolver
from ..preprocessing import grow_clusters, index_edges
from ..types import DiagramType, EdgeSpec, PositionedNode, WorkingSet
from .fallback import fallback_layout, grid_shape, shelf_pack

logger = logging.getLogger(__name__)

COARSE = "coarse"
PACKED_CLUSTERS = "packed-clusters"
PACKED_NODES = "packed-nodes"


def cluster_box_size(members: Sequence[PositionedNode], separation: float) -> tuple[float, float]:
    """(width, height) of the grid holding ``members`` with ``separation`` gaps."""
    cols, rows = grid_shape(len(members))
    if cols == 0:
        return 0.0, 0.0
    cell_w = max(node.w for node in members)
    cell_h = max(node.h for node in members)
    return cols * cell_w + (cols - 1) * separation, rows * cell_h + (rows - 1) * separation


class ClusteredLayout(PlacementStrategy):
    """
    Two-level layout for graphs above ``config.large_graph_threshold`` nodes.

    Example:
        layout = ClusteredLayout(config, DiagramType.FLOW, rng=random.Random(1))
        working = layout.place(specs, edges)
        print(len(layout.clusters), layout.packing)
    """

    def __init__(
        self,
        config: Optional[LayoutConfig] = None,
        diagram_type: DiagramType = DiagramType.FLOW,
        *,
        rng: Optional[random.Random] = None,
        deadline: Optional[float] = None,
    ) -> None:
        super().__init__(config)
        self._diagram_type = DiagramType(diagram_type)
        self._rng = rng if rng is not None else random.Random(self._config.random_seed)
        self._deadline = deadline
        self._clusters: list[list[int]] = []
        self._packing = COARSE

    @property
    def clusters(self) -> list[list[int]]:
        """Member indices per cluster from the last ``arrange`` call."""
        return [list(cluster) for cluster in self._clusters]

    @property
    def packing(self) -> str:
        """Placement mode of the last ``arrange`` call (COARSE, PACKED_CLUSTERS or PACKED_NODES)."""
        return self._packing

    def arrange(
        self,
        nodes: Sequence[PositionedNode],
        edges: Sequence[EdgeSpec] = (),
    ) -> list[PositionedNode]:
        from ..optimizer import AestheticOptimizer

        config = self._config
        result = [node.copy() for node in nodes]
        n = len(result)
        self._packing = COARSE
        if n == 0:
            self._clusters = []
            return result

        pairs = index_edges([node.id for node in result], edges)
        self._clusters = clusters = grow_clusters(n, pairs, config.max_cluster_size)
        separation = config.separation_for(self._diagram_type)
        area = config.drawable_area

        pseudo: list[PositionedNode] = []
        for k, cluster in enumerate(clusters):
            w, h = cluster_box_size([result[i] for i in cluster], separation)
            pseudo.append(PositionedNode(id=f"cluster-{k}", label="", x=0.0, y=0.0, w=w, h=h))

        pseudo = fallback_layout(self._diagram_type, config).arrange(pseudo)
        coarse = AestheticOptimizer(config, self._diagram_type).run(WorkingSet(pseudo))
        resolver = OverlapResolver(
            config, self._diagram_type, rng=self._rng, deadline=self._deadline
        )
        pseudo = resolver.resolve(coarse.nodes)

        if count_overlaps(pseudo) or not contains(area, bounding_box(pseudo)):
            self._packing = PACKED_CLUSTERS
            if not shelf_pack(pseudo, area, separation):
                self._packing = PACKED_NODES

        if self._packing == PACKED_NODES:
            shelf_pack([result[i] for cluster in clusters for i in cluster], area, separation)
        else:
            for box, cluster in zip(pseudo, clusters):
                self._expand(box, [result[i] for i in cluster], separation)

        if self._packing != COARSE:
            logger.info(
                "Clusters did not fit the canvas; placement switched to %s", self._packing
            )
        logger.debug(
            "Clustered placement: %d nodes in %d cluster(s), %d coarse relocation(s)",
            n,
            len(clusters),
            resolver.stats.emergency_relocations,
        )
        return result

    @staticmethod
    def _expand(box: PositionedNode, members: list[PositionedNode], separation: float) -> None:
        """Center ``members`` row-major in the grid cells of their cluster box."""
        cols, _ = grid_shape(len(members))
        cell_w = max(node.w for node in members)
        cell_h = max(node.h for node in members)
        for slot, node in enumerate(members):
            row, col = divmod(slot, cols)
            node.move_center_to(
                box.x + col * (cell_w + separation) + cell_w / 2,
                box.y + row * (cell_h + separation) + cell_h / 2,
            )


__all__ = [
    "COARSE",
    "PACKED_CLUSTERS",
    "PACKED_NODES",
    "cluster_box_size",
    "ClusteredLayout",
]
