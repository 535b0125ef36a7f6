"""
Initial placement strategies.

This module provides the strategies that produce the first working set:
- LayeredLayout: Layered placement for flow and tree diagrams
- FlowFallback, TreeFallback, TimelineFallback, CycleFallback,
  MatrixFallback: Closed-form archetype placements
- PackedLayout: Rows packed to fit the canvas
- ClusteredLayout: Two-level placement for large graphs
"""

from .fallback import (
    FALLBACK_LAYOUTS,
    CycleFallback,
    FlowFallback,
    MatrixFallback,
    PackedLayout,
    TimelineFallback,
    TreeFallback,
    fallback_layout,
    grid_shape,
    ring_radius,
    shelf_pack,
)
from .layered import GraphStructureWarning, LayeredLayout
from .clustered import ClusteredLayout, cluster_box_size

__all__ = [
    "LayeredLayout",
    "GraphStructureWarning",
    "FlowFallback",
    "TreeFallback",
    "TimelineFallback",
    "CycleFallback",
    "MatrixFallback",
    "PackedLayout",
    "shelf_pack",
    "FALLBACK_LAYOUTS",
    "fallback_layout",
    "grid_shape",
    "ring_radius",
    "ClusteredLayout",
    "cluster_box_size",
]
