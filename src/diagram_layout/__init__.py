"""
diagram-layout: Overlap-free layout of small attributed diagrams.

This package turns a graph (nodes plus directed edges) and a declared
diagram archetype into a positioned drawing: every node gets a box, every
edge a routed polyline, and no two boxes overlap.

Pipeline:
- placement: Layered placement, archetype fallbacks, clustered large graphs
- overlap: Iterative overlap resolution with emergency separation
- optimizer: Archetype-specific aesthetic refinement
- routing: Side selection and port distribution for edges
- metrics: Bounds, overlap and crossing counts, confidence, compliance
- engine: The orchestrating state machine
"""

__version__ = "0.1.0"

from .base import EventEmitter, LayoutStage, PlacementStrategy
from .config import DEFAULT_MIN_SEPARATION, ConfidencePolicy, LayoutConfig
from .engine import LayoutEngine, layout_diagram

# Geometry primitives
from .geometry import (
    bounding_box,
    count_overlaps,
    overlap_matrix,
    overlapping_pairs,
    rects_overlap,
)

# Evaluation
from .metrics import (
    Evaluation,
    compliance_report,
    edge_crossings,
    evaluate,
    layout_quality_summary,
    min_node_spacing,
)
from .optimizer import AestheticOptimizer
from .overlap import OverlapResolver, ResolutionStats

# Placement strategies
from .placement import (
    ClusteredLayout,
    CycleFallback,
    FlowFallback,
    GraphStructureWarning,
    LayeredLayout,
    MatrixFallback,
    PackedLayout,
    TimelineFallback,
    TreeFallback,
    fallback_layout,
)

# Preprocessing utilities
from .preprocessing import (
    assign_layers_longest_path,
    count_crossings,
    grow_clusters,
    minimize_crossings_barycenter,
    remove_cycles,
    topological_sort,
)
from .routing import EdgeRouter, route_edges
from .types import (
    Bounds,
    DiagramType,
    EdgeSpec,
    Event,
    EventType,
    LayoutResult,
    NodeSpec,
    PipelineStage,
    Point,
    PositionedNode,
    RankDirection,
    RoutedEdge,
    Side,
    WorkingSet,
)

# Validation
from .validation import (
    InvalidCanvasSizeError,
    InvalidEdgeError,
    InvalidNodeError,
    LayoutError,
    RankingError,
    UnknownNodeError,
    ValidationError,
)

__all__ = [
    # Version
    "__version__",
    # Types
    "Bounds",
    "DiagramType",
    "EdgeSpec",
    "Event",
    "EventType",
    "LayoutResult",
    "NodeSpec",
    "PipelineStage",
    "Point",
    "PositionedNode",
    "RankDirection",
    "RoutedEdge",
    "Side",
    "WorkingSet",
    # Configuration
    "DEFAULT_MIN_SEPARATION",
    "ConfidencePolicy",
    "LayoutConfig",
    # Base classes
    "EventEmitter",
    "LayoutStage",
    "PlacementStrategy",
    # Placement
    "LayeredLayout",
    "GraphStructureWarning",
    "FlowFallback",
    "TreeFallback",
    "TimelineFallback",
    "CycleFallback",
    "MatrixFallback",
    "PackedLayout",
    "fallback_layout",
    "ClusteredLayout",
    # Pipeline stages
    "OverlapResolver",
    "ResolutionStats",
    "AestheticOptimizer",
    "EdgeRouter",
    "route_edges",
    # Orchestrator
    "LayoutEngine",
    "layout_diagram",
    # Geometry
    "rects_overlap",
    "overlap_matrix",
    "overlapping_pairs",
    "count_overlaps",
    "bounding_box",
    # Metrics
    "Evaluation",
    "evaluate",
    "compliance_report",
    "edge_crossings",
    "min_node_spacing",
    "layout_quality_summary",
    # Preprocessing
    "assign_layers_longest_path",
    "count_crossings",
    "grow_clusters",
    "minimize_crossings_barycenter",
    "remove_cycles",
    "topological_sort",
    # Validation
    "ValidationError",
    "InvalidCanvasSizeError",
    "InvalidNodeError",
    "InvalidEdgeError",
    "UnknownNodeError",
    "LayoutError",
    "RankingError",
]
