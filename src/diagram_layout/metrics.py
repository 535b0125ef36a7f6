"""
Layout evaluation and quality metrics.

Provides the evaluator of the pipeline and quantitative quality measures:
- Overlap count and bounding box of the node boxes
- Edge crossings between routed polylines
- Minimum node spacing, layout balance and space utilization
- Confidence score and compliance report

All metrics work on final positions from any stage of the pipeline.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Sequence

import numpy as np

from .config import LayoutConfig
from .geometry import bounding_box, box_arrays, contains, count_overlaps, segments_intersect
from .types import Bounds, PositionedNode, RoutedEdge


def overlap_count(nodes: Sequence[PositionedNode]) -> int:
    """Number of overlapping node pairs (zero tolerance)."""
    return count_overlaps(nodes)


def compute_bounds(nodes: Sequence[PositionedNode]) -> Bounds:
    """Axis-aligned bounding box of all node boxes."""
    return bounding_box(nodes)


def within_canvas(bounds: Bounds, config: LayoutConfig) -> bool:
    """Check whether a drawing with ``bounds`` fits on the canvas."""
    return contains(Bounds(0.0, 0.0, config.width, config.height), bounds)


def edge_crossings(edges: Sequence[RoutedEdge]) -> int:
    """
    Count crossings between routed edges.

    Two edges cross when any segments of their polylines properly
    intersect. Edges sharing an endpoint node are not compared.

    Time Complexity: O(s^2) where s = number of segments
    """
    crossings = 0
    n_edges = len(edges)

    for i in range(n_edges):
        e1 = edges[i]
        for j in range(i + 1, n_edges):
            e2 = edges[j]
            if {e1.source, e1.target} & {e2.source, e2.target}:
                continue
            if _polylines_cross(e1, e2):
                crossings += 1

    return crossings


def _polylines_cross(e1: RoutedEdge, e2: RoutedEdge) -> bool:
    for a, b in zip(e1.points, e1.points[1:]):
        for c, d in zip(e2.points, e2.points[1:]):
            if segments_intersect((a.x, a.y), (b.x, b.y), (c.x, c.y), (d.x, d.y)):
                return True
    return False


def min_node_spacing(nodes: Sequence[PositionedNode]) -> float:
    """
    Smallest gap between any two boxes (0 when boxes touch or overlap).

    Returns 0.0 for fewer than two nodes.
    """
    n = len(nodes)
    if n < 2:
        return 0.0

    x, y, w, h = box_arrays(nodes)
    right = x + w
    bottom = y + h
    gap_x = np.maximum(x[None, :] - right[:, None], x[:, None] - right[None, :])
    gap_y = np.maximum(y[None, :] - bottom[:, None], y[:, None] - bottom[None, :])
    gaps = np.maximum(gap_x, gap_y)[np.triu_indices(n, k=1)]
    return max(0.0, float(gaps.min()))


def layout_balance(nodes: Sequence[PositionedNode], config: LayoutConfig) -> float:
    """
    How well the drawing is centered on the canvas (0-1, higher is better).

    Returns:
        1 - (distance of the mean box center from the canvas center) /
        (half the canvas diagonal), clamped to [0, 1]
    """
    if not nodes:
        return 1.0

    cx = config.width / 2
    cy = config.height / 2
    mean_x = sum(node.cx for node in nodes) / len(nodes)
    mean_y = sum(node.cy for node in nodes) / len(nodes)
    deviation = math.hypot(mean_x - cx, mean_y - cy)
    return max(0.0, min(1.0, 1.0 - deviation / math.hypot(cx, cy)))


def space_utilization(nodes: Sequence[PositionedNode]) -> float:
    """Share of the bounding box covered by node boxes (0-1)."""
    if not nodes:
        return 0.0
    bounds = bounding_box(nodes)
    area = bounds.width * bounds.height
    if area <= 0:
        return 0.0
    return min(1.0, sum(node.w * node.h for node in nodes) / area)


def edge_length_uniformity(edges: Sequence[RoutedEdge]) -> float:
    """
    Compute routed edge length uniformity (0-1, higher is better).

    Returns:
        1 - (std_dev / mean), clamped to [0, 1]
    """
    lengths = [
        sum(math.hypot(b.x - a.x, b.y - a.y) for a, b in zip(edge.points, edge.points[1:]))
        for edge in edges
        if len(edge.points) >= 2
    ]
    if not lengths:
        return 1.0

    mean = sum(lengths) / len(lengths)
    if mean == 0:
        return 0.0

    variance = sum((length - mean) ** 2 for length in lengths) / len(lengths)
    return max(0.0, min(1.0, 1.0 - math.sqrt(variance) / mean))


def compliance_report(
    overlaps: int,
    processing_time_ms: float,
    node_count: int,
    fits_canvas: bool,
    config: LayoutConfig,
) -> dict[str, bool]:
    """
    Compliance breakdown for logging and telemetry.

    Returns:
        Dictionary with:
        - zero_overlap: No two boxes overlap
        - within_time_budget: Processing stayed within ``time_budget_ms``
        - has_structure: The graph is non-empty
        - within_canvas_bounds: The drawing fits on the canvas
    """
    return {
        "zero_overlap": overlaps == 0,
        "within_time_budget": processing_time_ms <= config.time_budget_ms,
        "has_structure": node_count > 0,
        "within_canvas_bounds": fits_canvas,
    }


def layout_quality_summary(
    nodes: Sequence[PositionedNode],
    edges: Sequence[RoutedEdge],
    config: LayoutConfig,
) -> dict[str, Any]:
    """
    Compute a summary of layout quality metrics.

    Returns:
        Dictionary with all metrics:
        - overlap_count: Number of overlapping box pairs
        - edge_crossings: Number of crossings between routed edges
        - min_node_spacing: Smallest gap between two boxes
        - layout_balance: Centering score (0-1)
        - space_utilization: Box area over bounding box area (0-1)
        - edge_length_uniformity: Uniformity score (0-1)
    """
    return {
        "overlap_count": overlap_count(nodes),
        "edge_crossings": edge_crossings(edges),
        "min_node_spacing": min_node_spacing(nodes),
        "layout_balance": layout_balance(nodes, config),
        "space_utilization": space_utilization(nodes),
        "edge_length_uniformity": edge_length_uniformity(edges),
    }


@dataclass
class Evaluation:
    """Outcome of evaluating a finished drawing."""

    overlap_count: int
    bounds: Bounds
    processing_time_ms: float
    confidence: float
    within_canvas: bool
    compliance: dict[str, bool] = field(default_factory=dict)
    metrics: dict[str, Any] = field(default_factory=dict)


def evaluate(
    nodes: Sequence[PositionedNode],
    edges: Sequence[RoutedEdge],
    config: LayoutConfig,
    processing_time_ms: float,
) -> Evaluation:
    """
    Evaluate a drawing: bounds, overlaps, confidence and compliance.

    Args:
        nodes: Final node boxes
        edges: Final routed edges
        config: Configuration (canvas, time budget, confidence policy)
        processing_time_ms: Time spent so far by the invocation

    Returns:
        Evaluation with the quality summary in ``metrics``
    """
    metrics = layout_quality_summary(nodes, edges, config)
    overlaps = metrics["overlap_count"]
    bounds = compute_bounds(nodes)
    fits = within_canvas(bounds, config)
    confidence = config.confidence.score(overlaps, processing_time_ms, len(nodes), fits)
    return Evaluation(
        overlap_count=overlaps,
        bounds=bounds,
        processing_time_ms=processing_time_ms,
        confidence=confidence,
        within_canvas=fits,
        compliance=compliance_report(overlaps, processing_time_ms, len(nodes), fits, config),
        metrics=metrics,
    )


__all__ = [
    "overlap_count",
    "compute_bounds",
    "within_canvas",
    "edge_crossings",
    "min_node_spacing",
    "layout_balance",
    "space_utilization",
    "edge_length_uniformity",
    "compliance_report",
    "layout_quality_summary",
    "Evaluation",
    "evaluate",
]
