"""Tests for layout evaluation and quality metrics."""

import pytest

from diagram_layout import LayoutConfig, Point, PositionedNode, RoutedEdge
from diagram_layout.metrics import (
    compliance_report,
    compute_bounds,
    edge_crossings,
    edge_length_uniformity,
    evaluate,
    layout_balance,
    layout_quality_summary,
    min_node_spacing,
    overlap_count,
    space_utilization,
    within_canvas,
)
from diagram_layout.types import Bounds


def node(node_id, x, y, w=100.0, h=50.0):
    return PositionedNode(id=node_id, label=node_id, x=x, y=y, w=w, h=h)


def segment(source, target, start, end):
    return RoutedEdge(source, target, points=[Point(*start), Point(*end)])


class TestEdgeCrossings:
    """Tests for crossings between routed polylines."""

    def test_diagonals_cross(self):
        """Square diagonals between four distinct nodes cross once."""
        edges = [
            segment("a", "c", (0, 0), (100, 100)),
            segment("b", "d", (100, 0), (0, 100)),
        ]
        assert edge_crossings(edges) == 1

    def test_parallel_edges_no_crossing(self):
        edges = [
            segment("a", "b", (0, 0), (100, 0)),
            segment("c", "d", (0, 50), (100, 50)),
        ]
        assert edge_crossings(edges) == 0

    def test_shared_endpoint_ignored(self):
        """Edges meeting at a common node do not count."""
        edges = [
            segment("a", "c", (0, 0), (100, 100)),
            segment("a", "d", (100, 0), (0, 100)),
        ]
        assert edge_crossings(edges) == 0

    def test_polyline_segments(self):
        loop = RoutedEdge(
            "a", "a", points=[Point(0, 50), Point(50, 50), Point(50, -50), Point(0, -50)]
        )
        edges = [loop, segment("b", "c", (25, 100), (25, -100))]
        assert edge_crossings(edges) == 1

    def test_empty(self):
        assert edge_crossings([]) == 0


class TestSpacingAndBounds:
    """Tests for box-level metrics."""

    def test_overlap_count(self):
        nodes = [node("a", 0, 0), node("b", 50, 0), node("c", 500, 0)]
        assert overlap_count(nodes) == 1

    def test_touching_boxes_do_not_overlap(self):
        assert overlap_count([node("a", 0, 0), node("b", 100, 0)]) == 0

    def test_compute_bounds(self):
        bounds = compute_bounds([node("a", 10, 20), node("b", 300, 400)])
        assert (bounds.min_x, bounds.min_y, bounds.max_x, bounds.max_y) == (10, 20, 400, 450)

    def test_compute_bounds_empty(self):
        assert compute_bounds([]) == Bounds()

    def test_min_node_spacing(self):
        nodes = [node("a", 0, 0), node("b", 130, 0), node("c", 0, 200)]
        assert min_node_spacing(nodes) == pytest.approx(30)

    def test_min_node_spacing_overlap_is_zero(self):
        assert min_node_spacing([node("a", 0, 0), node("b", 10, 10)]) == 0.0

    def test_min_node_spacing_single_node(self):
        assert min_node_spacing([node("a", 0, 0)]) == 0.0

    def test_within_canvas(self):
        config = LayoutConfig(width=800, height=600)
        assert within_canvas(Bounds(0, 0, 800, 600), config)
        assert not within_canvas(Bounds(-5, 0, 100, 100), config)
        assert not within_canvas(Bounds(0, 0, 801, 100), config)


class TestQualityScores:
    """Tests for 0-1 quality scores."""

    def test_balance_centered(self):
        config = LayoutConfig(width=1000, height=1000)
        assert layout_balance([node("a", 450, 475)], config) == pytest.approx(1.0)

    def test_balance_off_center(self):
        config = LayoutConfig(width=1000, height=1000)
        assert layout_balance([node("a", 0, 0)], config) < 0.5

    def test_space_utilization(self):
        # Two 100 x 50 boxes in a 200 x 100 bounding box
        nodes = [node("a", 0, 0), node("b", 100, 50)]
        assert space_utilization(nodes) == pytest.approx(0.5)

    def test_uniform_edge_lengths(self):
        edges = [segment("a", "b", (0, 0), (100, 0)), segment("c", "d", (0, 0), (0, 100))]
        assert edge_length_uniformity(edges) == pytest.approx(1.0)

    def test_varied_edge_lengths(self):
        edges = [segment("a", "b", (0, 0), (10, 0)), segment("c", "d", (0, 0), (0, 500))]
        assert edge_length_uniformity(edges) < 0.5

    def test_summary_keys(self):
        summary = layout_quality_summary([node("a", 0, 0)], [], LayoutConfig())
        assert set(summary) == {
            "overlap_count",
            "edge_crossings",
            "min_node_spacing",
            "layout_balance",
            "space_utilization",
            "edge_length_uniformity",
        }


class TestCompliance:
    """Tests for the compliance report."""

    def test_all_compliant(self):
        report = compliance_report(0, 100.0, 3, True, LayoutConfig())
        assert report == {
            "zero_overlap": True,
            "within_time_budget": True,
            "has_structure": True,
            "within_canvas_bounds": True,
        }

    def test_violations(self):
        report = compliance_report(2, 9000.0, 0, False, LayoutConfig())
        assert not any(report.values())


class TestEvaluate:
    """Tests for the evaluator."""

    def test_clean_layout(self):
        config = LayoutConfig()
        nodes = [node("a", 100, 100), node("b", 100, 300)]
        edges = [segment("a", "b", (150, 150), (150, 300))]
        evaluation = evaluate(nodes, edges, config, processing_time_ms=12.0)
        assert evaluation.overlap_count == 0
        assert evaluation.within_canvas
        assert evaluation.confidence == 1.0
        assert evaluation.bounds == Bounds(100, 100, 200, 350)
        assert evaluation.compliance["zero_overlap"]
        assert evaluation.metrics["edge_crossings"] == 0

    def test_overlaps_lower_confidence(self):
        config = LayoutConfig()
        nodes = [node("a", 100, 100), node("b", 120, 110)]
        evaluation = evaluate(nodes, [], config, processing_time_ms=12.0)
        assert evaluation.overlap_count == 1
        # 0.8 - 0.1 + 0.05 + 0.05
        assert evaluation.confidence == pytest.approx(0.8)
        assert not evaluation.compliance["zero_overlap"]

    def test_out_of_canvas_lowers_confidence(self):
        config = LayoutConfig(width=800, height=600)
        nodes = [node("a", 780, 100)]
        evaluation = evaluate(nodes, [], config, processing_time_ms=12.0)
        assert not evaluation.within_canvas
        assert evaluation.confidence == pytest.approx(0.95)
