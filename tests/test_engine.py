"""
Tests for the layout orchestrator.
"""

import math
import random

import pytest

from diagram_layout import (
    DiagramType,
    EdgeSpec,
    EventType,
    LayoutConfig,
    LayoutEngine,
    NodeSpec,
    PipelineStage,
    layout_diagram,
)
from diagram_layout.geometry import count_overlaps

# =============================================================================
# Test Fixtures
# =============================================================================


def payload_nodes(n, prefix="n"):
    return [{"id": f"{prefix}{i}", "label": f"Step {i}"} for i in range(n)]


def payload_chain(n, prefix="n"):
    return [{"from": f"{prefix}{i}", "to": f"{prefix}{i + 1}"} for i in range(n - 1)]


def on_border(point, box, tol=1e-6):
    inside_x = box.x - tol <= point.x <= box.right + tol
    inside_y = box.y - tol <= point.y <= box.bottom + tol
    on_vertical = min(abs(point.x - box.x), abs(point.x - box.right)) <= tol and inside_y
    on_horizontal = min(abs(point.y - box.y), abs(point.y - box.bottom)) <= tol and inside_x
    return on_vertical or on_horizontal


def assert_valid_layout(result, n, fits_canvas=True):
    assert result.success, result.error
    assert result.error is None
    assert len(result.nodes) == n
    assert count_overlaps(result.nodes) == 0
    for node in result.nodes:
        assert node.w > 0 and node.h > 0
        assert math.isfinite(node.x) and math.isfinite(node.y)
    by_id = {node.id: node for node in result.nodes}
    for edge in result.edges:
        assert len(edge.points) >= 2
        assert on_border(edge.points[0], by_id[edge.source])
        assert on_border(edge.points[-1], by_id[edge.target])
    if fits_canvas:
        assert result.compliance["within_canvas_bounds"], result.bounds


# =============================================================================
# Tests
# =============================================================================


class TestGenerateLayout:
    """End-to-end layouts per archetype."""

    def test_flow_with_duplicate_labels(self):
        """Same-label nodes get same-size boxes and are still kept apart."""
        nodes = [
            {"id": "start", "label": "Start"},
            {"id": "check", "label": "Check"},
            {"id": "check2", "label": "Check"},
            {"id": "fix", "label": "Fix"},
            {"id": "end", "label": "End"},
        ]
        edges = [
            {"from": "start", "to": "check"},
            {"from": "start", "to": "check2"},
            {"from": "check", "to": "fix"},
            {"from": "check2", "to": "fix"},
            {"from": "fix", "to": "end"},
        ]
        result = LayoutEngine(LayoutConfig(random_seed=1)).generate_layout(nodes, edges, "flow")
        assert_valid_layout(result, 5)
        assert result.confidence >= 0.8
        by_id = {node.id: node for node in result.nodes}
        assert by_id["start"].cy < by_id["check"].cy < by_id["fix"].cy < by_id["end"].cy
        assert len(result.edges) == 5

    def test_cycle_on_ring(self):
        """Twenty cycle nodes end on the 600 px ring of a 2000 x 2000 canvas."""
        config = LayoutConfig(width=2000, height=2000, random_seed=3)
        edges = payload_chain(20) + [{"from": "n19", "to": "n0"}]
        result = LayoutEngine(config).generate_layout(payload_nodes(20), edges, "cycle")
        assert_valid_layout(result, 20)
        for node in result.nodes:
            assert math.hypot(node.cx - 1000, node.cy - 1000) == pytest.approx(600, abs=1.0)

    def test_dense_matrix(self):
        config = LayoutConfig(random_seed=4)
        result = LayoutEngine(config).generate_layout(payload_nodes(40), [], "matrix")
        assert_valid_layout(result, 40)
        assert result.processing_time_ms < config.time_budget_ms
        assert result.compliance["zero_overlap"]

    def test_timeline_single_row(self):
        config = LayoutConfig(random_seed=5)
        result = LayoutEngine(config).generate_layout(
            payload_nodes(6), payload_chain(6), DiagramType.TIMELINE
        )
        assert_valid_layout(result, 6)
        centers = [node.cx for node in result.nodes]
        assert centers == sorted(centers)
        assert all(node.cy == pytest.approx(config.height / 2) for node in result.nodes)

    def test_tree_ranks_top_to_bottom(self):
        nodes = payload_nodes(7)
        edges = [{"from": "n0", "to": "n1"}, {"from": "n0", "to": "n2"}]
        edges += [{"from": f"n{1 + i // 2}", "to": f"n{3 + i}"} for i in range(4)]
        result = LayoutEngine(LayoutConfig(rank_direction="LR")).generate_layout(nodes, edges, "tree")
        assert_valid_layout(result, 7)
        by_id = {node.id: node for node in result.nodes}
        assert by_id["n0"].cy < by_id["n1"].cy < by_id["n3"].cy

    def test_single_node(self):
        result = LayoutEngine().generate_layout([{"id": "only", "label": "Only"}], [], "flow")
        assert_valid_layout(result, 1)
        assert result.confidence == 1.0

    def test_accepts_specs(self):
        nodes = [NodeSpec("a", "A"), NodeSpec("b", "B")]
        result = LayoutEngine().generate_layout(nodes, [EdgeSpec("a", "b")], "flow")
        assert_valid_layout(result, 2)

    def test_self_loop_and_multi_edge(self):
        edges = [{"from": "a", "to": "a"}, {"from": "a", "to": "b"}, {"from": "a", "to": "b"}]
        result = LayoutEngine().generate_layout(
            [{"id": "a"}, {"id": "b"}], edges, "flow"
        )
        assert_valid_layout(result, 2)
        assert len(result.edges[0].points) == 5
        assert result.edges[1].points[0] != result.edges[2].points[0]

    def test_cyclic_flow_still_succeeds(self):
        edges = payload_chain(4) + [{"from": "n3", "to": "n0"}]
        with pytest.warns(UserWarning, match="cycles"):
            result = LayoutEngine().generate_layout(payload_nodes(4), edges, "flow")
        assert_valid_layout(result, 4)

    def test_input_not_modified(self):
        nodes = payload_nodes(3)
        edges = payload_chain(3)
        LayoutEngine().generate_layout(nodes, edges, "flow")
        assert nodes == payload_nodes(3)
        assert edges == payload_chain(3)

    def test_deterministic_with_seed(self):
        config = LayoutConfig(random_seed=42)

        def run():
            result = LayoutEngine(config).generate_layout(payload_nodes(12), [], "cycle")
            return [(node.x, node.y) for node in result.nodes]

        assert run() == run()

    def test_metrics_recorded(self):
        result = LayoutEngine().generate_layout(payload_nodes(3), payload_chain(3), "flow")
        assert result.metrics["diagram_type"] == "flow"
        assert result.metrics["node_count"] == 3
        assert result.metrics["edge_count"] == 2
        assert result.metrics["large_graph"] is False
        assert result.metrics["final_pass"]["converged"] is True


class TestFailures:
    """Invalid input yields success=False with an empty layout, never an exception."""

    def test_unknown_node(self):
        result = LayoutEngine().generate_layout(
            payload_nodes(2), [{"from": "n0", "to": "ghost"}], "flow"
        )
        assert result.success is False
        assert "unknown node" in result.error
        assert result.nodes == [] and result.edges == []
        assert result.confidence == 0.0

    def test_empty_graph(self):
        result = LayoutEngine().generate_layout([], [], "flow")
        assert result.success is False
        assert "empty" in result.error

    def test_unsupported_diagram_type(self):
        result = LayoutEngine().generate_layout(payload_nodes(2), [], "spiral")
        assert result.success is False
        assert "spiral" in result.error

    def test_duplicate_ids(self):
        nodes = [{"id": "a"}, {"id": "a"}]
        result = LayoutEngine().generate_layout(nodes, [], "flow")
        assert result.success is False
        assert "duplicate" in result.error

    def test_self_loops_rejected_when_disabled(self):
        engine = LayoutEngine(LayoutConfig(allow_self_loops=False))
        result = engine.generate_layout([{"id": "a"}], [{"from": "a", "to": "a"}], "flow")
        assert result.success is False
        assert "self-loop" in result.error

    def test_internal_error_is_contained(self, monkeypatch):
        def boom(*args, **kwargs):
            raise RuntimeError("kaboom")

        monkeypatch.setattr("diagram_layout.engine.evaluate", boom)
        engine = LayoutEngine()
        result = engine.generate_layout(payload_nodes(2), [], "flow")
        assert result.success is False
        assert "evaluate" in result.error and "kaboom" in result.error
        assert engine.state is PipelineStage.FAILED


class TestEventsAndState:
    """Tests for lifecycle events and the state machine."""

    def test_event_sequence(self):
        events = []
        engine = LayoutEngine(on_start=events.append, on_tick=events.append, on_end=events.append)
        engine.generate_layout(payload_nodes(3), payload_chain(3), "flow")
        types = [event["type"] for event in events]
        assert types[0] == EventType.start
        assert types[-1] == EventType.end
        stages = [event["stage"] for event in events if event["type"] == EventType.tick]
        assert stages == [
            PipelineStage.BASE_PLACEMENT,
            PipelineStage.FIRST_OVERLAP_PASS,
            PipelineStage.EDGE_ROUTING,
            PipelineStage.FINAL_OVERLAP_PASS,
            PipelineStage.EVALUATE,
        ]
        assert events[-1]["result"].success

    def test_level_one_skips_optimization(self):
        stages = []
        engine = LayoutEngine(LayoutConfig(iteration_level=1))
        engine.on("tick", lambda event: stages.append(event["stage"]))
        engine.generate_layout(payload_nodes(3), [], "matrix")
        assert PipelineStage.AESTHETIC_OPTIMIZATION not in stages

    def test_level_two_runs_optimization(self):
        stages = []
        engine = LayoutEngine(LayoutConfig(iteration_level=2))
        engine.on("tick", lambda event: stages.append(event["stage"]))
        result = engine.generate_layout(payload_nodes(3), [], "matrix")
        assert stages.index(PipelineStage.AESTHETIC_OPTIMIZATION) == 2
        assert result.metrics["iteration_level"] == 2

    @pytest.mark.parametrize("event_type", ["start", "tick", "end"])
    def test_failing_listener_does_not_escape(self, event_type):
        """A listener that raises is logged; the layout still completes."""

        def broken(event):
            raise RuntimeError("listener down")

        engine = LayoutEngine().on(event_type, broken)
        result = engine.generate_layout(payload_nodes(3), payload_chain(3), "flow")
        assert_valid_layout(result, 3)
        assert engine.state is PipelineStage.DONE

    def test_state_after_success_and_failure(self):
        engine = LayoutEngine()
        engine.generate_layout(payload_nodes(2), [], "flow")
        assert engine.state is PipelineStage.DONE
        engine.generate_layout([], [], "flow")
        assert engine.state is PipelineStage.FAILED

    def test_end_event_on_failure(self):
        ends = []
        engine = LayoutEngine().on(EventType.end, ends.append)
        engine.generate_layout([], [], "flow")
        assert len(ends) == 1
        assert ends[0]["result"].success is False


class TestConfiguration:
    """Tests for configuration changes between invocations."""

    def test_update_config(self):
        engine = LayoutEngine()
        engine.update_config(width=800, height=600)
        assert engine.config.width == 800
        result = engine.generate_layout(payload_nodes(4), [], "matrix")
        assert result.bounds.max_x <= 800

    def test_next_iteration(self):
        engine = LayoutEngine()
        assert engine.config.iteration_level == 1
        assert engine.next_iteration() == 2
        assert engine.config.iteration_level == 2
        result = engine.generate_layout(payload_nodes(4), payload_chain(4), "flow")
        assert_valid_layout(result, 4)


class TestLargeGraph:
    """Tests for the clustered large-graph path."""

    def test_clustered_above_threshold(self):
        config = LayoutConfig(large_graph_threshold=10, max_cluster_size=4, random_seed=2)
        result = LayoutEngine(config).generate_layout(payload_nodes(24), payload_chain(24), "flow")
        assert_valid_layout(result, 24)
        assert result.metrics["large_graph"] is True
        assert result.metrics["clusters"] == 6

    @pytest.mark.parametrize("diagram_type", list(DiagramType))
    @pytest.mark.parametrize("n", [51, 60, 80, 100])
    def test_default_threshold_fits_canvas(self, n, diagram_type):
        """Short-label graphs past the default threshold stay on the canvas."""
        nodes = [{"id": f"s{i}", "label": f"S{i}"} for i in range(n)]
        result = LayoutEngine(LayoutConfig(random_seed=n)).generate_layout(
            nodes, payload_chain(n, "s"), diagram_type
        )
        assert_valid_layout(result, n)
        assert result.metrics["large_graph"] is True
        assert result.compliance["zero_overlap"]

    def test_below_threshold_not_clustered(self):
        config = LayoutConfig(large_graph_threshold=10)
        result = LayoutEngine(config).generate_layout(payload_nodes(10), [], "matrix")
        assert result.metrics["large_graph"] is False
        assert result.metrics["clusters"] == 0


class TestLayoutDiagram:
    """Tests for the payload entry point."""

    def test_payload(self):
        payload = {
            "nodes": payload_nodes(3),
            "edges": payload_chain(3),
            "diagramType": "tree",
        }
        result = layout_diagram(payload, {"randomSeed": 1, "nodeWidth": 100})
        assert_valid_layout(result, 3)
        assert all(node.w >= 100 for node in result.nodes)

    def test_default_diagram_type(self):
        result = layout_diagram({"nodes": payload_nodes(2)})
        assert_valid_layout(result, 2)
        assert result.metrics["diagram_type"] == "flow"

    def test_invalid_config(self):
        result = layout_diagram({"nodes": payload_nodes(2)}, {"zoom": 2})
        assert result.success is False
        assert "Invalid layout configuration" in result.error

    def test_invalid_payload(self):
        result = layout_diagram(["not", "a", "mapping"])
        assert result.success is False

    def test_to_dict(self):
        result = layout_diagram({"nodes": payload_nodes(2), "edges": payload_chain(2)})
        data = result.to_dict()
        assert set(data) == {
            "nodes",
            "edges",
            "bounds",
            "processingTimeMs",
            "success",
            "confidence",
            "metrics",
            "compliance",
        }
        assert data["edges"][0]["from"] == "n0"
        assert set(data["nodes"][0]) >= {"id", "label", "x", "y", "w", "h"}

    def test_failed_to_dict_has_error(self):
        data = layout_diagram({"nodes": []}).to_dict()
        assert data["success"] is False
        assert data["nodes"] == []
        assert "error" in data


class TestRandomizedLayouts:
    """Seeded property checks: any valid graph yields an overlap-free layout."""

    @pytest.mark.parametrize("seed", range(15))
    def test_zero_overlaps(self, seed):
        rng = random.Random(seed)
        n = rng.randint(2, 30)
        diagram_type = list(DiagramType)[seed % len(DiagramType)]
        nodes = [
            {"id": f"v{i}", "label": "x" * rng.randint(0, 40), "metadata": {"importance": rng.random()}}
            for i in range(n)
        ]
        edges = [
            {"from": f"v{rng.randrange(n)}", "to": f"v{rng.randrange(n)}"}
            for _ in range(rng.randint(0, 2 * n))
        ]
        config = LayoutConfig(random_seed=seed)
        result = LayoutEngine(config).generate_layout(nodes, edges, diagram_type)
        assert_valid_layout(result, n)
        assert [node.id for node in result.nodes] == [node["id"] for node in nodes]
        assert len(result.edges) == len(edges)

    @pytest.mark.parametrize("seed", range(8))
    def test_large_graphs_fit_canvas(self, seed):
        """Past the default threshold the clustered path keeps every node on the canvas."""
        rng = random.Random(100 + seed)
        n = rng.randint(51, 100)
        diagram_type = list(DiagramType)[seed % len(DiagramType)]
        nodes = [{"id": f"v{i}", "label": "x" * rng.randint(0, 6)} for i in range(n)]
        edges = [
            {"from": f"v{rng.randrange(n)}", "to": f"v{rng.randrange(n)}"}
            for _ in range(rng.randint(0, 2 * n))
        ]
        result = LayoutEngine(LayoutConfig(random_seed=seed)).generate_layout(
            nodes, edges, diagram_type
        )
        assert_valid_layout(result, n)
        assert result.metrics["large_graph"] is True
        assert len(result.edges) == len(edges)
