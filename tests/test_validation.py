"""Tests for input validation module."""

import pytest

from diagram_layout import DiagramType, EdgeSpec, NodeSpec
from diagram_layout.validation import (
    InvalidCanvasSizeError,
    InvalidEdgeError,
    InvalidNodeError,
    UnknownNodeError,
    ValidationError,
    validate_canvas_size,
    validate_diagram_type,
    validate_edges,
    validate_graph,
    validate_iterations,
    validate_nodes,
    validate_non_negative,
)


class TestCanvasSizeValidation:
    """Tests for canvas size validation."""

    def test_valid_size(self):
        """Valid canvas size returns tuple."""
        w, h = validate_canvas_size([800, 600])
        assert w == 800.0
        assert h == 600.0

    def test_zero_width_raises(self):
        """Zero width raises InvalidCanvasSizeError."""
        with pytest.raises(InvalidCanvasSizeError, match="width must be positive"):
            validate_canvas_size([0, 600])

    def test_negative_height_raises(self):
        """Negative height raises InvalidCanvasSizeError."""
        with pytest.raises(InvalidCanvasSizeError, match="height must be positive"):
            validate_canvas_size([800, -100])

    def test_single_element_raises(self):
        """Single element raises InvalidCanvasSizeError."""
        with pytest.raises(InvalidCanvasSizeError, match="must have 2 elements"):
            validate_canvas_size([800])


class TestScalarValidation:
    """Tests for spacing, iteration and archetype validation."""

    def test_non_negative(self):
        assert validate_non_negative("gap", 0) == 0.0
        with pytest.raises(ValidationError, match="gap must be >= 0"):
            validate_non_negative("gap", -1)

    def test_iterations(self):
        assert validate_iterations(1) == 1
        with pytest.raises(ValidationError, match="iterations must be >= 1"):
            validate_iterations(0)

    def test_diagram_type_names(self):
        assert validate_diagram_type("cycle") is DiagramType.CYCLE
        assert validate_diagram_type("MATRIX") is DiagramType.MATRIX
        assert validate_diagram_type(DiagramType.TREE) is DiagramType.TREE

    def test_unknown_diagram_type(self):
        with pytest.raises(ValidationError, match="Unsupported diagram type"):
            validate_diagram_type("venn")


class TestNodeValidation:
    """Tests for node validation."""

    def test_valid_nodes(self):
        nodes = [NodeSpec("a"), NodeSpec("b", metadata={"importance": 0.5})]
        assert validate_nodes(nodes) == []

    def test_empty_node_list_raises(self):
        with pytest.raises(InvalidNodeError, match="Node list is empty"):
            validate_nodes([])

    def test_duplicate_id_raises(self):
        with pytest.raises(InvalidNodeError, match="duplicate id 'a'"):
            validate_nodes([NodeSpec("a"), NodeSpec("a")])

    def test_missing_id_raises(self):
        with pytest.raises(InvalidNodeError, match="id is missing"):
            validate_nodes([NodeSpec("")])

    def test_importance_out_of_range(self):
        with pytest.raises(InvalidNodeError, match="outside"):
            validate_nodes([NodeSpec("a", metadata={"importance": 1.5})])

    def test_importance_not_a_number(self):
        with pytest.raises(InvalidNodeError, match="not a number"):
            validate_nodes([NodeSpec("a", metadata={"importance": "high"})])

    def test_non_strict_returns_issues(self):
        issues = validate_nodes([NodeSpec("a"), NodeSpec("a"), NodeSpec("")], strict=False)
        assert [index for index, _ in issues] == [1, 2]


class TestEdgeValidation:
    """Tests for edge validation."""

    def test_valid_edges(self):
        edges = [EdgeSpec("a", "b"), EdgeSpec("a", "b")]
        assert validate_edges(edges, {"a", "b"}) == []

    def test_unknown_node_raises(self):
        with pytest.raises(UnknownNodeError, match="unknown node 'z'"):
            validate_edges([EdgeSpec("a", "z")], {"a", "b"})

    def test_unknown_node_is_an_edge_error(self):
        with pytest.raises(InvalidEdgeError):
            validate_edges([EdgeSpec("x", "b")], {"a", "b"})

    def test_self_loop_allowed_by_default(self):
        assert validate_edges([EdgeSpec("a", "a")], {"a"}) == []

    def test_self_loop_rejected_when_disallowed(self):
        with pytest.raises(InvalidEdgeError, match="self-loop") as excinfo:
            validate_edges([EdgeSpec("a", "a")], {"a"}, allow_self_loops=False)
        assert not isinstance(excinfo.value, UnknownNodeError)

    def test_non_strict_returns_issues(self):
        issues = validate_edges(
            [EdgeSpec("a", "b"), EdgeSpec("x", "y")], {"a", "b"}, strict=False
        )
        assert len(issues) == 2
        assert all(index == 1 for index, _ in issues)


class TestGraphValidation:
    """Tests for whole-graph validation."""

    def test_valid_graph(self):
        validate_graph([NodeSpec("a"), NodeSpec("b")], [EdgeSpec("a", "b")])

    def test_nodes_checked_before_edges(self):
        with pytest.raises(InvalidNodeError):
            validate_graph([], [EdgeSpec("a", "b")])

    def test_validation_errors_are_value_errors(self):
        with pytest.raises(ValueError):
            validate_graph([NodeSpec("a")], [EdgeSpec("a", "missing")])
