"""
Layout configuration.

LayoutConfig is supplied once per invocation by the hosting pipeline and is
never mutated mid-run; use ``replace()`` (or ``LayoutEngine.update_config``)
between calls. ConfidencePolicy holds the heuristic weights of the
evaluator's confidence score.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional, Union

from .types import Bounds, DiagramType, RankDirection
from .validation import (
    ValidationError,
    validate_canvas_size,
    validate_iterations,
    validate_non_negative,
    validate_positive,
)

# Minimum gap kept between two boxes, per archetype. Tree and cycle drawings
# get more room; timelines and matrices are expected to look compact.
DEFAULT_MIN_SEPARATION: dict[DiagramType, float] = {
    DiagramType.FLOW: 30.0,
    DiagramType.TREE: 40.0,
    DiagramType.TIMELINE: 20.0,
    DiagramType.CYCLE: 40.0,
    DiagramType.MATRIX: 20.0,
}

# camelCase keys used by the hosting pipeline
_CAMEL_CASE_KEYS = {
    "nodeWidth": "node_width",
    "nodeHeight": "node_height",
    "marginX": "margin_x",
    "marginY": "margin_y",
    "rankDirection": "rank_direction",
    "nodeSeparation": "node_separation",
    "edgeSeparation": "edge_separation",
    "rankSeparation": "rank_separation",
    "maxNodeWidth": "max_node_width",
    "maxIterations": "max_iterations",
    "emergencyCandidates": "emergency_candidates",
    "timeBudgetMs": "time_budget_ms",
    "largeGraphThreshold": "large_graph_threshold",
    "maxClusterSize": "max_cluster_size",
    "iterationLevel": "iteration_level",
    "allowSelfLoops": "allow_self_loops",
    "randomSeed": "random_seed",
}


@dataclass(frozen=True)
class ConfidencePolicy:
    """
    Additive scoring policy for layout confidence.

    The score starts at ``base``, gains ``zero_overlap_bonus`` when no boxes
    overlap (otherwise loses ``overlap_penalty`` per overlapping pair), gains
    ``fast_bonus`` below ``fast_threshold_ms`` or loses ``slow_penalty`` above
    ``slow_threshold_ms``, gains ``structure_bonus`` for a non-empty graph and
    loses ``out_of_bounds_penalty`` when the drawing does not fit the canvas.
    The result is clamped to [0, 1].
    """

    base: float = 0.8
    zero_overlap_bonus: float = 0.15
    overlap_penalty: float = 0.1
    fast_threshold_ms: float = 2000.0
    fast_bonus: float = 0.05
    slow_threshold_ms: float = 5000.0
    slow_penalty: float = 0.1
    structure_bonus: float = 0.05
    out_of_bounds_penalty: float = 0.1

    def score(
        self,
        overlap_count: int,
        processing_time_ms: float,
        node_count: int,
        within_canvas: bool = True,
    ) -> float:
        confidence = self.base

        if overlap_count == 0:
            confidence += self.zero_overlap_bonus
        else:
            confidence -= overlap_count * self.overlap_penalty

        if processing_time_ms < self.fast_threshold_ms:
            confidence += self.fast_bonus
        elif processing_time_ms > self.slow_threshold_ms:
            confidence -= self.slow_penalty

        if node_count > 0:
            confidence += self.structure_bonus

        if not within_canvas:
            confidence -= self.out_of_bounds_penalty

        return max(0.0, min(1.0, confidence))


@dataclass(frozen=True)
class LayoutConfig:
    """
    Canvas, spacing and tuning parameters for one layout invocation.

    Attributes:
        width, height: Canvas size
        node_width, node_height: Default box size (width is the minimum
            label-derived width)
        margin_x, margin_y: Canvas margins; boxes are kept inside them
        rank_direction: Rank direction of the layered layout ("TB" or "LR")
        node_separation: Gap between nodes of the same rank
        edge_separation: Gap between parallel edge attachment points
        rank_separation: Gap between consecutive ranks
        max_node_width: Upper clamp for label-derived widths
        char_width, label_padding: Label width estimate parameters
        max_iterations: Overlap resolution round budget
        emergency_candidates: Spiral positions tried per emergency relocation
        time_budget_ms: Wall-clock budget of one invocation
        large_graph_threshold: Node count above which the clustered
            large-graph strategy is used
        max_cluster_size: Largest cluster of the large-graph strategy
        iteration_level: 1 = base pipeline, 2 = aesthetic optimization,
            3+ = advanced optimization
        min_separation: Minimum box separation per archetype
        allow_self_loops: Accept edges from a node to itself
        random_seed: Seed for tie-breaking nudges (None = nondeterministic)
        confidence: Confidence scoring policy
    """

    width: float = 1920.0
    height: float = 1080.0
    node_width: float = 120.0
    node_height: float = 60.0
    margin_x: float = 50.0
    margin_y: float = 50.0
    rank_direction: Union[RankDirection, str] = RankDirection.TB
    node_separation: float = 50.0
    edge_separation: float = 10.0
    rank_separation: float = 50.0
    max_node_width: float = 320.0
    char_width: float = 8.0
    label_padding: float = 20.0
    max_iterations: int = 50
    emergency_candidates: int = 20
    time_budget_ms: float = 5000.0
    large_graph_threshold: int = 50
    max_cluster_size: int = 8
    iteration_level: int = 1
    min_separation: Mapping[DiagramType, float] = field(
        default_factory=lambda: dict(DEFAULT_MIN_SEPARATION)
    )
    allow_self_loops: bool = True
    random_seed: Optional[int] = None
    confidence: ConfidencePolicy = field(default_factory=ConfidencePolicy)

    def __post_init__(self) -> None:
        validate_canvas_size((self.width, self.height))
        validate_positive("node_width", self.node_width)
        validate_positive("node_height", self.node_height)
        validate_positive("char_width", self.char_width)
        for name in (
            "margin_x",
            "margin_y",
            "node_separation",
            "edge_separation",
            "rank_separation",
            "label_padding",
            "time_budget_ms",
        ):
            validate_non_negative(name, getattr(self, name))
        if self.max_node_width < self.node_width:
            raise ValidationError(
                f"max_node_width ({self.max_node_width}) must be >= node_width ({self.node_width})"
            )
        if 2 * self.margin_x >= self.width or 2 * self.margin_y >= self.height:
            raise ValidationError("Margins leave no drawable area on the canvas")
        validate_iterations(self.max_iterations)
        validate_iterations(self.emergency_candidates)
        if self.large_graph_threshold < 1:
            raise ValidationError(
                f"large_graph_threshold must be >= 1, got {self.large_graph_threshold}"
            )
        if self.max_cluster_size < 1:
            raise ValidationError(f"max_cluster_size must be >= 1, got {self.max_cluster_size}")
        if self.iteration_level < 1:
            raise ValidationError(f"iteration_level must be >= 1, got {self.iteration_level}")

        raw = self.rank_direction
        if isinstance(raw, RankDirection):
            raw = raw.value
        try:
            direction = RankDirection(str(raw).upper())
        except ValueError:
            raise ValidationError(
                f"rank_direction must be 'TB' or 'LR', got {self.rank_direction!r}"
            ) from None
        object.__setattr__(self, "rank_direction", direction)

        separation = dict(DEFAULT_MIN_SEPARATION)
        for key, value in self.min_separation.items():
            try:
                diagram_type = DiagramType(key)
            except ValueError:
                raise ValidationError(
                    f"min_separation has unknown diagram type {key!r}"
                ) from None
            separation[diagram_type] = validate_non_negative(f"min_separation[{key}]", value)
        object.__setattr__(self, "min_separation", separation)

    # -------------------------------------------------------------------------
    # Derived values
    # -------------------------------------------------------------------------

    @property
    def drawable_area(self) -> Bounds:
        """Region inside the margins where boxes are kept."""
        return Bounds(
            self.margin_x,
            self.margin_y,
            self.width - self.margin_x,
            self.height - self.margin_y,
        )

    def separation_for(self, diagram_type: DiagramType) -> float:
        return self.min_separation[diagram_type]

    def node_width_for(self, label: str) -> float:
        """Estimate a box width from the label length, clamped to the configured range."""
        estimate = len(label) * self.char_width + 2 * self.label_padding
        return max(self.node_width, min(self.max_node_width, estimate))

    # -------------------------------------------------------------------------
    # Construction helpers
    # -------------------------------------------------------------------------

    def replace(self, **changes: Any) -> LayoutConfig:
        """Return a validated copy with the given fields changed."""
        return dataclasses.replace(self, **changes)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> LayoutConfig:
        """
        Build a config from snake_case or the pipeline's camelCase keys.

        Raises:
            ValidationError: If a key is not a known configuration field
        """
        known = {f.name for f in dataclasses.fields(cls)}
        kwargs: dict[str, Any] = {}
        for key, value in data.items():
            name = _CAMEL_CASE_KEYS.get(key, key)
            if name not in known:
                raise ValidationError(f"Unknown layout configuration key {key!r}")
            kwargs[name] = value
        if isinstance(kwargs.get("confidence"), Mapping):
            kwargs["confidence"] = ConfidencePolicy(**kwargs["confidence"])
        return cls(**kwargs)


__all__ = [
    "DEFAULT_MIN_SEPARATION",
    "ConfidencePolicy",
    "LayoutConfig",
]
