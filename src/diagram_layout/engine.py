"""
Layout orchestrator.

LayoutEngine sequences the pipeline as a state machine:

    START -> BASE_PLACEMENT -> FIRST_OVERLAP_PASS -> [AESTHETIC_OPTIMIZATION]
          -> EDGE_ROUTING -> FINAL_OVERLAP_PASS -> EVALUATE -> DONE

Any exception moves the machine to FAILED and produces ``success=False``
with an empty layout; ``generate_layout`` never raises. Graphs above
``config.large_graph_threshold`` nodes are placed by ClusteredLayout, which
already optimizes at cluster granularity, so the node-level optimizer is
skipped for them. A first-pass result that leaves the drawable area is
repacked into rows by PackedLayout. Listener errors are logged, never raised.

Each invocation works on private copies of its input and owns its random
generator, so independent invocations can run concurrently.
"""

from __future__ import annotations

import logging
import random
import time
from typing import Any, Mapping, Optional, Sequence, Union

from .base import EventEmitter
from .config import LayoutConfig
from .geometry import bounding_box, contains
from .metrics import evaluate
from .optimizer import AestheticOptimizer
from .overlap import OverlapResolver
from .placement import ClusteredLayout, LayeredLayout, PackedLayout, fallback_layout
from .routing import EdgeRouter
from .types import (
    DiagramType,
    EdgeLike,
    EdgeSpec,
    Event,
    EventCallback,
    EventType,
    LayoutResult,
    NodeLike,
    NodeSpec,
    PipelineStage,
    RankDirection,
    WorkingSet,
)
from .validation import LayoutError, ValidationError, validate_diagram_type, validate_graph

logger = logging.getLogger(__name__)


def _elapsed_ms(start: float) -> float:
    return (time.perf_counter() - start) * 1000.0


class LayoutEngine(EventEmitter):
    """
    Produces positioned, overlap-free diagrams from attributed graphs.

    Example:
        engine = LayoutEngine(LayoutConfig(random_seed=7))
        engine.on("tick", lambda e: print(e["stage"], e["elapsed_ms"]))
        result = engine.generate_layout(
            nodes=[{"id": "a", "label": "Start"}, {"id": "b", "label": "End"}],
            edges=[{"from": "a", "to": "b"}],
            diagram_type="flow",
        )
        assert result.success
    """

    def __init__(
        self,
        config: Optional[LayoutConfig] = None,
        *,
        on_start: Optional[EventCallback] = None,
        on_tick: Optional[EventCallback] = None,
        on_end: Optional[EventCallback] = None,
    ) -> None:
        super().__init__(on_start=on_start, on_tick=on_tick, on_end=on_end)
        self._config = config if config is not None else LayoutConfig()
        self._state = PipelineStage.START

    # -------------------------------------------------------------------------
    # Properties
    # -------------------------------------------------------------------------

    @property
    def config(self) -> LayoutConfig:
        """Configuration used by the next invocation."""
        return self._config

    @config.setter
    def config(self, value: LayoutConfig) -> None:
        self._config = value

    @property
    def state(self) -> PipelineStage:
        """Current (or final) state of the most recent invocation."""
        return self._state

    def update_config(self, **changes: Any) -> LayoutConfig:
        """
        Replace configuration fields between invocations.

        Raises:
            ValidationError: If the changed configuration is invalid
        """
        self._config = self._config.replace(**changes)
        return self._config

    def next_iteration(self) -> int:
        """Raise the iteration level by one and return the new level."""
        self._config = self._config.replace(iteration_level=self._config.iteration_level + 1)
        return self._config.iteration_level

    # -------------------------------------------------------------------------
    # Layout
    # -------------------------------------------------------------------------

    def generate_layout(
        self,
        nodes: Sequence[NodeLike],
        edges: Sequence[EdgeLike] = (),
        diagram_type: Union[DiagramType, str] = DiagramType.FLOW,
    ) -> LayoutResult:
        """
        Lay out a graph.

        Args:
            nodes: Nodes as NodeSpec objects or payload dicts
            edges: Edges as EdgeSpec objects or payload dicts ({"from", "to"})
            diagram_type: Archetype name or DiagramType

        Returns:
            LayoutResult; ``success=False`` with ``error`` set on any failure
        """
        start = time.perf_counter()
        config = self._config
        self._state = PipelineStage.START
        self._emit({"type": EventType.start, "stage": PipelineStage.START, "elapsed_ms": 0.0})

        try:
            result = self._run(nodes, edges, diagram_type, config, start)
        except ValidationError as e:
            logger.warning("Layout input rejected: %s", e)
            result = self._fail(str(e), start)
        except Exception as e:
            logger.exception("Layout failed during %s", self._state.value)
            result = self._fail(f"Layout failed during {self._state.value}: {e}", start)

        self._emit(
            {
                "type": EventType.end,
                "stage": self._state,
                "elapsed_ms": result.processing_time_ms,
                "node_count": len(result.nodes),
                "result": result,
            }
        )
        return result

    def _fail(self, error: str, start: float) -> LayoutResult:
        self._state = PipelineStage.FAILED
        result = LayoutResult.failed(error, _elapsed_ms(start))
        self._tick(start, 0)
        return result

    def _emit(self, event: Event) -> None:
        """Notify the listener; a failing listener is logged and never aborts the layout."""
        try:
            self.trigger(event)
        except Exception:
            logger.exception("Layout event listener for %s failed", event.get("type"))

    def _enter(self, stage: PipelineStage) -> None:
        logger.debug("Entering stage %s", stage.value)
        self._state = stage

    def _tick(self, start: float, node_count: int) -> None:
        self._emit(
            {
                "type": EventType.tick,
                "stage": self._state,
                "elapsed_ms": _elapsed_ms(start),
                "node_count": node_count,
            }
        )

    def _run(
        self,
        nodes: Sequence[NodeLike],
        edges: Sequence[EdgeLike],
        diagram_type: Union[DiagramType, str],
        config: LayoutConfig,
        start: float,
    ) -> LayoutResult:
        diagram_type = validate_diagram_type(diagram_type)
        specs = [NodeSpec.from_any(node) for node in (nodes or ())]
        edge_specs = [EdgeSpec.from_any(edge) for edge in (edges or ())]
        validate_graph(specs, edge_specs, config.allow_self_loops)

        n = len(specs)
        rng = random.Random(config.random_seed)
        deadline = start + config.time_budget_ms / 1000.0
        large = n > config.large_graph_threshold

        self._enter(PipelineStage.BASE_PLACEMENT)
        clusters = 0
        if large:
            clustered = ClusteredLayout(config, diagram_type, rng=rng, deadline=deadline)
            working = clustered.place(specs, edge_specs)
            clusters = len(clustered.clusters)
            logger.info(
                "Large graph (%d nodes > %d): clustered into %d group(s)",
                n,
                config.large_graph_threshold,
                clusters,
            )
        else:
            working = self._base_placement(specs, edge_specs, diagram_type, config)
        self._tick(start, n)

        self._enter(PipelineStage.FIRST_OVERLAP_PASS)
        first_pass = OverlapResolver(config, diagram_type, rng=rng, deadline=deadline)
        working = first_pass.run(working)
        packed = bool(working.nodes) and not contains(
            config.drawable_area, bounding_box(working.nodes)
        )
        if packed:
            logger.info("Placement does not fit the canvas; packing %d node(s) into rows", n)
            nodes_packed = PackedLayout(config, diagram_type).arrange(working.nodes)
            working = WorkingSet(nodes_packed, working.edges)
        self._tick(start, n)

        if not large and config.iteration_level >= 2:
            self._enter(PipelineStage.AESTHETIC_OPTIMIZATION)
            working = AestheticOptimizer(config, diagram_type).run(working)
            self._tick(start, n)

        self._enter(PipelineStage.EDGE_ROUTING)
        router = EdgeRouter(config, diagram_type)
        working = router.run(working)
        self._tick(start, n)

        # Nodes may move again here, so edges are re-attached afterwards
        self._enter(PipelineStage.FINAL_OVERLAP_PASS)
        final_pass = OverlapResolver(config, diagram_type, rng=rng, deadline=deadline)
        working = router.run(final_pass.run(working))
        self._tick(start, n)

        self._enter(PipelineStage.EVALUATE)
        evaluation = evaluate(working.nodes, working.edges, config, _elapsed_ms(start))
        metrics: dict[str, Any] = dict(evaluation.metrics)
        metrics.update(
            {
                "diagram_type": diagram_type.value,
                "node_count": n,
                "edge_count": len(edge_specs),
                "iteration_level": config.iteration_level,
                "large_graph": large,
                "clusters": clusters,
                "packed": packed,
                "first_pass": first_pass.stats.to_dict(),
                "final_pass": final_pass.stats.to_dict(),
            }
        )
        result = LayoutResult(
            nodes=working.nodes,
            edges=working.edges,
            bounds=evaluation.bounds,
            processing_time_ms=evaluation.processing_time_ms,
            success=True,
            confidence=evaluation.confidence,
            metrics=metrics,
            compliance=evaluation.compliance,
        )
        logger.info(
            "Layout %s: %d node(s), %d edge(s), confidence %.2f in %.1f ms, compliance %s",
            diagram_type.value,
            n,
            len(edge_specs),
            result.confidence,
            result.processing_time_ms,
            result.compliance,
        )
        self._tick(start, n)

        self._state = PipelineStage.DONE
        return result

    def _base_placement(
        self,
        specs: Sequence[NodeSpec],
        edges: Sequence[EdgeSpec],
        diagram_type: DiagramType,
        config: LayoutConfig,
    ) -> WorkingSet:
        """Layered placement for flow and tree, the archetype fallback otherwise."""
        if diagram_type in (DiagramType.FLOW, DiagramType.TREE):
            direction = RankDirection.TB if diagram_type == DiagramType.TREE else None
            try:
                return LayeredLayout(config, rank_direction=direction).place(specs, edges)
            except (LayoutError, ArithmeticError, LookupError) as e:
                logger.warning(
                    "Layered placement failed (%s); using %s fallback", e, diagram_type.value
                )
        return fallback_layout(diagram_type, config).place(specs, edges)


def layout_diagram(
    payload: Mapping[str, Any],
    config: Union[LayoutConfig, Mapping[str, Any], None] = None,
) -> LayoutResult:
    """
    Lay out a ``{"nodes", "edges", "diagramType"}`` payload.

    ``config`` may be a LayoutConfig or a mapping with snake_case or
    camelCase keys. Like ``LayoutEngine.generate_layout`` this never raises.
    """
    if not isinstance(payload, Mapping):
        return LayoutResult.failed("Layout payload must be a mapping", 0.0)
    if config is not None and not isinstance(config, LayoutConfig):
        try:
            config = LayoutConfig.from_dict(config)
        except (ValidationError, TypeError, ValueError) as e:
            logger.warning("Invalid layout configuration: %s", e)
            return LayoutResult.failed(f"Invalid layout configuration: {e}", 0.0)

    engine = LayoutEngine(config)
    return engine.generate_layout(
        payload.get("nodes") or [],
        payload.get("edges") or [],
        payload.get("diagramType", payload.get("diagram_type", DiagramType.FLOW)),
    )


__all__ = ["LayoutEngine", "layout_diagram"]
