"""
Overlap resolution.

Iteratively pushes overlapping boxes apart until no pair intersects:

1. Each round collects the overlapping pairs (numpy overlap matrix) and
   separates every pair that still overlaps along the line between the box
   centers. The correction is split evenly between the two boxes, and each
   moved box is clamped back into the drawable area.
2. Boxes with identical centers are split along an archetype-specific
   direction: vertical for flow, horizontal for timeline, diagonal for
   tree, a seeded random angle otherwise.
3. Rounds stop when no overlaps remain, after ``max_iterations`` rounds, or
   when the wall-clock deadline passes.
4. Remaining overlaps go through emergency separation: the second box of a
   pair is moved to the first collision-free position on a golden-angle
   spiral around the first box. If none of the candidates is free, the box
   is parked to the right of every other box. Each relocation removes at
   least one overlap, so the pass always terminates with zero overlaps.
"""

from __future__ import annotations

import logging
import math
import random
import time
from dataclasses import asdict, dataclass
from typing import Any, Optional, Sequence

from .base import LayoutStage
from .config import LayoutConfig
from .geometry import (
    clamp_box,
    count_overlaps,
    overlapping_pairs,
    overlaps_any,
    rects_overlap,
    unit_vector,
)
from .types import DiagramType, PositionedNode, WorkingSet

logger = logging.getLogger(__name__)

GOLDEN_ANGLE = math.pi * (3.0 - math.sqrt(5.0))

# Extra separation per unit of node importance
IMPORTANCE_SPACING = 0.5

_EPSILON = 1e-9


@dataclass
class ResolutionStats:
    """Counters of one resolver run."""

    initial_overlaps: int = 0
    iterations: int = 0
    displacements: int = 0
    emergency_relocations: int = 0
    forced_relocations: int = 0
    converged: bool = False
    timed_out: bool = False

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class OverlapResolver(LayoutStage):
    """
    Removes all pairwise box overlaps from a working set.

    Example:
        resolver = OverlapResolver(config, DiagramType.CYCLE, rng=random.Random(7))
        working = resolver.run(working)
        assert resolver.stats.converged or resolver.stats.emergency_relocations
    """

    def __init__(
        self,
        config: Optional[LayoutConfig] = None,
        diagram_type: DiagramType = DiagramType.FLOW,
        *,
        rng: Optional[random.Random] = None,
        deadline: Optional[float] = None,
    ) -> None:
        """
        Initialize the resolver.

        Args:
            config: Layout configuration
            diagram_type: Archetype, selects separation and tie-breaking
            rng: Generator for random-angle tie-breaks (default: seeded from
                ``config.random_seed``)
            deadline: ``time.perf_counter()`` value after which rounds stop.
                Defaults to ``time_budget_ms`` from the start of each run.
        """
        super().__init__(config, diagram_type)
        self._rng = rng if rng is not None else random.Random(self._config.random_seed)
        self._deadline = deadline
        self._stats = ResolutionStats()

    @property
    def stats(self) -> ResolutionStats:
        """Counters of the last run."""
        return self._stats

    def separation_between(self, a: PositionedNode, b: PositionedNode) -> float:
        """Minimum gap for a pair, widened by the more important node."""
        base = self._config.separation_for(self._diagram_type)
        return base * (1.0 + IMPORTANCE_SPACING * max(a.importance, b.importance))

    def resolve(self, nodes: Sequence[PositionedNode]) -> list[PositionedNode]:
        """Return overlap-free copies of ``nodes``."""
        result = [node.copy() for node in nodes]
        self._resolve(result)
        return result

    def _apply(self, working: WorkingSet) -> None:
        self._resolve(working.nodes)

    # -------------------------------------------------------------------------
    # Iterative separation
    # -------------------------------------------------------------------------

    def _resolve(self, nodes: list[PositionedNode]) -> None:
        self._stats = stats = ResolutionStats()
        area = self._config.drawable_area
        deadline = self._deadline
        if deadline is None:
            deadline = time.perf_counter() + self._config.time_budget_ms / 1000.0

        for node in nodes:
            clamp_box(node, area)

        stats.initial_overlaps = count_overlaps(nodes)
        if stats.initial_overlaps == 0:
            stats.converged = True
            return

        for _ in range(self._config.max_iterations):
            if time.perf_counter() > deadline:
                stats.timed_out = True
                logger.warning(
                    "Overlap resolution hit the time budget after %d round(s)", stats.iterations
                )
                break
            pairs = overlapping_pairs(nodes)
            if not pairs:
                break
            stats.iterations += 1
            for i, j in pairs:
                # An earlier move in this round may already have cleared the pair
                if rects_overlap(nodes[i], nodes[j]):
                    self._separate(nodes[i], nodes[j])
                    stats.displacements += 1

        remaining = count_overlaps(nodes)
        stats.converged = remaining == 0
        if remaining:
            logger.warning(
                "%d overlap(s) left after %d round(s); running emergency separation",
                remaining,
                stats.iterations,
            )
            self._emergency_separation(nodes)

        logger.debug(
            "Overlap resolution (%s): %d -> 0 overlaps, %d round(s), %d displacement(s)",
            self._diagram_type.value,
            stats.initial_overlaps,
            stats.iterations,
            stats.displacements,
        )

    def _tie_break_direction(self) -> tuple[float, float]:
        """Direction used to split two boxes with identical centers."""
        if self._diagram_type == DiagramType.FLOW:
            return 0.0, 1.0
        if self._diagram_type == DiagramType.TIMELINE:
            return 1.0, 0.0
        if self._diagram_type == DiagramType.TREE:
            return math.sqrt(0.5), math.sqrt(0.5)
        angle = self._rng.uniform(0.0, 2.0 * math.pi)
        return math.cos(angle), math.sin(angle)

    def _separate(self, a: PositionedNode, b: PositionedNode) -> None:
        """Push ``a`` and ``b`` apart along the line between their centers."""
        ux, uy, dist = unit_vector(a.center, b.center)
        if dist == 0.0:
            ux, uy = self._tie_break_direction()

        sep = self.separation_between(a, b)
        required = (a.w + b.w) / 2 + sep

        # Smallest move along (ux, uy) that opens a gap of ``sep`` on one axis
        clearance = math.inf
        if abs(ux) > _EPSILON:
            gap_x = (a.w + b.w) / 2 + sep - abs(b.cx - a.cx)
            clearance = min(clearance, gap_x / abs(ux))
        if abs(uy) > _EPSILON:
            gap_y = (a.h + b.h) / 2 + sep - abs(b.cy - a.cy)
            clearance = min(clearance, gap_y / abs(uy))

        shift = max(required - dist, clearance)
        half = shift / 2
        a.x -= ux * half
        a.y -= uy * half
        b.x += ux * half
        b.y += uy * half

        area = self._config.drawable_area
        clamp_box(a, area)
        clamp_box(b, area)

    # -------------------------------------------------------------------------
    # Emergency separation
    # -------------------------------------------------------------------------

    def _emergency_separation(self, nodes: list[PositionedNode]) -> None:
        while True:
            pairs = overlapping_pairs(nodes)
            if not pairs:
                return
            i, j = pairs[0]
            self._relocate(nodes, i, j)

    def _relocate(self, nodes: list[PositionedNode], anchor_idx: int, moving_idx: int) -> None:
        """Move ``nodes[moving_idx]`` to a spot that overlaps no other box."""
        anchor = nodes[anchor_idx]
        moving = nodes[moving_idx]
        others = [node for k, node in enumerate(nodes) if k != moving_idx]
        area = self._config.drawable_area
        sep = self.separation_between(anchor, moving)
        reach = math.hypot((anchor.w + moving.w) / 2, (anchor.h + moving.h) / 2) + sep

        candidate = moving.copy()
        for k in range(self._config.emergency_candidates):
            angle = k * GOLDEN_ANGLE
            radius = reach * (1.0 + k / 4.0)
            candidate.move_center_to(
                anchor.cx + radius * math.cos(angle),
                anchor.cy + radius * math.sin(angle),
            )
            clamp_box(candidate, area)
            if not overlaps_any(candidate, others):
                moving.x, moving.y = candidate.x, candidate.y
                self._stats.emergency_relocations += 1
                return

        # No free spiral position: park the box right of everything else
        moving.x = max(node.right for node in others) + sep
        moving.y = min(max(moving.y, area.min_y), max(area.min_y, area.max_y - moving.h))
        self._stats.emergency_relocations += 1
        self._stats.forced_relocations += 1
        logger.warning(
            "No free position near %r after %d candidates; placed at x=%.1f",
            moving.id,
            self._config.emergency_candidates,
            moving.x,
        )


__all__ = ["GOLDEN_ANGLE", "ResolutionStats", "OverlapResolver"]
