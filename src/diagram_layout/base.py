"""
Base classes for the layout pipeline.

This module provides the abstract bases shared by the pipeline components:

- EventEmitter: start/tick/end event system used by the orchestrator
- PlacementStrategy: Produces the initial working set from the graph input
- LayoutStage: A transform that receives a working set and returns a new one
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Optional, Sequence

if TYPE_CHECKING:
    from typing_extensions import Self

from .config import LayoutConfig
from .types import (
    DiagramType,
    EdgeSpec,
    Event,
    EventCallback,
    EventType,
    NodeSpec,
    PositionedNode,
    RoutedEdge,
    WorkingSet,
)


class EventEmitter:
    """
    Minimal event system.

    One callback per event type; registering again replaces the callback.
    """

    def __init__(
        self,
        on_start: Optional[EventCallback] = None,
        on_tick: Optional[EventCallback] = None,
        on_end: Optional[EventCallback] = None,
    ) -> None:
        self._events: dict[EventType, EventCallback] = {}
        if on_start:
            self._events[EventType.start] = on_start
        if on_tick:
            self._events[EventType.tick] = on_tick
        if on_end:
            self._events[EventType.end] = on_end

    def on(self, event: EventType | str, callback: EventCallback) -> Self:
        """
        Subscribe to a lifecycle event.

        Args:
            event: Event type (EventType enum or string name)
            callback: Function to call when event fires

        Returns:
            self (for chaining)
        """
        if isinstance(event, str):
            event = EventType[event]
        self._events[event] = callback
        return self

    def trigger(self, event: Event) -> None:
        """Call the callback registered for the event's type, if any."""
        event_type = event.get("type")
        if event_type is not None and event_type in self._events:
            self._events[event_type](event)


class PlacementStrategy(ABC):
    """
    Abstract base for initial placement strategies.

    A strategy sizes the nodes from their labels, arranges them on the
    canvas and attaches straight routed edges. ``arrange`` never modifies
    its input.
    """

    def __init__(self, config: Optional[LayoutConfig] = None) -> None:
        self._config = config if config is not None else LayoutConfig()

    @property
    def config(self) -> LayoutConfig:
        return self._config

    def size_nodes(self, specs: Sequence[NodeSpec]) -> list[PositionedNode]:
        """Create boxes with label-derived widths and the configured height."""
        config = self._config
        return [
            PositionedNode.from_spec(spec, config.node_width_for(spec.label), config.node_height)
            for spec in specs
        ]

    @abstractmethod
    def arrange(
        self,
        nodes: Sequence[PositionedNode],
        edges: Sequence[EdgeSpec] = (),
    ) -> list[PositionedNode]:
        """Return positioned copies of pre-sized nodes."""
        pass

    def place(self, specs: Sequence[NodeSpec], edges: Sequence[EdgeSpec]) -> WorkingSet:
        """Size, arrange and route a graph into a fresh working set."""
        from .routing import EdgeRouter

        nodes = self.arrange(self.size_nodes(specs), edges)
        routed = [RoutedEdge(edge.source, edge.target, edge.label) for edge in edges]
        return EdgeRouter(self._config).run(WorkingSet(nodes, routed))


class LayoutStage(ABC):
    """
    Abstract base for pipeline stages.

    ``run`` copies the incoming working set and transforms the copy, so the
    caller's snapshot is never aliased or modified.
    """

    def __init__(
        self,
        config: Optional[LayoutConfig] = None,
        diagram_type: DiagramType = DiagramType.FLOW,
    ) -> None:
        self._config = config if config is not None else LayoutConfig()
        self._diagram_type = DiagramType(diagram_type)

    @property
    def config(self) -> LayoutConfig:
        return self._config

    @property
    def diagram_type(self) -> DiagramType:
        return self._diagram_type

    def run(self, working: WorkingSet) -> WorkingSet:
        """Return a transformed copy of ``working``."""
        result = working.copy()
        self._apply(result)
        return result

    @abstractmethod
    def _apply(self, working: WorkingSet) -> None:
        """Transform a private working set in place."""
        pass


__all__ = ["EventEmitter", "PlacementStrategy", "LayoutStage"]
