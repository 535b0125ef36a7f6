"""
Edge routing.

Attaches every edge to its endpoint boxes after node positions change:

1. Side selection: compare |dx| and |dy| between the box centers. A
   horizontally dominant edge leaves through the east/west side, a
   vertically dominant one through the north/south side.
2. Port assignment: edges sharing a node side are spread evenly along it,
   ordered by the position of their other endpoint so they do not cross
   at the node. A lone edge attaches at the side midpoint.
3. Polyline: regular edges are straight two-point segments; self-loops get
   a small rectangular loop off the node's north-east corner.

Routing is a pure function of the node boxes, so routing an unchanged node
set again yields identical points.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from typing import Sequence

from .base import LayoutStage
from .types import Point, PositionedNode, RoutedEdge, Side, WorkingSet


@dataclass(frozen=True)
class Port:
    """
    Attachment point of an edge on a node side.

    Attributes:
        node: Index of the node
        side: Side of the node box
        position: Relative position along the side (0 to 1)
    """

    node: int
    side: Side
    position: float = 0.5


def port_position(box: PositionedNode, side: Side, position: float = 0.5) -> Point:
    """Absolute coordinate of a port on ``side`` of ``box``."""
    if side == Side.NORTH:
        return Point(box.x + box.w * position, box.y)
    elif side == Side.SOUTH:
        return Point(box.x + box.w * position, box.y + box.h)
    elif side == Side.EAST:
        return Point(box.x + box.w, box.y + box.h * position)
    else:  # WEST
        return Point(box.x, box.y + box.h * position)


def determine_sides(src: PositionedNode, tgt: PositionedNode) -> tuple[Side, Side]:
    """
    Pick the exit side of ``src`` and the entry side of ``tgt``.

    Ties (|dx| == |dy|, including coincident centers) attach vertically.
    """
    dx = tgt.cx - src.cx
    dy = tgt.cy - src.cy

    if abs(dx) > abs(dy):
        if dx > 0:
            return (Side.EAST, Side.WEST)
        return (Side.WEST, Side.EAST)
    if dy >= 0:
        return (Side.SOUTH, Side.NORTH)
    return (Side.NORTH, Side.SOUTH)


def assign_ports(
    boxes: Sequence[PositionedNode],
    edges: Sequence[tuple[int, int]],
    edge_sides: Sequence[tuple[Side, Side]],
) -> list[tuple[Port, Port]]:
    """
    Assign ports for all edges with proper distribution.

    For k edges on the same node side, positions are (i+1)/(k+1) for
    i in 0..k-1. Entries are ordered along the side by the center of the
    opposite endpoint, ties broken by edge index.

    Args:
        boxes: Node boxes for all nodes.
        edges: Edge list as (source, target) pairs.
        edge_sides: Sides for each edge as (src_side, tgt_side).

    Returns:
        List of (source_port, target_port) for each edge.
    """
    # node_side_edges[node][side] -> list of (sort_key, edge_idx, is_source)
    node_side_edges: dict[int, dict[Side, list[tuple[float, int, bool]]]] = defaultdict(
        lambda: defaultdict(list)
    )

    for ei, ((src, tgt), (src_side, tgt_side)) in enumerate(zip(edges, edge_sides)):
        src_key = _along_side(boxes[tgt], src_side)
        tgt_key = _along_side(boxes[src], tgt_side)
        node_side_edges[src][src_side].append((src_key, ei, True))
        node_side_edges[tgt][tgt_side].append((tgt_key, ei, False))

    offsets: dict[tuple[int, bool], float] = {}
    for sides in node_side_edges.values():
        for entries in sides.values():
            entries.sort()
            k = len(entries)
            for i, (_key, ei, is_source) in enumerate(entries):
                offsets[(ei, is_source)] = (i + 1) / (k + 1)

    result: list[tuple[Port, Port]] = []
    for ei, ((src, tgt), (src_side, tgt_side)) in enumerate(zip(edges, edge_sides)):
        result.append(
            (
                Port(node=src, side=src_side, position=offsets[(ei, True)]),
                Port(node=tgt, side=tgt_side, position=offsets[(ei, False)]),
            )
        )
    return result


def _along_side(other: PositionedNode, side: Side) -> float:
    # Ports on north/south run along x, ports on east/west along y
    return other.cx if side.is_horizontal() else other.cy


def route_self_loop(
    box: PositionedNode,
    port_out: Port,
    port_in: Port,
    edge_separation: float,
) -> list[Point]:
    """
    Route a self-loop as a small rectangle outside a corner of the node.

    The loop leaves through ``port_out``, steps ``edge_separation`` away from
    the box, turns around the corner and re-enters through ``port_in``.

    Returns:
        Five points: start, three bends, end.
    """
    start = port_position(box, port_out.side, port_out.position)
    end = port_position(box, port_in.side, port_in.position)

    def _outward(point: Point, side: Side) -> Point:
        if side == Side.NORTH:
            return Point(point.x, point.y - edge_separation)
        elif side == Side.SOUTH:
            return Point(point.x, point.y + edge_separation)
        elif side == Side.EAST:
            return Point(point.x + edge_separation, point.y)
        else:  # WEST
            return Point(point.x - edge_separation, point.y)

    bend1 = _outward(start, port_out.side)
    bend2 = _outward(end, port_in.side)
    if port_out.side.is_horizontal():
        corner = Point(bend2.x, bend1.y)
    else:
        corner = Point(bend1.x, bend2.y)

    return [start, bend1, corner, bend2, end]


def route_edges(
    nodes: Sequence[PositionedNode],
    edges: Sequence[RoutedEdge],
    edge_separation: float = 10.0,
) -> list[RoutedEdge]:
    """
    Route edges against the current node boxes.

    Returns:
        New RoutedEdge objects in the input order.

    Raises:
        KeyError: If an edge references a node id not in ``nodes``
    """
    index = {node.id: i for i, node in enumerate(nodes)}
    pairs = [(index[edge.source], index[edge.target]) for edge in edges]

    sides: list[tuple[Side, Side]] = []
    for src, tgt in pairs:
        if src == tgt:
            sides.append((Side.EAST, Side.NORTH))
        else:
            sides.append(determine_sides(nodes[src], nodes[tgt]))

    ports = assign_ports(nodes, pairs, sides)

    routed: list[RoutedEdge] = []
    for edge, (src, tgt), (port_out, port_in) in zip(edges, pairs, ports):
        if src == tgt:
            points = route_self_loop(nodes[src], port_out, port_in, edge_separation)
        else:
            points = [
                port_position(nodes[src], port_out.side, port_out.position),
                port_position(nodes[tgt], port_in.side, port_in.position),
            ]
        routed.append(RoutedEdge(edge.source, edge.target, edge.label, points))
    return routed


class EdgeRouter(LayoutStage):
    """
    Pipeline stage that re-attaches every edge to the current node boxes.

    Example:
        router = EdgeRouter(config)
        routed = router.run(working)
    """

    def _apply(self, working: WorkingSet) -> None:
        working.edges = route_edges(working.nodes, working.edges, self._config.edge_separation)


__all__ = [
    "Port",
    "port_position",
    "determine_sides",
    "assign_ports",
    "route_self_loop",
    "route_edges",
    "EdgeRouter",
]
