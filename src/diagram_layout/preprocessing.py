"""
Graph preprocessing utilities.

This module provides the graph algorithms used before placement:
- Edge indexing (node ids to index pairs)
- Cycle removal
- Bounded connectivity cluster growth
- Longest-path layer assignment
- Barycenter crossing minimization and layered crossing counting

All functions work on ``n`` nodes numbered 0..n-1 and a sequence of
directed ``(source, target)`` index pairs.
"""

from __future__ import annotations

from collections import deque
from typing import Optional, Sequence

from .types import EdgeSpec
from .validation import RankingError

IndexPair = tuple[int, int]


def index_edges(
    node_ids: Sequence[str],
    edges: Sequence[EdgeSpec],
    skip_self_loops: bool = True,
) -> list[IndexPair]:
    """
    Convert id-based edges into index pairs.

    Edges with an endpoint missing from ``node_ids`` are dropped; validate
    the graph first if that should be an error.
    """
    index = {node_id: i for i, node_id in enumerate(node_ids)}
    pairs: list[IndexPair] = []
    for edge in edges:
        src = index.get(edge.source)
        tgt = index.get(edge.target)
        if src is None or tgt is None:
            continue
        if skip_self_loops and src == tgt:
            continue
        pairs.append((src, tgt))
    return pairs


def _outgoing(n: int, pairs: Sequence[IndexPair]) -> list[list[int]]:
    adj: list[list[int]] = [[] for _ in range(n)]
    for src, tgt in pairs:
        if 0 <= src < n and 0 <= tgt < n:
            adj[src].append(tgt)
    return adj


# =============================================================================
# Cycle Removal
# =============================================================================


def remove_cycles(n: int, pairs: Sequence[IndexPair]) -> tuple[list[IndexPair], set[int]]:
    """
    Break cycles by reversing DFS back edges.

    This is a greedy feedback arc set approximation.

    Returns:
        Tuple of (new_pairs, reversed_indices) where ``reversed_indices``
        holds the positions in ``pairs`` that were reversed.

    Example:
        >>> new_pairs, reversed_idx = remove_cycles(2, [(0, 1), (1, 0)])
        >>> new_pairs, sorted(reversed_idx)
        ([(0, 1), (0, 1)], [1])
    """
    adj: list[list[tuple[int, int]]] = [[] for _ in range(n)]
    for i, (src, tgt) in enumerate(pairs):
        if 0 <= src < n and 0 <= tgt < n:
            adj[src].append((tgt, i))

    state = [0] * n
    reversed_indices: set[int] = set()

    for start in range(n):
        if state[start]:
            continue
        stack: list[tuple[int, int]] = [(start, 0)]
        state[start] = 1
        while stack:
            node, cursor = stack[-1]
            if cursor < len(adj[node]):
                stack[-1] = (node, cursor + 1)
                neighbor, edge_idx = adj[node][cursor]
                if state[neighbor] == 1:
                    reversed_indices.add(edge_idx)
                elif state[neighbor] == 0:
                    state[neighbor] = 1
                    stack.append((neighbor, 0))
            else:
                state[node] = 2
                stack.pop()

    new_pairs = [
        (tgt, src) if i in reversed_indices else (src, tgt) for i, (src, tgt) in enumerate(pairs)
    ]
    return new_pairs, reversed_indices


# =============================================================================
# Clusters
# =============================================================================


def grow_clusters(n: int, pairs: Sequence[IndexPair], max_size: int) -> list[list[int]]:
    """
    Partition nodes into connectivity clusters of at most ``max_size`` nodes.

    Clusters are grown breadth-first from the lowest unassigned index, so
    neighbouring nodes tend to share a cluster. Every node belongs to
    exactly one cluster.
    """
    if max_size < 1:
        raise ValueError(f"max_size must be >= 1, got {max_size}")

    adj: list[list[int]] = [[] for _ in range(n)]
    for src, tgt in pairs:
        if 0 <= src < n and 0 <= tgt < n and src != tgt:
            adj[src].append(tgt)
            adj[tgt].append(src)

    assigned = [False] * n
    clusters: list[list[int]] = []

    for seed in range(n):
        if assigned[seed]:
            continue
        cluster: list[int] = []
        queue: deque[int] = deque([seed])
        queued = {seed}
        while queue and len(cluster) < max_size:
            node = queue.popleft()
            assigned[node] = True
            cluster.append(node)
            for neighbor in adj[node]:
                if not assigned[neighbor] and neighbor not in queued:
                    queued.add(neighbor)
                    queue.append(neighbor)
        clusters.append(cluster)

    return clusters


# =============================================================================
# Layer Assignment
# =============================================================================


def topological_sort(n: int, pairs: Sequence[IndexPair]) -> Optional[list[int]]:
    """
    Compute a topological ordering using Kahn's algorithm.

    Returns:
        List of node indices in topological order, or None if the graph
        has cycles.

    Example:
        >>> topological_sort(3, [(0, 1), (1, 2)])
        [0, 1, 2]
    """
    adj = _outgoing(n, pairs)
    in_degree = [0] * n
    for children in adj:
        for child in children:
            in_degree[child] += 1

    queue: deque[int] = deque(i for i in range(n) if in_degree[i] == 0)
    order: list[int] = []
    while queue:
        node = queue.popleft()
        order.append(node)
        for child in adj[node]:
            in_degree[child] -= 1
            if in_degree[child] == 0:
                queue.append(child)

    return order if len(order) == n else None


def assign_layers_longest_path(n: int, pairs: Sequence[IndexPair]) -> list[list[int]]:
    """
    Assign nodes to layers using the longest path from the sources.

    Sources (no incoming edges) go to layer 0; every other node sits one
    layer below its deepest predecessor. Isolated nodes land in layer 0.

    Returns:
        List of layers, each a list of node indices in ascending order.

    Raises:
        RankingError: If the graph contains a cycle.
    """
    if n == 0:
        return []

    order = topological_sort(n, pairs)
    if order is None:
        raise RankingError("Cannot rank graph: it contains a cycle")

    adj = _outgoing(n, pairs)
    node_layer = [0] * n
    for node in order:
        for child in adj[node]:
            node_layer[child] = max(node_layer[child], node_layer[node] + 1)

    layers: list[list[int]] = [[] for _ in range(max(node_layer) + 1)]
    for i in range(n):
        layers[node_layer[i]].append(i)
    return layers


# =============================================================================
# Crossing Minimization
# =============================================================================


def minimize_crossings_barycenter(
    layers: list[list[int]],
    pairs: Sequence[IndexPair],
    iterations: int = 24,
) -> list[list[int]]:
    """
    Minimize edge crossings between layers using the barycenter heuristic.

    Repeatedly sweeps down and up through the layers, reordering nodes by
    the average position of their neighbors in the adjacent layer. The
    input is not modified.
    """
    if len(layers) < 2:
        return [list(layer) for layer in layers]

    node_layer: dict[int, int] = {}
    for layer_idx, layer in enumerate(layers):
        for node in layer:
            node_layer[node] = layer_idx

    incoming: dict[int, list[int]] = {node: [] for node in node_layer}
    outgoing: dict[int, list[int]] = {node: [] for node in node_layer}
    for src, tgt in pairs:
        if src in node_layer and tgt in node_layer:
            outgoing[src].append(tgt)
            incoming[tgt].append(src)

    result = [list(layer) for layer in layers]
    position: dict[int, int] = {}
    for layer in result:
        for pos, node in enumerate(layer):
            position[node] = pos

    def order_layer(layer_idx: int, adj: dict[int, list[int]]) -> None:
        barycenters: list[tuple[float, int, int]] = []
        for pos, node in enumerate(result[layer_idx]):
            neighbors = adj[node]
            if neighbors:
                avg = sum(position[m] for m in neighbors) / len(neighbors)
            else:
                avg = float(position[node])
            barycenters.append((avg, pos, node))

        barycenters.sort()
        result[layer_idx] = [node for _, _, node in barycenters]
        for pos, node in enumerate(result[layer_idx]):
            position[node] = pos

    for i in range(iterations):
        if i % 2 == 0:
            for layer_idx in range(1, len(result)):
                order_layer(layer_idx, incoming)
        else:
            for layer_idx in range(len(result) - 2, -1, -1):
                order_layer(layer_idx, outgoing)

    return result


def count_crossings(layers: list[list[int]], pairs: Sequence[IndexPair]) -> int:
    """Count edge crossings between layers of a layered drawing."""
    node_layer: dict[int, int] = {}
    node_pos: dict[int, int] = {}
    for layer_idx, layer in enumerate(layers):
        for pos, node in enumerate(layer):
            node_layer[node] = layer_idx
            node_pos[node] = pos

    layer_edges: dict[tuple[int, int], list[tuple[int, int]]] = {}
    for src, tgt in pairs:
        if src not in node_layer or tgt not in node_layer:
            continue
        l1, l2 = node_layer[src], node_layer[tgt]
        if l1 > l2:
            l1, l2 = l2, l1
            src, tgt = tgt, src
        layer_edges.setdefault((l1, l2), []).append((node_pos[src], node_pos[tgt]))

    total = 0
    for edges in layer_edges.values():
        for i, (s1, t1) in enumerate(edges):
            for s2, t2 in edges[i + 1 :]:
                if (s1 < s2 and t1 > t2) or (s1 > s2 and t1 < t2):
                    total += 1
    return total


__all__ = [
    "IndexPair",
    "index_edges",
    "remove_cycles",
    "topological_sort",
    "grow_clusters",
    "assign_layers_longest_path",
    "minimize_crossings_barycenter",
    "count_crossings",
]
