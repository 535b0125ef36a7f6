"""
Geometry primitives for node boxes.

Boxes are axis-aligned rectangles given by their top-left corner and size
(any object with ``x``, ``y``, ``w``, ``h`` attributes). Two boxes overlap
when their interiors intersect; boxes that merely touch do not overlap.

Pairwise tests over whole node sets are vectorised with numpy.
"""

from __future__ import annotations

import math
from typing import Protocol, Sequence

import numpy as np

from .types import Bounds, Point


class Box(Protocol):
    x: float
    y: float
    w: float
    h: float


def rects_overlap(a: Box, b: Box) -> bool:
    """Check whether two boxes overlap (zero tolerance, touching is allowed)."""
    return a.x < b.x + b.w and b.x < a.x + a.w and a.y < b.y + b.h and b.y < a.y + a.h


def box_arrays(boxes: Sequence[Box]) -> tuple[np.ndarray, np.ndarray, np.ndarray, np.ndarray]:
    """Coordinate arrays (x, y, w, h) of a box set."""
    x = np.fromiter((b.x for b in boxes), dtype=float, count=len(boxes))
    y = np.fromiter((b.y for b in boxes), dtype=float, count=len(boxes))
    w = np.fromiter((b.w for b in boxes), dtype=float, count=len(boxes))
    h = np.fromiter((b.h for b in boxes), dtype=float, count=len(boxes))
    return x, y, w, h


def overlap_matrix(boxes: Sequence[Box]) -> np.ndarray:
    """
    Compute the symmetric n x n boolean overlap matrix of a box set.

    The diagonal is False.
    """
    n = len(boxes)
    if n == 0:
        return np.zeros((0, 0), dtype=bool)

    x, y, w, h = box_arrays(boxes)
    right = x + w
    bottom = y + h

    overlap_x = (x[:, None] < right[None, :]) & (x[None, :] < right[:, None])
    overlap_y = (y[:, None] < bottom[None, :]) & (y[None, :] < bottom[:, None])
    matrix = overlap_x & overlap_y
    np.fill_diagonal(matrix, False)
    return matrix


def overlapping_pairs(boxes: Sequence[Box]) -> list[tuple[int, int]]:
    """Return all overlapping index pairs (i, j) with i < j, in row-major order."""
    if len(boxes) < 2:
        return []
    upper = np.triu(overlap_matrix(boxes), k=1)
    return [(int(i), int(j)) for i, j in np.argwhere(upper)]


def count_overlaps(boxes: Sequence[Box]) -> int:
    """Count overlapping box pairs."""
    if len(boxes) < 2:
        return 0
    return int(np.count_nonzero(np.triu(overlap_matrix(boxes), k=1)))


def overlaps_any(box: Box, others: Sequence[Box]) -> bool:
    """Check whether ``box`` overlaps any box of ``others``."""
    if not others:
        return False
    x, y, w, h = box_arrays(others)
    hits = (box.x < x + w) & (x < box.x + box.w) & (box.y < y + h) & (y < box.y + box.h)
    return bool(hits.any())


def bounding_box(boxes: Sequence[Box]) -> Bounds:
    """Axis-aligned bounding box of all boxes (zeroed for an empty set)."""
    if not boxes:
        return Bounds()
    x, y, w, h = box_arrays(boxes)
    return Bounds(
        float(x.min()),
        float(y.min()),
        float((x + w).max()),
        float((y + h).max()),
    )


def box_center(box: Box) -> Point:
    return Point(box.x + box.w / 2, box.y + box.h / 2)


def distance(p: Point, q: Point) -> float:
    return math.hypot(q.x - p.x, q.y - p.y)


def unit_vector(p: Point, q: Point) -> tuple[float, float, float]:
    """
    Unit vector pointing from p to q.

    Returns:
        (ux, uy, length). For coincident points the vector is (0, 0) and the
        length is 0; callers decide how to break the tie.
    """
    dx = q.x - p.x
    dy = q.y - p.y
    length = math.hypot(dx, dy)
    if length == 0.0:
        return 0.0, 0.0, 0.0
    return dx / length, dy / length, length


def clamp_box(box: Box, area: Bounds) -> None:
    """
    Move ``box`` so that it lies inside ``area``.

    A box larger than the area is pinned to the area's top-left corner.
    """
    max_x = area.max_x - box.w
    max_y = area.max_y - box.h
    box.x = area.min_x if max_x < area.min_x else min(max(box.x, area.min_x), max_x)
    box.y = area.min_y if max_y < area.min_y else min(max(box.y, area.min_y), max_y)


def contains(area: Bounds, inner: Bounds, tolerance: float = 1e-6) -> bool:
    """Check whether ``inner`` lies within ``area``."""
    return (
        inner.min_x >= area.min_x - tolerance
        and inner.min_y >= area.min_y - tolerance
        and inner.max_x <= area.max_x + tolerance
        and inner.max_y <= area.max_y + tolerance
    )


def segments_intersect(
    p1: tuple[float, float],
    p2: tuple[float, float],
    p3: tuple[float, float],
    p4: tuple[float, float],
) -> bool:
    """Check if line segments (p1,p2) and (p3,p4) properly intersect."""

    def ccw(a: tuple[float, float], b: tuple[float, float], c: tuple[float, float]) -> bool:
        return (c[1] - a[1]) * (b[0] - a[0]) > (b[1] - a[1]) * (c[0] - a[0])

    return ccw(p1, p3, p4) != ccw(p2, p3, p4) and ccw(p1, p2, p3) != ccw(p1, p2, p4)


__all__ = [
    "Box",
    "box_arrays",
    "rects_overlap",
    "overlap_matrix",
    "overlapping_pairs",
    "count_overlaps",
    "overlaps_any",
    "bounding_box",
    "box_center",
    "distance",
    "unit_vector",
    "clamp_box",
    "contains",
    "segments_intersect",
]
