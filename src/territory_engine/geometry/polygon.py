"""
Planar polygon primitives on projected (x, y) meter arrays.

All functions take numpy arrays produced by LocalProjection. A ring is an
(N, 2) array of vertices WITHOUT a repeated closing vertex; edge i runs from
vertex i to vertex (i + 1) % N.
"""

from typing import Sequence

import numpy as np

from ..models import GeoPoint

# Orientation values below this (m^2) count as collinear
_COLLINEAR_EPS = 1e-9


def open_ring(points: Sequence[GeoPoint]) -> list[GeoPoint]:
    """
    Drop a trailing point equal to the first one and consecutive duplicates.

    Returns:
        Vertex list suitable for ring math (implicitly closed)
    """
    ring: list[GeoPoint] = []
    for p in points:
        if ring and p == ring[-1]:
            continue
        ring.append(p)
    while len(ring) > 1 and ring[-1] == ring[0]:
        ring.pop()
    return ring


def signed_area(ring: np.ndarray) -> float:
    """
    Shoelace (surveyor's) formula.

    Returns:
        Positive for counter-clockwise rings, negative for clockwise
    """
    if len(ring) < 3:
        return 0.0
    x = ring[:, 0]
    y = ring[:, 1]
    return 0.5 * float(np.dot(x, np.roll(y, -1)) - np.dot(np.roll(x, -1), y))


def perimeter(ring: np.ndarray) -> float:
    """Length of the closed ring in meters."""
    if len(ring) < 2:
        return 0.0
    return float(np.linalg.norm(np.roll(ring, -1, axis=0) - ring, axis=1).sum())


def find_spike(ring: np.ndarray, ratio: float) -> int | None:
    """
    Index of the first vertex whose incoming and outgoing edges are both
    longer than ratio times the median edge length.

    Needs at least 5 vertices so one spike's two edges cannot shift the median.
    """
    if len(ring) < 5:
        return None
    edges = np.linalg.norm(np.roll(ring, -1, axis=0) - ring, axis=1)
    reference = float(np.median(edges))
    if reference <= 0:
        return None
    shorter = np.minimum(np.roll(edges, 1), edges)
    spikes = np.flatnonzero(shorter > ratio * reference)
    return int(spikes[0]) if len(spikes) else None


def contains_point(ring: np.ndarray, point: np.ndarray) -> bool:
    """
    Even-odd ray casting test.

    Points exactly on an edge may fall either way; callers that need a
    defined on-boundary answer combine this with distance_to_ring.
    """
    if len(ring) < 3:
        return False
    x, y = float(point[0]), float(point[1])
    xi = ring[:, 0]
    yi = ring[:, 1]
    xj = np.roll(xi, 1)
    yj = np.roll(yi, 1)

    straddles = (yi > y) != (yj > y)
    with np.errstate(divide="ignore", invalid="ignore"):
        x_cross = (xj - xi) * (y - yi) / (yj - yi) + xi
    crossings = straddles & (x < x_cross)
    return bool(np.count_nonzero(crossings) % 2 == 1)


def distance_to_ring(ring: np.ndarray, point: np.ndarray) -> float:
    """Minimum distance in meters from point to any edge of the ring."""
    if len(ring) == 0:
        return float("inf")
    if len(ring) == 1:
        return float(np.linalg.norm(ring[0] - point))

    starts = ring
    ends = np.roll(ring, -1, axis=0)
    edge = ends - starts
    length_sq = np.einsum("ij,ij->i", edge, edge)
    to_point = point - starts

    with np.errstate(divide="ignore", invalid="ignore"):
        t = np.einsum("ij,ij->i", to_point, edge) / length_sq
    t = np.where(length_sq > 0, np.clip(t, 0.0, 1.0), 0.0)
    nearest = starts + edge * t[:, None]
    return float(np.linalg.norm(nearest - point, axis=1).min())


def _orientation(a: np.ndarray, b: np.ndarray, c: np.ndarray) -> np.ndarray:
    """Cross product (b - a) x (c - a), broadcast over leading dimensions."""
    return (b[..., 0] - a[..., 0]) * (c[..., 1] - a[..., 1]) - (b[..., 1] - a[..., 1]) * (
        c[..., 0] - a[..., 0]
    )


def _within_bbox(a: np.ndarray, b: np.ndarray, c: np.ndarray) -> np.ndarray:
    """True where c lies in the bounding box of segment a-b."""
    return (
        (np.minimum(a[..., 0], b[..., 0]) - _COLLINEAR_EPS <= c[..., 0])
        & (c[..., 0] <= np.maximum(a[..., 0], b[..., 0]) + _COLLINEAR_EPS)
        & (np.minimum(a[..., 1], b[..., 1]) - _COLLINEAR_EPS <= c[..., 1])
        & (c[..., 1] <= np.maximum(a[..., 1], b[..., 1]) + _COLLINEAR_EPS)
    )


def segment_hits(p1: np.ndarray, p2: np.ndarray, starts: np.ndarray, ends: np.ndarray) -> np.ndarray:
    """
    Test one segment p1-p2 against many segments at once.

    Touching (an endpoint on the other segment, or collinear overlap)
    counts as intersecting.

    Returns:
        Boolean mask, one entry per (starts[i], ends[i]) segment
    """
    d1 = _orientation(starts, ends, p1)
    d2 = _orientation(starts, ends, p2)
    d3 = _orientation(p1, p2, starts)
    d4 = _orientation(p1, p2, ends)

    proper = (d1 * d2 < 0) & (d3 * d4 < 0)

    touch = (
        ((np.abs(d1) <= _COLLINEAR_EPS) & _within_bbox(starts, ends, p1))
        | ((np.abs(d2) <= _COLLINEAR_EPS) & _within_bbox(starts, ends, p2))
        | ((np.abs(d3) <= _COLLINEAR_EPS) & _within_bbox(p1, p2, starts))
        | ((np.abs(d4) <= _COLLINEAR_EPS) & _within_bbox(p1, p2, ends))
    )
    return proper | touch


def segments_intersect(p1, p2, p3, p4) -> bool:
    """True if segment p1-p2 intersects or touches segment p3-p4."""
    mask = segment_hits(
        np.asarray(p1, dtype=float),
        np.asarray(p2, dtype=float),
        np.asarray([p3], dtype=float),
        np.asarray([p4], dtype=float),
    )
    return bool(mask[0])


def first_path_crossing(path: np.ndarray, ring: np.ndarray) -> int | None:
    """
    Find the first path segment that crosses or touches a ring edge.

    Returns:
        Index i of the crossing segment path[i] -> path[i + 1], or None
    """
    if len(path) < 2 or len(ring) < 2:
        return None
    starts = ring
    ends = np.roll(ring, -1, axis=0)
    for i in range(len(path) - 1):
        if segment_hits(path[i], path[i + 1], starts, ends).any():
            return i
    return None


def is_simple(ring: np.ndarray) -> bool:
    """
    True if no two non-adjacent edges of the ring intersect.

    Adjacent edges share a vertex by construction and are skipped.
    """
    n = len(ring)
    if n < 4:
        return n == 3 and abs(signed_area(ring)) > 0.0
    starts = ring
    ends = np.roll(ring, -1, axis=0)
    for i in range(n - 2):
        # Edges i+2 .. n-1, excluding the edge adjacent to i across the seam
        last = n - 1 if i > 0 else n - 2
        if last < i + 2:
            continue
        others = slice(i + 2, last + 1)
        if segment_hits(starts[i], ends[i], starts[others], ends[others]).any():
            return False
    return True
