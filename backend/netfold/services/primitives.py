"""
Geometry primitives shared by the mesh graph and traversal services.

Points are compared with a fixed per-axis tolerance rather than a true
Euclidean distance: two points are considered equal when the difference
on each of the x, y and z axes lies strictly inside ``(-eps, eps)``.  The
comparison is independent per axis, so a pair of points may be "equal"
even though their Euclidean distance slightly exceeds ``eps`` (up to
``eps * sqrt(3)``).  A difference of exactly ``eps`` on any axis makes
the points distinct.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Sequence, Tuple

# Per-axis tolerance used when merging STL corners into unique vertices.
EPS: float = 1e-4


@dataclass(frozen=True, eq=False)
class Point3:
    """A point in 3D space with tolerance-based equality.

    Equality is deliberately not transitive, so points are unhashable;
    use :class:`~netfold.services.mesh_graph.VertexDeduplicator` to map
    points onto stable integer indices instead.
    """

    x: float
    y: float
    z: float

    __hash__ = None  # type: ignore[assignment]

    @classmethod
    def from_sequence(cls, values: Sequence[float]) -> "Point3":
        return cls(float(values[0]), float(values[1]), float(values[2]))

    def as_tuple(self) -> Tuple[float, float, float]:
        return (self.x, self.y, self.z)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Point3):
            return NotImplemented
        return points_equal(self, other)

    def __ne__(self, other: object) -> bool:
        result = self.__eq__(other)
        if result is NotImplemented:
            return result
        return not result


def points_equal(p: Point3, q: Point3, eps: float = EPS) -> bool:
    """Return ``True`` if ``p`` and ``q`` agree within ``eps`` on every axis.

    Args:
        p: First point.
        q: Second point.
        eps: Per-axis tolerance.  The bound is exclusive.

    Returns:
        ``True`` when ``-eps < p.a - q.a < eps`` holds for each axis.
    """
    dx = p.x - q.x
    dy = p.y - q.y
    dz = p.z - q.z
    return -eps < dx < eps and -eps < dy < eps and -eps < dz < eps


def edge_length(p: Point3, q: Point3) -> float:
    """Euclidean distance between two points."""
    dx = p.x - q.x
    dy = p.y - q.y
    dz = p.z - q.z
    return math.sqrt(dx * dx + dy * dy + dz * dz)


def triangle_edge_lengths(corners: Sequence[Point3]) -> Tuple[float, float, float]:
    """Lengths of the three edges of a triangle in winding order.

    Edge ``k`` runs from corner ``k`` to corner ``(k + 1) % 3``, so the
    result is ``(|p0p1|, |p1p2|, |p2p0|)``.
    """
    p0, p1, p2 = corners
    return (edge_length(p0, p1), edge_length(p1, p2), edge_length(p2, p0))


__all__ = [
    "EPS",
    "Point3",
    "points_equal",
    "edge_length",
    "triangle_edge_lengths",
]
