"""Small triangle soups used across the test-suite.

All closed meshes are wound counter-clockwise when seen from outside, so
every shared edge is traversed in opposite directions by its two faces.
"""

from __future__ import annotations

from typing import List

Triangle = List[List[float]]


def cube_triangles(size: float = 1.0) -> list[Triangle]:
    """Unit cube (scaled by ``size``) as 12 outward-wound triangles."""
    s = size
    quads = [
        # bottom (z = 0), top (z = s)
        ([0, 0, 0], [0, s, 0], [s, s, 0], [s, 0, 0]),
        ([0, 0, s], [s, 0, s], [s, s, s], [0, s, s]),
        # front (y = 0), back (y = s)
        ([0, 0, 0], [s, 0, 0], [s, 0, s], [0, 0, s]),
        ([0, s, 0], [0, s, s], [s, s, s], [s, s, 0]),
        # left (x = 0), right (x = s)
        ([0, 0, 0], [0, 0, s], [0, s, s], [0, s, 0]),
        ([s, 0, 0], [s, s, 0], [s, s, s], [s, 0, s]),
    ]
    triangles: list[Triangle] = []
    for a, b, c, d in quads:
        triangles.append([list(map(float, a)), list(map(float, b)), list(map(float, c))])
        triangles.append([list(map(float, a)), list(map(float, c)), list(map(float, d))])
    return triangles


def tetrahedron_triangles() -> list[Triangle]:
    """Right-corner tetrahedron with four outward-wound faces."""
    a = [0.0, 0.0, 0.0]
    b = [1.0, 0.0, 0.0]
    c = [0.0, 1.0, 0.0]
    d = [0.0, 0.0, 1.0]
    return [
        [a, c, b],
        [a, d, c],
        [a, b, d],
        [b, c, d],
    ]


def single_triangle() -> list[Triangle]:
    return [[[0.0, 0.0, 0.0], [1.0, 0.0, 0.0], [0.0, 1.0, 0.0]]]


def disjoint_triangles() -> list[Triangle]:
    """Two triangles that share no vertices."""
    return [
        [[0.0, 0.0, 0.0], [1.0, 0.0, 0.0], [0.0, 1.0, 0.0]],
        [[5.0, 5.0, 5.0], [6.0, 5.0, 5.0], [5.0, 6.0, 5.0]],
    ]
