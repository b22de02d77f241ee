"""
Mesh graph construction: vertex deduplication and shared-edge matching.

This module turns a triangle soup (for example the corner array decoded
from a binary STL file) into a :class:`Mesh` whose faces are linked to
each other through the edges they share.  The resulting dual graph is
implicit: every :class:`Face` owns three neighbor slots, one per edge,
and each filled slot stores the index of the neighboring face together
with the index of the matching edge on that neighbor.  Faces and
vertices live in flat lists and refer to each other by integer index.

Construction runs in two phases:

1. :class:`VertexDeduplicator` merges triangle corners that agree within
   the per-axis tolerance into unique vertices, preserving the order in
   which they were first seen.
2. :func:`build_adjacency` links faces whose edges run in opposite
   directions over the same pair of vertices.  A consistently wound
   manifold traverses each shared edge once in each direction, so an
   edge ``a -> b`` on one face only matches ``b -> a`` on another.

Pairs are visited in a fixed order (face ``i`` ascending, partner face
``j > i`` ascending, edge ``e`` ascending, partner edge ``e2``
ascending) and only empty slots participate, which makes the graph
reproducible when several matches are possible.  Triangles with two
coincident corners and repeated copies of an earlier triangle are
excluded from matching.  Every slot left empty after construction is
reported as a :class:`MissingEdge`; open and non-manifold meshes are
not errors.

Setting the ``UNFOLD_DEBUG`` environment variable logs every unique
vertex as it is discovered.
"""

from __future__ import annotations

import logging
import math
import os
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple

import numpy as np

from .primitives import EPS, Point3, points_equal, triangle_edge_lengths

logger = logging.getLogger(__name__)

EDGES_PER_FACE = 3

# Reasons attached to a missing edge.  ``UNMATCHED`` covers open
# boundaries and non-manifold edges; the other two name faces that were
# excluded from matching altogether.
UNMATCHED = "unmatched"
DEGENERATE = "degenerate"
DUPLICATE = "duplicate"

ADJACENCY_METHODS = ("indexed", "pairwise")


class MeshGraphError(ValueError):
    """Raised when the triangle input cannot be turned into a mesh."""


@dataclass
class Vertex:
    """A unique point together with the face corners that reference it.

    Attributes:
        point: Representative position (the first corner seen).
        refs: ``(face, corner)`` pairs in discovery order.
    """

    point: Point3
    refs: List[Tuple[int, int]] = field(default_factory=list)


@dataclass(frozen=True)
class NeighborLink:
    """One filled neighbor slot.

    Attributes:
        face: Index of the neighboring face.
        edge: Index of the matching edge on the neighboring face.  This
            is the hinge a flattening stage rotates the neighbor about.
        coplanar: Result of the coplanar policy for the pair.
    """

    face: int
    edge: int
    coplanar: bool = False


def _empty_slots() -> List[Optional[NeighborLink]]:
    return [None] * EDGES_PER_FACE


@dataclass
class Face:
    """A triangle in the mesh graph.

    ``vertices`` holds vertex indices in source winding order; edge ``k``
    runs from ``vertices[k]`` to ``vertices[(k + 1) % 3]``.
    ``edge_lengths`` are computed from the raw corners and are carried
    for output only.
    """

    vertices: Tuple[int, int, int]
    edge_lengths: Tuple[float, float, float]
    neighbors: List[Optional[NeighborLink]] = field(default_factory=_empty_slots)
    visited: bool = False
    exclusion: Optional[str] = None

    def edge_vertices(self, edge: int) -> Tuple[int, int]:
        return self.vertices[edge], self.vertices[(edge + 1) % EDGES_PER_FACE]

    def missing_edges(self) -> List[int]:
        return [e for e, link in enumerate(self.neighbors) if link is None]

    @property
    def neighbor_count(self) -> int:
        return EDGES_PER_FACE - len(self.missing_edges())


@dataclass(frozen=True)
class MissingEdge:
    """Diagnostic for a neighbor slot left empty after construction."""

    face: int
    edge: int
    reason: str = UNMATCHED


@dataclass
class Mesh:
    """Vertex and face arenas plus the adjacency diagnostics."""

    vertices: List[Vertex]
    faces: List[Face]
    diagnostics: List[MissingEdge] = field(default_factory=list)
    eps: float = EPS

    @property
    def vertex_count(self) -> int:
        return len(self.vertices)

    @property
    def face_count(self) -> int:
        return len(self.faces)

    def reset_visited(self) -> None:
        for face in self.faces:
            face.visited = False

    def visited_count(self) -> int:
        return sum(1 for face in self.faces if face.visited)

    def missing_edges_by_face(self) -> Dict[int, List[int]]:
        """Group the diagnostics by face index."""
        grouped: Dict[int, List[int]] = {}
        for diag in self.diagnostics:
            grouped.setdefault(diag.face, []).append(diag.edge)
        return grouped

    def neighbor_table(self) -> List[Tuple[Optional[Tuple[int, int, bool]], ...]]:
        """Plain-tuple snapshot of every neighbor slot, for comparisons."""
        return [
            tuple(
                None if link is None else (link.face, link.edge, link.coplanar)
                for link in face.neighbors
            )
            for face in self.faces
        ]


# Policy deciding whether two linked faces should be merged into one
# polygon in the net.  Receives the mesh and the two face indices.
CoplanarPolicy = Callable[[Mesh, int, int], bool]


def never_coplanar(mesh: Mesh, first: int, second: int) -> bool:
    """Default coplanar policy: no two faces are ever merged."""
    return False


class VertexDeduplicator:
    """Build the unique vertex list from raw triangle corners.

    ``find_or_insert`` returns the first existing vertex (in insertion
    order) that equals the query under per-axis tolerance, or appends a
    new one.  Candidates are looked up in a uniform grid whose cells are
    twice the tolerance wide, so only the 27 cells around the query need
    checking; taking the lowest matching index reproduces a linear scan.
    """

    def __init__(self, eps: float = EPS) -> None:
        if eps <= 0.0:
            raise ValueError("eps must be positive for vertex deduplication")
        self.eps = eps
        self.vertices: List[Vertex] = []
        self._cell_size = 2.0 * eps
        self._grid: Dict[Tuple[int, int, int], List[int]] = defaultdict(list)
        self._debug = bool(os.getenv("UNFOLD_DEBUG"))

    def _cell(self, p: Point3) -> Tuple[int, int, int]:
        size = self._cell_size
        return (math.floor(p.x / size), math.floor(p.y / size), math.floor(p.z / size))

    def find(self, p: Point3) -> Optional[int]:
        cx, cy, cz = self._cell(p)
        best: Optional[int] = None
        for dx in (-1, 0, 1):
            for dy in (-1, 0, 1):
                for dz in (-1, 0, 1):
                    bucket = self._grid.get((cx + dx, cy + dy, cz + dz))
                    if not bucket:
                        continue
                    # Buckets are filled in insertion order.
                    for idx in bucket:
                        if best is not None and idx >= best:
                            break
                        if points_equal(self.vertices[idx].point, p, self.eps):
                            best = idx
                            break
        return best

    def find_or_insert(self, p: Point3) -> int:
        found = self.find(p)
        if found is not None:
            return found
        idx = len(self.vertices)
        if self._debug:
            logger.debug("%d: %f,%f,%f", idx, p.x, p.y, p.z)
        self.vertices.append(Vertex(point=p))
        self._grid[self._cell(p)].append(idx)
        return idx

    def add_corner(self, p: Point3, face: int, corner: int) -> int:
        """Resolve ``p`` to a vertex and record that ``face`` uses it."""
        idx = self.find_or_insert(p)
        self.vertices[idx].refs.append((face, corner))
        return idx


def _canonical_rotation(vertices: Tuple[int, int, int]) -> Tuple[int, int, int]:
    # Rotate so the smallest index comes first; winding is preserved.
    k = vertices.index(min(vertices))
    return vertices[k:] + vertices[:k]


def classify_faces(mesh: Mesh) -> None:
    """Mark degenerate and duplicate faces so matching skips them.

    A face is degenerate when two of its corners resolved to the same
    vertex.  A face is a duplicate when its vertices are a cyclic
    rotation of an earlier, non-excluded face (same triangle, same
    winding).
    """
    seen: Dict[Tuple[int, int, int], int] = {}
    for idx, face in enumerate(mesh.faces):
        face.exclusion = None
        a, b, c = face.vertices
        if a == b or b == c or a == c:
            face.exclusion = DEGENERATE
            continue
        key = _canonical_rotation(face.vertices)
        first = seen.get(key)
        if first is not None:
            face.exclusion = DUPLICATE
            logger.debug("Face %d duplicates face %d; excluded from matching", idx, first)
            continue
        seen[key] = idx


def _link(
    mesh: Mesh,
    first: int,
    edge: int,
    second: int,
    edge2: int,
    coplanar: CoplanarPolicy,
) -> None:
    flag = bool(coplanar(mesh, first, second))
    mesh.faces[first].neighbors[edge] = NeighborLink(second, edge2, flag)
    mesh.faces[second].neighbors[edge2] = NeighborLink(first, edge, flag)


def _match_pairwise(mesh: Mesh, active: Sequence[int], coplanar: CoplanarPolicy) -> int:
    faces = mesh.faces
    links = 0
    for pos, i in enumerate(active):
        fi = faces[i]
        for j in active[pos + 1:]:
            fj = faces[j]
            for e in range(EDGES_PER_FACE):
                if fi.neighbors[e] is not None:
                    continue
                a, b = fi.edge_vertices(e)
                for e2 in range(EDGES_PER_FACE):
                    if fj.neighbors[e2] is not None:
                        continue
                    c, d = fj.edge_vertices(e2)
                    if a == d and b == c:
                        _link(mesh, i, e, j, e2, coplanar)
                        links += 1
                        break
    return links


def _match_indexed(mesh: Mesh, active: Sequence[int], coplanar: CoplanarPolicy) -> int:
    faces = mesh.faces
    # Directed edge -> (face, edge) occurrences in ascending order.
    by_edge: Dict[Tuple[int, int], List[Tuple[int, int]]] = defaultdict(list)
    for i in active:
        for e in range(EDGES_PER_FACE):
            by_edge[faces[i].edge_vertices(e)].append((i, e))

    links = 0
    for i in active:
        fi = faces[i]
        for e in range(EDGES_PER_FACE):
            if fi.neighbors[e] is not None:
                continue
            a, b = fi.edge_vertices(e)
            for j, e2 in by_edge.get((b, a), ()):
                # Faces before i have already claimed every slot they could.
                if j <= i or faces[j].neighbors[e2] is not None:
                    continue
                _link(mesh, i, e, j, e2, coplanar)
                links += 1
                break
    return links


def collect_diagnostics(mesh: Mesh) -> List[MissingEdge]:
    """Return one :class:`MissingEdge` per empty neighbor slot."""
    diagnostics: List[MissingEdge] = []
    for idx, face in enumerate(mesh.faces):
        reason = face.exclusion or UNMATCHED
        for edge in face.missing_edges():
            diagnostics.append(MissingEdge(face=idx, edge=edge, reason=reason))
    return diagnostics


def build_adjacency(
    mesh: Mesh,
    coplanar: CoplanarPolicy = never_coplanar,
    method: str = "indexed",
) -> List[MissingEdge]:
    """Populate every neighbor slot of ``mesh`` and record diagnostics.

    Args:
        mesh: Mesh whose faces reference deduplicated vertices.  Any
            existing links are discarded first.
        coplanar: Policy evaluated once per linked pair; the result is
            stored on both sides of the link.
        method: ``"indexed"`` looks partners up through a directed-edge
            index; ``"pairwise"`` compares every pair of faces.  Both
            produce the same graph.

    Returns:
        The list of missing-edge diagnostics, also stored on
        ``mesh.diagnostics``.
    """
    if method not in ADJACENCY_METHODS:
        raise ValueError(f"Unsupported adjacency method: {method}")
    for face in mesh.faces:
        face.neighbors = _empty_slots()
    classify_faces(mesh)
    active = [i for i, face in enumerate(mesh.faces) if face.exclusion is None]
    if method == "pairwise":
        links = _match_pairwise(mesh, active, coplanar)
    else:
        links = _match_indexed(mesh, active, coplanar)

    mesh.diagnostics = collect_diagnostics(mesh)
    for face_idx, edges in mesh.missing_edges_by_face().items():
        logger.warning(
            "Face %d: missing edges %s (%s)",
            face_idx,
            edges,
            mesh.faces[face_idx].exclusion or UNMATCHED,
        )
    logger.debug(
        "Adjacency built (%s): faces=%d active=%d links=%d missing=%d",
        method,
        mesh.face_count,
        len(active),
        links,
        len(mesh.diagnostics),
    )
    return mesh.diagnostics


def verify_symmetry(mesh: Mesh) -> List[Tuple[int, int]]:
    """Return ``(face, edge)`` slots whose link is not mirrored.

    For every filled slot ``A.neighbors[e] = (B, e2)`` the slot
    ``B.neighbors[e2]`` must point back to ``(A, e)`` with the same
    coplanar flag.  An empty result means the graph is symmetric.
    """
    broken: List[Tuple[int, int]] = []
    for idx, face in enumerate(mesh.faces):
        for edge, link in enumerate(face.neighbors):
            if link is None:
                continue
            back = mesh.faces[link.face].neighbors[link.edge]
            if (
                back is None
                or back.face != idx
                or back.edge != edge
                or back.coplanar != link.coplanar
            ):
                broken.append((idx, edge))
    return broken


def _as_triangle_array(triangles: Iterable) -> np.ndarray:
    tris = np.asarray(triangles, dtype=np.float64)
    if tris.size == 0:
        return tris.reshape(0, 3, 3)
    if tris.ndim != 3 or tris.shape[1:] != (3, 3):
        raise MeshGraphError(
            f"Expected triangles with shape (N, 3, 3), got {tris.shape}"
        )
    if not np.isfinite(tris).all():
        raise MeshGraphError("Triangle corners must be finite numbers")
    return tris


def build_mesh(
    triangles: Iterable,
    eps: float = EPS,
    coplanar: CoplanarPolicy = never_coplanar,
    method: str = "indexed",
) -> Mesh:
    """Deduplicate corners and link faces in one step.

    Args:
        triangles: Array-like of shape ``(N, 3, 3)``; ``triangles[i][k]``
            is corner ``k`` of triangle ``i`` in winding order.
        eps: Per-axis tolerance for vertex equality.
        coplanar: Coplanar policy forwarded to :func:`build_adjacency`.
        method: Adjacency method forwarded to :func:`build_adjacency`.

    Returns:
        Mesh: The fully linked mesh.

    Raises:
        MeshGraphError: If the input has the wrong shape or contains
            non-finite coordinates.
    """
    tris = _as_triangle_array(triangles)
    dedup = VertexDeduplicator(eps)
    faces: List[Face] = []
    for i, tri in enumerate(tris):
        corners = [Point3.from_sequence(c) for c in tri]
        ids = tuple(dedup.add_corner(p, i, k) for k, p in enumerate(corners))
        faces.append(Face(vertices=ids, edge_lengths=triangle_edge_lengths(corners)))
    mesh = Mesh(vertices=dedup.vertices, faces=faces, eps=eps)
    logger.debug(
        "Deduplicated %d corners into %d vertices",
        3 * len(faces),
        mesh.vertex_count,
    )
    build_adjacency(mesh, coplanar=coplanar, method=method)
    return mesh


__all__ = [
    "ADJACENCY_METHODS",
    "CoplanarPolicy",
    "DEGENERATE",
    "DUPLICATE",
    "EDGES_PER_FACE",
    "Face",
    "Mesh",
    "MeshGraphError",
    "MissingEdge",
    "NeighborLink",
    "UNMATCHED",
    "Vertex",
    "VertexDeduplicator",
    "build_adjacency",
    "build_mesh",
    "classify_faces",
    "collect_diagnostics",
    "never_coplanar",
    "verify_symmetry",
]
