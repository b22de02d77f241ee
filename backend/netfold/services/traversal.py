"""
Depth-first unfolding order over a mesh graph.

The traversal decides, for every face reachable from a root, the single
edge through which the face is attached to the growing net.  Starting
from the root it tries edges 0, 1 and 2 in that order and descends into
each neighbor that has not been visited yet, passing the neighbor's own
matching edge index as the hinge.  A face is claimed by the first path
that reaches it and is never revisited.

The walk uses an explicit stack of ``[face, next_edge]`` frames instead
of recursion.  A frame resumes exactly where a recursive call would
resume after its child returns, so the emitted order is identical to the
recursive definition while the depth is bounded only by memory.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple

from .mesh_graph import EDGES_PER_FACE, Mesh

logger = logging.getLogger(__name__)


class TraversalError(ValueError):
    """Raised when a traversal cannot start from the requested root."""


@dataclass(frozen=True)
class UnfoldRecord:
    """One face in unfolding order.

    Attributes:
        face: Index of the face.
        entering_edge: Edge of ``face`` shared with its parent, i.e. the
            hinge the face is rotated about.  ``None`` for the root.
        edge_lengths: The face's three edge lengths in winding order.
        parent: Index of the face it attaches to, ``None`` for the root.
    """

    face: int
    entering_edge: Optional[int]
    edge_lengths: Tuple[float, float, float]
    parent: Optional[int] = None


@dataclass(frozen=True)
class UnfoldResult:
    """Ordered records of one traversal plus coverage counts."""

    root: int
    records: Tuple[UnfoldRecord, ...]
    visited_count: int
    total_count: int

    @property
    def complete(self) -> bool:
        return self.visited_count == self.total_count

    @property
    def order(self) -> List[int]:
        return [record.face for record in self.records]

    def unvisited(self) -> List[int]:
        """Faces not reached by this traversal, in ascending order."""
        reached = set(self.order)
        return [idx for idx in range(self.total_count) if idx not in reached]


def traverse(mesh: Mesh, root: int = 0) -> UnfoldResult:
    """Walk the dual graph depth-first from ``root``.

    Visited flags on ``mesh`` are set as faces are claimed and are not
    cleared afterwards; call :meth:`Mesh.reset_visited` before walking
    the same mesh again from scratch.

    Args:
        mesh: A mesh whose adjacency has been built.
        root: Index of the starting face.

    Returns:
        UnfoldResult: Records in attachment order.  ``visited_count``
        covers this traversal only and is less than ``total_count`` when
        the mesh has several connected components.

    Raises:
        TraversalError: If ``root`` is out of range or already visited.
    """
    faces = mesh.faces
    if not 0 <= root < len(faces):
        raise TraversalError(f"Root face {root} out of range for {len(faces)} faces")
    if faces[root].visited:
        raise TraversalError(f"Root face {root} has already been visited")

    records: List[UnfoldRecord] = []
    stack: List[List[int]] = []

    def enter(idx: int, edge: Optional[int], parent: Optional[int]) -> None:
        face = faces[idx]
        face.visited = True
        records.append(
            UnfoldRecord(
                face=idx,
                entering_edge=edge,
                edge_lengths=face.edge_lengths,
                parent=parent,
            )
        )
        stack.append([idx, 0])

    enter(root, None, None)
    while stack:
        frame = stack[-1]
        idx, edge = frame
        if edge >= EDGES_PER_FACE:
            stack.pop()
            continue
        frame[1] = edge + 1
        link = faces[idx].neighbors[edge]
        if link is None or faces[link.face].visited:
            continue
        enter(link.face, link.edge, idx)

    result = UnfoldResult(
        root=root,
        records=tuple(records),
        visited_count=len(records),
        total_count=len(faces),
    )
    logger.debug(
        "Traversal from face %d visited %d of %d faces",
        root,
        result.visited_count,
        result.total_count,
    )
    return result


def unfold_components(mesh: Mesh) -> List[UnfoldResult]:
    """Traverse every connected component of ``mesh``.

    The first traversal starts at face 0; each following one starts at
    the lowest-indexed face still unvisited.  Visited flags are reset
    before the first traversal.
    """
    mesh.reset_visited()
    results: List[UnfoldResult] = []
    for idx, face in enumerate(mesh.faces):
        if face.visited:
            continue
        results.append(traverse(mesh, idx))
    if len(results) > 1:
        logger.info(
            "Mesh split into %d components of sizes %s",
            len(results),
            [r.visited_count for r in results],
        )
    return results


__all__ = [
    "TraversalError",
    "UnfoldRecord",
    "UnfoldResult",
    "traverse",
    "unfold_components",
]
