"""
Mesh graph cache serialization utilities.

This module provides helper functions to save and load a built
:class:`~netfold.services.mesh_graph.Mesh` to/from disk using
compressed NumPy archives (``.npz``).  The archive stores the unique
vertex positions, the per-face vertex indices and edge lengths, the
neighbor slots (face index, matching edge and coplanar flag, with
``-1`` marking an empty slot) and the exclusion code of each face.
Vertex back-references and diagnostics are derived data and are
rebuilt on load rather than stored.
"""

from __future__ import annotations

from pathlib import Path
from typing import List, Optional

import numpy as np

from .mesh_graph import (
    DEGENERATE,
    DUPLICATE,
    EDGES_PER_FACE,
    Face,
    Mesh,
    NeighborLink,
    Vertex,
    collect_diagnostics,
)
from .primitives import Point3

NO_LINK = -1

# Exclusion markers are stored as small integer codes.
_EXCLUSION_CODES = {None: 0, DEGENERATE: 1, DUPLICATE: 2}
_EXCLUSION_NAMES = {code: name for name, code in _EXCLUSION_CODES.items()}

REQUIRED_KEYS = {
    "vertices",
    "faces",
    "edge_lengths",
    "neighbor_faces",
    "neighbor_edges",
    "coplanar",
    "exclusions",
    "eps",
}


def save_mesh_graph(path: Path, mesh: Mesh) -> None:
    """Write a mesh graph to a compressed ``.npz`` file.

    Args:
        path: Destination file path.  Parent directories will not be
            created; callers should ensure the directory exists.
        mesh: The mesh to store.  Visited flags are not persisted.
    """
    face_count = mesh.face_count
    vertices_arr = np.array(
        [v.point.as_tuple() for v in mesh.vertices], dtype=np.float64
    ).reshape(-1, 3)
    faces_arr = np.array([f.vertices for f in mesh.faces], dtype=np.int64).reshape(-1, 3)
    lengths_arr = np.array(
        [f.edge_lengths for f in mesh.faces], dtype=np.float64
    ).reshape(-1, 3)
    neighbor_faces = np.full((face_count, EDGES_PER_FACE), NO_LINK, dtype=np.int64)
    neighbor_edges = np.full((face_count, EDGES_PER_FACE), NO_LINK, dtype=np.int8)
    coplanar = np.zeros((face_count, EDGES_PER_FACE), dtype=bool)
    exclusions = np.zeros(face_count, dtype=np.int8)
    for idx, face in enumerate(mesh.faces):
        exclusions[idx] = _EXCLUSION_CODES[face.exclusion]
        for edge, link in enumerate(face.neighbors):
            if link is None:
                continue
            neighbor_faces[idx, edge] = link.face
            neighbor_edges[idx, edge] = link.edge
            coplanar[idx, edge] = link.coplanar
    np.savez_compressed(
        path,
        vertices=vertices_arr,
        faces=faces_arr,
        edge_lengths=lengths_arr,
        neighbor_faces=neighbor_faces,
        neighbor_edges=neighbor_edges,
        coplanar=coplanar,
        exclusions=exclusions,
        eps=np.array(mesh.eps, dtype=np.float64),
    )


def load_mesh_graph(path: Path) -> Mesh:
    """Load a mesh graph from a compressed ``.npz`` file.

    Args:
        path: File path to the ``.npz`` archive.

    Returns:
        A fresh :class:`Mesh` with every face unvisited.

    Raises:
        FileNotFoundError: If the specified path does not exist.
        ValueError: If the loaded archive does not contain the
            expected fields.
    """
    if not path.exists():
        raise FileNotFoundError(f"Mesh graph cache file not found: {path}")
    with np.load(path, allow_pickle=False) as data:
        if not REQUIRED_KEYS.issubset(data.files):
            missing = REQUIRED_KEYS - set(data.files)
            raise ValueError(f"Mesh graph cache file is missing fields: {missing}")
        vertices_arr = data["vertices"].astype(np.float64)
        faces_arr = data["faces"].astype(np.int64)
        lengths_arr = data["edge_lengths"].astype(np.float64)
        neighbor_faces = data["neighbor_faces"].astype(np.int64)
        neighbor_edges = data["neighbor_edges"].astype(np.int64)
        coplanar = data["coplanar"].astype(bool)
        exclusions = data["exclusions"].astype(np.int64)
        eps = float(data["eps"])

    vertices: List[Vertex] = [Vertex(point=Point3.from_sequence(row)) for row in vertices_arr]
    faces: List[Face] = []
    for idx in range(faces_arr.shape[0]):
        ids = tuple(int(v) for v in faces_arr[idx])
        for corner, vid in enumerate(ids):
            vertices[vid].refs.append((idx, corner))
        slots: List[Optional[NeighborLink]] = []
        for edge in range(EDGES_PER_FACE):
            other = int(neighbor_faces[idx, edge])
            if other == NO_LINK:
                slots.append(None)
            else:
                slots.append(
                    NeighborLink(
                        face=other,
                        edge=int(neighbor_edges[idx, edge]),
                        coplanar=bool(coplanar[idx, edge]),
                    )
                )
        faces.append(
            Face(
                vertices=ids,
                edge_lengths=tuple(float(x) for x in lengths_arr[idx]),
                neighbors=slots,
                exclusion=_EXCLUSION_NAMES[int(exclusions[idx])],
            )
        )
    mesh = Mesh(vertices=vertices, faces=faces, eps=eps)
    mesh.diagnostics = collect_diagnostics(mesh)
    return mesh
