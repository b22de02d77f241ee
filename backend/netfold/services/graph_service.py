"""
Mesh graph service for the netfold backend.

This module connects the stored STL uploads to the mesh graph and
traversal core:

- ``build_graph_for_file(path)`` – read a binary STL file and build its
  linked :class:`~netfold.services.mesh_graph.Mesh`.
- ``precompute_graph_for_model(model_id)`` – build the graph for an
  uploaded model, store it as a compressed ``.npz`` archive and record
  it in ``MeshGraphCacheRecord``.  Runs as a background task after
  upload and updates the model status to ``ready`` or ``failed``.
- ``get_graph_for_model(model_id)`` – return the cached graph, building
  it synchronously when no cache exists yet.
- ``unfold_model(model_id, root, all_components)`` – run the unfolding
  traversal on a model's graph.

Graphs are keyed by the content hash of the binary file and the vertex
tolerance, so models uploaded from identical files share one cache.
Every call to ``get_graph_for_model`` returns a freshly loaded mesh,
which keeps the visited flags of concurrent traversals independent.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Tuple

from fastapi import HTTPException

from .db import STORAGE_DIR
from .mesh_cache import load_mesh_graph, save_mesh_graph
from .mesh_graph import CoplanarPolicy, Mesh, MeshGraphError, build_mesh, never_coplanar
from .models_store import (
    MeshGraphCacheRecord,
    get_binary_file_by_id,
    get_graph_cache_for_binary,
    get_model_record,
    update_models_status_for_binary,
    upsert_graph_cache_for_binary,
)
from .primitives import EPS
from .stl_reader import StlFormatError, read_stl_file
from .traversal import TraversalError, UnfoldResult, traverse, unfold_components

logger = logging.getLogger(__name__)

# Directory holding the ``.npz`` graph archives.
GRAPH_CACHE_DIR = STORAGE_DIR / "meshes"
GRAPH_CACHE_DIR.mkdir(parents=True, exist_ok=True)


def build_graph_for_file(
    path: Path,
    eps: float = EPS,
    coplanar: CoplanarPolicy = never_coplanar,
) -> Mesh:
    """Read a binary STL file and build its mesh graph.

    Raises:
        FileNotFoundError: If ``path`` does not exist.
        StlFormatError: If the file is truncated or inconsistent.
        MeshGraphError: If the decoded corners are unusable.
    """
    stl = read_stl_file(path)
    logger.debug("Building mesh graph for %s (%d triangles)", path, stl.triangle_count)
    return build_mesh(stl.triangles, eps=eps, coplanar=coplanar)


def _graph_cache_path(file_hash: str, eps: float) -> Path:
    return GRAPH_CACHE_DIR / f"{file_hash}_eps{eps:g}.npz"


def precompute_graph_for_model(model_id: str, eps: float = EPS) -> None:
    """Generate and cache the mesh graph for the given model.

    Malformed STL input marks every model sharing the binary as
    ``failed`` with the parse error as message; no partial graph is
    cached.

    Args:
        model_id: Identifier of the uploaded model.
        eps: Vertex tolerance used to build the graph.
    """
    record = get_model_record(model_id)
    if record is None:
        logger.warning(
            "precompute_graph_for_model(%s): model record not found; skipping",
            model_id,
        )
        return
    binary_file_id = record.binary_file_id
    try:
        mesh = build_graph_for_file(Path(record.file_path), eps=eps)
    except (StlFormatError, MeshGraphError) as exc:
        logger.warning(
            "precompute_graph_for_model(%s): rejected input: %s",
            model_id,
            exc,
        )
        update_models_status_for_binary(binary_file_id, "failed", str(exc))
        return
    except Exception as exc:
        logger.exception(
            "precompute_graph_for_model(%s): graph construction failed. Reason: %r",
            model_id,
            exc,
        )
        update_models_status_for_binary(binary_file_id, "failed", str(exc))
        return
    binary = get_binary_file_by_id(binary_file_id)
    if binary is None:
        logger.error(
            "precompute_graph_for_model(%s): binary file not found for id %s",
            model_id,
            binary_file_id,
        )
        update_models_status_for_binary(binary_file_id, "failed", "Binary file not found")
        return
    cache_path = _graph_cache_path(binary.file_hash, eps)
    try:
        save_mesh_graph(cache_path, mesh)
    except Exception as exc:
        logger.exception(
            "precompute_graph_for_model(%s): failed to save graph cache. Reason: %r",
            model_id,
            exc,
        )
        update_models_status_for_binary(binary_file_id, "failed", str(exc))
        return
    cache_record = MeshGraphCacheRecord(
        binary_file_id=binary_file_id,
        eps=eps,
        graph_path=str(cache_path),
        vertex_count=mesh.vertex_count,
        face_count=mesh.face_count,
        missing_edge_count=len(mesh.diagnostics),
    )
    upsert_graph_cache_for_binary(cache_record)
    update_models_status_for_binary(binary_file_id, "ready", None)
    logger.info(
        "precompute_graph_for_model(%s): graph cached at %s (verts=%d, faces=%d, missing=%d)",
        model_id,
        cache_path,
        mesh.vertex_count,
        mesh.face_count,
        len(mesh.diagnostics),
    )


def _load_cached_graph(binary_file_id: int, eps: float) -> Mesh | None:
    cache = get_graph_cache_for_binary(binary_file_id, eps)
    if cache is None:
        return None
    cache_path = Path(cache.graph_path)
    if not cache_path.exists():
        logger.warning("Graph cache %s is missing on disk; rebuilding", cache_path)
        return None
    try:
        return load_mesh_graph(cache_path)
    except Exception as exc:
        logger.exception(
            "Failed to load graph cache %s; will rebuild. Reason: %r",
            cache_path,
            exc,
        )
        return None


def get_graph_for_model(model_id: str, eps: float = EPS) -> Mesh:
    """Return the mesh graph for a model, building it if necessary.

    Raises:
        HTTPException: 404 if the model is unknown, 422 if its STL file
            could not be processed.
    """
    record = get_model_record(model_id)
    if record is None:
        raise HTTPException(status_code=404, detail="Model not found")
    if record.status == "failed":
        raise HTTPException(
            status_code=422,
            detail=record.error_message or "Model could not be processed",
        )
    mesh = _load_cached_graph(record.binary_file_id, eps)
    if mesh is not None:
        logger.debug("Loaded mesh graph from cache for model_id=%s", model_id)
        return mesh
    precompute_graph_for_model(model_id, eps)
    record = get_model_record(model_id)
    if record is not None and record.status == "failed":
        raise HTTPException(
            status_code=422,
            detail=record.error_message or "Model could not be processed",
        )
    mesh = _load_cached_graph(record.binary_file_id, eps) if record is not None else None
    if mesh is None:
        raise HTTPException(status_code=500, detail="Mesh graph unavailable")
    return mesh


def unfold_model(
    model_id: str,
    root: int = 0,
    all_components: bool = False,
    eps: float = EPS,
) -> Tuple[Mesh, List[UnfoldResult]]:
    """Run the unfolding traversal for a stored model.

    Args:
        model_id: Identifier of the uploaded model.
        root: Starting face for a single traversal.  Ignored when
            ``all_components`` is set.
        all_components: Traverse every connected component, starting
            each one at its lowest-indexed face.
        eps: Vertex tolerance of the graph to use.

    Returns:
        The mesh (with visited flags set) and one result per traversal.

    Raises:
        HTTPException: 400 if ``root`` is not a valid face index, plus
            the errors raised by :func:`get_graph_for_model`.
    """
    mesh = get_graph_for_model(model_id, eps)
    if all_components:
        return mesh, unfold_components(mesh)
    try:
        result = traverse(mesh, root)
    except TraversalError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    if not result.complete:
        logger.warning(
            "unfold_model(%s): traversal from face %d reached %d of %d faces",
            model_id,
            root,
            result.visited_count,
            result.total_count,
        )
    return mesh, [result]
