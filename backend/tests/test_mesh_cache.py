"""Tests for storing and reloading built mesh graphs."""

import sys
from pathlib import Path

import numpy as np
import pytest

sys.path.append(str(Path(__file__).resolve().parents[1]))

from netfold.services.mesh_cache import load_mesh_graph, save_mesh_graph  # type: ignore
from netfold.services.mesh_graph import DEGENERATE, build_mesh  # type: ignore
from netfold.services.traversal import traverse  # type: ignore
from mesh_samples import cube_triangles, tetrahedron_triangles  # type: ignore


def test_round_trip_preserves_links_and_diagnostics(tmp_path: Path) -> None:
    triangles = tetrahedron_triangles() + [
        [[0.0, 0.0, 0.0], [0.00001, 0.0, 0.0], [1.0, 0.0, 0.0]],
    ]
    mesh = build_mesh(triangles, coplanar=lambda m, a, b: a == 0)
    path = tmp_path / "graph.npz"
    save_mesh_graph(path, mesh)

    loaded = load_mesh_graph(path)
    assert loaded.eps == mesh.eps
    assert loaded.neighbor_table() == mesh.neighbor_table()
    assert [f.exclusion for f in loaded.faces] == [None, None, None, None, DEGENERATE]
    assert loaded.diagnostics == mesh.diagnostics
    assert [v.refs for v in loaded.vertices] == [v.refs for v in mesh.vertices]
    assert [f.edge_lengths for f in loaded.faces] == [f.edge_lengths for f in mesh.faces]


def test_loaded_graph_is_unvisited(tmp_path: Path) -> None:
    mesh = build_mesh(cube_triangles())
    traverse(mesh, 0)
    path = tmp_path / "cube.npz"
    save_mesh_graph(path, mesh)

    loaded = load_mesh_graph(path)
    assert loaded.visited_count() == 0
    assert traverse(loaded, 0).records == traverse(build_mesh(cube_triangles()), 0).records


def test_missing_file_raises(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        load_mesh_graph(tmp_path / "absent.npz")


def test_archive_without_graph_fields_is_rejected(tmp_path: Path) -> None:
    path = tmp_path / "other.npz"
    np.savez_compressed(path, vertices=np.zeros((1, 3)))
    with pytest.raises(ValueError):
        load_mesh_graph(path)
