"""
Tests for vertex deduplication and shared-edge matching.

These cover the closed-mesh properties (every face fully linked, link
symmetry, Euler's formula), the open-mesh diagnostics, the exclusion of
degenerate and duplicate triangles and the determinism of the
construction order.
"""

from __future__ import annotations

import sys
from pathlib import Path

import numpy as np
import pytest

sys.path.append(str(Path(__file__).resolve().parents[1]))

from netfold.services.mesh_graph import (  # type: ignore
    DEGENERATE,
    DUPLICATE,
    UNMATCHED,
    MeshGraphError,
    MissingEdge,
    NeighborLink,
    VertexDeduplicator,
    build_mesh,
    verify_symmetry,
)
from netfold.services.primitives import EPS, Point3, points_equal  # type: ignore
from mesh_samples import (  # type: ignore
    cube_triangles,
    disjoint_triangles,
    single_triangle,
    tetrahedron_triangles,
)


def _linear_dedup(points: list[Point3]) -> list[int]:
    """Reference first-match scan over unique vertices."""
    unique: list[Point3] = []
    ids: list[int] = []
    for p in points:
        for k, u in enumerate(unique):
            if points_equal(u, p):
                ids.append(k)
                break
        else:
            unique.append(p)
            ids.append(len(unique) - 1)
    return ids


def test_deduplicator_keeps_first_match_and_insertion_order() -> None:
    dedup = VertexDeduplicator()
    assert dedup.find_or_insert(Point3(0.0, 0.0, 0.0)) == 0
    assert dedup.find_or_insert(Point3(EPS, 0.0, 0.0)) == 1
    # Within tolerance of both existing vertices: the first one wins.
    assert dedup.find_or_insert(Point3(EPS / 2, 0.0, 0.0)) == 0
    assert dedup.find_or_insert(Point3(-EPS, 0.0, 0.0)) == 2
    assert [v.point.as_tuple() for v in dedup.vertices] == [
        (0.0, 0.0, 0.0),
        (EPS, 0.0, 0.0),
        (-EPS, 0.0, 0.0),
    ]


def test_deduplicator_matches_linear_scan_on_clustered_points() -> None:
    """The grid lookup must agree with a plain scan, including near-tolerance pairs."""
    rng = np.random.default_rng(1234)
    coords = rng.integers(-6, 7, size=(400, 3)) * (EPS / 2)
    coords = coords + rng.uniform(-EPS / 4, EPS / 4, size=coords.shape)
    points = [Point3.from_sequence(row) for row in coords]

    dedup = VertexDeduplicator()
    ids = [dedup.find_or_insert(p) for p in points]
    assert ids == _linear_dedup(points)


def test_deduplicator_records_face_corners() -> None:
    mesh = build_mesh(tetrahedron_triangles())
    assert mesh.vertices[0].refs == [(0, 0), (1, 0), (2, 0)]
    for face_idx, face in enumerate(mesh.faces):
        for corner, vid in enumerate(face.vertices):
            assert (face_idx, corner) in mesh.vertices[vid].refs


def test_cube_is_fully_linked() -> None:
    """Unit cube: 8 vertices, 3 neighbors per face and no diagnostics."""
    mesh = build_mesh(cube_triangles())
    assert mesh.vertex_count == 8
    assert mesh.face_count == 12
    assert all(face.neighbor_count == 3 for face in mesh.faces)
    assert mesh.diagnostics == []
    assert verify_symmetry(mesh) == []


@pytest.mark.parametrize("triangles", [cube_triangles(), cube_triangles(25.4), tetrahedron_triangles()])
def test_closed_meshes_satisfy_euler(triangles) -> None:
    mesh = build_mesh(triangles)
    assert mesh.vertex_count == mesh.face_count // 2 + 2


def test_tetrahedron_links() -> None:
    """Edges match only when their directions are opposite."""
    mesh = build_mesh(tetrahedron_triangles())
    assert [f.vertices for f in mesh.faces] == [(0, 1, 2), (0, 3, 1), (0, 2, 3), (2, 1, 3)]
    assert mesh.faces[0].neighbors == [
        NeighborLink(1, 2, False),
        NeighborLink(3, 0, False),
        NeighborLink(2, 0, False),
    ]
    assert mesh.faces[1].neighbors == [
        NeighborLink(2, 2, False),
        NeighborLink(3, 1, False),
        NeighborLink(0, 0, False),
    ]
    assert mesh.faces[2].neighbors[1] == NeighborLink(3, 2, False)


def test_same_direction_edges_do_not_match() -> None:
    """Two triangles sharing an edge with inconsistent winding stay unlinked."""
    triangles = [
        [[0.0, 0.0, 0.0], [1.0, 0.0, 0.0], [0.0, 1.0, 0.0]],
        [[0.0, 0.0, 0.0], [1.0, 0.0, 0.0], [0.0, -1.0, 0.0]],
    ]
    mesh = build_mesh(triangles)
    assert all(link is None for face in mesh.faces for link in face.neighbors)


def test_isolated_triangle_reports_three_missing_edges() -> None:
    mesh = build_mesh(single_triangle())
    assert mesh.faces[0].neighbors == [None, None, None]
    assert mesh.diagnostics == [
        MissingEdge(0, 0, UNMATCHED),
        MissingEdge(0, 1, UNMATCHED),
        MissingEdge(0, 2, UNMATCHED),
    ]


def test_disjoint_triangles_share_nothing() -> None:
    mesh = build_mesh(disjoint_triangles())
    assert mesh.vertex_count == 6
    assert len(mesh.diagnostics) == 6
    assert mesh.missing_edges_by_face() == {0: [0, 1, 2], 1: [0, 1, 2]}


def test_nonmanifold_edge_links_lowest_face_first() -> None:
    """Three faces on one edge: the first partner in pair order wins."""
    a, b = [0.0, 0.0, 0.0], [1.0, 0.0, 0.0]
    triangles = [
        [a, b, [0.0, 1.0, 0.0]],
        [b, a, [0.0, -1.0, 0.0]],
        [b, a, [0.0, 0.0, 1.0]],
    ]
    mesh = build_mesh(triangles)
    assert mesh.faces[0].neighbors[0] == NeighborLink(1, 0, False)
    assert mesh.faces[1].neighbors[0] == NeighborLink(0, 0, False)
    assert mesh.faces[2].neighbors[0] is None
    assert mesh.missing_edges_by_face()[2] == [0, 1, 2]
    assert verify_symmetry(mesh) == []


def test_degenerate_triangle_is_excluded() -> None:
    triangles = tetrahedron_triangles() + [
        [[0.0, 0.0, 0.0], [0.00001, 0.0, 0.0], [1.0, 0.0, 0.0]],
    ]
    mesh = build_mesh(triangles)
    assert mesh.faces[4].exclusion == DEGENERATE
    assert mesh.faces[4].neighbors == [None, None, None]
    assert all(face.neighbor_count == 3 for face in mesh.faces[:4])
    assert [d for d in mesh.diagnostics if d.face == 4] == [
        MissingEdge(4, 0, DEGENERATE),
        MissingEdge(4, 1, DEGENERATE),
        MissingEdge(4, 2, DEGENERATE),
    ]


def test_duplicate_triangle_is_excluded() -> None:
    """A rotated copy of an earlier face is a duplicate, not a second partner."""
    tris = tetrahedron_triangles()
    a, c, b = tris[0]
    mesh = build_mesh(tris + [[c, b, a]])
    assert mesh.faces[4].exclusion == DUPLICATE
    assert mesh.faces[4].neighbors == [None, None, None]
    assert all(face.neighbor_count == 3 for face in mesh.faces[:4])
    assert {d.reason for d in mesh.diagnostics} == {DUPLICATE}


def test_opposite_wound_copy_forms_a_closed_pair() -> None:
    """Front and back of the same triangle link along all three edges."""
    a, b, c = single_triangle()[0]
    mesh = build_mesh([[a, b, c], [a, c, b]])
    assert mesh.faces[0].exclusion is None
    assert mesh.faces[1].exclusion is None
    assert mesh.diagnostics == []


def test_coplanar_policy_is_called_once_per_link() -> None:
    calls: list[tuple[int, int]] = []

    def policy(mesh, first: int, second: int) -> bool:
        calls.append((first, second))
        return {first, second} == {0, 1}

    mesh = build_mesh(tetrahedron_triangles(), coplanar=policy)
    assert len(calls) == 6
    assert all(first < second for first, second in calls)
    assert mesh.faces[0].neighbors[0] == NeighborLink(1, 2, True)
    assert mesh.faces[1].neighbors[2] == NeighborLink(0, 0, True)
    flags = [link.coplanar for face in mesh.faces for link in face.neighbors]
    assert flags.count(True) == 2
    assert verify_symmetry(mesh) == []


def test_default_policy_is_never_coplanar() -> None:
    mesh = build_mesh(cube_triangles())
    assert not any(link.coplanar for face in mesh.faces for link in face.neighbors)


def test_pairwise_and_indexed_builders_agree() -> None:
    a, b = [0.0, 0.0, 0.0], [1.0, 0.0, 0.0]
    soups = [
        cube_triangles(),
        tetrahedron_triangles() + single_triangle(),
        [[a, b, [0.0, 1.0, 0.0]], [b, a, [0.0, -1.0, 0.0]], [b, a, [0.0, 0.0, 1.0]]],
        list(reversed(cube_triangles())) + disjoint_triangles(),
    ]
    for soup in soups:
        indexed = build_mesh(soup, method="indexed")
        pairwise = build_mesh(soup, method="pairwise")
        assert indexed.neighbor_table() == pairwise.neighbor_table()
        assert indexed.diagnostics == pairwise.diagnostics


def test_construction_is_deterministic() -> None:
    first = build_mesh(cube_triangles())
    second = build_mesh(cube_triangles())
    assert first.neighbor_table() == second.neighbor_table()
    assert [v.point.as_tuple() for v in first.vertices] == [
        v.point.as_tuple() for v in second.vertices
    ]


def test_unknown_method_is_rejected() -> None:
    with pytest.raises(ValueError):
        build_mesh(cube_triangles(), method="octree")


def test_bad_triangle_input_is_rejected() -> None:
    with pytest.raises(MeshGraphError):
        build_mesh([[0.0, 1.0, 2.0]])
    with pytest.raises(MeshGraphError):
        build_mesh([[[0.0, 0.0, float("nan")], [1.0, 0.0, 0.0], [0.0, 1.0, 0.0]]])
