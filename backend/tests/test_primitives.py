"""Tests for point equality and edge length helpers."""

import math
import sys
from pathlib import Path

import pytest

sys.path.append(str(Path(__file__).resolve().parents[1]))

from netfold.services.primitives import (  # type: ignore
    EPS,
    Point3,
    edge_length,
    points_equal,
    triangle_edge_lengths,
)


def test_difference_of_exactly_eps_is_not_equal() -> None:
    """The tolerance bound is exclusive on every axis."""
    origin = Point3(0.0, 0.0, 0.0)
    assert not points_equal(origin, Point3(EPS, 0.0, 0.0))
    assert not points_equal(origin, Point3(0.0, -EPS, 0.0))
    assert not points_equal(origin, Point3(0.0, 0.0, EPS))
    assert points_equal(origin, Point3(EPS / 2, 0.0, 0.0))


def test_equality_is_per_axis_not_euclidean() -> None:
    """Points inside the tolerance box compare equal even past eps in distance."""
    origin = Point3(0.0, 0.0, 0.0)
    corner = Point3(0.9 * EPS, 0.9 * EPS, 0.9 * EPS)
    assert edge_length(origin, corner) > EPS
    assert origin == corner


def test_point_operators_and_hashing() -> None:
    p = Point3(1.0, 2.0, 3.0)
    assert p == Point3(1.00005, 2.0, 3.0)
    assert p != Point3(1.0002, 2.0, 3.0)
    assert (p == (1.0, 2.0, 3.0)) is False
    with pytest.raises(TypeError):
        hash(p)


def test_triangle_edge_lengths_follow_winding() -> None:
    corners = [Point3(0.0, 0.0, 0.0), Point3(3.0, 0.0, 0.0), Point3(3.0, 4.0, 0.0)]
    l01, l12, l20 = triangle_edge_lengths(corners)
    assert math.isclose(l01, 3.0)
    assert math.isclose(l12, 4.0)
    assert math.isclose(l20, 5.0)
