"""
Tests for geodesy and the spatial grid.
"""
import math
import random

import numpy as np
import pytest

from infratrack.config.models import Coordinate
from infratrack.config.settings import ProjectionConfig
from infratrack.engine.errors import ProjectionError
from infratrack.engine.geodesy import (
    distance_meters, distances_from, is_projected, midpoint, to_geographic, utm_to_geographic,
)
from infratrack.engine.spatial_index import SpatialGrid
from infratrack.tests.conftest import offset


def test_distance_is_symmetric_and_zero_on_same_point():
    rng = random.Random(7)
    for _ in range(50):
        a = Coordinate(rng.uniform(-180, 180), rng.uniform(-90, 90))
        b = Coordinate(rng.uniform(-180, 180), rng.uniform(-90, 90))
        assert distance_meters(a, b) == pytest.approx(distance_meters(b, a))
        assert distance_meters(a, a) == 0


def test_distance_one_degree_of_latitude():
    d = distance_meters(Coordinate(39.0, 21.0), Coordinate(39.0, 22.0))
    assert d == pytest.approx(111194.9, abs=0.5)


def test_distance_nan_propagates():
    assert math.isnan(distance_meters(Coordinate(math.nan, 1.0), Coordinate(0.0, 0.0)))


def test_vectorised_distance_matches_scalar():
    origin = offset()
    targets = [offset(3, 4), offset(-120, 50), offset(0, 0)]
    xs = np.array([t.x for t in targets])
    ys = np.array([t.y for t in targets])

    result = distances_from(origin, xs, ys)

    for value, target in zip(result, targets):
        assert value == pytest.approx(distance_meters(origin, target), abs=1e-6)


def test_geographic_input_is_returned_unchanged():
    for x, y in [(39.23, 21.6), (-180, 90), (180, -90), (0.0, 0.0)]:
        assert to_geographic(x, y) == Coordinate(x, y)


def test_projected_detection_by_magnitude():
    assert is_projected(510669, 2423087)
    assert is_projected(181, 0)
    assert is_projected(0, -91)
    assert not is_projected(39.2, 21.6)


def test_utm_central_meridian_to_geographic():
    coord = to_geographic(500000, 2400000)
    assert coord.x == pytest.approx(39.0, abs=1e-6)
    assert 21.0 < coord.y < 22.5


def test_utm_zone_is_configurable():
    lon, _ = utm_to_geographic(500000, 2400000, ProjectionConfig(utm_zone=38))
    assert lon == pytest.approx(45.0, abs=1e-6)


def test_strict_conversion_raises_on_non_finite_input():
    with pytest.raises(ProjectionError):
        utm_to_geographic(math.inf, 2400000)


def test_failed_conversion_keeps_raw_values():
    coord = to_geographic(math.inf, 2400000)
    assert coord.x == math.inf
    assert coord.y == 2400000


def test_midpoint():
    assert midpoint(Coordinate(0, 0), Coordinate(2, 4)) == Coordinate(1, 2)


def test_spatial_grid_matches_pairwise_scan():
    rng = random.Random(42)
    coords = [offset(rng.uniform(-20, 20), rng.uniform(-20, 20)) for _ in range(300)]
    grid = SpatialGrid([(c, i) for i, c in enumerate(coords)], radius_m=3.0)

    for i, c in enumerate(coords[:60]):
        expected = [j for j, other in enumerate(coords) if distance_meters(c, other) < 3.0]
        assert grid.query(c) == expected


def test_spatial_grid_smaller_radius_and_payloads():
    coords = [offset(0, 0), offset(0.5, 0), offset(2, 0)]
    grid = SpatialGrid([(c, f"p{i}") for i, c in enumerate(coords)], radius_m=3.0)

    assert grid.payloads_near(offset(0, 0), 1.0) == ['p0', 'p1']
    assert len(grid) == 3


def test_spatial_grid_rejects_larger_radius():
    grid = SpatialGrid([(offset(), 0)], radius_m=1.0)
    with pytest.raises(ValueError):
        grid.query(offset(), 2.0)


def test_spatial_grid_ignores_non_finite_coordinates():
    grid = SpatialGrid([(Coordinate(math.nan, 1.0), 0), (offset(), 1)], radius_m=1.0)
    assert grid.query(offset()) == [1]
    assert grid.query(Coordinate(math.nan, math.nan)) == []


def test_spatial_grid_near_pole():
    coords = [Coordinate(0.0, 89.99999), Coordinate(120.0, 89.99999)]
    grid = SpatialGrid([(c, i) for i, c in enumerate(coords)], radius_m=5.0)
    expected = [j for j, other in enumerate(coords) if distance_meters(coords[0], other) < 5.0]
    assert grid.query(coords[0]) == expected


def test_spatial_grid_ignores_overflowing_coordinates():
    huge = Coordinate(1e306, 1e306)
    grid = SpatialGrid([(huge, 0), (offset(), 1)], radius_m=1.0)
    assert grid.query(offset()) == [1]
    assert grid.query(huge) == []
