"""
Shared fixtures for the InfraTrack tests.
"""
import math

import pytest

from infratrack.config.models import Coordinate, NetworkType, Point, PointKind, Segment
from infratrack.config.settings import reset_settings


# Meters per degree at the test latitude (Jeddah area)
BASE_LON = 39.2
BASE_LAT = 21.6
M_PER_DEG_LAT = 111194.93
M_PER_DEG_LON = M_PER_DEG_LAT * math.cos(math.radians(BASE_LAT))


def offset(east_m: float = 0.0, north_m: float = 0.0) -> Coordinate:
    """Coordinate east_m / north_m meters away from the base point."""
    return Coordinate(BASE_LON + east_m / M_PER_DEG_LON, BASE_LAT + north_m / M_PER_DEG_LAT)


def make_segment(seg_id, start, end, length=None, network_type=NetworkType.WATER, name=None):
    segment = Segment(
        id=seg_id,
        name=name or seg_id,
        network_type=network_type,
        start_node=start,
        end_node=end,
    )
    segment.length_meters = segment.geodesic_length() if length is None else length
    return segment


def make_point(point_id, location, kind=PointKind.VALVE, name=None):
    return Point(id=point_id, name=name or point_id, kind=kind, location=location)


@pytest.fixture(autouse=True)
def default_settings():
    """Every test starts and ends with default settings."""
    reset_settings()
    yield
    reset_settings()
