"""
Engine Package

Geodesy, spatial indexing and error types.
"""
from .geodesy import (
    EARTH_RADIUS_M,
    distance_meters,
    distances_from,
    midpoint,
    is_projected,
    to_geographic,
    utm_to_geographic,
)

from .spatial_index import SpatialGrid

from .errors import (
    ImportFailedError,
    UnsupportedFormatError,
    ProjectionError,
)

__all__ = [
    # Geodesy
    'EARTH_RADIUS_M',
    'distance_meters',
    'distances_from',
    'midpoint',
    'is_projected',
    'to_geographic',
    'utm_to_geographic',

    # Spatial index
    'SpatialGrid',

    # Errors
    'ImportFailedError',
    'UnsupportedFormatError',
    'ProjectionError',
]
