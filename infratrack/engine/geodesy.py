"""
Geodesy Module

Great-circle distances and UTM to geographic reprojection.

Coordinates are (x, y) pairs: longitude/latitude in degrees once normalized,
easting/northing in meters when they come straight from a projected survey.
"""
import logging
import math
from functools import lru_cache
from typing import Optional, Tuple

import numpy as np
from pyproj import Transformer
from pyproj.exceptions import ProjError

from ..config.models import Coordinate
from ..config.settings import ProjectionConfig, get_settings
from .errors import ProjectionError


logger = logging.getLogger(__name__)

EARTH_RADIUS_M = 6371000.0

WGS84_GEOGRAPHIC = "EPSG:4326"


def distance_meters(p1, p2) -> float:
    """
    Haversine distance between two geographic coordinates.

    Args:
        p1: Coordinate (or any object with x=lon, y=lat in degrees)
        p2: Coordinate

    Returns:
        Distance in meters. NaN inputs give NaN.
    """
    phi1 = math.radians(p1.y)
    phi2 = math.radians(p2.y)
    d_phi = math.radians(p2.y - p1.y)
    d_lambda = math.radians(p2.x - p1.x)

    a = (math.sin(d_phi / 2) ** 2
         + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2)
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_M * c


def distances_from(origin, xs: np.ndarray, ys: np.ndarray) -> np.ndarray:
    """
    Vectorised haversine from one coordinate to many.

    Args:
        origin: Coordinate
        xs: Longitudes in degrees
        ys: Latitudes in degrees

    Returns:
        Array of distances in meters
    """
    xs = np.asarray(xs, dtype=float)
    ys = np.asarray(ys, dtype=float)

    phi1 = np.radians(origin.y)
    phi2 = np.radians(ys)
    d_phi = np.radians(ys - origin.y)
    d_lambda = np.radians(xs - origin.x)

    a = np.sin(d_phi / 2) ** 2 + np.cos(phi1) * np.cos(phi2) * np.sin(d_lambda / 2) ** 2
    # Guard against a creeping just above 1.0 from rounding
    a = np.clip(a, 0.0, 1.0)
    c = 2 * np.arctan2(np.sqrt(a), np.sqrt(1 - a))
    return EARTH_RADIUS_M * c


def midpoint(p1: Coordinate, p2: Coordinate) -> Coordinate:
    """Arithmetic midpoint of two coordinates."""
    return Coordinate((p1.x + p2.x) / 2, (p1.y + p2.y) / 2)


def is_projected(x: float, y: float) -> bool:
    """Magnitude test: values outside lon/lat range must be easting/northing."""
    return abs(x) > 180 or abs(y) > 90


@lru_cache(maxsize=16)
def _utm_transformer(epsg_code: int) -> Transformer:
    # always_xy keeps (easting, northing) -> (lon, lat) order
    return Transformer.from_crs(f"EPSG:{epsg_code}", WGS84_GEOGRAPHIC, always_xy=True)


def utm_to_geographic(easting: float, northing: float,
                      projection: Optional[ProjectionConfig] = None) -> Tuple[float, float]:
    """
    Strict UTM to WGS84 conversion.

    Args:
        easting: Easting in meters
        northing: Northing in meters
        projection: Zone settings, defaults to the global settings

    Returns:
        (longitude, latitude) in degrees

    Raises:
        ProjectionError: if the transformation fails or yields non-finite values
    """
    projection = projection or get_settings().projection
    try:
        lon, lat = _utm_transformer(projection.epsg_code).transform(easting, northing)
    except (ProjError, ValueError, TypeError) as e:
        raise ProjectionError(
            f"Cannot reproject ({easting}, {northing}) from EPSG:{projection.epsg_code}: {e}"
        ) from e

    if not (math.isfinite(lon) and math.isfinite(lat)):
        raise ProjectionError(
            f"Reprojection of ({easting}, {northing}) from EPSG:{projection.epsg_code} "
            f"gave non-finite result"
        )
    return lon, lat


def to_geographic(x: float, y: float,
                  projection: Optional[ProjectionConfig] = None) -> Coordinate:
    """
    Normalize a raw coordinate pair to geographic degrees.

    Pairs within lon/lat range are returned unchanged. Larger values are
    treated as UTM easting/northing in the configured zone. A failed
    reprojection returns the raw pair so that imports are never blocked.
    """
    if not is_projected(x, y):
        return Coordinate(x, y)

    try:
        lon, lat = utm_to_geographic(x, y, projection)
    except ProjectionError as e:
        logger.warning(f"Conversion failed, keeping raw coordinates: {e}")
        return Coordinate(x, y)
    return Coordinate(lon, lat)
