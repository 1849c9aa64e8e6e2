"""
Spatial Index Module

Bucketed grid over geographic coordinates for "anything within d meters"
queries. Candidates from the 3x3 neighbourhood of a cell are confirmed with
the exact haversine distance, so results match a full pairwise scan.
"""
import math
from collections import defaultdict
from typing import Dict, Generic, List, Sequence, Tuple, TypeVar

import numpy as np

from .geodesy import EARTH_RADIUS_M, distances_from

T = TypeVar('T')

# Longitude cells are widened by this factor on top of the 1/cos(lat) scaling
LON_SAFETY_FACTOR = 2.0


class SpatialGrid(Generic[T]):
    """
    Grid index of (coordinate, payload) entries.

    Cell size is derived from the query radius: one radius of latitude per
    row, and a longitude width scaled for the highest latitude in the data.
    Non-finite coordinates are stored but never returned by a query.
    """

    def __init__(self, entries: Sequence[Tuple[object, T]], radius_m: float):
        self.radius_m = radius_m
        self.payloads: List[T] = [payload for _, payload in entries]
        self.xs = np.array([c.x for c, _ in entries], dtype=float)
        self.ys = np.array([c.y for c, _ in entries], dtype=float)

        self.lat_step = math.degrees(max(radius_m, 1e-9) / EARTH_RADIUS_M)
        self.lon_step = self._lon_step()

        self.cells: Dict[Tuple[int, int], List[int]] = defaultdict(list)
        for i in range(len(self.payloads)):
            key = self._cell(self.xs[i], self.ys[i])
            if key is not None:
                self.cells[key].append(i)

    def _lon_step(self) -> float:
        finite = np.isfinite(self.ys)
        if not finite.any():
            return self.lat_step
        max_lat = float(np.max(np.abs(self.ys[finite])))
        # One cell step beyond the extreme latitude covers neighbours near it
        max_lat = min(90.0, max_lat + self.lat_step)
        cos_lat = math.cos(math.radians(max_lat))
        if cos_lat < 1e-9:
            return 360.0
        return min(360.0, self.lat_step / cos_lat * LON_SAFETY_FACTOR)

    def _cell(self, x: float, y: float):
        if not (math.isfinite(x) and math.isfinite(y)):
            return None
        try:
            return (math.floor(x / self.lon_step), math.floor(y / self.lat_step))
        except OverflowError:
            # x / step overflows to inf for huge raw values
            return None

    def __len__(self) -> int:
        return len(self.payloads)

    def query(self, coord, radius_m: float = None) -> List[int]:
        """
        Indices of entries strictly closer than radius_m to coord.

        Args:
            coord: Coordinate to search around
            radius_m: Search radius, at most the radius the grid was built for

        Returns:
            Sorted list of entry indices
        """
        radius_m = self.radius_m if radius_m is None else radius_m
        if radius_m > self.radius_m:
            raise ValueError(
                f"Query radius {radius_m} m exceeds grid radius {self.radius_m} m"
            )

        key = self._cell(coord.x, coord.y)
        if key is None:
            return []

        cx, cy = key
        candidates: List[int] = []
        for dx in (-1, 0, 1):
            for dy in (-1, 0, 1):
                candidates.extend(self.cells.get((cx + dx, cy + dy), ()))
        if not candidates:
            return []

        candidates.sort()
        idx = np.array(candidates, dtype=int)
        distances = distances_from(coord, self.xs[idx], self.ys[idx])
        return [int(i) for i in idx[distances < radius_m]]

    def payloads_near(self, coord, radius_m: float = None) -> List[T]:
        """Payloads of entries within radius_m of coord."""
        return [self.payloads[i] for i in self.query(coord, radius_m)]
