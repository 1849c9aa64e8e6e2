"""
InfraTrack
==========
A Python package for importing and auditing water and sewage networks.

Supports:
- Excel / CSV / HTML tables
- DXF drawings
- Civil 3D LandXML pipe networks
- KML / KMZ
- GeoJSON and zipped shapefiles

Features:
- Fuzzy column matching and lenient number parsing
- UTM to WGS84 reprojection
- Keyword-based asset classification
- Topology audit (open ends, self-loops, duplicates, orphans, lengths)
- GeoJSON export for map viewers
"""

__version__ = "1.0.0"
__author__ = "InfraTrack"

from .config.models import Coordinate, Segment, Point, Network, Issue
from .config.settings import Settings
