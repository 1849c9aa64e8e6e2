"""
GIS Package

GeoJSON export for map viewers.
"""
from .geojson_export import (
    GeoJSONExporter,
    STATUS_COLORS,
    export_network_to_geojson,
    segment_feature,
    point_feature,
    issue_feature,
)

__all__ = [
    'GeoJSONExporter',
    'STATUS_COLORS',
    'export_network_to_geojson',
    'segment_feature',
    'point_feature',
    'issue_feature',
]
