"""
GeoJSON and Shapefile Importers

GeoJSON input may be a FeatureCollection, a bare list of features or a single
Feature. Geometry mapping:

    LineString       -> segment, first to last vertex
    MultiLineString  -> segment from the first part
    Polygon          -> segment along the exterior ring, first to last vertex
    Point            -> point

Zipped shapefiles are converted to GeoJSON by a converter callable (geopandas
by default) and then go through the same feature logic.
"""
import json
import logging
import os
import tempfile
from typing import Any, Callable, Dict, List, Optional

from ..config.models import Coordinate, ImportResult, NetworkContext
from ..engine.errors import ImportFailedError
from .base_parser import BaseImporter, Content, parse_float
from .schema_matcher import get_fuzzy_value, parse_numeric_lenient


logger = logging.getLogger(__name__)

NAME_KEYS = ['Name', 'id']
LABEL_KEYS = ['Type', 'Point Type', 'Class', 'Category', 'Network', 'Description', 'desc']
LENGTH_KEYS = ['Length', 'Len', 'Shape_Leng', 'Distance']

LINE_GEOMETRIES = ('LineString', 'MultiLineString', 'Polygon')


def features_from_geojson(data: Any) -> List[Dict[str, Any]]:
    """Feature list from a FeatureCollection, a list or a single Feature."""
    if isinstance(data, list):
        return [f for f in data if isinstance(f, dict)]
    if isinstance(data, dict):
        if isinstance(data.get('features'), list):
            return [f for f in data['features'] if isinstance(f, dict)]
        if data.get('type') == 'Feature':
            return [data]
    return []


def line_vertices(geometry: Dict[str, Any]) -> Optional[list]:
    """Vertex list used for a line-like geometry, or None."""
    geom_type = geometry.get('type')
    coords = geometry.get('coordinates')
    if not isinstance(coords, list) or not coords:
        return None
    if geom_type == 'LineString':
        return coords
    if geom_type in ('MultiLineString', 'Polygon'):
        return coords[0] if isinstance(coords[0], list) else None
    return None


def _xy(position) -> Coordinate:
    if not isinstance(position, (list, tuple)) or len(position) < 2:
        return Coordinate(float('nan'), float('nan'))
    return Coordinate(parse_float(position[0]), parse_float(position[1]))


class GeoJsonImporter(BaseImporter):
    """Importer for GeoJSON documents."""

    format_name = "geojson"

    def parse(self, content: Content) -> ImportResult:
        text = self.decode_text(content)
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise ImportFailedError(f"Invalid JSON: {e}") from e
        return self.parse_features(features_from_geojson(data))

    def parse_features(self, features: List[Dict[str, Any]]) -> ImportResult:
        """
        Convert GeoJSON features into segments and points.

        Args:
            features: GeoJSON Feature dicts

        Returns:
            ImportResult
        """
        result = self.begin()
        for idx, feature in enumerate(features):
            self._add_feature(idx, feature, result)
        return self.finish(result)

    def _add_feature(self, idx: int, feature: Dict[str, Any], result: ImportResult):
        if not isinstance(feature, dict):
            result.skipped += 1
            return
        props = feature.get('properties')
        if not isinstance(props, dict):
            props = {}
        geometry = feature.get('geometry')
        if not isinstance(geometry, dict):
            logger.debug(f"Feature {idx}: geometry is not an object, skipped")
            result.skipped += 1
            return
        geom_type = geometry.get('type')

        name_value = get_fuzzy_value(props, NAME_KEYS)
        name = str(name_value) if name_value is not None else f"GIS-Item-{idx}"
        label_value = get_fuzzy_value(props, LABEL_KEYS)
        label = str(label_value) if label_value is not None else ''

        if geom_type in LINE_GEOMETRIES:
            vertices = line_vertices(geometry)
            if not vertices or len(vertices) < 2:
                result.skipped += 1
                return
            segment = self.build_segment(
                self.make_id('GIS-S', idx),
                name,
                _xy(vertices[0]),
                _xy(vertices[-1]),
                length=parse_numeric_lenient(get_fuzzy_value(props, LENGTH_KEYS)),
                label=label,
            )
            if segment is None:
                result.skipped += 1
            else:
                result.segments.append(segment)

        elif geom_type == 'Point':
            point = self.build_point(
                self.make_id('GIS-P', idx),
                name,
                _xy(geometry.get('coordinates')),
                label=label or name,
            )
            if point is None:
                result.skipped += 1
            else:
                result.points.append(point)

        else:
            logger.debug(f"Feature {idx}: unsupported geometry {geom_type!r}")
            result.skipped += 1


ShapefileConverter = Callable[[bytes], Any]


def geopandas_shapefile_converter(data: bytes) -> Dict[str, Any]:
    """
    Convert a zipped shapefile to a GeoJSON FeatureCollection with geopandas.

    Layers with a known CRS are converted to WGS84; layers without a .prj
    are returned as-is and left to the coordinate magnitude check.
    """
    import geopandas as gpd

    tmp = tempfile.NamedTemporaryFile(delete=False, suffix='.zip')
    try:
        tmp.write(data)
        tmp.close()
        frame = gpd.read_file(f"zip://{tmp.name}")
        if frame.crs is not None and not frame.crs.is_geographic:
            frame = frame.to_crs(epsg=4326)
        return json.loads(frame.to_json())
    finally:
        os.unlink(tmp.name)


class ShapefileImporter(GeoJsonImporter):
    """Importer for zipped shapefiles."""

    format_name = "shapefile"

    def __init__(self, context=NetworkContext.MIXED,
                 converter: Optional[ShapefileConverter] = None):
        super().__init__(context)
        self.converter = converter or geopandas_shapefile_converter

    def parse(self, content: Content) -> ImportResult:
        if isinstance(content, str):
            raise ImportFailedError("Shapefile archives must be read as bytes")
        try:
            converted = self.converter(content)
        except ImportFailedError:
            raise
        except Exception as e:
            raise ImportFailedError(f"Shapefile conversion failed: {e}") from e

        # Multi-layer archives may come back as a list of collections
        if isinstance(converted, list) and converted and all(
                isinstance(c, dict) and 'features' in c for c in converted):
            features = [f for c in converted for f in features_from_geojson(c)]
        else:
            features = features_from_geojson(converted)
        return self.parse_features(features)


def parse_geojson(content: Content, context=NetworkContext.MIXED) -> ImportResult:
    """
    Parse GeoJSON text.

    Args:
        content: GeoJSON bytes or text
        context: Target network

    Returns:
        ImportResult
    """
    importer = GeoJsonImporter(context)
    return importer.parse(content)
