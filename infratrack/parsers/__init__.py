"""
Parsers Package

File format importers, fuzzy field matching and asset classification.
"""
from .base_parser import BaseImporter, detect_file_format, create_importer, import_file
from .schema_matcher import SchemaMatcher, get_fuzzy_value, parse_numeric_lenient
from .asset_classifier import KeywordRule, classify_point, detect_segment_network
from .tabular_parser import TabularImporter, parse_table
from .dxf_parser import DxfImporter, parse_dxf
from .landxml_parser import LandXmlImporter, parse_landxml
from .kml_parser import KmlImporter, parse_kml
from .geojson_parser import GeoJsonImporter, ShapefileImporter, parse_geojson

__all__ = [
    'BaseImporter',
    'detect_file_format',
    'create_importer',
    'import_file',
    'SchemaMatcher',
    'get_fuzzy_value',
    'parse_numeric_lenient',
    'KeywordRule',
    'classify_point',
    'detect_segment_network',
    'TabularImporter',
    'parse_table',
    'DxfImporter',
    'parse_dxf',
    'LandXmlImporter',
    'parse_landxml',
    'KmlImporter',
    'parse_kml',
    'GeoJsonImporter',
    'ShapefileImporter',
    'parse_geojson',
]
