"""
InfraTrack Configuration Settings
"""
from dataclasses import dataclass, field, replace
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional


class FileFormat(Enum):
    """Supported input formats."""
    TABULAR = "tabular"       # .xlsx / .csv
    HTML = "html"             # .html / .htm table
    DXF = "dxf"
    LANDXML = "landxml"       # .xml
    KML = "kml"
    KMZ = "kmz"
    GEOJSON = "geojson"       # .geojson / .json
    SHAPEFILE = "shapefile"   # zipped .shp bundle
    UNKNOWN = "unknown"

    @classmethod
    def from_extension(cls, filename: str) -> 'FileFormat':
        """Detect the format from a file name or bare extension."""
        ext = Path(str(filename)).suffix.lower() or '.' + str(filename).lower().lstrip('.')
        return _EXTENSIONS.get(ext, cls.UNKNOWN)


_EXTENSIONS = {
    '.xlsx': FileFormat.TABULAR,
    '.csv': FileFormat.TABULAR,
    '.html': FileFormat.HTML,
    '.htm': FileFormat.HTML,
    '.dxf': FileFormat.DXF,
    '.xml': FileFormat.LANDXML,
    '.kml': FileFormat.KML,
    '.kmz': FileFormat.KMZ,
    '.geojson': FileFormat.GEOJSON,
    '.json': FileFormat.GEOJSON,
    '.zip': FileFormat.SHAPEFILE,
}


@dataclass
class ProjectionConfig:
    """Projected coordinate system assumed for large-magnitude input."""
    utm_zone: int = 37              # Western Saudi Arabia (Jeddah/Makkah/Taif)
    northern_hemisphere: bool = True
    datum: str = 'WGS84'

    @property
    def epsg_code(self) -> int:
        """EPSG code of the WGS84 UTM zone."""
        base = 32600 if self.northern_hemisphere else 32700
        return base + self.utm_zone


@dataclass
class AuditConfig:
    """Topology audit tolerances (meters)."""
    connection_tolerance_m: float = 1.0    # endpoints closer than this are connected
    degenerate_tolerance_m: float = 0.1    # self-loops and duplicate points
    near_zero_length_m: float = 1.0        # declared length treated as missing
    max_segment_length_m: float = 2000.0
    score_penalty_per_issue: int = 5


@dataclass
class ImportConfig:
    """Tabular field aliases and importer defaults."""
    field_aliases: Dict[str, List[str]] = field(default_factory=lambda: {
        'start_x': ['StartLon', 'Start Longitude', 'StartX', 'X1', 'Lon1', 'Start_Lon', 'Start Lon'],
        'start_y': ['StartLat', 'Start Latitude', 'StartY', 'Y1', 'Lat1', 'Start_Lat', 'Start Lat'],
        'end_x': ['EndLon', 'End Longitude', 'EndX', 'X2', 'Lon2', 'End_Lon', 'End Lon'],
        'end_y': ['EndLat', 'End Latitude', 'EndY', 'Y2', 'Lat2', 'End_Lat', 'End Lat'],
        'length': ['Length', 'Len', 'Distance'],
        'segment_name': ['Name', 'Segment Name', 'Pipe Name'],
        'contractor': ['Contractor', 'Company'],
        'segment_type': ['Type', 'Network', 'Network Type', 'Service'],
        'point_x': ['Lon', 'Longitude', 'X', 'Easting'],
        'point_y': ['Lat', 'Latitude', 'Y', 'Northing'],
        'point_name': ['Name', 'Point Name', 'Node Name'],
        'point_type': ['Type', 'Point Type', 'Class', 'Category'],
    })

    # Contractor recorded on segments coming from geometry-only formats
    default_contractors: Dict[str, str] = field(default_factory=lambda: {
        'tabular': 'Unknown',
        'dxf': 'DXF',
        'landxml': 'Civil 3D',
        'kml': 'KMZ Import',
        'geojson': 'GIS Import',
        'shapefile': 'GIS Import',
    })

    # Words that mark a segment as sewage when importing in MIXED context
    sewage_segment_keywords: List[str] = field(default_factory=lambda: [
        'SEWAGE', 'DRAIN', 'GRAVITY', 'SANITARY', 'صرف',
    ])

    text_encoding: str = 'utf-8'
    fallback_encodings: List[str] = field(default_factory=lambda: ['cp1256', 'latin-1'])

    def aliases(self, logical_field: str) -> List[str]:
        """Alias list for a logical field name."""
        try:
            return self.field_aliases[logical_field]
        except KeyError:
            raise KeyError(f"Unknown tabular field '{logical_field}'") from None


@dataclass
class Settings:
    """Main settings container."""
    projection: ProjectionConfig = field(default_factory=ProjectionConfig)
    audit: AuditConfig = field(default_factory=AuditConfig)
    imports: ImportConfig = field(default_factory=ImportConfig)

    # Output formatting
    decimal_places: int = 6
    length_unit: str = 'm'


# Global settings instance
settings = Settings()


def get_settings() -> Settings:
    """Get the global settings instance."""
    return settings


def update_settings(projection: Optional[ProjectionConfig] = None,
                    audit: Optional[AuditConfig] = None,
                    imports: Optional[ImportConfig] = None) -> Settings:
    """Replace whole sections of the global settings in place."""
    if projection is not None:
        settings.projection = projection
    if audit is not None:
        settings.audit = audit
    if imports is not None:
        settings.imports = imports
    return settings


def reset_settings() -> Settings:
    """Restore every section to its defaults."""
    defaults = Settings()
    settings.projection = defaults.projection
    settings.audit = defaults.audit
    settings.imports = defaults.imports
    settings.decimal_places = defaults.decimal_places
    settings.length_unit = defaults.length_unit
    return settings


def with_audit_tolerances(connection_m: float = None, degenerate_m: float = None) -> AuditConfig:
    """Copy of the current audit config with different tolerances."""
    changes = {}
    if connection_m is not None:
        changes['connection_tolerance_m'] = connection_m
    if degenerate_m is not None:
        changes['degenerate_tolerance_m'] = degenerate_m
    return replace(settings.audit, **changes)
