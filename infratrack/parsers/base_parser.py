"""
Base Importer Module

Abstract base class for all file format importers, plus the format
detection and importer factory.
"""
from abc import ABC, abstractmethod
from pathlib import Path
from typing import List, Optional, Union
import itertools
import logging
import math
import time

from lxml import etree

from ..config.models import (
    Coordinate, ExecutionStatus, ImportResult, NetworkContext, NetworkType,
    Point, Segment,
)
from ..config.settings import FileFormat, get_settings
from ..engine.errors import ImportFailedError, UnsupportedFormatError
from ..engine.geodesy import distance_meters, to_geographic
from .asset_classifier import classify_point, detect_segment_network


logger = logging.getLogger(__name__)

Content = Union[bytes, str]

_RUN_SEQUENCE = itertools.count(1)


class BaseImporter(ABC):
    """Abstract base class for network file importers."""

    #: Short name used in ids, contractor defaults and status messages
    format_name = ""

    def __init__(self, context=NetworkContext.MIXED):
        """
        Initialize the importer.

        Args:
            context: Target network (WATER, SEWAGE or MIXED)
        """
        self.settings = get_settings()
        self.context = NetworkContext.parse(context)
        self.errors: List[str] = []
        self.warnings: List[str] = []
        self._run_stamp = 0

    @abstractmethod
    def parse(self, content: Content) -> ImportResult:
        """
        Parse raw file content.

        Args:
            content: File bytes or decoded text

        Returns:
            ImportResult with normalized segments and points

        Raises:
            ImportFailedError: if the file as a whole cannot be read
        """
        pass

    def parse_file(self, filepath: str) -> ImportResult:
        """Read a file from disk and parse it."""
        path = Path(filepath)
        try:
            content = path.read_bytes()
        except OSError as e:
            raise ImportFailedError(str(e), filename=path.name) from e
        try:
            return self.parse(content)
        except ImportFailedError as e:
            if e.filename is None:
                e.filename = path.name
            raise

    def begin(self) -> ImportResult:
        """Reset messages and start a new result."""
        self.clear_messages()
        self._run_stamp = f"{int(time.time() * 1000)}-{next(_RUN_SEQUENCE)}"
        return ImportResult(source_format=self.format_name)

    def finish(self, result: ImportResult) -> ImportResult:
        """Attach warnings and log the outcome."""
        result.warnings = list(self.warnings)
        logger.info(result.status_message())
        return result

    def decode_text(self, content: Content) -> str:
        """
        Decode bytes with the configured encoding and fallbacks.

        Args:
            content: Raw bytes or already decoded text

        Returns:
            Text content
        """
        if isinstance(content, str):
            return content

        config = self.settings.imports
        for enc in [config.text_encoding] + config.fallback_encodings:
            try:
                text = content.decode(enc)
                logger.debug(f"Decoded content with encoding {enc}")
                return text
            except (UnicodeDecodeError, LookupError):
                continue

        self.add_warning("Could not detect encoding, used latin-1 with replacements")
        return content.decode('latin-1', errors='replace')

    def load_xml(self, content: Content, what: str = "XML"):
        """
        Parse an XML document with entity expansion and network access disabled.

        Raises:
            ImportFailedError: if the document is not well-formed
        """
        options = dict(resolve_entities=False, no_network=True, huge_tree=True)
        if isinstance(content, str):
            # Text input: ignore any encoding named in the XML declaration
            data = content.encode("utf-8")
            parser = etree.XMLParser(encoding="utf-8", **options)
        else:
            data = content
            parser = etree.XMLParser(**options)
        try:
            return etree.fromstring(data, parser=parser)
        except etree.XMLSyntaxError as e:
            raise ImportFailedError(f"Invalid {what}: {e}") from e

    def make_id(self, prefix: str, *parts) -> str:
        """Unique id: PREFIX-part...-timestamp-run."""
        tokens = [prefix] + [str(p) for p in parts] + [str(self._run_stamp)]
        return '-'.join(tokens)

    def build_segment(self, seg_id: str, name: str, start: Coordinate, end: Coordinate,
                      length: float = 0.0, network_type: Optional[NetworkType] = None,
                      label: str = '', contractor: str = None) -> Optional[Segment]:
        """
        Create a normalized segment from raw coordinates.

        Coordinates are reprojected, the length falls back to the geodesic
        distance when missing or zero, and the network type comes from the
        context (or the label in MIXED context).

        Returns:
            Segment, or None if the coordinates are not finite
        """
        start = to_geographic(start.x, start.y)
        end = to_geographic(end.x, end.y)
        if not (start.is_finite and end.is_finite):
            logger.debug(f"Skipping segment '{name}': non-finite coordinates")
            return None

        if not length:
            length = distance_meters(start, end)

        if network_type is None:
            network_type = detect_segment_network(f"{label} {name}", self.context)

        if contractor is None:
            contractor = self.settings.imports.default_contractors.get(self.format_name, '')

        return Segment(
            id=seg_id,
            name=name,
            network_type=network_type,
            start_node=start,
            end_node=end,
            length_meters=length,
            status=ExecutionStatus.PENDING,
            completion_percentage=0.0,
            contractor=contractor,
        )

    def build_point(self, point_id: str, name: str, location: Coordinate,
                    label: str = None, context: NetworkContext = None) -> Optional[Point]:
        """
        Create a normalized point, classified from label (or name).

        context overrides the importer context for this point only.

        Returns:
            Point, or None if the coordinates are not finite
        """
        location = to_geographic(location.x, location.y)
        if not location.is_finite:
            logger.debug(f"Skipping point '{name}': non-finite coordinates")
            return None

        kind = classify_point(label if label else name, context or self.context)
        return Point(
            id=point_id,
            name=name,
            kind=kind,
            location=location,
            status=ExecutionStatus.PENDING,
        )

    def add_error(self, message: str):
        """Add an error message."""
        self.errors.append(message)
        logger.error(message)

    def add_warning(self, message: str):
        """Add a warning message."""
        self.warnings.append(message)
        logger.warning(message)

    def clear_messages(self):
        """Clear all error and warning messages."""
        self.errors = []
        self.warnings = []


def parse_float(text) -> float:
    """float() that yields NaN instead of raising."""
    try:
        return float(str(text).strip())
    except (TypeError, ValueError):
        return math.nan


def detect_file_format(filename: str) -> FileFormat:
    """
    Detect the format of a network file from its extension.

    Args:
        filename: File name or path

    Returns:
        FileFormat enum value
    """
    return FileFormat.from_extension(filename)


def create_importer(filename: str, context=NetworkContext.MIXED,
                    target: str = 'SEGMENTS') -> BaseImporter:
    """
    Factory function to create the importer for a file.

    Args:
        filename: File name (only the extension is used)
        context: Target network
        target: SEGMENTS or POINTS, for tabular files

    Returns:
        Importer instance

    Raises:
        UnsupportedFormatError: for unknown extensions
    """
    file_format = detect_file_format(filename)

    if file_format in (FileFormat.TABULAR, FileFormat.HTML):
        from .tabular_parser import TabularImporter
        return TabularImporter(context, target=target, filename=filename)
    elif file_format == FileFormat.DXF:
        from .dxf_parser import DxfImporter
        return DxfImporter(context)
    elif file_format == FileFormat.LANDXML:
        from .landxml_parser import LandXmlImporter
        return LandXmlImporter(context)
    elif file_format in (FileFormat.KML, FileFormat.KMZ):
        from .kml_parser import KmlImporter
        return KmlImporter(context)
    elif file_format == FileFormat.GEOJSON:
        from .geojson_parser import GeoJsonImporter
        return GeoJsonImporter(context)
    elif file_format == FileFormat.SHAPEFILE:
        from .geojson_parser import ShapefileImporter
        return ShapefileImporter(context)

    logger.warning(f"Unknown file format for {filename}")
    raise UnsupportedFormatError(
        f"Unsupported file type '{Path(filename).suffix or filename}'", filename=filename
    )


def import_file(source: Union[str, Path, bytes], filename: str = None,
                context=NetworkContext.MIXED, target: str = 'SEGMENTS') -> ImportResult:
    """
    Import a file from a path, or from bytes plus a file name.

    Args:
        source: Path to the file, or its raw content
        filename: Required when source is bytes; chooses the importer
        context: Target network
        target: SEGMENTS or POINTS, for tabular files

    Returns:
        ImportResult
    """
    if isinstance(source, (bytes, bytearray)):
        if not filename:
            raise ValueError("filename is required when importing raw bytes")
        importer = create_importer(filename, context, target)
        try:
            return importer.parse(bytes(source))
        except ImportFailedError as e:
            if e.filename is None:
                e.filename = filename
            raise

    path = Path(source)
    importer = create_importer(filename or path.name, context, target)
    return importer.parse_file(str(path))
