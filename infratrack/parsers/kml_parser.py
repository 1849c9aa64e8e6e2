"""
KML / KMZ Importer

KMZ archives are unzipped to find the contained KML document. Placemarks
with a LineString become segments (first and last coordinate tuples are the
endpoints); Placemarks with a Point become points. The placemark name and
description feed the classifier.
"""
import logging
import zipfile
from io import BytesIO
from typing import List, Optional

from ..config.models import Coordinate, ImportResult, NetworkContext
from ..engine.errors import ImportFailedError
from .base_parser import BaseImporter, Content, parse_float


logger = logging.getLogger(__name__)

ZIP_MAGIC = b'PK'


def parse_kml_coordinates(text: Optional[str]) -> List[Coordinate]:
    """
    Parse a KML <coordinates> body ("lon,lat[,alt] lon,lat[,alt] ...").

    Tuples with fewer than two values are dropped.
    """
    coords = []
    if not text:
        return coords
    for token in text.split():
        parts = token.split(',')
        if len(parts) < 2:
            continue
        coords.append(Coordinate(parse_float(parts[0]), parse_float(parts[1])))
    return coords


def extract_kml_from_kmz(data: bytes) -> bytes:
    """
    Return the first .kml document inside a KMZ archive.

    Raises:
        ImportFailedError: if the archive is corrupt or holds no KML
    """
    try:
        with zipfile.ZipFile(BytesIO(data)) as archive:
            names = [n for n in archive.namelist() if n.lower().endswith('.kml')]
            if not names:
                raise ImportFailedError("KML not found in KMZ archive")
            # doc.kml is the conventional root document
            names.sort(key=lambda n: (n.lower().split('/')[-1] != 'doc.kml', n.count('/')))
            return archive.read(names[0])
    except zipfile.BadZipFile as e:
        raise ImportFailedError(f"Corrupt KMZ archive: {e}") from e


def _text(element, tag: str) -> str:
    child = next(element.iterchildren('{*}' + tag), None)
    if child is None or child.text is None:
        return ''
    return child.text.strip()


class KmlImporter(BaseImporter):
    """Importer for KML documents and KMZ archives."""

    format_name = "kml"

    def parse(self, content: Content) -> ImportResult:
        result = self.begin()

        prefix = 'KML'
        if isinstance(content, bytes) and content.startswith(ZIP_MAGIC):
            content = extract_kml_from_kmz(content)
            prefix = 'KMZ'

        root = self.load_xml(content, "KML")
        for i, placemark in enumerate(root.iter('{*}Placemark')):
            self._add_placemark(prefix, i, placemark, result)

        return self.finish(result)

    def _add_placemark(self, prefix: str, i: int, placemark, result: ImportResult):
        name = _text(placemark, 'name') or f"{prefix} item {i}"
        description = _text(placemark, 'description')
        label = ' '.join(filter(None, [name, description]))

        line = next(placemark.iter('{*}LineString'), None)
        if line is not None:
            coords = parse_kml_coordinates(_text(line, 'coordinates'))
            if len(coords) < 2:
                result.skipped += 1
                return
            segment = self.build_segment(
                self.make_id(f'{prefix}-S', i), name, coords[0], coords[-1], label=description,
            )
            if segment is None:
                result.skipped += 1
            else:
                result.segments.append(segment)
            return

        point_geom = next(placemark.iter('{*}Point'), None)
        if point_geom is not None:
            coords = parse_kml_coordinates(_text(point_geom, 'coordinates'))
            if not coords:
                result.skipped += 1
                return
            point = self.build_point(self.make_id(f'{prefix}-P', i), name, coords[0], label=label)
            if point is None:
                result.skipped += 1
            else:
                result.points.append(point)
            return

        logger.debug(f"Placemark '{name}' has no LineString or Point geometry")


def parse_kml(content: Content, context=NetworkContext.MIXED) -> ImportResult:
    """
    Parse KML text or KMZ bytes.

    Args:
        content: KML document or KMZ archive
        context: Target network

    Returns:
        ImportResult
    """
    importer = KmlImporter(context)
    return importer.parse(content)
