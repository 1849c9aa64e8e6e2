"""
LandXML Importer

Reads Civil 3D LandXML pipe networks:

    <PipeNetwork name="..." pipeNetType="sanitary">
      <Structs>
        <Struct name="MH-1" desc="Manhole"><Center>2423087.1 510669.4</Center></Struct>
      </Structs>
      <Pipes>
        <Pipe name="P-1" refStart="MH-1" refEnd="MH-2">
          <Start>2423087.1 510669.4</Start><End>2423187.0 510769.2</End>
        </Pipe>
      </Pipes>
    </PipeNetwork>

Coordinate text is "northing easting [elevation]", space or comma delimited.
Pipes without Start/End children fall back to the Center of the structures
named by refStart/refEnd.
"""
import logging
import re
from typing import Dict, Optional

from ..config.models import Coordinate, ImportResult, NetworkContext, NetworkType
from .asset_classifier import detect_segment_network
from .base_parser import BaseImporter, Content, parse_float


logger = logging.getLogger(__name__)

_DELIMITERS = re.compile(r'[\s,]+')


def parse_northing_easting(text: Optional[str]) -> Optional[Coordinate]:
    """
    Parse "northing easting [z]" text into an (easting, northing) Coordinate.

    Returns:
        Coordinate, or None if fewer than two numbers are present
    """
    if not text:
        return None
    parts = [p for p in _DELIMITERS.split(text.strip()) if p]
    if len(parts) < 2:
        return None
    northing = parse_float(parts[0])
    easting = parse_float(parts[1])
    return Coordinate(easting, northing)


def _child_text(element, tag: str) -> Optional[str]:
    child = next(element.iter('{*}' + tag), None)
    if child is None:
        return None
    return child.text


def _network_label(element) -> str:
    for ancestor in element.iterancestors('{*}PipeNetwork'):
        return ' '.join(filter(None, [
            ancestor.get('pipeNetType'), ancestor.get('name'), ancestor.get('desc'),
        ]))
    return ''


class LandXmlImporter(BaseImporter):
    """Importer for LandXML pipe networks."""

    format_name = "landxml"

    def parse(self, content: Content) -> ImportResult:
        result = self.begin()
        root = self.load_xml(content, "LandXML")

        centers: Dict[str, Coordinate] = {}
        structs = list(root.iter('{*}Struct'))
        for struct in structs:
            center = parse_northing_easting(_child_text(struct, 'Center'))
            if struct.get('name') and center is not None:
                centers[struct.get('name')] = center

        for i, pipe in enumerate(root.iter('{*}Pipe')):
            self._add_pipe(i, pipe, centers, result)

        for i, struct in enumerate(structs):
            self._add_struct(i, struct, result)

        return self.finish(result)

    def _add_pipe(self, i: int, pipe, centers: Dict[str, Coordinate], result: ImportResult):
        name = pipe.get('name') or f"C3D-Pipe-{i}"

        start = parse_northing_easting(_child_text(pipe, 'Start'))
        end = parse_northing_easting(_child_text(pipe, 'End'))
        if start is None:
            start = centers.get(pipe.get('refStart', ''))
        if end is None:
            end = centers.get(pipe.get('refEnd', ''))

        if start is None or end is None or not (start.is_finite and end.is_finite):
            logger.debug(f"Pipe '{name}' has no usable Start/End, skipped")
            result.skipped += 1
            return

        label = ' '.join(filter(None, [pipe.get('desc'), _network_label(pipe)]))
        segment = self.build_segment(
            self.make_id('C3D-S', i), name, start, end, label=label,
        )
        if segment is None:
            result.skipped += 1
            return
        result.segments.append(segment)

    def _add_struct(self, i: int, struct, result: ImportResult):
        name = struct.get('name') or f"C3D-MH-{i}"
        center = parse_northing_easting(_child_text(struct, 'Center'))
        if center is None or not center.is_finite:
            result.skipped += 1
            return

        label = ' '.join(filter(None, [struct.get('desc'), name]))
        point = self._build_struct_point(
            self.make_id('C3D-P', i), name, center, label, _network_label(struct),
        )
        if point is None:
            result.skipped += 1
            return
        result.points.append(point)

    def _build_struct_point(self, point_id: str, name: str, center: Coordinate,
                            label: str, network_label: str):
        # In MIXED imports a sanitary PipeNetwork keeps its structures on the sewage side
        context = self.context
        if context is NetworkContext.MIXED and network_label:
            if detect_segment_network(network_label, context) is NetworkType.SEWAGE:
                context = NetworkContext.SEWAGE
        return self.build_point(point_id, name, center, label=label, context=context)


def parse_landxml(content: Content, context=NetworkContext.MIXED) -> ImportResult:
    """
    Parse LandXML content.

    Args:
        content: XML bytes or text
        context: Target network

    Returns:
        ImportResult
    """
    importer = LandXmlImporter(context)
    return importer.parse(content)
