"""
DXF Importer

Streams the group-code/value pairs of an ASCII DXF file and collects network
geometry from the ENTITIES section:

    LINE        10/20 start, 11/21 end      -> one segment
    LWPOLYLINE  repeated 10/20 vertices     -> one segment per vertex pair
                70 bit 1 = closed           -> extra closing segment
    POLYLINE    VERTEX records up to SEQEND -> same as LWPOLYLINE
    POINT       10/20                       -> one point
    INSERT      10/20, 2 = block name       -> one point

Layer (8) and block names are used as classification labels. An entity is
finalized when the next 0-code arrives, except that VERTEX records extend
the open POLYLINE until its SEQEND.
"""
from dataclasses import dataclass, field
from io import StringIO
from typing import List, Optional, Tuple
import logging
import math

from ezdxf.lldxf.const import DXFError
from ezdxf.lldxf.tagger import ascii_tags_loader

from ..config.models import Coordinate, ImportResult, NetworkContext
from ..engine.errors import ImportFailedError
from .base_parser import BaseImporter, Content, parse_float


logger = logging.getLogger(__name__)

LINE_ENTITIES = ('LINE',)
POLYLINE_ENTITIES = ('LWPOLYLINE', 'POLYLINE')
POINT_ENTITIES = ('POINT', 'INSERT')


@dataclass
class _EntityBuffer:
    """Fields collected for the entity currently being read."""
    kind: str = ''
    layer: str = ''
    block: str = ''
    x1: float = math.nan
    y1: float = math.nan
    x2: float = math.nan
    y2: float = math.nan
    closed: bool = False
    in_vertex: bool = False
    vertices: List[List[float]] = field(default_factory=list)

    def collect(self, code: int, value: str):
        if code == 8:
            if not self.in_vertex:
                self.layer = value
            return

        if self.kind in LINE_ENTITIES:
            if code == 10:
                self.x1 = parse_float(value)
            elif code == 20:
                self.y1 = parse_float(value)
            elif code == 11:
                self.x2 = parse_float(value)
            elif code == 21:
                self.y2 = parse_float(value)

        elif self.kind in POLYLINE_ENTITIES:
            if self.kind == 'POLYLINE' and not self.in_vertex:
                # header 10/20 is a dummy point
                if code == 70:
                    flags = parse_float(value)
                    self.closed = math.isfinite(flags) and bool(int(flags) & 1)
                return
            if code == 10:
                self.vertices.append([parse_float(value), 0.0])
            elif code == 20 and self.vertices:
                self.vertices[-1][1] = parse_float(value)
            elif code == 70 and not self.in_vertex:
                flags = parse_float(value)
                self.closed = math.isfinite(flags) and bool(int(flags) & 1)

        elif self.kind in POINT_ENTITIES:
            if code == 10:
                self.x1 = parse_float(value)
            elif code == 20:
                self.y1 = parse_float(value)
            elif code == 2:
                self.block = value

    @property
    def label(self) -> str:
        return self.block or self.layer


class DxfImporter(BaseImporter):
    """Importer for ASCII DXF drawings."""

    format_name = "dxf"

    def parse(self, content: Content) -> ImportResult:
        result = self.begin()
        text = self.decode_text(content)

        section = ''
        entity = _EntityBuffer()
        try:
            for tag in ascii_tags_loader(StringIO(text)):
                code = tag.code
                value = str(tag.value).strip()

                if code == 0 and value == 'SECTION':
                    section = ''
                    continue
                if code == 2 and section == '':
                    section = value
                    continue
                if section != 'ENTITIES':
                    continue

                if code == 0 and value == 'VERTEX' and entity.kind == 'POLYLINE':
                    entity.in_vertex = True
                    continue
                if code == 0:
                    self._finalize(entity, result)
                    entity = _EntityBuffer(kind=value)
                    continue
                entity.collect(code, value)
        except (DXFError, ValueError) as e:
            raise ImportFailedError(f"Invalid DXF structure: {e}") from e

        # Truncated files may end without ENDSEC
        if section == 'ENTITIES':
            self._finalize(entity, result)

        return self.finish(result)

    def _finalize(self, entity: _EntityBuffer, result: ImportResult):
        if entity.kind in LINE_ENTITIES:
            self._add_line(entity, result)
        elif entity.kind in POLYLINE_ENTITIES:
            self._add_polyline(entity, result)
        elif entity.kind in POINT_ENTITIES:
            self._add_point(entity, result)

    def _add_line(self, entity: _EntityBuffer, result: ImportResult):
        if math.isnan(entity.x1):
            result.skipped += 1
            return
        n = len(result.segments)
        segment = self.build_segment(
            self.make_id('DXF-L', n),
            f"DXF Line {n}",
            Coordinate(entity.x1, entity.y1),
            Coordinate(entity.x2, entity.y2),
            label=entity.layer,
        )
        self._append(result.segments, segment, result)

    def _add_polyline(self, entity: _EntityBuffer, result: ImportResult):
        vertices: List[Tuple[float, float]] = [tuple(v) for v in entity.vertices]
        if len(vertices) < 2:
            result.skipped += 1
            return
        if entity.closed and vertices[0] != vertices[-1]:
            vertices.append(vertices[0])

        base = len(result.segments)
        for v in range(len(vertices) - 1):
            (sx, sy), (ex, ey) = vertices[v], vertices[v + 1]
            segment = self.build_segment(
                self.make_id('DXF-PL', base, v),
                f"Polyline Seg {v}",
                Coordinate(sx, sy),
                Coordinate(ex, ey),
                label=entity.layer,
            )
            self._append(result.segments, segment, result)

    def _add_point(self, entity: _EntityBuffer, result: ImportResult):
        if math.isnan(entity.x1):
            result.skipped += 1
            return
        n = len(result.points)
        point = self.build_point(
            self.make_id('DXF-P', n),
            f"DXF Point {n}",
            Coordinate(entity.x1, entity.y1),
            label=entity.label,
        )
        self._append(result.points, point, result)

    @staticmethod
    def _append(items: list, item: Optional[object], result: ImportResult):
        if item is None:
            result.skipped += 1
        else:
            items.append(item)


def parse_dxf(content: Content, context=NetworkContext.MIXED) -> ImportResult:
    """
    Parse DXF content.

    Args:
        content: DXF bytes or text
        context: Target network

    Returns:
        ImportResult
    """
    importer = DxfImporter(context)
    return importer.parse(content)
