"""
Tabular Importer

Reads spreadsheets (.xlsx), CSV files and HTML tables. Every row of one file
is either a segment or a point, depending on the requested target:

    SEGMENTS: StartLon/StartLat/EndLon/EndLat (+ Length, Name, Contractor, Type)
    POINTS:   Lon/Lat (+ Name, Type)

Column headers are matched through SchemaMatcher, so "Start_Lat",
"start latitude" and "Y1" all resolve to the same field.
"""
from io import BytesIO, StringIO
from pathlib import Path
from typing import Any, Dict, List
import logging

import pandas as pd

from ..config.models import Coordinate, ImportResult, NetworkContext
from ..config.settings import FileFormat
from ..engine.errors import ImportFailedError
from .base_parser import BaseImporter, Content
from .schema_matcher import SchemaMatcher


logger = logging.getLogger(__name__)

TARGET_SEGMENTS = 'SEGMENTS'
TARGET_POINTS = 'POINTS'


class TabularImporter(BaseImporter):
    """Importer for Excel, CSV and HTML table files."""

    format_name = "tabular"

    def __init__(self, context=NetworkContext.MIXED, target: str = TARGET_SEGMENTS,
                 filename: str = "data.xlsx"):
        super().__init__(context)
        self.target = str(target).upper()
        if self.target not in (TARGET_SEGMENTS, TARGET_POINTS):
            raise ValueError(f"target must be {TARGET_SEGMENTS} or {TARGET_POINTS}, got {target!r}")
        self.filename = filename
        self.extension = Path(filename).suffix.lower()
        self.bad_lines = 0

    def parse(self, content: Content) -> ImportResult:
        result = self.begin()
        rows = self.read_rows(content)
        result.skipped += self.bad_lines

        if self.target == TARGET_SEGMENTS:
            self._rows_to_segments(rows, result)
        else:
            self._rows_to_points(rows, result)

        return self.finish(result)

    def read_rows(self, content: Content) -> List[Dict[str, Any]]:
        """
        Load the first sheet/table as a list of row dicts.

        Raises:
            ImportFailedError: if the content is not a readable table
        """
        self.bad_lines = 0
        try:
            if FileFormat.from_extension(self.filename) == FileFormat.HTML:
                frame = self._read_html(content)
            elif self.extension == '.csv':
                frame = pd.read_csv(StringIO(self.decode_text(content)), engine='python',
                                    on_bad_lines=self._skip_bad_line)
            else:
                data = content.encode('utf-8') if isinstance(content, str) else content
                frame = pd.read_excel(BytesIO(data), sheet_name=0)
        except ImportFailedError:
            raise
        except Exception as e:
            raise ImportFailedError(f"Cannot read table: {e}", filename=self.filename) from e

        if frame is None or frame.empty:
            return []
        return frame.to_dict(orient='records')

    def _skip_bad_line(self, fields: List[str]):
        self.bad_lines += 1
        logger.debug(f"Ragged CSV line with {len(fields)} fields, skipped")
        return None

    def _read_html(self, content: Content):
        text = self.decode_text(content)
        try:
            tables = pd.read_html(StringIO(text), header=0)
        except ValueError:
            # pandas raises ValueError("No tables found")
            self.add_warning("No table found in HTML document")
            return None
        return tables[0]

    def _rows_to_segments(self, rows: List[Dict[str, Any]], result: ImportResult):
        for idx, row in enumerate(rows):
            fields = SchemaMatcher(row, self.settings.imports)

            start = Coordinate(fields.number('start_x'), fields.number('start_y'))
            end = Coordinate(fields.number('end_x'), fields.number('end_y'))
            if start.is_origin or end.is_origin:
                logger.debug(f"Row {idx + 1}: no start/end coordinates, skipped")
                result.skipped += 1
                continue

            name = fields.text('segment_name', f"Pipe {idx + 1}")
            segment = self.build_segment(
                self.make_id('TAB-S', idx),
                name,
                start,
                end,
                length=fields.number('length'),
                label=fields.text('segment_type'),
                contractor=fields.text(
                    'contractor', self.settings.imports.default_contractors['tabular']
                ),
            )
            if segment is None:
                result.skipped += 1
                continue
            result.segments.append(segment)

    def _rows_to_points(self, rows: List[Dict[str, Any]], result: ImportResult):
        for idx, row in enumerate(rows):
            fields = SchemaMatcher(row, self.settings.imports)

            x = fields.number('point_x')
            y = fields.number('point_y')
            if x == 0 or y == 0:
                logger.debug(f"Row {idx + 1}: no point coordinates, skipped")
                result.skipped += 1
                continue

            name = fields.text('point_name', f"Point {idx + 1}")
            point = self.build_point(
                self.make_id('TAB-P', idx),
                name,
                Coordinate(x, y),
                label=fields.text('point_type') or name,
            )
            if point is None:
                result.skipped += 1
                continue
            result.points.append(point)


def parse_table(content: Content, filename: str, context=NetworkContext.MIXED,
                target: str = TARGET_SEGMENTS) -> ImportResult:
    """
    Parse a tabular file.

    Args:
        content: File bytes or text
        filename: Original file name (extension selects the reader)
        context: Target network
        target: SEGMENTS or POINTS

    Returns:
        ImportResult
    """
    importer = TabularImporter(context, target=target, filename=filename)
    return importer.parse(content)
