"""
Exporters Package

Import templates (Excel) and audit reports (CSV / Excel).
"""
from pathlib import Path
from typing import Dict, List, Sequence
import logging

import pandas as pd

from ..config.models import AuditReport, Issue, NetworkContext


logger = logging.getLogger(__name__)

SEGMENTS = 'SEGMENTS'
POINTS = 'POINTS'

# Example coordinates are UTM 37N northing/easting, as surveyors deliver them
_SEGMENT_ROWS = {
    NetworkContext.MIXED: [
        {'Name': 'Water Pipe 01', 'StartLat': 2423087, 'StartLon': 510669,
         'EndLat': 2423187, 'EndLon': 510769, 'Length': 150, 'Type': 'Water'},
        {'Name': 'Sewage Line 01', 'StartLat': 2423200, 'StartLon': 510800,
         'EndLat': 2423300, 'EndLon': 510900, 'Length': 140, 'Type': 'Sewage'},
    ],
}

_POINT_ROWS = {
    NetworkContext.MIXED: [
        {'Name': 'Valve 01', 'Lat': 2423087, 'Lon': 510669, 'Type': 'Valve'},
        {'Name': 'Manhole 01', 'Lat': 2423200, 'Lon': 510800, 'Type': 'Manhole'},
    ],
    NetworkContext.SEWAGE: [
        {'Name': 'Manhole 1', 'Lat': 2423087, 'Lon': 510669, 'Type': 'Manhole'},
    ],
    NetworkContext.WATER: [
        {'Name': 'Valve 1', 'Lat': 2423087, 'Lon': 510669, 'Type': 'Valve'},
    ],
}


def template_rows(target: str, context=NetworkContext.MIXED) -> List[Dict]:
    """
    Example rows for an import template.

    Args:
        target: SEGMENTS or POINTS
        context: Network the template is meant for

    Returns:
        List of row dicts
    """
    context = NetworkContext.parse(context)
    target = str(target).upper()
    if target == SEGMENTS:
        if context in _SEGMENT_ROWS:
            return [dict(r) for r in _SEGMENT_ROWS[context]]
        return [{'Name': 'Pipe 1', 'StartLat': 2423087, 'StartLon': 510669,
                 'EndLat': 2423187, 'EndLon': 510769, 'Length': 150,
                 'Type': context.value}]
    if target == POINTS:
        return [dict(r) for r in _POINT_ROWS[context]]
    raise ValueError(f"target must be {SEGMENTS} or {POINTS}, got {target!r}")


def template_filename(target: str, context=NetworkContext.MIXED) -> str:
    """Default file name, e.g. Segments_SEWAGE_Template.xlsx."""
    context = NetworkContext.parse(context)
    prefix = 'Segments' if str(target).upper() == SEGMENTS else 'Points'
    return f"{prefix}_{context.value}_Template.xlsx"


class TemplateExporter:
    """Write Excel import templates."""

    sheet_name = 'Template'

    def export(self, filepath: str, target: str, context=NetworkContext.MIXED) -> str:
        """
        Write a template workbook.

        Args:
            filepath: Output .xlsx path, or a folder to use the default name
            target: SEGMENTS or POINTS
            context: Network the template is meant for

        Returns:
            Path of the written file
        """
        path = Path(filepath)
        if path.is_dir():
            path = path / template_filename(target, context)

        frame = pd.DataFrame(template_rows(target, context))
        frame.to_excel(path, sheet_name=self.sheet_name, index=False, engine='openpyxl')
        logger.info(f"Template written to {path}")
        return str(path)


class IssueReportExporter:
    """Write audit issues to CSV or Excel, sorted by severity."""

    def __init__(self, encoding: str = 'utf-8-sig'):
        self.encoding = encoding

    def export(self, filepath: str, report: AuditReport) -> str:
        """
        Write the report. The extension selects the format (.xlsx or .csv).

        Args:
            filepath: Output path
            report: AuditReport to write

        Returns:
            Path of the written file
        """
        path = Path(filepath)
        frame = report.to_dataframe()
        if path.suffix.lower() == '.xlsx':
            frame.to_excel(path, sheet_name='Issues', index=False, engine='openpyxl')
        else:
            frame.to_csv(path, index=False, encoding=self.encoding)
        logger.info(f"Audit report with {len(frame)} issues written to {path}")
        return str(path)


def export_template(filepath: str, target: str = SEGMENTS,
                    context=NetworkContext.MIXED) -> str:
    """Convenience wrapper around TemplateExporter."""
    return TemplateExporter().export(filepath, target, context)


def export_issues_report(filepath: str, issues: Sequence[Issue]) -> str:
    """Write a plain issue list (no score context) as a report."""
    return IssueReportExporter().export(filepath, AuditReport(issues=list(issues)))
