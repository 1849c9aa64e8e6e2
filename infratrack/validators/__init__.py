"""
Validators Package

Topology audit of utility networks.
"""
from typing import List, Optional, Sequence
import logging

from ..config.models import (
    AuditReport, Issue, Network, NetworkType, Point, PointKind, Segment, Severity,
)
from ..config.settings import AuditConfig, get_settings
from ..engine.geodesy import distance_meters, midpoint
from ..engine.spatial_index import SpatialGrid


logger = logging.getLogger(__name__)


class NetworkAuditor:
    """
    Topology auditor for segments and points.

    Every check is advisory: findings are returned as Issue objects and the
    audit never raises for a well-formed network, including an empty one.
    """

    def __init__(self, config: Optional[AuditConfig] = None):
        self.config = config or get_settings().audit

    def audit(self, segments: Sequence[Segment], points: Sequence[Point]) -> List[Issue]:
        """
        Run all checks.

        Issues come out per segment in input order (self-loop, length
        mismatch, excessive length, open start, open end), then per point
        (orphan, duplicates with later points), then the sewage manhole check.

        Args:
            segments: Normalized segments
            points: Normalized points

        Returns:
            List of Issue, unsorted
        """
        config = self.config
        issues: List[Issue] = []

        endpoint_grid = SpatialGrid(
            [(seg.start_node, i) for i, seg in enumerate(segments)]
            + [(seg.end_node, i) for i, seg in enumerate(segments)],
            config.connection_tolerance_m,
        )
        point_grid = SpatialGrid(
            [(pt.location, i) for i, pt in enumerate(points)],
            max(config.connection_tolerance_m, config.degenerate_tolerance_m),
        )

        for i, seg in enumerate(segments):
            issues.extend(self._check_segment(i, seg, endpoint_grid, point_grid))

        for idx, pt in enumerate(points):
            issues.extend(self._check_point(idx, pt, points, endpoint_grid, point_grid))

        no_manholes = self._check_sewage_manholes(segments, points)
        if no_manholes is not None:
            issues.append(no_manholes)

        logger.info(
            f"Audit of {len(segments)} segments and {len(points)} points: "
            f"{len(issues)} issues"
        )
        return issues

    def _check_segment(self, i: int, seg: Segment, endpoint_grid: SpatialGrid,
                       point_grid: SpatialGrid) -> List[Issue]:
        config = self.config
        found = []
        geometry_length = distance_meters(seg.start_node, seg.end_node)

        if geometry_length < config.degenerate_tolerance_m:
            found.append(Issue(
                id=f"LOOP-{seg.id}",
                severity=Severity.ERROR,
                title="Self-loop",
                description=f"Segment '{seg.name}' starts and ends at the same point.",
                target_id=seg.id,
                location=seg.start_node,
            ))

        if (seg.length_meters < config.near_zero_length_m
                and geometry_length > config.near_zero_length_m):
            found.append(Issue(
                id=f"LEN-MM-{seg.id}",
                severity=Severity.WARNING,
                title="Length mismatch",
                description=(
                    f"Declared length is {seg.length_meters:g} m but the geometry "
                    f"measures {round(geometry_length)} m."
                ),
                target_id=seg.id,
                location=seg.start_node,
            ))

        if geometry_length > config.max_segment_length_m:
            found.append(Issue(
                id=f"LEN-MAX-{seg.id}",
                severity=Severity.WARNING,
                title="Excessive length",
                description=(
                    f"Segment '{seg.name}' is {round(geometry_length)} m long, over "
                    f"{config.max_segment_length_m:g} m without intermediate control points."
                ),
                target_id=seg.id,
                location=midpoint(seg.start_node, seg.end_node),
            ))

        if not self._endpoint_connected(i, seg.start_node, endpoint_grid, point_grid):
            found.append(Issue(
                id=f"DISC-START-{seg.id}",
                severity=Severity.WARNING,
                title="Open start",
                description=f"Start of segment '{seg.name}' is not connected to any other element.",
                target_id=seg.id,
                location=seg.start_node,
            ))

        if not self._endpoint_connected(i, seg.end_node, endpoint_grid, point_grid):
            found.append(Issue(
                id=f"DISC-END-{seg.id}",
                severity=Severity.WARNING,
                title="Open end",
                description=f"End of segment '{seg.name}' is not connected to any other element.",
                target_id=seg.id,
                location=seg.end_node,
            ))

        return found

    def _endpoint_connected(self, i: int, node, endpoint_grid: SpatialGrid,
                            point_grid: SpatialGrid) -> bool:
        tolerance = self.config.connection_tolerance_m
        # Other segments are matched by position, so equal ids do not hide a connection
        if any(j != i for j in endpoint_grid.payloads_near(node, tolerance)):
            return True
        return bool(point_grid.query(node, tolerance))

    def _check_point(self, idx: int, pt: Point, points: Sequence[Point],
                     endpoint_grid: SpatialGrid, point_grid: SpatialGrid) -> List[Issue]:
        config = self.config
        found = []

        if not endpoint_grid.query(pt.location, config.connection_tolerance_m):
            found.append(Issue(
                id=f"ORPHAN-{pt.id}",
                severity=Severity.INFO,
                title="Orphan point",
                description=f"'{pt.name}' is on the map but not connected to any segment.",
                target_id=pt.id,
                location=pt.location,
            ))

        for j in point_grid.query(pt.location, config.degenerate_tolerance_m):
            if j <= idx:
                continue
            other = points[j]
            found.append(Issue(
                id=f"DUP-{pt.id}-{other.id}",
                severity=Severity.ERROR,
                title="Duplicate point",
                description=f"'{pt.name}' and '{other.name}' share the same location.",
                target_id=pt.id,
                location=pt.location,
            ))

        return found

    @staticmethod
    def _check_sewage_manholes(segments: Sequence[Segment],
                               points: Sequence[Point]) -> Optional[Issue]:
        sewage = next((s for s in segments if s.network_type is NetworkType.SEWAGE), None)
        if sewage is None:
            return None
        if any(p.kind is PointKind.MANHOLE for p in points):
            return None
        return Issue(
            id="NO-MH",
            severity=Severity.ERROR,
            title="Sewage network without manholes",
            description="The project has sewage segments but no manholes are recorded.",
            location=sewage.start_node,
        )

    def get_summary(self, report: AuditReport) -> dict:
        """
        Get summary statistics of an audit report.

        Args:
            report: AuditReport to summarize

        Returns:
            Dictionary with summary statistics
        """
        return {
            'segments': report.segment_count,
            'points': report.point_count,
            'issues': len(report.issues),
            'errors': report.error_count,
            'warnings': report.warning_count,
            'info': report.info_count,
            'score': report.score,
        }


def sort_issues(issues: Sequence[Issue]) -> List[Issue]:
    """Stable sort: ERROR, then WARNING, then INFO."""
    return sorted(issues, key=lambda issue: issue.severity.rank)


def run_audit(segments: Sequence[Segment], points: Sequence[Point],
              config: Optional[AuditConfig] = None) -> AuditReport:
    """
    Convenience function to audit segments and points.

    Args:
        segments: Normalized segments
        points: Normalized points
        config: Tolerances, defaults to the global settings

    Returns:
        AuditReport
    """
    auditor = NetworkAuditor(config)
    return AuditReport(
        issues=auditor.audit(segments, points),
        segment_count=len(segments),
        point_count=len(points),
        penalty_per_issue=auditor.config.score_penalty_per_issue,
    )


def audit_network(network: Network, config: Optional[AuditConfig] = None) -> AuditReport:
    """Audit a Network aggregate."""
    return run_audit(network.segments, network.points, config)
