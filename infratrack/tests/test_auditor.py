"""
Tests for the topology auditor.
"""
import math

import pytest

from infratrack.config.models import (
    AuditReport, Coordinate, Issue, Network, NetworkType, PointKind, Severity,
)
from infratrack.config.settings import AuditConfig
from infratrack.engine.geodesy import distance_meters
from infratrack.validators import NetworkAuditor, audit_network, run_audit, sort_issues
from infratrack.tests.conftest import make_point, make_segment, offset


def audit(segments, points=(), config=None):
    return NetworkAuditor(config).audit(list(segments), list(points))


def ids(issues):
    return [i.id for i in issues]


def test_self_loop_gives_one_error():
    seg = make_segment("S1", offset(), offset())
    issues = audit([seg])

    errors = [i for i in issues if i.severity is Severity.ERROR]
    assert len(errors) == 1
    assert errors[0].id == "LOOP-S1"
    assert errors[0].target_id == "S1"
    assert errors[0].location == seg.start_node


def test_isolated_segment_has_open_start_and_end():
    seg = make_segment("S1", offset(), offset(100, 0))
    issues = audit([seg])

    assert ids(issues) == ["DISC-START-S1", "DISC-END-S1"]
    assert all(i.severity is Severity.WARNING for i in issues)
    assert issues[0].location == seg.start_node
    assert issues[1].location == seg.end_node


def test_closed_rectangle_has_no_open_ends():
    a, b, c, d = offset(0, 0), offset(100, 0), offset(100, 50), offset(0, 50)
    segments = [
        make_segment("S1", a, b),
        make_segment("S2", b, c),
        make_segment("S3", c, d),
        make_segment("S4", d, a),
    ]
    assert audit(segments) == []


def test_endpoint_within_tolerance_is_connected():
    s1 = make_segment("S1", offset(0, 0), offset(100, 0))
    s2 = make_segment("S2", offset(100.5, 0), offset(200, 0))
    assert ids(audit([s1, s2])) == ["DISC-START-S1", "DISC-END-S2"]


def test_endpoint_connected_to_point():
    seg = make_segment("S1", offset(0, 0), offset(100, 0))
    valve = make_point("V1", offset(100, 0.3))
    assert ids(audit([seg], [valve])) == ["DISC-START-S1"]


def test_segments_sharing_an_id_still_connect():
    s1 = make_segment("DUPID", offset(0, 0), offset(100, 0))
    s2 = make_segment("DUPID", offset(100, 0), offset(200, 0))
    assert ids(audit([s1, s2])) == ["DISC-START-DUPID", "DISC-END-DUPID"]


def test_length_mismatch():
    seg = make_segment("S1", offset(0, 0), offset(100, 0), length=0)
    issues = audit([seg])
    assert "LEN-MM-S1" in ids(issues)
    mismatch = next(i for i in issues if i.id == "LEN-MM-S1")
    assert mismatch.severity is Severity.WARNING


def test_near_zero_segment_without_geometry_is_not_a_mismatch():
    seg = make_segment("S1", offset(0, 0), offset(0.5, 0), length=0)
    assert "LEN-MM-S1" not in ids(audit([seg]))


def test_excessive_length_located_at_midpoint():
    seg = make_segment("S1", offset(0, 0), offset(2500, 0))
    issues = audit([seg])

    long_issue = next(i for i in issues if i.id == "LEN-MAX-S1")
    assert long_issue.severity is Severity.WARNING
    assert long_issue.location.x == pytest.approx((seg.start_node.x + seg.end_node.x) / 2)


def test_per_segment_issue_order():
    seg = make_segment("S1", offset(0, 0), offset(2500, 0), length=0)
    assert ids(audit([seg])) == ["LEN-MM-S1", "LEN-MAX-S1", "DISC-START-S1", "DISC-END-S1"]


def test_duplicate_points_within_ten_centimeters():
    p1 = make_point("P1", offset(0, 0))
    p2 = make_point("P2", offset(0.05, 0))
    issues = audit([], [p1, p2])

    errors = [i for i in issues if i.severity is Severity.ERROR]
    assert ids(errors) == ["DUP-P1-P2"]
    assert errors[0].target_id == "P1"


def test_points_over_a_meter_apart_are_not_duplicates():
    p1 = make_point("P1", offset(0, 0))
    p2 = make_point("P2", offset(2, 0))
    issues = audit([], [p1, p2])
    assert not [i for i in issues if i.severity is Severity.ERROR]


def test_duplicates_reported_once_per_pair():
    points = [make_point(f"P{i}", offset(0.01 * i, 0)) for i in range(3)]
    dups = [i.id for i in audit([], points) if i.id.startswith("DUP-")]
    assert dups == ["DUP-P0-P1", "DUP-P0-P2", "DUP-P1-P2"]


def test_orphan_point_is_info():
    seg = make_segment("S1", offset(0, 0), offset(100, 0))
    on_line = make_point("ON", offset(0, 0))
    away = make_point("AWAY", offset(50, 20))
    issues = audit([seg], [on_line, away])

    orphans = [i for i in issues if i.id.startswith("ORPHAN-")]
    assert ids(orphans) == ["ORPHAN-AWAY"]
    assert orphans[0].severity is Severity.INFO


def test_sewage_without_manholes():
    seg = make_segment("S1", offset(0, 0), offset(100, 0), network_type=NetworkType.SEWAGE)
    issues = audit([seg])

    no_mh = [i for i in issues if i.id == "NO-MH"]
    assert len(no_mh) == 1
    assert no_mh[0].severity is Severity.ERROR
    assert no_mh[0].target_id is None
    assert no_mh[0].location == seg.start_node

    manhole = make_point("MH1", offset(500, 500), kind=PointKind.MANHOLE)
    assert "NO-MH" not in ids(audit([seg], [manhole]))


def test_water_network_needs_no_manholes():
    seg = make_segment("S1", offset(0, 0), offset(100, 0))
    assert "NO-MH" not in ids(audit([seg]))


def test_empty_network_has_no_issues():
    assert audit([], []) == []
    report = run_audit([], [])
    assert report.score == 100
    assert not report.has_errors


def test_nan_coordinates_do_not_raise():
    seg = make_segment("S1", Coordinate(math.nan, math.nan), offset(100, 0), length=10)
    point = make_point("P1", Coordinate(math.nan, 1.0))
    issues = audit([seg], [point])
    assert "DISC-START-S1" in ids(issues)
    assert "ORPHAN-P1" in ids(issues)


def test_tolerances_are_configurable():
    s1 = make_segment("S1", offset(0, 0), offset(100, 0))
    s2 = make_segment("S2", offset(100.5, 0), offset(200, 0))
    strict = AuditConfig(connection_tolerance_m=0.2)
    assert "DISC-END-S1" in ids(audit([s1, s2], config=strict))


def test_grid_result_matches_pairwise_scan():
    """Open ends and orphans agree with a brute-force scan on a dense network."""
    segments = []
    for i in range(40):
        start = offset((i % 8) * 30, (i // 8) * 30)
        end = offset((i % 8) * 30 + 30 + (0.6 if i % 3 else 1.4), (i // 8) * 30)
        segments.append(make_segment(f"S{i}", start, end))
    points = [make_point(f"P{i}", offset(i * 17.0, (i % 5) * 30 + 0.7)) for i in range(20)]

    issues = audit(segments, points)

    def connected(k, node):
        others = [n for j, s in enumerate(segments) if j != k for n in (s.start_node, s.end_node)]
        nodes = others + [p.location for p in points]
        return any(distance_meters(node, n) < 1.0 for n in nodes)

    expected = []
    for k, s in enumerate(segments):
        if not connected(k, s.start_node):
            expected.append(f"DISC-START-{s.id}")
        if not connected(k, s.end_node):
            expected.append(f"DISC-END-{s.id}")
    for p in points:
        ends = [n for s in segments for n in (s.start_node, s.end_node)]
        if not any(distance_meters(p.location, n) < 1.0 for n in ends):
            expected.append(f"ORPHAN-{p.id}")

    found = [i for i in ids(issues) if i.startswith(("DISC-", "ORPHAN-"))]
    assert found == expected


def test_sort_issues_is_stable_by_severity():
    issues = [
        Issue("a", Severity.INFO, "", ""),
        Issue("b", Severity.WARNING, "", ""),
        Issue("c", Severity.ERROR, "", ""),
        Issue("d", Severity.WARNING, "", ""),
        Issue("e", Severity.ERROR, "", ""),
    ]
    assert ids(sort_issues(issues)) == ["c", "e", "b", "d", "a"]
    assert ids(AuditReport(issues=issues).sorted_issues()) == ["c", "e", "b", "d", "a"]


def test_report_score_and_counts():
    seg = make_segment("S1", offset(), offset(), network_type=NetworkType.SEWAGE)
    report = audit_network(Network(segments=[seg]))

    # self-loop, open start, open end, no manholes
    assert len(report.issues) == 4
    assert report.error_count == 2
    assert report.warning_count == 2
    assert report.score == 80
    assert report.has_errors

    summary = NetworkAuditor().get_summary(report)
    assert summary['errors'] == 2
    assert summary['score'] == 80


def test_score_never_negative():
    segments = [make_segment(f"S{i}", offset(i * 1000, 0), offset(i * 1000 + 10, 0))
                for i in range(15)]
    report = run_audit(segments, [])
    assert len(report.issues) == 30
    assert report.score == 0


def test_report_dataframe():
    seg = make_segment("S1", offset(0, 0), offset(100, 0))
    frame = run_audit([seg], []).to_dataframe()
    assert list(frame['id']) == ["DISC-START-S1", "DISC-END-S1"]
    assert list(frame.columns) == ['id', 'severity', 'title', 'description', 'target_id', 'lon', 'lat']


def test_huge_raw_coordinates_do_not_raise():
    seg = make_segment("S1", Coordinate(1e306, 1e306), offset(100, 0), length=10)
    point = make_point("P1", Coordinate(-1e306, 1e306))
    issues = audit([seg], [point])
    assert "DISC-START-S1" in ids(issues)
    assert "ORPHAN-P1" in ids(issues)
