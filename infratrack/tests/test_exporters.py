"""
Tests for GeoJSON export, templates, reports, commentary and the CLI.
"""
import json

import pandas as pd
import pytest

from infratrack.cli.main import main
from infratrack.config.models import ExecutionStatus, Network, NetworkType, PointKind
from infratrack.exporters import (
    IssueReportExporter, export_issues_report, export_template, template_filename, template_rows,
)
from infratrack.gis.geojson_export import GeoJSONExporter, STATUS_COLORS, export_network_to_geojson
from infratrack.parsers import parse_table
from infratrack.services.commentary import (
    FALLBACK_COMMENTARY, build_commentary_payload, request_commentary,
)
from infratrack.validators import run_audit
from infratrack.tests.conftest import make_point, make_segment, offset


def sample_network():
    seg = make_segment("S1", offset(0, 0), offset(100, 0), network_type=NetworkType.SEWAGE,
                       name="Main")
    seg.update_progress(40, "eng")
    manhole = make_point("MH1", offset(0, 0), PointKind.MANHOLE)
    return Network(segments=[seg], points=[manhole])


# --- GeoJSON ---------------------------------------------------------------

def test_network_collection():
    collection = GeoJSONExporter("Demo").network_collection(sample_network())

    assert collection["type"] == "FeatureCollection"
    line, point = collection["features"]
    assert line["geometry"]["type"] == "LineString"
    assert line["properties"]["status"] == "IN_PROGRESS"
    assert line["properties"]["color"] == STATUS_COLORS[ExecutionStatus.IN_PROGRESS]
    assert point["properties"]["kind"] == "MANHOLE"
    assert point["properties"]["color"] == "#ef4444"
    assert collection["metadata"]["num_segments"] == 1


def test_export_network_with_issues(tmp_path):
    network = sample_network()
    issues = run_audit(network.segments, network.points).issues
    files = export_network_to_geojson(network, str(tmp_path / "out"), "demo", issues)

    with open(files["network_geojson"], encoding="utf-8") as f:
        assert len(json.load(f)["features"]) == 2
    with open(files["issues_geojson"], encoding="utf-8") as f:
        features = json.load(f)["features"]
    assert [feat["properties"]["id"] for feat in features] == ["DISC-END-S1"]


def test_issues_without_location_are_left_out():
    seg = make_segment("S1", offset(0, 0), offset(100, 0), network_type=NetworkType.SEWAGE)
    issues = run_audit([seg], []).issues
    issues[-1].location = None
    collection = GeoJSONExporter().issues_collection(issues)
    assert len(collection["features"]) == len(issues) - 1


# --- Templates and reports -------------------------------------------------

def test_template_rows_per_context():
    assert [r["Type"] for r in template_rows("SEGMENTS", "MIXED")] == ["Water", "Sewage"]
    assert template_rows("SEGMENTS", "SEWAGE")[0]["Type"] == "SEWAGE"
    assert template_rows("POINTS", "SEWAGE")[0]["Type"] == "Manhole"
    assert template_rows("POINTS", "WATER")[0]["Type"] == "Valve"
    with pytest.raises(ValueError):
        template_rows("LINES")


def test_template_filename():
    assert template_filename("SEGMENTS", "SEWAGE") == "Segments_SEWAGE_Template.xlsx"
    assert template_filename("POINTS") == "Points_MIXED_Template.xlsx"


def test_exported_template_imports_back(tmp_path):
    path = export_template(str(tmp_path), "SEGMENTS", "MIXED")
    assert path.endswith("Segments_MIXED_Template.xlsx")

    with open(path, "rb") as f:
        result = parse_table(f.read(), path)

    assert [s.network_type for s in result.segments] == [NetworkType.WATER, NetworkType.SEWAGE]
    assert 39.0 < result.segments[0].start_node.x < 39.2
    assert result.segments[0].length_meters == 150


def test_issue_report_csv(tmp_path):
    seg = make_segment("S1", offset(), offset(), network_type=NetworkType.SEWAGE)
    report = run_audit([seg], [])
    path = IssueReportExporter().export(str(tmp_path / "issues.csv"), report)

    frame = pd.read_csv(path, encoding="utf-8-sig")
    assert list(frame["severity"]) == ["ERROR", "ERROR", "WARNING", "WARNING"]
    assert list(frame["id"][:2]) == ["LOOP-S1", "NO-MH"]


def test_issue_report_from_plain_list(tmp_path):
    seg = make_segment("S1", offset(0, 0), offset(100, 0))
    path = export_issues_report(str(tmp_path / "issues.xlsx"), run_audit([seg], []).issues)
    assert len(pd.read_excel(path)) == 2


# --- Commentary ------------------------------------------------------------

def test_commentary_payload():
    payload = json.loads(build_commentary_payload(sample_network().segments))
    assert payload == [{
        "name": "Main", "type": "SEWAGE", "status": "IN_PROGRESS",
        "progress": 40.0, "length": pytest.approx(100, abs=0.5),
    }]


def test_commentary_generator_receives_prompt():
    prompts = []

    def generator(prompt):
        prompts.append(prompt)
        return "All good."

    assert request_commentary(sample_network().segments, generator) == "All good."
    assert '"name": "Main"' in prompts[0]


def test_commentary_falls_back():
    def failing(prompt):
        raise ConnectionError("service down")

    segments = sample_network().segments
    assert request_commentary(segments, failing) == FALLBACK_COMMENTARY
    assert request_commentary(segments, lambda prompt: "  ") == FALLBACK_COMMENTARY
    assert request_commentary(segments) == FALLBACK_COMMENTARY


# --- CLI -------------------------------------------------------------------

@pytest.fixture
def segment_csv(tmp_path):
    path = tmp_path / "pipes.csv"
    path.write_text(
        "Name,StartLat,StartLon,EndLat,EndLon,Type\n"
        "S-1,21.600,39.230,21.601,39.231,Sewage\n"
        "S-2,21.601,39.231,21.602,39.232,Sewage\n"
    )
    return path


@pytest.fixture
def point_csv(tmp_path):
    path = tmp_path / "manholes.csv"
    path.write_text("Name,Lat,Lon,Type\nMH-1,21.600,39.230,Manhole\nMH-2,21.602,39.232,Manhole\n")
    return path


def cli(tmp_path, *args):
    return main(["--settings", str(tmp_path / "settings.json")] + list(args))


def test_cli_audit_clean_network(tmp_path, segment_csv, point_csv, capsys):
    code = cli(tmp_path, "audit", str(segment_csv), "--points", str(point_csv),
               "--context", "SEWAGE", "-o", str(tmp_path / "report.csv"))

    assert code == 0
    assert "Quality score: 100/100" in capsys.readouterr().out
    assert (tmp_path / "report.csv").exists()


def test_cli_audit_reports_errors(tmp_path, segment_csv, capsys):
    code = cli(tmp_path, "audit", str(segment_csv))
    assert code == 1
    assert "NO-MH" in capsys.readouterr().out


def test_cli_import_skips_missing_and_broken_files(tmp_path, segment_csv, capsys):
    broken = tmp_path / "broken.kml"
    broken.write_text("<kml>")
    code = cli(tmp_path, "import", str(segment_csv), str(broken), str(tmp_path / "missing.dxf"))

    assert code == 0
    assert "NETWORK SUMMARY" in capsys.readouterr().out


def test_cli_geojson_and_template(tmp_path, segment_csv):
    out = tmp_path / "gis"
    assert cli(tmp_path, "geojson", str(segment_csv), "-o", str(out), "-p", "demo",
               "--with-issues") == 0
    assert (out / "demo_network.geojson").exists()
    assert (out / "demo_issues.geojson").exists()

    assert cli(tmp_path, "template", "--target", "POINTS", "-c", "WATER", "-o", str(tmp_path)) == 0
    assert (tmp_path / "Points_WATER_Template.xlsx").exists()


def test_cli_info(tmp_path, segment_csv, capsys):
    assert cli(tmp_path, "info", str(segment_csv)) == 0
    out = capsys.readouterr().out
    assert "Format: tabular" in out
    assert "Segments: 2" in out


def test_cli_without_command(tmp_path):
    assert cli(tmp_path) == 1
