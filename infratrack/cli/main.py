"""
InfraTrack - Main Entry Point

Command-line interface for importing and auditing utility networks.
"""
import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from ..config.models import Network, NetworkContext, NetworkType, Severity
from ..config.settings import FileFormat, get_settings
from ..config.settings_manager import SettingsManager, get_settings_manager
from ..engine.errors import ImportFailedError
from ..exporters import IssueReportExporter, export_template
from ..gis.geojson_export import export_network_to_geojson
from ..parsers.base_parser import detect_file_format, import_file
from ..validators import NetworkAuditor, run_audit, sort_issues


logger = logging.getLogger(__name__)

SEVERITY_ICONS = {
    Severity.ERROR: "✗",
    Severity.WARNING: "!",
    Severity.INFO: "i",
}


def import_files(segment_files: List[str], point_files: Optional[List[str]] = None,
                 context=NetworkContext.MIXED) -> Network:
    """
    Import several files into one network.

    Tabular files listed in point_files are read as point tables, all other
    tabular files as segment tables. A file that fails to import is reported
    and skipped; the network keeps what the other files produced.

    Args:
        segment_files: Files to import (segments, or any geometry format)
        point_files: Tabular files holding points
        context: Target network

    Returns:
        Network with everything imported
    """
    network = Network()
    jobs = [(fp, 'SEGMENTS') for fp in segment_files]
    jobs += [(fp, 'POINTS') for fp in point_files or []]

    for fp, target in jobs:
        path = Path(fp)
        if not path.exists():
            logger.warning(f"File not found: {fp}")
            continue

        try:
            result = import_file(str(path), context=context, target=target)
        except ImportFailedError as e:
            logger.error(e.status_message())
            continue

        network.merge(result.to_network())
        logger.info(f"{path.name}: {result.status_message()}")

    return network


def print_network_summary(network: Network):
    """Print segment and point counts with progress per network type."""
    print("\n" + "=" * 70)
    print("NETWORK SUMMARY")
    print("=" * 70)

    print(f"\n{'Network':<12}{'Segments':>10}{'Length (m)':>14}{'Points':>10}{'Progress':>12}")
    print("-" * 70)
    for network_type in [NetworkType.WATER, NetworkType.SEWAGE, None]:
        stats = network.stats(network_type)
        label = network_type.value if network_type else 'ALL'
        count = sum(1 for s in network.segments
                    if network_type is None or s.network_type is network_type)
        print(
            f"{label:<12}{count:>10}{stats.total_length:>14.1f}"
            f"{stats.total_points:>10}{stats.overall_progress:>11}%"
        )
    print("-" * 70)


def print_issues(issues, limit: int = None):
    """Print issues sorted by severity."""
    ordered = sort_issues(issues)
    if limit is not None:
        ordered = ordered[:limit]

    print(f"\n{'Severity':<10}{'Id':<40}{'Title'}")
    print("-" * 90)
    for issue in ordered:
        icon = SEVERITY_ICONS[issue.severity]
        print(f"{icon} {issue.severity.value:<8}{issue.id:<40}{issue.title}")
        print(f"    {issue.description}")


def load_settings(args) -> None:
    """Apply a settings file and command-line overrides to the global settings."""
    settings = get_settings()
    manager = SettingsManager(args.settings) if args.settings else get_settings_manager()
    manager.apply_to(settings)

    if getattr(args, 'utm_zone', None) is not None:
        settings.projection.utm_zone = args.utm_zone
    if getattr(args, 'southern', False):
        settings.projection.northern_hemisphere = False
    if getattr(args, 'tolerance', None) is not None:
        settings.audit.connection_tolerance_m = args.tolerance


def main(argv: Optional[List[str]] = None):
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="InfraTrack Utility Network Tool",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Import and summarise files
  infratrack-cli import pipes.xlsx network.dxf --points manholes.csv

  # Audit a sewage network
  infratrack-cli audit pipes.xlsx --points manholes.csv --context SEWAGE

  # Export to GeoJSON
  infratrack-cli geojson network.kmz -o ./output

  # Write an import template
  infratrack-cli template --target POINTS --context WATER -o ./templates
        """
    )
    parser.add_argument('--settings', help='Settings file (defaults to ~/.infratrack/settings.json)')
    parser.add_argument('-v', '--verbose', action='store_true', help='Verbose output')

    # Options shared by the commands that import files
    files_parser = argparse.ArgumentParser(add_help=False)
    files_parser.add_argument('files', nargs='+', help='Files to import')
    files_parser.add_argument('--points', nargs='+', default=[], help='Tabular files holding points')
    files_parser.add_argument(
        '-c', '--context',
        choices=[c.value for c in NetworkContext],
        default=NetworkContext.MIXED.value,
        help='Target network'
    )
    files_parser.add_argument('--utm-zone', type=int, help='UTM zone of projected coordinates')
    files_parser.add_argument('--southern', action='store_true', help='Projected coordinates are in the southern hemisphere')

    subparsers = parser.add_subparsers(dest='command', help='Command to run')

    # Import command
    subparsers.add_parser('import', parents=[files_parser], help='Import and summarise files')

    # Audit command
    audit_parser = subparsers.add_parser('audit', parents=[files_parser], help='Audit network topology')
    audit_parser.add_argument('--tolerance', type=float, help='Connection tolerance in meters')
    audit_parser.add_argument('-o', '--output', help='Write the issue report (.csv or .xlsx)')
    audit_parser.add_argument('--limit', type=int, help='Print at most this many issues')

    # GeoJSON export command
    geojson_parser = subparsers.add_parser('geojson', parents=[files_parser], help='Export to GeoJSON')
    geojson_parser.add_argument('-o', '--output', default='./output', help='Output folder')
    geojson_parser.add_argument('-p', '--project', default='network', help='Project name')
    geojson_parser.add_argument('--with-issues', action='store_true', help='Also export audit issues')

    # Template command
    template_parser = subparsers.add_parser('template', help='Write an Excel import template')
    template_parser.add_argument('--target', choices=['SEGMENTS', 'POINTS'], default='SEGMENTS')
    template_parser.add_argument(
        '-c', '--context',
        choices=[c.value for c in NetworkContext],
        default=NetworkContext.MIXED.value,
    )
    template_parser.add_argument('-o', '--output', default='.', help='Output file or folder')

    # Info command
    info_parser = subparsers.add_parser('info', help='Show file information')
    info_parser.add_argument('file', help='File to inspect')

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    if args.command is None:
        parser.print_help()
        return 1

    load_settings(args)

    if args.command == 'import':
        network = import_files(args.files, args.points, args.context)
        if network.is_empty:
            logger.error("Nothing was imported")
            return 1
        print_network_summary(network)
        return 0

    elif args.command == 'audit':
        network = import_files(args.files, args.points, args.context)
        report = run_audit(network.segments, network.points)
        summary = NetworkAuditor().get_summary(report)

        print_issues(report.issues, args.limit)
        print(f"\nAudit Summary:")
        print(f"  Segments: {summary['segments']}, Points: {summary['points']}")
        print(f"  Errors: {summary['errors']}, Warnings: {summary['warnings']}, Info: {summary['info']}")
        print(f"  Quality score: {summary['score']}/100")

        if args.output:
            IssueReportExporter().export(args.output, report)
        return 1 if report.has_errors else 0

    elif args.command == 'geojson':
        network = import_files(args.files, args.points, args.context)
        if network.is_empty:
            logger.error("No valid files to export")
            return 1

        issues = None
        if args.with_issues:
            issues = sort_issues(run_audit(network.segments, network.points).issues)

        output_files = export_network_to_geojson(network, args.output, args.project, issues)

        print(f"\nExported GeoJSON files:")
        for key, path in output_files.items():
            print(f"  {key}: {path}")
        return 0

    elif args.command == 'template':
        path = export_template(args.output, args.target, args.context)
        print(f"Template written: {path}")
        return 0

    elif args.command == 'info':
        path = Path(args.file)
        if not path.exists():
            logger.error(f"File not found: {args.file}")
            return 1

        file_format = detect_file_format(args.file)
        print(f"\nFile: {path.name}")
        print(f"Format: {file_format.value}")
        print(f"Size: {path.stat().st_size} bytes")

        if file_format == FileFormat.UNKNOWN:
            return 1

        try:
            result = import_file(str(path))
        except ImportFailedError as e:
            print(e.status_message())
            return 1

        print(f"\nSegments: {len(result.segments)}")
        print(f"Points: {len(result.points)}")
        print(f"Skipped: {result.skipped}")
        for warning in result.warnings:
            print(f"  ! {warning}")
        return 0

    return 0


if __name__ == '__main__':
    sys.exit(main())
