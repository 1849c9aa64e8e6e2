"""
GIS Export Module

Export networks and audit issues to GeoJSON for map viewers and QGIS.
"""
import json
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from ..config.models import ExecutionStatus, Issue, Network, Point, Segment


STATUS_COLORS = {
    ExecutionStatus.COMPLETED: '#22c55e',
    ExecutionStatus.IN_PROGRESS: '#f59e0b',
    ExecutionStatus.PENDING: '#ef4444',
}


def segment_feature(segment: Segment) -> Dict:
    """Convert a segment to a GeoJSON LineString Feature."""
    return {
        'type': 'Feature',
        'geometry': {
            'type': 'LineString',
            'coordinates': [
                [segment.start_node.x, segment.start_node.y],
                [segment.end_node.x, segment.end_node.y],
            ]
        },
        'properties': {
            'id': segment.id,
            'name': segment.name,
            'network_type': segment.network_type.value,
            'status': segment.status.value,
            'completion_percentage': segment.completion_percentage,
            'length_m': segment.length_meters,
            'contractor': segment.contractor,
            'color': STATUS_COLORS[segment.status],
        }
    }


def point_feature(point: Point) -> Dict:
    """Convert a point asset to a GeoJSON Point Feature."""
    return {
        'type': 'Feature',
        'geometry': {
            'type': 'Point',
            'coordinates': [point.location.x, point.location.y]
        },
        'properties': {
            'id': point.id,
            'name': point.name,
            'kind': point.kind.value,
            'network_type': point.network_type.value,
            'status': point.status.value,
            'color': STATUS_COLORS[point.status],
        }
    }


def issue_feature(issue: Issue) -> Optional[Dict]:
    """Issue as a Point Feature, or None when it has no location."""
    if issue.location is None:
        return None
    return {
        'type': 'Feature',
        'geometry': {
            'type': 'Point',
            'coordinates': [issue.location.x, issue.location.y]
        },
        'properties': {
            'id': issue.id,
            'severity': issue.severity.value,
            'title': issue.title,
            'description': issue.description,
            'target_id': issue.target_id,
        }
    }


class GeoJSONExporter:
    """Export network data to GeoJSON format."""

    def __init__(self, name: str = 'Utility Network'):
        self.name = name

    def network_collection(self, network: Network) -> Dict:
        """
        Build a FeatureCollection with all segments followed by all points.

        Args:
            network: Network to export

        Returns:
            GeoJSON FeatureCollection dict
        """
        features = [segment_feature(s) for s in network.segments]
        features += [point_feature(p) for p in network.points]
        return {
            'type': 'FeatureCollection',
            'name': self.name,
            'crs': {
                'type': 'name',
                'properties': {
                    'name': 'urn:ogc:def:crs:EPSG::4326'  # WGS84
                }
            },
            'features': features,
            'metadata': {
                'created': datetime.now().isoformat(),
                'num_segments': len(network.segments),
                'num_points': len(network.points),
                'generator': 'InfraTrack'
            }
        }

    def issues_collection(self, issues: Sequence[Issue]) -> Dict:
        """FeatureCollection of the issues that carry a location."""
        features = [f for f in (issue_feature(i) for i in issues) if f is not None]
        return {
            'type': 'FeatureCollection',
            'name': f'{self.name} issues',
            'features': features,
        }

    def export_network(self, network: Network, output_path: str) -> Dict:
        """Write the network collection to a file and return it."""
        geojson = self.network_collection(network)
        self._write(geojson, output_path)
        return geojson

    def export_issues(self, issues: Sequence[Issue], output_path: str) -> Dict:
        """Write the issue collection to a file and return it."""
        geojson = self.issues_collection(issues)
        self._write(geojson, output_path)
        return geojson

    @staticmethod
    def _write(geojson: Dict, output_path: str):
        with open(output_path, 'w', encoding='utf-8') as f:
            json.dump(geojson, f, indent=2, ensure_ascii=False)


def export_network_to_geojson(network: Network,
                              output_folder: str,
                              project_name: str = "network",
                              issues: Optional[List[Issue]] = None) -> Dict[str, str]:
    """
    Convenience function to export a network (and optionally its audit issues).

    Args:
        network: Network to export
        output_folder: Output folder path
        project_name: Base name for output files
        issues: Audit issues to export alongside

    Returns:
        Dictionary of output file paths
    """
    output_path = Path(output_folder)
    output_path.mkdir(parents=True, exist_ok=True)

    exporter = GeoJSONExporter(project_name)

    network_file = output_path / f"{project_name}_network.geojson"
    exporter.export_network(network, str(network_file))
    files = {'network_geojson': str(network_file)}

    if issues is not None:
        issues_file = output_path / f"{project_name}_issues.geojson"
        exporter.export_issues(issues, str(issues_file))
        files['issues_geojson'] = str(issues_file)

    return files
