"""
Data Models for Utility Networks

Core data structures used throughout the network tool.
"""
import math
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional

import pandas as pd


class NetworkType(Enum):
    """Utility network a segment or point belongs to."""
    WATER = "WATER"
    SEWAGE = "SEWAGE"


class NetworkContext(Enum):
    """Target network of an import. MIXED lets the data decide per item."""
    WATER = "WATER"
    SEWAGE = "SEWAGE"
    MIXED = "MIXED"

    @property
    def network_type(self) -> Optional[NetworkType]:
        """Strict network type of this context, None for MIXED."""
        if self is NetworkContext.MIXED:
            return None
        return NetworkType(self.value)

    @classmethod
    def parse(cls, value) -> 'NetworkContext':
        """Accept a NetworkContext, a NetworkType or a case-insensitive name."""
        if isinstance(value, cls):
            return value
        if isinstance(value, NetworkType):
            return cls(value.value)
        if value is None:
            return cls.MIXED
        return cls(str(value).strip().upper())


class PointKind(Enum):
    """Closed set of point assets."""
    MANHOLE = "MANHOLE"
    INSPECTION_CHAMBER = "INSPECTION_CHAMBER"
    OIL_TRAP = "OIL_TRAP"
    SEWAGE_HOUSE_CONNECTION = "SEWAGE_HOUSE_CONNECTION"
    VALVE = "VALVE"
    AIR_VALVE = "AIR_VALVE"
    WASH_VALVE = "WASH_VALVE"
    FIRE_HYDRANT = "FIRE_HYDRANT"
    WATER_HOUSE_CONNECTION = "WATER_HOUSE_CONNECTION"
    ELBOW = "ELBOW"
    TEE = "TEE"
    SADDLE = "SADDLE"
    REDUCER = "REDUCER"

    @property
    def network_type(self) -> NetworkType:
        """Network this kind is usually found on (classification hint only)."""
        if self in _SEWAGE_KINDS:
            return NetworkType.SEWAGE
        return NetworkType.WATER


_SEWAGE_KINDS = frozenset({
    PointKind.MANHOLE,
    PointKind.INSPECTION_CHAMBER,
    PointKind.OIL_TRAP,
    PointKind.SEWAGE_HOUSE_CONNECTION,
})


class ExecutionStatus(Enum):
    """Execution state of a segment or point."""
    PENDING = "PENDING"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"

    @classmethod
    def from_progress(cls, percentage: float) -> 'ExecutionStatus':
        """Status implied by a completion percentage."""
        if percentage >= 100:
            return cls.COMPLETED
        if percentage > 0:
            return cls.IN_PROGRESS
        return cls.PENDING


@dataclass(frozen=True)
class Coordinate:
    """
    Coordinate pair.

    Geographic (x=longitude, y=latitude) once normalized. Raw importer values
    may be projected easting/northing until passed through to_geographic().
    """
    x: float
    y: float

    @property
    def is_finite(self) -> bool:
        return math.isfinite(self.x) and math.isfinite(self.y)

    @property
    def is_origin(self) -> bool:
        return self.x == 0 and self.y == 0

    def as_tuple(self):
        return (self.x, self.y)


def _timestamp() -> str:
    return datetime.now().isoformat(timespec='seconds')


@dataclass
class Segment:
    """Pipe segment between two nodes."""
    id: str
    name: str
    network_type: NetworkType
    start_node: Coordinate
    end_node: Coordinate
    length_meters: float = 0.0
    status: ExecutionStatus = ExecutionStatus.PENDING
    completion_percentage: float = 0.0
    contractor: str = ""
    start_date: Optional[str] = None
    expected_end_date: Optional[str] = None
    updated_by: Optional[str] = None
    updated_at: Optional[str] = None

    def geodesic_length(self) -> float:
        """Haversine distance between the two nodes in meters."""
        from ..engine.geodesy import distance_meters
        return distance_meters(self.start_node, self.end_node)

    def update_progress(self, percentage: float, user: str) -> None:
        """
        Record a progress update.

        The percentage is clamped to 0-100 and the status follows it.
        """
        percentage = max(0.0, min(100.0, float(percentage)))
        self.completion_percentage = percentage
        self.status = ExecutionStatus.from_progress(percentage)
        self._stamp(user)

    def set_status(self, status: ExecutionStatus, user: str) -> None:
        """Set the status; COMPLETED and PENDING also pin the percentage."""
        self.status = status
        if status is ExecutionStatus.COMPLETED:
            self.completion_percentage = 100.0
        elif status is ExecutionStatus.PENDING:
            self.completion_percentage = 0.0
        self._stamp(user)

    def _stamp(self, user: str):
        self.updated_by = user
        self.updated_at = _timestamp()


@dataclass
class Point:
    """Point asset (valve, manhole, fitting...)."""
    id: str
    name: str
    kind: PointKind
    location: Coordinate
    status: ExecutionStatus = ExecutionStatus.PENDING
    segment_id: Optional[str] = None
    updated_by: Optional[str] = None
    updated_at: Optional[str] = None

    @property
    def network_type(self) -> NetworkType:
        return self.kind.network_type

    def set_status(self, status: ExecutionStatus, user: str) -> None:
        """Set the execution status."""
        self.status = status
        self.updated_by = user
        self.updated_at = _timestamp()


@dataclass
class NetworkStats:
    """Progress summary of a network."""
    total_length: float
    completed_length: float
    total_points: int
    completed_points: int
    in_progress_points: int
    pending_points: int

    @property
    def overall_progress(self) -> int:
        """Length-weighted completion in whole percent."""
        if self.total_length <= 0:
            return 0
        return round(self.completed_length / self.total_length * 100)


@dataclass
class Network:
    """Segments and points audited together."""
    segments: List[Segment] = field(default_factory=list)
    points: List[Point] = field(default_factory=list)

    def add_segments(self, segments: List[Segment]):
        self.segments.extend(segments)

    def add_points(self, points: List[Point]):
        self.points.extend(points)

    def merge(self, other: 'Network'):
        """Append another network's items (ids are kept as they are)."""
        self.add_segments(other.segments)
        self.add_points(other.points)

    def find_segment(self, segment_id: str) -> Optional[Segment]:
        return next((s for s in self.segments if s.id == segment_id), None)

    def find_point(self, point_id: str) -> Optional[Point]:
        return next((p for p in self.points if p.id == point_id), None)

    @property
    def is_empty(self) -> bool:
        return not self.segments and not self.points

    def stats(self, network_type: Optional[NetworkType] = None) -> NetworkStats:
        """
        Compute progress statistics.

        Args:
            network_type: Restrict segments and points to one network

        Returns:
            NetworkStats
        """
        segments = self.segments
        points = self.points
        if network_type is not None:
            segments = [s for s in segments if s.network_type is network_type]
            points = [p for p in points if p.network_type is network_type]

        total_length = sum(s.length_meters for s in segments)
        completed_length = sum(
            s.length_meters * s.completion_percentage / 100 for s in segments
        )
        counts: Dict[ExecutionStatus, int] = {status: 0 for status in ExecutionStatus}
        for p in points:
            counts[p.status] += 1

        return NetworkStats(
            total_length=total_length,
            completed_length=completed_length,
            total_points=len(points),
            completed_points=counts[ExecutionStatus.COMPLETED],
            in_progress_points=counts[ExecutionStatus.IN_PROGRESS],
            pending_points=counts[ExecutionStatus.PENDING],
        )

    def segments_to_dataframe(self) -> pd.DataFrame:
        """Convert segments to a pandas DataFrame."""
        data = []
        for seg in self.segments:
            data.append({
                'Id': seg.id,
                'Name': seg.name,
                'Type': seg.network_type.value,
                'Status': seg.status.value,
                'Length': seg.length_meters,
                'Progress': seg.completion_percentage,
                'Contractor': seg.contractor,
                'StartLon': seg.start_node.x,
                'StartLat': seg.start_node.y,
                'EndLon': seg.end_node.x,
                'EndLat': seg.end_node.y,
            })
        return pd.DataFrame(data)

    def points_to_dataframe(self) -> pd.DataFrame:
        """Convert points to a pandas DataFrame."""
        data = []
        for pt in self.points:
            data.append({
                'Id': pt.id,
                'Name': pt.name,
                'Type': pt.kind.value,
                'Status': pt.status.value,
                'Lon': pt.location.x,
                'Lat': pt.location.y,
            })
        return pd.DataFrame(data)


@dataclass
class ImportResult:
    """Output of one importer run."""
    segments: List[Segment] = field(default_factory=list)
    points: List[Point] = field(default_factory=list)
    source_format: str = ""
    skipped: int = 0
    warnings: List[str] = field(default_factory=list)

    def to_network(self) -> Network:
        return Network(segments=list(self.segments), points=list(self.points))

    def status_message(self) -> str:
        """Short user-facing summary of the import."""
        message = (
            f"Imported {self.source_format}: {len(self.segments)} segments, "
            f"{len(self.points)} points"
        )
        if self.skipped:
            message += f" ({self.skipped} skipped)"
        return message


class Severity(Enum):
    """Audit issue severity, in display order."""
    ERROR = "ERROR"
    WARNING = "WARNING"
    INFO = "INFO"

    @property
    def rank(self) -> int:
        return _SEVERITY_RANK[self]


_SEVERITY_RANK = {Severity.ERROR: 0, Severity.WARNING: 1, Severity.INFO: 2}


@dataclass
class Issue:
    """One topology audit finding."""
    id: str
    severity: Severity
    title: str
    description: str
    target_id: Optional[str] = None
    location: Optional[Coordinate] = None

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'severity': self.severity.value,
            'title': self.title,
            'description': self.description,
            'target_id': self.target_id,
            'lon': self.location.x if self.location else None,
            'lat': self.location.y if self.location else None,
        }


@dataclass
class AuditReport:
    """Result of auditing a network."""
    issues: List[Issue] = field(default_factory=list)
    segment_count: int = 0
    point_count: int = 0
    penalty_per_issue: int = 5

    @property
    def error_count(self) -> int:
        return self.count(Severity.ERROR)

    @property
    def warning_count(self) -> int:
        return self.count(Severity.WARNING)

    @property
    def info_count(self) -> int:
        return self.count(Severity.INFO)

    @property
    def has_errors(self) -> bool:
        return self.error_count > 0

    @property
    def score(self) -> int:
        """Quality score 0-100; an empty network scores 100."""
        if self.segment_count == 0 and self.point_count == 0:
            return 100
        return max(0, 100 - self.penalty_per_issue * len(self.issues))

    def count(self, severity: Severity) -> int:
        return sum(1 for issue in self.issues if issue.severity is severity)

    def sorted_issues(self) -> List[Issue]:
        """Issues ordered ERROR, WARNING, INFO; input order kept within a severity."""
        return sorted(self.issues, key=lambda issue: issue.severity.rank)

    def to_dataframe(self) -> pd.DataFrame:
        """Convert the sorted issues to a pandas DataFrame."""
        columns = ['id', 'severity', 'title', 'description', 'target_id', 'lon', 'lat']
        return pd.DataFrame([i.to_dict() for i in self.sorted_issues()], columns=columns)
