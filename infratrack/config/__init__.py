"""
Config Package

Configuration and data models for the network tool.
"""
from .settings import (
    get_settings,
    update_settings,
    reset_settings,
    Settings,
    ProjectionConfig,
    AuditConfig,
    ImportConfig,
    FileFormat,
)

from .models import (
    Coordinate,
    NetworkType,
    NetworkContext,
    PointKind,
    ExecutionStatus,
    Segment,
    Point,
    Network,
    NetworkStats,
    ImportResult,
    Severity,
    Issue,
    AuditReport,
)

from .settings_manager import SettingsManager, get_settings_manager

__all__ = [
    # Settings
    'get_settings',
    'update_settings',
    'reset_settings',
    'Settings',
    'ProjectionConfig',
    'AuditConfig',
    'ImportConfig',
    'FileFormat',
    'SettingsManager',
    'get_settings_manager',

    # Models
    'Coordinate',
    'NetworkType',
    'NetworkContext',
    'PointKind',
    'ExecutionStatus',
    'Segment',
    'Point',
    'Network',
    'NetworkStats',
    'ImportResult',
    'Severity',
    'Issue',
    'AuditReport',
]
