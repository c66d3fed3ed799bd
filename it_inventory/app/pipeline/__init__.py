# app/pipeline/__init__.py
from .constants import AssignmentStatus, AssetType, normalize_status, status_label
from .records import hydrate_assignment, hydrate_all
from .filters import FilterSet, apply_filters
from .search import search
from .sorting import sort_assignments
from .stats import compute_stats, assignment_trends
from .export import ExportOptions, ExportResult, export_assignments
from .conflicts import detect_conflicts

__all__ = ['AssignmentStatus', 'AssetType', 'normalize_status', 'status_label',
    'hydrate_assignment', 'hydrate_all', 'FilterSet', 'apply_filters', 'search',
    'sort_assignments', 'compute_stats', 'assignment_trends', 'ExportOptions',
    'ExportResult', 'export_assignments', 'detect_conflicts']
