"""
Checkout conflict detection.

detect_conflicts() inspects a candidate assignment against the records already
loaded for the same employee and asset and returns every rule it breaks. It
never raises; callers decide whether any conflict blocks the write.
"""

from datetime import date

from .constants import AssetType, AssignmentStatus, normalize_asset_type, normalize_status
from .records import parse_date

MIN_ASSIGNMENT_DATE = date(2020, 1, 1)

# Statuses under which an assignment still holds its asset
OPEN_STATUSES = {
    AssignmentStatus.IN_USE.value,
    AssignmentStatus.OVERDUE.value,
    AssignmentStatus.DAMAGED.value,
    AssignmentStatus.LOST.value,
}

DEFAULT_LIMITS = {
    'max_hardware_per_employee': 10,
    'max_software_per_employee': 20,
    'notes_max_length': 500,
}


def is_open(record):
    return not record.get('return_date') and normalize_status(record.get('status')) in OPEN_STATUSES


def _conflict(kind, message):
    return {'type': kind, 'message': message}


def detect_conflicts(candidate, assignments, employee=None, asset=None, limits=None, today=None):
    """
    Args:
        candidate: dict with employee_id, asset_id, asset_type, assigned_date, notes
        assignments: existing assignment records (the candidate itself excluded)
        employee: dict with at least ``is_active``; None when it does not exist
        asset: dict with ``status``, ``asset_type``, ``total_licenses``,
            ``used_licenses``; None when it does not exist
        limits: overrides for DEFAULT_LIMITS
    """
    limits = {**DEFAULT_LIMITS, **(limits or {})}
    today = today or date.today()
    conflicts = []

    employee_id = candidate.get('employee_id')
    asset_id = candidate.get('asset_id')
    asset_type = normalize_asset_type(candidate.get('asset_type'))

    if employee is None:
        conflicts.append(_conflict('data_integrity', f'Employee {employee_id} does not exist'))
    elif not employee.get('is_active', True):
        conflicts.append(_conflict('policy', f'Employee {employee_id} is inactive'))

    if asset is None:
        conflicts.append(_conflict('data_integrity', f'Asset {asset_id} does not exist'))
    else:
        if asset_type and asset.get('asset_type') != asset_type:
            conflicts.append(_conflict(
                'data_integrity', f"Asset {asset_id} is {asset.get('asset_type')}, not {asset_type}"))
        if asset.get('status') in ('retired', 'repair'):
            conflicts.append(_conflict('resource', f"Asset {asset_id} is {asset.get('status')}"))

    open_records = [r for r in assignments if is_open(r)]

    if any(r.get('employee_id') == employee_id and r.get('asset_id') == asset_id for r in open_records):
        conflicts.append(_conflict('resource', f'Asset {asset_id} is already assigned to {employee_id}'))
    elif asset_type == AssetType.HARDWARE.value:
        holders = [r.get('employee_id') for r in open_records if r.get('asset_id') == asset_id]
        if holders:
            conflicts.append(_conflict('resource', f'Asset {asset_id} is already assigned to {holders[0]}'))

    if asset is not None and asset_type == AssetType.SOFTWARE.value:
        total = asset.get('total_licenses') or 0
        used = asset.get('used_licenses') or 0
        if used >= total:
            conflicts.append(_conflict('resource', f'No free licenses left for {asset_id} ({used}/{total})'))

    if asset_type:
        held = sum(1 for r in open_records
                   if r.get('employee_id') == employee_id and r.get('asset_type') == asset_type)
        limit = limits[f'max_{asset_type}_per_employee']
        if held >= limit:
            conflicts.append(_conflict(
                'policy', f'Employee {employee_id} already holds {held} {asset_type} assets (limit {limit})'))
    else:
        conflicts.append(_conflict('data_integrity', f"Invalid asset type: {candidate.get('asset_type')}"))

    assigned = parse_date(candidate.get('assigned_date'))
    if assigned is None:
        conflicts.append(_conflict('business_rule', 'Assigned date is required'))
    elif assigned < MIN_ASSIGNMENT_DATE or assigned > today:
        conflicts.append(_conflict('business_rule', f'Assigned date {assigned.isoformat()} is out of range'))

    notes = candidate.get('notes') or ''
    if len(notes) > limits['notes_max_length']:
        conflicts.append(_conflict('business_rule', f"Notes exceed {limits['notes_max_length']} characters"))

    return conflicts
