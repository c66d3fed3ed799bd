"""
Assignment records: the plain-dict shape every pipeline stage works on.

hydrate_assignment() is the only place ORM rows are projected into records.
Routes call it once per fetch; filtering, searching, sorting, statistics and
export never touch related rows themselves.
"""

from datetime import date, datetime


def to_iso_date(value):
    """Return value as a YYYY-MM-DD string, or None when it is not a date."""
    if value is None or value == '':
        return None
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    text = str(value).strip()
    try:
        return date.fromisoformat(text[:10]).isoformat()
    except ValueError:
        return None


def parse_date(value):
    iso = to_iso_date(value)
    return date.fromisoformat(iso) if iso else None


def days_between(start, end):
    """Whole days from start to end, 0 when either side is missing."""
    start_date, end_date = parse_date(start), parse_date(end)
    if start_date is None or end_date is None:
        return 0
    return (end_date - start_date).days


def _iso_datetime(value):
    if value is None:
        return None
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return str(value)


def employee_snapshot(employee):
    if employee is None:
        return None
    return {
        'id': employee.id,
        'name': employee.name,
        'department': employee.department,
        'position': employee.position,
        'email': employee.email,
    }


def asset_snapshot(asset):
    if asset is None:
        return None
    return {
        'id': asset.id,
        'name': asset.name,
        'type': asset.kind,
        'manufacturer': asset.manufacturer,
        'model': asset.model,
        'serial_number': asset.serial_number,
    }


def hydrate_assignment(assignment):
    employee = assignment.employee
    asset = assignment.asset
    return {
        'id': assignment.id,
        'employee_id': assignment.employee_id,
        'asset_id': assignment.asset_id,
        'asset_type': assignment.asset_type,
        'assigned_date': to_iso_date(assignment.assigned_date),
        'expected_return_date': to_iso_date(assignment.expected_return_date),
        'return_date': to_iso_date(assignment.return_date),
        'status': assignment.status,
        'notes': assignment.notes,
        'return_notes': assignment.return_notes,
        'return_condition': assignment.return_condition,
        'assigned_by': assignment.assigned_by,
        'returned_by': assignment.returned_by,
        'created_at': _iso_datetime(assignment.created_at),
        'updated_at': _iso_datetime(assignment.updated_at),
        'employee_name': employee.name if employee else '',
        'asset_description': asset.description if asset else '',
        'employee': employee_snapshot(employee),
        'asset': asset_snapshot(asset),
    }


def hydrate_all(assignments):
    return [hydrate_assignment(a) for a in assignments]
