"""
Statistics over assignment records.

Everything here is a reduction over the input list: no I/O, no mutation, and
the numbers do not depend on record order.
"""

from collections import Counter
from datetime import date, timedelta
from typing import Any, Dict, Iterable, List, Optional

from .constants import (ASSET_TYPE_CODES, STATUS_CODES, UNKNOWN,
                        AssignmentStatus, normalize_asset_type, normalize_status)
from .records import parse_date, to_iso_date

RECENT_WINDOW_DAYS = 30
RECENT_LIMIT = 10


def percentage(count: int, total: int) -> float:
    if not total:
        return 0.0
    return round(count * 100.0 / total, 2)


def percentages(counts: Dict[str, int], total: int) -> Dict[str, float]:
    return {key: percentage(value, total) for key, value in counts.items()}


def department_of(record: Dict[str, Any]) -> str:
    employee = record.get('employee') or {}
    return employee.get('department') or UNKNOWN


def _recent(records, field, since, limit):
    dated = [(parse_date(r.get(field)), r) for r in records]
    dated = [(d, r) for d, r in dated if d is not None and d >= since]
    dated.sort(key=lambda pair: (pair[0], pair[1].get('id') or ''), reverse=True)
    return [r for _, r in dated[:limit]]


def compute_stats(assignments: Iterable[Dict[str, Any]], today: Optional[date] = None) -> Dict[str, Any]:
    records = list(assignments)
    today = today or date.today()
    total = len(records)

    statuses = [normalize_status(r.get('status')) for r in records]

    by_status = dict.fromkeys(STATUS_CODES, 0)
    for status, count in Counter(statuses).items():
        # Records with an unrecognized status still count towards the total
        if status is not None:
            by_status[status] = count
    unrecognized = sum(1 for s in statuses if s is None)
    if unrecognized:
        by_status[UNKNOWN] = unrecognized

    by_asset_type = dict.fromkeys(ASSET_TYPE_CODES, 0)
    by_asset_type.update(Counter(normalize_asset_type(r.get('asset_type')) or UNKNOWN for r in records))

    by_department = dict(sorted(Counter(department_of(r) for r in records).items()))

    since = today - timedelta(days=RECENT_WINDOW_DAYS)

    return {
        'total': total,
        'active': by_status[AssignmentStatus.IN_USE.value],
        'returned': by_status[AssignmentStatus.RETURNED.value],
        'overdue': by_status[AssignmentStatus.OVERDUE.value],
        'by_status': by_status,
        'by_asset_type': by_asset_type,
        'by_department': by_department,
        'percentages': {
            'by_status': percentages(by_status, total),
            'by_asset_type': percentages(by_asset_type, total),
            'by_department': percentages(by_department, total),
        },
        'recent_assignments': _recent(records, 'assigned_date', since, RECENT_LIMIT),
        'recent_returns': _recent(records, 'return_date', since, RECENT_LIMIT),
    }


def assignment_trends(assignments: Iterable[Dict[str, Any]], days: int = 30,
                      today: Optional[date] = None) -> Dict[str, List]:
    """Daily counts of checkouts and returns over the trailing window."""
    records = list(assignments)
    today = today or date.today()
    dates = [(today - timedelta(days=offset)).isoformat() for offset in range(days - 1, -1, -1)]

    assigned = Counter(to_iso_date(r.get('assigned_date')) for r in records)
    returned = Counter(to_iso_date(r.get('return_date')) for r in records if r.get('return_date'))

    return {
        'dates': dates,
        'assigned': [assigned.get(d, 0) for d in dates],
        'returned': [returned.get(d, 0) for d in dates],
    }
