"""
Sort engine for assignment records.

Values are compared by kind: numbers numerically, dates chronologically and
everything else as case-insensitive text. Missing values rank lowest, so they
lead an ascending sort and trail a descending one. sorted() is stable, which
keeps records with equal keys in their input order in both directions.
"""

import logging
from numbers import Number
from typing import Any, Dict, Iterable, List

from .constants import DATE_FIELDS
from .records import parse_date

logger = logging.getLogger(__name__)

SORT_ORDERS = ('asc', 'desc')

# Kind ranks keep mixed-type columns comparable without raising
_MISSING, _NUMBER, _DATE, _TEXT = range(4)


def _looks_like_iso_date(value) -> bool:
    return isinstance(value, str) and len(value) >= 10 and value[4:5] == '-' and value[7:8] == '-' \
        and parse_date(value) is not None


def _sort_key(value, date_field: bool):
    if value is None or value == '':
        return (_MISSING, 0)
    if isinstance(value, Number) and not isinstance(value, bool):
        return (_NUMBER, value)
    if date_field or _looks_like_iso_date(value):
        parsed = parse_date(value)
        if parsed is not None:
            # Full timestamps keep their time component as a tie-breaker
            return (_DATE, parsed.toordinal(), str(value))
    return (_TEXT, str(value).casefold())


def is_sortable_field(assignments: List[Dict[str, Any]], field: str) -> bool:
    return field in DATE_FIELDS or any(field in record for record in assignments)


def sort_assignments(assignments: Iterable[Dict[str, Any]], field: str,
                     order: str = 'asc') -> List[Dict[str, Any]]:
    assignments = list(assignments)
    if not field or not is_sortable_field(assignments, field):
        logger.debug("Ignoring sort on unknown field %r", field)
        return assignments

    descending = str(order).lower() == 'desc'
    date_field = field in DATE_FIELDS
    return sorted(
        assignments,
        key=lambda record: _sort_key(record.get(field), date_field),
        reverse=descending,
    )
