"""
Filter engine for assignment records.

A filter set is sparse: every key that is missing, None or empty imposes no
constraint, unknown keys are ignored and unrecognized values simply match
nothing. All given predicates are combined with AND.
"""

from dataclasses import dataclass, fields
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

from .constants import AssignmentStatus, normalize_asset_type, normalize_status
from .records import to_iso_date

TRUE_VALUES = {'1', 'true', 'yes', 'on'}
FALSE_VALUES = {'0', 'false', 'no', 'off'}


def to_bool(value) -> Optional[bool]:
    if value is None or isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in TRUE_VALUES:
        return True
    if text in FALSE_VALUES:
        return False
    return None


def _to_list(value) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [part for part in (p.strip() for p in value.split(',')) if part]
    return [v for v in value if v not in (None, '')]


@dataclass
class FilterSet:
    status: Optional[Union[str, List[str]]] = None
    asset_type: Optional[str] = None
    employee_id: Optional[str] = None
    department: Optional[str] = None
    asset_id: Optional[str] = None
    manufacturer: Optional[str] = None
    assigned_date_from: Optional[str] = None
    assigned_date_to: Optional[str] = None
    return_date_from: Optional[str] = None
    return_date_to: Optional[str] = None
    overdue: Optional[bool] = None

    @classmethod
    def from_mapping(cls, data: Optional[Mapping[str, Any]]) -> 'FilterSet':
        """Build a filter set from a dict or request args, dropping unknown keys."""
        if data is None:
            return cls()
        if isinstance(data, cls):
            return data
        known = {f.name for f in fields(cls)}
        values = {}
        for key in known:
            if key == 'status' and hasattr(data, 'getlist'):
                raw = [part for item in data.getlist(key) for part in _to_list(item)]
                values[key] = raw or None
            elif key in data:
                values[key] = data[key]
        return cls(**values)

    def statuses(self) -> List[str]:
        # Unrecognized values are kept as a sentinel so they match nothing
        return [normalize_status(s) or f'?{s}' for s in _to_list(self.status)]

    def is_empty(self) -> bool:
        return all(getattr(self, f.name) in (None, '', []) for f in fields(self))

    def as_dict(self) -> Dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)
                if getattr(self, f.name) not in (None, '', [])}


def _embedded(record, key, attr):
    nested = record.get(key) or {}
    return nested.get(attr)


def _in_range(value, lower, upper):
    if lower is None and upper is None:
        return True
    if value is None:
        return False
    if lower is not None and value < lower:
        return False
    if upper is not None and value > upper:
        return False
    return True


def _build_predicates(filters: FilterSet):
    predicates = []

    statuses = filters.statuses()
    if statuses:
        wanted = set(statuses)
        predicates.append(lambda r: normalize_status(r.get('status')) in wanted)

    if filters.asset_type:
        asset_type = normalize_asset_type(filters.asset_type) or f'?{filters.asset_type}'
        predicates.append(lambda r: r.get('asset_type') == asset_type)

    if filters.employee_id:
        employee = filters.employee_id
        predicates.append(lambda r: employee in (r.get('employee_id'), r.get('employee_name')))

    if filters.department:
        department = filters.department
        predicates.append(lambda r: _embedded(r, 'employee', 'department') == department)

    if filters.asset_id:
        asset_id = filters.asset_id
        predicates.append(lambda r: r.get('asset_id') == asset_id)

    if filters.manufacturer:
        needle = filters.manufacturer.casefold()
        predicates.append(
            lambda r: needle in (_embedded(r, 'asset', 'manufacturer') or '').casefold())

    assigned_from = to_iso_date(filters.assigned_date_from)
    assigned_to = to_iso_date(filters.assigned_date_to)
    if assigned_from or assigned_to:
        predicates.append(
            lambda r: _in_range(to_iso_date(r.get('assigned_date')), assigned_from, assigned_to))

    returned_from = to_iso_date(filters.return_date_from)
    returned_to = to_iso_date(filters.return_date_to)
    if returned_from or returned_to:
        predicates.append(
            lambda r: _in_range(to_iso_date(r.get('return_date')), returned_from, returned_to))

    overdue = to_bool(filters.overdue)
    if overdue is True:
        predicates.append(lambda r: normalize_status(r.get('status')) == AssignmentStatus.OVERDUE.value)
    elif overdue is False:
        predicates.append(lambda r: normalize_status(r.get('status')) != AssignmentStatus.OVERDUE.value)

    return predicates


def apply_filters(assignments: Iterable[Dict[str, Any]],
                  filters: Optional[Union[FilterSet, Mapping[str, Any]]] = None) -> List[Dict[str, Any]]:
    """Return the records satisfying every predicate in filters, in input order."""
    predicates = _build_predicates(FilterSet.from_mapping(filters))
    return [record for record in assignments
            if all(predicate(record) for predicate in predicates)]
