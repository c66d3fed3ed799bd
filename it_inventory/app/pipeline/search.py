# app/pipeline/search.py
from typing import Any, Dict, Iterable, List

SEARCH_FIELDS = ('employee_name', 'asset_id', 'asset_description', 'id')


def searchable_values(record: Dict[str, Any]) -> List[str]:
    values = [record.get(field) for field in SEARCH_FIELDS]
    asset = record.get('asset')
    if asset:
        values.append(asset.get('manufacturer'))
    return [str(v) for v in values if v]


def search(assignments: Iterable[Dict[str, Any]], query: str) -> List[Dict[str, Any]]:
    """Case-insensitive substring search over the display fields of each record.

    A blank query matches everything.
    """
    assignments = list(assignments)
    term = (query or '').strip().casefold()
    if not term:
        return assignments

    return [
        record for record in assignments
        if any(term in value.casefold() for value in searchable_values(record))
    ]
