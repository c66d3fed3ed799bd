# app/pipeline/constants.py
from enum import Enum


class AssignmentStatus(Enum):
    IN_USE = "in_use"
    RETURNED = "returned"
    PENDING = "pending"
    OVERDUE = "overdue"
    LOST = "lost"
    DAMAGED = "damaged"


class AssetType(Enum):
    HARDWARE = "hardware"
    SOFTWARE = "software"


class ReturnCondition(Enum):
    GOOD = "good"
    FAIR = "fair"
    POOR = "poor"
    DAMAGED = "damaged"


STATUS_CODES = [s.value for s in AssignmentStatus]
ASSET_TYPE_CODES = [t.value for t in AssetType]

STATUS_LABELS = {
    'ko': {
        'in_use': '사용중',
        'returned': '반납완료',
        'pending': '대기중',
        'overdue': '연체',
        'lost': '분실',
        'damaged': '손상',
    },
    'en': {
        'in_use': 'In Use',
        'returned': 'Returned',
        'pending': 'Pending',
        'overdue': 'Overdue',
        'lost': 'Lost',
        'damaged': 'Damaged',
    },
}

ASSET_TYPE_LABELS = {
    'ko': {'hardware': '하드웨어', 'software': '소프트웨어'},
    'en': {'hardware': 'Hardware', 'software': 'Software'},
}

# (return, edit, delete)
STATUS_PERMISSIONS = {
    'in_use': {'return': True, 'edit': True, 'delete': False},
    'returned': {'return': False, 'edit': False, 'delete': True},
    'pending': {'return': False, 'edit': True, 'delete': True},
    'overdue': {'return': True, 'edit': True, 'delete': False},
    'lost': {'return': False, 'edit': True, 'delete': False},
    'damaged': {'return': True, 'edit': True, 'delete': False},
}

DATE_FIELDS = ('assigned_date', 'expected_return_date', 'return_date', 'created_at', 'updated_at')

UNKNOWN = 'unknown'


def _match_code(value, codes, label_tables):
    text = str(value).strip()
    if not text:
        return None
    folded = text.casefold()
    for code in codes:
        if code.casefold() == folded:
            return code
    # Labels may carry spaces in some locales ("사용 중", "In Use")
    squashed = folded.replace(' ', '').replace('_', '')
    for table in label_tables.values():
        for code, label in table.items():
            if label.casefold().replace(' ', '') == squashed:
                return code
    return None


def normalize_status(value):
    """Map a status code or a label in any locale to its code, or None."""
    if value is None:
        return None
    if isinstance(value, AssignmentStatus):
        return value.value
    return _match_code(value, STATUS_CODES, STATUS_LABELS)


def normalize_asset_type(value):
    if value is None:
        return None
    if isinstance(value, AssetType):
        return value.value
    return _match_code(value, ASSET_TYPE_CODES, ASSET_TYPE_LABELS)


def status_label(code, locale='ko'):
    return STATUS_LABELS.get(locale, STATUS_LABELS['ko']).get(code, code or '')


def asset_type_label(code, locale='ko'):
    return ASSET_TYPE_LABELS.get(locale, ASSET_TYPE_LABELS['ko']).get(code, code or '')


def can_perform(action, status):
    return STATUS_PERMISSIONS.get(status, {}).get(action, False)
