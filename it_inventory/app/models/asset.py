# app/models/asset.py
from datetime import datetime
from enum import Enum
from it_inventory.app import db
from it_inventory.app.pipeline.constants import AssetType, normalize_asset_type
from .asset_history import AssetHistory

class AssetStatus(Enum):
    AVAILABLE = "available"
    IN_USE = "in_use"
    REPAIR = "repair"
    RETIRED = "retired"

ID_PREFIXES = {
    AssetType.HARDWARE.value: 'HW',
    AssetType.SOFTWARE.value: 'SW',
}

def _match_enum(enum_cls, value, label):
    if isinstance(value, enum_cls):
        return value.value
    text = str(value).strip().replace(' ', '_')
    try:
        # Try to match the input to an enum value
        return next(m.value for m in enum_cls if m.value == text.lower() or m.name == text.upper())
    except StopIteration:
        raise ValueError(f"Invalid {label}: {value}")

class Asset(db.Model):
    id = db.Column(db.String(20), primary_key=True)  # HW001, SW001, ...
    asset_type = db.Column(db.String(20), nullable=False)
    name = db.Column(db.String(200), nullable=False)
    kind = db.Column(db.String(50))  # laptop, monitor, office suite, ...
    manufacturer = db.Column(db.String(100))
    model = db.Column(db.String(100))
    serial_number = db.Column(db.String(100))
    version = db.Column(db.String(50))
    status = db.Column(db.String(20), default=AssetStatus.AVAILABLE.value)
    total_licenses = db.Column(db.Integer)
    used_licenses = db.Column(db.Integer, default=0)
    purchase_date = db.Column(db.Date)
    details = db.Column(db.JSON)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    # Add relationship
    assignments = db.relationship('Assignment', backref='asset', lazy=True)
    history = db.relationship('AssetHistory', backref='asset', lazy=True)

    def __init__(self, asset_type, name, id=None, status=None, kind=None, manufacturer=None,
                 model=None, serial_number=None, version=None, total_licenses=None,
                 purchase_date=None, details=None):
        # Validate and standardize asset type
        self.asset_type = normalize_asset_type(asset_type)
        if self.asset_type is None:
            raise ValueError(f"Invalid asset type: {asset_type}")

        if not name or not str(name).strip():
            raise ValueError("Asset name is required")
        self.name = str(name).strip()

        # Standardize asset id (e.g., uppercase, remove extra spaces)
        self.id = str(id).strip().upper() if id else Asset.next_id(self.asset_type)

        # Validate and standardize status
        if status:
            self.status = _match_enum(AssetStatus, status, 'status')
        else:
            self.status = AssetStatus.AVAILABLE.value

        self.kind = kind
        self.manufacturer = manufacturer
        self.model = model
        self.serial_number = serial_number
        self.version = version
        self.purchase_date = purchase_date
        self.details = details or {}

        if self.asset_type == AssetType.SOFTWARE.value:
            total = int(total_licenses if total_licenses is not None else 1)
            if total < 0:
                raise ValueError("total_licenses cannot be negative")
            self.total_licenses = total
            self.used_licenses = 0

    @staticmethod
    def next_id(asset_type):
        prefix = ID_PREFIXES[asset_type]
        ids = [row[0] for row in db.session.query(Asset.id).filter(Asset.id.like(f'{prefix}%')).all()]
        numbers = [int(i[len(prefix):]) for i in ids if i[len(prefix):].isdigit()]
        return f"{prefix}{(max(numbers) if numbers else 0) + 1:03d}"

    @property
    def is_software(self):
        return self.asset_type == AssetType.SOFTWARE.value

    @property
    def available_licenses(self):
        if not self.is_software:
            return None
        return max((self.total_licenses or 0) - (self.used_licenses or 0), 0)

    @property
    def description(self):
        if self.is_software:
            parts = [self.name, self.version]
        else:
            parts = [self.kind, self.manufacturer, self.model] if (self.manufacturer or self.model) else [self.name]
        return ' '.join(p for p in parts if p)

    def check_out(self):
        """Mark the asset as held by one more assignment."""
        if self.is_software:
            self.used_licenses = (self.used_licenses or 0) + 1
        else:
            self.status = AssetStatus.IN_USE.value

    def release(self):
        """Undo check_out() when an assignment is returned or deleted."""
        if self.is_software:
            self.used_licenses = max((self.used_licenses or 0) - 1, 0)
        elif self.status == AssetStatus.IN_USE.value:
            self.status = AssetStatus.AVAILABLE.value

    def log_event(self, event_type, details, user_id=None, assignment_id=None):
        history_log = AssetHistory(
            asset_id=self.id,
            assignment_id=assignment_id,
            user_id=user_id,
            event_type=event_type,
            details=details
        )
        db.session.add(history_log)
        return history_log

    def to_availability(self):
        return {
            'asset_type': self.asset_type,
            'status': self.status,
            'total_licenses': self.total_licenses,
            'used_licenses': self.used_licenses,
        }

    def to_dict(self):
        return {
            'id': self.id,
            'asset_type': self.asset_type,
            'name': self.name,
            'kind': self.kind,
            'manufacturer': self.manufacturer,
            'model': self.model,
            'serial_number': self.serial_number,
            'version': self.version,
            'status': self.status,
            'total_licenses': self.total_licenses,
            'used_licenses': self.used_licenses,
            'available_licenses': self.available_licenses,
            'purchase_date': self.purchase_date.isoformat() if self.purchase_date else None,
            'description': self.description,
            'details': self.details,
        }

    def __repr__(self):
        return f'<Asset {self.id}: {self.asset_type} ({self.status})>'
