# app/models/assignment.py
from datetime import datetime, date
from it_inventory.app import db
from it_inventory.app.pipeline.constants import (
    AssignmentStatus, ReturnCondition, normalize_asset_type, normalize_status,
)
from it_inventory.app.pipeline.conflicts import OPEN_STATUSES
from it_inventory.app.pipeline.records import parse_date

def optional_date(value, label):
    """Parse a date from a request value; None when absent, ValueError when malformed."""
    if value is None or value == '':
        return None
    parsed = parse_date(value)
    if parsed is None:
        raise ValueError(f"Invalid {label}: {value}")
    return parsed

class Assignment(db.Model):
    id = db.Column(db.String(20), primary_key=True)  # AS001, AS002, ...
    employee_id = db.Column(db.String(20), db.ForeignKey('employee.id'), nullable=False)
    asset_id = db.Column(db.String(20), db.ForeignKey('asset.id'), nullable=False)
    asset_type = db.Column(db.String(20), nullable=False)
    assigned_date = db.Column(db.Date, nullable=False, default=date.today)
    expected_return_date = db.Column(db.Date)
    return_date = db.Column(db.Date)
    status = db.Column(db.String(20), nullable=False, default=AssignmentStatus.IN_USE.value)
    notes = db.Column(db.Text)
    return_notes = db.Column(db.Text)
    return_condition = db.Column(db.String(20))
    assigned_by = db.Column(db.String(50))
    returned_by = db.Column(db.String(50))
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __init__(self, employee_id, asset_id, asset_type, assigned_date=None, id=None,
                 status=None, expected_return_date=None, notes=None, assigned_by=None):
        self.asset_type = normalize_asset_type(asset_type)
        if self.asset_type is None:
            raise ValueError(f"Invalid asset type: {asset_type}")

        self.id = id or Assignment.next_id()
        self.employee_id = employee_id
        self.asset_id = asset_id
        self.assigned_date = optional_date(assigned_date, 'assigned date') or date.today()
        self.expected_return_date = optional_date(expected_return_date, 'expected return date')
        self.set_status(status or AssignmentStatus.IN_USE.value)
        self.notes = notes
        self.assigned_by = assigned_by

    @staticmethod
    def next_id():
        ids = [row[0] for row in db.session.query(Assignment.id).filter(Assignment.id.like('AS%')).all()]
        numbers = [int(i[2:]) for i in ids if i[2:].isdigit()]
        return f"AS{(max(numbers) if numbers else 0) + 1:03d}"

    @property
    def holds_asset(self):
        """True while the assignment keeps its asset (or one license) checked out."""
        return self.return_date is None and self.status in OPEN_STATUSES

    def set_status(self, value):
        status = normalize_status(value)
        if status is None:
            raise ValueError(f"Invalid status: {value}")
        if status == AssignmentStatus.RETURNED.value and self.return_date is None:
            raise ValueError("Use the return endpoint to mark an assignment returned")
        self.status = status

    def mark_returned(self, return_date=None, notes=None, condition=None, returned_by=None):
        returned_on = optional_date(return_date, 'return date') or date.today()
        if returned_on < self.assigned_date:
            raise ValueError("Return date cannot be before the assigned date")
        if condition:
            try:
                condition = ReturnCondition(str(condition).strip().lower()).value
            except ValueError:
                raise ValueError(f"Invalid return condition: {condition}")

        self.return_date = returned_on
        self.status = AssignmentStatus.RETURNED.value
        self.return_notes = notes
        self.return_condition = condition
        self.returned_by = returned_by

    def __repr__(self):
        return f'<Assignment {self.id}: {self.asset_id} -> {self.employee_id} ({self.status})>'
