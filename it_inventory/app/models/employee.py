# app/models/employee.py
from datetime import datetime
from it_inventory.app import db

class Employee(db.Model):
    id = db.Column(db.String(20), primary_key=True)  # EMP001, EMP002, ...
    name = db.Column(db.String(100), nullable=False)
    email = db.Column(db.String(120), unique=True)
    department = db.Column(db.String(50), nullable=False)
    position = db.Column(db.String(50))
    phone = db.Column(db.String(20))
    hire_date = db.Column(db.Date)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Add relationship
    assignments = db.relationship('Assignment', backref='employee', lazy=True)

    @staticmethod
    def next_id():
        ids = [row[0] for row in db.session.query(Employee.id).filter(Employee.id.like('EMP%')).all()]
        numbers = [int(i[3:]) for i in ids if i[3:].isdigit()]
        return f"EMP{(max(numbers) if numbers else 0) + 1:03d}"

    @property
    def active_assignment_count(self):
        return sum(1 for a in self.assignments if a.holds_asset)

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'email': self.email,
            'department': self.department,
            'position': self.position,
            'phone': self.phone,
            'hire_date': self.hire_date.isoformat() if self.hire_date else None,
            'is_active': self.is_active,
            'active_assignments': self.active_assignment_count,
        }

    def __repr__(self):
        return f'<Employee {self.id}: {self.name} ({self.department})>'
