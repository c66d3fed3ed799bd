# app/models/user.py
from datetime import datetime
from flask_login import UserMixin
from it_inventory.app import db, bcrypt

ROLES = ('admin', 'manager', 'user')

class User(db.Model, UserMixin):
    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(50), unique=True, nullable=False)
    email = db.Column(db.String(120), unique=True, nullable=False)
    password_hash = db.Column(db.String(128), nullable=False, default='')
    role = db.Column(db.String(20), nullable=False, default='user')
    is_enabled = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    last_login = db.Column(db.DateTime)

    employee = db.relationship('Employee', backref='user', uselist=False, lazy=True)

    def __init__(self, username, email, role='user', password_hash=''):
        if role not in ROLES:
            raise ValueError(f"Invalid role: {role}")
        self.username = username.strip()
        self.email = email.strip().lower()
        self.role = role
        self.password_hash = password_hash

    @property
    def is_active(self):
        return self.is_enabled

    def set_password(self, password):
        self.password_hash = bcrypt.generate_password_hash(password).decode('utf-8')

    def check_password(self, password):
        return bool(self.password_hash) and bcrypt.check_password_hash(self.password_hash, password)

    def has_role(self, *roles):
        return self.role in roles

    def to_dict(self):
        return {
            'id': self.id,
            'username': self.username,
            'email': self.email,
            'role': self.role,
            'employee_id': self.employee.id if self.employee else None,
        }

    def __repr__(self):
        return f"User('{self.username}', '{self.role}')"
