from datetime import date

import pytest

from it_inventory.app import create_app, db
from it_inventory.app.models import Asset, Employee, User
from it_inventory.config import TestConfig


@pytest.fixture
def app():
    app = create_app(TestConfig)
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def login(client):
    def _login(email, password='password'):
        return client.post('/login', json={'email': email, 'password': password})
    return _login


@pytest.fixture
def make_user(app):
    def _make_user(username, role='user', employee_id=None):
        with app.app_context():
            user = User(username=username, email=f'{username}@example.com', role=role)
            user.set_password('password')
            db.session.add(user)
            db.session.flush()
            if employee_id:
                db.session.get(Employee, employee_id).user_id = user.id
            db.session.commit()
            return user.email
    return _make_user


@pytest.fixture
def inventory(app):
    """Two employees, one laptop and a two-seat software license."""
    with app.app_context():
        db.session.add_all([
            Employee(id='EMP001', name='김철수', email='kim@example.com', department='IT',
                     position='Developer', hire_date=date(2021, 3, 2)),
            Employee(id='EMP002', name='Lee Younghee', email='lee@example.com', department='HR',
                     position='Manager'),
        ])
        db.session.add(Asset(asset_type='hardware', id='HW001', name='Dell Latitude 5420',
                             kind='Laptop', manufacturer='Dell', model='Latitude 5420',
                             serial_number='DL5420-001'))
        db.session.add(Asset(asset_type='software', id='SW001', name='Microsoft Office',
                             version='365', manufacturer='Microsoft', total_licenses=2))
        db.session.commit()


@pytest.fixture
def admin_client(client, login, make_user, inventory):
    login(make_user('admin', role='admin'))
    return client


@pytest.fixture
def make_record():
    """Factory for hydrated assignment records as the pipeline sees them."""
    def _make_record(id, **overrides):
        record = {
            'id': id,
            'employee_id': 'EMP001',
            'asset_id': 'HW001',
            'asset_type': 'hardware',
            'assigned_date': '2024-01-15',
            'expected_return_date': None,
            'return_date': None,
            'status': 'in_use',
            'notes': '',
            'return_condition': None,
            'assigned_by': 'admin',
            'created_at': '2024-01-15T09:00:00',
            'updated_at': '2024-01-15T09:00:00',
            'employee_name': '김철수',
            'asset_description': 'Laptop Dell Latitude 5420',
            'employee': {'id': 'EMP001', 'name': '김철수', 'department': 'IT',
                         'position': 'Developer', 'email': 'kim@example.com'},
            'asset': {'id': 'HW001', 'name': 'Dell Latitude 5420', 'type': 'Laptop',
                      'manufacturer': 'Dell', 'model': 'Latitude 5420', 'serial_number': 'DL5420-001'},
        }
        record.update(overrides)
        return record
    return _make_record
