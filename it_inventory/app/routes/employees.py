import logging

from flask import request, jsonify
from flask_login import login_required, current_user
from it_inventory.app.models import Employee
from it_inventory.app.pipeline.records import hydrate_all, parse_date
from it_inventory.app import db
from it_inventory.app.routes import employees_bp as bp, role_required, own_employee_id

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = ('name', 'email', 'department', 'position', 'phone')


def _can_view(employee_id):
    return current_user.has_role('admin', 'manager') or own_employee_id() == employee_id


def _apply_fields(employee, data):
    for field in EDITABLE_FIELDS:
        if field in data:
            value = data[field]
            setattr(employee, field, value.strip() if isinstance(value, str) else value)
    if 'hire_date' in data:
        employee.hire_date = parse_date(data['hire_date'])
    if employee.email:
        employee.email = employee.email.lower()
    if not employee.name or not employee.department:
        raise ValueError("Employee name and department are required")
    with db.session.no_autoflush:
        duplicate = Employee.query.filter(Employee.email == employee.email, Employee.id != employee.id).first()
    if employee.email and duplicate is not None:
        raise ValueError(f"Email {employee.email} is already used by {duplicate.id}")


@bp.route('/')
@login_required
def list_employees():
    if not current_user.has_role('admin', 'manager'):
        employees = [current_user.employee] if current_user.employee else []
    else:
        employees = Employee.query.order_by(Employee.id).all()
        department = request.args.get('department')
        if department:
            employees = [e for e in employees if e.department == department]
        if request.args.get('active') == 'true':
            employees = [e for e in employees if e.is_active]
    return jsonify({'employees': [e.to_dict() for e in employees]})

@bp.route('/', methods=['POST'])
@role_required('admin', 'manager')
def add_employee():
    data = request.get_json(silent=True) or {}
    try:
        employee = Employee(id=data.get('id') or Employee.next_id())
        if db.session.get(Employee, employee.id) is not None:
            raise ValueError(f"Employee {employee.id} already exists")
        _apply_fields(employee, data)
        db.session.add(employee)
        db.session.commit()
    except ValueError as e:
        db.session.rollback()
        return jsonify({'error': str(e)}), 400

    logger.info("Employee %s created", employee.id)
    return jsonify(employee.to_dict()), 201

@bp.route('/<id>')
@login_required
def view_employee(id):
    if not _can_view(id):
        return jsonify({'error': 'Unauthorized'}), 403
    employee = db.get_or_404(Employee, id)
    payload = employee.to_dict()
    payload['assignments'] = hydrate_all(a for a in employee.assignments if a.holds_asset)
    return jsonify(payload)

@bp.route('/<id>', methods=['PUT'])
@role_required('admin', 'manager')
def update_employee(id):
    employee = db.get_or_404(Employee, id)
    data = request.get_json(silent=True) or {}
    try:
        _apply_fields(employee, data)
        if 'is_active' in data:
            employee.is_active = bool(data['is_active'])
        db.session.commit()
    except ValueError as e:
        db.session.rollback()
        return jsonify({'error': str(e)}), 400
    return jsonify(employee.to_dict())

@bp.route('/<id>', methods=['DELETE'])
@role_required('admin')
def deactivate_employee(id):
    employee = db.get_or_404(Employee, id)
    if employee.active_assignment_count:
        return jsonify({'error': f'Employee {id} still holds {employee.active_assignment_count} assets'}), 409
    employee.is_active = False
    db.session.commit()
    logger.info("Employee %s deactivated", id)
    return jsonify(employee.to_dict())

@bp.route('/<id>/history')
@login_required
def employee_history(id):
    if not _can_view(id):
        return jsonify({'error': 'Unauthorized'}), 403
    employee = db.get_or_404(Employee, id)
    # Explicitly filter and sort assignments with return dates
    past_assignments = [a for a in employee.assignments if a.return_date is not None]
    past_assignments.sort(key=lambda x: x.return_date, reverse=True)

    return jsonify({'employee_id': employee.id, 'assignments': hydrate_all(past_assignments)})
