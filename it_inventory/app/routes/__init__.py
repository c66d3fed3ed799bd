# app/routes/__init__.py
from functools import wraps

from flask import Blueprint, jsonify
from flask_login import current_user, login_required

# Create blueprints
assets_bp = Blueprint('assets', __name__, url_prefix='/assets')
employees_bp = Blueprint('employees', __name__, url_prefix='/employees')
assignments_bp = Blueprint('assignments', __name__, url_prefix='/assignments')


def role_required(*roles):
    """login_required plus a role check answering 403 JSON."""
    def decorator(view):
        @wraps(view)
        @login_required
        def wrapped(*args, **kwargs):
            if not current_user.has_role(*roles):
                return jsonify({'error': 'Unauthorized'}), 403
            return view(*args, **kwargs)
        return wrapped
    return decorator


def own_employee_id():
    """Employee id linked to the logged-in user, or None."""
    employee = current_user.employee
    return employee.id if employee else None


# Import views after blueprints are created
from . import assets, employees, assignments
