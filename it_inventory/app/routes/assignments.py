import io
import logging
import smtplib
from datetime import date

from flask import request, jsonify, current_app, send_file
from flask_login import login_required, current_user
from flask_mail import Message
from it_inventory.app.models import Assignment, Asset, Employee
from it_inventory.app.models.assignment import optional_date
from it_inventory.app.exceptions import AssignmentConflictError, ResourceNotFoundError
from it_inventory.app.pipeline import (
    FilterSet, apply_filters, search, sort_assignments, compute_stats,
    ExportOptions, export_assignments, detect_conflicts, hydrate_assignment, hydrate_all,
)
from it_inventory.app.pipeline.conflicts import MIN_ASSIGNMENT_DATE
from it_inventory.app.pipeline.constants import can_perform, status_label
from it_inventory.app.pipeline.filters import to_bool
from it_inventory.app.pipeline.records import parse_date
from it_inventory.app import db, mail
from sqlalchemy import or_
from it_inventory.app.routes import assignments_bp as bp, role_required, own_employee_id

logger = logging.getLogger(__name__)

DEFAULT_SORT = 'assigned_date'
DEFAULT_ORDER = 'desc'


def send_assignment_email(assignment):
    employee = assignment.employee
    if not current_app.config.get('MAIL_SERVER') or not employee.email:
        return
    msg = Message('New Asset Assignment',
                  sender=current_app.config['MAIL_DEFAULT_SENDER'],
                  recipients=[employee.email])
    msg.body = f'''Dear {employee.name},

You have been assigned a new asset:
Asset: {assignment.asset_id} ({assignment.asset.description})
Type: {assignment.asset_type}
Assigned on: {assignment.assigned_date.strftime('%Y-%m-%d')}

Please log in to the asset management system to view the details.

Thank you,
IT Department
'''
    try:
        mail.send(msg)
    except (smtplib.SMTPException, OSError) as e:
        logger.warning("Could not send assignment notice for %s to %s: %s",
                       assignment.id, employee.email, e)


def _limits():
    config = current_app.config
    return {
        'max_hardware_per_employee': config['MAX_HARDWARE_PER_EMPLOYEE'],
        'max_software_per_employee': config['MAX_SOFTWARE_PER_EMPLOYEE'],
        'notes_max_length': config['NOTES_MAX_LENGTH'],
    }


def _visible_query():
    if current_user.has_role('admin', 'manager'):
        return Assignment.query
    return Assignment.query.filter_by(employee_id=own_employee_id())


def _get_visible(id):
    assignment = _visible_query().filter_by(id=id).first()
    if assignment is None:
        raise ResourceNotFoundError('Assignment', id)
    return assignment


def _selected_records():
    """Hydrated records matching the request's q and filter args, sorted."""
    query = request.args.get('q', '')
    if len(query) > current_app.config['MAX_SEARCH_LENGTH']:
        raise ValueError(f"Search query is longer than {current_app.config['MAX_SEARCH_LENGTH']} characters")

    records = hydrate_all(_visible_query().all())
    records = search(records, query)
    records = apply_filters(records, FilterSet.from_mapping(request.args))
    return sort_assignments(records, request.args.get('sort', DEFAULT_SORT),
                            request.args.get('order', DEFAULT_ORDER))


def _page_args():
    config = current_app.config
    page = int(request.args.get('page', 1))
    limit = int(request.args.get('limit', config['DEFAULT_PAGE_SIZE']))
    if page < 1 or limit < 1:
        raise ValueError("page and limit must be positive")
    return page, min(limit, config['MAX_PAGE_SIZE'])


def _related_records(employee_id, asset_id, exclude_id=None):
    rows = Assignment.query.filter(or_(
        Assignment.employee_id == employee_id, Assignment.asset_id == asset_id)).all()
    return hydrate_all(a for a in rows if a.id != exclude_id)


def _find_conflicts(candidate, exclude_id=None, held_license=False):
    employee = db.session.get(Employee, candidate.get('employee_id') or '')
    asset = db.session.get(Asset, candidate.get('asset_id') or '')
    if asset is not None and not candidate.get('asset_type'):
        candidate['asset_type'] = asset.asset_type

    availability = asset.to_availability() if asset is not None else None
    if availability and held_license:
        # The assignment being edited already occupies one of these licenses
        availability['used_licenses'] = max((availability['used_licenses'] or 0) - 1, 0)

    return detect_conflicts(
        candidate,
        _related_records(candidate.get('employee_id'), candidate.get('asset_id'), exclude_id),
        employee={'is_active': employee.is_active} if employee is not None else None,
        asset=availability,
        limits=_limits(),
    ), employee, asset


def _candidate(data):
    return {
        'employee_id': str(data.get('employee_id') or '').strip(),
        'asset_id': str(data.get('asset_id') or '').strip().upper(),
        'asset_type': data.get('asset_type'),
        'assigned_date': data.get('assigned_date') or date.today().isoformat(),
        'notes': data.get('notes'),
    }


@bp.route('/')
@login_required
def list_assignments():
    try:
        records = _selected_records()
        page, limit = _page_args()
    except ValueError as e:
        return jsonify({'error': str(e)}), 400

    total = len(records)
    start = (page - 1) * limit
    return jsonify({
        'assignments': records[start:start + limit],
        'total': total,
        'page': page,
        'limit': limit,
        'pages': (total + limit - 1) // limit,
    })

@bp.route('/stats')
@login_required
def assignment_stats():
    try:
        records = _selected_records()
    except ValueError as e:
        return jsonify({'error': str(e)}), 400
    return jsonify(compute_stats(records))

@bp.route('/export')
@login_required
def export():
    try:
        records = _selected_records()
        flags = {key: to_bool(request.args[key]) for key in (
            'include_employee_details', 'include_asset_details', 'include_history', 'include_statistics')
            if to_bool(request.args.get(key)) is not None}
        options = ExportOptions(
            format=request.args.get('format', 'xlsx'),
            file_name=request.args.get('file_name'),
            locale=request.args.get('locale', current_app.config['EXPORT_LOCALE']),
            **flags,
        )
    except ValueError as e:
        return jsonify({'error': str(e)}), 400

    result = export_assignments(records, options)
    logger.info("%s exported %d assignments as %s", current_user.username, result.count, result.file_name)
    return send_file(io.BytesIO(result.content), mimetype=result.mimetype,
                     as_attachment=True, download_name=result.file_name)

@bp.route('/<id>')
@login_required
def view_assignment(id):
    return jsonify(hydrate_assignment(_get_visible(id)))

@bp.route('/validate', methods=['POST'])
@role_required('admin', 'manager')
def validate_assignment():
    conflicts, _, _ = _find_conflicts(_candidate(request.get_json(silent=True) or {}))
    return jsonify({'valid': not conflicts, 'conflicts': conflicts})

@bp.route('/', methods=['POST'])
@role_required('admin', 'manager')
def add_assignment():
    data = request.get_json(silent=True) or {}
    candidate = _candidate(data)
    conflicts, employee, asset = _find_conflicts(candidate)
    if conflicts:
        raise AssignmentConflictError(conflicts)

    try:
        assignment = Assignment(
            employee_id=employee.id,
            asset_id=asset.id,
            asset_type=asset.asset_type,
            assigned_date=candidate['assigned_date'],
            expected_return_date=data.get('expected_return_date'),
            status=data.get('status'),
            notes=candidate['notes'],
            assigned_by=current_user.username,
        )
    except ValueError as e:
        return jsonify({'error': str(e)}), 400

    if assignment.holds_asset:
        asset.check_out()
    db.session.add(assignment)
    asset.log_event('Asset Assigned', f"Assigned to {employee.name}",
                    user_id=current_user.id, assignment_id=assignment.id)
    db.session.commit()
    logger.info("Assignment %s created: %s -> %s", assignment.id, asset.id, employee.id)

    send_assignment_email(assignment)
    return jsonify(hydrate_assignment(assignment)), 201

@bp.route('/<id>', methods=['PUT'])
@role_required('admin', 'manager')
def update_assignment(id):
    assignment = db.get_or_404(Assignment, id)
    if not can_perform('edit', assignment.status):
        raise AssignmentConflictError(
            [{'type': 'business_rule', 'message': f"A {status_label(assignment.status, 'en')} assignment cannot be edited"}],
            'Assignment cannot be edited')
    data = request.get_json(silent=True) or {}

    old_asset = assignment.asset
    held_before = assignment.holds_asset
    employee_id = str(data.get('employee_id') or assignment.employee_id).strip()
    asset_id = str(data.get('asset_id') or assignment.asset_id).strip().upper()

    moved = employee_id != assignment.employee_id or asset_id != assignment.asset_id
    if moved:
        same_asset = asset_id == assignment.asset_id
        conflicts, _, new_asset = _find_conflicts({
            'employee_id': employee_id,
            'asset_id': asset_id,
            'assigned_date': data.get('assigned_date') or assignment.assigned_date,
            'notes': data.get('notes', assignment.notes),
        }, exclude_id=assignment.id, held_license=same_asset and held_before)
        if conflicts:
            raise AssignmentConflictError(conflicts)
        assignment.employee_id = employee_id
        assignment.asset_id = asset_id
        assignment.asset_type = new_asset.asset_type
        assignment.asset = new_asset
    else:
        new_asset = old_asset

    try:
        if 'assigned_date' in data:
            assigned = parse_date(data['assigned_date'])
            if assigned is None or assigned < MIN_ASSIGNMENT_DATE or assigned > date.today():
                raise ValueError(f"Invalid assigned date: {data['assigned_date']}")
            assignment.assigned_date = assigned
        if 'expected_return_date' in data:
            assignment.expected_return_date = optional_date(data['expected_return_date'], 'expected return date')
        if 'notes' in data:
            notes = data['notes'] or ''
            if len(notes) > current_app.config['NOTES_MAX_LENGTH']:
                raise ValueError(f"Notes exceed {current_app.config['NOTES_MAX_LENGTH']} characters")
            assignment.notes = notes
        if data.get('status'):
            assignment.set_status(data['status'])
    except ValueError as e:
        db.session.rollback()
        return jsonify({'error': str(e)}), 400

    held_after = assignment.holds_asset
    if held_after and not held_before and not moved:
        # Reopening takes the asset (or a license) again
        conflicts, _, _ = _find_conflicts({
            'employee_id': assignment.employee_id,
            'asset_id': assignment.asset_id,
            'assigned_date': assignment.assigned_date,
            'notes': assignment.notes,
        }, exclude_id=assignment.id)
        if conflicts:
            raise AssignmentConflictError(conflicts)

    # Move the checkout when the asset or the holding state changed
    if held_before and (not held_after or new_asset is not old_asset):
        old_asset.release()
    if held_after and (not held_before or new_asset is not old_asset):
        new_asset.check_out()

    new_asset.log_event('Assignment Updated', f"Assignment {assignment.id} updated",
                        user_id=current_user.id, assignment_id=assignment.id)
    db.session.commit()
    logger.info("Assignment %s updated by %s", assignment.id, current_user.username)
    return jsonify(hydrate_assignment(assignment))

@bp.route('/<id>/return', methods=['PUT'])
@role_required('admin', 'manager')
def return_asset(id):
    assignment = db.get_or_404(Assignment, id)
    if not can_perform('return', assignment.status):
        raise AssignmentConflictError(
            [{'type': 'business_rule', 'message': f"A {status_label(assignment.status, 'en')} assignment cannot be returned"}],
            'Assignment cannot be returned')
    data = request.get_json(silent=True) or {}
    held = assignment.holds_asset

    try:
        assignment.mark_returned(
            return_date=data.get('return_date'),
            notes=data.get('return_notes') or data.get('notes'),
            condition=data.get('return_condition'),
            returned_by=current_user.username,
        )
    except ValueError as e:
        db.session.rollback()
        return jsonify({'error': str(e)}), 400

    asset = assignment.asset
    if held:
        asset.release()
    asset.log_event('Asset Returned', f"Returned by {assignment.employee.name}",
                    user_id=current_user.id, assignment_id=assignment.id)
    db.session.commit()
    logger.info("Assignment %s returned (%s)", assignment.id, asset.id)
    return jsonify(hydrate_assignment(assignment))

@bp.route('/<id>', methods=['DELETE'])
@role_required('admin')
def delete_assignment(id):
    assignment = db.get_or_404(Assignment, id)
    if not can_perform('delete', assignment.status):
        raise AssignmentConflictError(
            [{'type': 'business_rule', 'message': f"A {status_label(assignment.status, 'en')} assignment cannot be deleted"}],
            'Assignment cannot be deleted')

    record = hydrate_assignment(assignment)
    asset = assignment.asset
    if assignment.holds_asset:
        asset.release()
    asset.log_event('Assignment Deleted', f"Assignment {assignment.id} deleted",
                    user_id=current_user.id, assignment_id=assignment.id)
    db.session.delete(assignment)
    db.session.commit()
    logger.info("Assignment %s deleted by %s", id, current_user.username)
    return jsonify({'status': 'success', 'deleted': record})
