from flask import Blueprint, jsonify, make_response, request
from flask_login import login_required
from it_inventory.app import db
from it_inventory.app.models import Asset, AssetHistory, Assignment, Employee
from it_inventory.app.pipeline import compute_stats, assignment_trends, hydrate_all
from it_inventory.app.routes import role_required
from sqlalchemy import func
import io
import csv

dashboard_bp = Blueprint('dashboard', __name__)

MAX_ACTIVITIES = 100

@dashboard_bp.route('/')
@role_required('admin', 'manager')
def dashboard():
    total_assets = db.session.query(func.count(Asset.id)).scalar()

    assets_by_status = db.session.query(Asset.status, func.count(Asset.id)).group_by(Asset.status).all()

    assets_by_type = db.session.query(Asset.asset_type, func.count(Asset.id)).group_by(Asset.asset_type).all()

    active_employees = db.session.query(func.count(Employee.id)).filter(Employee.is_active.is_(True)).scalar()

    records = hydrate_all(Assignment.query.all())

    return jsonify({
        'total_assets': total_assets,
        'assets_by_status': dict(assets_by_status),
        'assets_by_type': dict(assets_by_type),
        'active_employees': active_employees,
        'assignments': compute_stats(records),
        'trends': assignment_trends(records, days=max(1, min(request.args.get('days', 30, type=int), 365))),
    })

@dashboard_bp.route('/activities')
@role_required('admin', 'manager')
def activities():
    limit = max(min(request.args.get('limit', 20, type=int), MAX_ACTIVITIES), 1)
    rows = AssetHistory.query.order_by(AssetHistory.timestamp.desc(), AssetHistory.id.desc()).limit(limit).all()
    return jsonify({'activities': [row.to_dict() for row in rows]})

@dashboard_bp.route('/download_report')
@login_required
def download_report():
    assets = Asset.query.order_by(Asset.id).all()

    output = io.StringIO()
    writer = csv.writer(output)

    writer.writerow(['Asset ID', 'Type', 'Name', 'Status', 'Licenses Used', 'Assigned To'])

    for asset in assets:
        holders = [a.employee.name for a in asset.assignments if a.holds_asset]
        licenses = f'{asset.used_licenses}/{asset.total_licenses}' if asset.is_software else ''
        writer.writerow([asset.id, asset.asset_type, asset.name, asset.status, licenses, '; '.join(holders)])

    output.seek(0)

    response = make_response(output.getvalue())
    response.headers["Content-Disposition"] = "attachment; filename=asset_report.csv"
    response.headers["Content-type"] = "text/csv"

    return response
