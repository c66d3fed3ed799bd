# app/routes/assets.py
import logging

from flask import request, jsonify
from flask_login import login_required, current_user
from it_inventory.app.models import Asset, AssetStatus, Assignment
from it_inventory.app.pipeline.constants import normalize_asset_type
from it_inventory.app.pipeline.records import hydrate_all, parse_date
from it_inventory.app import db
from sqlalchemy import or_
from it_inventory.app.routes import assets_bp as bp, role_required, own_employee_id

logger = logging.getLogger(__name__)

@bp.route('/')
@login_required
def list_assets():
    query = request.args.get('q', '').strip()
    asset_type = request.args.get('asset_type', '')
    status = request.args.get('status', '')

    if current_user.has_role('admin', 'manager'):
        assets_query = Asset.query
    else:
        assets_query = Asset.query.join(Assignment).filter(Assignment.employee_id == own_employee_id()).distinct()

    if query:
        pattern = f'%{query}%'
        assets_query = assets_query.filter(or_(
            Asset.id.ilike(pattern), Asset.name.ilike(pattern),
            Asset.manufacturer.ilike(pattern), Asset.model.ilike(pattern)))

    if asset_type:
        assets_query = assets_query.filter_by(asset_type=normalize_asset_type(asset_type) or asset_type)

    if status:
        assets_query = assets_query.filter_by(status=status.strip().lower())

    assets = assets_query.order_by(Asset.id).all()
    return jsonify({
        'assets': [asset.to_dict() for asset in assets],
        'asset_statuses': [s.value for s in AssetStatus],
    })

@bp.route('/', methods=['POST'])
@role_required('admin', 'manager')
def add_asset():
    data = request.get_json(silent=True) or {}
    try:
        asset = Asset(
            asset_type=data.get('asset_type'),
            name=data.get('name'),
            id=data.get('id'),
            status=data.get('status'),
            kind=data.get('kind'),
            manufacturer=data.get('manufacturer'),
            model=data.get('model'),
            serial_number=data.get('serial_number'),
            version=data.get('version'),
            total_licenses=data.get('total_licenses'),
            purchase_date=parse_date(data.get('purchase_date')),
            details=data.get('details'),
        )
        if db.session.get(Asset, asset.id) is not None:
            raise ValueError(f"Asset {asset.id} already exists")
        db.session.add(asset)
        asset.log_event('Asset Created', f"Asset {asset.id} created.", user_id=current_user.id)
        db.session.commit()
    except ValueError as e:
        db.session.rollback()
        return jsonify({'error': str(e)}), 400

    logger.info("Asset %s created by %s", asset.id, current_user.username)
    return jsonify(asset.to_dict()), 201

@bp.route('/<asset_id>')
@login_required
def view_asset(asset_id):
    asset = Asset.query.filter(Asset.id.ilike(asset_id)).first_or_404()

    if not current_user.has_role('admin', 'manager'):
        employee_id = own_employee_id()
        if not any(a.employee_id == employee_id for a in asset.assignments):
            return jsonify({'error': 'Unauthorized'}), 403

    payload = asset.to_dict()
    payload['assignments'] = hydrate_all(asset.assignments)
    return jsonify(payload)
