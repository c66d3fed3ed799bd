import logging
from datetime import datetime

from flask import request, jsonify, Blueprint
from flask_login import login_user, current_user, logout_user, login_required
from it_inventory.app import db
from sqlalchemy import or_
from it_inventory.app.models.user import User

logger = logging.getLogger(__name__)

users_bp = Blueprint('users', __name__)


@users_bp.route("/login", methods=['POST'])
def login():
    data = request.get_json(silent=True) or {}
    login_name = (data.get('email') or data.get('username') or '').strip()
    user = User.query.filter(or_(User.email == login_name.lower(), User.username == login_name)).first()
    if user and user.is_active and user.check_password(data.get('password') or ''):
        login_user(user, remember=bool(data.get('remember')))
        user.last_login = datetime.utcnow()
        db.session.commit()
        logger.info("User %s logged in", user.username)
        return jsonify(user.to_dict())

    logger.warning("Failed login for %r", login_name)
    return jsonify({'error': 'Login Unsuccessful. Please check email and password'}), 401


@users_bp.route("/logout", methods=['POST'])
@login_required
def logout():
    logout_user()
    return jsonify({'status': 'success'})


@users_bp.route("/me")
@login_required
def me():
    return jsonify(current_user.to_dict())
