import logging
import os

from flask import Flask, jsonify
from flask_sqlalchemy import SQLAlchemy
from flask_login import LoginManager
from flask_bcrypt import Bcrypt
from flask_mail import Mail
from werkzeug.exceptions import HTTPException

from it_inventory.config import Config, BASE_DIR
from it_inventory.app.exceptions import InventoryError
from it_inventory.app.logging_config import setup_logging

db = SQLAlchemy()
bcrypt = Bcrypt()
login_manager = LoginManager()
mail = Mail()

logger = logging.getLogger(__name__)


def register_error_handlers(app):
    @app.errorhandler(InventoryError)
    def handle_inventory_error(error):
        db.session.rollback()
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(HTTPException)
    def handle_http_error(error):
        return jsonify({'error': error.description}), error.code

    @login_manager.unauthorized_handler
    def unauthorized():
        return jsonify({'error': 'Authentication required'}), 401


def create_app(config_class=Config):
    app = Flask(__name__)
    app.config.from_object(config_class)

    setup_logging(app)

    if app.config['SQLALCHEMY_DATABASE_URI'].startswith(f'sqlite:///{BASE_DIR}'):
        os.makedirs(BASE_DIR / 'data', exist_ok=True)

    db.init_app(app)
    bcrypt.init_app(app)
    login_manager.init_app(app)
    mail.init_app(app)

    from it_inventory.app.models.user import User

    @login_manager.user_loader
    def load_user(user_id):
        return db.session.get(User, int(user_id))

    register_error_handlers(app)

    with app.app_context():
        @app.route('/health')
        def health():
            return jsonify({'status': 'OK', 'message': 'IT Inventory API Server is running'})

        # Import blueprints inside context
        from it_inventory.app.routes import assets_bp, employees_bp, assignments_bp
        from it_inventory.app.routes.users import users_bp
        from it_inventory.app.routes.dashboard import dashboard_bp

        # Register blueprints
        app.register_blueprint(assets_bp)
        app.register_blueprint(employees_bp)
        app.register_blueprint(assignments_bp)
        app.register_blueprint(users_bp)
        app.register_blueprint(dashboard_bp, url_prefix='/dashboard')

        # Create all database tables
        db.create_all()

    logger.info("IT inventory app created (%s)", app.config['ENVIRONMENT'])
    return app
