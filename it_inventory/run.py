import logging
import os

from waitress import serve

from it_inventory.app import create_app, db

logger = logging.getLogger('it_inventory.run')

app = create_app()


def seed_admin(app):
    """Create the first admin from ADMIN_EMAIL/ADMIN_PASSWORD when no user exists."""
    from it_inventory.app.models import User

    email, password = app.config.get('ADMIN_EMAIL'), app.config.get('ADMIN_PASSWORD')
    with app.app_context():
        if not email or not password or User.query.first() is not None:
            return
        admin = User(username=email.split('@')[0], email=email, role='admin')
        admin.set_password(password)
        db.session.add(admin)
        db.session.commit()
        logger.info("Created admin account %s", email)


if __name__ == '__main__':
    seed_admin(app)
    serve(app, host=os.environ.get('HOST', '0.0.0.0'), port=int(os.environ.get('PORT', 5000)))
