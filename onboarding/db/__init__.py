import logging
from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()

logger = logging.getLogger(__name__)

def init_db(app):
    """Initialize the database with the app"""
    db.init_app(app)

    from onboarding.db.models import Organisation, User, Invitation

    # Create tables if they don't exist
    with app.app_context():
        db.create_all()

    logger.debug("Database ready at %s", app.config.get('SQLALCHEMY_DATABASE_URI'))
