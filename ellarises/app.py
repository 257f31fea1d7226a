"""
Defines the Flask application, 'app', and wires in its extensions.

The view modules register their routes on import, at the bottom of this file.
"""
import logging

from flask import Flask, render_template
from flask_login import current_user
from flask_wtf.csrf import CSRFProtect
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from ellarises.auth import login_manager
from ellarises.models import db, User, ROLE_MANAGER, seed_lookups
from ellarises.storage import StorageError

logger = logging.getLogger(__name__)

app = Flask(__name__)
app.config.from_object('ellarises.config')

db.init_app(app)
login_manager.init_app(app)
csrf = CSRFProtect(app)


@app.context_processor
def inject_viewer():
    # Read-only copy of the session identity for every template
    return {
        'is_logged_in': current_user.is_authenticated,
        'username': current_user.username,
        'role': current_user.role,
        'participant_id': current_user.participant_id,
        'profile_picture_url': current_user.profile_picture_url,
        'is_manager': current_user.is_manager,
    }


def _error_page(message, status):
    return render_template('error.html', message=message, status=status), status


@app.errorhandler(400)
def bad_request(error):
    return _error_page(error.description or 'Bad request.', 400)


@app.errorhandler(403)
def forbidden(error):
    return _error_page('Access Denied: Managers only.', 403)


@app.errorhandler(404)
def not_found(error):
    return _error_page('The requested record was not found.', 404)


@app.errorhandler(413)
def too_large(error):
    return _error_page('The uploaded file is too large.', 413)


@app.errorhandler(IntegrityError)
def integrity_error(error):
    db.session.rollback()
    app.logger.exception('Integrity violation')
    return _error_page('The record could not be saved or deleted. It may still be linked to other records.', 500)


@app.errorhandler(SQLAlchemyError)
def database_error(error):
    db.session.rollback()
    app.logger.exception('Database error')
    return _error_page('Something went wrong while talking to the database.', 500)


@app.errorhandler(StorageError)
def storage_error(error):
    app.logger.error('Storage error: %s', error)
    return _error_page('The file could not be uploaded.', 500)


def bootstrap():
    """Create tables and lookup rows, plus the first manager when one is configured."""
    db.create_all()
    seed_lookups()
    username = app.config.get('INITIAL_MANAGER_USERNAME')
    password = app.config.get('INITIAL_MANAGER_PASSWORD')
    if username and password and not User.query.filter_by(username=username).first():
        manager = User(username=username, role=ROLE_MANAGER)
        manager.set_password(password)
        db.session.add(manager)
        db.session.commit()
        logger.info('Created initial manager account %s', username)


# Registers the routes
from ellarises.views import main, participants, donations, surveys, events, milestones, users, pictures  # noqa: E402,F401

if app.config['AUTO_CREATE_TABLES']:
    with app.app_context():
        bootstrap()
