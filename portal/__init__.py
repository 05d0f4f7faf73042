"""
Education Portal
Application factory: extensions, API blueprints, JSON error handling,
logging and CLI commands.
"""

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from datetime import datetime
import time

from dotenv import load_dotenv

from flask import Flask, jsonify, request, g
from flask_sqlalchemy import SQLAlchemy
from flask_login import LoginManager
from flask_migrate import Migrate
from flask_cors import CORS
from sqlalchemy import text
from werkzeug.exceptions import HTTPException
import click

from config.config import get_config

load_dotenv()

db = SQLAlchemy()
login_manager = LoginManager()
migrate = Migrate()


def create_app(config_name=None, clock=None):
    """
    Build a portal application

    Args:
        config_name: development, testing or production (default from FLASK_CONFIG)
        clock: Clock overriding the system clock, e.g. a FixedClock in tests

    Returns:
        Flask application
    """
    app = Flask(__name__)

    settings = get_config(config_name)
    app.config.from_object(settings)
    settings.init_app(app)

    initialize_extensions(app, clock)
    register_blueprints(app)
    register_error_handlers(app)
    configure_logging(app)
    register_cli_commands(app)
    register_request_handlers(app)

    return app


def initialize_extensions(app, clock=None):
    from portal.utils.clock import SystemClock

    db.init_app(app)
    migrate.init_app(app, db)
    login_manager.init_app(app)

    # Only the JSON API is cross-origin
    CORS(app, resources={
        r"/api/*": {
            "origins": app.config.get('CORS_ORIGINS', '*'),
            "methods": ["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
            "allow_headers": ["Content-Type", "Authorization"]
        }
    })

    # Every "now" the services need comes from here
    app.extensions['clock'] = clock or SystemClock(app.config.get('TIMEZONE', 'UTC'))


@login_manager.user_loader
def load_user(user_id):
    from portal.models.user import User
    try:
        return db.session.get(User, int(user_id))
    except (TypeError, ValueError):
        return None


@login_manager.unauthorized_handler
def unauthorized():
    """API clients get a JSON 401 instead of a login redirect"""
    from portal.utils.api_response import APIResponse
    return APIResponse.unauthorized()


def register_request_handlers(app):
    """Time each request and warn about slow ones"""

    @app.before_request
    def start_timer():
        g.request_started = time.perf_counter()

    @app.after_request
    def log_slow_request(response):
        started = getattr(g, 'request_started', None)
        if started is None:
            return response

        elapsed = time.perf_counter() - started
        if elapsed > app.config.get('SLOW_REQUEST_THRESHOLD', 1.0):
            app.logger.warning(
                f'Slow request: {request.method} {request.path} -> {response.status_code} '
                f'in {elapsed:.3f}s'
            )
        if app.debug:
            response.headers['X-Request-Duration'] = f'{elapsed:.3f}s'
        return response


def register_blueprints(app):
    from portal.routes.api.v1 import register_api_blueprints
    register_api_blueprints(app)

    @app.route('/health')
    def health_check():
        """Liveness plus a database round trip"""
        database = 'ok'
        try:
            db.session.execute(text('SELECT 1'))
        except Exception as e:
            app.logger.error(f'Health check database error: {e}')
            database = 'error'

        healthy = database == 'ok'
        return jsonify({
            'status': 'healthy' if healthy else 'unhealthy',
            'database': database,
            'version': app.config.get('APP_VERSION', '1.0.0'),
            'timestamp': datetime.utcnow().isoformat(),
        }), 200 if healthy else 503


def register_error_handlers(app):
    """Every error leaves the API as an APIResponse envelope"""
    from portal.core.errors import PortalError, ValidationError, PreconditionError
    from portal.utils.api_response import APIResponse

    @app.errorhandler(PortalError)
    def portal_error(error):
        if isinstance(error, ValidationError):
            app.logger.info(f'Validation failed on {request.path}: {error.code} {error.message}')
        elif isinstance(error, PreconditionError):
            db.session.rollback()
            app.logger.warning(f'Rejected request on {request.path}: {error.message}')
        return APIResponse.from_error(error)

    @app.errorhandler(HTTPException)
    def http_error(error):
        return APIResponse.error(
            message=error.description or error.name,
            error_code=error.name.upper().replace(' ', '_'),
            status_code=error.code
        )

    @app.errorhandler(Exception)
    def internal_error(error):
        db.session.rollback()
        app.logger.exception(f'Unhandled error on {request.method} {request.path}: {error}')
        return APIResponse.server_error()


def configure_logging(app):
    """Rotating log file plus console output outside debug and testing"""
    if app.debug or app.testing:
        return

    level = getattr(logging, str(app.config.get('LOG_LEVEL', 'INFO')).upper(), logging.INFO)
    formatter = logging.Formatter(app.config['LOG_FORMAT'])

    log_file = Path(app.config['LOG_FILE'])
    log_file.parent.mkdir(parents=True, exist_ok=True)
    file_handler = RotatingFileHandler(log_file, maxBytes=10 * 1024 * 1024, backupCount=10)
    file_handler.setFormatter(formatter)
    file_handler.setLevel(level)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    console_handler.setLevel(level)

    # app.logger is the 'portal' logger, so portal.* module loggers propagate here
    app.logger.addHandler(file_handler)
    app.logger.addHandler(console_handler)
    app.logger.setLevel(level)

    app.logger.info(f"{app.config.get('APP_NAME', 'Education Portal')} startup")


def register_cli_commands(app):

    @app.cli.command('init-db')
    def init_db():
        """Create all database tables"""
        import portal.models  # noqa: F401 - registers models on the metadata
        db.create_all()
        click.echo('Database tables created')

    @app.cli.command('delete-schedule-group')
    @click.argument('group_id')
    def delete_schedule_group(group_id):
        """Delete every session of a recurrence group"""
        from portal.models.schedule import Schedule

        try:
            deleted = Schedule.delete_by_group_id(group_id)
            db.session.commit()
        except Exception as e:
            db.session.rollback()
            click.echo(f'Error deleting group {group_id}: {e}', err=True)
            raise click.Abort()

        if not deleted:
            click.echo(f'No sessions found for group {group_id}')
            return
        click.echo(f'Deleted {len(deleted)} sessions from group {group_id}')
