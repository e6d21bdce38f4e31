"""
Checkmate application factory.

Wires configuration, logging, the database, Flask-Login sessions, rate limiting,
the JSON blueprints and the error handlers. `flask --app app run` serves it.
"""

import logging

import click
from dotenv import load_dotenv
from flask import Flask, jsonify
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_login import LoginManager
from werkzeug.exceptions import HTTPException

from models import db, User
from services.errors import CheckmateError
from utils.startup_validation import StartupValidator, load_config

logger = logging.getLogger(__name__)

login_manager = LoginManager()
limiter = Limiter(key_func=get_remote_address)


@login_manager.user_loader
def load_user(user_id):
    try:
        return db.session.get(User, int(user_id))
    except (TypeError, ValueError):
        return None


@login_manager.unauthorized_handler
def unauthorized():
    return jsonify({
        'success': False,
        'message': 'Authentication required'
    }), 401


def configure_logging(level_name: str):
    level = getattr(logging, level_name, logging.INFO)
    logging.basicConfig(
        level=level,
        format='%(asctime)s %(levelname)s [%(name)s] %(message)s'
    )
    logging.getLogger().setLevel(level)


def register_error_handlers(app: Flask):

    @app.errorhandler(CheckmateError)
    def handle_checkmate_error(e: CheckmateError):
        # Services may raise with pending changes in the session.
        db.session.rollback()
        if e.status_code >= 500:
            logger.error(f"[{e.category.value.upper()}] {e.message} {e.context}")
        else:
            logger.info(f"[{e.category.value.upper()}] {e.message}")
        return jsonify(e.to_dict()), e.status_code

    @app.errorhandler(HTTPException)
    def handle_http_error(e: HTTPException):
        return jsonify({
            'success': False,
            'message': e.description if e.code != 429 else 'Too many attempts. Please wait a moment and try again.',
        }), e.code

    @app.errorhandler(Exception)
    def handle_unexpected_error(e: Exception):
        db.session.rollback()
        logger.error(f"Unhandled error: {e}", exc_info=True)
        return jsonify({
            'success': False,
            'message': 'An unexpected error occurred. Please try again.'
        }), 500


def register_blueprints(app: Flask):
    from routes.auth import auth_bp
    from routes.health import health_bp
    from routes.projects import projects_bp
    from routes.teams import teams_bp
    from routes.users import users_bp, legacy_users_bp

    app.register_blueprint(auth_bp)
    app.register_blueprint(health_bp)
    app.register_blueprint(projects_bp)
    app.register_blueprint(teams_bp)
    app.register_blueprint(users_bp)
    app.register_blueprint(legacy_users_bp)


def register_commands(app: Flask):

    @app.cli.command('create-manager')
    @click.argument('email')
    @click.argument('password')
    @click.option('--first-name', default='', help='First name for a new account')
    @click.option('--last-name', default='', help='Last name for a new account')
    def create_manager_command(email, password, first_name, last_name):
        """Create a manager account, or promote an existing account to manager."""
        from services.user_service import create_or_promote_manager

        try:
            user, created = create_or_promote_manager(email, password, first_name, last_name)
        except CheckmateError as e:
            raise click.ClickException(e.message)

        if created:
            click.echo(f"Created manager account {user.email}")
        else:
            click.echo(f"Promoted {user.email} to manager")


def create_app(test_config=None) -> Flask:
    load_dotenv()

    app = Flask(__name__)
    app.config.from_mapping(load_config(test_config))
    configure_logging(app.config['LOG_LEVEL'])

    db.init_app(app)
    login_manager.init_app(app)
    limiter.init_app(app)

    register_blueprints(app)
    register_error_handlers(app)
    register_commands(app)

    with app.app_context():
        db.create_all()
        app.extensions['startup_report'] = StartupValidator(app.config).run(db)

    logger.info(f"Checkmate started ({app.config['ENVIRONMENT']})")
    return app
