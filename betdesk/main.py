"""
Flask application factory for the betting API
"""

import logging
from datetime import date, datetime, timedelta
from decimal import Decimal
from uuid import UUID

from flask import Flask, request, jsonify, g
from flask.json.provider import DefaultJSONProvider
from flask_cors import CORS
from pydantic import ValidationError
from werkzeug.exceptions import HTTPException
from werkzeug.middleware.proxy_fix import ProxyFix

from betdesk.settings import settings
from betdesk.errors import BetDeskError
from betdesk.models.betting_models import db
from betdesk.utils.logging_config import setup_structured_logging, get_correlation_id
from betdesk.utils.metrics import record_request
from betdesk.utils.rate_limiter import reset_rate_limiter

logger = logging.getLogger(__name__)


class CustomJSONProvider(DefaultJSONProvider):
    def default(self, obj):
        if isinstance(obj, (datetime, date)):
            return obj.isoformat()
        if isinstance(obj, Decimal):
            return float(obj)
        if isinstance(obj, UUID):
            return str(obj)
        return super().default(obj)


def _validation_message(exc: ValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request data"
    first = errors[0]
    field = '.'.join(str(part) for part in first.get('loc', ()))
    message = first.get('msg', 'Invalid value')
    return f"{field}: {message}" if field else message


def register_error_handlers(app):
    @app.errorhandler(BetDeskError)
    def handle_betdesk_error(exc):
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.path} failed: {exc.message}")
        return jsonify(exc.to_dict()), exc.status_code

    @app.errorhandler(ValidationError)
    def handle_validation_error(exc):
        return jsonify({'success': False, 'error': _validation_message(exc)}), 400

    @app.errorhandler(HTTPException)
    def handle_http_error(exc):
        if request.path.startswith('/api'):
            return jsonify({'success': False, 'error': exc.description or exc.name}), exc.code
        return exc

    @app.errorhandler(Exception)
    def handle_unexpected_error(exc):
        db.session.rollback()
        logger.exception(f"Unhandled error on {request.method} {request.path}")
        return jsonify({'success': False, 'error': 'Internal server error'}), 500


def register_blueprints(app):
    from betdesk.routes.auth import auth_bp
    from betdesk.routes.users import users_bp
    from betdesk.routes.games import games_bp
    from betdesk.routes.satamatka import satamatka_bp
    from betdesk.routes.team_matches import team_matches_bp
    from betdesk.routes.odds import odds_bp
    from betdesk.routes.wallet import wallet_bp
    from betdesk.routes.risk import risk_bp
    from betdesk.routes.system_settings import settings_bp
    from betdesk.routes.health import health_bp

    for blueprint in (auth_bp, users_bp, games_bp, satamatka_bp, team_matches_bp,
                      odds_bp, wallet_bp, risk_bp, settings_bp, health_bp):
        app.register_blueprint(blueprint)
    logger.info("Registered API blueprints")


def create_app(overrides: dict = None) -> Flask:
    """Build the app; overrides are applied on top of the environment settings"""
    setup_structured_logging(settings.is_production, settings.LOG_LEVEL, settings.LOG_FILE)

    app = Flask(__name__)
    app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1, x_prefix=1)

    app.config.update(settings.to_flask_config())
    if overrides:
        app.config.update(overrides)
    app.config['PERMANENT_SESSION_LIFETIME'] = timedelta(days=app.config.get('SESSION_LIFETIME_DAYS', 1))
    app.config['SESSION_COOKIE_HTTPONLY'] = True
    app.config['SESSION_COOKIE_SAMESITE'] = 'Lax'
    app.config['SESSION_COOKIE_SECURE'] = bool(app.config.get('IS_PRODUCTION'))

    app.json = CustomJSONProvider(app)
    app.json.ensure_ascii = False

    CORS(app,
         origins=settings.CORS_ORIGINS,
         supports_credentials=True,
         allow_headers=["Content-Type", "Authorization", "X-Correlation-ID"],
         methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"])

    db.init_app(app)

    @app.before_request
    def assign_correlation_id():
        get_correlation_id()

    @app.after_request
    def track_request(response):
        endpoint = request.url_rule.rule if request.url_rule else 'unmatched'
        record_request(request.method, endpoint, response.status_code)
        if hasattr(g, 'correlation_id'):
            response.headers['X-Correlation-ID'] = g.correlation_id
        return response

    register_error_handlers(app)
    register_blueprints(app)

    from betdesk.cli import register_cli
    register_cli(app)

    with app.app_context():
        db.create_all()
        logger.info("Database tables ensured")

    reset_rate_limiter()
    return app
