# app.py
"""
Flask application factory for the Security Guard service

Receives security alerts and CSP violation reports from client-side
applications and emails a formatted report to the owning team through
SendGrid. Alerts are routed by an app registry built from APP_<NAME>_EMAIL
environment variables.
"""

import os
import logging
import logging.handlers
from typing import Mapping, Optional

from flask import Flask, request
from flask_cors import CORS
from werkzeug.exceptions import HTTPException
from werkzeug.middleware.proxy_fix import ProxyFix

from api.alerts import alerts_bp
from config.settings import GuardConfig, config_from_environ, get_config
from core.alert_models import MalformedPayloadError
from core.app_registry import AppRegistry
from middleware.security import cors_headers, error_response, guard_request, security_headers
from services.email_transport import SendGridClient


def setup_logging(app: Flask) -> None:
    """
    Configure logging for the service

    Logs go to stderr in the journald-friendly format; LOG_FILE adds a
    rotating file with the detailed format.
    """
    # Remove default Flask handlers to avoid duplicate logs
    app.logger.handlers.clear()

    journal_formatter = logging.Formatter(
        fmt='%(name)s[%(process)d]: %(levelname)s %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    detailed_formatter = logging.Formatter(
        fmt='%(asctime)s %(name)-20s %(levelname)-8s %(funcName)-15s:%(lineno)-4d %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    log_level = getattr(logging, str(app.config.get('LOG_LEVEL', 'INFO')).upper(), logging.INFO)

    handlers = []

    stream_handler = logging.StreamHandler()
    stream_handler.setFormatter(journal_formatter)
    stream_handler.setLevel(log_level)
    handlers.append(stream_handler)

    log_file = app.config.get('LOG_FILE')
    if log_file:
        file_handler = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=10*1024*1024,  # 10MB
            backupCount=5
        )
        file_handler.setFormatter(detailed_formatter)
        file_handler.setLevel(log_level)
        handlers.append(file_handler)

    app.logger.setLevel(log_level)

    # Under test the root logger belongs to the test runner's log capture
    if app.testing:
        return

    # Module loggers (api.*, core.*, services.*) propagate to the root logger
    logging.basicConfig(level=log_level, handlers=handlers, force=True)

    # Suppress verbose third-party logs in production
    if not app.debug:
        logging.getLogger('werkzeug').setLevel(logging.WARNING)
        logging.getLogger('urllib3').setLevel(logging.WARNING)


def configure_error_handlers(app: Flask) -> None:
    """JSON error bodies for every failure the handlers don't answer themselves"""

    @app.errorhandler(404)
    def not_found(error):
        return error_response('Not found', 404)

    @app.errorhandler(405)
    def method_not_allowed(error):
        return error_response('Method not allowed', 405)

    @app.errorhandler(413)
    def payload_too_large(error):
        app.logger.warning(f"Payload too large from {request.remote_addr}")
        return error_response('Payload too large', 413)

    @app.errorhandler(MalformedPayloadError)
    def malformed_payload(error):
        app.logger.error(f"Malformed request body on {request.path}: {error}")
        return error_response('Internal error', 500)

    @app.errorhandler(Exception)
    def handle_exception(e):
        """Handle unexpected exceptions"""
        if isinstance(e, HTTPException):
            return error_response(e.description or e.name, e.code or 500)

        app.logger.error(f"Unhandled exception: {e}", exc_info=True)
        return error_response('Internal error', 500)


def configure_request_middleware(app: Flask) -> None:
    """Method and size guards before routing, CORS and security headers after"""
    app.before_request(guard_request)
    app.after_request(cors_headers)
    app.after_request(security_headers)


def configure_cors(app: Flask) -> None:
    # Registered after the header middleware so flask-cors runs first on the
    # response and the middleware only fills in what it left out
    CORS(app,
         origins=app.config['CORS_ORIGINS'],
         methods=app.config['CORS_METHODS'],
         allow_headers=app.config['CORS_ALLOW_HEADERS'],
         send_wildcard=True)


def create_app(config_name: Optional[str] = None,
               environ: Optional[Mapping[str, str]] = None) -> Flask:
    """
    Flask application factory

    Args:
        config_name: Configuration environment ('development', 'testing', 'production')
        environ: Environment mapping to read settings and the app registry
            from; defaults to os.environ

    Returns:
        Configured Flask application instance
    """
    environ = os.environ if environ is None else environ

    app = Flask(__name__)

    config_name = config_name or environ.get('FLASK_ENV', 'production')
    config_class = get_config(config_name)
    app.config.from_object(config_class)
    app.config.update(config_from_environ(environ))
    app.config['MAX_CONTENT_LENGTH'] = app.config['MAX_REQUEST_BODY_SIZE']

    # Configure proxy handling for production deployment behind a reverse proxy
    if config_class is GuardConfig:
        app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1)

    setup_logging(app)
    app.logger.info(f"Starting Security Guard in {config_name} mode")

    # Read-only for the life of the process
    app.app_registry = AppRegistry.from_environ(environ)
    app.email_client = SendGridClient.from_config(app.config)

    if not app.config.get('SENDGRID_API_KEY'):
        app.logger.warning("SENDGRID_API_KEY is not set; every send will fail")

    app.register_blueprint(alerts_bp)

    configure_error_handlers(app)
    configure_request_middleware(app)
    configure_cors(app)

    app.logger.info("Flask application factory completed successfully")
    return app


if __name__ == '__main__':
    # Development server
    app = create_app('development')
    app.run(
        host=os.environ.get('HOST', '0.0.0.0'),
        port=int(os.environ.get('PORT', 8787)),
        debug=True
    )
