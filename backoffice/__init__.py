"""Flask application factory."""
from flask import Flask, request, jsonify
from flask_wtf.csrf import CSRFProtect, CSRFError
from werkzeug.exceptions import HTTPException
from backoffice.database import init_db
import os


def create_app(config_object='config.Config'):
    """Create and configure the Flask application."""
    app = Flask(__name__)
    app.config.from_object(config_object)

    # Initialize CSRF protection (token sent back in the X-CSRFToken header)
    CSRFProtect(app)

    @app.errorhandler(CSRFError)
    def handle_csrf_error(e):
        app.logger.warning(f"CSRF Error: {e.description}")
        return jsonify({'status': 'error', 'error': 'La sesión ha expirado. Recarga la página.'}), 400

    # Sentry error tracking in production
    if os.getenv('SENTRY_DSN') and os.getenv('FLASK_ENV') == 'production':
        import sentry_sdk
        from sentry_sdk.integrations.flask import FlaskIntegration

        sentry_sdk.init(
            dsn=os.getenv('SENTRY_DSN'),
            integrations=[FlaskIntegration()],
            traces_sample_rate=0.1,
            environment=os.getenv('FLASK_ENV', 'production'),
            release=os.getenv('GIT_COMMIT', 'unknown')
        )

    # Redis cache for reports
    from backoffice.services.cache_service import init_cache
    init_cache(app)

    # Prometheus metrics instrumentation
    from backoffice.blueprints.metrics import setup_metrics_instrumentation
    setup_metrics_instrumentation(app)

    # Production: trust X-Forwarded-* from the reverse proxy
    if os.getenv('FLASK_ENV') == 'production':
        from werkzeug.middleware.proxy_fix import ProxyFix
        app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1, x_port=1, x_prefix=0)

    # Initialize database
    init_db(app)

    # Load user and store context before each request
    from backoffice.middleware import load_user_and_store

    @app.before_request
    def before_request_handler():
        load_user_and_store()

    # Error Handlers
    from backoffice.exceptions import BackofficeError

    @app.errorhandler(BackofficeError)
    def handle_backoffice_error(error):
        """Business errors carry their own status code and payload."""
        if error.status_code >= 500:
            app.logger.error(f"BackofficeError [{error.status_code}]: {error.message}")
        else:
            app.logger.info(f"BackofficeError [{error.status_code}] {request.method} {request.path}: {error.message}")
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(HTTPException)
    def handle_http_error(error):
        return jsonify({'status': 'error', 'error': error.name, 'message': error.description}), error.code

    @app.errorhandler(Exception)
    def internal_error(error):
        app.logger.error(f"Unhandled Exception: {error}", exc_info=error)
        return jsonify({'status': 'error', 'error': 'Error interno del servidor'}), 500

    # Register blueprints
    from backoffice.blueprints.auth import auth_bp
    from backoffice.blueprints.main import main_bp
    from backoffice.blueprints.catalog import catalog_bp
    from backoffice.blueprints.sales import sales_bp
    from backoffice.blueprints.inventory import inventory_bp
    from backoffice.blueprints.store import store_bp
    from backoffice.blueprints.metrics import metrics_bp

    app.register_blueprint(auth_bp)
    app.register_blueprint(main_bp)
    app.register_blueprint(catalog_bp)
    app.register_blueprint(sales_bp)
    app.register_blueprint(inventory_bp)
    app.register_blueprint(store_bp)
    app.register_blueprint(metrics_bp)

    # Register CLI commands
    from backoffice.cli_commands import init_cli_commands
    init_cli_commands(app)

    return app
