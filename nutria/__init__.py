import time

from flask import Flask, g, request
from flask_migrate import Migrate
from flask_sqlalchemy import SQLAlchemy

from nutria.config import ConfigurationError, validate_required_settings

db = SQLAlchemy()
migrate = Migrate()


def create_app(test_config: dict | None = None) -> Flask:
    app = Flask(__name__)
    app.config.from_object("nutria.config.Config")
    if test_config:
        app.config.from_mapping(test_config)

    validate_required_settings(app.config)
    app.logger.setLevel(app.config.get("LOG_LEVEL") or "INFO")

    db.init_app(app)
    migrate.init_app(app, db)

    # Ensure model metadata is registered for migrations.
    from nutria import models  # noqa: F401
    from nutria.auth import auth_bp, build_auth_strategy
    from nutria.errors import register_error_handlers
    from nutria.routes import bp

    try:
        app.extensions["nutria_auth"] = build_auth_strategy(app.config)
    except ValueError as exc:
        raise ConfigurationError(str(exc)) from exc
    if app.extensions["nutria_auth"].name == "dev":
        app.logger.warning("AUTH_STRATEGY=dev: every request runs as %s", app.config["DEV_USER_EMAIL"])

    app.register_blueprint(auth_bp)
    app.register_blueprint(bp)
    register_error_handlers(app)

    @app.before_request
    def start_timer():
        g.request_started_at = time.perf_counter()

    @app.after_request
    def log_api_request(response):
        if request.path.startswith("/api"):
            started = g.get("request_started_at")
            elapsed_ms = int((time.perf_counter() - started) * 1000) if started else 0
            app.logger.info("%s %s %s in %sms", request.method, request.path, response.status_code, elapsed_ms)
        return response

    @app.after_request
    def apply_security_headers(response):
        response.headers.setdefault("X-Content-Type-Options", "nosniff")
        response.headers.setdefault("X-Frame-Options", "DENY")
        response.headers.setdefault("Referrer-Policy", "strict-origin-when-cross-origin")
        if request.path.startswith("/api"):
            response.headers.setdefault("Cache-Control", "no-store")
        if app.config.get("SESSION_COOKIE_SECURE"):
            response.headers.setdefault(
                "Strict-Transport-Security", "max-age=31536000; includeSubDomains"
            )
        return response

    return app
