import logging
import time
import uuid

from flask import Flask, g, request
from flasgger import Swagger
from flask_cors import CORS

from .config import get_config
from .errors import BadRequest, register_error_handlers
from models import storage
from models.session_store import SessionStore
from models.user import ROLE_VALUES
from models.user_store import UserStore
from utils.deadline import Deadline
from utils.logger import CORRELATION_HEADER, setup_logging
from utils.security import Signer

logger = logging.getLogger(__name__)

# Minimal Swagger config: exposes /swagger.json and UI at /apidocs
SWAGGER_TEMPLATE = {
    "swagger": "2.0",
    "info": {
        "title": "LuxSUV Identity API",
        "version": "1.0.0",
        "description": "Login, refresh-token rotation and logout for riders, drivers and admins.",
    },
    "basePath": "/",
    "schemes": ["http", "https"],
    "securityDefinitions": {
        "Bearer": {
            "type": "apiKey",
            "name": "Authorization",
            "in": "header",
            "description": "Enter the token with the `Bearer ` prefix, e.g. \"Bearer abcde12345\"."
        }
    }
}

SWAGGER_CONFIG = {
    "headers": [],
    "specs": [
        {
            "endpoint": "apispec_1",
            "route": "/swagger.json",
            "rule_filter": lambda rule: True,   # include all endpoints
            "model_filter": lambda tag: True,   # include all models
        }
    ],
    "static_url_path": "/flasgger_static",
    "swagger_ui": True,
    "specs_route": "/apidocs/",
}


def _register_request_hooks(app: Flask) -> None:
    @app.before_request
    def start_request():
        g.correlation_id = (request.headers.get(CORRELATION_HEADER) or "").strip()[:128] or str(uuid.uuid4())
        g.started_at = time.perf_counter()
        g.deadline = Deadline(app.config["REQUEST_TIMEOUT_SECONDS"])
        limit = app.config.get("MAX_CONTENT_LENGTH")
        if limit and (request.content_length or 0) > limit:
            raise BadRequest("Request body too large")

    @app.after_request
    def finish_request(response):
        response.headers[CORRELATION_HEADER] = g.get("correlation_id", "")
        started = g.get("started_at")
        duration_ms = round((time.perf_counter() - started) * 1000, 2) if started else None
        logger.info(
            "%s %s -> %s",
            request.method,
            request.path,
            response.status_code,
            extra={
                "method": request.method,
                "path": request.path,
                "status_code": response.status_code,
                "duration_ms": duration_ms,
            },
        )
        return response


def create_app(config_name: str | None = None, overrides: dict | None = None) -> Flask:
    """
    Application factory: creates and configures the Flask app.
    Raises SecretsInvalid when the signing secrets are unusable, so a
    misconfigured process never starts serving.
    """
    app = Flask(__name__)

    # Load configuration (reads .env via get_config)
    app.config.from_object(get_config(config_name))
    if overrides:
        app.config.update(overrides)

    if not app.config["TESTING"]:
        setup_logging(app.config["LOG_LEVEL"], json_output=app.config["APP_ENV"] == "production")

    # Fatal on bad secrets, before anything else is wired
    signer = Signer.from_config(app.config, roles=ROLE_VALUES)

    storage.configure(app.config["DATABASE_URL"], echo=app.config.get("SQL_ECHO", False))
    storage.reload()

    # Deferred to avoid a cycle: the service imports the error taxonomy from this package
    from .auth_service import AuthService

    auth_service = AuthService(
        signer=signer,
        sessions=SessionStore(storage),
        users=UserStore(storage),
        refresh_ttl=app.config["REFRESH_TOKEN_TTL"],
        password_min_length=app.config["PASSWORD_MIN_LENGTH"],
        db=storage,
    )
    app.extensions["signer"] = signer
    app.extensions["auth_service"] = auth_service

    # The refresh cookie only crosses origins that are listed explicitly;
    # a wildcard never gets credentials
    origins = app.config.get("CORS_ORIGINS") or []
    CORS(
        app,
        resources={r"/api/*": {"origins": origins}},
        supports_credentials="*" not in origins,
    )

    # Swagger UI and JSON
    Swagger(app, template=SWAGGER_TEMPLATE, config=SWAGGER_CONFIG)

    # Register global error handlers that return the uniform error envelope
    register_error_handlers(app)
    _register_request_hooks(app)

    from .health import bp as health_bp
    from .auth import bp as auth_bp
    from .users import admin_bp, driver_bp

    app.register_blueprint(health_bp)
    app.register_blueprint(auth_bp, url_prefix="/api/v1/auth")
    app.register_blueprint(admin_bp, url_prefix="/api/v1/admin")
    app.register_blueprint(driver_bp, url_prefix="/api/v1/driver")

    # Ensure the DB session is removed at the end of each request/app context
    @app.teardown_appcontext
    def remove_session(exception=None):
        storage.close()

    with app.app_context():
        auth_service.bootstrap_admin(
            app.config.get("BOOTSTRAP_ADMIN_EMAIL", ""),
            app.config.get("BOOTSTRAP_ADMIN_PASSWORD", ""),
        )

    @app.route("/")
    def root():
        return {
            "message": "LuxSUV identity API",
            "docs": "/apidocs/",
            "health": "/healthz",
        }, 200

    return app
