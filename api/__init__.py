import logging
import time

from flask import Flask, g, request
from flasgger import Swagger
from flask_cors import CORS

from .config import DEV_JWT_SECRET, get_config
from .errors import register_error_handlers
from .extensions import EXTENSION_KEY
from services import Services, build_services

# Minimal Swagger config: exposes /swagger.json and UI at /apidocs
SWAGGER_TEMPLATE = {
    "swagger": "2.0.0",
    "info": {
        "title": "TreeNetra API",
        "version": "1.0.0",
        "description": "REST API for urban tree inventory: species, trees, health inspections and analytics.",
    },
    "basePath": "/",  # blueprints are mounted under /api/v1
    "schemes": ["http"],
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
            "rule_filter": lambda rule: True,
            "model_filter": lambda tag: True,
        }
    ],
    "static_url_path": "/flasgger_static",
    "swagger_ui": True,
    "specs_route": "/apidocs/",
}

API_PREFIX = "/api/v1"

request_logger = logging.getLogger("treenetra.request")


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def _register_request_logging(app: Flask) -> None:
    @app.before_request
    def start_timer():
        g.request_started = time.perf_counter()

    @app.after_request
    def log_request(response):
        started = g.get("request_started")
        elapsed_ms = (time.perf_counter() - started) * 1000 if started else 0.0
        request_logger.info("%s %s %d %.1fms", request.method, request.path, response.status_code, elapsed_ms)
        return response


def create_app(config_name: str | None = None, services: Services | None = None) -> Flask:
    """
    Application factory: creates and configures the Flask app.
    Pass `services` to run against pre-built components (tests do this to
    control the clock and capture outgoing mail).
    """
    app = Flask(__name__)

    # Load configuration (reads .env via get_config)
    app.config.from_object(get_config(config_name))
    if not (app.debug or app.testing) and app.config["JWT_SECRET"] == DEV_JWT_SECRET:
        raise RuntimeError("JWT_SECRET must be set in production")

    _configure_logging(app.config.get("LOG_LEVEL", "INFO"))

    # Cross-Origin Resource Sharing: enable for dev, configurable for prod
    CORS(app, resources={r"/*": {"origins": app.config.get("CORS_ORIGINS", "*")}})

    # Swagger UI and JSON
    Swagger(app, template=SWAGGER_TEMPLATE, config=SWAGGER_CONFIG)

    register_error_handlers(app)
    _register_request_logging(app)

    app.extensions[EXTENSION_KEY] = services or build_services(app.config)

    from .health import bp as health_bp
    from .auth import bp as auth_bp
    from .users import bp as users_bp
    from .species import bp as species_bp
    from .trees import bp as trees_bp
    from .health_records import bp as health_records_bp
    from .analytics import bp as analytics_bp

    for bp in (health_bp, auth_bp, users_bp, species_bp, trees_bp, health_records_bp, analytics_bp):
        app.register_blueprint(bp, url_prefix=API_PREFIX + (bp.url_prefix or ""))

    # Ensure the DB session is removed at the end of each request/app context
    @app.teardown_appcontext
    def remove_session(exception=None):
        app.extensions[EXTENSION_KEY].storage.close()

    @app.route("/")
    def root():
        return {
            "message": "Welcome to TreeNetra API",
            "docs": "/apidocs/",
            "health": f"{API_PREFIX}/health",
        }, 200

    @app.route(API_PREFIX)
    def api_info():
        return {
            "success": True,
            "message": "TreeNetra API v1",
            "data": {
                "version": "1.0.0",
                "endpoints": {
                    "auth": f"{API_PREFIX}/auth",
                    "users": f"{API_PREFIX}/users",
                    "species": f"{API_PREFIX}/species",
                    "trees": f"{API_PREFIX}/trees",
                    "healthRecords": f"{API_PREFIX}/health-records",
                    "analytics": f"{API_PREFIX}/analytics",
                },
            },
        }, 200

    return app
