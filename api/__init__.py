from flask import Flask
from flasgger import Swagger
from flask_cors import CORS
import logging

from .config import get_config, check_secrets
from .errors import register_error_handlers
from models import storage  # DBStorage singleton (scoped_session)
from utils.sessions import RefreshRotationManager, SessionManager
from utils.tokens import TokenIssuer, TokenSettings, TokenVerifier
from utils.uploader import LocalBlobUploader

# Minimal Swagger config: exposes /swagger.json and UI at /apidocs
SWAGGER_TEMPLATE = {
    "swagger": "2.0.0",
    "info": {
        "title": "Channel Accounts API",
        "version": "1.0.0",
        "description": "User accounts for a video-sharing app: registration, login, token refresh and profiles.",
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


def create_app(config_name: str | None = None, overrides: dict | None = None) -> Flask:
    """
    Application factory: creates and configures the Flask app.
    Token settings are built once here and handed to the issuer/verifier;
    the session manager is exposed as app.extensions["session_manager"].
    """
    app = Flask(__name__)

    # Load configuration (reads .env via get_config)
    app.config.from_object(get_config(config_name))
    if overrides:
        app.config.update(overrides)
    check_secrets(app.config)

    logging.basicConfig(
        level=app.config.get("LOG_LEVEL", "INFO"),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    # Credentials (cookies) are part of the token transport
    CORS(app, resources={r"/*": {"origins": app.config.get("CORS_ORIGINS", "*")}}, supports_credentials=True)

    # Swagger UI and JSON
    Swagger(app, template=SWAGGER_TEMPLATE, config=SWAGGER_CONFIG)

    # Register global error handlers that return the uniform error envelope
    register_error_handlers(app)

    settings = TokenSettings.from_config(app.config)
    verifier = TokenVerifier(settings)
    rotation = RefreshRotationManager(storage, TokenIssuer(settings), verifier)
    app.extensions["token_verifier"] = verifier
    app.extensions["session_manager"] = SessionManager(
        storage,
        rotation,
        uploader=LocalBlobUploader(app.config["MEDIA_ROOT"], app.config["MEDIA_BASE_URL"]),
        revoke_on_password_change=app.config["REVOKE_SESSIONS_ON_PASSWORD_CHANGE"],
    )

    from .health import bp as health_bp
    from .auth import bp as auth_bp
    from .users import bp as users_bp

    app.register_blueprint(health_bp, url_prefix="/api/v1")
    app.register_blueprint(auth_bp, url_prefix="/api/v1/users")
    app.register_blueprint(users_bp, url_prefix="/api/v1/users")

    # Ensure the DB session is removed at the end of each request/app context
    @app.teardown_appcontext
    def remove_session(exception=None):
        # This calls scoped_session.remove(), preventing connection leaks
        storage.close()

    @app.route("/")
    def root():
        return {
            "message": "Welcome to Channel Accounts API",
            "docs": "/apidocs/",
            "health": "/api/v1/health",
        }, 200

    return app
