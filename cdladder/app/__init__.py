"""Application factory and app-wide configuration."""

import logging
from typing import Any, Mapping, Optional

from flask import Flask
from flask_cors import CORS

from cdladder.app.api.routes import api_bp
from cdladder.app.config import Config

LOG_FORMAT = "%(asctime)s - [%(levelname)s] - %(name)s - %(message)s"


def create_app(config_overrides: Optional[Mapping[str, Any]] = None) -> Flask:
    """Build the Flask app instance."""
    app = Flask(__name__)
    app.config.from_object(Config)
    if config_overrides:
        app.config.update(config_overrides)

    # no-op if the host process already configured logging
    logging.basicConfig(level=app.config["LOG_LEVEL"], format=LOG_FORMAT)

    CORS(
        app,
        resources={r"/api/*": {"origins": app.config["CORS_ORIGINS"]}},
        supports_credentials=True,
    )

    app.register_blueprint(api_bp, url_prefix="/api")
    return app
