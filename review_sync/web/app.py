from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from dotenv import load_dotenv
from flask import Flask, jsonify

from ..config.loader import SyncConfig, load_config, resolve_config_path
from ..logging.init import setup_logging
from ..services.registry import ReviewSyncServices
from .routes import sync_bp

logger = logging.getLogger(__name__)


def create_app(config: SyncConfig | None = None, *, flask_config: dict[str, Any] | None = None) -> Flask:
    """Build the Flask app serving the sync and merged-data endpoints.

    Without an explicit ``config`` the YAML config is loaded (``.env`` first,
    overriding existing variables).
    """
    setup_logging()
    if config is None:
        load_dotenv(dotenv_path=Path(".env"), override=True)
        config = load_config(resolve_config_path())

    app = Flask(__name__)
    if flask_config:
        app.config.update(flask_config)
    app.extensions["review_sync"] = ReviewSyncServices.from_config(config)
    app.register_blueprint(sync_bp)

    @app.errorhandler(404)
    def not_found(_error):
        return jsonify({"error": "Not found"}), 404

    logger.info(f"app ready: data_directory={config.data_directory} ttl={config.cache_ttl_seconds:g}s")
    return app
