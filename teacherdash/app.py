#!/usr/bin/env python3
"""
TeacherDash - Teacher Productivity Dashboard API
================================================
Run: python3 -m teacherdash.app
Then point the dashboard client at http://localhost:3000
"""

import logging

from flask import Flask, request, jsonify
from flask_cors import CORS
from werkzeug.exceptions import HTTPException

from .config import config, HOST, PORT, DEBUG
from .errors import TeacherDashError
from .db import init_db
from .auth import init_auth
from .routes import register_routes

logger = logging.getLogger(__name__)


def configure_logging(level=None):
    logging.basicConfig(
        level=getattr(logging, str(level or config.log_level).upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def register_error_handlers(app):
    """Every error leaving an /api/ route is a JSON ``{"error": ...}`` body."""

    @app.errorhandler(TeacherDashError)
    def handle_teacherdash_error(e):
        if e.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.path, e.message)
        return jsonify({"error": e.message}), e.status_code

    @app.errorhandler(HTTPException)
    def handle_http_error(e):
        return jsonify({"error": e.description or e.name}), e.code

    @app.errorhandler(Exception)
    def handle_unexpected(e):
        logger.exception("Unhandled error on %s %s", request.method, request.path)
        return jsonify({"error": str(e) or "Unknown error"}), 500


def create_app(supabase_client=None, testing=False):
    """Application factory.

    ``supabase_client`` is stored on the app; when omitted one is created
    from SUPABASE_URL / SUPABASE_SERVICE_KEY on first use.
    """
    configure_logging()
    app = Flask(__name__)
    app.config['TESTING'] = testing
    app.config.update({key.upper(): value for key, value in config.to_dict().items()})

    CORS(app)
    init_db(app, supabase_client)

    # ══════════════════════════════════════════════════════════════
    # AUTHENTICATION
    # ══════════════════════════════════════════════════════════════
    init_auth(app)

    register_routes(app)
    register_error_handlers(app)

    @app.route('/api/health')
    def health():
        return jsonify({"status": "ok"})

    return app


def main():
    app = create_app()
    logger.info("Starting TeacherDash on %s:%s", HOST, PORT)
    app.run(host=HOST, port=PORT, debug=DEBUG)


if __name__ == '__main__':
    main()
