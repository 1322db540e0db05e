#!/usr/bin/env python3
"""
Raise Lab Quotations: Application Entry Point
Creates Flask app and registers the dashboard Blueprint.
"""

import logging

from flask import Flask


def create_app(test_config=None):
    """Application factory."""
    from raiselab.core.logging_config import setup_logging
    from raiselab.core.settings import get_setting, startup_check

    if not logging.getLogger().handlers:
        setup_logging()
    log = logging.getLogger("raiselab")

    app = Flask(__name__)
    app.secret_key = get_setting("secret_key")
    if test_config:
        app.config.update(test_config)

    startup_check()

    # ── Persistent database init ──────────────────────────────────────────────
    from raiselab.core import db
    db.init_db()
    admin = db.seed_admin(get_setting("admin_email"), get_setting("admin_password"))
    if admin:
        log.info("Admin account: %s", admin["email"])

    # Register the dashboard blueprint (all routes)
    from raiselab.api.dashboard import bp
    app.register_blueprint(bp)

    # ── Security middleware (rate limiting, headers) ──────────
    from raiselab.core.security import init_security
    init_security(app)

    return app


if __name__ == "__main__":
    import os
    create_app().run(host="0.0.0.0", port=int(os.environ.get("PORT", 5000)))
