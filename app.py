#!/usr/bin/env python3
"""
Supplier Portal: Application Entry Point
Creates Flask app, wires the NGauge gateway and board registry, registers
the dashboard Blueprint.
"""

import os
import logging

import requests
from flask import Flask

log = logging.getLogger("portal")


def create_app(gateway=None, testing=False):
    """Application factory.

    Args:
        gateway: callable(token) → NGauge client. Defaults to NGaugeClient
                 sharing one requests.Session.
        testing: skip logging setup and startup checks noise.
    """
    from supplier_portal.core.secrets import get_key, startup_check
    from supplier_portal.core.board import BoardRegistry
    from supplier_portal.integrations.ngauge import NGaugeClient

    if not testing:
        from logging_config import setup_logging
        setup_logging()

    app = Flask(__name__)
    app.secret_key = get_key("secret_key")
    app.config["TESTING"] = testing

    if gateway is None:
        session = requests.Session()

        def gateway(token):
            return NGaugeClient(token, session=session)

    app.extensions["ngauge"] = gateway
    app.extensions["boards"] = BoardRegistry()

    # Register the dashboard blueprint (all routes)
    from supplier_portal.api.dashboard import bp
    app.register_blueprint(bp)

    # ── Security middleware (rate limiting, headers) ──────────────────────
    from supplier_portal.core.security import init_security
    init_security(app)

    # ── Runtime self-test: catches config/route bugs at boot ─────────────
    startup_check()
    try:
        from supplier_portal.core.startup_checks import run_startup_checks
        with app.app_context():
            checks = run_startup_checks(app)
            if checks["failed"] > 0:
                log.error("STARTUP: %d checks FAILED, review logs", checks["failed"])
    except Exception as e:
        log.warning("Startup checks skipped: %s", e)

    return app


# For gunicorn: gunicorn "app:create_app()"
if __name__ == "__main__":
    app = create_app()
    port = int(os.environ.get("PORT", 5000))
    app.run(host="0.0.0.0", port=port, debug=False)
