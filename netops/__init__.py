"""
NetOps Console
Flask Application Factory.

Usage:
    from netops import create_app
    app = create_app()           # APP_ENV, defaults to "development"
    app = create_app("testing")  # explicit config
"""

import logging
import os
import time

import click
from flask import Flask, request
from flask_cors import CORS
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_migrate import Migrate

from netops.config import config
from netops.middleware.logging_config import configure_logging
from netops.middleware.rate_limiter import init_rate_limits
from netops.middleware.roles import init_roles
from netops.middleware.timing import init_request_timing
from netops.models import db

# ── SQLite FK enforcement (global engine event) ─────────────────────────
from sqlalchemy import event as _sa_event, engine as _sa_engine

logger = logging.getLogger(__name__)


@_sa_event.listens_for(_sa_engine.Engine, "connect")
def _enable_sqlite_fk(dbapi_conn, connection_record):
    """Enable foreign key enforcement for SQLite connections."""
    if "sqlite" in type(dbapi_conn).__module__:
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


migrate = Migrate()
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[],
    storage_uri=os.getenv("REDIS_URL") or "memory://",  # Redis in production, memory for dev
)


def create_app(config_name=None):
    """
    Create and configure the Flask application.

    Args:
        config_name: One of "development", "testing", "production".
                     Defaults to the APP_ENV env var, or "development".

    Returns:
        Configured Flask application instance.
    """
    if config_name is None:
        config_name = os.getenv("APP_ENV", "development")

    app = Flask(__name__, instance_relative_config=True)
    cfg = config[config_name]
    # ProductionConfig validates required env vars on instantiation
    app.config.from_object(cfg() if config_name == "production" else cfg)

    # ── Structured logging (must be first) ───────────────────────────────
    configure_logging(app)

    # ── Extensions ───────────────────────────────────────────────────────
    db.init_app(app)
    migrate.init_app(app, db)
    limiter.init_app(app)

    cors_origins = app.config.get("CORS_ORIGINS", "*")
    if cors_origins and cors_origins != "*":
        CORS(app, origins=[o.strip() for o in cors_origins.split(",") if o.strip()])
    else:
        CORS(app)

    # ── Request middleware ───────────────────────────────────────────────
    init_request_timing(app)
    init_roles(app)

    # ── Import all models so Alembic can detect them ─────────────────────
    from netops.models import breakdown as _breakdown_models  # noqa: F401
    from netops.models import energy as _energy_models        # noqa: F401
    from netops.models import network as _network_models      # noqa: F401

    # ── Auto-create tables (CREATE IF NOT EXISTS) ────────────────────────
    with app.app_context():
        db_uri = app.config["SQLALCHEMY_DATABASE_URI"]
        if db_uri.startswith("sqlite:///") and ":memory:" not in db_uri:
            os.makedirs(app.instance_path, exist_ok=True)
        try:
            db.create_all()
            app.logger.info("db.create_all() completed successfully")
        except Exception as e:
            app.logger.warning("db.create_all() failed: %s", e)

    # ── Blueprints ───────────────────────────────────────────────────────
    from netops.blueprints.breakdown_bp import breakdown_bp
    from netops.blueprints.dashboard_bp import dashboard_bp
    from netops.blueprints.energy_bp import energy_bp
    from netops.blueprints.export_bp import export_bp
    from netops.blueprints.health_bp import health_bp
    from netops.blueprints.inventory_bp import inventory_bp

    app.register_blueprint(breakdown_bp)
    app.register_blueprint(energy_bp)
    app.register_blueprint(inventory_bp)
    app.register_blueprint(dashboard_bp)
    app.register_blueprint(export_bp)
    app.register_blueprint(health_bp)

    # ── Rate limits (per blueprint) ──────────────────────────────────────
    init_rate_limits(app, limiter)

    # ── CLI commands ─────────────────────────────────────────────────────
    @app.cli.command("watch-alerts")
    @click.option("--interval", type=int, default=None, help="Seconds between polls.")
    @click.option("--once", is_flag=True, help="Poll a single time and exit.")
    def watch_alerts_cmd(interval, once):
        """Poll active alerts and log every newly seen critical one."""
        from netops.services.alert_poller import AlertPoller, LogNotifier, app_alert_fetch

        poller = AlertPoller(
            fetch=app_alert_fetch(app),
            notifiers=[LogNotifier()],
            interval=interval or app.config["ALERT_POLL_INTERVAL"],
        )
        if once:
            result = poller.poll_once()
            click.echo(f"{len(result.alerts)} active, {len(result.new_critical)} critical")
            return
        poller.start()
        click.echo(f"Watching alerts every {poller.interval}s (Ctrl+C to stop)")
        try:
            while poller.running:
                time.sleep(1)
        except KeyboardInterrupt:
            pass
        finally:
            poller.stop()

    # ── Error handlers ───────────────────────────────────────────────────
    @app.errorhandler(404)
    def not_found(e):
        return {"error": "Not found", "code": "ERR_NOT_FOUND", "path": request.path}, 404

    @app.errorhandler(405)
    def method_not_allowed(e):
        return {"error": "Method not allowed"}, 405

    @app.errorhandler(429)
    def rate_limited(e):
        logger.warning("Rate limit hit path=%s limit=%s", request.path, e.description)
        return {"error": "Too many requests", "code": "ERR_RATE_LIMITED", "retry_after": e.description}, 429

    @app.errorhandler(500)
    def server_error(e):
        logger.error("500 error: %s", e, exc_info=True)
        return {"error": "Internal server error", "code": "ERR_INTERNAL"}, 500

    return app
