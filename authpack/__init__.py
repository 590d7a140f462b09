"""
Authorization Pack Service
Flask Application Factory.

Usage:
    from authpack import create_app
    app = create_app()           # defaults to APP_ENV, then "development"
    app = create_app("testing")  # explicit config
"""

import logging
import os

import click
from flask import Flask
from flask_cors import CORS
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_migrate import Migrate

from authpack.auth import init_auth
from authpack.config import config
from authpack.middleware.logging_config import configure_logging
from authpack.middleware.rate_limiter import init_rate_limits
from authpack.middleware.timing import init_request_timing
from authpack.models import db

logger = logging.getLogger(__name__)

# ── SQLite FK enforcement (global engine event) ─────────────────────────
from sqlalchemy import event as _sa_event, engine as _sa_engine


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
    default_limits=[],                     # per-blueprint limits only
    storage_uri=os.getenv("RATELIMIT_STORAGE_URI", "memory://"),
)


def _auto_add_missing_columns(app, db):
    """
    ADD COLUMN IF NOT EXISTS for every model column the live PostgreSQL
    schema lacks. Idempotent, so it runs on every startup; a no-op on SQLite,
    where db.create_all() owns the schema.
    """
    import sqlalchemy as sa

    if "postgresql" not in str(db.engine.url):
        return

    with db.engine.connect() as conn:
        conn.execute(sa.text("SET lock_timeout = '5s'"))
        rows = conn.execute(sa.text(
            "SELECT table_name, column_name "
            "FROM information_schema.columns "
            "WHERE table_schema = 'public'"
        )).fetchall()

        existing = {}
        for table_name, column_name in rows:
            existing.setdefault(table_name, set()).add(column_name)

        added = []
        for table in db.metadata.sorted_tables:
            present = existing.get(table.name)
            if present is None:
                continue  # new table, created by db.create_all()
            for col in table.columns:
                if col.name in present:
                    continue
                col_type = col.type.compile(dialect=db.engine.dialect)
                # always nullable: existing rows have no value for the new column
                conn.execute(sa.text(
                    f'ALTER TABLE "{table.name}" ADD COLUMN IF NOT EXISTS "{col.name}" {col_type}'
                ))
                added.append(f"{table.name}.{col.name}")

        if added:
            conn.commit()
            app.logger.info("Auto-added %d missing columns: %s", len(added), ", ".join(added))


def create_app(config_name=None):
    """
    Create and configure the Flask application.

    Args:
        config_name: Configuration environment name.
                     One of: "development", "testing", "production".
                     Defaults to APP_ENV env var, or "development" if unset.

    Returns:
        Configured Flask application instance.
    """
    if config_name is None:
        config_name = os.getenv("APP_ENV", "development")

    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(config[config_name]())

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

    # ── Authentication middleware ────────────────────────────────────────
    init_auth(app)

    # ── Request timing middleware ────────────────────────────────────────
    init_request_timing(app)

    # ── Models (register tables on db.metadata) ──────────────────────────
    from authpack.models import entity_link as _entity_link_models  # noqa: F401
    from authpack.models import pack as _pack_models                # noqa: F401
    from authpack.models import project as _project_models          # noqa: F401
    from authpack.models import template as _template_models        # noqa: F401

    # ── Auto-create tables (CREATE IF NOT EXISTS) ────────────────────────
    if not app.testing:
        os.makedirs(app.instance_path, exist_ok=True)
        with app.app_context():
            db.create_all()
            try:
                _auto_add_missing_columns(app, db)
            except Exception as e:
                app.logger.warning("auto-add-columns failed: %s", e)
            from authpack.services.template_sync_service import ensure_reference_data
            ensure_reference_data(app)

    # ── Blueprints ───────────────────────────────────────────────────────
    from authpack.blueprints.entity_link_bp import entity_link_bp
    from authpack.blueprints.health_bp import health_bp
    from authpack.blueprints.pack_bp import pack_bp
    from authpack.blueprints.project_bp import project_bp
    from authpack.blueprints.reference_bp import reference_bp
    from authpack.blueprints.training_bp import training_bp

    app.register_blueprint(health_bp)
    app.register_blueprint(pack_bp)
    app.register_blueprint(project_bp)
    app.register_blueprint(reference_bp)
    app.register_blueprint(entity_link_bp)
    app.register_blueprint(training_bp)

    # ── CLI commands ─────────────────────────────────────────────────────
    @app.cli.command("sync-templates")
    def sync_templates_cmd():
        """Upsert pack templates and permission ecosystems from the catalog."""
        from authpack.services import template_sync_service
        templates = template_sync_service.sync_templates()
        ecosystems = template_sync_service.sync_ecosystems()
        click.echo(f"Synced {templates} templates and {ecosystems} permission ecosystems.")

    @app.cli.command("reset-authorization-data")
    @click.option("--no-reseed", is_flag=True, help="Leave the reference tables empty.")
    @click.confirmation_option(prompt="Delete all packs, projects and templates?")
    def reset_authorization_data_cmd(no_reseed):
        """Delete pack, project and template data, then re-seed the catalog."""
        from authpack.services import template_sync_service
        counts = template_sync_service.reset_authorization_data(reseed=not no_reseed)
        for table_name, deleted in counts.items():
            click.echo(f"{table_name}: {deleted}")

    # ── Error handlers ───────────────────────────────────────────────────
    @app.errorhandler(404)
    def not_found(e):
        from flask import request
        return {"error": "Not found", "path": request.path}, 404

    @app.errorhandler(405)
    def method_not_allowed(e):
        return {"error": "Method not allowed"}, 405

    @app.errorhandler(429)
    def rate_limited(e):
        return {"error": "Too many requests", "retry_after": e.description}, 429

    @app.errorhandler(500)
    def server_error(e):
        logger.error("500 error: %s", e, exc_info=True)
        return {"error": "Internal server error"}, 500

    # ── Rate limiting (after blueprints registered) ──────────────────────
    init_rate_limits(app, limiter)

    return app
