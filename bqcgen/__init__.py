"""
bqcgen/__init__.py

Flask application factory for the BQC Generator API.

Requirements:
- JSON API only; every /api/bqc and /api/admin route is authenticated.
- PostgreSQL-ready (SQLAlchemy + migrations) but SQLite is used for dev.
- The document pipeline (bqcgen.docgen) stays independent of Flask.
"""

from __future__ import annotations

import logging

import click
from flask import Flask, jsonify, request
from werkzeug.exceptions import HTTPException

from .extensions import cors, db, login_manager, migrate
from .models import User
from .security import load_user_from_request, unauthorized


def _configure_logging(app: Flask) -> None:
    level = getattr(logging, str(app.config.get("LOG_LEVEL", "INFO")).upper(), logging.INFO)
    app.logger.setLevel(level)
    logging.getLogger("bqcgen").setLevel(level)


def _register_error_handlers(app: Flask) -> None:
    @app.errorhandler(HTTPException)
    def _http_error(exc: HTTPException):
        return jsonify({"success": False, "message": exc.description or exc.name}), exc.code

    @app.errorhandler(Exception)
    def _unhandled_error(exc: Exception):
        app.logger.exception("Unhandled error on %s %s", request.method, request.path)
        db.session.rollback()
        return jsonify({"success": False, "message": "Internal server error"}), 500


def _register_cli(app: Flask) -> None:
    @app.cli.command("create-db")
    def create_db_command():
        """Create all tables (development; use `flask db upgrade` with migrations)."""
        db.create_all()
        click.echo("Database tables created.")

    @app.cli.command("create-user")
    @click.option("--username", required=True)
    @click.option("--password", required=True)
    @click.option("--email", default=None)
    @click.option("--full-name", default=None)
    @click.option("--admin", is_flag=True, default=False, help="Grant admin access.")
    def create_user_command(username, password, email, full_name, admin):
        """Create a user account."""
        from .seed import create_user

        user = create_user(username, password, email=email, full_name=full_name, is_admin=admin)
        click.echo(f"User '{user.username}' created (admin={user.is_admin}).")

    @app.cli.command("seed-admin")
    @click.option("--username", default="admin", show_default=True)
    @click.option("--password", required=True)
    def seed_admin_command(username, password):
        """Bootstrap the first admin (no-op when any user exists)."""
        from .seed import seed_admin

        user = seed_admin(username, password)
        if user is None:
            click.echo("Users already exist; nothing seeded.")
        else:
            click.echo(f"Admin '{user.username}' created.")


def create_app(config_object: str = "config.Config") -> Flask:
    """Create and configure the Flask application."""
    app = Flask(__name__)
    app.config.from_object(config_object)
    _configure_logging(app)

    # Extensions
    db.init_app(app)
    migrate.init_app(app, db)

    login_manager.init_app(app)
    login_manager.request_loader(load_user_from_request)
    login_manager.unauthorized_handler(unauthorized)

    @login_manager.user_loader
    def load_user(user_id: str) -> User | None:
        """Session loader; the API authenticates through request_loader."""
        if not str(user_id).isdigit():
            return None
        return db.session.get(User, int(user_id))

    cors.init_app(
        app,
        origins=app.config["CORS_ORIGINS"],
        expose_headers=["Content-Disposition", "Content-Length"],
    )
    _register_error_handlers(app)

    # ----------------------------------------------------------------------
    # Blueprints
    # ----------------------------------------------------------------------
    from .blueprints.admin import admin_bp
    from .blueprints.auth import auth_bp
    from .blueprints.bqc import bqc_bp

    app.register_blueprint(auth_bp)
    app.register_blueprint(bqc_bp)
    app.register_blueprint(admin_bp)

    _register_cli(app)

    @app.route("/api/health")
    def health():
        return jsonify({"success": True, "data": {"name": app.config.get("APP_NAME"), "status": "ok"}})

    return app
