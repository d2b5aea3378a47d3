# chainsense/__init__.py
from __future__ import annotations

from flask import Flask, jsonify
from sqlalchemy.exc import SQLAlchemyError

from .errors import ServiceError
from .extensions import db, migrate, login_manager, limiter
from .settings import Config


def create_app(config_object=None) -> Flask:
    app = Flask(__name__)
    app.config.from_object(config_object or Config)

    # ======================
    # Initialize Extensions
    # ======================
    db.init_app(app)
    migrate.init_app(app, db)
    login_manager.init_app(app)
    limiter.init_app(app)

    # ======================
    # Import Models (CRITICAL)
    # ======================
    from . import models  # noqa: F401

    # ======================
    # Global template context (Company identity)
    # ======================
    from .config.company import company_context

    @app.context_processor
    def inject_company():
        return company_context()

    # ======================
    # Register Blueprints
    # ======================
    from .auth import auth
    from .orders import orders_bp
    from .billing import billing_bp
    from .inbox import inbox_bp

    app.register_blueprint(auth)
    app.register_blueprint(orders_bp)
    app.register_blueprint(billing_bp)
    app.register_blueprint(inbox_bp)

    # ======================
    # CLI
    # ======================
    from .cli import register_cli

    register_cli(app)

    # ======================
    # Error handlers (JSON)
    # ======================
    @app.errorhandler(ServiceError)
    def service_error(e: ServiceError):
        return jsonify(e.to_dict()), e.status_code

    @app.errorhandler(SQLAlchemyError)
    def storage_error(e):
        db.session.rollback()
        app.logger.exception("Unhandled database error")
        return jsonify({"message": "Database error"}), 500

    @app.errorhandler(401)
    def unauthorized(e):
        return jsonify({"message": "Authentication required"}), 401

    @app.errorhandler(403)
    def forbidden(e):
        return jsonify({"message": "Access denied"}), 403

    @app.errorhandler(404)
    def not_found(e):
        return jsonify({"message": "Not found"}), 404

    @app.errorhandler(405)
    def method_not_allowed(e):
        return jsonify({"message": "Method not allowed"}), 405

    @app.errorhandler(429)
    def ratelimit_handler(e):
        return jsonify({"message": "Too many requests. Please try again later."}), 429

    return app
