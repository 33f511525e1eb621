"""
Application factory and global configuration.

Creates the Flask app, applies security headers, configures rate limiting and
CSRF, initializes Supabase and the comment moderator, and registers the
blueprints and CLI commands. Startup/config concerns stay here; moderation
logic lives in services/.
"""

from __future__ import annotations
import os
from flask import Flask, Response, jsonify
from flask_wtf.csrf import CSRFError
from dotenv import load_dotenv
from .extensions import limiter, csrf
from .routes.comments import comments_bp
from .routes.admin import admin_bp
from .services import supabase_client
from .services.comment_review import init_moderation
from .cli import approve_due_comments_command


def _validate_production_security(app: Flask, cfg_path: str) -> None:
    """
    Validate critical security settings in production environments.

    Raises RuntimeError if production requirements are not met, so the app
    never starts with cookies over HTTP, a weak secret, or debug enabled.
    """
    if "ProdConfig" not in cfg_path or app.config.get("TESTING", False):
        return

    errors = []

    if not app.config.get("SESSION_COOKIE_SECURE", False):
        errors.append("SESSION_COOKIE_SECURE must be True in production.")

    secret_key = app.config.get("SECRET_KEY", "")
    if not secret_key:
        errors.append(
            "SECRET_KEY is not set. Set FLASK_SECRET_KEY environment variable. "
            "Generate with: python -c 'import secrets; print(secrets.token_hex(32))'"
        )
    elif len(secret_key) < 32:
        errors.append(f"SECRET_KEY is too weak ({len(secret_key)} chars). Must be at least 32 characters.")

    if app.config.get("DEBUG", False):
        errors.append("DEBUG must be False in production.")

    if not app.config.get("SUPABASE_SERVICE_ROLE_KEY"):
        errors.append("SUPABASE_SERVICE_ROLE_KEY is required to store and moderate comments.")

    if errors:
        error_msg = "\n\n[ERROR] PRODUCTION SECURITY VALIDATION FAILED:\n\n" + "\n\n".join(f"  * {err}" for err in errors)
        raise RuntimeError(error_msg)

    app.logger.info("[OK] Production security validation passed")


def create_app() -> Flask:
    # Load .env early (for local dev)
    load_dotenv(override=True)

    app = Flask(__name__)

    # Allow APP_CONFIG to override (e.g., blog_comments.config.DevConfig)
    cfg_path = os.getenv("APP_CONFIG", "blog_comments.config.ProdConfig")
    try:
        app.config.from_object(cfg_path)
    except (ImportError, AttributeError) as e:
        app.logger.warning(f"Could not load config object {cfg_path}: {e}")

    _validate_production_security(app, cfg_path)

    limiter.init_app(app)
    if not app.config.get("RATELIMIT_ENABLED", True):
        limiter.enabled = False

    if not app.secret_key:
        app.secret_key = app.config.get("SECRET_KEY", "")

    csrf.init_app(app)

    supabase_client.init_supabase(app)
    init_moderation(app)

    @app.after_request
    def apply_security_headers(resp: Response) -> Response:
        resp.headers["Content-Security-Policy"] = "default-src 'none'; frame-ancestors 'none'"
        resp.headers["X-Content-Type-Options"] = "nosniff"
        resp.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        resp.headers["X-Frame-Options"] = "DENY"
        return resp

    @app.errorhandler(CSRFError)
    def handle_csrf_error(e):
        return jsonify({"success": False, "error": "Invalid or missing CSRF token"}), 400

    @app.errorhandler(429)
    def handle_rate_limit(e):
        return jsonify({"success": False, "error": "Too many requests. Please slow down."}), 429

    # Blueprints
    app.register_blueprint(comments_bp)
    app.register_blueprint(admin_bp)

    app.cli.add_command(approve_due_comments_command)

    return app
