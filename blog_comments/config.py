"""
Centralized configuration for all environments.

Select a config by setting:
  APP_CONFIG=blog_comments.config.DevConfig      # local dev
  APP_CONFIG=blog_comments.config.ProdConfig     # production (default if unset)
  APP_CONFIG=blog_comments.config.TestConfig     # pytest

Notes:
- SECRET_KEY is read from FLASK_SECRET_KEY
- Rate limiting uses Flask-Limiter v3 keys (RATELIMIT_*).
- Moderation settings are turned into a ModerationSettings object at startup
  (see services/moderation.py); nothing below the app factory reads env vars.
"""

from __future__ import annotations
import os
from datetime import timedelta

class BaseConfig:
    # Secrets & basics
    SECRET_KEY = os.getenv("FLASK_SECRET_KEY", "")
    DEBUG = False
    TESTING = False

    # Session configuration
    PERMANENT_SESSION_LIFETIME = timedelta(days=7)
    SESSION_COOKIE_SECURE = True  # Only send cookies over HTTPS (overridden in dev)
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = "Lax"

    # CSRF is checked per-blueprint (session-authenticated admin POSTs only)
    WTF_CSRF_CHECK_DEFAULT = False

    # Supabase (comment table + operator identity)
    SUPABASE_URL = os.getenv("SUPABASE_URL", "")
    SUPABASE_ANON_KEY = os.getenv("SUPABASE_ANON_KEY", "")
    SUPABASE_SERVICE_ROLE_KEY = os.getenv("SUPABASE_SERVICE_ROLE_KEY", "")
    COMMENTS_TABLE = os.getenv("COMMENTS_TABLE", "blog_comments")
    ADMIN_USERS_TABLE = os.getenv("ADMIN_USERS_TABLE", "admin_users")

    # Moderation provider (OpenAI moderation endpoint)
    OPENAI_API_KEY = os.getenv("OPENAI_API_KEY", "")
    MODERATION_PROVIDER_URL = os.getenv("MODERATION_PROVIDER_URL", "https://api.openai.com/v1/moderations")
    MODERATION_MODEL = os.getenv("MODERATION_MODEL", "omni-moderation-latest")
    MODERATION_TIMEOUT_SECONDS = float(os.getenv("MODERATION_TIMEOUT_SECONDS", "8"))

    # Pending comments become visible after this many hours without review
    AUTO_APPROVE_THRESHOLD_HOURS = float(os.getenv("AUTO_APPROVE_THRESHOLD_HOURS", "24"))

    # Flask-Limiter v3
    RATELIMIT_ENABLED = os.getenv("RATELIMIT_ENABLED", "true").lower() == "true"
    RATELIMIT_STORAGE_URI = os.getenv("RATELIMIT_STORAGE_URI", "memory://")
    RATELIMIT_DEFAULT = os.getenv("RATELIMIT_DEFAULT", "60 per minute; 2000 per day")
    COMMENT_RATE_LIMIT = os.getenv("COMMENT_RATE_LIMIT", "5 per minute; 30 per hour")
    MODERATE_RATE_LIMIT = os.getenv("MODERATE_RATE_LIMIT", "20 per minute")

    # Misc
    PREFERRED_URL_SCHEME = os.getenv("PREFERRED_URL_SCHEME", "https")

class ProdConfig(BaseConfig):
    """Production settings (selected by default if APP_CONFIG is unset)."""
    pass

class DevConfig(BaseConfig):
    """Developer-friendly settings."""
    ENV = "development"
    DEBUG = True
    PREFERRED_URL_SCHEME = "http"
    # Allow cookies over HTTP in dev
    SESSION_COOKIE_SECURE = False
    COMMENT_RATE_LIMIT = "100 per minute"

class TestConfig(BaseConfig):
    """CI/pytest settings."""
    TESTING = True
    DEBUG = True
    SECRET_KEY = "test-secret-key-not-for-production"
    # Usually disable the limiter in tests to avoid flakiness
    RATELIMIT_ENABLED = False
    WTF_CSRF_ENABLED = False
    # Never call the real provider from tests
    OPENAI_API_KEY = ""
