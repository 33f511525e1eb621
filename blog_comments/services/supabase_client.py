"""
Supabase client initialization and helper functions.

Provides centralized access to Supabase for:
- Authentication (verifying operator sessions)
- Operator membership lookups (admin_users table)
- The comment table (used by services/comments.py)
"""

from __future__ import annotations
from typing import Optional, Dict, Any
from flask import current_app, has_app_context
from supabase import create_client, Client


def _safe_log_error(message: str) -> None:
    """
    Log error message only if Flask app context is available.

    This allows functions to be called from tests without app context.
    """
    try:
        if has_app_context():
            current_app.logger.error(message)
    except (ImportError, RuntimeError):
        pass


# Global client instances (initialized once per app)
_supabase_client: Optional[Client] = None  # User client (anon key)
_supabase_admin: Optional[Client] = None   # Admin client (service role key)

_admin_users_table = "admin_users"


def init_supabase(app) -> None:
    """
    Initialize Supabase clients with app config.
    Creates two clients:
    - Regular client with anon key (for verifying operator sessions)
    - Admin client with service role key (comment reads/writes bypass RLS)

    Call this from the Flask app factory.
    """
    global _supabase_client, _supabase_admin, _admin_users_table

    url = app.config.get("SUPABASE_URL", "")
    anon_key = app.config.get("SUPABASE_ANON_KEY", "")
    service_key = app.config.get("SUPABASE_SERVICE_ROLE_KEY", "")
    _admin_users_table = app.config.get("ADMIN_USERS_TABLE", "admin_users")

    if not url or not anon_key:
        app.logger.warning("Supabase URL or ANON_KEY not configured. Comment storage will be disabled.")
        _supabase_client = None
        _supabase_admin = None
        return

    try:
        _supabase_client = create_client(url, anon_key)
        app.logger.info("Supabase client initialized successfully")

        if service_key:
            _supabase_admin = create_client(url, service_key)
            app.logger.info("Supabase admin client initialized successfully")
        else:
            app.logger.warning("SUPABASE_SERVICE_ROLE_KEY not configured. Comment moderation will be unavailable.")

    except Exception as e:
        app.logger.error(f"Failed to initialize Supabase client: {e}")
        _supabase_client = None
        _supabase_admin = None


def get_client() -> Optional[Client]:
    """Get the global Supabase client instance (user client with anon key)."""
    return _supabase_client


def get_admin_client() -> Optional[Client]:
    """Get the admin Supabase client instance (admin client with service role key)."""
    return _supabase_admin


def is_configured() -> bool:
    """Check if Supabase is properly configured."""
    return _supabase_client is not None


# ============================================================================
# Authentication Helpers
# ============================================================================

def verify_session(access_token: str, refresh_token: Optional[str] = None) -> Optional[Dict[str, Any]]:
    """
    Verify an operator's access token and return user data.

    Args:
        access_token: JWT access token from Supabase Auth
        refresh_token: Optional refresh token

    Returns:
        User dict with id, email, etc. or None if invalid
    """
    if not _supabase_client:
        return None

    try:
        session_response = _supabase_client.auth.set_session(
            access_token=access_token,
            refresh_token=refresh_token or ""
        )

        if session_response and session_response.user:
            return session_response.user.model_dump()
        return None

    except Exception as e:
        _safe_log_error(f"Error verifying session: {e}")
        return None


def is_admin_user(user_id: str) -> bool:
    """
    Check whether a user is an authorized operator.

    A user is an operator if a row with their id exists in the admin users
    table. Lookup failures count as "not an operator".
    """
    client = _supabase_admin or _supabase_client
    if not client or not user_id:
        return False

    try:
        response = client.table(_admin_users_table).select("id").eq("id", user_id).limit(1).execute()
        return bool(response.data)
    except Exception as e:
        _safe_log_error(f"Error checking admin status: {e}")
        return False
