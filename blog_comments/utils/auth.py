"""
Operator authentication for the moderation dashboard API.

Provides:
- get_current_user(): user from a Bearer token or the session access token
- is_operator(): membership in the admin users table
- @require_admin: decorator returning JSON 401/403 for non-operators
"""

from __future__ import annotations
from functools import wraps
from typing import Optional, Dict, Any
from flask import session, request, jsonify, g
from blog_comments.services import supabase_client
from blog_comments.utils.errors import GENERIC_MESSAGES


# ============================================================================
# Session Management
# ============================================================================

SESSION_USER_KEY = "user"
SESSION_ACCESS_TOKEN_KEY = "access_token"
SESSION_REFRESH_TOKEN_KEY = "refresh_token"


def get_bearer_token() -> Optional[str]:
    header = request.headers.get("Authorization", "")
    if header.startswith("Bearer "):
        return header[len("Bearer "):].strip() or None
    return None


def get_current_user() -> Optional[Dict[str, Any]]:
    """
    Get the calling user.

    A Bearer token in the Authorization header wins over the session token.

    Returns:
        User dict with id, email, etc. or None if not signed in
    """
    if hasattr(g, "user"):
        return g.user

    access_token = get_bearer_token()
    refresh_token = None
    from_session = False
    if not access_token:
        access_token = session.get(SESSION_ACCESS_TOKEN_KEY)
        refresh_token = session.get(SESSION_REFRESH_TOKEN_KEY)
        from_session = True

    if not access_token:
        g.user = None
        return None

    user = supabase_client.verify_session(access_token, refresh_token)
    if not user and from_session:
        clear_session()

    g.user = user
    return user


def get_current_user_id() -> Optional[str]:
    user = get_current_user()
    return user.get("id") if user else None


def clear_session() -> None:
    """Clear user session data."""
    session.pop(SESSION_USER_KEY, None)
    session.pop(SESSION_ACCESS_TOKEN_KEY, None)
    session.pop(SESSION_REFRESH_TOKEN_KEY, None)


def is_authenticated() -> bool:
    return get_current_user() is not None


def is_operator() -> bool:
    """Check if the caller is an authorized comment operator."""
    if hasattr(g, "is_operator"):
        return g.is_operator
    user_id = get_current_user_id()
    g.is_operator = bool(user_id) and supabase_client.is_admin_user(user_id)
    return g.is_operator


# ============================================================================
# Decorators
# ============================================================================

def require_admin(f):
    """
    Decorator to require operator privileges for a JSON route.

    Returns 401 when nobody is signed in and 403 when the user is not listed
    in the admin users table.

    Usage:
        @admin_bp.route('/comments')
        @require_admin
        def list_comments():
            ...
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not is_authenticated():
            return jsonify({"success": False, "error": GENERIC_MESSAGES["auth"]}), 401

        if not is_operator():
            return jsonify({"success": False, "error": GENERIC_MESSAGES["forbidden"]}), 403

        return f(*args, **kwargs)

    return decorated_function
