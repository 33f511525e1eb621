"""
Operator ("control room") endpoints for comment moderation.

All routes require an authorized operator (see utils/auth.require_admin).
Session-authenticated POSTs must carry a CSRF token; Bearer-token clients
are exempt since the browser never attaches that header on its own.

Endpoints:
- GET  /admin/verify
- GET  /admin/comments?status=pending|approved|flagged|archived
- GET  /admin/comments/stats
- POST /admin/comments/<id>/approve
- POST /admin/comments/<id>/flag      {"reason": "..."}
- POST /admin/comments/<id>/delete    (also DELETE /admin/comments/<id>)
"""

from __future__ import annotations
from flask import Blueprint, request, jsonify, current_app
from ..extensions import csrf
from ..services.comment_review import get_moderator, DEFAULT_FLAG_REASON
from ..utils.auth import require_admin, is_authenticated, is_operator, get_bearer_token
from ..utils.errors import CommentError, ValidationError, GENERIC_MESSAGES, sanitize_error

admin_bp = Blueprint("admin", __name__, url_prefix="/admin")

_ERROR_STATUS = {"validation": 400, "not_found": 404, "database": 500}


@admin_bp.before_request
def protect_session_posts():
    if not current_app.config.get("WTF_CSRF_ENABLED", True):
        return None
    if request.method in ("POST", "DELETE") and not get_bearer_token():
        csrf.protect()
    return None


def _result_response(result: dict):
    status = 200 if result.get("success") else _ERROR_STATUS.get(result.get("error"), 500)
    return jsonify(result), status


@admin_bp.route("/verify")
def verify_admin():
    """Tell the dashboard whether the caller may moderate."""
    if not is_authenticated():
        return jsonify({"isAdmin": False, "error": GENERIC_MESSAGES["auth"]}), 401
    return jsonify({"isAdmin": is_operator()})


@admin_bp.route("/comments")
@require_admin
def list_comments():
    status = request.args.get("status", "pending").strip().lower()
    moderator = get_moderator()
    try:
        comments = moderator.list_by_status(status)
    except ValidationError as e:
        return jsonify({"success": False, "error": e.message}), 400
    except CommentError as e:
        return jsonify({"success": False, "error": sanitize_error(e, "database", "Comment listing failed")}), 500

    return jsonify({
        "success": True,
        "status": status,
        "count": len(comments),
        "comments": [moderator.describe(c) for c in comments],
    })


@admin_bp.route("/comments/stats")
@require_admin
def comment_stats():
    try:
        stats = get_moderator().dashboard_stats()
    except CommentError as e:
        return jsonify({"success": False, "error": sanitize_error(e, "database", "Comment stats failed")}), 500
    return jsonify({"success": True, "stats": stats})


@admin_bp.route("/comments/<comment_id>/approve", methods=["POST"])
@require_admin
def approve_comment(comment_id):
    return _result_response(get_moderator().approve_comment(comment_id))


@admin_bp.route("/comments/<comment_id>/flag", methods=["POST"])
@require_admin
def flag_comment(comment_id):
    data = request.get_json(silent=True) if request.is_json else request.form.to_dict()
    if not isinstance(data, dict):
        data = {}
    reason = str(data.get("reason") or "").strip()[:200] or DEFAULT_FLAG_REASON
    return _result_response(get_moderator().flag_comment(comment_id, reason))


@admin_bp.route("/comments/<comment_id>/delete", methods=["POST"])
@admin_bp.route("/comments/<comment_id>", methods=["DELETE"])
@require_admin
def delete_comment(comment_id):
    return _result_response(get_moderator().delete_comment(comment_id))
