"""
Public comment endpoints used by the blog front end.

Endpoints:
- POST /api/comments: submit a comment (rate limited)
- GET  /api/comments/<post_id>: publicly visible comments for a post
- POST /api/moderate: screen text before submitting (live form feedback)
"""

from __future__ import annotations
from flask import Blueprint, request, jsonify, current_app
from ..extensions import limiter
from ..services.comment_review import get_moderator
from ..services.comments import Comment
from ..services.moderation import sanitize_content
from ..utils.errors import CommentError, ValidationError, sanitize_error

comments_bp = Blueprint("comments", __name__, url_prefix="/api")

# Message shown after submission, by resulting status
SUBMIT_MESSAGES = {
    "approved": "Comment posted! Thanks for joining the conversation.",
    "pending": "Comment submitted! Your comment will appear shortly after review.",
    "flagged": "Comment submitted! It has been held for review.",
}


def _public_view(comment: Comment) -> dict:
    """Fields safe to show on the blog (no email, escaped text)."""
    return {
        "id": comment.id,
        "post_id": comment.post_id,
        "author_name": sanitize_content(comment.author_name),
        "content": sanitize_content(comment.content),
        "created_at": comment.created_at,
    }


def _request_data() -> dict:
    """JSON object or form fields; any other JSON body counts as empty."""
    if request.is_json:
        data = request.get_json(silent=True)
        return data if isinstance(data, dict) else {}
    return request.form.to_dict()


@comments_bp.route("/comments", methods=["POST"])
@limiter.limit(lambda: current_app.config["COMMENT_RATE_LIMIT"])
def submit_comment():
    """
    Request body (JSON or form):
        {"post_id": "...", "author_name": "...", "author_email": "...", "content": "..."}

    Returns:
        201 {"success": true, "status": "approved"|"pending"|"flagged", "message": ...}
        400 on validation errors, 503 if the comment could not be stored
    """
    data = _request_data()
    try:
        comment = get_moderator().submit_comment(
            post_id=data.get("post_id", ""),
            author_name=data.get("author_name", ""),
            author_email=data.get("author_email", ""),
            content=data.get("content", ""),
        )
    except ValidationError as e:
        return jsonify({"success": False, "error": e.message}), 400
    except CommentError as e:
        return jsonify({"success": False, "error": sanitize_error(e, "database", "Comment submission failed")}), 503

    body = {
        "success": True,
        "status": comment.status,
        "message": SUBMIT_MESSAGES[comment.status],
    }
    if comment.is_visible:
        body["comment"] = _public_view(comment)
    return jsonify(body), 201


@comments_bp.route("/comments/<post_id>", methods=["GET"])
def list_post_comments(post_id):
    try:
        comments = get_moderator().list_public(post_id)
    except CommentError as e:
        return jsonify({"success": False, "error": sanitize_error(e, "database", "Comment listing failed")}), 503

    return jsonify({
        "post_id": post_id,
        "count": len(comments),
        "comments": [_public_view(c) for c in comments],
    })


@comments_bp.route("/moderate", methods=["POST"])
@limiter.limit(lambda: current_app.config["MODERATE_RATE_LIMIT"])
def moderate():
    """
    Screen text without storing anything.

    Returns:
        {"flagged": bool, "categories": {...}, "flaggedCategories": [...], "flaggedTerms": [...],
         "usingFallback": bool, "verdict": {...}}
    """
    data = _request_data()
    text = data.get("text")
    if not text or not isinstance(text, str):
        return jsonify({"error": "Text is required"}), 400

    verdict = get_moderator().screen(text)
    return jsonify({
        "flagged": bool(verdict.has_profanity or verdict.external_flagged),
        "categories": {category: True for category in verdict.external_categories},
        "flaggedCategories": verdict.external_categories,
        "flaggedTerms": verdict.flagged_terms,
        "usingFallback": verdict.used_fallback,
        "verdict": verdict.to_dict(),
    })
