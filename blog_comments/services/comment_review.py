"""
Comment moderation workflow.

CommentModerator ties screening (services/moderation.py) to storage
(services/comments.py):

- submit_comment(): validate, screen, store, then auto-approve clean text,
  flag profane or provider-flagged text, and leave everything else pending.
- approve_comment() / flag_comment() / delete_comment(): operator actions.
  These never raise; they return {"success", "message", ...} dicts that the
  dashboard shows as toast notifications.
- Time-based approval is applied lazily: reading the pending bucket or a
  post's public comments first approves pending comments older than the
  threshold. `flask approve-due-comments` runs the same sweep on demand.
"""

from __future__ import annotations
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from flask import current_app

from .comments import Comment, CommentStore
from .moderation import (
    ModerationSettings,
    ModerationVerdict,
    auto_approve_status,
    is_auto_approve_due,
    screen_with_provider,
)
from .moderation_provider import ModerationProvider
from ..utils.errors import (
    CommentError,
    NotFoundError,
    StoreError,
    ValidationError,
    log_info,
    log_warning,
    mask_email,
    sanitize_error,
)
from ..utils.validation import validate_comment

DEFAULT_FLAG_REASON = "Marked as spam"


def flag_reason_for(verdict: ModerationVerdict) -> str:
    """Human-readable reason for an automatic flag."""
    if verdict.has_profanity:
        return f"Profanity: {', '.join(verdict.flagged_terms)}"
    if verdict.external_categories:
        return f"Flagged by moderation: {', '.join(verdict.external_categories)}"
    return "Flagged by moderation"


class CommentModerator:
    """
    Entry point for comment submission and operator review.

    Args:
        settings: ModerationSettings built from app config
        store: CommentStore (defaults to the Supabase-backed store)
        provider: Object with check(text); defaults to the HTTP provider
    """

    def __init__(self, settings: ModerationSettings, store: Optional[CommentStore] = None,
                 provider=None):
        self.settings = settings
        self.store = store or CommentStore()
        self.provider = provider if provider is not None else ModerationProvider.from_settings(settings)

    # ------------------------------------------------------------------
    # Submission
    # ------------------------------------------------------------------

    def screen(self, text: str) -> ModerationVerdict:
        return screen_with_provider(
            text,
            self.provider,
            self.settings.profanity_lexicon,
            self.settings.suspicious_patterns,
        )

    def submit_comment(self, post_id: str, author_name: str, author_email: str, content: str) -> Comment:
        """
        Create a comment and give it its initial state.

        Raises:
            ValidationError: missing/invalid fields (nothing is written)
            StoreError: the database write failed
        """
        payload, error = validate_comment({
            "post_id": post_id,
            "author_name": author_name,
            "author_email": author_email,
            "content": content,
        })
        if error:
            raise ValidationError(error)

        verdict = self.screen(payload["content"])
        comment = self.store.create(**payload)

        if verdict.should_auto_approve:
            comment = self.store.approve(comment.id)
        elif verdict.has_profanity or verdict.external_flagged:
            comment = self.store.flag(comment.id, flag_reason_for(verdict))

        log_info(
            f"Comment {comment.id} on {comment.post_id} by {mask_email(comment.author_email)} "
            f"stored as {comment.status} (confidence {verdict.confidence:.2f}, "
            f"fallback={verdict.used_fallback})"
        )
        return comment

    # ------------------------------------------------------------------
    # Operator commands
    # ------------------------------------------------------------------

    def _run_action(self, action, success_message: str, failure_message: str) -> Dict[str, Any]:
        try:
            comment = action()
        except ValidationError as e:
            return {"success": False, "error": "validation", "message": e.message or failure_message}
        except NotFoundError as e:
            return {"success": False, "error": "not_found", "message": e.message or failure_message}
        except CommentError as e:
            sanitize_error(e, "database", failure_message)
            return {"success": False, "error": "database", "message": failure_message}
        return {"success": True, "message": success_message, "comment": comment.to_dict()}

    def approve_comment(self, comment_id: str) -> Dict[str, Any]:
        return self._run_action(
            lambda: self.store.approve(comment_id),
            "Comment is now visible on the blog",
            "Failed to approve comment",
        )

    def flag_comment(self, comment_id: str, reason: str = DEFAULT_FLAG_REASON) -> Dict[str, Any]:
        return self._run_action(
            lambda: self.store.flag(comment_id, reason or DEFAULT_FLAG_REASON),
            "Comment has been flagged as spam",
            "Failed to flag comment",
        )

    def delete_comment(self, comment_id: str) -> Dict[str, Any]:
        return self._run_action(
            lambda: self.store.archive(comment_id),
            "Comment has been archived",
            "Failed to delete comment",
        )

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def _sweep(self, comments: List[Comment], now: Optional[datetime]) -> Tuple[List[Comment], List[Comment]]:
        """Split comments into (approved_now, untouched), approving due pending ones."""
        threshold = self.settings.auto_approve_threshold_hours
        promoted: List[Comment] = []
        untouched: List[Comment] = []
        for comment in comments:
            if comment.status != "pending" or not is_auto_approve_due(comment.created_at, now, threshold):
                untouched.append(comment)
                continue
            try:
                approved = self.store.approve(comment.id, only_if_pending=True)
            except StoreError as e:
                # Left pending; the next sweep retries it
                log_warning(f"Auto-approval of comment {comment.id} failed: {e.message}")
                untouched.append(comment)
                continue
            if approved is not None:
                promoted.append(approved)
        return promoted, untouched

    def apply_due_auto_approvals(self, now: Optional[datetime] = None) -> List[Comment]:
        """Approve every pending comment older than the threshold."""
        promoted, _ = self._sweep(self.store.list_by_status("pending"), now)
        if promoted:
            log_info(f"Auto-approved {len(promoted)} comment(s) after "
                     f"{self.settings.auto_approve_threshold_hours:g}h without review")
        return promoted

    def list_by_status(self, status: str, now: Optional[datetime] = None) -> List[Comment]:
        comments = self.store.list_by_status(status)
        if status == "pending":
            _, comments = self._sweep(comments, now)
        return comments

    def list_public(self, post_id: str, now: Optional[datetime] = None) -> List[Comment]:
        """Publicly visible comments for a post, newest first."""
        comments = self.store.list_for_post(post_id, include_pending=True)
        promoted = {c.id: c for c in self._sweep(comments, now)[0]}
        return [promoted.get(c.id, c) for c in comments if c.id in promoted or c.is_visible]

    def describe(self, comment: Comment, now: Optional[datetime] = None) -> Dict[str, Any]:
        """Comment as a dict for the dashboard, with the auto-approve countdown for pending ones."""
        data = comment.to_dict()
        if comment.status == "pending":
            data["auto_approve"] = auto_approve_status(
                comment.created_at, now, self.settings.auto_approve_threshold_hours
            )
        return data

    def dashboard_stats(self) -> Dict[str, Any]:
        stats: Dict[str, Any] = dict(self.store.counts())
        stats["auto_approve_threshold_hours"] = self.settings.auto_approve_threshold_hours
        return stats


def init_moderation(app, store: Optional[CommentStore] = None, provider=None) -> CommentModerator:
    """Build the moderator from app config and register it on the app."""
    settings = ModerationSettings.from_config(app.config)
    moderator = CommentModerator(
        settings,
        store=store or CommentStore(table=app.config.get("COMMENTS_TABLE", "blog_comments")),
        provider=provider,
    )
    app.extensions["comment_moderator"] = moderator
    if not settings.provider_key:
        app.logger.warning("OPENAI_API_KEY not configured. Comments will not be auto-approved on submission.")
    return moderator


def get_moderator() -> CommentModerator:
    """Moderator registered on the current app."""
    return current_app.extensions["comment_moderator"]
