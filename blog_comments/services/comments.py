"""
Comment store backed by the Supabase blog_comments table.

This is the only module that writes comment state. Every state transition is
a single UPDATE filtered by id (and, for the time-based sweep, by the current
state), so there is no read-then-write window. Concurrent operator actions on
the same comment resolve as last-writer-wins.

Dashboard buckets are derived from three booleans:
- pending:  not approved, not archived, not flagged
- approved: approved, not archived
- flagged:  flagged OR archived (archived comments are reviewed with spam)
- archived: archived only (separate tab; also included in "flagged")
"""

from __future__ import annotations
import re
from dataclasses import dataclass, asdict
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from .supabase_client import get_admin_client
from ..utils.errors import NotFoundError, StoreError, ValidationError, log_error

STATUSES = ("pending", "approved", "flagged", "archived")

COMMENT_COLUMNS = (
    "id, post_id, author_name, author_email, content, created_at, "
    "approved, flagged, flag_reason, archived"
)

_ID_PATTERN = re.compile(r"^[A-Za-z0-9\-]{1,64}$")


@dataclass
class Comment:
    id: str
    post_id: str
    author_name: str
    author_email: str
    content: str
    created_at: str
    approved: bool = False
    flagged: bool = False
    flag_reason: Optional[str] = None
    archived: bool = False

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "Comment":
        created_at = row.get("created_at") or ""
        if isinstance(created_at, datetime):
            created_at = created_at.isoformat()
        return cls(
            id=str(row["id"]),
            post_id=str(row.get("post_id") or ""),
            author_name=row.get("author_name") or "",
            author_email=row.get("author_email") or "",
            content=row.get("content") or "",
            created_at=created_at,
            approved=bool(row.get("approved")),
            flagged=bool(row.get("flagged")),
            flag_reason=row.get("flag_reason"),
            archived=bool(row.get("archived")),
        )

    @property
    def is_visible(self) -> bool:
        return self.approved and not self.archived

    @property
    def status(self) -> str:
        """Effective classification: archived > flagged > approved > pending."""
        if self.archived:
            return "archived"
        if self.flagged:
            return "flagged"
        if self.approved:
            return "approved"
        return "pending"

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["status"] = self.status
        return data


def _check_id(comment_id: str) -> str:
    comment_id = str(comment_id or "").strip()
    if not _ID_PATTERN.match(comment_id):
        raise ValidationError("Comment ID is required")
    return comment_id


class CommentStore:
    """
    Data access for comments.

    Args:
        client: Supabase client. Defaults to the service-role client so
            moderation writes are not blocked by row-level security.
        table: Table name (BaseConfig.COMMENTS_TABLE)
    """

    def __init__(self, client=None, table: str = "blog_comments"):
        self._client = client
        self.table = table

    def _table(self):
        client = self._client or get_admin_client()
        if not client:
            raise StoreError("Database not configured")
        return client.table(self.table)

    def _execute(self, query, action: str) -> List[Dict[str, Any]]:
        try:
            response = query.execute()
        except Exception as e:
            log_error(f"Error {action}: {e}")
            raise StoreError(f"Error {action}") from e
        return response.data or []

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create(self, post_id: str, author_name: str, author_email: str, content: str) -> Comment:
        if not content or not content.strip():
            raise ValidationError("Comment content cannot be empty")

        row = {
            "post_id": post_id,
            "author_name": author_name,
            "author_email": author_email,
            "content": content,
            "created_at": datetime.now(timezone.utc).isoformat(),
            "approved": False,
            "flagged": False,
            "archived": False,
        }
        data = self._execute(self._table().insert(row), "creating comment")
        if not data:
            raise StoreError("Failed to create comment")
        return Comment.from_row(data[0])

    def _update(self, comment_id: str, changes: Dict[str, Any], action: str,
                require_pending: bool = False) -> Optional[Comment]:
        comment_id = _check_id(comment_id)
        query = self._table().update(changes).eq("id", comment_id)
        if require_pending:
            query = query.eq("approved", False).eq("flagged", False).eq("archived", False)

        data = self._execute(query, action)
        if not data:
            if require_pending:
                return None
            raise NotFoundError("Comment not found")
        return Comment.from_row(data[0])

    def approve(self, comment_id: str, only_if_pending: bool = False) -> Optional[Comment]:
        """
        Make a comment visible and clear any flag.

        With only_if_pending=True the update only applies while the comment is
        still pending; returns None if it was reviewed in the meantime.
        """
        return self._update(
            comment_id,
            {"approved": True, "flagged": False, "flag_reason": None},
            "approving comment",
            require_pending=only_if_pending,
        )

    def flag(self, comment_id: str, reason: str) -> Comment:
        """Mark as spam/abuse. Flagging always revokes approval."""
        return self._update(
            comment_id,
            {"flagged": True, "approved": False, "flag_reason": (reason or "").strip() or None},
            "flagging comment",
        )

    def archive(self, comment_id: str) -> Comment:
        """Soft delete. approved/flagged are left as they are."""
        return self._update(comment_id, {"archived": True}, "archiving comment")

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get(self, comment_id: str) -> Comment:
        comment_id = _check_id(comment_id)
        query = self._table().select(COMMENT_COLUMNS).eq("id", comment_id).limit(1)
        data = self._execute(query, "fetching comment")
        if not data:
            raise NotFoundError("Comment not found")
        return Comment.from_row(data[0])

    def list_by_status(self, status: str) -> List[Comment]:
        """Comments in one dashboard bucket, newest first."""
        query = self._table().select(COMMENT_COLUMNS)

        if status == "pending":
            query = query.eq("approved", False).eq("archived", False).eq("flagged", False)
        elif status == "approved":
            query = query.eq("approved", True).eq("archived", False)
        elif status == "flagged":
            query = query.or_("flagged.eq.true,archived.eq.true")
        elif status == "archived":
            query = query.eq("archived", True)
        else:
            raise ValidationError(f"Invalid status. Must be one of: {', '.join(STATUSES)}")

        data = self._execute(query.order("created_at", desc=True), f"fetching {status} comments")
        return [Comment.from_row(row) for row in data]

    def list_for_post(self, post_id: str, include_pending: bool = False) -> List[Comment]:
        """
        Comments for one post, newest first.

        Only publicly visible comments by default. include_pending also
        returns pending ones (used to apply time-based approval on read).
        """
        query = self._table().select(COMMENT_COLUMNS).eq("post_id", post_id).eq("archived", False)
        if include_pending:
            query = query.eq("flagged", False)
        else:
            query = query.eq("approved", True)

        data = self._execute(query.order("created_at", desc=True), "fetching post comments")
        return [Comment.from_row(row) for row in data]

    def counts(self) -> Dict[str, int]:
        """Number of comments per dashboard bucket."""
        data = self._execute(
            self._table().select("approved, flagged, archived"),
            "counting comments",
        )
        counts = {"total": 0, "pending": 0, "approved": 0, "flagged": 0, "archived": 0}
        for row in data:
            approved = bool(row.get("approved"))
            flagged = bool(row.get("flagged"))
            archived = bool(row.get("archived"))
            if not archived:
                counts["total"] += 1
            if not approved and not archived and not flagged:
                counts["pending"] += 1
            if approved and not archived:
                counts["approved"] += 1
            if flagged or archived:
                counts["flagged"] += 1
            if archived:
                counts["archived"] += 1
        return counts
