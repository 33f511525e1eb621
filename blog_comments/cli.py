"""
Flask CLI commands for comment maintenance.

Usage:
    flask approve-due-comments             # Approve pending comments past the threshold
    flask approve-due-comments --dry-run   # Only list what would be approved
"""

from __future__ import annotations

import click
from flask.cli import with_appcontext


@click.command("approve-due-comments")
@click.option("--dry-run", is_flag=True, default=False,
              help="List pending comments past the threshold without approving them.")
@with_appcontext
def approve_due_comments_command(dry_run: bool) -> None:
    """Approve pending comments that have waited longer than the auto-approve threshold."""
    from blog_comments.services.comment_review import get_moderator
    from blog_comments.services.moderation import is_auto_approve_due
    from blog_comments.utils.errors import CommentError

    moderator = get_moderator()
    threshold = moderator.settings.auto_approve_threshold_hours

    try:
        if dry_run:
            pending = moderator.store.list_by_status("pending")
            due = [c for c in pending if is_auto_approve_due(c.created_at, None, threshold)]
            click.echo(f"{len(due)} of {len(pending)} pending comment(s) are older than {threshold:g}h.")
            for comment in due:
                click.echo(f"  {comment.id}  {comment.post_id}  {comment.created_at}")
            click.echo("\nDry run: nothing approved.")
            return

        approved = moderator.apply_due_auto_approvals()
    except CommentError as e:
        click.echo(f"Error: {e.message or e}")
        raise SystemExit(1)

    for comment in approved:
        click.echo(f"  Approved {comment.id} on {comment.post_id}")
    click.echo(f"\nDone. Approved: {len(approved)}")
