"""
Error types and safe error reporting.

Service functions raise the typed errors below; routes catch them and turn
them into short user-facing messages. Raw exception text is only ever logged,
never returned to the client.
"""

from __future__ import annotations
import logging
from flask import current_app, has_app_context

logger = logging.getLogger(__name__)


class CommentError(Exception):
    """Base class for all comment moderation errors."""

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message


class ValidationError(CommentError):
    """Missing or invalid input. Nothing was written."""


class NotFoundError(CommentError):
    """The referenced comment id does not exist."""


class ProviderUnavailableError(CommentError):
    """
    The moderation provider could not be reached, is not configured, or
    answered with something unusable. Recovered inside the screener.
    """


class StoreError(CommentError):
    """The persistence backend failed. Not retried."""


# Generic messages shown to users instead of raw exception text
GENERIC_MESSAGES = {
    "database": "We couldn't save your changes right now. Please try again later.",
    "validation": "Please check the form and try again.",
    "not_found": "Comment not found.",
    "auth": "You need to sign in to do that.",
    "forbidden": "Unauthorized - Admin access required.",
    "unknown": "Something went wrong. Please try again.",
}


def _log(level: int, message: str) -> None:
    if has_app_context():
        current_app.logger.log(level, message)
    else:
        logger.log(level, message)


def log_info(message: str) -> None:
    _log(logging.INFO, message)


def log_warning(message: str) -> None:
    _log(logging.WARNING, message)


def log_error(message: str) -> None:
    _log(logging.ERROR, message)


def sanitize_error(error: Exception, category: str = "unknown", context: str = "") -> str:
    """
    Log the real error and return a message that is safe to show to users.

    Validation and not-found errors carry messages written for users, so those
    are passed through unchanged.
    """
    if isinstance(error, (ValidationError, NotFoundError)) and error.message:
        return error.message

    prefix = f"{context}: " if context else ""
    log_error(f"{prefix}{type(error).__name__}: {error}")
    return GENERIC_MESSAGES.get(category, GENERIC_MESSAGES["unknown"])


def mask_email(email: str | None) -> str:
    """Mask an email for logs: 'jane.doe@example.com' -> 'ja***@example.com'."""
    if not email or "@" not in email:
        return "***"
    local, _, domain = email.partition("@")
    return f"{local[:2]}***@{domain}"
