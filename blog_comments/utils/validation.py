"""
Input validation and normalization for comment submissions.

Trims and bounds field lengths, removes control characters and markup
brackets from names, checks the email format, and builds a clean payload for
the moderation pipeline.
"""

from __future__ import annotations
import re
from typing import Any, Dict, Tuple

# Names keep letters from any script; only brackets and control chars go.
_NAME_STRIP_PATTERN = re.compile(r"[<>\x00-\x1F\x7F]+")
_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0B\x0C\x0E-\x1F\x7F]")
_EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
_POST_ID_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9\-_]{0,199}$")

MAX_NAME_LEN = 80
MAX_EMAIL_LEN = 254
MAX_COMMENT_LEN = 5000


def _soft_sanitize(text: str, max_len: int) -> str:
    """
    Normalizes short single-line fields:
    - strip whitespace
    - bound length
    - remove brackets/control characters
    - collapse double spaces
    """
    t = (text or "").strip()
    if not t:
        return ""
    t = t[:max_len]
    t = _NAME_STRIP_PATTERN.sub("", t)
    t = re.sub(r"\s{2,}", " ", t)
    return t.strip()


def _soft_sanitize_body(text: str) -> str:
    """
    Comment body is more permissive:
    - strip
    - remove control chars only; keep newlines and punctuation
    - normalize repeated tabs/spaces
    """
    t = (text or "").strip()
    if not t:
        return ""
    t = _CONTROL_CHARS.sub("", t)
    t = re.sub(r"[ \t]{2,}", " ", t)
    return t


def is_valid_email(email: str) -> bool:
    return bool(email) and len(email) <= MAX_EMAIL_LEN and bool(_EMAIL_PATTERN.match(email))


def validate_comment(form: Dict[str, Any]) -> Tuple[Dict[str, Any], str | None]:
    """
    Validates a comment submission and returns (payload, error_message).
    On success, payload has post_id, author_name, author_email and content.
    """
    post_id = str(form.get("post_id") or "").strip()
    author_name = _soft_sanitize(str(form.get("author_name") or ""), MAX_NAME_LEN)
    author_email = str(form.get("author_email") or "").strip().lower()
    content = _soft_sanitize_body(str(form.get("content") or ""))

    if not post_id or not _POST_ID_PATTERN.match(post_id):
        return {}, "A valid post is required."
    if not author_name or not content:
        return {}, "Name and comment are required."
    if not author_email:
        return {}, "Email address is required."
    if not is_valid_email(author_email):
        return {}, "Please enter a valid email address."
    if len(content) > MAX_COMMENT_LEN:
        return {}, f"Comment must be under {MAX_COMMENT_LEN} characters."

    return {
        "post_id": post_id,
        "author_name": author_name,
        "author_email": author_email,
        "content": content,
    }, None
