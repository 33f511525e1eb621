"""
Comment content screening and time-based approval policy.

Screening is two-stage:
- screen_local(): profanity lexicon (whole-word) plus spam-like patterns.
  Pure, no I/O.
- screen_with_provider(): local screening, then the external moderation
  provider. Local profanity is a hard veto and skips the provider call.

A comment is only auto-approved when the provider actually verified it. If
the provider is unconfigured or fails, the verdict is marked as a fallback
and auto-approval is withheld; the comment waits for review instead.

The time policy (is_auto_approve_due) lets pending comments become visible
after a threshold even if nobody reviews them.
"""

from __future__ import annotations
import html
import math
import re
from dataclasses import dataclass, field, asdict
from datetime import datetime, timezone
from itertools import islice
from typing import Any, Dict, List, Mapping, Optional, Pattern, Sequence, Tuple

from ..utils.errors import ProviderUnavailableError, log_warning

# Basic lexicon; the provider covers hate speech, harassment, etc.
PROFANITY_LIST: Tuple[str, ...] = (
    "fuck", "shit", "ass", "bitch", "damn", "crap", "piss", "dick", "cock",
    "pussy", "asshole", "bastard", "slut", "whore", "nigger", "faggot",
    "retard", "cunt", "twat", "wanker", "bollocks",
)

# Flag for review, never auto-reject
SUSPICIOUS_PATTERNS: Tuple[Pattern[str], ...] = (
    re.compile(r"https?://[^\s]+", re.IGNORECASE),  # bare URLs
    re.compile(r"\b(?:buy|sell|discount|offer|free|click here|subscribe)\b", re.IGNORECASE),
    re.compile(r"(.)\1{4,}", re.IGNORECASE),  # "hellooooo", "aAaAa"
    re.compile(r"[A-Z]{5,}"),  # shouting
)

MAX_MATCHES_PER_PATTERN = 3
MIN_AUTO_APPROVE_LENGTH = 10
MAX_AUTO_APPROVE_LENGTH = 1000
LONG_TEXT_LENGTH = 2000
DEFAULT_THRESHOLD_HOURS = 24


@dataclass(frozen=True)
class ModerationSettings:
    """
    Everything the moderation pipeline needs from configuration.

    Built once in the app factory and injected into CommentModerator, so the
    screening functions never look at env vars or current_app.
    """
    provider_url: str = "https://api.openai.com/v1/moderations"
    provider_key: str = ""
    provider_model: str = "omni-moderation-latest"
    provider_timeout: float = 8.0
    profanity_lexicon: Tuple[str, ...] = PROFANITY_LIST
    suspicious_patterns: Tuple[Pattern[str], ...] = SUSPICIOUS_PATTERNS
    auto_approve_threshold_hours: float = DEFAULT_THRESHOLD_HOURS

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> "ModerationSettings":
        return cls(
            provider_url=config.get("MODERATION_PROVIDER_URL") or cls.provider_url,
            provider_key=config.get("OPENAI_API_KEY", "") or "",
            provider_model=config.get("MODERATION_MODEL") or cls.provider_model,
            provider_timeout=float(config.get("MODERATION_TIMEOUT_SECONDS", cls.provider_timeout)),
            auto_approve_threshold_hours=float(
                config.get("AUTO_APPROVE_THRESHOLD_HOURS", DEFAULT_THRESHOLD_HOURS)
            ),
        )


@dataclass
class ModerationVerdict:
    """Result of screening one piece of text. Never persisted."""
    is_clean: bool
    has_profanity: bool
    has_suspicious_content: bool
    flagged_terms: List[str] = field(default_factory=list)
    suspicious_matches: List[str] = field(default_factory=list)
    confidence: float = 1.0
    should_auto_approve: bool = False
    external_flagged: Optional[bool] = None
    external_categories: List[str] = field(default_factory=list)
    used_fallback: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _clamp(value: float) -> float:
    return max(0.0, min(1.0, value))


def _within_auto_approve_length(text: str) -> bool:
    return MIN_AUTO_APPROVE_LENGTH <= len(text) <= MAX_AUTO_APPROVE_LENGTH


def find_profanity(text: str, lexicon: Sequence[str] = PROFANITY_LIST) -> List[str]:
    """Return lexicon terms that appear in text as whole words (case-insensitive)."""
    lower = (text or "").lower()
    found: List[str] = []
    for term in lexicon:
        term = term.lower()
        if term in found:
            continue
        if re.search(rf"\b{re.escape(term)}\b", lower):
            found.append(term)
    return found


def find_suspicious(text: str, patterns: Sequence[Pattern[str]] = SUSPICIOUS_PATTERNS) -> List[str]:
    """Return up to three matches per suspicious pattern, in pattern order."""
    matches: List[str] = []
    for pattern in patterns:
        found = islice(pattern.finditer(text or ""), MAX_MATCHES_PER_PATTERN)
        matches.extend(m.group(0) for m in found)
    return matches


def screen_local(
    text: str,
    lexicon: Sequence[str] = PROFANITY_LIST,
    patterns: Sequence[Pattern[str]] = SUSPICIOUS_PATTERNS,
) -> ModerationVerdict:
    """Screen text against the profanity lexicon and suspicious patterns."""
    text = text or ""
    flagged_terms = find_profanity(text, lexicon)
    suspicious_matches = find_suspicious(text, patterns)

    has_profanity = bool(flagged_terms)
    has_suspicious = bool(suspicious_matches)
    is_clean = not has_profanity and not has_suspicious

    confidence = 1.0
    if has_profanity:
        confidence -= 0.5
    if has_suspicious:
        confidence -= 0.2
    if len(text) < MIN_AUTO_APPROVE_LENGTH:
        confidence -= 0.1
    if len(text) > LONG_TEXT_LENGTH:
        confidence -= 0.1

    return ModerationVerdict(
        is_clean=is_clean,
        has_profanity=has_profanity,
        has_suspicious_content=has_suspicious,
        flagged_terms=flagged_terms,
        suspicious_matches=suspicious_matches,
        confidence=_clamp(confidence),
        should_auto_approve=is_clean and _within_auto_approve_length(text),
    )


def screen_with_provider(
    text: str,
    provider=None,
    lexicon: Sequence[str] = PROFANITY_LIST,
    patterns: Sequence[Pattern[str]] = SUSPICIOUS_PATTERNS,
) -> ModerationVerdict:
    """
    Screen text locally, then with the moderation provider.

    Args:
        text: Comment body
        provider: Object with check(text) -> ProviderResult that raises
            ProviderUnavailableError on failure. None means "not configured".

    Returns:
        ModerationVerdict. should_auto_approve is never True unless the
        provider call succeeded.
    """
    text = text or ""
    verdict = screen_local(text, lexicon, patterns)

    if verdict.has_profanity:
        return verdict

    try:
        if provider is None:
            raise ProviderUnavailableError("Moderation provider not configured")
        result = provider.check(text)
    except ProviderUnavailableError as e:
        log_warning(f"Moderation provider unavailable, using local screening only: {e.message}")
        verdict.external_flagged = False
        verdict.used_fallback = True
        verdict.should_auto_approve = False
        return verdict

    external_flagged = bool(result.flagged)
    verdict.external_flagged = external_flagged
    verdict.external_categories = list(result.flagged_categories)
    verdict.is_clean = verdict.is_clean and not external_flagged
    if external_flagged:
        verdict.confidence = _clamp(verdict.confidence - 0.4)
    verdict.should_auto_approve = verdict.is_clean and _within_auto_approve_length(text)
    return verdict


def sanitize_content(text: str) -> str:
    """Escape HTML so comment text can be shown safely."""
    return html.escape(text or "", quote=True)


# ============================================================================
# Time-based approval
# ============================================================================

# Fractional seconds of any width; datetime.fromisoformat on 3.10 wants 3 or 6 digits
_FRACTION_PATTERN = re.compile(r"(T\d{2}:\d{2}:\d{2})\.(\d+)")


def parse_timestamp(value: datetime | str) -> datetime:
    """
    Parse a Supabase timestamp (ISO-8601 string) or pass a datetime through.
    Naive values are treated as UTC.

    PostgREST drops trailing zeros from fractional seconds, so the fraction is
    padded/truncated to microseconds before parsing.

    Raises:
        ValueError: value is empty or not an ISO-8601 timestamp
    """
    if isinstance(value, datetime):
        parsed = value
    else:
        raw = str(value or "").strip()
        if not raw:
            raise ValueError("empty timestamp")
        if raw.endswith("Z"):
            raw = raw[:-1] + "+00:00"
        raw = _FRACTION_PATTERN.sub(lambda m: f"{m.group(1)}.{m.group(2)[:6].ljust(6, '0')}", raw, count=1)
        parsed = datetime.fromisoformat(raw)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _hours_between(created_at: datetime | str, now: datetime | str | None) -> Optional[float]:
    """Age in hours, or None when created_at cannot be parsed."""
    try:
        created = parse_timestamp(created_at)
    except (TypeError, ValueError):
        log_warning(f"Unparseable comment timestamp: {created_at!r}")
        return None
    current = parse_timestamp(now) if now is not None else datetime.now(timezone.utc)
    return (current - created).total_seconds() / 3600


def is_auto_approve_due(
    created_at: datetime | str,
    now: datetime | str | None = None,
    threshold_hours: float = DEFAULT_THRESHOLD_HOURS,
) -> bool:
    """True once a comment is at least threshold_hours old. Unknown age is never due."""
    age = _hours_between(created_at, now)
    return age is not None and age >= threshold_hours


def auto_approve_status(
    created_at: datetime | str,
    now: datetime | str | None = None,
    threshold_hours: float = DEFAULT_THRESHOLD_HOURS,
) -> Dict[str, Any]:
    """Countdown shown to operators ("auto-approve in Nh")."""
    age = _hours_between(created_at, now)
    if age is None:
        return {"will_auto_approve": False, "hours_remaining": None}
    remaining = max(0.0, threshold_hours - age)
    if remaining <= 0:
        return {"will_auto_approve": True, "hours_remaining": 0}
    return {"will_auto_approve": False, "hours_remaining": math.ceil(remaining)}
