"""Content guard for messages exchanged on threads that may include minors.

Detects contact details (emails, phone numbers, links) and workspace-configured
sensitive keywords.  Detection is a pure function; whether a flagged message is
rejected depends on the workspace guard mode and on the thread kind.
"""

from __future__ import annotations

import re
from typing import Iterable, Optional

from fairway.messages.models import ContentFlag, FlagType, GuardMode

# ---------------------------------------------------------------------------
# Patterns
# ---------------------------------------------------------------------------

_EMAIL_PATTERN = re.compile(r"\b[A-Z0-9._%+-]+@[A-Z0-9.-]+\.[A-Z]{2,}\b", re.IGNORECASE)

# Digits with optional leading "+", spaces, dots, dashes or parentheses.
_PHONE_PATTERN = re.compile(r"(?<![\w+])\+?\d[\d\s().-]{7,}\d\b")

_URL_PATTERN = re.compile(
    r"\b(?:https?://[^\s/$.?#].[^\s]*|www\.[^\s/$.?#].[^\s]*)\b",
    re.IGNORECASE,
)

_REGEX_CHECKS: list[tuple[FlagType, re.Pattern[str]]] = [
    (FlagType.email, _EMAIL_PATTERN),
    (FlagType.phone, _PHONE_PATTERN),
    (FlagType.url, _URL_PATTERN),
]

MAX_MATCHED_TEXT_LENGTH = 120


# ---------------------------------------------------------------------------
# Detection
# ---------------------------------------------------------------------------


def _dedupe(candidates: Iterable[tuple[FlagType, str]]) -> list[ContentFlag]:
    seen: set[tuple[FlagType, str]] = set()
    flags: list[ContentFlag] = []
    for flag_type, raw in candidates:
        value = raw.strip()
        key = (flag_type, value.lower())
        if not value or key in seen:
            continue
        seen.add(key)
        flags.append(ContentFlag(type=flag_type, matched_text=value[:MAX_MATCHED_TEXT_LENGTH]))
    return flags


def detect(text: Optional[str], keywords: Optional[Iterable[str]] = None) -> list[ContentFlag]:
    """Scan *text* and return the deduplicated list of content flags.

    Flags are ordered by type (email, phone, url, keyword) and then by first
    occurrence.  Keyword matching is a case-insensitive substring search and
    the flag carries the normalised keyword.  Absent input yields no flags.
    """
    body = (text or "").strip()
    if not body:
        return []

    candidates: list[tuple[FlagType, str]] = []
    for flag_type, pattern in _REGEX_CHECKS:
        candidates.extend((flag_type, m.group(0)) for m in pattern.finditer(body))

    body_lower = body.lower()
    for word in keywords or ():
        normalized = (word or "").strip().lower()
        if normalized and normalized in body_lower:
            candidates.append((FlagType.keyword, normalized))

    return _dedupe(candidates)


def should_block(
    policy: GuardMode | str,
    is_minor_thread: bool,
    flags: Iterable[ContentFlag],
) -> bool:
    """Return True only for flagged content on a minor thread under ``block`` mode."""
    mode = policy if isinstance(policy, GuardMode) else GuardMode(policy)
    return mode == GuardMode.block and is_minor_thread and len(list(flags)) > 0
