"""Data models for the message moderation filter."""

from __future__ import annotations

from dataclasses import dataclass, field

# User-facing rejection reasons. Every profanity match gets the same reason.
REASON_EMPTY = "Текст не может быть пустым"
REASON_TOO_LONG = "Текст не может быть длиннее {max_length} символов"
REASON_PROFANITY = "Текст содержит недопустимые слова"


@dataclass
class ModerationResult:
    """Result of a moderation check."""

    accepted: bool
    reason: str = ""
    violation_type: str = ""  # "empty" | "too_long" | "profanity" | ""


@dataclass(frozen=True)
class Lexicon:
    """Forbidden and allowed vocabulary, immutable once built."""

    forbidden: frozenset[str] = field(default_factory=frozenset)
    forbidden_phrases: frozenset[str] = field(default_factory=frozenset)
    allowed_words: frozenset[str] = field(default_factory=frozenset)
    allowed_phrases: frozenset[str] = field(default_factory=frozenset)
    allowed_latin: frozenset[str] = field(default_factory=frozenset)
