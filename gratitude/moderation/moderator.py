"""Profanity filter for gratitude messages.

The filter runs two passes over a normalized copy of the text:

1. a token pass, where every word is checked for containment of a forbidden
   term, and
2. a boundary pass, where every forbidden term and phrase is searched with
   word-boundary anchors to catch evasions the tokenizer splits apart.

Normalization lowercases the text, removes noise characters and symbol
substitutions inside words, transliterates Latin letters into Cyrillic and
joins words spelled out letter by letter.  An allow-list of words and
phrases keeps legitimate words that embed a short forbidden root from being
rejected.
"""

from __future__ import annotations

import logging
import re
from typing import Optional

from gratitude.moderation.lexicon import default_lexicon, fold
from gratitude.moderation.models import (
    REASON_EMPTY,
    REASON_PROFANITY,
    REASON_TOO_LONG,
    Lexicon,
    ModerationResult,
)

logger = logging.getLogger(__name__)

MAX_TEXT_LENGTH = 300
MIN_TOKEN_LENGTH = 2

# ---------------------------------------------------------------------------
# Normalization tables
# ---------------------------------------------------------------------------

_LETTER = r"[^\W\d_]"

# Characters dropped when they sit between two letters ("с.у.к.а", "х-у-й").
_NOISE_RE = re.compile(rf"(?<={_LETTER})[*._~'\"`^+\-]+(?={_LETTER})")

# Symbols and digits standing in for letters ("п1зда", "с@ка").
_SYMBOL_MAP: dict[str, str] = {
    "0": "о",
    "@": "а",
    "$": "с",
    "3": "з",
    "6": "б",
    "4": "ч",
    "1": "и",
    "!": "и",
    "|": "и",
}
_SYMBOL_RE = re.compile(rf"(?<={_LETTER})[0@$3641!|]+(?={_LETTER})")

# Latin to Cyrillic, closest phonetic equivalent.  Longer keys win.
_LATIN_MAP: dict[str, str] = {
    "sch": "щ",
    "sh": "ш",
    "ch": "ч",
    "zh": "ж",
    "kh": "х",
    "ts": "ц",
    "ya": "я",
    "yu": "ю",
    "yo": "е",
    "ay": "ай",
    "ey": "ей",
    "iy": "ий",
    "oy": "ой",
    "uy": "уй",
    "a": "а",
    "b": "б",
    "c": "с",
    "d": "д",
    "e": "е",
    "f": "ф",
    "g": "г",
    "h": "х",
    "i": "и",
    "j": "й",
    "k": "к",
    "l": "л",
    "m": "м",
    "n": "н",
    "o": "о",
    "p": "п",
    "q": "к",
    "r": "р",
    "s": "с",
    "t": "т",
    "u": "у",
    "v": "в",
    "w": "в",
    "x": "х",
    "y": "у",
    "z": "з",
}
_LATIN_RE = re.compile(
    "|".join(re.escape(k) for k in sorted(_LATIN_MAP, key=len, reverse=True))
)

_PUNCT_RE = re.compile(r"[^\w\s]|_")

# Three or more one-letter words in a row are a word spelled out ("с у к а").
_SPACED_RE = re.compile(r"(?<!\S)(?:[^\W_]\s+){2,}[^\W_](?!\S)")

_TOKEN_RE = re.compile(r"[^\W_]+")

_LATIN_WORD_RE = re.compile(r"(?<![^\W_])[a-z]+(?![^\W_])")


def _boundary_pattern(term: str) -> re.Pattern[str]:
    body = r"\s+".join(re.escape(part) for part in term.split())
    return re.compile(rf"(?<![^\W_]){body}(?![^\W_])")


def validate_length(text: str, max_length: int = MAX_TEXT_LENGTH) -> ModerationResult:
    """Reject empty or overlong text before moderation runs."""
    if not text or not text.strip():
        return ModerationResult(accepted=False, reason=REASON_EMPTY, violation_type="empty")
    if len(text) > max_length:
        return ModerationResult(
            accepted=False,
            reason=REASON_TOO_LONG.format(max_length=max_length),
            violation_type="too_long",
        )
    return ModerationResult(accepted=True)


# ---------------------------------------------------------------------------
# Moderator
# ---------------------------------------------------------------------------


class Moderator:
    """Stateless two-pass profanity filter over a fixed lexicon."""

    def __init__(
        self,
        lexicon: Lexicon | None = None,
        max_length: int = MAX_TEXT_LENGTH,
    ) -> None:
        self.lexicon = lexicon if lexicon is not None else default_lexicon()
        self.max_length = max_length
        # Longest terms first so the reported match is the most specific one.
        self._terms = sorted(self.lexicon.forbidden, key=len, reverse=True)
        self._patterns: list[tuple[str, re.Pattern[str]]] = [
            (term, _boundary_pattern(term))
            for term in sorted(
                self.lexicon.forbidden | self.lexicon.forbidden_phrases,
                key=len,
                reverse=True,
            )
        ]

    # -- normalization -------------------------------------------------------

    @staticmethod
    def normalize(text: str) -> str:
        """Return the canonical form the filter matches against."""
        out = fold(text)
        out = _NOISE_RE.sub("", out)
        out = _SYMBOL_RE.sub(lambda m: "".join(_SYMBOL_MAP[c] for c in m.group(0)), out)
        out = _LATIN_RE.sub(lambda m: _LATIN_MAP[m.group(0)], out)
        out = _PUNCT_RE.sub(" ", out)
        out = _SPACED_RE.sub(lambda m: "".join(m.group(0).split()), out)
        return " ".join(out.split())

    @staticmethod
    def tokenize(normalized: str) -> list[str]:
        """Split normalized text into words."""
        return _TOKEN_RE.findall(normalized)

    # -- allow-list ----------------------------------------------------------

    def _present_phrases(self, text: str) -> list[str]:
        folded = " ".join(fold(text).split())
        return [p for p in self.lexicon.allowed_phrases if p in folded]

    def _is_allowed_word(self, word: str, term: str) -> bool:
        allowed_words = self.lexicon.allowed_words
        if word in allowed_words:
            return True
        # A truncated allowed word ("колебал" of "колебался"), but never the
        # bare forbidden term itself ("ебать" of "хлебать").
        if word != term and any(len(a) > len(word) and word in a for a in allowed_words):
            return True
        # An inflected allowed word that carries the term ("процедурами").
        return any(term in a and a in word for a in allowed_words)

    def _excused(self, word: str, term: str, phrases: list[str]) -> bool:
        if " " not in word and self._is_allowed_word(word, term):
            return True
        # Phrase context only excuses terms the phrase itself contains.
        return any(term in phrase for phrase in phrases)

    # -- passes --------------------------------------------------------------

    def _latin_forms(self, text: str) -> tuple[set[str], set[str]]:
        """Normalized forms of pure-Latin words: (checked, allow-listed)."""
        checked: set[str] = set()
        allowed: set[str] = set()
        for word in _LATIN_WORD_RE.findall(_NOISE_RE.sub("", fold(text))):
            form = self.normalize(word)
            if word in self.lexicon.allowed_latin:
                allowed.add(form)
            else:
                checked.add(form)
        return checked, allowed

    def _token_pass(
        self,
        tokens: list[str],
        phrases: list[str],
        latin: set[str],
        latin_allowed: set[str],
    ) -> Optional[str]:
        for token in tokens:
            if len(token) < MIN_TOKEN_LENGTH or token in latin_allowed:
                continue
            # Transliterated words only match at their start ("debut" is fine).
            prefix_only = token in latin
            for term in self._terms:
                if prefix_only and not token.startswith(term):
                    continue
                if len(token) >= len(term) and term in token:
                    if not self._excused(token, term, phrases):
                        return term
        return None

    def _boundary_pass(
        self, normalized: str, phrases: list[str], latin_allowed: set[str]
    ) -> Optional[str]:
        for term, pattern in self._patterns:
            for match in pattern.finditer(normalized):
                if match.group(0) in latin_allowed:
                    continue
                if not self._excused(match.group(0), term, phrases):
                    return term
        return None

    # -- public API ----------------------------------------------------------

    def moderate(self, text: str) -> ModerationResult:
        """Check *text* against the lexicon.  Returns a ModerationResult."""
        normalized = self.normalize(text)
        phrases = self._present_phrases(text)
        latin, latin_allowed = self._latin_forms(text)

        hit = self._token_pass(self.tokenize(normalized), phrases, latin, latin_allowed)
        if hit is None:
            hit = self._boundary_pass(normalized, phrases, latin_allowed)
        if hit is not None:
            logger.debug("Rejected message (%d chars) by profanity filter", len(text))
            return ModerationResult(
                accepted=False, reason=REASON_PROFANITY, violation_type="profanity"
            )
        return ModerationResult(accepted=True)

    def validate(self, text: str) -> ModerationResult:
        """Length check first, then moderation."""
        result = validate_length(text, self.max_length)
        if not result.accepted:
            return result
        return self.moderate(text)
