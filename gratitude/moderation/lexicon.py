"""Loading of the forbidden/allowed vocabulary from YAML."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Iterable

import yaml

from gratitude.moderation.models import Lexicon

DEFAULT_LEXICON_PATH = Path(__file__).with_name("lexicon.yaml")


def fold(text: str) -> str:
    """Lowercase and fold ``ё`` into ``е``."""
    return text.lower().replace("ё", "е")


def _terms(values: Iterable[str] | None) -> frozenset[str]:
    cleaned = (" ".join(fold(str(v)).split()) for v in values or [])
    return frozenset(v for v in cleaned if v)


def build_lexicon(data: dict) -> Lexicon:
    """Build a :class:`Lexicon` from a mapping with the YAML file's keys."""
    return Lexicon(
        forbidden=_terms(data.get("forbidden")),
        forbidden_phrases=_terms(data.get("forbidden_phrases")),
        allowed_words=_terms(data.get("allowed_words")),
        allowed_phrases=_terms(data.get("allowed_phrases")),
        allowed_latin=_terms(data.get("allowed_latin")),
    )


def load_lexicon(path: str | Path) -> Lexicon:
    """Load a lexicon from a YAML file."""
    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    return build_lexicon(data)


@lru_cache(maxsize=1)
def default_lexicon() -> Lexicon:
    """Return the lexicon shipped with the package, loaded once per process."""
    return load_lexicon(DEFAULT_LEXICON_PATH)
