"""Message moderation: length validation and the profanity filter."""

from gratitude.moderation.models import ModerationResult
from gratitude.moderation.moderator import Moderator, validate_length

__all__ = ["ModerationResult", "Moderator", "validate_length"]
