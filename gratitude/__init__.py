"""Gratitude Wall: moderated gratitude messages shown as floating bubbles."""

__version__ = "0.1.0"
