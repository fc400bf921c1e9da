"""Stored gratitude messages: entity, store, duration rules and submission."""
