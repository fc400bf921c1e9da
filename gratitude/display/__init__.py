"""Viewer-side display logic: tiers, placement, scheduling and time sync."""
