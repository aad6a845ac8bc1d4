"""Utility helpers shared across the sync service."""
