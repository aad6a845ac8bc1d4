"""Idempotent persistence helpers. Every write is an INSERT ... ON CONFLICT."""
