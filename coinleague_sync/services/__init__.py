"""Sync services: reconciliation pipeline, on-chain enrichment and workers."""
