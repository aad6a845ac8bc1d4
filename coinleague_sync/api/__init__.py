"""HTTP surface for triggering syncs and controlling workers."""
