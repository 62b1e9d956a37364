"""Admin HTTP API for partition lifecycle operations."""
