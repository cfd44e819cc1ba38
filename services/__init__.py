"""Authentication and session services."""
