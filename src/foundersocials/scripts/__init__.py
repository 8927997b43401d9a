"""Operational scripts (migrations, local setup)."""
