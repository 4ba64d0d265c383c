"""Identifier generation."""

from ulid import ULID


def generate_id() -> str:
    """Generate a text-based, time-ordered ID (ULID format)."""
    return str(ULID())
