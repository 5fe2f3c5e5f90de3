"""Shared, deterministic timestamps for tests."""

from datetime import UTC, datetime


# Fixed capture time so serialized reports compare exactly.
FIXED_NOW = datetime(2024, 3, 1, 12, 30, 45, 123000, tzinfo=UTC)
FIXED_NOW_ISO = "2024-03-01T12:30:45.123Z"
