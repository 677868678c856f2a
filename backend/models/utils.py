"""Shared utilities for ORM models."""

import uuid
from datetime import datetime, timezone

# Single-user deployments store everything under this user id.
DEFAULT_USER_ID = "default"


def generate_uuid() -> str:
    """Generate a UUID string."""
    return str(uuid.uuid4())


def utc_now() -> datetime:
    """Current time as an aware UTC datetime (column default)."""
    return datetime.now(timezone.utc)
