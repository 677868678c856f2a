"""Pydantic schemas for the sync endpoint."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict


class ProviderSyncStatus(BaseModel):
    """Per-provider outcome of a sync."""

    success: bool
    synced: int = 0
    error: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class SyncResponse(BaseModel):
    """Schema for the sync result returned by POST /api/sync."""

    providers: dict[str, ProviderSyncStatus]
    total_synced: int
    total_value_usd: float
    account_count: int
    timestamp: datetime
    sync_session_id: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)
