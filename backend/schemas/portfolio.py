"""Pydantic schemas for portfolio summary and history."""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict


class PortfolioSummaryResponse(BaseModel):
    """Net-worth total with its 24 hour change."""

    total_value_usd: float
    account_count: int
    last_synced_at: Optional[datetime] = None
    change_24h: float
    change_percent_24h: float

    model_config = ConfigDict(from_attributes=True)


class PortfolioPointResponse(BaseModel):
    timestamp: datetime
    value: float

    model_config = ConfigDict(from_attributes=True)


class PortfolioHistoryResponse(BaseModel):
    interval: Literal["1h", "1d", "1w", "1m"]
    points: list[PortfolioPointResponse] = []
