"""Portfolio API endpoints."""

import logging
from datetime import datetime
from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from api.helpers import get_current_user_id
from database import get_db
from schemas import PortfolioHistoryResponse, PortfolioPointResponse, PortfolioSummaryResponse
from services.portfolio_service import PortfolioService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/portfolio", tags=["portfolio"])


@router.get("/summary", response_model=PortfolioSummaryResponse)
def get_summary(
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    """Net-worth total, account count, last sync time and 24h change."""
    summary = PortfolioService.get_portfolio_summary(db, user_id)
    return PortfolioSummaryResponse(
        total_value_usd=float(summary.total_value_usd),
        account_count=summary.account_count,
        last_synced_at=summary.last_synced_at,
        change_24h=float(summary.change_24h),
        change_percent_24h=float(summary.change_percent_24h),
    )


@router.get("/history", response_model=PortfolioHistoryResponse)
def get_history(
    interval: Literal["1h", "1d", "1w", "1m"] = Query("1d"),
    start: Optional[datetime] = Query(None, description="Earliest snapshot time (inclusive)"),
    end: Optional[datetime] = Query(None, description="Latest snapshot time (inclusive)"),
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    """Portfolio value per time bucket, oldest first."""
    points = PortfolioService.get_portfolio_history(db, user_id, interval, start, end)
    return PortfolioHistoryResponse(
        interval=interval,
        points=[PortfolioPointResponse(timestamp=p.timestamp, value=float(p.value)) for p in points],
    )
