"""Sync API endpoint."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Request
from sqlalchemy.orm import Session

from api.helpers import client_key, enforce, get_current_user_id, get_rate_limiters
from config import settings
from database import get_db
from schemas import ProviderSyncStatus, SyncResponse
from services.auth_service import AuthService
from services.rate_limiter import RateLimiters
from services.sync_service import SyncFailedError, SyncInProgressError, SyncResult, SyncService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/sync", tags=["sync"])


def get_sync_service() -> SyncService:
    """SyncService dependency; tests override it with a mock-backed registry."""
    return SyncService()


def sync_response(result: SyncResult) -> SyncResponse:
    return SyncResponse(
        providers={
            name: ProviderSyncStatus(success=o.success, synced=o.synced, error=o.error)
            for name, o in result.providers.items()
        },
        total_synced=result.total_synced,
        total_value_usd=float(result.total_value_usd),
        account_count=result.account_count,
        timestamp=result.timestamp,
        sync_session_id=result.sync_session_id,
    )


@router.post("", response_model=SyncResponse)
async def trigger_sync(
    request: Request,
    authorization: Optional[str] = Header(default=None),
    db: Session = Depends(get_db),
    sync_service: SyncService = Depends(get_sync_service),
    limiters: RateLimiters = Depends(get_rate_limiters),
    user_id: str = Depends(get_current_user_id),
):
    """Trigger a sync of every provider (for cron jobs and external callers).

    Requires ``Authorization: Bearer <SYNC_API_TOKEN>`` (AUTH_PASSWORD when
    no dedicated token is set).

    Raises:
        HTTPException:
            - 401 Unauthorized: Missing or wrong bearer token
            - 409 Conflict: Sync is already in progress
            - 429 Too Many Requests: Per-client limit reached
            - 500 Internal Server Error: No secret configured, or sync failed
    """
    if not settings.sync_secret:
        logger.error("Sync endpoint called but no sync secret is configured")
        raise HTTPException(status_code=500, detail="Server not configured")

    enforce(limiters.check_sync_trigger(client_key(request)))

    if not AuthService.verify_sync_token(authorization):
        raise HTTPException(status_code=401, detail="Unauthorized")

    try:
        result = await sync_service.trigger_sync(db, user_id)
    except SyncInProgressError:
        raise HTTPException(
            status_code=409,
            detail="Sync already in progress. Please wait for the current sync to complete.",
        )
    except SyncFailedError as e:
        logger.error("Sync failed: %s", e)
        raise HTTPException(status_code=500, detail="Sync failed")
    except Exception:
        # Safety catch for truly unexpected errors; never expose str(e)
        logger.error("Unexpected error during sync", exc_info=True)
        raise HTTPException(status_code=500, detail="Sync failed")

    return sync_response(result)
