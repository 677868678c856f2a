"""Accounts API endpoints."""

import logging

from fastapi import APIRouter, Depends, HTTPException, Response
from sqlalchemy.orm import Session

from api.helpers import get_current_user_id
from database import get_db
from integrations.exceptions import (
    InvalidWalletAddressError,
    ProviderAuthError,
    ProviderConfigurationError,
    ProviderError,
)
from schemas import (
    AccountResponse,
    AccountUpdate,
    SimpleFINConnectRequest,
    SimpleFINConnectResponse,
    SolanaConnectRequest,
    SolanaConnectResponse,
)
from services.account_service import AccountService
from services.sync_service import SyncService, WalletAlreadyConnectedError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/accounts", tags=["accounts"])


@router.get("", response_model=list[AccountResponse])
def list_accounts(
    include_hidden: bool = True,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    """List the user's accounts."""
    return AccountService.list_accounts(db, user_id, include_hidden=include_hidden)


@router.patch("/{account_id}", response_model=AccountResponse)
def update_account(
    account_id: str,
    update: AccountUpdate,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    """Update name, visibility, net-worth inclusion or category."""
    account = AccountService.update_account(
        db,
        account_id,
        user_id,
        name=update.name,
        is_hidden=update.is_hidden,
        include_in_net_worth=update.include_in_net_worth,
        category=update.category.value if update.category else None,
    )
    if account is None:
        raise HTTPException(status_code=404, detail="Account not found")
    return account


@router.delete("/{account_id}", status_code=204)
def delete_account(
    account_id: str,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    """Delete an account along with its snapshots and transactions."""
    if not AccountService.delete_account(db, account_id, user_id):
        raise HTTPException(status_code=404, detail="Account not found")
    return Response(status_code=204)


@router.post("/simplefin", response_model=SimpleFINConnectResponse)
async def connect_simplefin(
    body: SimpleFINConnectRequest,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    """Exchange a SimpleFIN setup token and sync the new connection."""
    try:
        count = await SyncService().connect_simplefin(db, user_id, body.setup_token)
    except ProviderConfigurationError:
        raise HTTPException(status_code=400, detail="Invalid SimpleFIN setup token")
    except ProviderAuthError:
        raise HTTPException(
            status_code=400,
            detail="SimpleFIN rejected the setup token. It may already have been used.",
        )
    except ProviderError as e:
        logger.warning("SimpleFIN connection failed: %s", e)
        raise HTTPException(status_code=502, detail="Failed to connect SimpleFIN")
    return SimpleFINConnectResponse(success=True, account_count=count)


@router.post("/solana", response_model=SolanaConnectResponse)
async def connect_solana_wallet(
    body: SolanaConnectRequest,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    """Start tracking a Solana wallet by address."""
    try:
        account = await SyncService().connect_solana_wallet(db, user_id, body.address)
    except InvalidWalletAddressError:
        raise HTTPException(status_code=400, detail="Invalid Solana wallet address")
    except WalletAlreadyConnectedError:
        raise HTTPException(status_code=409, detail="Wallet already connected")
    except ProviderError as e:
        logger.warning("Solana wallet connection failed: %s", e)
        raise HTTPException(status_code=502, detail="Failed to fetch wallet data")

    return SolanaConnectResponse(
        success=True,
        account=AccountResponse.model_validate(account),
        total_value_usd=float(account.balance_usd or 0),
        token_count=int((account.provider_metadata or {}).get("token_count", 0)),
    )
