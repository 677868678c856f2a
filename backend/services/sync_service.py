"""Sync service - fans out to providers and persists what they return."""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

from sqlalchemy.orm import Session

from config import settings
from integrations.exceptions import InvalidWalletAddressError, ProviderError
from integrations.provider_protocol import ProviderClient, ProviderSyncResult
from integrations.provider_registry import ProviderRegistry, get_provider_registry
from integrations.simplefin_client import SimpleFINClient, claim_setup_token
from integrations.solana_client import SolanaClient, is_valid_solana_address
from models import Account, SyncLogEntry, SyncSession
from services.account_service import AccountService
from services.credential_service import CredentialService
from services.portfolio_service import PortfolioService

logger = logging.getLogger(__name__)


class SyncInProgressError(Exception):
    """Another sync is already running in this process."""


class SyncFailedError(Exception):
    """Every provider failed, so nothing was synced.

    Carries the per-provider result for logging; the HTTP layer only ever
    returns a generic message.
    """

    def __init__(self, message: str, result: "SyncResult | None" = None):
        self.result = result
        super().__init__(message)


class WalletAlreadyConnectedError(ValueError):
    """The wallet is already tracked for this user."""


@dataclass
class ProviderOutcome:
    success: bool
    synced: int = 0
    error: str | None = None


@dataclass
class SyncResult:
    """Outcome of one sync cycle across every registered provider."""

    providers: dict[str, ProviderOutcome] = field(default_factory=dict)
    total_synced: int = 0
    total_value_usd: Decimal = Decimal(0)
    account_count: int = 0
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    sync_session_id: str | None = None

    @property
    def any_succeeded(self) -> bool:
        return any(o.success for o in self.providers.values())


class SyncService:
    """Service for syncing portfolio data from every registered provider."""

    # Class-level lock shared across all instances to prevent overlapping
    # syncs within this process. Multi-worker deployments would need a
    # distributed lock instead.
    _sync_lock = asyncio.Lock()

    def __init__(self, provider_registry: Optional[ProviderRegistry] = None):
        """Initialize with optional provider registry for dependency injection.

        Args:
            provider_registry: Registry of providers. If None, one is built
                per sync from the user's stored credentials and wallets.
        """
        self._registry = provider_registry

    @classmethod
    def is_sync_in_progress(cls) -> bool:
        return cls._sync_lock.locked()

    def build_registry(self, db: Session, user_id: str) -> ProviderRegistry:
        """Registry for one user: SimpleFIN with their access URL, Solana with their wallets."""
        if self._registry is not None:
            return self._registry

        access_url = (
            CredentialService.get_access_token(db, user_id, "SimpleFIN")
            or settings.SIMPLEFIN_ACCESS_URL
        )
        wallets = AccountService.list_wallet_addresses(db, user_id) + list(
            settings.SOLANA_WALLET_ADDRESSES
        )
        return get_provider_registry(
            {
                "SimpleFIN": {"access_url": access_url},
                "Solana": {"wallet_addresses": wallets},
            }
        )

    @staticmethod
    def _persist_provider_result(
        db: Session,
        user_id: str,
        provider_name: str,
        result: ProviderSyncResult,
        synced_at: datetime,
    ) -> dict[str, Account]:
        """Upsert accounts, append snapshots and upsert transactions."""
        accounts = AccountService.upsert_accounts(
            db, user_id, provider_name, result.accounts, synced_at
        )
        AccountService.add_snapshots(db, accounts, result.snapshots)
        AccountService.upsert_transactions(db, accounts, result.transactions)
        return accounts

    async def trigger_sync(self, db: Session, user_id: str) -> SyncResult:
        """Sync every registered provider concurrently, then persist.

        Network fan-out happens first (``asyncio.gather``); each provider's
        results are then written in its own savepoint so one failing
        provider never rolls back another. Totals are recomputed from the
        database afterwards. Session work runs in a worker thread so the
        event loop only ever waits on the network.

        Raises:
            SyncInProgressError: If a sync is already running.
            SyncFailedError: If no provider succeeded.
        """
        if self._sync_lock.locked():
            logger.warning("Sync blocked: another sync is already in progress")
            raise SyncInProgressError("Sync already in progress")

        async with self._sync_lock:
            logger.info("Sync started for user %s", user_id)
            registry, sync_session = await asyncio.to_thread(self._start_session, db, user_id)
            provider_names = registry.list_providers()

            result = SyncResult(sync_session_id=sync_session.id)
            if not provider_names:
                await asyncio.to_thread(self._fail_empty_session, db, sync_session)
                raise SyncFailedError("No providers configured", result)

            fetched = await asyncio.gather(
                *(registry.get_provider(name).sync_all(user_id) for name in provider_names),
                return_exceptions=True,
            )
            for outcome in fetched:
                if isinstance(outcome, BaseException) and not isinstance(outcome, Exception):
                    raise outcome

            errors = await asyncio.to_thread(
                self._record_results, db, user_id, sync_session, provider_names, fetched, result
            )

            if not result.any_succeeded:
                logger.error("Sync failed for every provider: %s", "; ".join(errors))
                raise SyncFailedError("All providers failed", result)

            logger.info(
                "Sync completed: session %s, %d accounts synced",
                result.sync_session_id[:8], result.total_synced,
            )
            return result

    def _start_session(self, db: Session, user_id: str) -> tuple[ProviderRegistry, SyncSession]:
        registry = self.build_registry(db, user_id)
        sync_session = SyncSession(user_id=user_id, is_complete=False)
        db.add(sync_session)
        db.flush()
        return registry, sync_session

    @staticmethod
    def _fail_empty_session(db: Session, sync_session: SyncSession) -> None:
        sync_session.error_message = "No providers configured"
        db.commit()

    def _record_results(
        self,
        db: Session,
        user_id: str,
        sync_session: SyncSession,
        provider_names: list[str],
        fetched: list,
        result: SyncResult,
    ) -> list[str]:
        """Persist each provider's data, fill in ``result`` and return the error lines."""
        synced_at = datetime.now(timezone.utc)
        errors: list[str] = []
        for name, outcome in zip(provider_names, fetched):
            if isinstance(outcome, Exception):
                message = self._describe_failure(name, outcome)
                errors.append(f"{name}: {message}")
                result.providers[name] = ProviderOutcome(success=False, error=message)
                self._add_log_entry(db, sync_session, name, "failed", [message], 0)
                continue

            try:
                # Savepoint per provider: a failed write for one provider
                # is rolled back without touching the others.
                with db.begin_nested():
                    accounts = self._persist_provider_result(
                        db, user_id, name, outcome, synced_at
                    )
            except Exception:
                logger.error("Failed to store %s results", name, exc_info=True)
                message = "Failed to store provider data"
                errors.append(f"{name}: {message}")
                result.providers[name] = ProviderOutcome(success=False, error=message)
                self._add_log_entry(db, sync_session, name, "failed", [message], 0)
                continue

            result.providers[name] = ProviderOutcome(success=True, synced=len(accounts))
            self._add_log_entry(
                db,
                sync_session,
                name,
                "success",
                [str(e) for e in outcome.errors] or None,
                len(accounts),
            )
            logger.info("%s: synced %d accounts", name, len(accounts))

        sync_session.is_complete = result.any_succeeded
        if errors:
            sync_session.error_message = "; ".join(errors)
        db.commit()

        total = PortfolioService.get_total_value(db, user_id)
        result.total_synced = sum(o.synced for o in result.providers.values())
        result.total_value_usd = total.total_value_usd
        result.account_count = total.account_count
        result.timestamp = synced_at
        return errors

    @staticmethod
    def _describe_failure(provider_name: str, exc: Exception) -> str:
        if isinstance(exc, ProviderError):
            logger.warning("Provider error for %s: %s", provider_name, exc)
            return str(exc)
        # Never surface unexpected exception text
        logger.error("Unexpected error for provider %s", provider_name, exc_info=exc)
        return "Unexpected provider error"

    @staticmethod
    def _add_log_entry(
        db: Session,
        sync_session: SyncSession,
        provider_name: str,
        status: str,
        error_messages: list[str] | None,
        accounts_synced: int,
    ) -> None:
        db.add(
            SyncLogEntry(
                sync_session_id=sync_session.id,
                provider_name=provider_name,
                status=status,
                error_messages=error_messages,
                accounts_synced=accounts_synced,
            )
        )

    async def connect_simplefin(
        self,
        db: Session,
        user_id: str,
        setup_token: str,
        client: Optional[ProviderClient] = None,
    ) -> int:
        """Claim a setup token, store the access URL and sync SimpleFIN once.

        Returns:
            Number of accounts synced.
        """
        access_url = await claim_setup_token(setup_token)
        await asyncio.to_thread(self._store_access_url, db, user_id, access_url)

        client = client or SimpleFINClient(access_url=access_url)
        provider_result = await client.sync_all(user_id)
        accounts = await asyncio.to_thread(
            self._persist_and_commit, db, user_id, client.provider_name, provider_result
        )
        logger.info("SimpleFIN connected for user %s (%d accounts)", user_id, len(accounts))
        return len(accounts)

    async def connect_solana_wallet(
        self,
        db: Session,
        user_id: str,
        address: str,
        client: Optional[ProviderClient] = None,
    ) -> Account:
        """Start tracking a wallet: validate, value it and store the first snapshot.

        Raises:
            InvalidWalletAddressError: If the address is not a valid public key.
            WalletAlreadyConnectedError: If the wallet is already tracked.
        """
        address = address.strip()
        if not is_valid_solana_address(address):
            raise InvalidWalletAddressError(address)
        existing = await asyncio.to_thread(
            AccountService.find_by_external_id, db, user_id, "Solana", address
        )
        if existing:
            raise WalletAlreadyConnectedError(f"Wallet already connected: {address}")

        client = client or SolanaClient(wallet_addresses=[address])
        provider_result = await client.sync_all(user_id)
        accounts = await asyncio.to_thread(
            self._persist_and_commit, db, user_id, client.provider_name, provider_result
        )
        account = accounts[address]
        logger.info("Solana wallet connected: %s", account.name)
        return account

    @staticmethod
    def _store_access_url(db: Session, user_id: str, access_url: str) -> None:
        CredentialService.store_access_token(db, user_id, "SimpleFIN", access_url)
        db.commit()

    def _persist_and_commit(
        self, db: Session, user_id: str, provider_name: str, provider_result: ProviderSyncResult
    ) -> dict[str, Account]:
        accounts = self._persist_provider_result(
            db, user_id, provider_name, provider_result, datetime.now(timezone.utc)
        )
        db.commit()
        for account in accounts.values():
            db.refresh(account)
        return accounts
