"""Account management service.

Covers the idempotent storage side of sync (account upsert, append-only
snapshots, transaction upsert) and the user-facing CRUD operations.
"""

import logging
from datetime import datetime
from decimal import Decimal

from sqlalchemy.orm import Session

from integrations.provider_protocol import ProviderAccount, ProviderSnapshot, ProviderTransaction
from models import Account, Snapshot, Transaction

logger = logging.getLogger(__name__)

ACCOUNT_CATEGORIES = frozenset(
    {"savings", "retirement", "assets", "credit_cards", "checking", "crypto"}
)


class AccountService:
    """Service for account persistence and CRUD operations."""

    @staticmethod
    def list_accounts(db: Session, user_id: str, *, include_hidden: bool = True) -> list[Account]:
        """List a user's accounts, ordered by provider then name."""
        query = db.query(Account).filter(Account.user_id == user_id)
        if not include_hidden:
            query = query.filter(Account.is_hidden.is_(False))
        return query.order_by(Account.provider, Account.name).all()

    @staticmethod
    def get_account(db: Session, account_id: str, user_id: str | None = None) -> Account | None:
        """Get a specific account by ID, optionally scoped to a user."""
        query = db.query(Account).filter(Account.id == account_id)
        if user_id is not None:
            query = query.filter(Account.user_id == user_id)
        return query.first()

    @staticmethod
    def find_by_external_id(
        db: Session, user_id: str, provider_name: str, external_id: str
    ) -> Account | None:
        return (
            db.query(Account)
            .filter_by(user_id=user_id, provider=provider_name, external_id=external_id)
            .first()
        )

    @staticmethod
    def list_wallet_addresses(db: Session, user_id: str) -> list[str]:
        """External ids of the user's Solana accounts (their wallet addresses)."""
        rows = (
            db.query(Account.external_id)
            .filter(
                Account.user_id == user_id,
                Account.provider == "Solana",
                Account.external_id.isnot(None),
            )
            .order_by(Account.created_at)
            .all()
        )
        return [row[0] for row in rows]

    @staticmethod
    def update_account(
        db: Session,
        account_id: str,
        user_id: str,
        *,
        name: str | None = None,
        is_hidden: bool | None = None,
        include_in_net_worth: bool | None = None,
        category: str | None = None,
    ) -> Account | None:
        """Update the user-controlled fields of an account.

        Raises:
            ValueError: If ``category`` is not a known category.
        """
        account = AccountService.get_account(db, account_id, user_id)
        if not account:
            return None

        if category is not None and category not in ACCOUNT_CATEGORIES:
            raise ValueError(f"Unknown account category: {category}")

        if name is not None:
            account.name = name
            account.name_user_edited = True
        if is_hidden is not None:
            account.is_hidden = is_hidden
        if include_in_net_worth is not None:
            account.include_in_net_worth = include_in_net_worth
        if category is not None:
            account.category = category

        db.commit()
        db.refresh(account)
        logger.info("Account updated: %s (id=%s)", account.name, account.id)
        return account

    @staticmethod
    def delete_account(db: Session, account_id: str, user_id: str) -> bool:
        """Delete an account with its snapshots and transactions."""
        account = AccountService.get_account(db, account_id, user_id)
        if not account:
            return False
        name = account.name
        db.delete(account)
        db.commit()
        logger.info("Account deleted: %s (id=%s)", name, account_id)
        return True

    @staticmethod
    def upsert_accounts(
        db: Session,
        user_id: str,
        provider_name: str,
        remote_accounts: list[ProviderAccount],
        synced_at: datetime,
    ) -> dict[str, Account]:
        """Create or update accounts keyed by (user_id, provider, external_id).

        Sync-owned fields are overwritten; user-controlled fields (hidden,
        net-worth inclusion, category) and a user-edited name are kept.

        Returns:
            Upserted accounts keyed by external id (flushed, not committed).
        """
        upserted: dict[str, Account] = {}
        new_count = 0
        existing_count = 0
        for remote in remote_accounts:
            existing = AccountService.find_by_external_id(
                db, user_id, provider_name, remote.external_id
            )
            if existing:
                # Preserve user-edited name
                if not existing.name_user_edited:
                    existing.name = remote.name
                existing.type = remote.type.value
                existing.balance_usd = remote.balance_usd
                existing.provider_metadata = remote.metadata
                existing.last_synced_at = synced_at
                upserted[remote.external_id] = existing
                existing_count += 1
            else:
                account = Account(
                    user_id=user_id,
                    provider=provider_name,
                    external_id=remote.external_id,
                    name=remote.name,
                    type=remote.type.value,
                    balance_usd=remote.balance_usd,
                    provider_metadata=remote.metadata,
                    last_synced_at=synced_at,
                )
                db.add(account)
                upserted[remote.external_id] = account
                new_count += 1

        db.flush()  # Ensure new accounts get IDs
        logger.info(
            "%s: accounts upserted (%d new, %d existing)",
            provider_name, new_count, existing_count,
        )
        return upserted

    @staticmethod
    def add_snapshots(
        db: Session,
        accounts_by_external_id: dict[str, Account],
        snapshots: list[ProviderSnapshot],
    ) -> int:
        """Append one snapshot row per provider snapshot. Never updates."""
        count = 0
        for snap in snapshots:
            account = accounts_by_external_id.get(snap.account_external_id)
            if account is None:
                logger.warning(
                    "Snapshot for unknown account %s skipped", snap.account_external_id
                )
                continue
            db.add(
                Snapshot(
                    account_id=account.id,
                    value_usd=Decimal(snap.value_usd),
                    timestamp=snap.timestamp,
                )
            )
            count += 1
        db.flush()
        return count

    @staticmethod
    def upsert_transactions(
        db: Session,
        accounts_by_external_id: dict[str, Account],
        provider_transactions: list[ProviderTransaction],
    ) -> tuple[int, int]:
        """Insert new transactions and update known ones in place.

        Identity is (account_id, external_id). Existing ids are loaded in
        one query per account.

        Returns:
            (inserted, updated) counts.
        """
        by_account: dict[str, list[ProviderTransaction]] = {}
        for txn in provider_transactions:
            by_account.setdefault(txn.account_external_id, []).append(txn)

        inserted = 0
        updated = 0
        for external_account_id, txns in by_account.items():
            account = accounts_by_external_id.get(external_account_id)
            if account is None:
                logger.warning(
                    "%d transactions for unknown account %s skipped",
                    len(txns), external_account_id,
                )
                continue

            existing = {
                t.external_id: t
                for t in db.query(Transaction).filter(Transaction.account_id == account.id).all()
            }
            for txn in txns:
                row = existing.get(txn.external_id)
                if row is None:
                    row = Transaction(account_id=account.id, external_id=txn.external_id)
                    db.add(row)
                    existing[txn.external_id] = row
                    inserted += 1
                else:
                    updated += 1
                row.posted_at = txn.posted_at
                row.amount = txn.amount
                row.description = txn.description
                row.payee = txn.payee
                row.memo = txn.memo
                row.pending = txn.pending

        db.flush()
        if inserted or updated:
            logger.info("Transactions stored (%d new, %d updated)", inserted, updated)
        return inserted, updated
