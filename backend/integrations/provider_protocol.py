"""Provider protocol definitions for multi-provider support.

This module defines the canonical record shapes and the common interface
that every data provider (SimpleFIN, Solana) implements.
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Protocol


class AccountType(str, Enum):
    """Canonical account types."""

    CHECKING = "checking"
    SAVINGS = "savings"
    CREDIT = "credit"
    INVESTMENT = "investment"
    CRYPTO = "crypto"
    OTHER = "other"


@dataclass
class ProviderAccount:
    """Normalized account data from any provider.

    All provider clients must map their account data to this format.
    """

    external_id: str  # Provider's ID for the account (wallet address for Solana)
    name: str
    type: AccountType
    balance_usd: Decimal | None = None
    metadata: dict[str, Any] = field(default_factory=dict)  # must stay JSON-serializable


@dataclass
class ProviderSnapshot:
    """Point-in-time value of one account."""

    account_external_id: str
    value_usd: Decimal
    timestamp: datetime


@dataclass
class ProviderTransaction:
    """Normalized transaction data from any provider."""

    account_external_id: str
    external_id: str
    posted_at: datetime
    amount: Decimal
    description: str = ""
    payee: str | None = None
    memo: str | None = None
    pending: bool = False


class ErrorCategory(str, Enum):
    """Category of a provider sync error."""

    CONNECTION = "connection"
    AUTH = "auth"
    RATE_LIMIT = "rate_limit"
    DATA = "data"
    UNKNOWN = "unknown"


@dataclass
class ProviderSyncError:
    """Structured error from a provider sync operation.

    Used for failures the provider reports without failing the whole
    sync (a SimpleFIN ``errors`` entry, one bad Solana wallet).
    """

    message: str
    category: ErrorCategory = ErrorCategory.UNKNOWN
    account_id: str | None = None
    retriable: bool = False

    def __str__(self) -> str:
        return self.message


@dataclass
class ProviderSyncResult:
    """Result of a provider sync_all() call."""

    accounts: list[ProviderAccount] = field(default_factory=list)
    snapshots: list[ProviderSnapshot] = field(default_factory=list)
    transactions: list[ProviderTransaction] = field(default_factory=list)
    errors: list[ProviderSyncError] = field(default_factory=list)


class ProviderClient(Protocol):
    """Protocol that all provider clients must implement."""

    @property
    def provider_name(self) -> str:
        """Return the provider name (e.g., 'SimpleFIN', 'Solana').

        This name is stored in the database to identify which provider
        an account came from.
        """
        ...

    def is_configured(self) -> bool:
        """Check if this provider has what it needs to sync.

        Returns:
            True if credentials/wallets are present, False otherwise.
        """
        ...

    async def sync_all(self, user_id: str) -> ProviderSyncResult:
        """Fetch and normalize everything the provider has for a user.

        Raises:
            ProviderConfigurationError: Before any network call, if the
                provider is not configured.
            ProviderError: If the fetch fails after retries.
        """
        ...
