"""SQLAlchemy ORM models."""

from .account import Account
from .credential import Credential
from .label import LabelRule, TransactionLabel
from .snapshot import Snapshot
from .sync_log import SyncLogEntry
from .sync_session import SyncSession
from .transaction import Transaction
from .utils import DEFAULT_USER_ID, generate_uuid

__all__ = [
    "Account",
    "Credential",
    "DEFAULT_USER_ID",
    "LabelRule",
    "Snapshot",
    "SyncLogEntry",
    "SyncSession",
    "Transaction",
    "TransactionLabel",
    "generate_uuid",
]
