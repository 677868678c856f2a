"""Account model - a canonical account synced from a data provider."""

from sqlalchemy import JSON, Boolean, Column, DateTime, Numeric, String, UniqueConstraint
from sqlalchemy.orm import relationship

from database import Base
from models.utils import DEFAULT_USER_ID, generate_uuid, utc_now


class Account(Base):
    """A provider account normalized into the canonical shape.

    Accounts come from SimpleFIN (bank/brokerage accounts) or Solana
    (one account per wallet). The combination of user_id + provider +
    external_id uniquely identifies an account; re-syncing the same
    external id updates this row instead of adding another.
    """

    __tablename__ = "accounts"
    __table_args__ = (
        UniqueConstraint(
            "user_id", "provider", "external_id", name="uix_user_provider_external_id"
        ),
    )

    id = Column(String(36), primary_key=True, default=generate_uuid)
    user_id = Column(String, nullable=False, default=DEFAULT_USER_ID, index=True)
    provider = Column(String, nullable=False)  # "SimpleFIN" | "Solana"
    name = Column(String, nullable=False)
    name_user_edited = Column(Boolean, nullable=False, default=False)
    type = Column(String, nullable=False, default="other")  # checking | savings | credit | investment | crypto | other
    balance_usd = Column(Numeric(18, 4), nullable=True)
    external_id = Column(String, nullable=True)
    # "metadata" is reserved on declarative classes, so the attribute is renamed
    provider_metadata = Column("metadata", JSON, nullable=False, default=dict)
    last_synced_at = Column(DateTime, nullable=True)

    # User-controlled flags, never touched by sync
    is_hidden = Column(Boolean, nullable=False, default=False)
    include_in_net_worth = Column(Boolean, nullable=False, default=True)
    category = Column(String, nullable=True)  # savings | retirement | assets | credit_cards | checking | crypto

    created_at = Column(DateTime, default=utc_now)
    updated_at = Column(DateTime, default=utc_now, onupdate=utc_now)

    # Relationships
    snapshots = relationship(
        "Snapshot", back_populates="account", cascade="all, delete-orphan"
    )
    transactions = relationship(
        "Transaction", back_populates="account", cascade="all, delete-orphan"
    )
