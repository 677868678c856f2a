"""Transaction model - a posted or pending transaction from a provider."""

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Numeric, String, Text, UniqueConstraint
from sqlalchemy.orm import relationship

from database import Base
from models.utils import generate_uuid, utc_now


class Transaction(Base):
    """A transaction record attached to an account.

    Deduplicated by (account_id, external_id): re-ingesting the same
    provider transaction updates it in place.
    """

    __tablename__ = "transactions"
    __table_args__ = (
        UniqueConstraint("account_id", "external_id", name="uix_transaction_account_external"),
    )

    id = Column(String(36), primary_key=True, default=generate_uuid)
    account_id = Column(
        String(36), ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False, index=True
    )
    external_id = Column(String, nullable=False)
    posted_at = Column(DateTime, nullable=False, index=True)
    amount = Column(Numeric(18, 4), nullable=False)
    description = Column(Text, nullable=False, default="")
    payee = Column(String, nullable=True)
    memo = Column(Text, nullable=True)
    pending = Column(Boolean, nullable=False, default=False)
    label_id = Column(
        String(36), ForeignKey("transaction_labels.id", ondelete="SET NULL"), nullable=True
    )
    created_at = Column(DateTime, default=utc_now)
    updated_at = Column(DateTime, default=utc_now, onupdate=utc_now)

    # Relationships
    account = relationship("Account", back_populates="transactions")
    label = relationship("TransactionLabel", back_populates="transactions")
