"""Snapshot model - an account's USD value at a point in time."""

from sqlalchemy import Column, DateTime, ForeignKey, Numeric, String
from sqlalchemy.orm import relationship

from database import Base
from models.utils import generate_uuid, utc_now


class Snapshot(Base):
    """Append-only time series of account values.

    One row is written per account per sync cycle and never updated;
    portfolio history is rebuilt from these rows on read.
    """

    __tablename__ = "snapshots"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    account_id = Column(
        String(36), ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False, index=True
    )
    value_usd = Column(Numeric(18, 4), nullable=False)
    timestamp = Column(DateTime, nullable=False, index=True)
    created_at = Column(DateTime, default=utc_now)

    # Relationships
    account = relationship("Account", back_populates="snapshots")
