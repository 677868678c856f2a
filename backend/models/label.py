"""Transaction labels and the rules that apply them automatically."""

from sqlalchemy import Column, DateTime, ForeignKey, String
from sqlalchemy.orm import relationship

from database import Base
from models.utils import DEFAULT_USER_ID, generate_uuid, utc_now


class TransactionLabel(Base):
    """A user-defined label (e.g. "Groceries") that transactions can carry."""

    __tablename__ = "transaction_labels"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    user_id = Column(String, nullable=False, default=DEFAULT_USER_ID, index=True)
    name = Column(String, nullable=False)
    color = Column(String, nullable=False, default="#6366f1")
    created_at = Column(DateTime, default=utc_now)

    # Relationships
    rules = relationship(
        "LabelRule",
        back_populates="label",
        cascade="all, delete-orphan",
        order_by="LabelRule.created_at",
    )
    transactions = relationship("Transaction", back_populates="label")


class LabelRule(Base):
    """Labels unlabeled transactions whose payee or description contains a pattern.

    Matching is a case-insensitive substring test against ``match_field``:
    "payee", "description" or "both".
    """

    __tablename__ = "label_rules"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    user_id = Column(String, nullable=False, default=DEFAULT_USER_ID, index=True)
    label_id = Column(
        String(36), ForeignKey("transaction_labels.id", ondelete="CASCADE"), nullable=False, index=True
    )
    match_field = Column(String, nullable=False, default="description")
    match_pattern = Column(String, nullable=False)
    created_at = Column(DateTime, default=utc_now)

    # Relationships
    label = relationship("TransactionLabel", back_populates="rules")
