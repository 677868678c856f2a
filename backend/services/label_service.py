"""Transaction labels, labeling rules and rule application."""

import logging
import random

from sqlalchemy.orm import Session

from models import Account, LabelRule, Transaction, TransactionLabel

logger = logging.getLogger(__name__)

LABEL_COLORS = [
    "#ef4444",  # red
    "#f97316",  # orange
    "#eab308",  # yellow
    "#22c55e",  # green
    "#14b8a6",  # teal
    "#3b82f6",  # blue
    "#8b5cf6",  # violet
    "#ec4899",  # pink
]

MATCH_FIELDS = ("description", "payee", "both")


class LabelNotFoundError(LookupError):
    """The label does not exist for this user."""


def rule_matches(match_field: str, pattern: str, payee: str | None, description: str | None) -> bool:
    """Case-insensitive substring match of ``pattern`` against the chosen field(s)."""
    needle = pattern.lower()
    in_payee = bool(payee) and needle in payee.lower()
    in_description = needle in (description or "").lower()
    if match_field == "payee":
        return in_payee
    if match_field == "description":
        return in_description
    if match_field == "both":
        return in_payee or in_description
    return False


class LabelService:
    """Service for labeling transactions by hand or by rule."""

    @staticmethod
    def list_labels(db: Session, user_id: str) -> list[TransactionLabel]:
        """The user's labels, ordered by name, with their rules loaded."""
        return (
            db.query(TransactionLabel)
            .filter(TransactionLabel.user_id == user_id)
            .order_by(TransactionLabel.name)
            .all()
        )

    @staticmethod
    def get_label(db: Session, label_id: str, user_id: str) -> TransactionLabel | None:
        return (
            db.query(TransactionLabel)
            .filter(TransactionLabel.id == label_id, TransactionLabel.user_id == user_id)
            .first()
        )

    @staticmethod
    def create_label(
        db: Session, user_id: str, name: str, color: str | None = None
    ) -> TransactionLabel:
        """Create a label; a palette color is picked when none is given."""
        label = TransactionLabel(
            user_id=user_id,
            name=name,
            color=color or random.choice(LABEL_COLORS),
        )
        db.add(label)
        db.commit()
        db.refresh(label)
        logger.info("Label created: %s (id=%s)", label.name, label.id)
        return label

    @staticmethod
    def delete_label(db: Session, label_id: str, user_id: str) -> bool:
        """Delete a label and its rules. Transactions carrying it become unlabeled."""
        label = LabelService.get_label(db, label_id, user_id)
        if not label:
            return False
        # SQLite does not enforce ON DELETE SET NULL without the foreign_keys pragma
        db.query(Transaction).filter(Transaction.label_id == label_id).update(
            {Transaction.label_id: None}, synchronize_session="fetch"
        )
        name = label.name
        db.delete(label)
        db.commit()
        logger.info("Label deleted: %s (id=%s)", name, label_id)
        return True

    @staticmethod
    def label_transaction(
        db: Session,
        transaction_id: str,
        user_id: str,
        label_id: str | None,
        create_rule: bool = False,
    ) -> Transaction | None:
        """Set (or clear, with ``label_id=None``) a transaction's label.

        With ``create_rule`` a rule is also added that matches the
        transaction's payee, or its description when it has no payee.

        Returns:
            The updated transaction, or None if it does not exist.

        Raises:
            LabelNotFoundError: If ``label_id`` is not one of the user's labels.
        """
        txn = (
            db.query(Transaction)
            .join(Account, Transaction.account_id == Account.id)
            .filter(Transaction.id == transaction_id, Account.user_id == user_id)
            .first()
        )
        if txn is None:
            return None
        if label_id is not None and LabelService.get_label(db, label_id, user_id) is None:
            raise LabelNotFoundError(label_id)

        txn.label_id = label_id
        if create_rule and label_id:
            pattern = txn.payee or txn.description
            if pattern:
                db.add(
                    LabelRule(
                        user_id=user_id,
                        label_id=label_id,
                        match_field="payee" if txn.payee else "description",
                        match_pattern=pattern,
                    )
                )
        db.commit()
        db.refresh(txn)
        return txn

    @staticmethod
    def create_rule(
        db: Session,
        user_id: str,
        label_id: str,
        match_pattern: str,
        match_field: str = "description",
    ) -> LabelRule:
        """Add a rule to a label.

        Raises:
            LabelNotFoundError: If the label does not exist for this user.
            ValueError: If ``match_field`` is not description, payee or both.
        """
        if match_field not in MATCH_FIELDS:
            raise ValueError(f"Unsupported match field: {match_field}")
        if LabelService.get_label(db, label_id, user_id) is None:
            raise LabelNotFoundError(label_id)

        rule = LabelRule(
            user_id=user_id,
            label_id=label_id,
            match_field=match_field,
            match_pattern=match_pattern,
        )
        db.add(rule)
        db.commit()
        db.refresh(rule)
        return rule

    @staticmethod
    def delete_rule(db: Session, rule_id: str, user_id: str) -> bool:
        rule = (
            db.query(LabelRule)
            .filter(LabelRule.id == rule_id, LabelRule.user_id == user_id)
            .first()
        )
        if not rule:
            return False
        db.delete(rule)
        db.commit()
        return True

    @staticmethod
    def apply_rules(db: Session, user_id: str) -> int:
        """Label every unlabeled transaction that a rule matches.

        Rules are tried oldest first and the first match wins. Transactions
        that already carry a label are left alone.

        Returns:
            Number of transactions labeled.
        """
        rules = (
            db.query(LabelRule)
            .filter(LabelRule.user_id == user_id)
            .order_by(LabelRule.created_at)
            .all()
        )
        if not rules:
            return 0

        unlabeled = (
            db.query(Transaction)
            .join(Account, Transaction.account_id == Account.id)
            .filter(Account.user_id == user_id, Transaction.label_id.is_(None))
            .all()
        )

        applied = 0
        for txn in unlabeled:
            for rule in rules:
                if rule_matches(rule.match_field, rule.match_pattern, txn.payee, txn.description):
                    txn.label_id = rule.label_id
                    applied += 1
                    break
        db.commit()
        logger.info("Label rules applied to %d of %d unlabeled transactions", applied, len(unlabeled))
        return applied
