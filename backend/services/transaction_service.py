"""Transaction queries: recent activity, period listings and spending summaries."""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from decimal import Decimal

from sqlalchemy.orm import Session, joinedload

from integrations.parsing_utils import to_naive_utc
from models import Account, Transaction, TransactionLabel

logger = logging.getLogger(__name__)

# (period, label, days)
SUMMARY_PERIODS: list[tuple[str, str, int]] = [
    ("1d", "24 Hours", 1),
    ("1w", "7 Days", 7),
    ("1m", "30 Days", 30),
    ("1y", "1 Year", 365),
]

TOP_PAYEES = 10


@dataclass
class SpendingSummary:
    period: str
    label: str
    spending: Decimal
    income: Decimal
    net: Decimal
    transaction_count: int


@dataclass
class PayeeTotal:
    name: str
    amount: Decimal = Decimal(0)
    count: int = 0
    label: TransactionLabel | None = None


@dataclass
class PeriodTransactions:
    transactions: list[tuple[Transaction, str]] = field(default_factory=list)
    top_spending: list[PayeeTotal] = field(default_factory=list)
    top_income: list[PayeeTotal] = field(default_factory=list)


class TransactionService:
    """Read-side queries over stored transactions."""

    @staticmethod
    def get_recent_transactions(
        db: Session, user_id: str, limit: int = 10
    ) -> list[tuple[Transaction, str]]:
        """Most recent transactions across the user's accounts.

        Returns:
            (transaction, account name) pairs, newest first.
        """
        return (
            db.query(Transaction, Account.name)
            .join(Account, Transaction.account_id == Account.id)
            .options(joinedload(Transaction.label))
            .filter(Account.user_id == user_id)
            .order_by(Transaction.posted_at.desc())
            .limit(limit)
            .all()
        )

    @staticmethod
    def get_spending_summaries(
        db: Session, user_id: str, now: datetime | None = None
    ) -> list[SpendingSummary]:
        """Spending, income and net over each of :data:`SUMMARY_PERIODS`.

        Negative amounts count as spending (by absolute value), everything
        else as income.
        """
        now = now or datetime.now(timezone.utc)
        longest = max(days for _, _, days in SUMMARY_PERIODS)
        earliest = now - timedelta(days=longest)

        rows = (
            db.query(Transaction.posted_at, Transaction.amount)
            .join(Account, Transaction.account_id == Account.id)
            .filter(Account.user_id == user_id, Transaction.posted_at >= earliest)
            .all()
        )

        summaries = []
        for period, label, days in SUMMARY_PERIODS:
            cutoff = now - timedelta(days=days)
            spending = Decimal(0)
            income = Decimal(0)
            count = 0
            for posted_at, amount in rows:
                if posted_at.tzinfo is None:
                    posted_at = posted_at.replace(tzinfo=timezone.utc)
                if posted_at < cutoff:
                    continue
                count += 1
                if amount < 0:
                    spending += -amount
                else:
                    income += amount
            summaries.append(
                SpendingSummary(
                    period=period,
                    label=label,
                    spending=spending,
                    income=income,
                    net=income - spending,
                    transaction_count=count,
                )
            )
        return summaries

    @staticmethod
    def get_transactions_for_period(
        db: Session, user_id: str, period_days: int, now: datetime | None = None
    ) -> PeriodTransactions:
        """Transactions posted in the last ``period_days`` days plus top payees.

        Payees are grouped by payee, falling back to the description, then
        "Unknown". Each group keeps the label of its newest transaction.
        """
        now = now or datetime.now(timezone.utc)
        cutoff = now - timedelta(days=period_days)
        rows = (
            db.query(Transaction, Account.name)
            .join(Account, Transaction.account_id == Account.id)
            .options(joinedload(Transaction.label))
            .filter(Account.user_id == user_id, Transaction.posted_at >= to_naive_utc(cutoff))
            .order_by(Transaction.posted_at.desc())
            .all()
        )

        spending: dict[str, PayeeTotal] = {}
        income: dict[str, PayeeTotal] = {}
        for txn, _ in rows:
            name = txn.payee or txn.description or "Unknown"
            bucket = spending if txn.amount < 0 else income
            total = bucket.setdefault(name, PayeeTotal(name=name, label=txn.label))
            total.amount += abs(txn.amount)
            total.count += 1

        return PeriodTransactions(
            transactions=rows,
            top_spending=_top(spending.values()),
            top_income=_top(income.values()),
        )


def _top(totals) -> list[PayeeTotal]:
    return sorted(totals, key=lambda t: t.amount, reverse=True)[:TOP_PAYEES]
