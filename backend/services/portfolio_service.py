"""Portfolio aggregation: total value, bucketed history and 24h change.

History is derived on read from the append-only snapshot table and never
persisted. ``build_history`` and ``calculate_change`` are pure functions;
the ``PortfolioService`` methods wrap them with database reads.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Iterable, Literal

from sqlalchemy.orm import Session

from integrations.parsing_utils import ensure_utc, to_naive_utc
from models import Account, Snapshot

logger = logging.getLogger(__name__)

Interval = Literal["1h", "1d", "1w", "1m"]

INTERVAL_SECONDS: dict[str, int] = {
    "1h": 60 * 60,
    "1d": 24 * 60 * 60,
    "1w": 7 * 24 * 60 * 60,
    "1m": 30 * 24 * 60 * 60,
}

DEFAULT_LOOKBACK = timedelta(hours=24)

# Window of hourly history the summary searches for its 24h baseline.
SUMMARY_HISTORY_WINDOW = timedelta(hours=48)


@dataclass(frozen=True)
class PortfolioPoint:
    timestamp: datetime
    value: Decimal


@dataclass(frozen=True)
class PortfolioChange:
    change: Decimal
    change_percent: Decimal


@dataclass(frozen=True)
class SnapshotRecord:
    """The snapshot fields history bucketing needs."""

    account_id: str
    timestamp: datetime
    value_usd: Decimal


@dataclass
class TotalValue:
    total_value_usd: Decimal
    account_count: int
    last_synced_at: datetime | None


@dataclass
class PortfolioSummary:
    total_value_usd: Decimal
    account_count: int
    last_synced_at: datetime | None
    change_24h: Decimal
    change_percent_24h: Decimal


def calculate_change(
    history: list[PortfolioPoint],
    current_value: Decimal,
    *,
    now: datetime | None = None,
    lookback: timedelta = DEFAULT_LOOKBACK,
) -> PortfolioChange:
    """Change of ``current_value`` against the point nearest ``now - lookback``.

    There is no distance cutoff: with sparse history the nearest point is
    used however far away it is. On equal distance the earliest point wins.
    A zero baseline yields a 0% change.
    """
    if not history:
        return PortfolioChange(change=Decimal(0), change_percent=Decimal(0))

    now = ensure_utc(now or datetime.now(timezone.utc))
    target = now - lookback

    baseline = min(
        history,
        key=lambda p: (abs(ensure_utc(p.timestamp) - target), ensure_utc(p.timestamp)),
    )
    current_value = Decimal(current_value)
    previous = Decimal(baseline.value)
    change = current_value - previous
    if previous == 0:
        percent = Decimal(0)
    else:
        percent = change / previous * 100
    return PortfolioChange(change=change, change_percent=percent)


def bucket_start(timestamp: datetime, interval: str) -> datetime:
    """Start of the ``interval`` bucket containing ``timestamp`` (epoch aligned)."""
    bucket = INTERVAL_SECONDS[interval]
    epoch_seconds = int(ensure_utc(timestamp).timestamp())
    return datetime.fromtimestamp(epoch_seconds // bucket * bucket, tz=timezone.utc)


def build_history(snapshots: Iterable[SnapshotRecord], interval: str = "1d") -> list[PortfolioPoint]:
    """Aggregate snapshots into one portfolio value per time bucket.

    Each account contributes its latest snapshot within a bucket, so two
    syncs in the same hour do not double count. The bucket value is the
    sum over accounts.

    Raises:
        ValueError: If ``interval`` is not one of 1h, 1d, 1w, 1m.
    """
    if interval not in INTERVAL_SECONDS:
        raise ValueError(f"Unsupported interval: {interval}")

    # bucket -> account_id -> (timestamp, value)
    buckets: dict[datetime, dict[str, tuple[datetime, Decimal]]] = {}
    for snap in snapshots:
        ts = ensure_utc(snap.timestamp)
        per_account = buckets.setdefault(bucket_start(ts, interval), {})
        current = per_account.get(snap.account_id)
        if current is None or ts >= current[0]:
            per_account[snap.account_id] = (ts, Decimal(snap.value_usd))

    return [
        PortfolioPoint(
            timestamp=key,
            value=sum((value for _, value in per_account.values()), Decimal(0)),
        )
        for key, per_account in sorted(buckets.items())
    ]


class PortfolioService:
    """Database-backed portfolio reads."""

    @staticmethod
    def get_total_value(db: Session, user_id: str, *, net_worth_only: bool = False) -> TotalValue:
        """Fresh read of the user's total balance.

        Args:
            net_worth_only: Leave out hidden accounts and accounts excluded
                from net worth.
        """
        query = db.query(Account.balance_usd, Account.last_synced_at).filter(
            Account.user_id == user_id
        )
        if net_worth_only:
            query = query.filter(
                Account.is_hidden.is_(False),
                Account.include_in_net_worth.is_(True),
            )
        rows = query.all()

        total = sum(
            (Decimal(balance) for balance, _ in rows if balance is not None), Decimal(0)
        )
        synced = [ensure_utc(ts) for _, ts in rows if ts is not None]
        return TotalValue(
            total_value_usd=total,
            account_count=len(rows),
            last_synced_at=max(synced) if synced else None,
        )

    @staticmethod
    def get_snapshots(
        db: Session,
        user_id: str,
        start: datetime | None = None,
        end: datetime | None = None,
        *,
        net_worth_only: bool = False,
    ) -> list[SnapshotRecord]:
        """Snapshots for the user's accounts in ``[start, end]``, oldest first."""
        query = (
            db.query(Snapshot.account_id, Snapshot.timestamp, Snapshot.value_usd)
            .join(Account, Snapshot.account_id == Account.id)
            .filter(Account.user_id == user_id)
        )
        if net_worth_only:
            query = query.filter(
                Account.is_hidden.is_(False),
                Account.include_in_net_worth.is_(True),
            )
        if start is not None:
            query = query.filter(Snapshot.timestamp >= to_naive_utc(start))
        if end is not None:
            query = query.filter(Snapshot.timestamp <= to_naive_utc(end))
        rows = query.order_by(Snapshot.timestamp.asc()).all()
        return [SnapshotRecord(account_id=a, timestamp=t, value_usd=v) for a, t, v in rows]

    @staticmethod
    def get_portfolio_history(
        db: Session,
        user_id: str,
        interval: str = "1d",
        start: datetime | None = None,
        end: datetime | None = None,
        *,
        net_worth_only: bool = False,
    ) -> list[PortfolioPoint]:
        snapshots = PortfolioService.get_snapshots(
            db, user_id, start, end, net_worth_only=net_worth_only
        )
        return build_history(snapshots, interval)

    @staticmethod
    def get_portfolio_summary(
        db: Session, user_id: str, now: datetime | None = None
    ) -> PortfolioSummary:
        """Net-worth total plus its change over the last 24 hours."""
        now = now or datetime.now(timezone.utc)
        total = PortfolioService.get_total_value(db, user_id, net_worth_only=True)
        history = PortfolioService.get_portfolio_history(
            db,
            user_id,
            "1h",
            start=now - SUMMARY_HISTORY_WINDOW,
            end=now,
            net_worth_only=True,
        )
        change = calculate_change(history, total.total_value_usd, now=now)
        return PortfolioSummary(
            total_value_usd=total.total_value_usd,
            account_count=total.account_count,
            last_synced_at=total.last_synced_at,
            change_24h=change.change,
            change_percent_24h=change.change_percent,
        )
