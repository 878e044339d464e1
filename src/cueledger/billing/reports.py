"""
Revenue Reports

Buckets collected payments by day, week or month for the admin dashboard,
with a billiard / ps4 split taken from each payment's session station.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Optional, Tuple
import calendar
import structlog

from ..core.errors import InvalidArgument
from ..core.models import CreditStatus, PaymentStatus, StationType, utcnow
from ..persistence.port import StoragePort

logger = structlog.get_logger()

PERIODS = ("daily", "weekly", "monthly")


@dataclass
class RevenueBucket:
    name: str
    start: datetime
    end: datetime
    revenue: float = 0.0
    sessions: int = 0
    billiard_revenue: float = 0.0
    ps4_revenue: float = 0.0

    def contains(self, ts: Optional[datetime]) -> bool:
        return ts is not None and self.start <= ts < self.end

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "start": self.start.isoformat(),
            "end": self.end.isoformat(),
            "revenue": self.revenue,
            "sessions": self.sessions,
            "billiard_revenue": self.billiard_revenue,
            "ps4_revenue": self.ps4_revenue,
        }


@dataclass
class RevenueReport:
    period: str
    buckets: List[RevenueBucket] = field(default_factory=list)
    outstanding_credits: float = 0.0

    @property
    def total_revenue(self) -> float:
        return sum(b.revenue for b in self.buckets)

    @property
    def total_sessions(self) -> int:
        return sum(b.sessions for b in self.buckets)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "period": self.period,
            "data": [b.to_dict() for b in self.buckets],
            "summary": {
                "total_revenue": self.total_revenue,
                "total_sessions": self.total_sessions,
                "outstanding_credits": self.outstanding_credits,
            },
        }


def _midnight(ts: datetime) -> datetime:
    return ts.replace(hour=0, minute=0, second=0, microsecond=0)


def _shift_months(ts: datetime, months: int) -> datetime:
    index = ts.year * 12 + (ts.month - 1) + months
    return ts.replace(year=index // 12, month=index % 12 + 1, day=1)


def period_bounds(period: str, now: datetime) -> List[Tuple[str, datetime, datetime]]:
    """
    Labelled [start, end) windows ending with the one containing `now`.

    daily: last 7 days by weekday name; weekly: last 4 weeks as Week 1..4
    (oldest first, Monday-aligned); monthly: last 6 calendar months.
    """
    today = _midnight(now)

    if period == "daily":
        bounds = []
        for offset in range(6, -1, -1):
            start = today - timedelta(days=offset)
            bounds.append((calendar.day_abbr[start.weekday()], start, start + timedelta(days=1)))
        return bounds

    if period == "weekly":
        this_week = today - timedelta(days=today.weekday())
        bounds = []
        for i, offset in enumerate(range(3, -1, -1), start=1):
            start = this_week - timedelta(weeks=offset)
            bounds.append((f"Week {i}", start, start + timedelta(weeks=1)))
        return bounds

    if period == "monthly":
        this_month = today.replace(day=1)
        bounds = []
        for offset in range(5, -1, -1):
            start = _shift_months(this_month, -offset)
            bounds.append((calendar.month_abbr[start.month], start, _shift_months(start, 1)))
        return bounds

    raise InvalidArgument(f"Invalid period: {period}", {"field": "period", "allowed": list(PERIODS)})


class RevenueReporter:
    """Builds revenue reports straight from the store."""

    def __init__(self, store: StoragePort, clock: Callable[[], datetime] = utcnow):
        self.store = store
        self.clock = clock

    def revenue(self, period: str = "daily", now: Optional[datetime] = None) -> RevenueReport:
        now = now or self.clock()
        buckets = [RevenueBucket(name, start, end) for name, start, end in period_bounds(period, now)]

        stations = {s.id: s for s in self.store.read_stations()}
        sessions = {s.session_id: s for s in self.store.read_sessions()}

        for payment in self.store.read_payments():
            bucket = next((b for b in buckets if b.contains(payment.date)), None)
            if bucket is None:
                continue
            bucket.revenue += payment.amount

            session = sessions.get(payment.linked_session_id or "")
            station = stations.get(session.station_id) if session else None
            if station is None:
                continue
            if station.type == StationType.BILLIARD:
                bucket.billiard_revenue += payment.amount
            elif station.type == StationType.PS4:
                bucket.ps4_revenue += payment.amount

        for session in sessions.values():
            if session.payment_status == PaymentStatus.PENDING:
                continue
            bucket = next((b for b in buckets if b.contains(session.end_time)), None)
            if bucket is not None:
                bucket.sessions += 1

        outstanding = sum(
            c.amount for c in self.store.read_credits() if c.status == CreditStatus.UNPAID
        )
        report = RevenueReport(period=period, buckets=buckets, outstanding_credits=outstanding)
        logger.debug("revenue_report_built", period=period, total=report.total_revenue)
        return report
