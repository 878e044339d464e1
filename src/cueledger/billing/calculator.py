"""
Billing Calculator

Turns elapsed play time into a suggested charge and classifies what the
customer actually paid against it.

Cost scales continuously with time played: 90 minutes at 100/hour is 150,
not two whole-hour blocks. Amounts are rounded half-up to whole currency
units. The current time is always passed in, never read here.
"""

from datetime import datetime
from enum import Enum
import math
import numbers

from ..core.errors import InvalidArgument
from ..core.models import PaymentStatus

SECONDS_PER_HOUR = 3600.0


class PaymentClass(Enum):
    """How a payment compares to the charge."""
    FULL = "full"
    PARTIAL = "partial"
    NONE = "none"


_STATUS_FOR_CLASS = {
    PaymentClass.FULL: PaymentStatus.PAID,
    PaymentClass.PARTIAL: PaymentStatus.PARTIALLY_PAID,
    PaymentClass.NONE: PaymentStatus.CREDIT,
}


def _require_non_negative(name: str, value) -> float:
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        raise InvalidArgument(f"{name} must be a number", {"field": name, "value": repr(value)})
    if math.isnan(value) or value < 0:
        raise InvalidArgument(f"{name} must be non-negative", {"field": name, "value": value})
    return float(value)


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def elapsed_hours(start_time: datetime, now: datetime) -> float:
    """Real-valued hours between start and now; zero if now precedes start."""
    seconds = (now - start_time).total_seconds()
    return max(0.0, seconds) / SECONDS_PER_HOUR


def suggested_cost(start_time: datetime, now: datetime, hourly_rate: float) -> int:
    """Charge for the time played so far at the given hourly rate."""
    rate = _require_non_negative("hourly_rate", hourly_rate)
    return round_half_up(elapsed_hours(start_time, now) * rate)


def classify_payment(suggested_amount: float, paid_amount: float) -> PaymentClass:
    """
    Classify a payment against its charge.

    Nothing paid is NONE even when nothing was owed, so a session closed
    without payment always reads as credit.
    """
    suggested = _require_non_negative("suggested_amount", suggested_amount)
    paid = _require_non_negative("paid_amount", paid_amount)

    if paid == 0:
        return PaymentClass.NONE
    if paid >= suggested:
        return PaymentClass.FULL
    return PaymentClass.PARTIAL


def status_for(payment_class: PaymentClass) -> PaymentStatus:
    """Session payment status a closing payment of this class leads to."""
    return _STATUS_FOR_CLASS[payment_class]
