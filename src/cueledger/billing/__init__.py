"""
CueLedger - Billing Module

- Billing calculator: time-based charges and payment classification
- Revenue reports: payments bucketed by day, week or month
"""

from .calculator import (
    PaymentClass,
    suggested_cost,
    classify_payment,
    status_for,
    round_half_up,
)
from .reports import RevenueReporter, RevenueReport, RevenueBucket, PERIODS

__all__ = [
    "PaymentClass",
    "suggested_cost",
    "classify_payment",
    "status_for",
    "round_half_up",
    "RevenueReporter",
    "RevenueReport",
    "RevenueBucket",
    "PERIODS",
]
