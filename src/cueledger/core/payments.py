"""
Payment Log

Append-only record of money actually collected. There is no update or
delete: the log is the audit trail revenue reports are built from.
"""

from datetime import datetime
from typing import Callable, List, Optional
import structlog

from .errors import InvalidAmount
from .models import Payment, PaymentMethod, new_id, utcnow
from ..persistence.port import StoragePort

logger = structlog.get_logger()


class PaymentLog:

    def __init__(self, store: StoragePort, clock: Callable[[], datetime] = utcnow):
        self.store = store
        self.clock = clock

    def record(
        self,
        amount: float,
        method: PaymentMethod,
        linked_session_id: Optional[str],
        now: Optional[datetime] = None,
    ) -> Payment:
        if amount <= 0:
            raise InvalidAmount("Payment amount must be positive", {"amount": amount})

        payment = Payment(
            payment_id=new_id("PAY"),
            date=now or self.clock(),
            amount=amount,
            method=method,
            linked_session_id=linked_session_id,
        )
        self.store.append_payment(payment)
        logger.info(
            "payment_recorded",
            payment_id=payment.payment_id,
            amount=amount,
            method=method.value,
            session_id=linked_session_id,
        )
        return payment

    def list_payments(
        self,
        since: Optional[datetime] = None,
        until: Optional[datetime] = None,
    ) -> List[Payment]:
        """Payments in [since, until), oldest first."""
        payments = self.store.read_payments()
        if since is not None:
            payments = [p for p in payments if p.date >= since]
        if until is not None:
            payments = [p for p in payments if p.date < until]
        return sorted(payments, key=lambda p: p.date)
