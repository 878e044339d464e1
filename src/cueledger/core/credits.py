"""
Credit Ledger

Outstanding customer balances. A credit is opened when a session closes
with money still owed, and settled later when the customer pays it off.

Settlement reconciles the originating session incrementally: the credit
amount is added to what the session already recorded as paid (capped at
the charge) rather than overwriting paid_amount with the full charge. For a
credit opened by end_session the two rules agree, because the credit equals
the session balance. When they disagree the mismatch is logged and the
session keeps whatever balance is genuinely left.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Callable, List, Optional
import numbers
import structlog

from .errors import AlreadyPaid, CreditNotFound, InvalidAmount, MissingCustomerName
from .models import (
    Credit,
    CreditStatus,
    PaymentMethod,
    PaymentStatus,
    new_id,
    utcnow,
)
from .payments import PaymentLog
from ..persistence.port import StoragePort

logger = structlog.get_logger()


@dataclass
class OutstandingSummary:
    """Unpaid credits, optionally filtered by customer name."""
    total_outstanding: float
    count: int
    credits: List[Credit]

    def to_dict(self):
        return {
            "total_outstanding": self.total_outstanding,
            "count": self.count,
            "credits": [c.to_dict() for c in self.credits],
        }


class CreditLedger:
    """Opens and settles customer credits."""

    def __init__(
        self,
        store: StoragePort,
        payment_log: Optional[PaymentLog] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.store = store
        self.payment_log = payment_log or PaymentLog(store, clock=clock)
        self.clock = clock

    def open_credit(
        self,
        customer_name: str,
        amount: float,
        session_id: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> Credit:
        if isinstance(amount, bool) or not isinstance(amount, numbers.Real) or not amount > 0:
            raise InvalidAmount("Credit amount must be positive", {"amount": repr(amount)})
        if not customer_name or not customer_name.strip():
            raise MissingCustomerName("Credit requires a customer name")

        credit = Credit(
            credit_id=new_id("CRD"),
            customer_name=customer_name.strip(),
            amount=amount,
            status=CreditStatus.UNPAID,
            created_at=now or self.clock(),
            session_id=session_id,
        )
        self.store.append_credit(credit)
        logger.info(
            "credit_opened",
            credit_id=credit.credit_id,
            customer=credit.customer_name,
            amount=amount,
            session_id=session_id,
        )
        return credit

    def get_credit(self, credit_id: str) -> Credit:
        credit = self.store.get_credit(credit_id)
        if credit is None:
            raise CreditNotFound(f"Credit not found: {credit_id}", {"credit_id": credit_id})
        return credit

    def settle_credit(self, credit_id: str, now: Optional[datetime] = None) -> Credit:
        """
        Mark a credit paid, reconcile its session and log the cash received.

        Settling an already-paid credit raises AlreadyPaid. All writes happen
        in one store transaction.
        """
        now = now or self.clock()

        with self.store.transaction():
            credit = self.get_credit(credit_id)
            if credit.status == CreditStatus.PAID:
                raise AlreadyPaid(f"Credit already paid: {credit_id}", {"credit_id": credit_id})

            settled = self.store.write_credit_update(
                credit_id,
                {"status": CreditStatus.PAID, "paid_at": now},
                expected_version=credit.version,
            )

            if credit.session_id:
                self._reconcile_session(credit)

            self.payment_log.record(credit.amount, PaymentMethod.CASH, credit.session_id, now=now)

        logger.info(
            "credit_settled",
            credit_id=credit_id,
            customer=credit.customer_name,
            amount=credit.amount,
            session_id=credit.session_id,
        )
        return settled

    def _reconcile_session(self, credit: Credit) -> None:
        session = self.store.get_session(credit.session_id)
        if session is None:
            logger.warning("credit_session_missing", credit_id=credit.credit_id, session_id=credit.session_id)
            return
        if session.payment_status not in (PaymentStatus.CREDIT, PaymentStatus.PARTIALLY_PAID):
            logger.warning(
                "credit_session_not_reconcilable",
                credit_id=credit.credit_id,
                session_id=session.session_id,
                payment_status=session.payment_status.value,
            )
            return

        if credit.amount != session.balance:
            logger.warning(
                "credit_session_balance_mismatch",
                credit_id=credit.credit_id,
                session_id=session.session_id,
                credit_amount=credit.amount,
                session_balance=session.balance,
            )

        paid = min(session.paid_amount + credit.amount, session.suggested_amount)
        balance = session.suggested_amount - paid
        status = PaymentStatus.PAID if balance <= 0 else session.payment_status

        self.store.write_session_update(
            session.session_id,
            {"paid_amount": paid, "balance": balance, "payment_status": status},
            expected_version=session.version,
        )
        logger.info(
            "session_reconciled",
            session_id=session.session_id,
            paid_amount=paid,
            balance=balance,
            payment_status=status.value,
        )

    def list_credits(
        self,
        status: Optional[CreditStatus] = None,
        search: Optional[str] = None,
    ) -> List[Credit]:
        """Credits newest first, filtered by status and customer-name substring."""
        credits = self.store.read_credits()
        if status is not None:
            credits = [c for c in credits if c.status == status]
        if search:
            needle = search.strip().lower()
            credits = [c for c in credits if needle in c.customer_name.lower()]
        return sorted(credits, key=lambda c: c.created_at, reverse=True)

    def outstanding_summary(self, search: Optional[str] = None) -> OutstandingSummary:
        unpaid = self.list_credits(status=CreditStatus.UNPAID, search=search)
        return OutstandingSummary(
            total_outstanding=sum(c.amount for c in unpaid),
            count=len(unpaid),
            credits=unpaid,
        )
