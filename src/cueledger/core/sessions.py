"""
Session Ledger

Timed play sessions and the payment state machine that closes them:

    pending -> paid | credit | partially_paid
    credit | partially_paid -> paid      (only via credit settlement)

Closing a session writes the session first, then the derived credit and
payment, all inside one store transaction. A failure anywhere leaves the
session pending with no dangling credit or payment.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, List, Optional
import math
import numbers
import structlog

from .credits import CreditLedger
from .errors import (
    InvalidAmount,
    InvalidArgument,
    MissingCustomerName,
    SessionAlreadyClosed,
    SessionNotFound,
    StationUnavailable,
)
from .models import (
    Credit,
    Payment,
    PaymentMethod,
    PaymentStatus,
    PaymentType,
    Session,
    StationStatus,
    new_id,
    utcnow,
)
from .payments import PaymentLog
from .stations import StationDirectory
from ..billing.calculator import classify_payment, status_for, suggested_cost
from ..persistence.port import StoragePort

logger = structlog.get_logger()


class PaymentMode(Enum):
    """What the cashier chose when ending a session."""
    CASH = "cash"
    PARTIAL = "partial"
    CREDIT = "credit"


@dataclass
class SessionClose:
    """Outcome of ending a session."""
    final_suggested: float
    final_paid: float
    balance: float
    session: Session
    credit: Optional[Credit] = None
    payment: Optional[Payment] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "final_suggested": self.final_suggested,
            "final_paid": self.final_paid,
            "balance": self.balance,
            "session": self.session.to_dict(),
            "credit": self.credit.to_dict() if self.credit else None,
            "payment": self.payment.to_dict() if self.payment else None,
        }


@dataclass
class ActiveSession:
    """A pending session with its live charge."""
    session: Session
    hourly_rate: float
    station_type: Optional[str]
    elapsed_minutes: int
    current_cost: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            **self.session.to_dict(),
            "hourly_rate": self.hourly_rate,
            "type": self.station_type,
            "elapsed_minutes": self.elapsed_minutes,
            "current_cost": self.current_cost,
        }


def _parse_mode(mode: Any) -> PaymentMode:
    if isinstance(mode, PaymentMode):
        return mode
    value = str(mode).lower()
    # the dashboard calls a cash payment "full"
    if value == "full":
        return PaymentMode.CASH
    try:
        return PaymentMode(value)
    except ValueError:
        raise InvalidArgument(
            f"Invalid payment mode: {mode}",
            {"field": "mode", "allowed": [m.value for m in PaymentMode]},
        )


def _parse_amount(amount: Any) -> float:
    if isinstance(amount, bool) or not isinstance(amount, numbers.Real):
        raise InvalidAmount("Amount must be a number", {"amount": repr(amount)})
    if math.isnan(amount) or math.isinf(amount) or amount < 0:
        raise InvalidAmount("Amount must be non-negative", {"amount": amount})
    return amount


class SessionLedger:
    """Opens, prices and closes sessions."""

    def __init__(
        self,
        store: StoragePort,
        stations: Optional[StationDirectory] = None,
        credits: Optional[CreditLedger] = None,
        payment_log: Optional[PaymentLog] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.store = store
        self.clock = clock
        self.stations = stations or StationDirectory(store)
        self.payment_log = payment_log or PaymentLog(store, clock=clock)
        self.credits = credits or CreditLedger(store, self.payment_log, clock=clock)

    def get_session(self, session_id: str) -> Session:
        session = self.store.get_session(session_id)
        if session is None:
            raise SessionNotFound(f"Session not found: {session_id}", {"session_id": session_id})
        return session

    def list_sessions(self, status: Optional[PaymentStatus] = None) -> List[Session]:
        sessions = self.store.read_sessions()
        if status is not None:
            sessions = [s for s in sessions if s.payment_status == status]
        return sorted(sessions, key=lambda s: s.start_time)

    def start_session(
        self,
        station_id: str,
        station_name: Optional[str] = None,
        customer_name: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> Session:
        """Open a pending session on a free station."""
        station = self.stations.get_station(station_id)

        if station.status == StationStatus.MAINTENANCE:
            raise StationUnavailable(
                f"Station {station.name} is under maintenance",
                {"station_id": station_id, "status": station.status.value},
            )
        if any(s.station_id == station_id for s in self.list_sessions(PaymentStatus.PENDING)):
            raise StationUnavailable(
                f"Station {station.name} already has an active session",
                {"station_id": station_id},
            )

        session = Session(
            session_id=new_id("SES"),
            station_id=station_id,
            station_name=station_name or station.name,
            start_time=now or self.clock(),
            customer_name=(customer_name or "").strip() or None,
        )
        self.store.append_session(session)
        logger.info(
            "session_started",
            session_id=session.session_id,
            station_id=station_id,
            customer=session.customer_name,
        )
        return session

    def end_session(
        self,
        session_id: str,
        mode: Any,
        entered_amount: Any,
        customer_name: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> SessionClose:
        """
        Close a pending session and collect payment.

        cash:    the entered amount is both the charge and the payment.
        partial: the time-based charge, with the entered amount paid now
                 (capped at the charge).
        credit:  the time-based charge, nothing paid now.

        Any balance left becomes a credit in the customer's name. Retrying on
        a closed session raises SessionAlreadyClosed.
        """
        mode = _parse_mode(mode)
        amount = _parse_amount(entered_amount)
        if mode == PaymentMode.CASH and amount <= 0:
            raise InvalidAmount("Cash payment requires a positive amount", {"amount": amount})
        now = now or self.clock()

        with self.store.transaction():
            session = self.get_session(session_id)
            if not session.is_active:
                raise SessionAlreadyClosed(
                    f"Session already closed: {session_id}",
                    {"session_id": session_id, "payment_status": session.payment_status.value},
                )

            name = (customer_name or "").strip() or session.customer_name
            if mode in (PaymentMode.PARTIAL, PaymentMode.CREDIT) and not name:
                raise MissingCustomerName(
                    f"Customer name is required for {mode.value} payments",
                    {"session_id": session_id},
                )

            if mode == PaymentMode.CASH:
                final_suggested = final_paid = amount
            else:
                rate = self.stations.get_station(session.station_id).hourly_rate
                final_suggested = suggested_cost(session.start_time, now, rate)
                # paying at least the charge on partial closes the session as paid
                final_paid = min(amount, final_suggested) if mode == PaymentMode.PARTIAL else 0

            balance = final_suggested - final_paid
            payment_status = status_for(classify_payment(final_suggested, final_paid))

            closed = self.store.write_session_update(
                session_id,
                {
                    "end_time": now,
                    "suggested_amount": final_suggested,
                    "paid_amount": final_paid,
                    "balance": balance,
                    "payment_type": PaymentType.CASH if final_paid > 0 else PaymentType.CREDIT,
                    "customer_name": name,
                    "payment_status": payment_status,
                },
                expected_version=session.version,
            )

            credit = None
            if balance > 0 and name:
                credit = self.credits.open_credit(name, balance, session_id, now=now)

            payment = None
            if final_paid > 0:
                payment = self.payment_log.record(final_paid, PaymentMethod.CASH, session_id, now=now)

        logger.info(
            "session_closed",
            session_id=session_id,
            mode=mode.value,
            suggested=final_suggested,
            paid=final_paid,
            balance=balance,
            payment_status=payment_status.value,
        )
        return SessionClose(
            final_suggested=final_suggested,
            final_paid=final_paid,
            balance=balance,
            session=closed,
            credit=credit,
            payment=payment,
        )

    def active_sessions(self, now: Optional[datetime] = None) -> List[ActiveSession]:
        """Pending sessions with their station rate and charge so far."""
        now = now or self.clock()
        stations = {s.id: s for s in self.stations.list_stations()}

        active = []
        for session in self.list_sessions(PaymentStatus.PENDING):
            station = stations.get(session.station_id)
            rate = station.hourly_rate if station else 0.0
            elapsed = max(0.0, (now - session.start_time).total_seconds())
            active.append(ActiveSession(
                session=session,
                hourly_rate=rate,
                station_type=station.type.value if station else None,
                elapsed_minutes=int(elapsed // 60),
                current_cost=suggested_cost(session.start_time, now, rate),
            ))
        return active
