"""
Ledger Records

Stations, sessions, credits and payments as plain dataclasses. Each record
converts to a flat dict (to_dict) and back (from_row) so any storage backend
can round-trip it without losing information.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional
import uuid


class StationType(Enum):
    BILLIARD = "billiard"
    PS4 = "ps4"


class StationStatus(Enum):
    AVAILABLE = "available"
    OCCUPIED = "occupied"
    MAINTENANCE = "maintenance"


class PaymentType(Enum):
    """How a session was ultimately charged."""
    PENDING = "pending"
    CASH = "cash"
    CREDIT = "credit"


class PaymentStatus(Enum):
    """Session payment state machine."""
    PENDING = "pending"
    PAID = "paid"
    CREDIT = "credit"
    PARTIALLY_PAID = "partially_paid"


class CreditStatus(Enum):
    UNPAID = "unpaid"
    PAID = "paid"


class PaymentMethod(Enum):
    CASH = "cash"
    CREDIT = "credit"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex[:12]}"


def format_ts(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def parse_ts(value: Any) -> Optional[datetime]:
    """Parse an ISO timestamp; naive values are taken as UTC."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@dataclass
class Station:
    """A billiard table or console station."""
    id: str
    name: str
    type: StationType
    hourly_rate: float
    status: StationStatus = StationStatus.AVAILABLE
    version: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "type": self.type.value,
            "status": self.status.value,
            "hourly_rate": self.hourly_rate,
            "version": self.version,
        }

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "Station":
        return cls(
            id=row["id"],
            name=row["name"],
            type=StationType(row.get("type") or "billiard"),
            status=StationStatus(row.get("status") or "available"),
            hourly_rate=float(row.get("hourly_rate") or 0),
            version=int(row.get("version") or 0),
        )


@dataclass
class Session:
    """
    A timed play session on one station.

    Active while payment_status is PENDING and end_time is unset.
    """
    session_id: str
    station_id: str
    station_name: str
    start_time: datetime
    end_time: Optional[datetime] = None
    suggested_amount: float = 0
    paid_amount: float = 0
    balance: float = 0
    payment_type: PaymentType = PaymentType.PENDING
    customer_name: Optional[str] = None
    payment_status: PaymentStatus = PaymentStatus.PENDING
    version: int = 0

    @property
    def is_active(self) -> bool:
        return self.payment_status == PaymentStatus.PENDING

    def to_dict(self) -> Dict[str, Any]:
        return {
            "session_id": self.session_id,
            "station_id": self.station_id,
            "station_name": self.station_name,
            "start_time": format_ts(self.start_time),
            "end_time": format_ts(self.end_time),
            "suggested_amount": self.suggested_amount,
            "paid_amount": self.paid_amount,
            "balance": self.balance,
            "payment_type": self.payment_type.value,
            "customer_name": self.customer_name,
            "payment_status": self.payment_status.value,
            "version": self.version,
        }

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "Session":
        return cls(
            session_id=row["session_id"],
            station_id=row["station_id"],
            station_name=row.get("station_name") or "",
            start_time=parse_ts(row["start_time"]),
            end_time=parse_ts(row.get("end_time")),
            suggested_amount=row.get("suggested_amount") or 0,
            paid_amount=row.get("paid_amount") or 0,
            balance=row.get("balance") or 0,
            payment_type=PaymentType(row.get("payment_type") or "pending"),
            customer_name=row.get("customer_name") or None,
            payment_status=PaymentStatus(row.get("payment_status") or "pending"),
            version=int(row.get("version") or 0),
        )


@dataclass
class Credit:
    """Outstanding balance owed by a customer, usually from one session."""
    credit_id: str
    customer_name: str
    amount: float
    status: CreditStatus = CreditStatus.UNPAID
    created_at: datetime = field(default_factory=utcnow)
    session_id: Optional[str] = None
    paid_at: Optional[datetime] = None
    version: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "credit_id": self.credit_id,
            "customer_name": self.customer_name,
            "amount": self.amount,
            "status": self.status.value,
            "created_at": format_ts(self.created_at),
            "session_id": self.session_id,
            "paid_at": format_ts(self.paid_at),
            "version": self.version,
        }

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "Credit":
        return cls(
            credit_id=row["credit_id"],
            customer_name=row.get("customer_name") or "",
            amount=row.get("amount") or 0,
            status=CreditStatus(row.get("status") or "unpaid"),
            created_at=parse_ts(row.get("created_at")) or utcnow(),
            session_id=row.get("session_id") or None,
            paid_at=parse_ts(row.get("paid_at")),
            version=int(row.get("version") or 0),
        )


@dataclass
class Payment:
    """Money actually collected. Never mutated once written."""
    payment_id: str
    date: datetime
    amount: float
    method: PaymentMethod
    linked_session_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "payment_id": self.payment_id,
            "date": format_ts(self.date),
            "amount": self.amount,
            "method": self.method.value,
            "linked_session_id": self.linked_session_id,
        }

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "Payment":
        return cls(
            payment_id=row["payment_id"],
            date=parse_ts(row["date"]),
            amount=row.get("amount") or 0,
            method=PaymentMethod(row.get("method") or "cash"),
            linked_session_id=row.get("linked_session_id") or None,
        )
