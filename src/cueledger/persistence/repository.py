"""
Repository Layer for CueLedger

SQL-backed StoragePort. Each table has a small repository; SqlStore ties
them together behind the port so the ledger core never sees SQL.
"""

from contextlib import contextmanager
from dataclasses import replace
from typing import Any, Dict, Iterator, List, Optional, Type
import structlog

from ..core.errors import (
    ConcurrentUpdate,
    CreditNotFound,
    LedgerError,
    SessionNotFound,
    StationNotFound,
)
from ..core.models import Credit, Payment, Session, Station
from .database import Database, get_database
from .port import StoragePort

logger = structlog.get_logger()


class _TableRepository:
    """Insert / select / versioned update for one record table."""

    table: str = ""
    key: str = ""
    record: Type = object
    not_found: Type[LedgerError] = LedgerError

    def __init__(self, db: Database):
        self.db = db

    def create(self, record):
        row = record.to_dict()
        columns = ", ".join(row)
        placeholders = ", ".join("?" for _ in row)
        self.db.execute(
            f"INSERT INTO {self.table} ({columns}) VALUES ({placeholders})",
            tuple(row.values())
        )
        return record

    def get(self, key: str):
        results = self.db.execute(
            f"SELECT * FROM {self.table} WHERE {self.key} = ?",
            (key,)
        )
        return self.record.from_row(results[0]) if results else None

    def list_all(self, order_by: Optional[str] = None) -> List[Any]:
        query = f"SELECT * FROM {self.table}"
        if order_by:
            query += f" ORDER BY {order_by}"
        return [self.record.from_row(r) for r in self.db.execute(query)]

    def update(self, key: str, fields: Dict[str, Any], expected_version: Optional[int] = None):
        """
        Apply field changes by key, bumping the version.

        The current row is merged with `fields` through the record type so
        enums and timestamps are serialized the same way as on insert.
        """
        with self.db.transaction():
            current = self.get(key)
            if current is None:
                raise self.not_found(f"{self.record.__name__} not found: {key}", {"id": key})

            version = current.version if expected_version is None else expected_version
            row = replace(current, **fields).to_dict()
            changed = {name: row[name] for name in fields if name not in (self.key, "version")}

            assignments = ", ".join(f"{name} = ?" for name in changed)
            set_clause = f"{assignments}, version = version + 1" if assignments else "version = version + 1"
            count = self.db.execute_write(
                f"UPDATE {self.table} SET {set_clause} WHERE {self.key} = ? AND version = ?",
                (*changed.values(), key, version)
            )
            if count == 0:
                raise ConcurrentUpdate(
                    f"Record {key} changed since it was read",
                    {"id": key, "expected_version": version, "actual_version": current.version},
                )
            return self.get(key)

    def delete(self, key: str) -> bool:
        count = self.db.execute_write(
            f"DELETE FROM {self.table} WHERE {self.key} = ?",
            (key,)
        )
        return count > 0


class StationRepository(_TableRepository):
    table = "stations"
    key = "id"
    record = Station
    not_found = StationNotFound


class SessionRepository(_TableRepository):
    table = "sessions"
    key = "session_id"
    record = Session
    not_found = SessionNotFound


class CreditRepository(_TableRepository):
    table = "credits"
    key = "credit_id"
    record = Credit
    not_found = CreditNotFound


class PaymentRepository:
    """Append-only repository for payments."""

    def __init__(self, db: Database):
        self.db = db

    def create(self, payment: Payment) -> Payment:
        self.db.execute(
            """INSERT INTO payments (payment_id, date, amount, method, linked_session_id)
               VALUES (?, ?, ?, ?, ?)""",
            tuple(payment.to_dict().values())
        )
        return payment

    def list_all(self) -> List[Payment]:
        results = self.db.execute("SELECT * FROM payments ORDER BY date ASC")
        return [Payment.from_row(r) for r in results]


class SqlStore(StoragePort):
    """StoragePort over a SQLite database."""

    def __init__(self, db: Optional[Database] = None):
        self.db = db or get_database()
        self.stations = StationRepository(self.db)
        self.sessions = SessionRepository(self.db)
        self.credits = CreditRepository(self.db)
        self.payments = PaymentRepository(self.db)

    def read_stations(self) -> List[Station]:
        return self.stations.list_all(order_by="name")

    def get_station(self, station_id: str) -> Optional[Station]:
        return self.stations.get(station_id)

    def append_station(self, station: Station) -> Station:
        return self.stations.create(station)

    def write_station_update(self, station_id, fields, expected_version=None) -> Station:
        return self.stations.update(station_id, fields, expected_version)

    def delete_station(self, station_id: str) -> bool:
        return self.stations.delete(station_id)

    def read_sessions(self) -> List[Session]:
        return self.sessions.list_all(order_by="start_time")

    def get_session(self, session_id: str) -> Optional[Session]:
        return self.sessions.get(session_id)

    def append_session(self, session: Session) -> Session:
        return self.sessions.create(session)

    def write_session_update(self, session_id, fields, expected_version=None) -> Session:
        return self.sessions.update(session_id, fields, expected_version)

    def read_credits(self) -> List[Credit]:
        return self.credits.list_all(order_by="created_at")

    def get_credit(self, credit_id: str) -> Optional[Credit]:
        return self.credits.get(credit_id)

    def append_credit(self, credit: Credit) -> Credit:
        return self.credits.create(credit)

    def write_credit_update(self, credit_id, fields, expected_version=None) -> Credit:
        return self.credits.update(credit_id, fields, expected_version)

    def append_payment(self, payment: Payment) -> Payment:
        return self.payments.create(payment)

    def read_payments(self) -> List[Payment]:
        return self.payments.list_all()

    @contextmanager
    def transaction(self) -> Iterator["SqlStore"]:
        with self.db.transaction():
            yield self
