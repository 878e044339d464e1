"""
In-Memory Store

Dict-backed StoragePort used by tests and the `memory://` database URL.
Transactions snapshot all maps and restore them if the block raises.
"""

from contextlib import contextmanager
from dataclasses import replace
from threading import RLock
from typing import Any, Dict, Iterator, List, Optional
import copy
import structlog

from ..core.errors import (
    ConcurrentUpdate,
    CreditNotFound,
    SessionNotFound,
    StationNotFound,
)
from ..core.models import Credit, Payment, Session, Station
from .port import StoragePort

logger = structlog.get_logger()


class InMemoryStore(StoragePort):
    """Holds every record in process memory, keyed by id."""

    def __init__(self):
        self.stations: Dict[str, Station] = {}
        self.sessions: Dict[str, Session] = {}
        self.credits: Dict[str, Credit] = {}
        self.payments: List[Payment] = []
        self._lock = RLock()
        self._depth = 0

    def _update(self, table: Dict[str, Any], key: str, fields: Dict[str, Any],
                expected_version: Optional[int], not_found: type):
        with self._lock:
            current = table.get(key)
            if current is None:
                raise not_found(f"{not_found.__name__.replace('NotFound', '')} not found: {key}", {"id": key})
            if expected_version is not None and current.version != expected_version:
                raise ConcurrentUpdate(
                    f"Record {key} changed since it was read",
                    {"id": key, "expected_version": expected_version, "actual_version": current.version},
                )
            updated = replace(current, **fields)
            updated.version = current.version + 1
            table[key] = updated
            return copy.deepcopy(updated)

    # Stations

    def read_stations(self) -> List[Station]:
        with self._lock:
            return [copy.deepcopy(s) for s in self.stations.values()]

    def get_station(self, station_id: str) -> Optional[Station]:
        with self._lock:
            station = self.stations.get(station_id)
            return copy.deepcopy(station) if station else None

    def append_station(self, station: Station) -> Station:
        with self._lock:
            self.stations[station.id] = copy.deepcopy(station)
        return station

    def write_station_update(self, station_id, fields, expected_version=None) -> Station:
        return self._update(self.stations, station_id, fields, expected_version, StationNotFound)

    def delete_station(self, station_id: str) -> bool:
        with self._lock:
            return self.stations.pop(station_id, None) is not None

    # Sessions

    def read_sessions(self) -> List[Session]:
        with self._lock:
            return [copy.deepcopy(s) for s in self.sessions.values()]

    def get_session(self, session_id: str) -> Optional[Session]:
        with self._lock:
            session = self.sessions.get(session_id)
            return copy.deepcopy(session) if session else None

    def append_session(self, session: Session) -> Session:
        with self._lock:
            self.sessions[session.session_id] = copy.deepcopy(session)
        return session

    def write_session_update(self, session_id, fields, expected_version=None) -> Session:
        return self._update(self.sessions, session_id, fields, expected_version, SessionNotFound)

    # Credits

    def read_credits(self) -> List[Credit]:
        with self._lock:
            return [copy.deepcopy(c) for c in self.credits.values()]

    def get_credit(self, credit_id: str) -> Optional[Credit]:
        with self._lock:
            credit = self.credits.get(credit_id)
            return copy.deepcopy(credit) if credit else None

    def append_credit(self, credit: Credit) -> Credit:
        with self._lock:
            self.credits[credit.credit_id] = copy.deepcopy(credit)
        return credit

    def write_credit_update(self, credit_id, fields, expected_version=None) -> Credit:
        return self._update(self.credits, credit_id, fields, expected_version, CreditNotFound)

    # Payments

    def append_payment(self, payment: Payment) -> Payment:
        with self._lock:
            self.payments.append(copy.deepcopy(payment))
        return payment

    def read_payments(self) -> List[Payment]:
        with self._lock:
            return [copy.deepcopy(p) for p in self.payments]

    @contextmanager
    def transaction(self) -> Iterator["InMemoryStore"]:
        with self._lock:
            snapshot = None
            if self._depth == 0:
                snapshot = copy.deepcopy((self.stations, self.sessions, self.credits, self.payments))
            self._depth += 1
            try:
                yield self
            except Exception:
                if snapshot is not None:
                    self.stations, self.sessions, self.credits, self.payments = snapshot
                    logger.warning("memory_transaction_rolled_back")
                raise
            finally:
                self._depth -= 1
