"""
Storage Port

The capability the ledger core depends on for persistence. Records are
addressed by id only. Updates may name the version the caller read; a
mismatch raises ConcurrentUpdate instead of silently overwriting.
"""

from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional

from ..core.models import Credit, Payment, Session, Station


class StoragePort(ABC):
    """Key-addressed read/update contract for stations, sessions, credits and payments."""

    # Stations

    @abstractmethod
    def read_stations(self) -> List[Station]: ...

    @abstractmethod
    def get_station(self, station_id: str) -> Optional[Station]: ...

    @abstractmethod
    def append_station(self, station: Station) -> Station: ...

    @abstractmethod
    def write_station_update(
        self,
        station_id: str,
        fields: Dict[str, Any],
        expected_version: Optional[int] = None,
    ) -> Station: ...

    @abstractmethod
    def delete_station(self, station_id: str) -> bool: ...

    # Sessions

    @abstractmethod
    def read_sessions(self) -> List[Session]: ...

    @abstractmethod
    def get_session(self, session_id: str) -> Optional[Session]: ...

    @abstractmethod
    def append_session(self, session: Session) -> Session: ...

    @abstractmethod
    def write_session_update(
        self,
        session_id: str,
        fields: Dict[str, Any],
        expected_version: Optional[int] = None,
    ) -> Session: ...

    # Credits

    @abstractmethod
    def read_credits(self) -> List[Credit]: ...

    @abstractmethod
    def get_credit(self, credit_id: str) -> Optional[Credit]: ...

    @abstractmethod
    def append_credit(self, credit: Credit) -> Credit: ...

    @abstractmethod
    def write_credit_update(
        self,
        credit_id: str,
        fields: Dict[str, Any],
        expected_version: Optional[int] = None,
    ) -> Credit: ...

    # Payments (append-only)

    @abstractmethod
    def append_payment(self, payment: Payment) -> Payment: ...

    @abstractmethod
    def read_payments(self) -> List[Payment]: ...

    @contextmanager
    def transaction(self) -> Iterator["StoragePort"]:
        """
        Group writes so they apply together or not at all.

        Adapters without transactional support inherit this pass-through.
        """
        yield self
