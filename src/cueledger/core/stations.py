"""
Station Directory

Keyed station inventory. Admins create, edit and remove stations; the
session ledger reads a station's status and rate when opening and pricing
sessions.
"""

from typing import Any, Dict, Iterable, List
import numbers
import structlog

from .errors import InvalidArgument, StationNotFound
from .models import Station, StationStatus, StationType, new_id
from ..persistence.port import StoragePort

logger = structlog.get_logger()

_EDITABLE_FIELDS = {"name", "type", "status", "hourly_rate"}


def _parse_enum(enum_cls, value, field_name: str):
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(str(value).lower())
    except ValueError:
        allowed = [e.value for e in enum_cls]
        raise InvalidArgument(
            f"Invalid {field_name}: {value}",
            {"field": field_name, "allowed": allowed},
        )


def _parse_rate(value) -> float:
    if isinstance(value, bool) or not isinstance(value, numbers.Real) or value != value or value < 0:
        raise InvalidArgument(
            "hourly_rate must be a non-negative number",
            {"field": "hourly_rate", "value": repr(value)},
        )
    return float(value)


class StationDirectory:
    """CRUD over stations plus availability views."""

    def __init__(self, store: StoragePort):
        self.store = store

    def list_stations(self) -> List[Station]:
        return self.store.read_stations()

    def get_station(self, station_id: str) -> Station:
        station = self.store.get_station(station_id)
        if station is None:
            raise StationNotFound(f"Station not found: {station_id}", {"station_id": station_id})
        return station

    def add_station(self, name: str, type: Any, hourly_rate: Any) -> Station:
        """Create a station; new stations start available."""
        if not name or not str(name).strip():
            raise InvalidArgument("Station name is required", {"field": "name"})

        station = Station(
            id=new_id("STN"),
            name=str(name).strip(),
            type=_parse_enum(StationType, type, "type"),
            hourly_rate=_parse_rate(hourly_rate),
            status=StationStatus.AVAILABLE,
        )
        self.store.append_station(station)
        logger.info("station_added", station_id=station.id, name=station.name, type=station.type.value)
        return station

    def update_station(self, station_id: str, **fields: Any) -> Station:
        unknown = set(fields) - _EDITABLE_FIELDS
        if unknown:
            raise InvalidArgument(f"Unknown station fields: {sorted(unknown)}", {"fields": sorted(unknown)})

        changes: Dict[str, Any] = {}
        if "name" in fields:
            if not fields["name"] or not str(fields["name"]).strip():
                raise InvalidArgument("Station name is required", {"field": "name"})
            changes["name"] = str(fields["name"]).strip()
        if "type" in fields:
            changes["type"] = _parse_enum(StationType, fields["type"], "type")
        if "status" in fields:
            changes["status"] = _parse_enum(StationStatus, fields["status"], "status")
        if "hourly_rate" in fields:
            changes["hourly_rate"] = _parse_rate(fields["hourly_rate"])

        current = self.get_station(station_id)
        updated = self.store.write_station_update(station_id, changes, expected_version=current.version)
        logger.info("station_updated", station_id=station_id, fields=sorted(changes))
        return updated

    def delete_station(self, station_id: str) -> None:
        if not self.store.delete_station(station_id):
            raise StationNotFound(f"Station not found: {station_id}", {"station_id": station_id})
        logger.info("station_deleted", station_id=station_id)

    def status_counts(self, active_station_ids: Iterable[str] = ()) -> Dict[str, int]:
        """
        Count stations per status.

        A station with an active session counts as occupied whatever its
        stored status says, unless it is under maintenance.
        """
        busy = set(active_station_ids)
        counts = {status.value: 0 for status in StationStatus}
        for station in self.store.read_stations():
            status = station.status
            if station.id in busy and status != StationStatus.MAINTENANCE:
                status = StationStatus.OCCUPIED
            counts[status.value] += 1
        return counts
