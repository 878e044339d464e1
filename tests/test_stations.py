"""
Tests for the Station Directory
"""

import pytest

from cueledger.core.errors import InvalidArgument, StationNotFound
from cueledger.core.models import StationStatus, StationType


class TestStationCrud:

    def test_add_station(self, stations):
        station = stations.add_station("  Corner Table ", "BILLIARD", 80)

        assert station.id.startswith("STN-")
        assert station.name == "Corner Table"
        assert station.type == StationType.BILLIARD
        assert station.status == StationStatus.AVAILABLE
        assert station.hourly_rate == 80.0
        assert stations.get_station(station.id) == station

    def test_add_rejects_bad_input(self, stations):
        with pytest.raises(InvalidArgument):
            stations.add_station("", "billiard", 80)
        with pytest.raises(InvalidArgument):
            stations.add_station("Xbox", "xbox", 80)
        with pytest.raises(InvalidArgument):
            stations.add_station("Table", "billiard", -1)

    def test_update_bumps_version(self, stations, billiard_table):
        updated = stations.update_station(billiard_table.id, name="VIP Table", hourly_rate=150)

        assert updated.name == "VIP Table"
        assert updated.hourly_rate == 150
        assert updated.version == billiard_table.version + 1

    def test_update_unknown_field_rejected(self, stations, billiard_table):
        with pytest.raises(InvalidArgument):
            stations.update_station(billiard_table.id, colour="green")

    def test_update_missing_station(self, stations):
        with pytest.raises(StationNotFound):
            stations.update_station("STN-missing", name="Ghost")

    def test_delete(self, stations, billiard_table):
        stations.delete_station(billiard_table.id)

        assert stations.store.get_station(billiard_table.id) is None
        with pytest.raises(StationNotFound):
            stations.delete_station(billiard_table.id)

    def test_list(self, stations, billiard_table, ps4_station):
        ids = {s.id for s in stations.list_stations()}
        assert ids == {billiard_table.id, ps4_station.id}


class TestStatusCounts:

    def test_active_sessions_count_as_occupied(self, stations, billiard_table, ps4_station):
        spare = stations.add_station("Table 2", "billiard", 100)
        stations.update_station(spare.id, status="maintenance")

        counts = stations.status_counts([billiard_table.id, spare.id])

        assert counts == {"available": 1, "occupied": 1, "maintenance": 1}

    def test_all_available(self, stations, billiard_table, ps4_station):
        assert stations.status_counts() == {"available": 2, "occupied": 0, "maintenance": 0}
