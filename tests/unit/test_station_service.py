"""Unit tests for station availability: repository, service and route."""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

from src.main import app
from src.sb_common.database import get_db_session
from src.sb_gateway.auth.dependencies import get_current_user
from src.sb_station.api.router import get_station_service
from src.sb_station.application.service import StationApplicationService
from src.sb_station.infrastructure.persistence import StationRepository


def _station_row(station_id: str, number: str) -> MagicMock:
    row = MagicMock()
    row.id = station_id
    row.name = f"Station {number}"
    row.number = number
    row.is_active = True
    row.capacity_a = 2
    row.capacity_b = 1
    row.capacity_c = 0
    return row


def _assignment_row(station_id: str, shift: str, user_id: str) -> MagicMock:
    row = MagicMock()
    row.station_id = station_id
    row.shift = shift
    row.user_id = user_id
    return row


def _result(rows: list | None = None, one: object = None) -> MagicMock:
    result = MagicMock()
    result.fetchall.return_value = rows or []
    result.fetchone.return_value = one
    return result


class TestStationRepository:
    async def test_list_active_groups_assignments(self) -> None:
        db = AsyncMock()
        db.execute.side_effect = [
            _result(rows=[_station_row("ST-1", "01"), _station_row("ST-2", "02")]),
            _result(rows=[_assignment_row("ST-1", "A", "u1"), _assignment_row("ST-1", "A", "u2")]),
        ]
        stations = await StationRepository().list_active_stations(db)
        assert [s.id for s in stations] == ["ST-1", "ST-2"]
        assert stations[0].current_assignments == {"A": ["u1", "u2"], "B": [], "C": []}
        assert stations[1].occupancy("A") == 0
        assert stations[0].shift_capacity == {"A": 2, "B": 1, "C": 0}

    async def test_get_missing_station(self) -> None:
        db = AsyncMock()
        db.execute.return_value = _result(one=None)
        assert await StationRepository().get_station_for_update(db, "ST-404") is None

    async def test_no_active_stations_skips_assignment_query(self) -> None:
        db = AsyncMock()
        db.execute.return_value = _result(rows=[])
        assert await StationRepository().list_active_stations(db) == []
        db.execute.assert_awaited_once()

    async def test_add_assignment_params(self) -> None:
        db = AsyncMock()
        await StationRepository().add_assignment(db, "ST-1", "B", "u1", "EMT", "BS-1")
        params = db.execute.call_args[0][1]
        assert params == {
            "station_id": "ST-1",
            "shift": "B",
            "user_id": "u1",
            "position": "EMT",
            "session_id": "BS-1",
        }


class TestStationApplicationService:
    async def test_lists_active_only(self, station_repo, db) -> None:
        result = await StationApplicationService(station_repo).list_available(db)
        assert [s.id for s in result.stations] == ["ST-1", "ST-2"]
        assert result.stations[0].availability["A"].available == 1

    async def test_shift_filter_drops_full_stations(self, station_repo, db) -> None:
        station_repo.stations["ST-1"].current_assignments["B"] = ["u1"]
        result = await StationApplicationService(station_repo).list_available(db, "B")
        assert [s.id for s in result.stations] == ["ST-2"]


class TestStationRoute:
    async def test_available_endpoint(self, client, station_repo, new_db) -> None:
        app.dependency_overrides[get_station_service] = lambda: StationApplicationService(station_repo)
        app.dependency_overrides[get_db_session] = new_db
        app.dependency_overrides[get_current_user] = lambda: SimpleNamespace(id="u1", is_admin=False)

        resp = await client.get("/api/v1/stations/available", params={"shift": "C"})
        assert resp.status_code == 200
        stations = resp.json()["data"]["stations"]
        assert [s["number"] for s in stations] == ["01", "02"]
        assert stations[0]["availability"]["C"] == {"capacity": 1, "current": 0, "available": 1}

    async def test_unknown_shift_is_rejected(self, client, new_db) -> None:
        app.dependency_overrides[get_db_session] = new_db
        app.dependency_overrides[get_current_user] = lambda: SimpleNamespace(id="u1", is_admin=False)
        resp = await client.get("/api/v1/stations/available", params={"shift": "D"})
        assert resp.status_code == 422
