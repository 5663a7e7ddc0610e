"""StationRepository — concrete implementation of StationRepositoryProtocol.

All queries use raw text() SQL (no ORM). Occupancy is the set of rows in
station_assignments; the stations row itself is the lock target that
serializes capacity check-then-commit across processes.
"""

from collections import defaultdict
from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.sb_common.enums import SHIFTS
from src.sb_station.domain.models import Station

# ---------------------------------------------------------------------------
# SQL
# ---------------------------------------------------------------------------

_STATION_COLUMNS = "id, name, number, is_active, capacity_a, capacity_b, capacity_c"

_GET_STATION_SQL = text(f"""
    SELECT {_STATION_COLUMNS}
    FROM stations
    WHERE id = :station_id
""")

_GET_STATION_FOR_UPDATE_SQL = text(f"""
    SELECT {_STATION_COLUMNS}
    FROM stations
    WHERE id = :station_id
    FOR UPDATE
""")

_LIST_ACTIVE_STATIONS_SQL = text(f"""
    SELECT {_STATION_COLUMNS}
    FROM stations
    WHERE is_active = TRUE
    ORDER BY number
""")

_GET_ASSIGNMENTS_SQL = text("""
    SELECT station_id, shift, CAST(user_id AS TEXT) AS user_id
    FROM station_assignments
    WHERE station_id = ANY(string_to_array(CAST(:station_ids_csv AS TEXT), ','))
    ORDER BY id
""")

_INSERT_ASSIGNMENT_SQL = text("""
    INSERT INTO station_assignments (station_id, shift, user_id, position, session_id)
    VALUES (:station_id, :shift, CAST(:user_id AS UUID), :position, :session_id)
""")

# ---------------------------------------------------------------------------
# Row mappers
# ---------------------------------------------------------------------------


def _row_to_station(row: Any, assignments: dict[str, list[str]] | None = None) -> Station:
    return Station(
        id=row.id,
        name=row.name,
        number=row.number,
        is_active=row.is_active,
        shift_capacity={"A": row.capacity_a, "B": row.capacity_b, "C": row.capacity_c},
        current_assignments=assignments or {shift: [] for shift in SHIFTS},
    )


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class StationRepository:
    async def _load_assignments(
        self, db: AsyncSession, station_ids: list[str]
    ) -> dict[str, dict[str, list[str]]]:
        by_station: dict[str, dict[str, list[str]]] = defaultdict(
            lambda: {shift: [] for shift in SHIFTS}
        )
        if not station_ids:
            return by_station
        result = await db.execute(
            _GET_ASSIGNMENTS_SQL, {"station_ids_csv": ",".join(station_ids)}
        )
        for row in result.fetchall():
            by_station[row.station_id][row.shift].append(row.user_id)
        return by_station

    async def _get(self, db: AsyncSession, sql: Any, station_id: str) -> Station | None:
        row = (await db.execute(sql, {"station_id": station_id})).fetchone()
        if row is None:
            return None
        assignments = await self._load_assignments(db, [row.id])
        return _row_to_station(row, assignments[row.id])

    async def get_station(self, db: AsyncSession, station_id: str) -> Station | None:
        return await self._get(db, _GET_STATION_SQL, station_id)

    async def get_station_for_update(
        self, db: AsyncSession, station_id: str
    ) -> Station | None:
        return await self._get(db, _GET_STATION_FOR_UPDATE_SQL, station_id)

    async def list_active_stations(self, db: AsyncSession) -> list[Station]:
        rows = (await db.execute(_LIST_ACTIVE_STATIONS_SQL)).fetchall()
        assignments = await self._load_assignments(db, [row.id for row in rows])
        return [_row_to_station(row, assignments[row.id]) for row in rows]

    async def add_assignment(
        self,
        db: AsyncSession,
        station_id: str,
        shift: str,
        user_id: str,
        position: str,
        session_id: str,
    ) -> None:
        await db.execute(
            _INSERT_ASSIGNMENT_SQL,
            {
                "station_id": station_id,
                "shift": shift,
                "user_id": user_id,
                "position": position,
                "session_id": session_id,
            },
        )
