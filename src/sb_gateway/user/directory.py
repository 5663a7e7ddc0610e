"""User directory: the slice of the users table the bid-session engine uses.

The engine reads three things about a user: their priority rank (to seat
them in the queue), a display name (for events) and their profile position
(default when a bid omits one). Its one write is the station and shift the
user last won. Everything else about users is owned by the identity side of
the system.
"""

from dataclasses import dataclass
from typing import Any, Protocol

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession


@dataclass
class UserProfile:
    id: str
    display_name: str
    position: str | None
    bid_priority: int
    is_admin: bool = False
    is_active: bool = True


class UserDirectoryProtocol(Protocol):
    async def get_profiles(
        self, db: AsyncSession, user_ids: list[str]
    ) -> dict[str, UserProfile]: ...

    async def set_current_assignment(
        self, db: AsyncSession, user_id: str, station_id: str, shift: str
    ) -> None: ...


_GET_PROFILES_SQL = text("""
    SELECT CAST(id AS TEXT) AS id, first_name, last_name, position,
           bid_priority, is_admin, is_active
    FROM users
    WHERE CAST(id AS TEXT) = ANY(string_to_array(CAST(:user_ids_csv AS TEXT), ','))
""")

_SET_CURRENT_ASSIGNMENT_SQL = text("""
    UPDATE users
    SET current_station_id = :station_id, current_shift = :shift
    WHERE id = CAST(:user_id AS UUID)
""")


def _row_to_profile(row: Any) -> UserProfile:
    return UserProfile(
        id=row.id,
        display_name=f"{row.first_name} {row.last_name}".strip(),
        position=row.position,
        bid_priority=row.bid_priority,
        is_admin=row.is_admin,
        is_active=row.is_active,
    )


class UserDirectory:
    """Raw-SQL implementation of UserDirectoryProtocol."""

    async def get_profiles(
        self, db: AsyncSession, user_ids: list[str]
    ) -> dict[str, UserProfile]:
        if not user_ids:
            return {}
        result = await db.execute(
            _GET_PROFILES_SQL, {"user_ids_csv": ",".join(user_ids)}
        )
        return {row.id: _row_to_profile(row) for row in result.fetchall()}

    async def set_current_assignment(
        self, db: AsyncSession, user_id: str, station_id: str, shift: str
    ) -> None:
        await db.execute(
            _SET_CURRENT_ASSIGNMENT_SQL,
            {"user_id": user_id, "station_id": station_id, "shift": shift},
        )
