from src.sb_common.enums import POSITIONS, SHIFTS
from src.sb_common.errors import (
    InvalidPositionError,
    InvalidShiftError,
    InvalidStationError,
    StationInactiveError,
)
from src.sb_station.domain.models import Station


def check_station(station: Station | None, station_id: str) -> Station:
    """Station must exist and be active. Returns the narrowed station."""
    if station is None:
        raise InvalidStationError(station_id)
    if not station.is_active:
        raise StationInactiveError(station_id)
    return station


def check_shift(shift: str) -> None:
    if shift not in SHIFTS:
        raise InvalidShiftError(shift)


def check_position(position: str) -> None:
    if position not in POSITIONS:
        raise InvalidPositionError(position)
