"""Station capacity ledger: answers "is there room" and commits occupants.

Callers must hold the station row lock (engine per-station lock plus
SELECT ... FOR UPDATE) across check_capacity() and commit(); the functions
themselves are pure and synchronous.
"""

import logging
from collections.abc import Iterable

from src.sb_common.enums import SHIFTS
from src.sb_common.errors import (
    InvalidShiftError,
    StationAtCapacityError,
    StationInactiveError,
)
from src.sb_station.domain.models import ShiftAvailability, Station

logger = logging.getLogger(__name__)


def check_capacity(station: Station, shift: str) -> int:
    """Return the number of free slots on (station, shift).

    Raises StationInactiveError, InvalidShiftError or StationAtCapacityError.
    """
    if not station.is_active:
        raise StationInactiveError(station.id)
    if shift not in SHIFTS:
        raise InvalidShiftError(shift)
    available = station.available(shift)
    if available <= 0:
        raise StationAtCapacityError(station.id, shift)
    return available


def commit(station: Station, shift: str, user_id: str) -> None:
    """Append user_id to the shift roster. Re-checks capacity first."""
    check_capacity(station, shift)
    station.current_assignments.setdefault(shift, []).append(user_id)
    logger.debug(
        "Ledger commit: station=%s shift=%s user=%s occupancy=%d/%d",
        station.id,
        shift,
        user_id,
        station.occupancy(shift),
        station.shift_capacity.get(shift, 0),
    )


def availability(station: Station) -> list[ShiftAvailability]:
    return [
        ShiftAvailability(
            shift=shift,
            capacity=station.shift_capacity.get(shift, 0),
            current=station.occupancy(shift),
            available=max(0, station.available(shift)),
        )
        for shift in SHIFTS
    ]


def first_available_slot(stations: Iterable[Station]) -> tuple[Station, str] | None:
    """Deterministic auto-assign target: active stations by number, shifts A→B→C."""
    for station in sorted(stations, key=lambda s: s.number):
        if not station.is_active:
            continue
        for shift in SHIFTS:
            if station.available(shift) > 0:
                return station, shift
    return None
