"""Domain models for sb_station — pure dataclasses, no business logic."""

from dataclasses import dataclass, field

from src.sb_common.enums import SHIFTS


def _empty_assignments() -> dict[str, list[str]]:
    return {shift: [] for shift in SHIFTS}


@dataclass
class Station:
    id: str
    name: str
    number: str
    is_active: bool = True
    shift_capacity: dict[str, int] = field(default_factory=dict)
    # shift -> occupant user ids, in assignment order
    current_assignments: dict[str, list[str]] = field(default_factory=_empty_assignments)

    def occupancy(self, shift: str) -> int:
        return len(self.current_assignments.get(shift, []))

    def available(self, shift: str) -> int:
        return self.shift_capacity.get(shift, 0) - self.occupancy(shift)


@dataclass
class ShiftAvailability:
    shift: str
    capacity: int
    current: int
    available: int
