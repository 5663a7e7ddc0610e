"""Pydantic schemas for sb_station API responses."""

from pydantic import BaseModel

from src.sb_station.domain.ledger import availability
from src.sb_station.domain.models import Station


class ShiftAvailabilityOut(BaseModel):
    capacity: int
    current: int
    available: int


class StationAvailability(BaseModel):
    id: str
    name: str
    number: str
    availability: dict[str, ShiftAvailabilityOut]

    @classmethod
    def from_domain(cls, station: Station) -> "StationAvailability":
        return cls(
            id=station.id,
            name=station.name,
            number=station.number,
            availability={
                a.shift: ShiftAvailabilityOut(
                    capacity=a.capacity, current=a.current, available=a.available
                )
                for a in availability(station)
            },
        )


class StationAvailabilityList(BaseModel):
    stations: list[StationAvailability]
