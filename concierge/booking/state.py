from dataclasses import dataclass, replace
from datetime import date
from enum import Enum
from typing import Optional

from concierge.providers.base import LocationCandidate, Occupancy


class BookingStep(str, Enum):
    AWAITING_LOCATION_CONFIRM = "awaiting_location_confirm"
    AWAITING_CHECK_IN_DATE = "awaiting_checkin_date"
    AWAITING_CHECK_OUT_DATE = "awaiting_checkout_date"
    AWAITING_GUEST_COUNT = "awaiting_guest_count"
    AWAITING_ROOM_COUNT = "awaiting_room_count"
    AWAITING_BUDGET = "awaiting_budget"


@dataclass(frozen=True)
class BookingSlots:
    """Values collected so far. Each step fills its own fields and nothing else."""

    location: Optional[LocationCandidate] = None
    query: Optional[str] = None
    location_confirmed: bool = False
    check_in: Optional[date] = None
    check_out: Optional[date] = None
    adults: Optional[int] = None
    children: int = 0
    infants: int = 0
    rooms: Optional[int] = None
    budget_per_night: Optional[int] = None

    def with_values(self, **values) -> "BookingSlots":
        return replace(self, **values)

    @property
    def occupancy(self) -> Occupancy:
        return Occupancy(adults=self.adults or 1, children=self.children, infants=self.infants)


@dataclass(frozen=True)
class DialogueState:
    step: BookingStep
    slots: BookingSlots
    last_updated_at: float
