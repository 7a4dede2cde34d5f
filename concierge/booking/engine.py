"""
Hotel booking slot-filling flow.

Given a scope and the latest message, the engine either answers directly
(Handled) or tells the caller the message is not part of a booking
(NOT_HANDLED) so it can go to the general LLM path.

Steps: confirm location -> check-in -> check-out -> guests -> rooms -> budget,
then one search against the hotel provider. Booking state is cleared on
cancel, on an unrelated question, after the search, or by TTL.
"""
import logging
import re
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Callable, Optional, Tuple, Union

import requests

from concierge.booking.dates import format_date, parse_date
from concierge.booking.formatting import format_guests, format_property_rooms, format_region_results, stars
from concierge.booking.intent import IntentSignal, RuleBasedClassifier
from concierge.booking.state import BookingSlots, BookingStep, DialogueState
from concierge.booking.store import ConversationStateStore
from concierge.providers.base import (
    DATE_FMT,
    HotelSearchProvider,
    PropertyLocation,
    ProviderError,
    RegionLocation,
)
from concierge.scope import ConversationScope

logger = logging.getLogger(__name__)

GUEST_PATTERN = re.compile(r"(\d+)(?:\s*-\s*(\d+))?(?:\s*-\s*(\d+))?")
ROOM_PATTERN = re.compile(r"\s*(\d+)\b")

SEARCH_PAGE_SIZE = 10

CANCELLED_REPLY = "Hotel search cancelled. Just let me know whenever you want to look for a hotel again. 🙏"
SEARCH_FAILED_REPLY = (
    "Sorry, I couldn't reach our hotel search service just now. 😔\n\n"
    "Please try again in a moment."
)
LOCATION_EXAMPLE = "Example: I want to stay in Jakarta"


@dataclass(frozen=True)
class BookingResponse:
    text: str
    structured_result: Optional[dict] = None


@dataclass(frozen=True)
class Handled:
    response: BookingResponse

    handled = True


class _NotHandled:
    handled = False

    def __repr__(self) -> str:
        return "NOT_HANDLED"


NOT_HANDLED = _NotHandled()

FlowResult = Union[Handled, _NotHandled]


def _reply(text: str, structured_result: Optional[dict] = None) -> Handled:
    return Handled(BookingResponse(text=text, structured_result=structured_result))


def parse_guests(text: str) -> Optional[Tuple[int, int, int]]:
    """'2-1-0' -> (2, 1, 0); '2' -> (2, 0, 0). None unless there is at least one adult."""
    m = GUEST_PATTERN.search(text or "")
    if not m:
        return None
    adults = int(m.group(1))
    children = int(m.group(2) or 0)
    infants = int(m.group(3) or 0)
    if adults < 1:
        return None
    return adults, children, infants


def parse_rooms(text: str) -> Optional[int]:
    m = ROOM_PATTERN.match(text or "")
    if not m:
        return None
    rooms = int(m.group(1))
    return rooms if rooms >= 1 else None


class BookingFlowEngine:
    def __init__(
        self,
        store: ConversationStateStore,
        provider: HotelSearchProvider,
        classifier=None,
        today: Callable[[], date] = date.today,
        support_phone: Optional[str] = None,
        support_email: Optional[str] = None,
    ):
        self.store = store
        self.provider = provider
        self.classifier = classifier or RuleBasedClassifier()
        self._today = today
        self.support_phone = support_phone
        self.support_email = support_email
        self._handlers = {
            BookingStep.AWAITING_LOCATION_CONFIRM: self._on_location_confirm,
            BookingStep.AWAITING_CHECK_IN_DATE: self._on_check_in,
            BookingStep.AWAITING_CHECK_OUT_DATE: self._on_check_out,
            BookingStep.AWAITING_GUEST_COUNT: self._on_guest_count,
            BookingStep.AWAITING_ROOM_COUNT: self._on_room_count,
            BookingStep.AWAITING_BUDGET: self._on_budget,
        }

    def handle(self, scope: ConversationScope, text: str, display_name: Optional[str] = None) -> FlowResult:
        state = self.store.get(scope)
        signal = self.classifier.classify(text)

        if state is None:
            return self._start(scope, signal, display_name)

        if signal.cancel:
            self.store.clear(scope)
            logger.info("Booking flow cancelled for %s at %s", scope.key, state.step)
            return _reply(CANCELLED_REPLY)

        handler = self._handlers.get(state.step)
        if handler is None:
            logger.error("Unknown booking step %r for %s, dropping state", state.step, scope.key)
            self.store.clear(scope)
            return NOT_HANDLED

        if signal.general_question and not self._is_valid_answer(state, text, signal):
            self.store.clear(scope)
            logger.info("General question during booking flow for %s, leaving flow", scope.key)
            return NOT_HANDLED

        return handler(scope, text, signal, state)

    def _is_valid_answer(self, state: DialogueState, text: str, signal: IntentSignal) -> bool:
        step = state.step
        if step == BookingStep.AWAITING_LOCATION_CONFIRM:
            return signal.affirmative or signal.negative
        if step in (BookingStep.AWAITING_CHECK_IN_DATE, BookingStep.AWAITING_CHECK_OUT_DATE):
            return parse_date(text, self._today()) is not None
        if step == BookingStep.AWAITING_GUEST_COUNT:
            return parse_guests(text) is not None
        if step == BookingStep.AWAITING_ROOM_COUNT:
            return parse_rooms(text) is not None
        if step == BookingStep.AWAITING_BUDGET:
            return signal.skip or signal.budget is not None
        return False

    def _example_date(self, days_ahead: int, base: Optional[date] = None) -> str:
        return ((base or self._today()) + timedelta(days=days_ahead)).strftime(DATE_FMT)

    # --- step 0: detect intent and resolve the location ---

    def _start(self, scope: ConversationScope, signal: IntentSignal, display_name: Optional[str]) -> FlowResult:
        if not signal.booking_trigger or signal.general_question:
            return NOT_HANDLED

        query = signal.location_phrase
        if not query:
            greeting = f"Sure, {display_name}! " if display_name else "Sure! "
            return _reply(f"{greeting}Which city or area would you like to stay in?\n\n{LOCATION_EXAMPLE}")

        try:
            location = self.provider.search_location(query)
        except (ProviderError, requests.RequestException):
            logger.exception("Location lookup failed for %r", query)
            return _reply(SEARCH_FAILED_REPLY)

        if location is None:
            return _reply(
                f"Sorry, I couldn't find the location \"{query}\". Could you try another city name?\n\n"
                "Example: Jakarta, Bali, Bandung, Surabaya"
            )

        slots = BookingSlots(location=location, query=query, budget_per_night=signal.budget)
        self.store.set(scope, BookingStep.AWAITING_LOCATION_CONFIRM, slots)
        logger.info("Booking flow started for %s: %s (%s)", scope.key, location.name, location.kind)

        if isinstance(location, RegionLocation):
            return _reply(f"Great, I found the area: *{location.name}* 📍\n\nIs this the right location? (Yes/No)")
        rating = f" {stars(location.star_rating)}" if location.star_rating else ""
        return _reply(
            f"I found the hotel: *{location.name}*{rating}\n\n"
            "Shall I check availability at this hotel? (Yes/No)"
        )

    # --- per-step handlers ---

    def _on_location_confirm(self, scope, text, signal: IntentSignal, state: DialogueState) -> FlowResult:
        if signal.negative:
            self.store.clear(scope)
            return _reply(
                f"Okay, that wasn't the right match for \"{state.slots.query}\". Please tell me the correct location.\n\n"
                f"{LOCATION_EXAMPLE}"
            )
        if not signal.affirmative:
            return _reply("Please answer Yes or No.")

        self.store.set(scope, BookingStep.AWAITING_CHECK_IN_DATE, state.slots.with_values(location_confirmed=True))
        return _reply(
            "Great! When would you like to check in? 📅\n\n"
            "Format: DD-MM-YYYY or type \"tomorrow\"\n"
            f"Example: {self._example_date(1)} or tomorrow"
        )

    def _on_check_in(self, scope, text, signal: IntentSignal, state: DialogueState) -> FlowResult:
        check_in = parse_date(text, self._today())
        if check_in is None:
            return _reply(
                "Sorry, that date format isn't valid. Please try again.\n\n"
                f"Example: {self._example_date(1)} or tomorrow"
            )

        self.store.set(scope, BookingStep.AWAITING_CHECK_OUT_DATE, state.slots.with_values(check_in=check_in))
        return _reply(
            f"Check-in: {format_date(check_in)} ✅\n\n"
            "When will you check out? 📅\n\n"
            "Format: DD-MM-YYYY\n"
            f"Example: {self._example_date(1, check_in)}"
        )

    def _on_check_out(self, scope, text, signal: IntentSignal, state: DialogueState) -> FlowResult:
        check_in = state.slots.check_in
        check_out = parse_date(text, self._today())
        if check_out is None:
            return _reply(
                "Sorry, that date format isn't valid. Please try again.\n\n"
                f"Example: {self._example_date(1, check_in)}"
            )
        if check_out <= check_in:
            return _reply(
                f"The check-out date must be after the check-in date ({format_date(check_in)}). "
                "Please enter a later check-out date."
            )

        self.store.set(scope, BookingStep.AWAITING_GUEST_COUNT, state.slots.with_values(check_out=check_out))
        return _reply(
            f"Check-out: {format_date(check_out)} ✅\n\n"
            "How many guests? 👥\n\n"
            "Format: Adults-Children-Infants\n"
            "Example: 2-0-0 (2 adults, no children)\n"
            "Or just the number of adults: 2"
        )

    def _on_guest_count(self, scope, text, signal: IntentSignal, state: DialogueState) -> FlowResult:
        guests = parse_guests(text)
        if guests is None:
            return _reply(
                "Please enter the number of guests, with at least 1 adult.\n\n"
                "Example: 2-1-0 (2 adults, 1 child, 0 infants)\n"
                "Or: 2 (2 adults only)"
            )

        adults, children, infants = guests
        self.store.set(
            scope,
            BookingStep.AWAITING_ROOM_COUNT,
            state.slots.with_values(adults=adults, children=children, infants=infants),
        )
        return _reply(
            f"Guests: {format_guests(adults, children, infants)} ✅\n\n"
            "How many rooms do you need? 🛏️\n\n"
            "Example: 1 or 2"
        )

    def _on_room_count(self, scope, text, signal: IntentSignal, state: DialogueState) -> FlowResult:
        rooms = parse_rooms(text)
        if rooms is None:
            return _reply("That room count isn't valid. At least 1 room.\n\nExample: 1")

        slots = state.slots.with_values(rooms=rooms)
        if slots.budget_per_night is None:
            self.store.set(scope, BookingStep.AWAITING_BUDGET, slots)
            return _reply(
                f"Rooms: {rooms} ✅\n\n"
                "Do you have a maximum budget per night? 💰\n\n"
                "Example: 500k, 1jt, 1.5m\n"
                "Or type skip to see all hotels"
            )
        return self._perform_search(scope, slots)

    def _on_budget(self, scope, text, signal: IntentSignal, state: DialogueState) -> FlowResult:
        if signal.skip:
            return self._perform_search(scope, state.slots.with_values(budget_per_night=None))
        if signal.budget is None:
            return _reply(
                "Sorry, I couldn't read that budget. Please try again.\n\n"
                "Example: 500k, 1jt, 1.5m\n"
                "Or type skip"
            )
        return self._perform_search(scope, state.slots.with_values(budget_per_night=signal.budget))

    # --- terminal step ---

    def _perform_search(self, scope: ConversationScope, slots: BookingSlots) -> FlowResult:
        self.store.clear(scope)
        location = slots.location
        logger.info(
            "Searching hotels for %s: %s %s -> %s, %s, %s room(s), budget=%s",
            scope.key, location.name, slots.check_in, slots.check_out,
            slots.occupancy, slots.rooms, slots.budget_per_night,
        )
        try:
            if isinstance(location, PropertyLocation):
                return self._search_property(location, slots)
            return self._search_region(location, slots)
        except (ProviderError, requests.RequestException):
            logger.exception("Hotel search failed for %s", scope.key)
            return _reply(SEARCH_FAILED_REPLY)

    def _search_region(self, location: RegionLocation, slots: BookingSlots) -> FlowResult:
        result = self.provider.search_by_region(
            region_id=location.region_id,
            keyword=location.name,
            date_from=slots.check_in,
            date_to=slots.check_out,
            occupancy=slots.occupancy,
            rooms=slots.rooms,
            max_price_per_night=slots.budget_per_night,
            page=1,
            page_size=SEARCH_PAGE_SIZE,
        )
        if not result.hotels:
            return _reply(
                f"Sorry, there are no hotels available in {location.name} for those dates. 😔\n\n"
                "Want to try different dates or another location?"
            )
        text = format_region_results(location.name, slots, result, self.support_phone, self.support_email)
        return _reply(text, result.to_dict())

    def _search_property(self, location: PropertyLocation, slots: BookingSlots) -> FlowResult:
        result = self.provider.search_property_rooms(
            property_id=location.property_id,
            keyword=location.name,
            date_from=slots.check_in,
            date_to=slots.check_out,
            occupancy=slots.occupancy,
            rooms=slots.rooms,
        )
        if result.property is None or not result.rooms:
            return _reply(
                f"Sorry, {location.name} is not available for those dates. 😔\n\n"
                "Want to try different dates or another hotel?"
            )
        text = format_property_rooms(slots, result, self.support_phone, self.support_email)
        return _reply(text, result.to_dict())
