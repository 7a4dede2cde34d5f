from datetime import date

from concierge.booking.engine import CANCELLED_REPLY, NOT_HANDLED, SEARCH_FAILED_REPLY, parse_guests, parse_rooms
from concierge.booking.state import BookingSlots, BookingStep
from concierge.providers.base import Occupancy, PropertyLocation
from concierge.scope import Direct, Grouped


def say(engine, scope, *messages):
    result = None
    for text in messages:
        result = engine.handle(scope, text, "Alice")
    return result


def test_full_region_booking_flow(engine, store, provider):
    scope = Direct("alice")

    result = engine.handle(scope, "I want to stay in Jakarta", "Alice")
    assert result.handled
    assert "Jakarta, Indonesia" in result.response.text
    assert provider.location_calls == ["Jakarta"]
    assert store.get(scope).step == BookingStep.AWAITING_LOCATION_CONFIRM

    say(engine, scope, "Yes")
    assert store.get(scope).step == BookingStep.AWAITING_CHECK_IN_DATE

    result = say(engine, scope, "16-11-2025")
    assert "16 Nov 2025" in result.response.text
    assert store.get(scope).slots.check_in == date(2025, 11, 16)

    say(engine, scope, "18-11-2025")
    assert store.get(scope).step == BookingStep.AWAITING_GUEST_COUNT

    say(engine, scope, "2-0-0")
    slots = store.get(scope).slots
    assert (slots.adults, slots.children, slots.infants) == (2, 0, 0)

    result = say(engine, scope, "1")
    assert store.get(scope).step == BookingStep.AWAITING_BUDGET
    assert "budget" in result.response.text.lower()

    result = say(engine, scope, "500rb")
    assert result.handled
    assert store.get(scope) is None

    call = provider.region_calls[-1]
    assert call["region_id"] == "12345"
    assert call["date_from"] == date(2025, 11, 16)
    assert call["date_to"] == date(2025, 11, 18)
    assert call["occupancy"] == Occupancy(adults=2)
    assert call["rooms"] == 1
    assert call["max_price_per_night"] == 500_000

    text = result.response.text
    assert "HOTELS IN JAKARTA, INDONESIA" in text
    assert "Rp 1.900.000 ~Rp 2.500.000~" in text
    assert "Ibis Budget Menteng" in text
    assert "https://www.google.com/maps/search/?api=1&query=-6.195,106.823" in text
    assert "cs@example.com" in text
    assert len(result.response.structured_result["hotels"]) == 2


def test_skip_budget_searches_without_limit(engine, provider):
    scope = Direct("alice")
    result = say(engine, scope, "I want to stay in Jakarta", "yes", "tomorrow", "20-11-2025", "2", "1", "skip")

    assert result.handled
    assert provider.region_calls[-1]["max_price_per_night"] is None


def test_budget_in_trigger_skips_budget_question(engine, store, provider):
    scope = Direct("alice")
    say(engine, scope, "hotel in Bali under 1jt", "ya", "16-11-2025", "17-11-2025", "2-1-0")

    result = say(engine, scope, "1")
    assert result.response.structured_result is not None
    assert store.get(scope) is None
    assert provider.region_calls[-1]["max_price_per_night"] == 1_000_000
    assert provider.region_calls[-1]["occupancy"] == Occupancy(adults=2, children=1)


def test_check_out_must_follow_check_in(engine, store):
    scope = Direct("alice")
    result = say(engine, scope, "I want to stay in Jakarta", "yes", "16-11-2025", "15-11-2025")

    assert "after the check-in date" in result.response.text
    assert store.get(scope).step == BookingStep.AWAITING_CHECK_OUT_DATE
    assert store.get(scope).slots.check_out is None


def test_invalid_answers_reprompt_without_advancing(engine, store):
    scope = Direct("alice")
    say(engine, scope, "I want to stay in Jakarta")

    result = say(engine, scope, "hmm")
    assert "Yes or No" in result.response.text
    assert store.get(scope).step == BookingStep.AWAITING_LOCATION_CONFIRM

    say(engine, scope, "yes")
    result = say(engine, scope, "soon")
    assert "date format" in result.response.text
    assert store.get(scope).step == BookingStep.AWAITING_CHECK_IN_DATE

    say(engine, scope, "16-11-2025", "18-11-2025")
    result = say(engine, scope, "0-2-0")
    assert "at least 1 adult" in result.response.text
    assert store.get(scope).step == BookingStep.AWAITING_GUEST_COUNT

    say(engine, scope, "2")
    result = say(engine, scope, "0")
    assert "At least 1 room" in result.response.text
    assert store.get(scope).step == BookingStep.AWAITING_ROOM_COUNT

    say(engine, scope, "1")
    result = say(engine, scope, "cheap")
    assert "couldn't read that budget" in result.response.text
    assert store.get(scope).step == BookingStep.AWAITING_BUDGET


def test_cancel_mid_flow(engine, store):
    scope = Direct("alice")
    result = say(engine, scope, "I want to stay in Jakarta", "yes", "16-11-2025", "cancel")

    assert result.response.text == CANCELLED_REPLY
    assert store.get(scope) is None


def test_general_question_leaves_flow(engine, store):
    scope = Direct("alice")
    say(engine, scope, "I want to stay in Jakarta", "yes")

    result = engine.handle(scope, "What is the capital of France?", "Alice")
    assert result is NOT_HANDLED
    assert store.get(scope) is None


def test_valid_answer_with_pleasantry_stays_in_flow(engine, store):
    scope = Direct("alice")
    say(engine, scope, "I want to stay in Jakarta", "yes")

    result = engine.handle(scope, "tomorrow please, thanks!", "Alice")
    assert result.handled
    assert store.get(scope).step == BookingStep.AWAITING_CHECK_OUT_DATE
    assert store.get(scope).slots.check_in == date(2025, 11, 11)


def test_unrelated_message_is_not_handled(engine, store):
    assert engine.handle(Direct("alice"), "What is the capital of France?") is NOT_HANDLED
    assert engine.handle(Direct("alice"), "yes") is NOT_HANDLED
    assert len(store) == 0


def test_trigger_without_location_asks_for_one(engine, store, provider):
    result = engine.handle(Direct("alice"), "I need a hotel", "Alice")

    assert "Which city" in result.response.text
    assert "Alice" in result.response.text
    assert provider.location_calls == []
    assert store.get(Direct("alice")) is None


def test_unknown_location(engine, store):
    result = engine.handle(Direct("alice"), "I want to stay in Atlantis")

    assert "couldn't find" in result.response.text
    assert "Atlantis" in result.response.text
    assert store.get(Direct("alice")) is None


def test_rejected_location_clears_state(engine, store):
    scope = Direct("alice")
    result = say(engine, scope, "I want to stay in Jakarta", "no")

    assert "correct location" in result.response.text
    assert store.get(scope) is None


def test_location_lookup_failure_apologises(engine, store, provider):
    provider.fail_location = True
    result = engine.handle(Direct("alice"), "I want to stay in Jakarta")

    assert result.response.text == SEARCH_FAILED_REPLY
    assert store.get(Direct("alice")) is None


def test_search_failure_apologises_and_clears(engine, store, provider):
    provider.fail_search = True
    scope = Direct("alice")
    result = say(engine, scope, "I want to stay in Jakarta", "yes", "16-11-2025", "18-11-2025", "2", "1", "500k")

    assert result.response.text == SEARCH_FAILED_REPLY
    assert result.response.structured_result is None
    assert store.get(scope) is None


def test_no_hotels_found(engine, store, provider):
    provider.hotels = []
    scope = Direct("alice")
    result = say(engine, scope, "I want to stay in Jakarta", "yes", "16-11-2025", "18-11-2025", "2", "1", "skip")

    assert "no hotels available" in result.response.text
    assert result.response.structured_result is None
    assert store.get(scope) is None


def test_property_flow_lists_rooms(engine, provider):
    provider.locations["Grand Hyatt Jakarta"] = PropertyLocation(
        property_id="p-99", name="Grand Hyatt Jakarta", star_rating=5,
    )
    scope = Direct("alice")

    result = engine.handle(scope, "I want to stay at Grand Hyatt Jakarta")
    assert "I found the hotel" in result.response.text
    assert "⭐⭐⭐⭐⭐" in result.response.text

    result = say(engine, scope, "yes", "16-11-2025", "18-11-2025", "2", "1", "skip")
    assert provider.property_calls[-1]["property_id"] == "p-99"
    assert "GRAND HYATT JAKARTA" in result.response.text
    assert "Deluxe King" in result.response.text
    assert "Rp 990.000 ~Rp 1.200.000~" in result.response.text
    assert "✅ Refundable" in result.response.text
    assert result.response.structured_result["rooms"][0]["detail_id"] == "r1"


def test_state_expires_between_messages(engine, store, clock):
    scope = Direct("alice")
    say(engine, scope, "I want to stay in Jakarta")

    clock.advance(301)
    assert engine.handle(scope, "yes") is NOT_HANDLED
    assert store.get(scope) is None


def test_group_members_have_separate_flows(engine, store):
    alice = Grouped(group_id="trip-crew", user_id="alice")
    bob = Grouped(group_id="trip-crew", user_id="bob")

    say(engine, alice, "I want to stay in Jakarta", "yes")

    assert engine.handle(bob, "16-11-2025") is NOT_HANDLED
    assert engine.handle(Direct("alice"), "16-11-2025") is NOT_HANDLED
    assert store.get(alice).step == BookingStep.AWAITING_CHECK_IN_DATE


def test_parse_guests_and_rooms():
    assert parse_guests("2-1-0") == (2, 1, 0)
    assert parse_guests("3") == (3, 0, 0)
    assert parse_guests("0-1-0") is None
    assert parse_guests("none") is None
    assert parse_rooms("2") == 2
    assert parse_rooms("0") is None
    assert parse_rooms("two") is None


def test_adults_only_scenario_ends_in_unlimited_search(engine, store, provider):
    scope = Direct("u1")

    engine.handle(scope, "I want to stay in Jakarta")
    assert store.get(scope).slots.query == "Jakarta"

    say(engine, scope, "yes", "16-11-2025", "17-11-2025", "2")
    state = store.get(scope)
    assert state.step == BookingStep.AWAITING_ROOM_COUNT
    assert (state.slots.adults, state.slots.children, state.slots.infants) == (2, 0, 0)

    say(engine, scope, "1")
    assert store.get(scope).step == BookingStep.AWAITING_BUDGET

    result = say(engine, scope, "skip")
    assert result.handled
    assert provider.region_calls[-1]["max_price_per_night"] is None
    assert store.get(scope) is None


def test_message_after_cancel_is_stateless(engine, store):
    scope = Direct("u1")
    say(engine, scope, "I want to stay in Jakarta", "yes", "16-11-2025", "17-11-2025", "cancel")

    assert engine.handle(scope, "2") is NOT_HANDLED
    assert store.get(scope) is None


def test_services_question_at_check_in_falls_back(engine, store):
    scope = Direct("u1")
    say(engine, scope, "I want to stay in Jakarta", "yes")

    assert engine.handle(scope, "what services do you offer") is NOT_HANDLED
    assert store.get(scope) is None


def test_everyday_want_to_sentence_is_not_a_booking(engine, store, provider):
    assert engine.handle(Direct("u1"), "I need to write an email to my boss") is NOT_HANDLED
    assert provider.location_calls == []
    assert store.get(Direct("u1")) is None


def test_unrecognised_step_is_dropped(engine, store):
    scope = Direct("u1")
    store.set(scope, "awaiting_payment", BookingSlots(query="Jakarta"))

    assert engine.handle(scope, "16-11-2025") is NOT_HANDLED
    assert store.get(scope) is None


def test_rejected_location_names_the_query(engine):
    result = say(engine, Direct("u1"), "I want to stay in Jakarta", "bukan")

    assert '"Jakarta"' in result.response.text
