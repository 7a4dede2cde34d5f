from datetime import date

import pytest

from concierge.booking.engine import BookingFlowEngine
from concierge.booking.store import ConversationStateStore
from concierge.db import init_db, make_engine, make_session_factory
from concierge.memory.repository import SqlTurnRepository
from concierge.memory.window import ContextWindowManager
from concierge.providers.base import (
    HotelOption,
    HotelSearchProvider,
    PropertyDetail,
    PropertyRoomsResult,
    ProviderError,
    RegionLocation,
    RegionSearchResult,
    RoomOption,
)

TODAY = date(2025, 11, 10)


class FakeClock:
    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


class FakeProvider(HotelSearchProvider):
    def __init__(self):
        self.locations = {
            "Jakarta": RegionLocation(region_id="12345", name="Jakarta, Indonesia"),
            "Bali": RegionLocation(region_id="777", name="Bali, Indonesia"),
        }
        self.hotels = [
            HotelOption(id="h1", name="Hotel Indonesia Kempinski", price=2_500_000, promo_price=1_900_000,
                        is_promo=True, star_class=5, review_score="8.9", address="Jl. M.H. Thamrin No.1",
                        latitude="-6.195", longitude="106.823"),
            HotelOption(id="h2", name="Ibis Budget Menteng", price=450_000, star_class=2),
        ]
        self.rooms = [
            RoomOption(detail_id="r1", type="Deluxe King", price=1_200_000, promo_price=990_000,
                       max_occupancy=2, refundable=True),
        ]
        self.fail_location = False
        self.fail_search = False
        self.location_calls = []
        self.region_calls = []
        self.property_calls = []

    def search_location(self, query):
        self.location_calls.append(query)
        if self.fail_location:
            raise ProviderError("autocomplete down")
        return self.locations.get(query)

    def search_by_region(self, region_id, keyword, date_from, date_to, occupancy, rooms,
                         max_price_per_night=None, page=1, page_size=10):
        self.region_calls.append({
            "region_id": region_id,
            "keyword": keyword,
            "date_from": date_from,
            "date_to": date_to,
            "occupancy": occupancy,
            "rooms": rooms,
            "max_price_per_night": max_price_per_night,
        })
        if self.fail_search:
            raise ProviderError("search down")
        return RegionSearchResult(hotels=list(self.hotels), meta={"total": len(self.hotels), "page": 1})

    def search_property_rooms(self, property_id, keyword, date_from, date_to, occupancy, rooms):
        self.property_calls.append({"property_id": property_id, "rooms": rooms, "occupancy": occupancy})
        if self.fail_search:
            raise ProviderError("offer detail down")
        if not self.rooms:
            return PropertyRoomsResult()
        return PropertyRoomsResult(
            property=PropertyDetail(id=property_id, name=keyword, star_class=4, address="Jl. Sudirman 1"),
            rooms=list(self.rooms),
            meta={"totalRooms": len(self.rooms)},
        )


class FakeChatModel:
    """Stands in for ChatOpenAI: records the messages and returns a canned answer."""

    def __init__(self, content="Jakarta is the capital of Indonesia.", error=None):
        self.content = content
        self.error = error
        self.calls = []

    def invoke(self, messages):
        self.calls.append(messages)
        if self.error is not None:
            raise self.error
        return type("Reply", (), {"content": self.content})()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(clock):
    return ConversationStateStore(ttl_seconds=300, clock=clock)


@pytest.fixture
def provider():
    return FakeProvider()


@pytest.fixture
def engine(store, provider):
    return BookingFlowEngine(store, provider, today=lambda: TODAY,
                             support_phone="+62 21 555 0100", support_email="cs@example.com")


@pytest.fixture
def session_factory():
    db_engine = make_engine("sqlite://")
    init_db(db_engine)
    return make_session_factory(db_engine)


@pytest.fixture
def repository(session_factory):
    return SqlTurnRepository(session_factory)


@pytest.fixture
def memory(repository):
    return ContextWindowManager(repository, default_limit=10)
