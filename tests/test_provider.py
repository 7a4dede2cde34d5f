from datetime import date

import pytest
import requests

from concierge.providers.base import DEFAULT_MAX_PRICE, Occupancy, PropertyLocation, ProviderError, RegionLocation
from concierge.providers.masterdiskon import MAX_ROOM_OPTIONS, MasterdiskonProvider


class FakeResponse:
    def __init__(self, payload=None, status_code=200, text=""):
        self._payload = payload
        self.status_code = status_code
        self.text = text

    def json(self):
        if isinstance(self._payload, Exception):
            raise self._payload
        return self._payload


class FakeSession:
    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls = []

    def request(self, method, url, timeout=None, **kwargs):
        self.calls.append({"method": method, "url": url, "timeout": timeout, **kwargs})
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


def make_provider(*responses):
    session = FakeSession(*responses)
    return MasterdiskonProvider("https://api.example.com/v1/", timeout=5, session=session), session


def test_location_prefers_region():
    provider, session = make_provider(FakeResponse({"data": [
        {"productId": "p1", "fullname": "Jakarta Hotel"},
        {"geoid": 12345, "fullname": "Jakarta, Indonesia", "level": "city"},
    ]}))

    location = provider.search_location("Jakarta")

    assert location == RegionLocation(region_id="12345", name="Jakarta, Indonesia", level="city")
    call = session.calls[0]
    assert call["method"] == "GET"
    assert call["url"] == "https://api.example.com/v1/booking/autocomplete"
    assert call["params"] == {"product": "hotel", "q": "Jakarta"}
    assert call["timeout"] == 5


def test_location_falls_back_to_property():
    provider, _ = make_provider(FakeResponse({"data": [
        {"productId": "p1", "fullname": "Grand Hyatt Jakarta", "starRating": "5"},
    ]}))

    location = provider.search_location("Grand Hyatt")

    assert isinstance(location, PropertyLocation)
    assert location.property_id == "p1"
    assert location.star_rating == 5


def test_location_not_found():
    provider, _ = make_provider(FakeResponse({"data": []}))
    assert provider.search_location("Atlantis") is None


@pytest.mark.parametrize("response", [
    FakeResponse({"error": "boom"}, status_code=500, text="boom"),
    FakeResponse(ValueError("not json")),
    requests.ConnectionError("refused"),
])
def test_failures_raise_provider_error(response):
    provider, _ = make_provider(response)
    with pytest.raises(ProviderError):
        provider.search_location("Jakarta")


def test_region_search_request_and_parsing():
    provider, session = make_provider(FakeResponse({
        "success": True,
        "data": {"productOptions": [{
            "id": 11,
            "name": "Hotel Indonesia Kempinski",
            "price": "2500000",
            "promoPrice": 1900000,
            "isPromo": True,
            "class": "5",
            "reviewScore": 8.9,
            "detail": {"address": "Jl. M.H. Thamrin", "city": "Jakarta", "latitude": "-6,195", "longitude": "106,823"},
        }]},
        "meta": {"total": 120, "page": 1, "maxPage": 12},
    }))

    result = provider.search_by_region(
        region_id="12345",
        keyword="Jakarta, Indonesia",
        date_from=date(2025, 11, 16),
        date_to=date(2025, 11, 18),
        occupancy=Occupancy(adults=2),
        rooms=1,
    )

    body = session.calls[0]["json"]
    assert session.calls[0]["url"].endswith("/apitrav/booking/search")
    assert body["from"] == "12345"
    assert body["dateFrom"] == "16-11-2025"
    assert body["dateTo"] == "18-11-2025"
    assert body["pax"]["adult"] == "2"
    assert body["filter"]["priceTo"] == DEFAULT_MAX_PRICE

    hotel = result.hotels[0]
    assert hotel.price == 2_500_000
    assert hotel.promo_price == 1_900_000
    assert hotel.star_class == 5
    assert hotel.latitude == "-6.195"
    assert result.meta["total"] == 120


def test_region_search_budget_and_empty_result():
    provider, session = make_provider(FakeResponse({"success": False, "data": None}))

    result = provider.search_by_region(
        region_id="12345", keyword="Jakarta", date_from=date(2025, 11, 16), date_to=date(2025, 11, 18),
        occupancy=Occupancy(adults=1), rooms=1, max_price_per_night=500_000,
    )

    assert session.calls[0]["json"]["filter"]["priceTo"] == 500_000
    assert result.hotels == []


def test_property_rooms_are_capped():
    rooms = [{"detailId": f"r{i}", "type": f"Room {i}", "price": 1_000_000 + i} for i in range(8)]
    provider, session = make_provider(FakeResponse({
        "success": True,
        "data": {"id": "p1", "name": "Grand Hyatt Jakarta", "class": 5, "options": [{"room": rooms}]},
    }))

    result = provider.search_property_rooms(
        property_id="p1", keyword="Grand Hyatt Jakarta", date_from=date(2025, 11, 16),
        date_to=date(2025, 11, 18), occupancy=Occupancy(adults=2), rooms=1,
    )

    assert session.calls[0]["json"]["productId"] == "p1"
    assert result.property.name == "Grand Hyatt Jakarta"
    assert len(result.rooms) == MAX_ROOM_OPTIONS
    assert result.meta["totalRooms"] == 8
