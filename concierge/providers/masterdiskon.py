from __future__ import annotations

import logging
from datetime import date
from typing import Any, Dict, List, Optional

import requests

from concierge.providers.base import (
    DEFAULT_MAX_PRICE,
    HotelOption,
    HotelSearchProvider,
    LocationCandidate,
    Occupancy,
    PropertyDetail,
    PropertyLocation,
    PropertyRoomsResult,
    ProviderError,
    RegionLocation,
    RegionSearchResult,
    RoomOption,
    format_api_date,
)

logger = logging.getLogger(__name__)

MAX_ROOM_OPTIONS = 5


def _coord(value: Any) -> str:
    # the API sometimes sends "-6,2088" style decimals
    if value is None or value == "":
        return ""
    return str(value).strip().replace(",", ".")


def _float(value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def _int(value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


class MasterdiskonProvider(HotelSearchProvider):
    """
    Hotel autocomplete + availability over the Masterdiskon booking API.

    - /booking/autocomplete resolves free text to a region (geoid) or a single property
    - /apitrav/booking/search lists hotels in a region
    - /apitrav/booking/offerdetail lists room offers for one property
    """

    def __init__(self, base_url: str, timeout: float = 15.0, session: Optional[requests.Session] = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    def _request(self, method: str, path: str, **kwargs) -> Any:
        url = f"{self.base_url}{path}"
        try:
            r = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            raise ProviderError(f"Hotel API unreachable: {e}") from e
        if r.status_code >= 400:
            raise ProviderError(f"Hotel API error {r.status_code}: {r.text[:200]}")
        try:
            return r.json()
        except ValueError as e:
            raise ProviderError("Hotel API returned invalid JSON") from e

    @staticmethod
    def _pax(occupancy: Occupancy, rooms: int) -> Dict[str, Any]:
        return {
            "room": str(rooms),
            "adult": str(occupancy.adults),
            "child": str(occupancy.children),
            "infant": str(occupancy.infants),
            "childAge": [],
        }

    def _base_body(self, origin: str, keyword: str, date_from: date, date_to: date,
                   occupancy: Occupancy, rooms: int) -> Dict[str, Any]:
        pax = self._pax(occupancy, rooms)
        return {
            "product": "hotel",
            "from": origin,
            "keyword": keyword,
            "dateFrom": format_api_date(date_from),
            "dateTo": format_api_date(date_to),
            "adult": pax["adult"],
            "child": pax["child"],
            "infant": pax["infant"],
            "room": pax["room"],
            "childAge": [],
            "classFrom": "0",
            "classTo": "5",
            "showDetail": False,
            "pax": pax,
        }

    def search_location(self, query: str) -> Optional[LocationCandidate]:
        logger.info("Searching location: %s", query)
        result = self._request("GET", "/booking/autocomplete", params={"product": "hotel", "q": query})

        items: List[dict] = (result or {}).get("data") or []
        if not items:
            return None

        region = next((it for it in items if it.get("geoid")), None)
        if region:
            return RegionLocation(
                region_id=str(region["geoid"]),
                name=region.get("fullname") or region.get("name") or query,
                level=region.get("level"),
                address=region.get("address"),
            )

        first = items[0]
        property_id = first.get("productId") or first.get("id")
        if not property_id:
            return None
        return PropertyLocation(
            property_id=str(property_id),
            name=first.get("fullname") or first.get("name") or query,
            star_rating=_int(first.get("starRating")),
            level=first.get("level"),
            address=first.get("address"),
        )

    def search_by_region(
        self,
        region_id: str,
        keyword: str,
        date_from: date,
        date_to: date,
        occupancy: Occupancy,
        rooms: int,
        max_price_per_night: Optional[int] = None,
        page: int = 1,
        page_size: int = 10,
    ) -> RegionSearchResult:
        body = self._base_body(region_id, keyword, date_from, date_to, occupancy, rooms)
        body["filter"] = {
            "search": "",
            "page": page,
            "limit": page_size,
            "orderType": "",
            "priceFrom": 0,
            "priceTo": max_price_per_night or DEFAULT_MAX_PRICE,
            "class": [],
            "recomendedOnly": False,
            "reviews": [],
        }
        logger.info("Searching hotels in %s (%s -> %s)", keyword, body["dateFrom"], body["dateTo"])
        result = self._request("POST", "/apitrav/booking/search", json=body) or {}

        data = result.get("data") or {}
        options = data.get("productOptions") if result.get("success") else None
        if not options:
            return RegionSearchResult(hotels=[], meta={"total": 0, "page": 1, "maxPage": 0})

        hotels = []
        for h in options:
            detail = h.get("detail") or {}
            hotels.append(HotelOption(
                id=str(h.get("id")),
                name=h.get("name") or "Unknown",
                price=_float(h.get("price")),
                promo_price=_float(h.get("promoPrice")) if h.get("promoPrice") is not None else None,
                is_promo=bool(h.get("isPromo")),
                star_class=_int(h.get("class")),
                review_score=str(h["reviewScore"]) if h.get("reviewScore") is not None else None,
                address=detail.get("address") or "",
                city=detail.get("city") or "",
                latitude=_coord(detail.get("latitude")),
                longitude=_coord(detail.get("longitude")),
                image=h.get("image"),
            ))

        meta = result.get("meta") or {"total": len(hotels), "page": page, "maxPage": 1, "limit": page_size}
        logger.info("Found %d hotels (total: %s)", len(hotels), meta.get("total"))
        return RegionSearchResult(hotels=hotels, meta=meta)

    def search_property_rooms(
        self,
        property_id: str,
        keyword: str,
        date_from: date,
        date_to: date,
        occupancy: Occupancy,
        rooms: int,
    ) -> PropertyRoomsResult:
        body = self._base_body(property_id, keyword, date_from, date_to, occupancy, rooms)
        body["productId"] = property_id
        body["productDetail"] = property_id
        logger.info("Getting room offers for property %s", property_id)
        result = self._request("POST", "/apitrav/booking/offerdetail", json=body) or {}

        data = result.get("data")
        if not result.get("success") or not data:
            return PropertyRoomsResult()

        detail = data.get("detail") or {}
        prop = PropertyDetail(
            id=str(data.get("id") or property_id),
            name=data.get("name") or keyword,
            star_class=_int(data.get("class")),
            review_score=str(data["reviewScore"]) if data.get("reviewScore") is not None else None,
            address=detail.get("address") or "",
            city=detail.get("city") or "",
            latitude=_coord(detail.get("latitude")),
            longitude=_coord(detail.get("longitude")),
        )

        room_options = []
        for option in data.get("options") or []:
            for room in option.get("room") or []:
                room_options.append(RoomOption(
                    detail_id=room.get("detailId"),
                    type=room.get("type") or "Room",
                    price=_float(room.get("price")),
                    promo_price=_float(room.get("promoPrice")) if room.get("promoPrice") is not None else None,
                    max_occupancy=room.get("maxOccupancy"),
                    refundable=bool(room.get("refundIncluded")),
                ))

        return PropertyRoomsResult(
            property=prop,
            rooms=room_options[:MAX_ROOM_OPTIONS],
            meta={"totalRooms": len(room_options)},
        )
