from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass, field
from datetime import date
from typing import Any, Optional, Union

DATE_FMT = "%d-%m-%Y"  # the hotel API exchanges dates as DD-MM-YYYY

DEFAULT_MAX_PRICE = 20_000_000


class ProviderError(Exception):
    pass


@dataclass(frozen=True)
class RegionLocation:
    region_id: str
    name: str
    level: Optional[str] = None
    address: Optional[str] = None

    kind = "region"


@dataclass(frozen=True)
class PropertyLocation:
    property_id: str
    name: str
    star_rating: int = 0
    level: Optional[str] = None
    address: Optional[str] = None

    kind = "property"


LocationCandidate = Union[RegionLocation, PropertyLocation]


@dataclass(frozen=True)
class Occupancy:
    adults: int = 1
    children: int = 0
    infants: int = 0


@dataclass
class HotelOption:
    id: str
    name: str
    price: float
    promo_price: Optional[float] = None
    is_promo: bool = False
    star_class: int = 0
    review_score: Optional[str] = None
    address: str = ""
    city: str = ""
    latitude: str = ""
    longitude: str = ""
    image: Optional[str] = None


@dataclass
class RegionSearchResult:
    hotels: list[HotelOption] = field(default_factory=list)
    meta: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class PropertyDetail:
    id: str
    name: str
    star_class: int = 0
    review_score: Optional[str] = None
    address: str = ""
    city: str = ""
    latitude: str = ""
    longitude: str = ""


@dataclass
class RoomOption:
    detail_id: Optional[str]
    type: str
    price: float
    promo_price: Optional[float] = None
    max_occupancy: Optional[int] = None
    refundable: bool = False


@dataclass
class PropertyRoomsResult:
    property: Optional[PropertyDetail] = None
    rooms: list[RoomOption] = field(default_factory=list)
    meta: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return asdict(self)


def format_api_date(d: date) -> str:
    return d.strftime(DATE_FMT)


class HotelSearchProvider(ABC):
    @abstractmethod
    def search_location(self, query: str) -> Optional[LocationCandidate]:
        ...

    @abstractmethod
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
        ...

    @abstractmethod
    def search_property_rooms(
        self,
        property_id: str,
        keyword: str,
        date_from: date,
        date_to: date,
        occupancy: Occupancy,
        rooms: int,
    ) -> PropertyRoomsResult:
        ...
