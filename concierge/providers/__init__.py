from concierge.providers.base import (
    HotelSearchProvider,
    LocationCandidate,
    Occupancy,
    PropertyLocation,
    ProviderError,
    RegionLocation,
)
from concierge.providers.masterdiskon import MasterdiskonProvider

__all__ = [
    "HotelSearchProvider",
    "LocationCandidate",
    "MasterdiskonProvider",
    "Occupancy",
    "PropertyLocation",
    "ProviderError",
    "RegionLocation",
]
