from typing import Optional

from concierge.booking.dates import format_date
from concierge.booking.state import BookingSlots
from concierge.providers.base import HotelOption, PropertyRoomsResult, RegionSearchResult

DIVIDER = "━━━━━━━━━━━━━━━━━━━━"

MAX_HOTELS_SHOWN = 7


def format_price(amount: float) -> str:
    """IDR with dot thousands separators: 1500000 -> 'Rp 1.500.000'."""
    return "Rp " + f"{int(round(amount)):,}".replace(",", ".")


def format_guests(adults: int, children: int = 0, infants: int = 0) -> str:
    parts = [f"{adults} adult{'s' if adults != 1 else ''}"]
    if children > 0:
        parts.append(f"{children} child{'ren' if children != 1 else ''}")
    if infants > 0:
        parts.append(f"{infants} infant{'s' if infants != 1 else ''}")
    return ", ".join(parts)


def stars(count: Optional[int]) -> str:
    return "⭐" * max(0, int(count or 0))


def maps_link(latitude: str, longitude: str) -> Optional[str]:
    lat = str(latitude or "").strip().replace(",", ".")
    lon = str(longitude or "").strip().replace(",", ".")
    if not lat or not lon:
        return None
    try:
        float(lat)
        float(lon)
    except ValueError:
        return None
    return f"https://www.google.com/maps/search/?api=1&query={lat},{lon}"


def _has_rating(score: Optional[str]) -> bool:
    try:
        return float(score or 0) > 0
    except ValueError:
        return False


def support_footer(phone: Optional[str], email: Optional[str], closing: str) -> str:
    lines = [DIVIDER, ""]
    if phone or email:
        lines.append("To book, contact our customer service:")
        if phone:
            lines.append(f"📞 {phone}")
        if email:
            lines.append(f"📧 {email}")
        lines.append("")
    lines.append(f"_{closing}_")
    return "\n".join(lines)


def _stay_header(slots: BookingSlots) -> list[str]:
    return [
        f"📅 {format_date(slots.check_in)} - {format_date(slots.check_out)}",
        f"👥 {format_guests(slots.adults or 1, slots.children, slots.infants)}",
        f"🛏️ {slots.rooms} room{'s' if slots.rooms != 1 else ''}",
    ]


def _hotel_entry(index: int, hotel: HotelOption) -> list[str]:
    lines = [f"{index}. *{hotel.name}*"]
    if hotel.star_class:
        lines.append(stars(hotel.star_class))

    if hotel.is_promo and hotel.promo_price:
        lines.append(f"💰 {format_price(hotel.promo_price)} ~{format_price(hotel.price)}~ 🔥")
    else:
        lines.append(f"💰 {format_price(hotel.price)}")

    if _has_rating(hotel.review_score):
        lines.append(f"⭐ Rating: {hotel.review_score}/10")
    if hotel.address:
        lines.append(f"📍 {hotel.address}")
    link = maps_link(hotel.latitude, hotel.longitude)
    if link:
        lines.append(f"🗺️ Map: {link}")
    return lines


def format_region_results(location_name: str, slots: BookingSlots, result: RegionSearchResult,
                          phone: Optional[str] = None, email: Optional[str] = None) -> str:
    lines = [f"🏨 *HOTELS IN {location_name.upper()}*", ""]
    lines.extend(_stay_header(slots))
    if slots.budget_per_night:
        lines.append(f"💰 Budget: max {format_price(slots.budget_per_night)}/night")
    lines.extend(["", DIVIDER, ""])

    for i, hotel in enumerate(result.hotels[:MAX_HOTELS_SHOWN], start=1):
        lines.extend(_hotel_entry(i, hotel))
        lines.append("")

    lines.append(support_footer(phone, email, "Tell us which hotel you like to get the best offer!"))
    return "\n".join(lines)


def format_property_rooms(slots: BookingSlots, result: PropertyRoomsResult,
                          phone: Optional[str] = None, email: Optional[str] = None) -> str:
    prop = result.property
    lines = [f"🏨 *{prop.name.upper()}*"]
    if prop.star_class:
        lines.append(stars(prop.star_class))
    lines.append("")
    lines.extend(_stay_header(slots))
    if prop.address:
        lines.append(f"📍 {prop.address}")
    link = maps_link(prop.latitude, prop.longitude)
    if link:
        lines.append(f"🗺️ Map: {link}")
    lines.extend(["", DIVIDER, "*ROOM OPTIONS:*", ""])

    for i, room in enumerate(result.rooms, start=1):
        lines.append(f"{i}. {room.type}")
        if room.promo_price and room.promo_price < room.price:
            lines.append(f"💰 {format_price(room.promo_price)} ~{format_price(room.price)}~ 🔥")
        else:
            lines.append(f"💰 {format_price(room.price)}")
        if room.max_occupancy:
            lines.append(f"👥 Max: {room.max_occupancy} guests")
        lines.append("✅ Refundable" if room.refundable else "❌ Non-refundable")
        lines.append("")

    lines.append(support_footer(phone, email, "Tell us which room type you like to get the best offer!"))
    return "\n".join(lines)
