from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from types import MappingProxyType

from schemas.venue import AgeRange, IndoorOutdoor, VenueType

# Place types searched when the local venue cache is too sparse.
# The provider accepts a single type per nearby-search request.
FAMILY_FRIENDLY_CATEGORIES: tuple[str, ...] = (
    "park",
    "playground",
    "library",
    "museum",
    "aquarium",
    "zoo",
    "amusement_park",
)

# Ordered: the first place type of a result found in this table decides its venue type.
GOOGLE_TYPE_TO_VENUE_TYPE: Mapping[str, VenueType] = MappingProxyType(
    {
        "park": VenueType.PARK,
        "playground": VenueType.PLAYGROUND,
        "library": VenueType.LIBRARY,
        "museum": VenueType.MUSEUM,
        "art_gallery": VenueType.MUSEUM,
        "aquarium": VenueType.MUSEUM,
        "zoo": VenueType.MUSEUM,
        "amusement_park": VenueType.INDOOR_PLAY,
        "bowling_alley": VenueType.SPORTS_FACILITY,
        "gym": VenueType.SPORTS_FACILITY,
        "stadium": VenueType.SPORTS_FACILITY,
        "cafe": VenueType.CAFE,
        "restaurant": VenueType.RESTAURANT,
        "community_center": VenueType.COMMUNITY_CENTER,
    }
)

DEFAULT_AGE_RANGE = AgeRange(min=0, max=18)

VENUE_TYPE_AGE_RANGE: Mapping[VenueType, AgeRange] = MappingProxyType(
    {
        VenueType.PLAYGROUND: AgeRange(min=2, max=12),
        VenueType.PARK: AgeRange(min=0, max=18),
        VenueType.LIBRARY: AgeRange(min=0, max=18),
        VenueType.MUSEUM: AgeRange(min=3, max=18),
        VenueType.INDOOR_PLAY: AgeRange(min=1, max=10),
        VenueType.SPORTS_FACILITY: AgeRange(min=5, max=18),
        VenueType.COMMUNITY_CENTER: AgeRange(min=0, max=18),
        VenueType.CAFE: AgeRange(min=0, max=18),
        VenueType.RESTAURANT: AgeRange(min=0, max=18),
        VenueType.OTHER: AgeRange(min=0, max=18),
    }
)

# None means the venue type alone does not decide; fall back to the place types.
VENUE_TYPE_INDOOR_OUTDOOR: Mapping[VenueType, IndoorOutdoor | None] = MappingProxyType(
    {
        VenueType.PARK: IndoorOutdoor.OUTDOOR,
        VenueType.PLAYGROUND: IndoorOutdoor.OUTDOOR,
        VenueType.LIBRARY: IndoorOutdoor.INDOOR,
        VenueType.MUSEUM: IndoorOutdoor.INDOOR,
        VenueType.CAFE: IndoorOutdoor.INDOOR,
        VenueType.RESTAURANT: IndoorOutdoor.INDOOR,
        VenueType.COMMUNITY_CENTER: IndoorOutdoor.BOTH,
        VenueType.SPORTS_FACILITY: IndoorOutdoor.BOTH,
        VenueType.INDOOR_PLAY: None,
        VenueType.OTHER: None,
    }
)

OUTDOOR_PLACE_TYPES = frozenset({"park", "campground"})
INDOOR_PLACE_TYPES = frozenset({"library", "museum", "shopping_mall", "store"})

AMENITIES_BY_PLACE_TYPE: tuple[tuple[frozenset[str], tuple[str, ...]], ...] = (
    (frozenset({"park"}), ("outdoor_space", "benches")),
    (frozenset({"playground"}), ("playground", "swings", "slides")),
    (frozenset({"library"}), ("books", "reading_area", "wifi")),
    (frozenset({"museum", "art_gallery"}), ("exhibits", "educational")),
    (frozenset({"cafe", "restaurant"}), ("food", "seating")),
    (frozenset({"wheelchair_accessible_entrance"}), ("wheelchair_accessible",)),
    (frozenset({"library", "museum", "restaurant", "cafe", "community_center"}), ("restrooms",)),
)

WEEKDAYS: Mapping[str, str] = MappingProxyType(
    {
        "Monday": "monday",
        "Tuesday": "tuesday",
        "Wednesday": "wednesday",
        "Thursday": "thursday",
        "Friday": "friday",
        "Saturday": "saturday",
        "Sunday": "sunday",
    }
)

# "Monday: 9:00 AM – 5:00 PM"
_WEEKDAY_HOURS_PATTERN = re.compile(r"^(\w+):\s*([\d:]+\s*[AP]M)\s*[–-]\s*([\d:]+\s*[AP]M)$")


def map_google_types_to_venue_type(place_types: Iterable[str]) -> VenueType:
    for place_type in place_types:
        venue_type = GOOGLE_TYPE_TO_VENUE_TYPE.get(place_type)
        if venue_type is not None:
            return venue_type
    return VenueType.OTHER


def estimate_age_suitability(venue_type: VenueType) -> AgeRange:
    return VENUE_TYPE_AGE_RANGE.get(venue_type, DEFAULT_AGE_RANGE)


def determine_indoor_outdoor(venue_type: VenueType, place_types: Iterable[str]) -> IndoorOutdoor:
    fixed = VENUE_TYPE_INDOOR_OUTDOOR.get(venue_type)
    if fixed is not None:
        return fixed

    types = set(place_types)
    has_outdoor = bool(types & OUTDOOR_PLACE_TYPES)
    has_indoor = bool(types & INDOOR_PLACE_TYPES)
    if has_outdoor and has_indoor:
        return IndoorOutdoor.BOTH
    if has_indoor:
        return IndoorOutdoor.INDOOR
    return IndoorOutdoor.OUTDOOR


def extract_amenities(place_types: Iterable[str]) -> list[str]:
    types = set(place_types)
    amenities: list[str] = []
    for triggers, tags in AMENITIES_BY_PLACE_TYPE:
        if types & triggers:
            amenities.extend(tag for tag in tags if tag not in amenities)
    return amenities


def parse_opening_hours(weekday_text: Iterable[str] | None) -> dict[str, dict[str, str]] | None:
    hours: dict[str, dict[str, str]] = {}
    for line in weekday_text or ():
        match = _WEEKDAY_HOURS_PATTERN.match(line.strip())
        if not match:
            continue
        day, open_at, close_at = match.groups()
        day_key = WEEKDAYS.get(day)
        if day_key:
            hours[day_key] = {"open": open_at, "close": close_at}
    return hours or None
