from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Iterable

from pydantic import ValidationError
from pymongo.errors import PyMongoError

from core.errors import store_failure, validation_failed
from core.geo import haversine_miles
from core.settings import load_settings
from core.validation_errors import details_from_validation_error
from core.venue_rules import (
    FAMILY_FRIENDLY_CATEGORIES,
    determine_indoor_outdoor,
    estimate_age_suitability,
    map_google_types_to_venue_type,
)
from repositories.venue_repo import search_venues_in_bounds
from schemas.venue import ExternalPlace, VenueSearchFilter, VenueSearchResult, VenueWithDetails
from security.principal import AuthPrincipal
from security.venue_access_check import annotation_identity
from services.places_client import get_place_photo_url, search_nearby_by_category

logger = logging.getLogger(__name__)


def build_search_filter(raw_params: dict[str, Any]) -> VenueSearchFilter:
    """Validates raw search parameters; nothing is executed when this fails."""
    try:
        return VenueSearchFilter.model_validate(raw_params)
    except ValidationError as exc:
        raise validation_failed(
            "Invalid search parameters",
            details=details_from_validation_error(exc, location="query"),
        ) from exc


def _has_relation(row: dict[str, Any], relation: str, user_id: str | None) -> bool:
    if user_id is None:
        return False
    related = row.get(relation) or []
    return any(isinstance(item, dict) and item.get("user_id") == user_id for item in related)


def annotate_persisted_row(
    row: dict[str, Any],
    *,
    search_filter: VenueSearchFilter,
    user_id: str | None,
) -> VenueWithDetails:
    distance = haversine_miles(
        search_filter.latitude,
        search_filter.longitude,
        float(row["lat"]),
        float(row["lng"]),
    )
    return VenueWithDetails.model_validate(
        {
            **row,
            "distance": distance,
            "is_favorite": _has_relation(row, "user_favorite_venues", user_id),
            "user_has_visited": _has_relation(row, "venue_visits", user_id),
        }
    )


async def _search_category(search_filter: VenueSearchFilter, category: str) -> list[ExternalPlace]:
    return await asyncio.wait_for(
        search_nearby_by_category(
            search_filter.latitude,
            search_filter.longitude,
            search_filter.radius,
            category,
        ),
        timeout=load_settings().places_timeout_s,
    )


async def fetch_family_friendly_places(search_filter: VenueSearchFilter) -> list[ExternalPlace]:
    """Queries every family category concurrently; failed categories are logged and skipped."""
    outcomes = await asyncio.gather(
        *(_search_category(search_filter, category) for category in FAMILY_FRIENDLY_CATEGORIES),
        return_exceptions=True,
    )

    places: list[ExternalPlace] = []
    seen_place_ids: set[str] = set()
    failed_categories: list[str] = []
    for category, outcome in zip(FAMILY_FRIENDLY_CATEGORIES, outcomes):
        if isinstance(outcome, BaseException):
            failed_categories.append(category)
            logger.warning("Places lookup failed for category %s: %r", category, outcome)
            continue
        for place in outcome:
            if place.place_id in seen_place_ids:
                continue
            seen_place_ids.add(place.place_id)
            places.append(place)

    if len(failed_categories) == len(FAMILY_FRIENDLY_CATEGORIES):
        logger.warning("All places lookups failed; returning stored venues only")

    places.sort(key=lambda place: place.rating or 0, reverse=True)
    return places


def enrich_external_place(place: ExternalPlace, *, search_filter: VenueSearchFilter) -> VenueWithDetails:
    """Builds a transient venue from a provider result; the place id stands in as venue id."""
    venue_type = map_google_types_to_venue_type(place.types)
    photo_urls: list[str] = []
    if place.photo_references:
        photo_url = get_place_photo_url(place.photo_references[0])
        if photo_url:
            photo_urls.append(photo_url)

    now = int(time.time())
    return VenueWithDetails(
        id=place.place_id,
        name=place.name,
        venue_type=venue_type,
        google_place_id=place.place_id,
        formatted_address=place.formatted_address,
        lat=place.lat,
        lng=place.lng,
        description="",
        rating=place.rating or 0,
        total_reviews=place.user_ratings_total or 0,
        price_level=place.price_level,
        amenities=[],
        age_suitability=estimate_age_suitability(venue_type),
        photo_urls=photo_urls,
        accessibility_features=[],
        parking_available=False,
        indoor_outdoor=determine_indoor_outdoor(venue_type, place.types),
        date_created=now,
        last_updated=now,
        distance=haversine_miles(search_filter.latitude, search_filter.longitude, place.lat, place.lng),
        is_favorite=False,
        user_has_visited=False,
    )


def apply_client_side_filters(
    venues: Iterable[VenueWithDetails],
    search_filter: VenueSearchFilter,
) -> list[VenueWithDetails]:
    filtered = list(venues)

    if search_filter.amenities:
        required = search_filter.amenities
        filtered = [venue for venue in filtered if all(amenity in venue.amenities for amenity in required)]

    if search_filter.accessibility_required:
        filtered = [venue for venue in filtered if venue.accessibility_features]

    if search_filter.age_range is not None:
        # Containment: the venue's range must cover the whole requested range.
        requested = search_filter.age_range
        filtered = [venue for venue in filtered if venue.age_suitability.contains(requested)]

    return filtered


async def search_venues(
    search_filter: VenueSearchFilter,
    principal: AuthPrincipal | None = None,
) -> VenueSearchResult:
    user_id = annotation_identity(principal)

    try:
        rows, count = await search_venues_in_bounds(search_filter, user_id=user_id)
    except PyMongoError as exc:
        logger.exception("Venue store query failed")
        raise store_failure("Failed to search venues") from exc

    stored_venues = [
        annotate_persisted_row(row, search_filter=search_filter, user_id=user_id) for row in rows
    ]

    external_venues: list[VenueWithDetails] = []
    if count < search_filter.limit:
        places = await fetch_family_friendly_places(search_filter)
        stored_place_ids = {venue.google_place_id for venue in stored_venues if venue.google_place_id}
        new_places = [place for place in places if place.place_id not in stored_place_ids]
        needed = search_filter.limit - count
        external_venues = [
            enrich_external_place(place, search_filter=search_filter) for place in new_places[:needed]
        ]
        logger.debug(
            "Supplemented %d stored venues with %d provider venues",
            len(stored_venues),
            len(external_venues),
        )

    venues = apply_client_side_filters([*stored_venues, *external_venues], search_filter)
    venues.sort(key=lambda venue: venue.distance)

    # Pagination past the first page is not implemented, so has_more stays False.
    return VenueSearchResult(venues=venues, total=len(venues), has_more=False)
