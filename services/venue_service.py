from __future__ import annotations

import logging
from typing import Any

from bson import ObjectId

from core.errors import resource_not_found
from core.venue_rules import (
    determine_indoor_outdoor,
    estimate_age_suitability,
    extract_amenities,
    map_google_types_to_venue_type,
    parse_opening_hours,
)
from repositories import venue_favorite_repo
from repositories.venue_repo import (
    get_venue_by_google_place_id,
    get_venue_by_id,
    upsert_venue_by_google_place_id,
)
from repositories.venue_visit_repo import create_visit
from schemas.venue import FavoriteOut, VenueCreate, VenueDetailsOut, VenueOut, VenueVisitCreate, VenueVisitOut
from security.principal import AuthPrincipal
from security.venue_access_check import annotation_identity, require_active_principal
from services.places_client import get_place_details, get_place_photo_url

logger = logging.getLogger(__name__)

MAX_INGESTED_PHOTOS = 5


def build_venue_from_place_details(place_id: str, details: dict[str, Any]) -> VenueCreate:
    geometry = details.get("geometry") or {}
    location = geometry.get("location") or {}
    types = [str(item) for item in details.get("types") or []]
    venue_type = map_google_types_to_venue_type(types)
    opening_hours = details.get("opening_hours") or {}

    photo_urls = []
    for photo in (details.get("photos") or [])[:MAX_INGESTED_PHOTOS]:
        reference = photo.get("photo_reference") if isinstance(photo, dict) else None
        url = get_place_photo_url(reference) if reference else ""
        if url:
            photo_urls.append(url)

    return VenueCreate(
        name=str(details.get("name") or place_id),
        venue_type=venue_type,
        google_place_id=place_id,
        formatted_address=details.get("formatted_address"),
        lat=float(location.get("lat", 0)),
        lng=float(location.get("lng", 0)),
        phone_number=details.get("formatted_phone_number"),
        website=details.get("website"),
        description="",
        rating=details.get("rating") or 0,
        total_reviews=details.get("user_ratings_total") or 0,
        price_level=details.get("price_level"),
        amenities=extract_amenities(types),
        age_suitability=estimate_age_suitability(venue_type),
        hours=parse_opening_hours(opening_hours.get("weekday_text")),
        photo_urls=photo_urls,
        indoor_outdoor=determine_indoor_outdoor(venue_type, types),
    )


async def ingest_google_place(place_id: str) -> VenueOut:
    """Fetches provider details for a place and stores it as a venue."""
    details = await get_place_details(place_id)
    venue = await upsert_venue_by_google_place_id(build_venue_from_place_details(place_id, details))
    logger.info("Ingested place %s as venue %s", place_id, venue.id)
    return venue


async def resolve_venue(venue_id: str) -> VenueOut | None:
    venue = await get_venue_by_id(venue_id)
    if venue is None and not ObjectId.is_valid(venue_id):
        venue = await get_venue_by_google_place_id(venue_id)
    return venue


async def require_venue(venue_id: str) -> VenueOut:
    venue = await resolve_venue(venue_id)
    if venue is None:
        raise resource_not_found("Venue", venue_id)
    return venue


async def get_venue_details(venue_id: str, principal: AuthPrincipal | None = None) -> VenueDetailsOut:
    """Stored venue by id or place id; an unknown place id is fetched from the provider and stored."""
    venue = await resolve_venue(venue_id)
    if venue is None:
        if ObjectId.is_valid(venue_id):
            raise resource_not_found("Venue", venue_id)
        venue = await ingest_google_place(venue_id)

    is_favorite = False
    user_id = annotation_identity(principal)
    if user_id is not None and venue.id:
        is_favorite = await venue_favorite_repo.is_favorite(user_id=user_id, venue_id=venue.id)

    return VenueDetailsOut(venue=venue, is_favorite=is_favorite)


async def add_favorite_for_principal(*, venue_id: str, principal: AuthPrincipal) -> FavoriteOut:
    user_id = require_active_principal(principal)
    venue = await require_venue(venue_id)
    await venue_favorite_repo.add_favorite(user_id=user_id, venue_id=str(venue.id))
    return FavoriteOut(venue_id=str(venue.id), is_favorite=True)


async def remove_favorite_for_principal(*, venue_id: str, principal: AuthPrincipal) -> FavoriteOut:
    user_id = require_active_principal(principal)
    # Favorites are keyed by the stored venue id; an unknown id has nothing to remove.
    venue = await resolve_venue(venue_id)
    stored_venue_id = str(venue.id) if venue is not None else venue_id
    await venue_favorite_repo.remove_favorite(user_id=user_id, venue_id=stored_venue_id)
    return FavoriteOut(venue_id=stored_venue_id, is_favorite=False)


async def log_visit_for_principal(
    *,
    venue_id: str,
    principal: AuthPrincipal,
    payload: VenueVisitCreate,
) -> VenueVisitOut:
    user_id = require_active_principal(principal)
    venue = await require_venue(venue_id)
    return await create_visit(venue_id=str(venue.id), user_id=user_id, payload=payload)
