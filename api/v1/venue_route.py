from __future__ import annotations

import json
from typing import Any, Optional

from fastapi import APIRouter, Depends, Path, Query, Request

from core.errors import validation_failed
from core.response_envelope import document_response
from schemas.venue import VenueVisitCreate
from security.auth import optional_principal, verify_any_token
from security.principal import AuthPrincipal
from services.venue_search_service import build_search_filter, search_venues
from services.venue_service import (
    add_favorite_for_principal,
    get_venue_details,
    log_visit_for_principal,
    remove_favorite_for_principal,
)

router = APIRouter(prefix="/venues", tags=["Venues"])


def _split_csv(value: str | None) -> list[str] | None:
    if value is None:
        return None
    items = [item.strip() for item in value.split(",") if item.strip()]
    return items or None


def _parse_age_range(value: str | None) -> Any:
    if value is None or not value.strip():
        return None
    try:
        return json.loads(value)
    except json.JSONDecodeError as exc:
        raise validation_failed(
            "Invalid search parameters",
            details={
                "fieldErrors": [
                    {
                        "path": "age_range",
                        "location": "query",
                        "message": 'Expected JSON object like {"min": 2, "max": 8}',
                        "errorType": "json_invalid",
                    }
                ]
            },
        ) from exc


@router.get("/search")
@document_response(
    message="Venues fetched successfully",
    success_example={"venues": [], "total": 0, "has_more": False},
    error_examples={
        400: {
            "success": False,
            "message": "Invalid search parameters",
            "data": {"code": "VALIDATION_FAILED", "details": {"summary": "Validation failed for 1 field."}},
        }
    },
)
async def search_venues_route(
    request: Request,
    latitude: Optional[str] = Query(default=None, description="Latitude of the search center (required)."),
    longitude: Optional[str] = Query(default=None, description="Longitude of the search center (required)."),
    radius: Optional[str] = Query(default=None, description="Radius in meters (100 to 50000, default 5000)."),
    venue_types: Optional[str] = Query(default=None, description="Comma-separated venue types."),
    min_rating: Optional[str] = Query(default=None),
    age_range: Optional[str] = Query(default=None, description='JSON object, e.g. {"min": 2, "max": 8}.'),
    amenities: Optional[str] = Query(default=None, description="Comma-separated amenities; all must match."),
    indoor_outdoor: Optional[str] = Query(default=None),
    parking_required: Optional[str] = Query(default=None),
    accessibility_required: Optional[str] = Query(default=None),
    limit: Optional[str] = Query(default=None, description="Page size (1 to 100, default 20)."),
    offset: Optional[str] = Query(default=None),
    principal: Optional[AuthPrincipal] = Depends(optional_principal),
):
    # Raw strings; the filter model coerces and validates every parameter.
    raw_params = {
        "latitude": latitude,
        "longitude": longitude,
        "radius": radius,
        "venue_types": _split_csv(venue_types),
        "min_rating": min_rating,
        "age_range": _parse_age_range(age_range),
        "amenities": _split_csv(amenities),
        "indoor_outdoor": indoor_outdoor or None,
        "parking_required": parking_required,
        "accessibility_required": accessibility_required,
        "limit": limit,
        "offset": offset,
    }
    search_filter = build_search_filter({key: value for key, value in raw_params.items() if value is not None})
    return await search_venues(search_filter, principal)


@router.get("/{venue_id}")
@document_response(message="Venue fetched successfully")
async def fetch_venue_details(
    request: Request,
    venue_id: str = Path(..., description="Venue id or provider place id."),
    principal: Optional[AuthPrincipal] = Depends(optional_principal),
):
    return await get_venue_details(venue_id, principal)


@router.post("/{venue_id}/favorite")
@document_response(message="Added to favorites", success_example={"venue_id": "v-1", "is_favorite": True})
async def favorite_venue(
    request: Request,
    venue_id: str = Path(...),
    principal: AuthPrincipal = Depends(verify_any_token),
):
    return await add_favorite_for_principal(venue_id=venue_id, principal=principal)


@router.delete("/{venue_id}/favorite")
@document_response(message="Removed from favorites", success_example={"venue_id": "v-1", "is_favorite": False})
async def unfavorite_venue(
    request: Request,
    venue_id: str = Path(...),
    principal: AuthPrincipal = Depends(verify_any_token),
):
    return await remove_favorite_for_principal(venue_id=venue_id, principal=principal)


@router.post("/{venue_id}/visits")
@document_response(message="Visit logged successfully", status_code=201)
async def log_venue_visit(
    request: Request,
    payload: VenueVisitCreate,
    venue_id: str = Path(...),
    principal: AuthPrincipal = Depends(verify_any_token),
):
    return await log_visit_for_principal(venue_id=venue_id, principal=principal, payload=payload)
