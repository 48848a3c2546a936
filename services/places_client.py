from __future__ import annotations

import json
import logging
import os
from typing import Any
from urllib.parse import urlencode

import httpx

from core.errors import AppException, ErrorCode, resource_not_found
from core.redis_cache import cache_db
from core.settings import load_settings
from schemas.venue import ExternalPlace

logger = logging.getLogger(__name__)

GOOGLE_PLACES_BASE_URL = "https://maps.googleapis.com/maps/api/place"
GOOGLE_NEARBY_SEARCH_URL = f"{GOOGLE_PLACES_BASE_URL}/nearbysearch/json"
GOOGLE_PLACE_DETAILS_URL = f"{GOOGLE_PLACES_BASE_URL}/details/json"
GOOGLE_PLACE_PHOTO_URL = f"{GOOGLE_PLACES_BASE_URL}/photo"

PLACE_CACHE_TTL_SECONDS = 60 * 60 * 24 * 15
PLACE_DETAILS_FIELDS = ",".join(
    (
        "place_id",
        "name",
        "formatted_address",
        "formatted_phone_number",
        "website",
        "url",
        "rating",
        "user_ratings_total",
        "price_level",
        "geometry",
        "photos",
        "opening_hours",
        "types",
        "business_status",
    )
)


def _google_places_api_key() -> str:
    return os.getenv("GOOGLE_PLACES_API_KEY", "").strip()


def _require_google_places_api_key() -> str:
    api_key = _google_places_api_key()
    if not api_key:
        raise AppException(
            status_code=503,
            code=ErrorCode.PLACES_PROVIDER_ERROR,
            message="Google Places API key is not configured",
        )
    return api_key


def _details_cache_key(place_id: str) -> str:
    return f"places:details:{place_id}"


def _cache_get_json(cache_key: str) -> Any | None:
    try:
        raw = cache_db.get(cache_key)
    except Exception:
        logger.warning("Place cache read failed for %s", cache_key, exc_info=True)
        return None

    if not raw:
        return None

    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        return None


def _cache_set_json(cache_key: str, payload: Any, ttl_seconds: int = PLACE_CACHE_TTL_SECONDS) -> None:
    try:
        cache_db.setex(cache_key, ttl_seconds, json.dumps(payload))
    except Exception:
        logger.warning("Place cache write failed for %s", cache_key, exc_info=True)


def _raise_provider_status_error(*, status_value: str, error_message: str | None = None) -> None:
    normalized_status = (status_value or "").upper()
    details: dict[str, Any] = {"providerStatus": normalized_status}
    if error_message:
        details["providerMessage"] = error_message

    if normalized_status == "INVALID_REQUEST":
        raise AppException(
            status_code=400,
            code=ErrorCode.VALIDATION_FAILED,
            message="Invalid request to places provider",
            details=details,
        )
    if normalized_status == "OVER_QUERY_LIMIT":
        raise AppException(
            status_code=429,
            code=ErrorCode.TOO_MANY_REQUESTS,
            message="Places provider quota exceeded",
            details=details,
        )
    if normalized_status == "REQUEST_DENIED":
        raise AppException(
            status_code=403,
            code=ErrorCode.PLACES_PROVIDER_ERROR,
            message="Places provider denied the request",
            details=details,
        )

    raise AppException(
        status_code=502,
        code=ErrorCode.PLACES_PROVIDER_ERROR,
        message="Places provider returned an unexpected status",
        details=details,
    )


async def _google_get_json(url: str, params: dict[str, Any]) -> dict[str, Any]:
    request_params = dict(params)
    request_params["key"] = _require_google_places_api_key()

    try:
        async with httpx.AsyncClient(timeout=load_settings().places_timeout_s) as client:
            response = await client.get(url, params=request_params)
            response.raise_for_status()
    except httpx.HTTPStatusError as err:
        raise AppException(
            status_code=502,
            code=ErrorCode.PLACES_PROVIDER_ERROR,
            message="Places provider HTTP error",
            details={"status_code": err.response.status_code},
        ) from err
    except httpx.HTTPError as err:
        raise AppException(
            status_code=502,
            code=ErrorCode.PLACES_PROVIDER_ERROR,
            message="Places provider request failed",
            details=type(err).__name__,
        ) from err

    try:
        payload = response.json()
    except ValueError as err:
        raise AppException(
            status_code=502,
            code=ErrorCode.PLACES_PROVIDER_ERROR,
            message="Places provider returned invalid JSON",
        ) from err

    if not isinstance(payload, dict):
        raise AppException(
            status_code=502,
            code=ErrorCode.PLACES_PROVIDER_ERROR,
            message="Places provider response shape is invalid",
        )
    return payload


def normalize_nearby_result(result: dict[str, Any]) -> ExternalPlace | None:
    """Maps one nearby-search result to an ExternalPlace; results without id or coordinates are dropped."""
    place_id = str(result.get("place_id") or "").strip()
    geometry = result.get("geometry")
    location = geometry.get("location") if isinstance(geometry, dict) else None
    if not place_id or not isinstance(location, dict):
        return None

    lat = location.get("lat")
    lng = location.get("lng")
    if lat is None or lng is None:
        return None

    photos = result.get("photos")
    photo_references = [
        str(photo["photo_reference"])
        for photo in (photos if isinstance(photos, list) else [])
        if isinstance(photo, dict) and photo.get("photo_reference")
    ]
    types = result.get("types")

    return ExternalPlace(
        place_id=place_id,
        name=str(result.get("name") or place_id),
        formatted_address=str(result.get("formatted_address") or result.get("vicinity") or ""),
        lat=float(lat),
        lng=float(lng),
        rating=result.get("rating"),
        user_ratings_total=result.get("user_ratings_total"),
        price_level=result.get("price_level"),
        types=[str(item) for item in types] if isinstance(types, list) else [],
        photo_references=photo_references,
    )


async def search_nearby_by_category(
    lat: float,
    lng: float,
    radius_m: int,
    category: str,
) -> list[ExternalPlace]:
    """One nearby search restricted to a single place type."""
    params: dict[str, Any] = {
        "location": f"{lat},{lng}",
        "radius": str(radius_m),
        "type": category,
    }

    payload = await _google_get_json(GOOGLE_NEARBY_SEARCH_URL, params)
    status_value = str(payload.get("status") or "")
    if status_value.upper() == "ZERO_RESULTS":
        return []
    if status_value.upper() != "OK":
        _raise_provider_status_error(
            status_value=status_value,
            error_message=payload.get("error_message"),
        )

    results = payload.get("results")
    if not isinstance(results, list):
        return []

    places: list[ExternalPlace] = []
    for result in results:
        if not isinstance(result, dict):
            continue
        place = normalize_nearby_result(result)
        if place is not None:
            places.append(place)
    return places


async def get_place_details(place_id: str) -> dict[str, Any]:
    normalized_place_id = place_id.strip()
    if not normalized_place_id:
        raise AppException(
            status_code=400,
            code=ErrorCode.VALIDATION_FAILED,
            message="place_id is required",
            details={"field": "place_id"},
        )

    cache_key = _details_cache_key(normalized_place_id)
    cached = _cache_get_json(cache_key)
    if isinstance(cached, dict):
        return cached

    params: dict[str, Any] = {
        "place_id": normalized_place_id,
        "fields": PLACE_DETAILS_FIELDS,
    }

    payload = await _google_get_json(GOOGLE_PLACE_DETAILS_URL, params)
    status_value = str(payload.get("status") or "")
    if status_value.upper() in {"ZERO_RESULTS", "NOT_FOUND"}:
        raise resource_not_found("Place", normalized_place_id)
    if status_value.upper() != "OK":
        _raise_provider_status_error(
            status_value=status_value,
            error_message=payload.get("error_message"),
        )

    result = payload.get("result")
    if not isinstance(result, dict):
        raise AppException(
            status_code=502,
            code=ErrorCode.PLACES_PROVIDER_ERROR,
            message="Places provider response missing result payload",
        )

    _cache_set_json(cache_key, result)
    return result


def get_place_photo_url(photo_reference: str, max_width: int = 800) -> str:
    """Display URL for a photo reference; empty when no API key is configured."""
    api_key = _google_places_api_key()
    if not api_key:
        return ""
    query = urlencode({"photo_reference": photo_reference, "maxwidth": max_width, "key": api_key})
    return f"{GOOGLE_PLACE_PHOTO_URL}?{query}"
