from __future__ import annotations

from typing import Any

from bson import ObjectId
from pymongo import DESCENDING, ReturnDocument

from core.database import db
from core.geo import bounding_box
from schemas.venue import VenueCreate, VenueOut, VenueSearchFilter

_VENUE_INDEXES_READY = False


async def _ensure_venue_indexes() -> None:
    global _VENUE_INDEXES_READY
    if _VENUE_INDEXES_READY:
        return

    await db.venues.create_index([("lat", 1), ("lng", 1)], name="idx_venue_lat_lng")
    await db.venues.create_index("venue_type", name="idx_venue_type")
    await db.venues.create_index(
        "google_place_id",
        name="idx_venue_google_place_id_unique",
        unique=True,
        sparse=True,
    )
    await db.user_favorite_venues.create_index(
        [("user_id", 1), ("venue_id", 1)],
        name="idx_favorite_user_venue_unique",
        unique=True,
    )
    await db.venue_visits.create_index([("venue_id", 1), ("user_id", 1)], name="idx_visit_venue_user")
    _VENUE_INDEXES_READY = True


def _id_filter(venue_id: str) -> dict:
    if ObjectId.is_valid(venue_id):
        return {"_id": ObjectId(venue_id)}
    return {"_id": venue_id}


def build_search_query(search_filter: VenueSearchFilter) -> dict[str, Any]:
    """Column predicates the store can evaluate: bounding box plus simple filters."""
    min_lat, max_lat, min_lng, max_lng = bounding_box(
        search_filter.latitude,
        search_filter.longitude,
        search_filter.radius,
    )
    query: dict[str, Any] = {
        "lat": {"$gte": min_lat, "$lte": max_lat},
        "lng": {"$gte": min_lng, "$lte": max_lng},
    }
    if search_filter.venue_types:
        query["venue_type"] = {"$in": [venue_type.value for venue_type in search_filter.venue_types]}
    if search_filter.min_rating:
        query["rating"] = {"$gte": search_filter.min_rating}
    if search_filter.indoor_outdoor:
        query["indoor_outdoor"] = search_filter.indoor_outdoor.value
    if search_filter.parking_required:
        query["parking_available"] = True
    return query


def _relation_lookup(collection: str, alias: str, user_id: str | None) -> dict[str, Any]:
    # Only the requester's rows are joined; anonymous requests join nothing.
    return {
        "$lookup": {
            "from": collection,
            "let": {"venue_id": {"$toString": "$_id"}},
            "pipeline": [
                {
                    "$match": {
                        "$expr": {
                            "$and": [
                                {"$eq": ["$venue_id", "$$venue_id"]},
                                {"$eq": ["$user_id", user_id]},
                            ]
                        }
                    }
                },
                {"$project": {"_id": 0, "user_id": 1}},
            ],
            "as": alias,
        }
    }


async def search_venues_in_bounds(
    search_filter: VenueSearchFilter,
    *,
    user_id: str | None = None,
) -> tuple[list[dict[str, Any]], int]:
    """Returns one page of raw venue rows with joined favorites/visits, and the exact match count."""
    await _ensure_venue_indexes()
    query = build_search_query(search_filter)

    pipeline: list[dict[str, Any]] = [
        {"$match": query},
        {"$sort": {"rating": DESCENDING, "_id": 1}},
        {"$skip": search_filter.offset},
        {"$limit": search_filter.limit},
        _relation_lookup("user_favorite_venues", "user_favorite_venues", user_id),
        _relation_lookup("venue_visits", "venue_visits", user_id),
    ]

    rows: list[dict[str, Any]] = []
    cursor = await db.venues.aggregate(pipeline)
    async for row in cursor:
        rows.append(row)

    count = await db.venues.count_documents(query)
    return rows, count


async def get_venue_by_id(venue_id: str) -> VenueOut | None:
    await _ensure_venue_indexes()
    row = await db.venues.find_one(_id_filter(venue_id))
    if row is None:
        return None
    return VenueOut(**row)


async def get_venue_by_google_place_id(google_place_id: str) -> VenueOut | None:
    await _ensure_venue_indexes()
    row = await db.venues.find_one({"google_place_id": google_place_id})
    if row is None:
        return None
    return VenueOut(**row)


async def upsert_venue_by_google_place_id(payload: VenueCreate) -> VenueOut:
    await _ensure_venue_indexes()
    document = payload.model_dump(mode="json")
    date_created = document.pop("date_created")
    row = await db.venues.find_one_and_update(
        {"google_place_id": payload.google_place_id},
        {"$set": document, "$setOnInsert": {"date_created": date_created}},
        upsert=True,
        return_document=ReturnDocument.AFTER,
    )
    return VenueOut(**row)  # type: ignore[arg-type]


async def update_venue_fields(venue_id: str, update_dict: dict) -> VenueOut | None:
    await _ensure_venue_indexes()
    row = await db.venues.find_one_and_update(
        _id_filter(venue_id),
        {"$set": update_dict},
        return_document=ReturnDocument.AFTER,
    )
    if row is None:
        return None
    return VenueOut(**row)
