from __future__ import annotations

from typing import Any

from bson import ObjectId
from pymongo import DESCENDING, ReturnDocument

from core.database import db
from schemas.venue_review import VenueReviewCreate, VenueReviewOut

_REVIEW_INDEXES_READY = False


async def _ensure_review_indexes() -> None:
    global _REVIEW_INDEXES_READY
    if _REVIEW_INDEXES_READY:
        return

    await db.venue_reviews.create_index(
        [("venue_id", 1), ("user_id", 1)],
        name="idx_review_venue_user_unique",
        unique=True,
    )
    await db.venue_reviews.create_index([("venue_id", 1), ("date_created", -1)], name="idx_review_venue_recent")
    _REVIEW_INDEXES_READY = True


def _id_filter(review_id: str) -> dict:
    if ObjectId.is_valid(review_id):
        return {"_id": ObjectId(review_id)}
    return {"_id": review_id}


async def create_review(payload: VenueReviewCreate) -> VenueReviewOut:
    await _ensure_review_indexes()
    result = await db.venue_reviews.insert_one(payload.model_dump(mode="json"))
    stored = await db.venue_reviews.find_one({"_id": result.inserted_id})
    return VenueReviewOut(**stored)  # type: ignore[arg-type]


async def get_review_by_id(review_id: str) -> VenueReviewOut | None:
    await _ensure_review_indexes()
    row = await db.venue_reviews.find_one(_id_filter(review_id))
    if row is None:
        return None
    return VenueReviewOut(**row)


async def get_review_for_user(*, venue_id: str, user_id: str) -> VenueReviewOut | None:
    await _ensure_review_indexes()
    row = await db.venue_reviews.find_one({"venue_id": venue_id, "user_id": user_id})
    if row is None:
        return None
    return VenueReviewOut(**row)


async def get_reviews_for_venue(*, venue_id: str, start: int = 0, stop: int = 50) -> list[VenueReviewOut]:
    await _ensure_review_indexes()
    cursor = (
        db.venue_reviews.find({"venue_id": venue_id})
        .sort("date_created", DESCENDING)
        .skip(start)
        .limit(max(0, stop - start))
    )
    items: list[VenueReviewOut] = []
    async for row in cursor:
        items.append(VenueReviewOut(**row))
    return items


async def update_review_fields(review_id: str, update_dict: dict) -> VenueReviewOut | None:
    await _ensure_review_indexes()
    row = await db.venue_reviews.find_one_and_update(
        _id_filter(review_id),
        {"$set": update_dict},
        return_document=ReturnDocument.AFTER,
    )
    if row is None:
        return None
    return VenueReviewOut(**row)


async def delete_review(review_id: str) -> int:
    await _ensure_review_indexes()
    result = await db.venue_reviews.delete_one(_id_filter(review_id))
    return result.deleted_count


async def review_rating_aggregation(venue_id: str) -> dict[str, Any]:
    pipeline = [
        {"$match": {"venue_id": venue_id}},
        {"$group": {"_id": "$venue_id", "avg_rating": {"$avg": "$rating"}, "total": {"$sum": 1}}},
    ]
    cursor = await db.venue_reviews.aggregate(pipeline)
    async for row in cursor:
        return {"avg_rating": float(row.get("avg_rating") or 0), "total": int(row.get("total") or 0)}
    return {"avg_rating": 0.0, "total": 0}
