from __future__ import annotations

import time

from core.database import db


async def add_favorite(*, user_id: str, venue_id: str) -> None:
    await db.user_favorite_venues.update_one(
        {"user_id": user_id, "venue_id": venue_id},
        {"$setOnInsert": {"user_id": user_id, "venue_id": venue_id, "date_created": int(time.time())}},
        upsert=True,
    )


async def remove_favorite(*, user_id: str, venue_id: str) -> int:
    result = await db.user_favorite_venues.delete_one({"user_id": user_id, "venue_id": venue_id})
    return result.deleted_count


async def is_favorite(*, user_id: str, venue_id: str) -> bool:
    row = await db.user_favorite_venues.find_one({"user_id": user_id, "venue_id": venue_id}, {"_id": 1})
    return row is not None
