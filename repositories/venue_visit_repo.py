from __future__ import annotations

import time

from core.database import db
from schemas.venue import VenueVisitCreate, VenueVisitOut


async def create_visit(*, venue_id: str, user_id: str, payload: VenueVisitCreate) -> VenueVisitOut:
    document = {
        "venue_id": venue_id,
        "user_id": user_id,
        "visit_date": payload.visit_date,
        "playdate_id": payload.playdate_id,
        "date_created": int(time.time()),
    }
    result = await db.venue_visits.insert_one(document)
    return VenueVisitOut(**{**document, "_id": result.inserted_id})
